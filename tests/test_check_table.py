"""
Tests for the table audit script.
"""

import importlib.util
from pathlib import Path

import pytest

from docmailer.records import Record
from docmailer.resolver import MatcherConfig

SCRIPT = Path(__file__).parent.parent / "scripts" / "check_table.py"


@pytest.fixture(scope="module")
def check_table():
    spec = importlib.util.spec_from_file_location("check_table", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestAudit:
    def test_clean_table(self, check_table, sample_records):
        assert check_table.audit(sample_records, MatcherConfig()) == []

    def test_reports_blank_and_linkless_rows(self, check_table):
        records = (
            Record.create("", "", "https://example.com/x.pdf"),
            Record.create("", "Grade 1 Welcome Letter", ""),
        )
        problems = check_table.audit(records, MatcherConfig())
        assert [p["problem"] for p in problems] == ["empty_name", "missing_link"]

    def test_keyword_never_shadows_exact_name(self, check_table):
        records = (
            Record.create("flip", "Unit 1 Flip Book", "a"),
            Record.create("", "Unit 2 Flip Chart", "b"),
        )
        assert check_table.audit(records, MatcherConfig()) == []

    def test_reports_duplicate_keyword(self, check_table):
        records = (
            Record.create("flip", "Unit 1 Flip Book", "a"),
            Record.create("flip", "Unit 2 Flip Chart", "b"),
        )
        problems = check_table.audit(records, MatcherConfig())
        assert len(problems) == 1
        assert problems[0]["index"] == 1
        assert problems[0]["problem"] == "keyword_shadowed"

    def test_reports_shadowed_name_without_gap_check(self, check_table):
        records = (
            Record.create("", "Phonics Code Chart", "a"),
            Record.create("", "Phonics Code Chart", "b"),
        )
        problems = check_table.audit(records, MatcherConfig(min_gap=0))
        assert [(p["index"], p["problem"]) for p in problems] == [(1, "shadowed")]

    def test_reports_ambiguous_duplicates(self, check_table):
        records = (
            Record.create("", "Phonics Code Chart", "a"),
            Record.create("", "Phonics Code Chart", "b"),
        )
        problems = check_table.audit(records, MatcherConfig())
        assert {p["problem"] for p in problems} == {"ambiguous"}
        assert len(problems) == 2
