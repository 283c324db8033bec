"""
Tests for the command line interface.
"""

import json

import pytest

from docmailer import __version__
from docmailer.app import main


class TestCli:
    def test_version(self, capsys):
        main(["--version"])
        assert capsys.readouterr().out.strip() == __version__

    def test_lookup_by_name(self, clean_env, table_csv, capsys):
        main(["lookup", "--query", "Teacher Protocol", "--table", str(table_csv)])
        out = capsys.readouterr().out
        assert "Match: Foundational Skills Teacher Protocol (via name, score=730)" in out
        assert "https://example.com/fs-protocol.pdf" in out

    def test_lookup_by_keyword(self, clean_env, table_csv, capsys):
        main(["lookup", "--query", "welcome", "--table", str(table_csv)])
        assert "Match: Grade 1 Welcome Letter (via keyword)" in capsys.readouterr().out

    def test_lookup_json(self, clean_env, table_csv, capsys):
        main(["lookup", "--query", "flip book", "--table", str(table_csv), "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["matched"] is True
        assert data["record"]["pdf_name"] == "Unit 1 Flip Book"

    def test_lookup_no_match_exits_nonzero(self, clean_env, table_csv, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["lookup", "--query", "pdf", "--table", str(table_csv)])
        assert exc_info.value.code == 1
        assert "No match: query_too_short" in capsys.readouterr().out

    def test_missing_table(self, clean_env, tmp_path):
        with pytest.raises(SystemExit, match="not found"):
            main(["lookup", "--query", "welcome letter", "--table", str(tmp_path / "missing.csv")])

    def test_send_dry_run(self, clean_env, table_csv, capsys):
        main([
            "send",
            "--query", "teacher protocol",
            "--name", "Ben",
            "--email", "ben@school.org",
            "--table", str(table_csv),
            "--dry-run",
        ])
        out = capsys.readouterr().out
        assert "Status: sent" in out
        assert "email_id: console-" in out

    def test_send_invalid_email(self, clean_env, table_csv, capsys):
        with pytest.raises(SystemExit):
            main([
                "send",
                "--query", "teacher protocol",
                "--name", "Ben",
                "--email", "ben-at-school",
                "--table", str(table_csv),
                "--dry-run",
            ])
        assert "Status: invalid" in capsys.readouterr().out

    def test_list(self, clean_env, table_csv, capsys):
        main(["list", "--table", str(table_csv)])
        out = capsys.readouterr().out
        assert "Found 3 documents" in out
        assert "Keyword: welcome" in out

    def test_serve_rejects_bad_config(self, clean_env):
        with pytest.raises(SystemExit, match="Invalid configuration"):
            main(["serve"])
