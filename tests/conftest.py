"""
Pytest configuration and shared fixtures.
"""

import pytest
from pathlib import Path
from typing import Tuple

from docmailer.logger import StructuredLogger, get_logger, reset_logger
from docmailer.mailer import ConsoleTransport
from docmailer.records import Record, RecordTable
from docmailer.service import DispatchService


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Point the shared docmailer logger at a temp dir with no console output."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture
def sample_records() -> Tuple[Record, ...]:
    """A small grade 1 document table without keywords."""
    return (
        Record.create("", "Grade 1 Welcome Letter", "https://example.com/g1-welcome.pdf"),
        Record.create("", "Grade 2 Consonant Chart", "https://example.com/g2-consonant.pdf"),
        Record.create("", "Unit 1 Flip Book", "https://example.com/u1-flip-book.pdf"),
        Record.create("", "Unit 1 Flip Chart", "https://example.com/u1-flip-chart.pdf"),
        Record.create("", "Foundational Skills Teacher Protocol", "https://example.com/fs-protocol.pdf"),
    )


@pytest.fixture
def keyword_records() -> Tuple[Record, ...]:
    """Documents where some rows carry a keyword tag."""
    return (
        Record.create("welcome", "Grade 1 Welcome Letter", "https://example.com/g1-welcome.pdf"),
        Record.create("", "Welcome Back Letter Template", "https://example.com/welcome-back.pdf"),
        Record.create("consonant chart", "Grade 2 Consonant Chart", "https://example.com/g2-consonant.pdf"),
        Record.create("gk", "GK Individual Lesson Plan", "https://example.com/gk-lesson.pdf"),
    )


SAMPLE_CSV = (
    "keyword,pdf_name,pdf_link\n"
    "welcome,Grade 1 Welcome Letter,https://example.com/g1-welcome.pdf\n"
    ",Unit 1 Flip Book,https://example.com/u1-flip-book.pdf\n"
    "\n"
    ",Foundational Skills Teacher Protocol,https://example.com/fs-protocol.pdf\n"
)


@pytest.fixture
def table_csv(tmp_path) -> Path:
    """A reference table CSV on disk."""
    path = tmp_path / "grade1.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path


class RecordingTransport(ConsoleTransport):
    """Console transport that keeps every message for assertions."""

    def __init__(self):
        self.sent = []

    def send(self, email):
        self.sent.append(email)
        return super().send(email)


@pytest.fixture
def console_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def service_logger(tmp_path) -> StructuredLogger:
    return StructuredLogger(name="test-service", log_dir=tmp_path, enable_console=False)


@pytest.fixture
def dispatch_service(tmp_path, sample_records, console_transport, service_logger) -> DispatchService:
    table = RecordTable(tmp_path / "unused.csv", sample_records)
    return DispatchService(
        table,
        console_transport,
        sender="library@example.org",
        signature="ESC 17",
        logger=service_logger,
    )


@pytest.fixture
def valid_payload() -> dict:
    """Webhook body in the shape the automation platform sends."""
    return {
        "customData": {
            "pdf_name": "welcome letter",
            "teacher_name": "Ana Ruiz",
            "teacher_email": "ana.ruiz@school.org",
        }
    }


ENV_VARS = [
    "TABLE_PATH", "HOST", "PORT", "EMAIL_TRANSPORT", "EMAIL_FROM", "EMAIL_SIGNATURE",
    "RESEND_API_KEY", "RESEND_API_URL", "SMTP_HOST", "SMTP_PORT", "SMTP_USERNAME",
    "SMTP_PASSWORD", "SMTP_STARTTLS", "MATCH_BONUS_TERMS", "MATCH_KEYWORD_FIRST",
    "LOG_LEVEL", "LOG_DIR",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No inherited settings and no stray .env in the working directory."""
    for name in ENV_VARS:
        # setenv first so values loaded from .env files are undone afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch
