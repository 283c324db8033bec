"""
Runtime configuration for docmailer.

Settings come from environment variables (optionally seeded from a .env
file) so the same build can run against different tables and mail providers.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Optional

from .env import load_env
from .normalize import normalize_text
from .resolver import MatcherConfig
from .scoring import DEFAULT_BONUS_TERMS

TRANSPORTS = ("resend", "smtp", "console")
DEFAULT_RESEND_API_URL = "https://api.resend.com/emails"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_bonus_terms(raw: Optional[str]) -> FrozenSet[str]:
    """Parse a comma-separated vocabulary; blank input keeps the default list."""
    if not raw or not raw.strip():
        return DEFAULT_BONUS_TERMS
    terms = {normalize_text(part) for part in raw.split(",")}
    terms.discard("")
    return frozenset(terms) or DEFAULT_BONUS_TERMS


@dataclass
class Settings:
    """Configuration settings for the service and CLI."""

    table_path: Path = Path("grade1.csv")
    host: str = "0.0.0.0"
    port: int = 5050

    email_transport: str = "resend"
    email_from: Optional[str] = None
    email_signature: str = "ESC 17"
    resend_api_key: Optional[str] = None
    resend_api_url: str = DEFAULT_RESEND_API_URL
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = True

    bonus_terms: FrozenSet[str] = field(default_factory=lambda: DEFAULT_BONUS_TERMS)
    keyword_first: bool = True

    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """Create settings from environment variables.

        Args:
            env_file: Optional path to .env file

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        load_env(env_file)

        try:
            port = int(os.getenv("PORT", "5050"))
            smtp_port = int(os.getenv("SMTP_PORT", "587"))
        except ValueError as e:
            raise ValueError(f"PORT and SMTP_PORT must be integers: {e}") from e

        return cls(
            table_path=Path(os.getenv("TABLE_PATH", "grade1.csv")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            email_transport=os.getenv("EMAIL_TRANSPORT", "resend").strip().lower(),
            email_from=os.getenv("EMAIL_FROM") or None,
            email_signature=os.getenv("EMAIL_SIGNATURE", "ESC 17"),
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            resend_api_url=os.getenv("RESEND_API_URL", DEFAULT_RESEND_API_URL),
            smtp_host=os.getenv("SMTP_HOST") or None,
            smtp_port=smtp_port,
            smtp_username=os.getenv("SMTP_USERNAME") or None,
            smtp_password=os.getenv("SMTP_PASSWORD") or None,
            smtp_starttls=_env_bool("SMTP_STARTTLS", True),
            bonus_terms=parse_bonus_terms(os.getenv("MATCH_BONUS_TERMS")),
            keyword_first=_env_bool("MATCH_KEYWORD_FIRST", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=Path(os.environ["LOG_DIR"]) if os.getenv("LOG_DIR") else None,
        )

    def matcher_config(self) -> MatcherConfig:
        return MatcherConfig(bonus_terms=self.bonus_terms, keyword_first=self.keyword_first)

    def validate(self) -> List[str]:
        """Return configuration problems; empty list means usable."""
        problems: List[str] = []
        if self.email_transport not in TRANSPORTS:
            problems.append(
                f"EMAIL_TRANSPORT must be one of {', '.join(TRANSPORTS)} (got '{self.email_transport}')"
            )
        if self.email_transport != "console" and not self.email_from:
            problems.append("EMAIL_FROM is required to send email")
        if self.email_transport == "resend" and not self.resend_api_key:
            problems.append("RESEND_API_KEY is required for the resend transport")
        if self.email_transport == "smtp" and not self.smtp_host:
            problems.append("SMTP_HOST is required for the smtp transport")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            problems.append(f"Invalid LOG_LEVEL: {self.log_level}")
        return problems
