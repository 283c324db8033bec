"""
Reference table of documents.

Loads the keyword / name / link CSV into immutable Records and keeps the
current snapshot behind a provider so the service can reload it at runtime.
"""

import csv
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from .normalize import normalize_text
from .logger import get_logger

logger = get_logger()

KEYWORD_COLUMNS = ("keyword",)
NAME_COLUMNS = ("pdf_name", "display_name", "name")
LINK_COLUMNS = ("pdf_link", "link", "url")


class TableLoadError(Exception):
    """Raised when the reference table cannot be read."""
    pass


@dataclass(frozen=True)
class Record:
    """One document in the reference table."""

    keyword: str
    display_name: str
    link: str
    normalized_keyword: str
    normalized_display_name: str

    @classmethod
    def create(cls, keyword: Optional[str], display_name: Optional[str], link: Optional[str]) -> "Record":
        keyword = (keyword or "").strip()
        display_name = (display_name or "").strip()
        return cls(
            keyword=keyword,
            display_name=display_name,
            link=(link or "").strip(),
            normalized_keyword=normalize_text(keyword),
            normalized_display_name=normalize_text(display_name),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"keyword": self.keyword, "pdf_name": self.display_name, "pdf_link": self.link}


def _pick_column(fieldnames: Sequence[str], candidates: Sequence[str]) -> Optional[str]:
    by_lower = {f.strip().lower(): f for f in fieldnames if f}
    for name in candidates:
        if name in by_lower:
            return by_lower[name]
    return None


def load_records(path: Path) -> Tuple[Record, ...]:
    """
    Read the reference CSV into a tuple of Records.

    Args:
        path: CSV file with a header row (keyword, pdf_name, pdf_link)

    Returns:
        Records in file order

    Raises:
        TableLoadError: If the file is missing, unreadable or has no name column
    """
    if not path.exists():
        raise TableLoadError(f"Table file not found: {path}")

    try:
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            fieldnames = reader.fieldnames or []
            name_col = _pick_column(fieldnames, NAME_COLUMNS)
            if name_col is None:
                raise TableLoadError(
                    f"Table {path} has no name column (expected one of {', '.join(NAME_COLUMNS)})"
                )
            keyword_col = _pick_column(fieldnames, KEYWORD_COLUMNS)
            link_col = _pick_column(fieldnames, LINK_COLUMNS)

            records = []
            for row in reader:
                if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
                    continue
                records.append(Record.create(
                    row.get(keyword_col) if keyword_col else "",
                    row.get(name_col),
                    row.get(link_col) if link_col else "",
                ))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise TableLoadError(f"Failed to read table {path}: {e}") from e

    return tuple(records)


class RecordTable:
    """
    Holds the current snapshot of the reference table.

    ``load()`` builds a complete new tuple before assigning it, so readers
    holding the previous snapshot keep seeing it in full.
    """

    def __init__(self, path: Path, records: Sequence[Record] = ()):
        self.path = Path(path)
        self._snapshot: Tuple[Record, ...] = tuple(records)
        self.generation = 0
        self.loaded_at: Optional[datetime] = None

    def load(self) -> Tuple[Record, ...]:
        records = load_records(self.path)
        self._snapshot = records
        self.generation += 1
        self.loaded_at = datetime.now()
        logger.info(f"Loaded {len(records)} documents", path=str(self.path), generation=self.generation)
        return records

    def current_snapshot(self) -> Tuple[Record, ...]:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)
