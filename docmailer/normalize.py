import re
from typing import List, Optional

_DISALLOWED = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(raw: Optional[str]) -> str:
    """Reduce free text to lowercase ASCII letters, digits and single spaces."""
    s = (raw or "").lower()
    s = _DISALLOWED.sub("", s)
    return _WHITESPACE.sub(" ", s).strip()


def tokenize(normalized: str) -> List[str]:
    return normalized.split()
