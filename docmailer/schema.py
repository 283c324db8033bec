from email.utils import parseaddr
from typing import Any, Dict, List, Optional, Sequence, Tuple

# Automation platforms nest the useful fields under different envelopes.
ENVELOPE_KEYS = ["customData", "input", "arguments", "payload", "triggerData", "contact"]

# (container, key) pairs; container None means the unwrapped data,
# "" means the top-level body.
QUERY_PATHS: List[Tuple[Optional[str], str]] = [
    (None, "keyword"),
    (None, "pdf_name"),
    ("customData", "keyword"),
    ("customData", "requested_pdf"),
    ("customData", "pdf_name"),
    ("triggerData", "keyword"),
]
NAME_PATHS: List[Tuple[Optional[str], str]] = [
    (None, "teacher_name"),
    (None, "teacherName"),
    ("customData", "teacher_name"),
    ("customData", "teacherName"),
    ("", "full_name"),
    ("", "first_name"),
    ("contact", "full_name"),
]
EMAIL_PATHS: List[Tuple[Optional[str], str]] = [
    (None, "teacher_email"),
    (None, "teacherEmail"),
    ("customData", "teacher_email"),
    ("customData", "teacherEmail"),
    ("", "email"),
    ("contact", "email"),
]

REQUIRED_FIELDS = ["query", "recipient_name", "recipient_email"]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def unwrap_payload(body: Dict[str, Any]) -> Dict[str, Any]:
    """Return the first non-empty envelope object, or the body itself."""
    for key in ENVELOPE_KEYS:
        inner = body.get(key)
        if isinstance(inner, dict) and inner:
            return inner
    return body


def _first_string(body: Dict[str, Any], data: Dict[str, Any], paths: Sequence[Tuple[Optional[str], str]]) -> Optional[str]:
    for container, key in paths:
        if container is None:
            source = data
        elif container == "":
            source = body
        else:
            source = body.get(container)
        if not isinstance(source, dict):
            continue
        value = source.get(key)
        if _is_non_empty_str(value):
            return value.strip()
    return None


def extract_dispatch_fields(body: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """
    Pull the document query and recipient out of a webhook payload.

    Returns a dict with ``query``, ``recipient_name`` and ``recipient_email``;
    a field that cannot be found is None.
    """
    body = body if isinstance(body, dict) else {}
    data = unwrap_payload(body)
    return {
        "query": _first_string(body, data, QUERY_PATHS),
        "recipient_name": _first_string(body, data, NAME_PATHS),
        "recipient_email": _first_string(body, data, EMAIL_PATHS),
    }


def _valid_email(v: str) -> bool:
    _, addr = parseaddr(v)
    if not addr or addr != v.strip():
        return False
    local, sep, domain = addr.rpartition("@")
    return bool(sep and local and "." in domain and not domain.startswith(".") and not domain.endswith("."))


def validate_dispatch_request(fields: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []

    for f in REQUIRED_FIELDS:
        if not _is_non_empty_str(fields.get(f)):
            errors.append(f"Missing required field: {f}")

    email = fields.get("recipient_email")
    if _is_non_empty_str(email) and not _valid_email(email):
        errors.append("Field 'recipient_email' must be a valid email address")

    return errors
