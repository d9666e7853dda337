"""Type coercion of raw field values onto a FieldSpec's declared type.

Every coercion is idempotent: a value already of the target type comes back
unchanged, so coercing twice is the same as coercing once.
"""

import logging
import re
from datetime import date, datetime
from typing import Any

from resolver.core.templates import FieldSpec, FieldType
from resolver.pipeline.models import FieldValue

logger = logging.getLogger(__name__)

_DAY_FIRST_FORMATS = (
    "%d-%m-%Y", "%d/%m/%Y", "%d.%m.%Y",
    "%d-%m-%y", "%d/%m/%y",
)
_MONTH_FIRST_FORMATS = (
    "%m-%d-%Y", "%m/%d/%Y", "%m.%d.%Y",
    "%m-%d-%y", "%m/%d/%y",
)
_UNAMBIGUOUS_FORMATS = (
    "%Y-%m-%d", "%Y/%m/%d",
    "%d %B %Y", "%d %b %Y",
    "%B %d, %Y", "%b %d, %Y",
    "%B %d %Y", "%b %d %Y",
)

_NUMBER_TOKEN_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?")
_LIST_SPLIT_RE = re.compile(r"[,;\n]")
_ORDINAL_RE = re.compile(r"(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)


# ── Public API ───────────────────────────────────────────────────────


def coerce_value(value: Any, field: FieldSpec, day_first: bool = True) -> FieldValue:
    """Convert a raw value to the field's type. Never raises."""
    ft = field.type
    if ft is FieldType.TEXT:
        return _to_text(value)
    if ft is FieldType.TEXTAREA:
        return _to_text(value)
    if ft is FieldType.NUMBER:
        return to_number(value)
    if ft is FieldType.DATE:
        return to_date(value, day_first=day_first)
    if ft is FieldType.SELECT:
        return _to_option(value, field.options or [])
    if ft is FieldType.LIST:
        return to_list(value)
    raise ValueError(f"Unhandled field type: {ft}")


def default_value(field: FieldSpec) -> FieldValue:
    """Type-appropriate empty value for a field nothing could fill."""
    ft = field.type
    if ft is FieldType.TEXT or ft is FieldType.TEXTAREA:
        return ""
    if ft is FieldType.NUMBER or ft is FieldType.DATE:
        return None
    if ft is FieldType.SELECT:
        return field.options[0] if field.options else ""
    if ft is FieldType.LIST:
        return []
    raise ValueError(f"Unhandled field type: {ft}")


def is_empty(value: FieldValue) -> bool:
    return value is None or value == "" or value == []


# ── Converters ───────────────────────────────────────────────────────


def to_number(value: Any) -> int | float:
    """First number token in noisy text ("Rs. 5,000" -> 5000); none gives 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    match = _NUMBER_TOKEN_RE.search(str(value))
    if not match:
        logger.debug("Could not parse number: %r", value)
        return 0
    token = match.group(0).replace(",", "")
    if "." in token:
        return float(token)
    return int(token)


def to_date(value: Any, day_first: bool = True) -> date | None:
    """Parse a date; unparsable input gives None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None

    cleaned = _ORDINAL_RE.sub(r"\1", str(value).strip())
    if not cleaned:
        return None

    numeric = _DAY_FIRST_FORMATS if day_first else _MONTH_FIRST_FORMATS
    for fmt in (*numeric, *_UNAMBIGUOUS_FORMATS):
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(cleaned).date()
    except ValueError:
        logger.debug("Could not parse date: %r", value)
        return None


def to_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [part.strip() for part in _LIST_SPLIT_RE.split(str(value)) if part.strip()]


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _to_option(value: Any, options: list[str]) -> str:
    """Snap to a declared option (case-insensitive), else keep the text."""
    text = _to_text(value)
    lowered = text.lower()
    for option in options:
        if option.lower() == lowered:
            return option
    for option in options:
        if lowered and re.search(rf"\b{re.escape(option.lower())}\b", lowered):
            return option
    return text
