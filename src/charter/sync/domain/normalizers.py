"""Field normalizers for loosely-typed upstream values.

The provider returns the same logical field as a number on one endpoint and
as a numeric string on another, as a bare string or a per-locale object, and
dates in its own ``DD.MM.YYYY[ HH:mm[:ss]]`` format. These pure functions turn
those values into the local canonical representation. They never raise for a
bad field value: unknown values come back as ``None`` (or NaN from
``to_number``) and the caller stores the field as absent.

The only raising helper is ``external_id``, because a record without a usable
identity cannot be upserted at all.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any

from ...api.exceptions import NormalizationError

SUPPORTED_LOCALES = ("textEN", "textDE", "textFR", "textIT", "textES", "textHR")
ENGLISH = "textEN"

_PROVIDER_DATE_PATTERNS = (
    re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$"),
    re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})\s+(\d{1,2}):(\d{2})$"),
    re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})\s+(\d{1,2}):(\d{2}):(\d{2})$"),
)


# ============================================
# Multilingual Text
# ============================================

def to_multilingual_text(value: Any) -> Any:
    """Return a locale-keyed mapping for ``value``.

    A mapping passes through unchanged. A plain string is replicated into
    every supported locale key. Anything else is returned as-is so the
    caller can decide.
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        return {locale: value for locale in SUPPORTED_LOCALES}
    return value


def normalize_multilingual(value: Any) -> dict[str, str] | None:
    """Canonical MultilingualText: string values only, English always present."""
    text = to_multilingual_text(value)
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        text = to_multilingual_text(str(text))
    if not isinstance(text, dict):
        return None

    cleaned = {
        str(locale): str(item) if not isinstance(item, str) else item
        for locale, item in text.items()
        if item is not None and not isinstance(item, (dict, list))
    }
    if not cleaned:
        return None

    if not cleaned.get(ENGLISH):
        fallback = next((item for item in cleaned.values() if item), None)
        if fallback is None:
            return None
        cleaned[ENGLISH] = fallback
    return cleaned


def english_text(value: Any) -> str | None:
    """English rendering of a MultilingualText (or plain string) value."""
    text = normalize_multilingual(value)
    if text is None:
        return None
    return text[ENGLISH]


# ============================================
# Numbers
# ============================================

def to_number(value: Any) -> float:
    """Parse ``value`` as a floating point number.

    Strings are parsed; numbers are returned as floats. Anything that does
    not parse yields NaN, which callers treat as "value absent".
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def optional_number(value: Any) -> float | None:
    """``to_number`` with non-finite results mapped to ``None``."""
    if value is None or value == "":
        return None
    number = to_number(value)
    if not math.isfinite(number):
        return None
    return number


def optional_measure(value: Any) -> float | None:
    """A finite, non-negative specification value, or ``None``."""
    number = optional_number(value)
    if number is None or number < 0:
        return None
    return number


def optional_int(value: Any) -> int | None:
    """An integral count (cabins, berths, year...), or ``None``."""
    number = optional_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def optional_id(value: Any) -> int | None:
    """A linkage id; zero and negative values mean "not linked"."""
    number = optional_int(value)
    if number is None or number <= 0:
        return None
    return number


def id_list(value: Any) -> list[int]:
    """List of ids with unusable entries dropped."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    ids = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("id")
        parsed = optional_id(item)
        if parsed is not None:
            ids.append(parsed)
    return ids


def external_id(value: Any, field: str = "id") -> int:
    """Parse a record's external identity.

    Raises:
        NormalizationError: The value is missing or not a positive integer.
    """
    parsed = optional_id(value)
    if parsed is None:
        raise NormalizationError(
            f"Record has no usable external {field}",
            field=field,
            value=value,
        )
    return parsed


# ============================================
# Scalars
# ============================================

def optional_bool(value: Any) -> bool | None:
    """Booleans arrive as true/false, 1/0 or "true"/"false"."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "y"):
            return True
        if lowered in ("false", "0", "no", "n"):
            return False
    return None


def optional_str(value: Any) -> str | None:
    """Plain text; multilingual objects collapse to their English text."""
    if value is None:
        return None
    if isinstance(value, dict):
        return english_text(value)
    if isinstance(value, (list, tuple)):
        return None
    text = str(value).strip()
    return text or None


def dict_list(value: Any) -> list[dict[str, Any]]:
    """Nested collections: ``None`` becomes empty, non-object entries are dropped."""
    if value is None:
        return []
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, dict)]


def str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    result = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("url") or item.get("link")
        text = optional_str(item)
        if text:
            result.append(text)
    return result


# ============================================
# Dates
# ============================================

def parse_provider_date(value: Any) -> datetime | None:
    """Parse a provider date (``DD.MM.YYYY[ HH:mm[:ss]]``).

    Day comes first: ``05.03.2024`` is March 5. Values that match none of the
    fixed patterns go through generic ISO-8601 parsing (and numbers are taken
    as epoch milliseconds). Returns ``None`` for empty input, for impossible
    calendar dates and when the fallback fails too. Results are naive
    datetimes in provider-local time; aware fallback values are converted to
    UTC first.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    for pattern in _PROVIDER_DATE_PATTERNS:
        match = pattern.match(text)
        if match:
            parts = [int(part) for part in match.groups()]
            day, month, year = parts[:3]
            clock = parts[3:] + [0] * (3 - len(parts[3:]))
            try:
                return datetime(year, month, day, *clock)
            except ValueError:
                return None

    try:
        return _naive(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def _naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_provider_date(value: date | datetime) -> str:
    """Wire format for date parameters: ``DD.MM.YYYY``."""
    return value.strftime("%d.%m.%Y")


def format_provider_datetime(value: datetime) -> str:
    """Wire format for timestamp parameters: ``DD.MM.YYYY HH:mm``."""
    return value.strftime("%d.%m.%Y %H:%M")


def iso_to_provider_date(value: str) -> str:
    """Convert ``YYYY-MM-DD`` to the provider's ``DD.MM.YYYY``.

    Raises:
        ValueError: ``value`` is not an ISO calendar date.
    """
    return format_provider_date(date.fromisoformat(value))


__all__ = [
    "SUPPORTED_LOCALES",
    "ENGLISH",
    "to_multilingual_text",
    "normalize_multilingual",
    "english_text",
    "to_number",
    "optional_number",
    "optional_measure",
    "optional_int",
    "optional_id",
    "id_list",
    "external_id",
    "optional_bool",
    "optional_str",
    "dict_list",
    "str_list",
    "parse_provider_date",
    "format_provider_date",
    "format_provider_datetime",
    "iso_to_provider_date",
]
