"""
Input normalization for HSSE dashboard requests.

Every external value (query string, CLI option, direct service call) goes
through these helpers before it reaches a filter or a cache key, so the same
request always resolves the same way.

Dates are UTC calendar dates: an aware datetime is shifted to UTC before the
day is taken, so one instant never maps to two different days.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional

TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
FALSE_WORDS = frozenset({"false", "0", "no", "off"})


class ValidationError(ValueError):
    """A request value that cannot be normalized. Rendered as HTTP 400."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _utc_day(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def _bad_date(value: Any, field: Optional[str]) -> ValidationError:
    return ValidationError(
        f"Expected date (YYYY-MM-DD), got {type(value).__name__}: {value!r}",
        field=field,
        received_value=value,
    )


def to_bool(value: Any, *, default: bool = False, field: str = None) -> bool:
    """'true'/'1'/'yes'/'on' and their opposites, case-insensitive; blank -> default."""
    if _is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise ValidationError(f"Expected bool, got: {value!r}", field=field, received_value=value)


def to_date(value: Any, *, default: Optional[date] = None, field: str = None) -> Optional[date]:
    """
    Normalize to a UTC calendar date.

    Accepts YYYY-MM-DD, ISO 8601 datetimes ('Z' or an offset), date and
    datetime objects. Blank input returns `default`.
    """
    if _is_blank(value):
        return default
    if isinstance(value, datetime):
        return _utc_day(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise _bad_date(value, field)

    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return _utc_day(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        raise _bad_date(value, field) from None


def to_str(value: Any, *, default: Optional[str] = None, strip: bool = True,
           field: str = None) -> Optional[str]:
    """Free-text filter value; blank (after stripping) collapses to `default`, i.e. unset."""
    if _is_blank(value):
        return default
    text = str(value).strip() if strip else str(value)
    return text or default


def validation_error_response(error: ValidationError) -> tuple:
    """(body, 400) for a ValidationError: {error, type, field?, received_value?}."""
    body = {"error": str(error), "type": "validation_error"}
    if error.field:
        body["field"] = error.field
    if error.received_value is not None:
        body["received_value"] = str(error.received_value)
    return body, 400
