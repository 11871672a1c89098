"""
Shared Pydantic types and validators for API params.

These delegate to utils.normalize so the HTTP boundary, the CLI and direct
service callers all parse values identically:
- CoercedDate: "2024-01-01" / "2024-01-15T10:30:00Z" -> UTC calendar date
- CoercedBool: "true"/"1"/"yes"/"on" -> True; ""/None -> None (field default applies later)
"""

from datetime import date
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator

from utils.normalize import to_bool, to_date


def coerce_date(v: Any) -> Optional[date]:
    """
    Coerce value to a UTC calendar date.

    Handles:
    - date / datetime objects (aware datetimes converted to UTC first)
    - string: YYYY-MM-DD or ISO 8601 datetime
    - None/empty: None

    Unparseable strings raise, and Pydantic reports the error against the field.
    """
    return to_date(v)


def coerce_bool(v: Any) -> Optional[bool]:
    """Coerce value to bool; None/empty stay None so the resolver applies the default."""
    if v is None or v == '':
        return None
    return to_bool(v)


CoercedDate = Annotated[Optional[date], BeforeValidator(coerce_date)]
CoercedBool = Annotated[Optional[bool], BeforeValidator(coerce_bool)]
