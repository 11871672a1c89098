"""
Cache key helpers.

Provides stable, normalized cache key construction to avoid drift between callers.

Dashboard key layout (fields joined with KEY_DELIMITER):

    {prefix}|{start}|{end}|{department or all}|{location or all}|trends=1|comparisons=1[|flag=0/1...]

- prefix carries the namespace AND the report schema version, so a shape
  change forces new keys instead of serving a structurally stale report
- dates are fixed-width YYYY-MM-DD in UTC
- free-text fields are percent-encoded, so the delimiter can never appear
  inside a field value
"""

from datetime import date, datetime, timezone
from typing import Any, Tuple, Union
from urllib.parse import quote

KEY_DELIMITER = "|"
UNSET_FIELD = "all"

Flag = Union[bool, Tuple[str, bool]]


def _normalize_cache_value(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "1" if value else "0"
    if value is None:
        return UNSET_FIELD
    text = str(value).strip()
    if text == "":
        return UNSET_FIELD
    if text == UNSET_FIELD:
        # A department literally named "all" must not collide with "unset"
        return "%61ll"
    return quote(text, safe="")


def build_cache_prefix(namespace: str, schema_version: str) -> str:
    return f"{namespace}:{schema_version}"


def build_dashboard_cache_key(prefix: str, filt, *extra_flags: Flag) -> str:
    """
    Build the deterministic cache key for one resolved HSSE filter.

    Args:
        prefix: namespace + schema version (see build_cache_prefix)
        filt: resolved HSSEFilter
        *extra_flags: additional report-shaping flags, either bools (named
            by position) or (name, bool) pairs. Any flag that changes the
            report shape MUST be passed here.

    Returns:
        Stable string key; equal filters always produce equal keys.
    """
    parts = [
        prefix,
        _normalize_cache_value(filt.start_date),
        _normalize_cache_value(filt.end_date),
        _normalize_cache_value(filt.department),
        _normalize_cache_value(filt.location),
        f"trends={_normalize_cache_value(bool(filt.include_trends))}",
        f"comparisons={_normalize_cache_value(bool(filt.include_comparisons))}",
    ]
    for index, flag in enumerate(extra_flags):
        if isinstance(flag, tuple):
            name, enabled = flag
        else:
            name, enabled = f"flag{index}", flag
        parts.append(f"{quote(str(name), safe='')}={_normalize_cache_value(bool(enabled))}")
    return KEY_DELIMITER.join(parts)
