"""
Pydantic model for /api/hsse/dashboard (and /api/hsse/sections/<slot>) params.

Only coerces types. Defaulting (end = today, start = end - 1 year) and the
start <= end rule live in services.hsse.filters.resolve_filter, so every
caller (HTTP, CLI, direct) resolves windows the same way.
"""

from typing import Optional

from pydantic import Field

from .base import BaseParamsModel
from .types import CoercedBool, CoercedDate


class DashboardParams(BaseParamsModel):
    """Inbound HSSE dashboard request."""

    # === Window ===
    start_date: CoercedDate = Field(
        default=None,
        alias='startDate',
        description="Window start (inclusive); defaults to end - 1 year"
    )
    end_date: CoercedDate = Field(
        default=None,
        alias='endDate',
        description="Window end (inclusive); defaults to today (UTC)"
    )

    # === Organisational filter ===
    department: Optional[str] = Field(
        default=None,
        description="Department filter; empty means all"
    )
    location: Optional[str] = Field(
        default=None,
        description="Location filter; empty means all"
    )

    # === Report shape ===
    include_trends: CoercedBool = Field(
        default=True,
        alias='includeTrends',
        description="Include the yearly trend slots"
    )
    include_comparisons: CoercedBool = Field(
        default=True,
        alias='includeComparisons',
        description="Include comparison data"
    )

    # === Cache control ===
    skip_cache: CoercedBool = Field(
        default=False,
        alias='skipCache',
        description="Bypass the cache read (the fresh result is still stored)"
    )
