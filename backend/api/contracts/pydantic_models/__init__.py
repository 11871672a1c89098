"""
Pydantic models for API param validation.

Key features:
- Frozen models (immutable after normalization)
- Auto type coercion with clear error messages
- camelCase aliases, snake_case also accepted

Usage:
    from api.contracts.pydantic_models import DashboardParams

    params = DashboardParams(**request.args.to_dict())
"""

from .base import BaseParamsModel
from .hsse_dashboard import DashboardParams

__all__ = [
    'BaseParamsModel',
    'DashboardParams',
]
