"""
Contract package.

Inbound request models for the HSSE API live in pydantic_models.
"""

from .pydantic_models import BaseParamsModel, DashboardParams

__all__ = ['BaseParamsModel', 'DashboardParams']
