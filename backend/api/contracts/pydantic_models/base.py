"""
Base model for HSSE request param schemas.

Params are parsed once at the boundary and then passed around read-only:
    - frozen, so nothing downstream can rewrite a request
    - camelCase aliases and snake_case names both accepted
    - undeclared query args ignored (clients send tracking params)
    - blank organisational filters (department/location) become None
"""

from pydantic import BaseModel, ConfigDict, field_validator


class BaseParamsModel(BaseModel):
    """Shared config for every inbound param model."""
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra='ignore',
    )

    @field_validator('department', 'location', mode='before', check_fields=False)
    @classmethod
    def blank_scope_is_unset(cls, v):
        """'' and whitespace-only mean "all departments/locations", same as omitting the param."""
        if isinstance(v, str) and not v.strip():
            return None
        return v
