"""
API package - request contracts and global middleware.

This package provides:
- Pydantic request models (api.contracts.pydantic_models)
- Global middleware (request_id, error_envelope, request_logging)
"""
