"""
Global middleware for API requests.

Provides:
- Request ID injection (X-Request-ID) and a log filter carrying it
- Error envelope standardization (validation 400, unavailable 503)
- Sampled request logging
"""

from .request_id import RequestIdLogFilter, setup_request_id_middleware
from .error_envelope import setup_error_handlers
from .request_logging import setup_request_logging_middleware

__all__ = [
    'RequestIdLogFilter',
    'setup_request_id_middleware',
    'setup_error_handlers',
    'setup_request_logging_middleware',
]
