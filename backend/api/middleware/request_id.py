"""
Request ID middleware - X-Request-ID correlation for HSSE API calls.

Provides:
- Request ID on every request (client-supplied header wins)
- X-Request-ID response header
- RequestIdLogFilter so dashboard/aggregator log lines carry the id
"""

import logging
import uuid

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = 'X-Request-ID'
MAX_REQUEST_ID_LENGTH = 128


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Injects X-Request-ID into:
    - Flask's g object (g.request_id)
    - Response headers (X-Request-ID)
    """

    @app.before_request
    def inject_request_id():
        request_id = (request.headers.get(REQUEST_ID_HEADER) or '').strip()
        if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
            request_id = str(uuid.uuid4())
        g.request_id = request_id

    @app.after_request
    def add_request_id_header(response):
        if hasattr(g, 'request_id'):
            response.headers[REQUEST_ID_HEADER] = g.request_id
        return response


def get_request_id() -> str:
    """Current request ID, or '-' outside a request (CLI, worker threads)."""
    if has_request_context() and hasattr(g, 'request_id'):
        return g.request_id
    return '-'


class RequestIdLogFilter(logging.Filter):
    """Adds `request_id` to every record so formats can use %(request_id)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'request_id'):
            record.request_id = get_request_id()
        return True
