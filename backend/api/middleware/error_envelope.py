"""
Error envelope middleware - one error shape for the HSSE API.

    {
        "error": {
            "code": "SERVICE_UNAVAILABLE",
            "message": "Dashboard aggregation timed out after 30.0s",
            "requestId": "uuid",
            "retryable": true,
            "details": {"reason": "timeout"}
        }
    }

Input validation errors are the exception: they keep the flat
utils.normalize.validation_error_response body ({error, type, field, received_value}).

    ValidationError            -> 400
    UNKNOWN_SECTION            -> 404
    DashboardUnavailableError  -> 503, retryable
    DashboardCancelledError    -> 503 REQUEST_CANCELLED, retryable
    werkzeug HTTPException     -> its own status, code from its name
    anything else              -> 500 INTERNAL_ERROR (logged with traceback)
"""

import logging

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from services.hsse.base import DashboardCancelledError, DashboardUnavailableError
from utils.normalize import ValidationError, validation_error_response

logger = logging.getLogger('api.middleware.error')

STATUS_BY_CODE = {
    "BAD_REQUEST": 400,
    "INVALID_PARAMS": 400,
    "NOT_FOUND": 404,
    "UNKNOWN_SECTION": 404,
    "METHOD_NOT_ALLOWED": 405,
    "INTERNAL_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
    "REQUEST_CANCELLED": 503,
}


def make_error_response(code: str, message: str, status_code: int = None, *,
                        field: str = None, details: dict = None, retryable: bool = None):
    """(response, status) carrying the envelope; status defaults from STATUS_BY_CODE."""
    request_id = getattr(g, 'request_id', None)
    body = {"code": code, "message": message, "requestId": request_id}
    optional = {"field": field, "details": details, "retryable": retryable}
    body.update({k: v for k, v in optional.items() if v is not None and v != {}})

    response = jsonify({"error": body})
    if request_id:
        response.headers['X-Request-ID'] = request_id
    return response, status_code or STATUS_BY_CODE.get(code, 500)


def setup_error_handlers(app: Flask) -> None:
    """Register the envelope handlers on `app`."""

    @app.errorhandler(ValidationError)
    def _validation(error):
        body, status = validation_error_response(error)
        return jsonify(body), status

    @app.errorhandler(DashboardUnavailableError)
    def _unavailable(error):
        logger.warning(f"Dashboard unavailable ({error.reason}): {error}")
        return make_error_response("SERVICE_UNAVAILABLE", str(error),
                                   details={"reason": error.reason}, retryable=error.retryable)

    @app.errorhandler(DashboardCancelledError)
    def _cancelled(error):
        return make_error_response("REQUEST_CANCELLED", str(error), retryable=True)

    @app.errorhandler(HTTPException)
    def _http(error):
        # "Method Not Allowed" -> "METHOD_NOT_ALLOWED"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, status_code=error.code)

    @app.errorhandler(Exception)
    def _unhandled(error):
        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": getattr(g, 'request_id', None),
                "error_type": type(error).__name__,
            },
        )
        return make_error_response("INTERNAL_ERROR", "An unexpected error occurred")
