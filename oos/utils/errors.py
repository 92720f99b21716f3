"""Standardised API error responses.

Usage
-----
    from oos.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Startup not found")
    return api_error(E.VALIDATION_REQUIRED, "documentUrl is required")

``register_error_handlers(app)`` maps the exceptions from
``oos.core.exceptions`` onto these codes once, for every blueprint.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from oos.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    TransitionError,
    UpstreamError,
    ValidationError,
)
from oos.models import db

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Upstream collaborators – HTTP 429 / 502 / 503
    UPSTREAM_RATE_LIMITED = "ERR_UPSTREAM_RATE_LIMITED"
    UPSTREAM_INVALID_CREDENTIALS = "ERR_UPSTREAM_INVALID_CREDENTIALS"
    UPSTREAM_QUOTA_EXCEEDED = "ERR_UPSTREAM_QUOTA_EXCEEDED"
    UPSTREAM_NOT_CONFIGURED = "ERR_UPSTREAM_NOT_CONFIGURED"
    UPSTREAM_FAILURE = "ERR_UPSTREAM_FAILURE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.UPSTREAM_RATE_LIMITED: 429,
    E.UPSTREAM_INVALID_CREDENTIALS: 502,
    E.UPSTREAM_QUOTA_EXCEEDED: 502,
    E.UPSTREAM_NOT_CONFIGURED: 503,
    E.UPSTREAM_FAILURE: 502,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}

_UPSTREAM_CODES = {
    "rate_limited": E.UPSTREAM_RATE_LIMITED,
    "invalid_credentials": E.UPSTREAM_INVALID_CREDENTIALS,
    "quota_exceeded": E.UPSTREAM_QUOTA_EXCEEDED,
    "not_configured": E.UPSTREAM_NOT_CONFIGURED,
    "upstream_error": E.UPSTREAM_FAILURE,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(app):
    """Map the platform exception hierarchy to JSON responses."""

    @app.errorhandler(AuthenticationError)
    def _handle_unauthenticated(error):
        return api_error(E.UNAUTHENTICATED, str(error))

    @app.errorhandler(PermissionDenied)
    def _handle_forbidden(error):
        logger.warning(
            "Permission denied: user=%s action=%s", error.user_id, error.action,
            extra={"event_type": "authz_denied"},
        )
        return api_error(E.FORBIDDEN, str(error))

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ValidationError)
    def _handle_validation(error):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(TransitionError)
    def _handle_transition(error):
        return api_error(
            E.CONFLICT_STATE, str(error),
            details={"action": error.action, "current_status": error.current_status},
        )

    @app.errorhandler(ConflictError)
    def _handle_conflict(error):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @app.errorhandler(UpstreamError)
    def _handle_upstream(error):
        logger.error("Upstream failure service=%s reason=%s: %s", error.service, error.reason, error)
        return api_error(
            _UPSTREAM_CODES.get(error.reason, E.UPSTREAM_FAILURE),
            str(error),
            details={"service": error.service, "reason": error.reason},
        )

    @app.errorhandler(SQLAlchemyError)
    def _handle_database(error):
        db.session.rollback()
        logger.exception("Database error on %s %s", request.method, request.path)
        return api_error(E.DATABASE, "Database error")
