"""
JWT Auth Middleware — parses the Bearer token and sets g.jwt_user_id.

A missing, expired or invalid token leaves g.jwt_user_id = None ("no
principal").  The middleware never rejects a request on its own; routes
that need a principal call authorization.require_authenticated(), which
raises AuthenticationError (401).
"""

import logging

import jwt as pyjwt
from flask import g, request

from oos.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/health",
    "/api/v1/payments/webhook",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_email = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired access token on %s", path)
            return
        except pyjwt.InvalidTokenError:
            logger.debug("Invalid access token on %s", path)
            return

        g.jwt_user_id = payload.get("sub")
        g.jwt_email = payload.get("email")
