"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in oos/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from oos.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

AI_LIMIT = "10/minute"
AUTH_LIMIT = "20/minute"
WRITE_LIMIT = "60/minute"


def rate_limit_key():
    """Principal id when a token was presented, else remote IP."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - AI endpoints:      10/minute per principal (LLM calls are expensive)
        - Auth endpoints:    20/minute per IP (credential stuffing)
        - Domain endpoints:  60/minute per principal
        - Health, webhook:   exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("ai")
    if bp:
        limiter.limit(AI_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit(AUTH_LIMIT)(bp)

    for bp_name in ("admin", "workspace", "startup", "video", "uploads"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, key_func=rate_limit_key)(bp)

    # Gateway retries must never be throttled away
    for bp_name in ("health", "payments"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — AI: %s, auth: %s, domain: %s",
        AI_LIMIT, AUTH_LIMIT, WRITE_LIMIT,
    )
