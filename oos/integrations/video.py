"""
Video Token Issuer — LiveKit-compatible room access tokens.

Token shape (HS256, signed with LIVEKIT_API_SECRET):
{
    "iss": <LIVEKIT_API_KEY>,
    "sub": <identity>,
    "name": <identity>,
    "nbf": <issued_at>,
    "exp": <issued_at + LIVEKIT_TOKEN_TTL>,
    "jti": <identity>,
    "video": {"roomJoin": true, "room": <room>, "canPublish": true, "canSubscribe": true}
}
"""

import logging
import time

import jwt
from flask import current_app

from oos.core.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MAX_ROOM_NAME_LENGTH = 128


def _credentials() -> tuple[str, str]:
    api_key = current_app.config.get("LIVEKIT_API_KEY") or ""
    api_secret = current_app.config.get("LIVEKIT_API_SECRET") or ""
    if not api_key or not api_secret:
        raise UpstreamError("livekit", "not_configured", "Video service is not configured")
    return api_key, api_secret


def issue_token(room_name: str, identity: str, ttl: int | None = None) -> str:
    """Sign a join token for *room_name* on behalf of *identity*.

    Raises:
        ValidationError: empty room name or identity.
        UpstreamError: API key / secret not configured.
    """
    room_name = (room_name or "").strip()
    if not room_name:
        raise ValidationError("Room name is required", details={"roomName": "required"})
    if len(room_name) > MAX_ROOM_NAME_LENGTH:
        raise ValidationError("Room name is too long", details={"roomName": "too_long"})
    if not identity:
        raise ValidationError("Participant identity is required")

    api_key, api_secret = _credentials()
    ttl = ttl or current_app.config.get("LIVEKIT_TOKEN_TTL", 21600)
    now = int(time.time())
    claims = {
        "iss": api_key,
        "sub": identity,
        "name": identity,
        "nbf": now,
        "exp": now + ttl,
        "jti": identity,
        "video": {
            "roomJoin": True,
            "room": room_name,
            "canPublish": True,
            "canSubscribe": True,
        },
    }
    token = jwt.encode(claims, api_secret, algorithm=ALGORITHM)
    logger.info("Issued video token room=%s", room_name)
    return token
