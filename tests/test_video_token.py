"""
Video token tests — claims, validation, configuration.
"""

import jwt
import pytest

from oos.core.exceptions import UpstreamError, ValidationError
from oos.integrations.video import issue_token

SECRET = "test-livekit-secret"


def _decode(token):
    return jwt.decode(token, SECRET, algorithms=["HS256"])


class TestIssueToken:
    def test_claims(self):
        claims = _decode(issue_token("board-q3", "founder@acme.io"))
        assert claims["iss"] == "test-livekit-key"
        assert claims["sub"] == "founder@acme.io"
        assert claims["video"] == {
            "roomJoin": True, "room": "board-q3", "canPublish": True, "canSubscribe": True,
        }
        assert claims["exp"] - claims["nbf"] == 21600

    def test_custom_ttl(self):
        claims = _decode(issue_token("room", "me", ttl=60))
        assert claims["exp"] - claims["nbf"] == 60

    @pytest.mark.parametrize("room", ["", "   ", None, "r" * 129])
    def test_bad_room(self, room):
        with pytest.raises(ValidationError):
            issue_token(room, "me")

    def test_not_configured(self, app):
        app.config["LIVEKIT_API_SECRET"] = ""
        try:
            with pytest.raises(UpstreamError) as exc:
                issue_token("room", "me")
        finally:
            app.config["LIVEKIT_API_SECRET"] = SECRET
        assert exc.value.reason == "not_configured"


class TestVideoAPI:
    def test_token(self, client, owner, auth_headers):
        res = client.post("/api/v1/video/token", json={"roomName": "pitch"}, headers=auth_headers(owner))
        assert res.status_code == 200
        assert _decode(res.get_json()["token"])["sub"] == "founder@acme.io"

    def test_missing_room(self, client, owner, auth_headers):
        res = client.post("/api/v1/video/token", json={}, headers=auth_headers(owner))
        assert res.status_code == 400
        assert res.get_json()["error"] == "roomName is required"

    def test_requires_auth(self, client):
        assert client.post("/api/v1/video/token", json={"roomName": "x"}).status_code == 401

    def test_unconfigured_is_503(self, app, client, owner, auth_headers):
        app.config["LIVEKIT_API_KEY"] = ""
        try:
            res = client.post("/api/v1/video/token", json={"roomName": "x"}, headers=auth_headers(owner))
        finally:
            app.config["LIVEKIT_API_KEY"] = "test-livekit-key"
        assert res.status_code == 503
