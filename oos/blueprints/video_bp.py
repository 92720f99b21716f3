"""
Video Blueprint — meeting room join tokens.

  POST /api/v1/video/token   — { "roomName" } → { "token" }

A room that belongs to a workspace meeting is only handed out to members
of that workspace while the meeting is active.
"""

from flask import Blueprint, jsonify

from oos.blueprints import json_body, require_fields
from oos.integrations.video import issue_token
from oos.services import authorization as authz
from oos.services import meeting_service as meeting_svc

video_bp = Blueprint("video", __name__, url_prefix="/api/v1/video")


@video_bp.route("/token", methods=["POST"])
def token():
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "roomName")
    if err:
        return err
    meeting_svc.authorize_room(user, data["roomName"])
    return jsonify({"token": issue_token(data["roomName"], user.email or user.id)})
