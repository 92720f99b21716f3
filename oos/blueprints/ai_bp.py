"""
AI Blueprint — text generation for workspaces and startups.

  POST /api/v1/ai/generate   — { prompt, type, workspaceId?, startupId? }
  GET  /api/v1/ai/content    — ?workspaceId=&startupId=&type=
"""

from flask import Blueprint, jsonify, request

from oos.blueprints import json_body, require_fields
from oos.services import ai_content_service as ai_svc
from oos.services import authorization as authz

ai_bp = Blueprint("ai", __name__, url_prefix="/api/v1/ai")


@ai_bp.route("/generate", methods=["POST"])
def generate():
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "prompt", "type")
    if err:
        return err
    record = ai_svc.generate_content(
        user,
        data["prompt"],
        data["type"],
        workspace_id=data.get("workspaceId"),
        startup_id=data.get("startupId"),
    )
    return jsonify({"success": True, "content": record.content, "record": record.to_dict()})


@ai_bp.route("/content", methods=["GET"])
def list_content():
    user = authz.require_authenticated()
    records = ai_svc.list_content(
        user,
        workspace_id=request.args.get("workspaceId"),
        startup_id=request.args.get("startupId"),
        content_type=request.args.get("type"),
    )
    return jsonify({"content": [r.to_dict() for r in records]})
