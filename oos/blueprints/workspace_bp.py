"""
Workspace Blueprint — collaboration spaces and their members.

  GET    /api/v1/workspaces                              — Caller's workspaces
  POST   /api/v1/workspaces                              — Create (admin badge)
  GET    /api/v1/workspaces/<id>                         — Detail (members only)
  PUT    /api/v1/workspaces/<id>                         — Update (workspace admin)
  DELETE /api/v1/workspaces/<id>                         — Delete (workspace admin)
  GET    /api/v1/workspaces/<id>/members                 — List members
  POST   /api/v1/workspaces/<id>/members                 — Add by email (workspace admin)
  PUT    /api/v1/workspaces/<id>/members/<member_id>     — Change role (workspace admin)
  DELETE /api/v1/workspaces/<id>/members/<member_id>     — Remove (workspace admin)
  GET    /api/v1/workspaces/<id>/meetings                — Meetings, newest first (?active=1)
  POST   /api/v1/workspaces/<id>/meetings                — Start a meeting (any member)
  GET    /api/v1/workspaces/<id>/meetings/<mid>          — Meeting detail + participants
  POST   /api/v1/workspaces/<id>/meetings/<mid>/join     — Join → room token
  POST   /api/v1/workspaces/<id>/meetings/<mid>/leave    — Leave
  POST   /api/v1/workspaces/<id>/meetings/<mid>/end      — End (host or workspace admin)
  GET    /api/v1/workspaces/<id>/messages                — Chat log (?meetingId=&limit=)
  POST   /api/v1/workspaces/<id>/messages                — Post a chat message
"""

from flask import Blueprint, jsonify, request

from oos.blueprints import json_body, require_fields
from oos.services import authorization as authz
from oos.services import chat_service as chat_svc
from oos.services import meeting_service as meeting_svc
from oos.services import workspace_service as ws_svc

workspace_bp = Blueprint("workspace", __name__, url_prefix="/api/v1/workspaces")


@workspace_bp.route("", methods=["GET"])
def list_workspaces():
    user = authz.require_authenticated()
    return jsonify({"workspaces": [w.to_dict() for w in ws_svc.list_workspaces_for_user(user)]})


@workspace_bp.route("", methods=["POST"])
def create_workspace():
    user = authz.require_authenticated()
    data = json_body()
    workspace = ws_svc.create_workspace(user, data.get("name"), data.get("description"))
    return jsonify({"workspace": workspace.to_dict(include_members=True)}), 201


@workspace_bp.route("/<workspace_id>", methods=["GET"])
def get_workspace(workspace_id):
    user = authz.require_authenticated()
    workspace = ws_svc.get_workspace(workspace_id, user)
    return jsonify({"workspace": workspace.to_dict(include_members=True)})


@workspace_bp.route("/<workspace_id>", methods=["PUT"])
def update_workspace(workspace_id):
    user = authz.require_authenticated()
    workspace = ws_svc.update_workspace(workspace_id, user, json_body())
    return jsonify({"workspace": workspace.to_dict()})


@workspace_bp.route("/<workspace_id>", methods=["DELETE"])
def delete_workspace(workspace_id):
    user = authz.require_authenticated()
    ws_svc.delete_workspace(workspace_id, user)
    return jsonify({"message": "Workspace deleted successfully"})


# ── Members ──────────────────────────────────────────────────────────────────

@workspace_bp.route("/<workspace_id>/members", methods=["GET"])
def list_members(workspace_id):
    user = authz.require_authenticated()
    return jsonify({"members": [m.to_dict() for m in ws_svc.list_members(workspace_id, user)]})


@workspace_bp.route("/<workspace_id>/members", methods=["POST"])
def add_member(workspace_id):
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "email")
    if err:
        return err
    member = ws_svc.add_member_by_email(workspace_id, user, data["email"], data.get("role") or "team")
    return jsonify({"member": member.to_dict()}), 201


@workspace_bp.route("/<workspace_id>/members/<member_id>", methods=["PUT"])
def update_member(workspace_id, member_id):
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "role")
    if err:
        return err
    member = ws_svc.update_member_role(workspace_id, user, member_id, data["role"])
    return jsonify({"member": member.to_dict()})


@workspace_bp.route("/<workspace_id>/members/<member_id>", methods=["DELETE"])
def remove_member(workspace_id, member_id):
    user = authz.require_authenticated()
    ws_svc.remove_member(workspace_id, user, member_id)
    return jsonify({"message": "Member removed"})


# ── Meetings ─────────────────────────────────────────────────────────────────

@workspace_bp.route("/<workspace_id>/meetings", methods=["GET"])
def list_meetings(workspace_id):
    user = authz.require_authenticated()
    active_only = request.args.get("active", "").lower() in ("1", "true")
    meetings = meeting_svc.list_meetings(workspace_id, user, active_only=active_only)
    return jsonify({"meetings": [m.to_dict() for m in meetings]})


@workspace_bp.route("/<workspace_id>/meetings", methods=["POST"])
def start_meeting(workspace_id):
    user = authz.require_authenticated()
    data = json_body()
    meeting = meeting_svc.start_meeting(
        workspace_id, user, is_paid_recording=bool(data.get("isPaidRecording")),
    )
    return jsonify({"meeting": meeting.to_dict()}), 201


@workspace_bp.route("/<workspace_id>/meetings/<meeting_id>", methods=["GET"])
def get_meeting(workspace_id, meeting_id):
    user = authz.require_authenticated()
    meeting = meeting_svc.get_meeting(workspace_id, meeting_id, user)
    participants = meeting_svc.list_participants(workspace_id, meeting_id, user)
    return jsonify({
        "meeting": meeting.to_dict(),
        "participants": [p.to_dict() for p in participants],
    })


@workspace_bp.route("/<workspace_id>/meetings/<meeting_id>/join", methods=["POST"])
def join_meeting(workspace_id, meeting_id):
    user = authz.require_authenticated()
    result = meeting_svc.join_meeting(workspace_id, meeting_id, user)
    return jsonify({
        "meeting": result["meeting"].to_dict(),
        "participant": result["participant"].to_dict(),
        "token": result["token"],
    })


@workspace_bp.route("/<workspace_id>/meetings/<meeting_id>/leave", methods=["POST"])
def leave_meeting(workspace_id, meeting_id):
    user = authz.require_authenticated()
    participant = meeting_svc.leave_meeting(workspace_id, meeting_id, user)
    return jsonify({"participant": participant.to_dict()})


@workspace_bp.route("/<workspace_id>/meetings/<meeting_id>/end", methods=["POST"])
def end_meeting(workspace_id, meeting_id):
    user = authz.require_authenticated()
    meeting = meeting_svc.end_meeting(workspace_id, meeting_id, user)
    return jsonify({"meeting": meeting.to_dict()})


# ── Chat ─────────────────────────────────────────────────────────────────────

@workspace_bp.route("/<workspace_id>/messages", methods=["GET"])
def list_messages(workspace_id):
    user = authz.require_authenticated()
    messages = chat_svc.list_messages(
        workspace_id,
        user,
        meeting_id=request.args.get("meetingId") or None,
        limit=request.args.get("limit", chat_svc.DEFAULT_PAGE_SIZE, type=int),
    )
    return jsonify({"messages": [m.to_dict() for m in messages]})


@workspace_bp.route("/<workspace_id>/messages", methods=["POST"])
def post_message(workspace_id):
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "message")
    if err:
        return err
    message = chat_svc.post_message(
        workspace_id, user, data["message"], meeting_id=data.get("meetingId"),
    )
    return jsonify({"message": message.to_dict()}), 201
