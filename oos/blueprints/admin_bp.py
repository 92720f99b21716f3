"""
Admin Blueprint — admin badge lifecycle and the review console.

  GET    /api/v1/admin/badge                   — Caller's badge status
  POST   /api/v1/admin/badge                   — Grant (self, or { "user_id" } for others)
  DELETE /api/v1/admin/badge?user_id=<id>      — Revoke (badge holders only)
  GET    /api/v1/admin/verifications/pending   — Pending documents + bank requests
  GET    /api/v1/admin/stats                   — Platform counters
"""

import logging

from flask import Blueprint, jsonify, request

from oos.blueprints import json_body
from oos.services import admin_service
from oos.services import authorization as authz
from oos.utils.errors import E, api_error

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")


# ═══════════════════════════════════════════════════════════════
# Admin badge
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/badge", methods=["GET"])
def badge_status():
    user = authz.require_authenticated()
    badge = authz.get_admin_badge(user.id)
    return jsonify({
        "hasAdminBadge": badge is not None,
        "badge": badge.to_dict() if badge else None,
    })


@admin_bp.route("/badge", methods=["POST"])
def grant_badge():
    user = authz.require_authenticated()
    grantee_id = json_body().get("user_id") or user.id
    badge = authz.grant_admin_capability(grantee_id, granter=user)
    if grantee_id == user.id:
        message = "Admin badge granted successfully! You can now create workspaces."
    else:
        message = "Admin badge granted successfully"
    return jsonify({"message": message, "badge": badge.to_dict()}), 201


@admin_bp.route("/badge", methods=["DELETE"])
def revoke_badge():
    user = authz.require_authenticated()
    target_id = request.args.get("user_id", "").strip()
    if not target_id:
        return api_error(E.VALIDATION_REQUIRED, "User ID is required")
    authz.revoke_admin_capability(target_id, user)
    return jsonify({"message": "Admin badge revoked successfully"})


# ═══════════════════════════════════════════════════════════════
# Review console
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/verifications/pending", methods=["GET"])
def pending_verifications():
    user = authz.require_authenticated()
    return jsonify(admin_service.pending_verifications(user))


@admin_bp.route("/stats", methods=["GET"])
def stats():
    user = authz.require_authenticated()
    return jsonify(admin_service.platform_stats(user))
