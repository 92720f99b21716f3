"""
Auth Blueprint — local identity provider.

  POST /api/v1/auth/register   — Create account → access token
  POST /api/v1/auth/login      — Email + password → access token
  GET  /api/v1/auth/me         — Current user profile + admin badge flag
  GET  /api/v1/auth/profile    — Caller's public profile
  PUT  /api/v1/auth/profile    — Update profile fields and full_name
"""

from flask import Blueprint, current_app, jsonify

from oos.blueprints import json_body, require_fields
from oos.services import authorization as authz
from oos.services.jwt_service import generate_access_token
from oos.services.user_service import (
    authenticate_user,
    get_profile,
    register_user,
    update_profile,
)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _token_response(user, status=200):
    return jsonify({
        "access_token": generate_access_token(user.id, user.email),
        "token_type": "Bearer",
        "expires_in": current_app.config.get("JWT_ACCESS_EXPIRES", 3600),
        "user": user.to_dict(),
    }), status


@auth_bp.route("/register", methods=["POST"])
def register():
    """Body: { "email": "...", "password": "...", "full_name": "..." }"""
    data = json_body()
    err = require_fields(data, "email", "password")
    if err:
        return err
    user = register_user(data["email"], data["password"], data.get("full_name"))
    return _token_response(user, 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    err = require_fields(data, "email", "password")
    if err:
        return err
    user = authenticate_user(data["email"], data["password"])
    return _token_response(user)


@auth_bp.route("/me", methods=["GET"])
def me():
    user = authz.require_authenticated()
    return jsonify({
        "user": user.to_dict(),
        "hasAdminBadge": authz.has_admin_capability(user.id),
    })


@auth_bp.route("/profile", methods=["GET"])
def profile():
    user = authz.require_authenticated()
    row = get_profile(user)
    return jsonify({"user": user.to_dict(), "profile": row.to_dict() if row else None})


@auth_bp.route("/profile", methods=["PUT"])
def edit_profile():
    """Body: any of full_name, bio, skills, experience_level, phone_number,
    location, website_url."""
    user = authz.require_authenticated()
    row = update_profile(user, json_body())
    return jsonify({"user": user.to_dict(), "profile": row.to_dict()})
