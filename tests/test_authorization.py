"""
Authorization gate tests.

Covers:
    - principal resolution from bearer tokens
    - admin badge grant / revoke under both grant policies
    - workspace role checks and resource ownership
    - badge HTTP endpoints
"""

import pytest

from oos.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
)
from oos.models import db
from oos.models.auth import AdminBadge
from oos.models.workspace import Workspace, WorkspaceMember
from oos.services import authorization as authz


def _make_workspace(admin_user, name="Growth Lab"):
    ws = Workspace(name=name, admin_id=admin_user.id)
    db.session.add(ws)
    db.session.flush()
    db.session.add(WorkspaceMember(workspace_id=ws.id, user_id=admin_user.id, role="admin"))
    db.session.commit()
    return ws


# ═════════════════════════════════════════════════════════════════════════════
# Admin capability
# ═════════════════════════════════════════════════════════════════════════════

class TestAdminCapability:
    def test_absent_badge_is_false(self, owner):
        assert authz.has_admin_capability(owner.id) is False
        assert authz.has_admin_capability(None) is False

    def test_grant_then_revoke(self, owner, admin):
        authz.grant_admin_capability(owner.id)
        assert authz.has_admin_capability(owner.id) is True

        authz.revoke_admin_capability(owner.id, admin)
        assert authz.has_admin_capability(owner.id) is False

    def test_second_grant_conflicts_and_keeps_one_row(self, owner):
        authz.grant_admin_capability(owner.id)
        with pytest.raises(ConflictError, match="already has an admin badge"):
            authz.grant_admin_capability(owner.id)
        assert AdminBadge.query.filter_by(user_id=owner.id).count() == 1

    def test_grant_unknown_user(self):
        with pytest.raises(NotFoundError):
            authz.grant_admin_capability("no-such-user")

    def test_self_service_cannot_badge_others_without_badge(self, owner, outsider):
        with pytest.raises(PermissionDenied):
            authz.grant_admin_capability(outsider.id, granter=owner)

    def test_badge_holder_can_badge_others(self, admin, outsider):
        badge = authz.grant_admin_capability(outsider.id, granter=admin)
        assert badge.granted_by == admin.id

    def test_countersigned_refuses_self_grant(self, owner):
        with pytest.raises(PermissionDenied):
            authz.grant_admin_capability(owner.id, policy=authz.CountersignedAdminGrant())
        assert authz.has_admin_capability(owner.id) is False

    def test_countersigned_allows_admin_grant(self, admin, owner):
        authz.grant_admin_capability(owner.id, granter=admin, policy=authz.CountersignedAdminGrant())
        assert authz.has_admin_capability(owner.id) is True

    def test_policy_from_config(self, app):
        app.config["ADMIN_GRANT_POLICY"] = "countersigned"
        try:
            assert isinstance(authz.get_admin_grant_policy(), authz.CountersignedAdminGrant)
        finally:
            app.config["ADMIN_GRANT_POLICY"] = "self_service"

    def test_revoke_requires_badge(self, owner, outsider):
        authz.grant_admin_capability(owner.id)
        with pytest.raises(PermissionDenied):
            authz.revoke_admin_capability(owner.id, outsider)
        assert authz.has_admin_capability(owner.id) is True

    def test_revoke_missing_badge(self, admin, owner):
        with pytest.raises(NotFoundError):
            authz.revoke_admin_capability(owner.id, admin)


# ═════════════════════════════════════════════════════════════════════════════
# Workspace roles & ownership
# ═════════════════════════════════════════════════════════════════════════════

class TestWorkspaceRole:
    def test_member_passes(self, admin):
        ws = _make_workspace(admin)
        membership = authz.require_workspace_role(admin.id, ws.id, "admin")
        assert membership.role == "admin"

    def test_non_member_forbidden(self, admin, outsider):
        ws = _make_workspace(admin)
        with pytest.raises(PermissionDenied):
            authz.require_workspace_role(outsider.id, ws.id)

    def test_wrong_role_forbidden(self, admin, owner):
        ws = _make_workspace(admin)
        db.session.add(WorkspaceMember(workspace_id=ws.id, user_id=owner.id, role="team"))
        db.session.commit()
        authz.require_workspace_role(owner.id, ws.id)
        with pytest.raises(PermissionDenied):
            authz.require_workspace_role(owner.id, ws.id, "admin")

    def test_missing_workspace(self, admin):
        with pytest.raises(NotFoundError):
            authz.require_workspace_role(admin.id, "missing")


class TestOwnership:
    def test_owner_passes(self, owner, startup):
        assert authz.require_startup_owner(owner.id, startup.id) is startup

    def test_other_user_forbidden(self, outsider, startup):
        with pytest.raises(PermissionDenied, match="Access denied"):
            authz.require_startup_owner(outsider.id, startup.id)

    def test_none_resource_is_not_found(self, owner):
        with pytest.raises(NotFoundError):
            authz.require_resource_ownership(owner.id, None, "Startup")


class TestPrincipal:
    def test_no_token_unauthenticated(self, app):
        with app.test_request_context("/api/v1/admin/badge"):
            from flask import g
            g.jwt_user_id = None
            with pytest.raises(AuthenticationError):
                authz.require_authenticated()

    def test_garbage_token_is_no_principal(self, client):
        res = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"


# ═════════════════════════════════════════════════════════════════════════════
# HTTP: badge endpoints
# ═════════════════════════════════════════════════════════════════════════════

class TestBadgeAPI:
    def test_status_without_badge(self, client, owner, auth_headers):
        res = client.get("/api/v1/admin/badge", headers=auth_headers(owner))
        assert res.status_code == 200
        assert res.get_json() == {"hasAdminBadge": False, "badge": None}

    def test_self_grant(self, client, owner, auth_headers):
        res = client.post("/api/v1/admin/badge", headers=auth_headers(owner))
        assert res.status_code == 201
        assert "You can now create workspaces" in res.get_json()["message"]

        res = client.get("/api/v1/admin/badge", headers=auth_headers(owner))
        assert res.get_json()["hasAdminBadge"] is True

    def test_duplicate_grant_is_409(self, client, admin, auth_headers):
        res = client.post("/api/v1/admin/badge", headers=auth_headers(admin))
        assert res.status_code == 409

    def test_unauthenticated_grant_is_401(self, client):
        res = client.post("/api/v1/admin/badge")
        assert res.status_code == 401

    def test_revoke_requires_user_id(self, client, admin, auth_headers):
        res = client.delete("/api/v1/admin/badge", headers=auth_headers(admin))
        assert res.status_code == 400

    def test_revoke_by_non_admin_is_403(self, client, owner, outsider, auth_headers):
        authz.grant_admin_capability(owner.id)
        res = client.delete(f"/api/v1/admin/badge?user_id={owner.id}", headers=auth_headers(outsider))
        assert res.status_code == 403

    def test_revoke(self, client, admin, owner, auth_headers):
        authz.grant_admin_capability(owner.id)
        res = client.delete(f"/api/v1/admin/badge?user_id={owner.id}", headers=auth_headers(admin))
        assert res.status_code == 200
        db.session.expire_all()
        assert authz.has_admin_capability(owner.id) is False
