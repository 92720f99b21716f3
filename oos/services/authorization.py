"""
Authorization Gate — principal resolution, admin badge, workspace roles,
resource ownership.

Every check re-reads persisted state; nothing here is cached.  Failures are
always terminal for the calling operation:

    AuthenticationError  no principal on the request          (401)
    PermissionDenied     principal lacks capability / role    (403)
    NotFoundError        target resource does not exist       (404)
    ConflictError        duplicate admin badge                (409)

Usage:
    from oos.services import authorization as authz

    user = authz.require_authenticated()
    authz.require_admin_capability(user)
    member = authz.require_workspace_role(user.id, workspace_id, "admin")
"""

import logging
from abc import ABC, abstractmethod

from flask import current_app, g
from sqlalchemy.exc import IntegrityError

from oos.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
)
from oos.models import db
from oos.models.auth import AdminBadge, User
from oos.models.startup import Startup
from oos.models.workspace import WORKSPACE_ROLES, Workspace, WorkspaceMember

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Principal
# ═════════════════════════════════════════════════════════════════════════════


def current_principal() -> User | None:
    """Return the User behind the request's bearer token, or None."""
    user_id = getattr(g, "jwt_user_id", None)
    if not user_id:
        return None
    return db.session.get(User, user_id)


def require_authenticated() -> User:
    """Return the current principal or raise AuthenticationError."""
    user = current_principal()
    if user is None:
        raise AuthenticationError("Unauthorized")
    return user


# ═════════════════════════════════════════════════════════════════════════════
# Admin capability (badge)
# ═════════════════════════════════════════════════════════════════════════════


def has_admin_capability(user_id: str | None) -> bool:
    """True when *user_id* holds an admin badge.  Missing rows are False."""
    if not user_id:
        return False
    return AdminBadge.query.filter_by(user_id=user_id).first() is not None


def get_admin_badge(user_id: str) -> AdminBadge | None:
    return AdminBadge.query.filter_by(user_id=user_id).first()


def require_admin_capability(user: User, action: str = "admin") -> None:
    if not has_admin_capability(user.id):
        raise PermissionDenied(user.id, action, "Admin access required")


class AdminGrantPolicy(ABC):
    """Decides whether *granter* may give an admin badge to *grantee_id*."""

    name = ""

    @abstractmethod
    def authorize(self, grantee_id: str, granter: User) -> None:
        """Raise PermissionDenied when the grant must not happen."""


class SelfServiceAdminGrant(AdminGrantPolicy):
    """Any principal may badge themselves; badging others needs a badge."""

    name = "self_service"

    def authorize(self, grantee_id: str, granter: User) -> None:
        if granter.id == grantee_id:
            return
        if not has_admin_capability(granter.id):
            raise PermissionDenied(
                granter.id, "admin_badge.grant",
                "Only admin badge holders may grant badges to other users",
            )


class CountersignedAdminGrant(AdminGrantPolicy):
    """An existing badge holder must grant; self-grants are refused."""

    name = "countersigned"

    def authorize(self, grantee_id: str, granter: User) -> None:
        if granter.id == grantee_id:
            raise PermissionDenied(
                granter.id, "admin_badge.grant",
                "Admin badges must be granted by another admin. "
                "Please contact an administrator to get your admin badge.",
            )
        if not has_admin_capability(granter.id):
            raise PermissionDenied(
                granter.id, "admin_badge.grant",
                "Only admin badge holders may grant admin badges",
            )


_POLICIES = {
    SelfServiceAdminGrant.name: SelfServiceAdminGrant,
    CountersignedAdminGrant.name: CountersignedAdminGrant,
}


def get_admin_grant_policy() -> AdminGrantPolicy:
    """Instantiate the policy named by ADMIN_GRANT_POLICY."""
    name = current_app.config.get("ADMIN_GRANT_POLICY", SelfServiceAdminGrant.name)
    policy_cls = _POLICIES.get(name)
    if policy_cls is None:
        raise RuntimeError(f"Unknown ADMIN_GRANT_POLICY: {name!r}")
    return policy_cls()


def grant_admin_capability(
    grantee_id: str,
    granter: User | None = None,
    policy: AdminGrantPolicy | None = None,
) -> AdminBadge:
    """Create the admin badge for *grantee_id*.

    Args:
        grantee_id: Principal receiving the badge.
        granter: Principal performing the grant; defaults to the grantee
            (self-service request).
        policy: Override for the configured AdminGrantPolicy.

    Raises:
        NotFoundError: grantee does not exist.
        PermissionDenied: the policy refuses the grant.
        ConflictError: the grantee already holds a badge.
    """
    grantee = db.session.get(User, grantee_id)
    if grantee is None:
        raise NotFoundError("User", grantee_id)
    granter = granter or grantee
    (policy or get_admin_grant_policy()).authorize(grantee_id, granter)

    if get_admin_badge(grantee_id) is not None:
        raise ConflictError(
            "AdminBadge", "user_id", grantee_id,
            message="User already has an admin badge",
        )

    badge = AdminBadge(user_id=grantee_id, granted_by=granter.id)
    db.session.add(badge)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(
            "AdminBadge", "user_id", grantee_id,
            message="User already has an admin badge",
        )

    logger.info(
        "Admin badge granted",
        extra={"event_type": "admin_badge_granted", "user_id": grantee_id, "granted_by": granter.id},
    )
    return badge


def revoke_admin_capability(target_user_id: str, requesting_user: User) -> None:
    """Remove *target_user_id*'s badge; the requester must hold a badge."""
    if not has_admin_capability(requesting_user.id):
        raise PermissionDenied(requesting_user.id, "admin_badge.revoke", "Admin privileges required")

    badge = get_admin_badge(target_user_id)
    if badge is None:
        raise NotFoundError("AdminBadge", target_user_id)

    db.session.delete(badge)
    db.session.commit()
    logger.info(
        "Admin badge revoked",
        extra={
            "event_type": "admin_badge_revoked",
            "user_id": target_user_id,
            "revoked_by": requesting_user.id,
        },
    )


# ═════════════════════════════════════════════════════════════════════════════
# Workspace roles & ownership
# ═════════════════════════════════════════════════════════════════════════════


def require_workspace_role(
    user_id: str,
    workspace_id: str,
    role: str | None = None,
) -> WorkspaceMember:
    """Return the caller's membership in *workspace_id*.

    Args:
        role: When given, the membership must carry exactly this role.
            None accepts any member.

    Raises:
        NotFoundError: the workspace does not exist.
        PermissionDenied: the caller is not a member, or holds another role.
    """
    if role is not None and role not in WORKSPACE_ROLES:
        raise ValueError(f"Unknown workspace role: {role}")

    if db.session.get(Workspace, workspace_id) is None:
        raise NotFoundError("Workspace", workspace_id)

    membership = WorkspaceMember.query.filter_by(
        workspace_id=workspace_id, user_id=user_id,
    ).first()
    if membership is None:
        raise PermissionDenied(user_id, "workspace.access", "You are not a member of this workspace")
    if role is not None and membership.role != role:
        raise PermissionDenied(
            user_id, f"workspace.{role}", f"Workspace {role} access required",
        )
    return membership


def _owner_id(resource) -> str | None:
    if isinstance(resource, Startup):
        return resource.user_id
    if isinstance(resource, Workspace):
        return resource.admin_id
    raise TypeError(f"Ownership is not defined for {type(resource).__name__}")


def require_resource_ownership(user_id: str, resource, label: str | None = None) -> None:
    """Raise unless *user_id* owns *resource* (Startup or Workspace).

    A ``None`` resource is reported as NotFound so callers can pass the result
    of a lookup straight through.
    """
    if resource is None:
        raise NotFoundError(label or "Resource")
    if _owner_id(resource) != user_id:
        raise PermissionDenied(
            user_id, f"{type(resource).__name__.lower()}.modify", "Access denied",
        )


def require_startup_owner(user_id: str, startup_id: str) -> Startup:
    """Load a startup and check that *user_id* owns it."""
    startup = db.session.get(Startup, startup_id)
    if startup is None:
        raise NotFoundError("Startup", startup_id)
    require_resource_ownership(user_id, startup)
    return startup
