"""
Workspace Service — creation behind the admin badge, role-gated membership
management, cascading delete.

Layer contract:
    - All writes and commits for workspaces/memberships happen here.
    - Authorization goes through oos.services.authorization; nothing in the
      blueprint inspects roles.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from oos.core.exceptions import ConflictError, NotFoundError, ValidationError
from oos.models import db
from oos.models.auth import User
from oos.models.meeting import ChatMessage, MeetingParticipant, VideoMeeting
from oos.models.workspace import WORKSPACE_ROLES, Workspace, WorkspaceMember
from oos.services import authorization as authz
from oos.services.user_service import get_user_by_email

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(
            f"Workspace name must be at least {MIN_NAME_LENGTH} characters",
            details={"name": "too_short"},
        )
    return name


def _validate_role(role: str) -> str:
    if role not in WORKSPACE_ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(sorted(WORKSPACE_ROLES))}",
            details={"role": "invalid"},
        )
    return role


# ── Workspaces ───────────────────────────────────────────────────────────────


def create_workspace(user: User, name: str, description: str | None = None) -> Workspace:
    """Create a workspace and the creator's admin membership in one commit.

    Raises:
        PermissionDenied: the creator holds no admin badge.
        ValidationError: name shorter than 3 characters.
    """
    authz.require_admin_capability(user, "workspace.create")
    name = _clean_name(name)

    workspace = Workspace(
        name=name,
        description=(description or "").strip() or None,
        admin_id=user.id,
    )
    db.session.add(workspace)
    db.session.flush()
    db.session.add(WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role="admin"))
    db.session.commit()

    logger.info(
        "Workspace created",
        extra={"event_type": "workspace_created", "workspace_id": workspace.id, "user_id": user.id},
    )
    return workspace


def get_workspace(workspace_id: str, user: User) -> Workspace:
    """Return a workspace the caller is a member of."""
    authz.require_workspace_role(user.id, workspace_id)
    return db.session.get(Workspace, workspace_id)


def list_workspaces_for_user(user: User) -> list[Workspace]:
    return (
        Workspace.query
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .filter(WorkspaceMember.user_id == user.id)
        .order_by(Workspace.created_at.desc())
        .all()
    )


def update_workspace(workspace_id: str, user: User, data: dict) -> Workspace:
    """Update name / description / workspace_email (admin role only)."""
    authz.require_workspace_role(user.id, workspace_id, "admin")
    workspace = db.session.get(Workspace, workspace_id)

    if "name" in data:
        workspace.name = _clean_name(data["name"])
    if "description" in data:
        workspace.description = (data["description"] or "").strip() or None
    if "workspace_email" in data:
        workspace.workspace_email = (data["workspace_email"] or "").strip() or None

    db.session.commit()
    return workspace


def delete_workspace(workspace_id: str, user: User) -> None:
    """Hard-delete a workspace; memberships, meetings and chat go with it."""
    authz.require_workspace_role(user.id, workspace_id, "admin")
    workspace = db.session.get(Workspace, workspace_id)

    meeting_ids = select(VideoMeeting.id).where(VideoMeeting.workspace_id == workspace_id)
    ChatMessage.query.filter_by(workspace_id=workspace_id).delete(synchronize_session=False)
    MeetingParticipant.query.filter(
        MeetingParticipant.meeting_id.in_(meeting_ids),
    ).delete(synchronize_session=False)
    VideoMeeting.query.filter_by(workspace_id=workspace_id).delete(synchronize_session=False)
    WorkspaceMember.query.filter_by(workspace_id=workspace_id).delete(synchronize_session=False)
    db.session.delete(workspace)
    db.session.commit()

    logger.info(
        "Workspace deleted",
        extra={"event_type": "workspace_deleted", "workspace_id": workspace_id, "user_id": user.id},
    )


# ── Members ──────────────────────────────────────────────────────────────────


def list_members(workspace_id: str, user: User) -> list[WorkspaceMember]:
    """Any member may read the membership list."""
    authz.require_workspace_role(user.id, workspace_id)
    return (
        WorkspaceMember.query
        .filter_by(workspace_id=workspace_id)
        .order_by(WorkspaceMember.joined_at)
        .all()
    )


def add_member_by_email(
    workspace_id: str,
    user: User,
    email: str,
    role: str = "team",
) -> WorkspaceMember:
    """Add an existing principal to the workspace (admin role only).

    Raises:
        NotFoundError: no principal with that email.
        ConflictError: already a member.
    """
    authz.require_workspace_role(user.id, workspace_id, "admin")
    role = _validate_role(role)

    invitee = get_user_by_email(email)
    if invitee is None:
        raise NotFoundError("User", email)

    existing = WorkspaceMember.query.filter_by(
        workspace_id=workspace_id, user_id=invitee.id,
    ).first()
    if existing is not None:
        raise ConflictError(
            "WorkspaceMember", "user_id", invitee.id,
            message="User is already a member of this workspace",
        )

    member = WorkspaceMember(workspace_id=workspace_id, user_id=invitee.id, role=role)
    db.session.add(member)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(
            "WorkspaceMember", "user_id", invitee.id,
            message="User is already a member of this workspace",
        )
    return member


def _get_member(workspace_id: str, member_id: str) -> WorkspaceMember:
    member = db.session.get(WorkspaceMember, member_id)
    if member is None or member.workspace_id != workspace_id:
        raise NotFoundError("WorkspaceMember", member_id)
    return member


def _admin_count(workspace_id: str) -> int:
    return WorkspaceMember.query.filter_by(workspace_id=workspace_id, role="admin").count()


def update_member_role(workspace_id: str, user: User, member_id: str, role: str) -> WorkspaceMember:
    """Change a member's role; the last admin cannot be demoted."""
    authz.require_workspace_role(user.id, workspace_id, "admin")
    role = _validate_role(role)
    member = _get_member(workspace_id, member_id)

    if member.role == "admin" and role != "admin" and _admin_count(workspace_id) <= 1:
        raise ValidationError("A workspace must keep at least one admin")

    member.role = role
    db.session.commit()
    return member


def remove_member(workspace_id: str, user: User, member_id: str) -> None:
    """Delete a membership row; the last admin cannot be removed."""
    authz.require_workspace_role(user.id, workspace_id, "admin")
    member = _get_member(workspace_id, member_id)

    if member.role == "admin" and _admin_count(workspace_id) <= 1:
        raise ValidationError("A workspace must keep at least one admin")

    db.session.delete(member)
    db.session.commit()
