"""
Workspace Models — collaboration spaces and their memberships.

A workspace is created by an admin-badge holder, who always receives the
first membership row with role=admin.  Deleting a workspace is a hard delete
that cascades to every membership row (ORM cascade + FK ON DELETE CASCADE).
"""

import uuid
from datetime import datetime, timezone

from oos.models import db

__all__ = [
    "WORKSPACE_ROLES",
    "WORKSPACE_VERIFICATION_STATUSES",
    "Workspace",
    "WorkspaceMember",
]


# ── Constants ─────────────────────────────────────────────────────────────────

WORKSPACE_ROLES = frozenset({"admin", "team"})
WORKSPACE_VERIFICATION_STATUSES = frozenset({"unverified", "verified"})


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class Workspace(db.Model):
    __tablename__ = "workspaces"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    admin_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    verification_status = db.Column(
        db.String(20), nullable=False, default="unverified",
        comment="unverified | verified",
    )
    workspace_email = db.Column(db.String(200))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    members = db.relationship(
        "WorkspaceMember",
        back_populates="workspace",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self, include_members=False):
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "admin_id": self.admin_id,
            "verification_status": self.verification_status,
            "workspace_email": self.workspace_email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_members:
            d["members"] = [m.to_dict() for m in self.members.all()]
        return d

    def __repr__(self) -> str:
        return f"<Workspace {self.id} {self.name!r}>"


class WorkspaceMember(db.Model):
    __tablename__ = "workspace_members"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    role = db.Column(db.String(20), nullable=False, default="team", comment="admin | team")
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )

    workspace = db.relationship("Workspace", back_populates="members")
    user = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "user_id": self.user_id,
            "role": self.role,
            "email": self.user.email if self.user else None,
            "full_name": self.user.full_name if self.user else None,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }

    def __repr__(self) -> str:
        return f"<WorkspaceMember {self.user_id}@{self.workspace_id} {self.role}>"
