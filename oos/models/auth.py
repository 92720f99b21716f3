"""
Auth Models — principals, their profiles and the platform-wide admin badge.

User is the local mirror of the identity provider's principal; the core only
ever reads it.  AdminBadge is the grant record behind "admin capability":
one row per holder, never expires, removed only by an explicit revoke.
"""

import uuid
from datetime import datetime, timezone

from oos.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(200), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256))  # NULL for OAuth-only principals
    full_name = db.Column(db.String(200))
    avatar_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    admin_badge = db.relationship(
        "AdminBadge",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        foreign_keys="AdminBadge.user_id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.email}>"


# ═══════════════════════════════════════════════════════════════
# 2. ADMIN BADGES
# ═══════════════════════════════════════════════════════════════
class AdminBadge(db.Model):
    """Platform-wide admin capability grant.

    Business rules:
    - UNIQUE(user_id): a principal holds at most one badge.
    - granted_by is the granting principal; equals user_id for self-service
      grants.  SET NULL if the granter is later deleted.
    """

    __tablename__ = "admin_badges"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    granted_by = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    user = db.relationship("User", back_populates="admin_badge", foreign_keys=[user_id])

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "granted_by": self.granted_by,
            "granted_at": self.granted_at.isoformat() if self.granted_at else None,
        }

    def __repr__(self) -> str:
        return f"<AdminBadge user={self.user_id}>"


# ═══════════════════════════════════════════════════════════════
# 3. PROFILES
# ═══════════════════════════════════════════════════════════════
EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced")


class Profile(db.Model):
    """Optional public profile; primary key is the user id (1:1)."""

    __tablename__ = "profiles"

    id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    bio = db.Column(db.Text)
    skills = db.Column(db.JSON, default=list)
    experience_level = db.Column(db.String(20), default="beginner")
    phone_number = db.Column(db.String(50))
    location = db.Column(db.String(200))
    website_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "bio": self.bio,
            "skills": list(self.skills or []),
            "experience_level": self.experience_level,
            "phone_number": self.phone_number,
            "location": self.location,
            "website_url": self.website_url,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
