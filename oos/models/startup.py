"""
Startup Models — fundraising profiles and their review artefacts.

StartupDocument, BankVerification, NewsletterSubscription, StartupComment,
StartupDeletionLog.

Status vocabularies and transition tables live next to the models so that
services and blueprints validate against one source of truth.
"""

import uuid
from datetime import datetime, timedelta, timezone

from oos.models import db

__all__ = [
    "BANK_VERIFICATION_STATUSES",
    "BANK_VERIFICATION_TRANSITIONS",
    "CAC_CERTIFICATE",
    "DOCUMENT_STATUSES",
    "DOCUMENT_TRANSITIONS",
    "KYC_STATUSES",
    "STARTUP_LIFETIME",
    "VERIFICATION_TIERS",
    "BankVerification",
    "NewsletterSubscription",
    "Startup",
    "StartupComment",
    "StartupDeletionLog",
    "StartupDocument",
]


# ── Constants ─────────────────────────────────────────────────────────────────

VERIFICATION_TIERS = ("registered", "pending_verification", "verified")
KYC_STATUSES = frozenset({"pending", "verified", "rejected"})
DOCUMENT_STATUSES = frozenset({"pending", "approved", "rejected"})
BANK_VERIFICATION_STATUSES = frozenset({"pending", "verified", "rejected"})

# Document type whose approval promotes the startup to the verified tier
CAC_CERTIFICATE = "cac_certificate"

STARTUP_LIFETIME = timedelta(days=730)  # 2 years from registration

DOCUMENT_TRANSITIONS = {
    "approve": {"from": ["pending"], "to": "approved"},
    "reject": {"from": ["pending"], "to": "rejected"},
    "resubmit": {"from": ["rejected"], "to": "pending"},
}

BANK_VERIFICATION_TRANSITIONS = {
    "verify": {"from": ["pending"], "to": "verified"},
    "reject": {"from": ["pending"], "to": "rejected"},
    "resubmit": {"from": ["rejected"], "to": "pending"},
}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _default_expiry():
    return _utcnow() + STARTUP_LIFETIME


def _iso(value):
    return value.isoformat() if value else None


# ═════════════════════════════════════════════════════════════════════════════
# Startup
# ═════════════════════════════════════════════════════════════════════════════

class Startup(db.Model):
    """
    Fundraising profile owned by a single principal.

    Profile and bank fields are owner-writable.  verification_tier,
    kyc_status and bank_account_verified are only ever written by the
    verification services on behalf of an admin-badge holder.
    Deletion is soft: is_active=False plus a StartupDeletionLog row.
    """

    __tablename__ = "startups"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    pitch = db.Column(db.Text, nullable=False, default="")
    website_url = db.Column(db.String(500))

    bank_name = db.Column(db.String(200))
    bank_account = db.Column(db.String(50))
    bank_account_name = db.Column(db.String(200))
    bank_account_verified = db.Column(db.Boolean, nullable=False, default=False)
    cac_number = db.Column(db.String(50))

    verification_tier = db.Column(
        db.String(30), nullable=False, default="registered",
        comment="registered | pending_verification | verified",
    )
    kyc_status = db.Column(
        db.String(20), nullable=False, default="pending",
        comment="pending | verified | rejected",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_default_expiry)
    subscriber_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    owner = db.relationship("User")
    documents = db.relationship(
        "StartupDocument", back_populates="startup", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    bank_verifications = db.relationship(
        "BankVerification", back_populates="startup", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_bank=False):
        d = {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "pitch": self.pitch,
            "website_url": self.website_url,
            "verification_tier": self.verification_tier,
            "kyc_status": self.kyc_status,
            "bank_account_verified": self.bank_account_verified,
            "is_active": self.is_active,
            "expires_at": _iso(self.expires_at),
            "subscriber_count": self.subscriber_count,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_bank:
            d.update({
                "bank_name": self.bank_name,
                "bank_account": self.bank_account,
                "bank_account_name": self.bank_account_name,
                "cac_number": self.cac_number,
            })
        return d

    def __repr__(self) -> str:
        return f"<Startup {self.id} {self.name!r} tier={self.verification_tier}>"


# ═════════════════════════════════════════════════════════════════════════════
# Verification documents
# ═════════════════════════════════════════════════════════════════════════════

class StartupDocument(db.Model):
    __tablename__ = "startup_documents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    startup_id = db.Column(
        db.String(36), db.ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    document_type = db.Column(db.String(50), nullable=False)
    document_url = db.Column(db.String(1000), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default="pending",
        comment="pending | approved | rejected",
    )
    verified_by = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    verified_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.Index("ix_startup_documents_status", "status"),
    )

    startup = db.relationship("Startup", back_populates="documents")

    def to_dict(self):
        return {
            "id": self.id,
            "startup_id": self.startup_id,
            "document_type": self.document_type,
            "document_url": self.document_url,
            "status": self.status,
            "verified_by": self.verified_by,
            "verified_at": _iso(self.verified_at),
            "created_at": _iso(self.created_at),
        }


class BankVerification(db.Model):
    """
    Bank-proof submission.

    bank_name / account_number / account_name are a snapshot of the startup's
    bank fields at submission time; later edits to the startup do not alter
    a pending request's claimed details.
    """

    __tablename__ = "bank_verifications"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    startup_id = db.Column(
        db.String(36), db.ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    bank_name = db.Column(db.String(200), nullable=False)
    account_number = db.Column(db.String(50), nullable=False)
    account_name = db.Column(db.String(200), nullable=False)
    verification_document_url = db.Column(db.String(1000), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default="pending",
        comment="pending | verified | rejected",
    )
    verified_by = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    verified_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    startup = db.relationship("Startup", back_populates="bank_verifications")

    @property
    def masked_account_number(self) -> str:
        tail = (self.account_number or "")[-4:]
        return f"****{tail}"

    def to_dict(self, mask_account=False):
        return {
            "id": self.id,
            "startup_id": self.startup_id,
            "bank_name": self.bank_name,
            "account_number": self.masked_account_number if mask_account else self.account_number,
            "account_name": self.account_name,
            "verification_document_url": self.verification_document_url,
            "status": self.status,
            "verified_by": self.verified_by,
            "verified_at": _iso(self.verified_at),
            "created_at": _iso(self.created_at),
        }


# ═════════════════════════════════════════════════════════════════════════════
# Audience & housekeeping
# ═════════════════════════════════════════════════════════════════════════════

class NewsletterSubscription(db.Model):
    __tablename__ = "newsletter_subscribers"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    startup_id = db.Column(
        db.String(36), db.ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    subscribed_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("startup_id", "user_id", name="uq_newsletter_startup_user"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "startup_id": self.startup_id,
            "user_id": self.user_id,
            "subscribed_at": _iso(self.subscribed_at),
        }


class StartupComment(db.Model):
    __tablename__ = "startup_comments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    startup_id = db.Column(
        db.String(36), db.ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content = db.Column(db.Text, nullable=False)
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    author = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "startup_id": self.startup_id,
            "user_id": self.user_id,
            "content": self.content,
            "is_public": self.is_public,
            "author": {
                "id": self.author.id,
                "full_name": self.author.full_name,
                "avatar_url": self.author.avatar_url,
            } if self.author else None,
            "created_at": _iso(self.created_at),
        }


class StartupDeletionLog(db.Model):
    """Append-only record of owner-triggered soft deletes."""

    __tablename__ = "startup_deletion_log"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    startup_id = db.Column(
        db.String(36), db.ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    reason = db.Column(db.String(200), nullable=False, default="owner_request")
    deleted_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "startup_id": self.startup_id,
            "reason": self.reason,
            "deleted_at": _iso(self.deleted_at),
        }
