"""
Donation ledger model.

A Donation is an append-style ledger entry.  Monetary columns are fixed once
the row leaves "pending"; a pending row is rewritten from the signed gateway
event when it completes.  Only ``status`` moves, and only along
DONATION_TRANSITIONS.

Monetary columns are Numeric(12, 2); services hand them Decimal values that
are already quantized (see oos.utils.money).
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from oos.models import db

__all__ = [
    "DONATION_STATUSES",
    "DONATION_TRANSITIONS",
    "FEE_PERCENTAGE",
    "Donation",
]


# ── Constants ─────────────────────────────────────────────────────────────────

FEE_PERCENTAGE = Decimal("16.00")

DONATION_STATUSES = frozenset({"pending", "completed", "failed", "refunded"})

DONATION_TRANSITIONS = {
    "complete": {"from": ["pending"], "to": "completed"},
    "fail": {"from": ["pending"], "to": "failed"},
    "refund": {"from": ["completed"], "to": "refunded"},
}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _money(value):
    return f"{value:.2f}" if value is not None else None


class Donation(db.Model):
    __tablename__ = "donations"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    startup_id = db.Column(
        db.String(36), db.ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    donor_email = db.Column(db.String(200), nullable=False)
    donor_name = db.Column(db.String(200))
    amount = db.Column(db.Numeric(12, 2), nullable=False, comment="Gross amount")
    fee_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=FEE_PERCENTAGE)
    fee_amount = db.Column(db.Numeric(12, 2), nullable=False)
    net_amount = db.Column(db.Numeric(12, 2), nullable=False, comment="amount - fee_amount")
    status = db.Column(
        db.String(20), nullable=False, default="pending",
        comment="pending | completed | failed | refunded",
    )
    payment_provider = db.Column(db.String(50), nullable=False)
    payment_reference = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        # Duplicate gateway callbacks must never double-record a payment
        db.UniqueConstraint(
            "payment_provider", "payment_reference", name="uq_donation_provider_reference",
        ),
        db.Index("ix_donations_startup_status", "startup_id", "status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "startup_id": self.startup_id,
            "donor_email": self.donor_email,
            "donor_name": self.donor_name,
            "amount": _money(self.amount),
            "fee_percentage": _money(self.fee_percentage),
            "fee_amount": _money(self.fee_amount),
            "net_amount": _money(self.net_amount),
            "status": self.status,
            "payment_provider": self.payment_provider,
            "payment_reference": self.payment_reference,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Donation {self.payment_provider}:{self.payment_reference} {self.amount} {self.status}>"
