"""
Donation Ledger Service — fee split, idempotent recording, status moves,
totals, payment webhooks.

Money:
    Every amount is a Decimal quantized to 0.01 with ROUND_HALF_EVEN.
    fee = round(gross × FEE_PERCENTAGE / 100), net = gross − fee, so
    fee + net == gross holds exactly for every stored row.

Status flow (DONATION_TRANSITIONS):
    pending ──complete──▶ completed ──refund──▶ refunded
    pending ──fail──────▶ failed

Writers of "completed":
    Only the signed payment webhook (handle_payment_webhook) records or
    promotes a donation to completed.  The browser callback goes through
    record_callback_donation(), which only ever writes status=pending.
    On completion a pending row takes its amount and startup from the
    signed event, not from what the browser posted.

Idempotency:
    (payment_provider, payment_reference) is unique.  Recording the same
    pair again returns the row already stored.
"""

import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from oos.core.exceptions import NotFoundError, TransitionError, ValidationError
from oos.integrations.payment_gateway import payment_gateway
from oos.models import db
from oos.models.donation import DONATION_TRANSITIONS, FEE_PERCENTAGE, Donation
from oos.models.startup import Startup
from oos.services.user_service import normalize_email
from oos.utils.money import percentage_of, to_money

logger = logging.getLogger(__name__)

MINIMUM_DONATION = Decimal("1.00")
ZERO = Decimal("0.00")


# ═════════════════════════════════════════════════════════════════════════════
# Arithmetic
# ═════════════════════════════════════════════════════════════════════════════

def split_amount(gross) -> tuple[Decimal, Decimal]:
    """Return ``(fee, net)`` for a gross amount."""
    gross = to_money(gross)
    fee = percentage_of(gross, FEE_PERCENTAGE)
    return fee, gross - fee


# ═════════════════════════════════════════════════════════════════════════════
# Recording
# ═════════════════════════════════════════════════════════════════════════════

def _find(provider: str, reference: str) -> Donation | None:
    return Donation.query.filter_by(
        payment_provider=provider, payment_reference=reference,
    ).first()


def record_donation(
    startup_id: str,
    donor_email: str,
    gross_amount,
    payment_reference: str,
    provider: str,
    status: str = "completed",
    donor_name: str | None = None,
) -> Donation:
    """Write one ledger row with fee / net computed from *gross_amount*.

    Returns the existing row unchanged when (provider, reference) was
    already recorded.

    Raises:
        ValidationError: amount below minimum, bad email, empty reference
            or unknown status.
        NotFoundError: startup missing or inactive.
    """
    try:
        gross = to_money(gross_amount)
    except ValueError as exc:
        raise ValidationError("Invalid donation amount", details={"amount": "invalid"}) from exc
    if gross < MINIMUM_DONATION:
        raise ValidationError(
            f"Minimum donation is {MINIMUM_DONATION}", details={"amount": "below_minimum"},
        )

    payment_reference = (payment_reference or "").strip()
    provider = (provider or "").strip()
    if not payment_reference:
        raise ValidationError("Payment reference is required", details={"reference": "required"})
    if not provider:
        raise ValidationError("Payment provider is required", details={"provider": "required"})
    if status not in ("pending", "completed", "failed"):
        raise ValidationError(f"Cannot record a donation as '{status}'", details={"status": "invalid"})

    donor_email = normalize_email(donor_email)

    existing = _find(provider, payment_reference)
    if existing is not None:
        logger.info(
            "Duplicate donation reference ignored",
            extra={"event_type": "donation_duplicate", "donation_id": existing.id,
                   "reference": payment_reference},
        )
        return existing

    startup = db.session.get(Startup, startup_id) if startup_id else None
    if startup is None or not startup.is_active:
        raise NotFoundError("Startup", startup_id)

    fee, net = split_amount(gross)
    donation = Donation(
        startup_id=startup.id,
        donor_email=donor_email,
        donor_name=(donor_name or "").strip() or None,
        amount=gross,
        fee_percentage=FEE_PERCENTAGE,
        fee_amount=fee,
        net_amount=net,
        status=status,
        payment_provider=provider,
        payment_reference=payment_reference,
    )
    db.session.add(donation)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent writer stored the same reference first
        db.session.rollback()
        existing = _find(provider, payment_reference)
        if existing is None:
            raise
        return existing

    logger.info(
        "Donation recorded",
        extra={
            "event_type": "donation_recorded",
            "startup_id": startup.id,
            "donation_id": donation.id,
            "status": status,
            "reference": payment_reference,
        },
    )
    return donation


def record_pending_donation(
    startup_id: str,
    donor_email: str,
    gross_amount,
    payment_reference: str,
    donor_name: str | None = None,
    provider: str | None = None,
) -> Donation:
    """Advisory record from the client-side payment callback."""
    return record_donation(
        startup_id,
        donor_email,
        gross_amount,
        payment_reference,
        provider or payment_gateway.provider,
        status="pending",
        donor_name=donor_name,
    )


CALLBACK_REJECTED_STATUSES = ("failed", "abandoned", "reversed")


def record_callback_donation(
    startup_id: str,
    donor_email: str,
    gross_amount,
    payment_reference: str,
    donor_name: str | None = None,
) -> Donation:
    """Record the browser's post-checkout callback as a pending donation.

    With PAYMENT_VERIFY_CALLBACK on, the reference is looked up at the
    provider first and the provider's amount and email replace whatever
    the browser sent.  The row is still only pending; completion stays
    with the signed webhook.

    Raises:
        ValidationError: provider reports the charge as failed or unknown.
        UpstreamError: provider lookup failed.
    """
    if current_app.config.get("PAYMENT_VERIFY_CALLBACK"):
        verified = payment_gateway.verify_transaction((payment_reference or "").strip())
        status = verified.get("status")
        if status in CALLBACK_REJECTED_STATUSES:
            raise ValidationError(
                f"Payment was not successful ({status})", details={"reference": status},
            )
        if verified.get("amount") is None:
            raise ValidationError(
                "Payment provider returned no amount", details={"reference": "unverified"},
            )
        if to_money(verified["amount"]) != _client_amount(gross_amount):
            logger.warning(
                "Callback amount differs from provider record",
                extra={"event_type": "donation_callback_mismatch",
                       "reference": payment_reference},
            )
        gross_amount = verified["amount"]
        donor_email = verified.get("email") or donor_email

    return record_pending_donation(
        startup_id, donor_email, gross_amount, payment_reference, donor_name=donor_name,
    )


def _client_amount(value) -> Decimal | None:
    try:
        return to_money(value)
    except ValueError:
        return None


# ═════════════════════════════════════════════════════════════════════════════
# Status transitions
# ═════════════════════════════════════════════════════════════════════════════

def _get_donation(donation_id: str) -> Donation:
    donation = db.session.get(Donation, donation_id)
    if donation is None:
        raise NotFoundError("Donation", donation_id)
    return donation


def _transition(donation_id: str, action: str) -> Donation:
    donation = _get_donation(donation_id)
    rule = DONATION_TRANSITIONS[action]
    if donation.status not in rule["from"]:
        raise TransitionError(
            "Donation", action, donation.status,
            f"Cannot '{action}' from status '{donation.status}'",
        )
    donation.status = rule["to"]
    db.session.commit()
    logger.info(
        "Donation status changed",
        extra={"event_type": "donation_status_changed", "donation_id": donation.id,
               "status": donation.status},
    )
    return donation


def mark_completed(donation_id: str) -> Donation:
    return _transition(donation_id, "complete")


def mark_failed(donation_id: str) -> Donation:
    return _transition(donation_id, "fail")


def refund_donation(donation_id: str) -> Donation:
    return _transition(donation_id, "refund")


# ═════════════════════════════════════════════════════════════════════════════
# Totals
# ═════════════════════════════════════════════════════════════════════════════

def total_raised(startup_id: str) -> Decimal:
    """Sum of gross amounts over completed donations, recomputed each call."""
    total = (
        db.session.query(func.coalesce(func.sum(Donation.amount), 0))
        .filter(Donation.startup_id == startup_id, Donation.status == "completed")
        .scalar()
    )
    return to_money(total)


def donation_summary(startup_id: str) -> dict:
    row = (
        db.session.query(
            func.coalesce(func.sum(Donation.amount), 0),
            func.coalesce(func.sum(Donation.net_amount), 0),
            func.coalesce(func.sum(Donation.fee_amount), 0),
            func.count(Donation.id),
        )
        .filter(Donation.startup_id == startup_id, Donation.status == "completed")
        .one()
    )
    return {
        "startup_id": startup_id,
        "total_raised": to_money(row[0]),
        "net_raised": to_money(row[1]),
        "platform_fees": to_money(row[2]),
        "donation_count": int(row[3]),
    }


def list_donations(startup_id: str, status: str | None = None) -> list[Donation]:
    q = Donation.query.filter_by(startup_id=startup_id)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Donation.created_at.desc()).all()


# ═════════════════════════════════════════════════════════════════════════════
# Webhook
# ═════════════════════════════════════════════════════════════════════════════

def _reconcile_pending(donation: Donation, event) -> None:
    """Rewrite a pending row's money and startup from the signed event.

    A pending row comes from the browser callback and is only advisory; the
    signed event is authoritative for what was charged and for whom.  When
    the event carries no startup_id the row keeps its own.
    """
    if event.amount is None:
        raise ValidationError("Webhook event has no amount", details={"amount": "required"})
    gross = to_money(event.amount)
    if gross < MINIMUM_DONATION:
        raise ValidationError(
            f"Minimum donation is {MINIMUM_DONATION}", details={"amount": "below_minimum"},
        )

    startup_id = event.startup_id or donation.startup_id
    changed = []
    if startup_id != donation.startup_id:
        startup = db.session.get(Startup, startup_id)
        if startup is None or not startup.is_active:
            raise NotFoundError("Startup", startup_id)
        donation.startup_id = startup.id
        changed.append("startup_id")
    if gross != to_money(donation.amount):
        fee, net = split_amount(gross)
        donation.amount = gross
        donation.fee_percentage = FEE_PERCENTAGE
        donation.fee_amount = fee
        donation.net_amount = net
        changed.append("amount")

    if changed:
        logger.warning(
            "Pending donation rewritten from signed event",
            extra={"event_type": "donation_reconciled", "donation_id": donation.id,
                   "reference": donation.payment_reference, "fields": changed},
        )


def handle_payment_webhook(raw_body: bytes, signature: str | None) -> dict:
    """Apply one signed gateway event to the ledger.

    charge.success     pending row → completed, or a new completed row
                       (amount and startup taken from the event)
    charge.failed      pending row → failed, or a new failed row
    refund.processed   completed row → refunded

    Repeated delivery of an event whose target state is already reached is
    a no-op.  Unknown events are acknowledged and ignored.

    Returns:
        dict with ``event``, ``handled`` and ``donation`` (to_dict or None).

    Raises:
        AuthenticationError: invalid signature; nothing is written.
        ValidationError: malformed payload.
    """
    event = payment_gateway.parse_webhook(raw_body, signature)
    provider = payment_gateway.provider

    if event.action is None:
        logger.info("Ignoring payment webhook event %s", event.event)
        return {"event": event.event, "handled": False, "donation": None}
    if not event.reference:
        raise ValidationError("Webhook event has no reference", details={"reference": "required"})

    existing = _find(provider, event.reference)
    target = DONATION_TRANSITIONS[event.action]["to"]

    if existing is not None:
        if existing.status != target:
            if event.action == "complete" and existing.status == "pending":
                _reconcile_pending(existing, event)
            existing = _transition(existing.id, event.action)
        donation = existing
    elif event.action == "refund":
        logger.warning(
            "Refund webhook for unknown reference",
            extra={"event_type": "donation_refund_unknown", "reference": event.reference},
        )
        return {"event": event.event, "handled": False, "donation": None}
    else:
        if not event.startup_id:
            raise ValidationError(
                "Webhook metadata has no startup_id", details={"startup_id": "required"},
            )
        donation = record_donation(
            event.startup_id,
            event.email,
            event.amount,
            event.reference,
            provider,
            status=target,
            donor_name=event.donor_name,
        )

    logger.info(
        "Payment webhook applied",
        extra={"event_type": "payment_webhook", "gateway_event": event.event,
               "donation_id": donation.id, "status": donation.status},
    )
    return {"event": event.event, "handled": True, "donation": donation.to_dict()}
