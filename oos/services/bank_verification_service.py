"""
Bank Verification Service — payout eligibility.

States (BANK_VERIFICATION_TRANSITIONS):
    pending ──verify───▶ verified
    pending ──reject───▶ rejected
    rejected ─resubmit─▶ pending

Submitting snapshots the startup's bank fields onto the verification row.
Verifying sets Startup.bank_account_verified=True in the same commit;
rejecting never clears it.
"""

import logging
from datetime import datetime, timezone

from oos.core.exceptions import NotFoundError, TransitionError, ValidationError
from oos.models import db
from oos.models.auth import User
from oos.models.startup import BANK_VERIFICATION_TRANSITIONS, BankVerification, Startup
from oos.services import authorization as authz

logger = logging.getLogger(__name__)

_DECISION_ACTION = {
    "verified": "verify",
    "rejected": "reject",
}


def _require_bank_details(startup: Startup) -> None:
    missing = [
        field for field in ("bank_name", "bank_account", "bank_account_name")
        if not (getattr(startup, field) or "").strip()
    ]
    if missing:
        raise ValidationError(
            "Bank details are required for verification",
            details={field: "required" for field in missing},
        )


def _snapshot(verification: BankVerification, startup: Startup) -> None:
    verification.bank_name = startup.bank_name
    verification.account_number = startup.bank_account
    verification.account_name = startup.bank_account_name


def _validate_transition(verification: BankVerification, action: str) -> str:
    rule = BANK_VERIFICATION_TRANSITIONS[action]
    if verification.status not in rule["from"]:
        raise TransitionError(
            "BankVerification", action, verification.status,
            f"Cannot '{action}' from status '{verification.status}'",
        )
    return rule["to"]


def _get_verification(verification_id: str) -> BankVerification:
    verification = db.session.get(BankVerification, verification_id)
    if verification is None:
        raise NotFoundError("BankVerification", verification_id)
    return verification


def submit_bank_verification(startup_id: str, user: User, document_url: str) -> BankVerification:
    """Owner submits bank proof for review.

    Raises:
        ValidationError: no document URL, or bank fields incomplete (no row
            is written).
        NotFoundError / PermissionDenied: startup missing or not owned.
    """
    document_url = (document_url or "").strip()
    if not document_url:
        raise ValidationError("Document URL is required", details={"documentUrl": "required"})

    startup = authz.require_startup_owner(user.id, startup_id)
    _require_bank_details(startup)

    verification = BankVerification(
        startup_id=startup.id,
        verification_document_url=document_url,
        status="pending",
    )
    _snapshot(verification, startup)
    db.session.add(verification)
    db.session.commit()

    logger.info(
        "Bank verification submitted",
        extra={"event_type": "bank_verification_submitted", "startup_id": startup.id,
               "verification_id": verification.id},
    )
    return verification


def review_bank_verification(
    verification_id: str,
    user: User,
    decision: str,
    startup_id: str | None = None,
) -> BankVerification:
    """Admin marks a pending bank verification verified or rejected."""
    authz.require_admin_capability(user, "bank_verification.review")

    action = _DECISION_ACTION.get(decision)
    if action is None:
        raise ValidationError(
            f"Invalid status '{decision}'. Must be one of: verified, rejected",
            details={"status": "invalid"},
        )

    verification = _get_verification(verification_id)
    if startup_id and startup_id != verification.startup_id:
        raise ValidationError(
            "Startup id does not match the verification's startup",
            details={"startup_id": "mismatch"},
        )

    verification.status = _validate_transition(verification, action)
    verification.verified_by = user.id
    verification.verified_at = datetime.now(timezone.utc)

    if verification.status == "verified":
        startup = db.session.get(Startup, verification.startup_id)
        startup.bank_account_verified = True

    db.session.commit()

    logger.info(
        "Bank verification reviewed",
        extra={
            "event_type": "bank_verification_reviewed",
            "startup_id": verification.startup_id,
            "verification_id": verification.id,
            "decision": decision,
            "user_id": user.id,
        },
    )
    return verification


def resubmit_bank_verification(
    verification_id: str,
    user: User,
    document_url: str,
) -> BankVerification:
    """Owner reopens a rejected request with fresh proof and current bank fields."""
    document_url = (document_url or "").strip()
    if not document_url:
        raise ValidationError("Document URL is required", details={"documentUrl": "required"})

    verification = _get_verification(verification_id)
    startup = authz.require_startup_owner(user.id, verification.startup_id)
    _require_bank_details(startup)

    verification.status = _validate_transition(verification, "resubmit")
    verification.verification_document_url = document_url
    verification.verified_by = None
    verification.verified_at = None
    _snapshot(verification, startup)
    db.session.commit()
    return verification


def list_bank_verifications(startup_id: str, user: User) -> list[BankVerification]:
    startup = db.session.get(Startup, startup_id)
    if startup is None:
        raise NotFoundError("Startup", startup_id)
    if not authz.has_admin_capability(user.id):
        authz.require_resource_ownership(user.id, startup)
    return (
        BankVerification.query
        .filter_by(startup_id=startup_id)
        .order_by(BankVerification.created_at.desc())
        .all()
    )


def list_pending_bank_verifications(user: User) -> list[BankVerification]:
    authz.require_admin_capability(user, "bank_verification.review")
    return (
        BankVerification.query
        .filter_by(status="pending")
        .order_by(BankVerification.created_at)
        .all()
    )
