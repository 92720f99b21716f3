"""
Verification Tier Service — startup documents and the tier they drive.

Tier states:
    registered ──submit cac_certificate──▶ pending_verification
    pending_verification ──approve cac_certificate──▶ verified

Document states (DOCUMENT_TRANSITIONS):
    pending ──approve──▶ approved
    pending ──reject───▶ rejected
    rejected ─resubmit─▶ pending

Rules:
    - Submitting a cac_certificate overwrites verification_tier with
      "pending_verification" whatever the current tier is.
    - Approving a cac_certificate sets verification_tier="verified" and
      kyc_status="verified".
    - Rejecting touches only the document row; the tier stays where the
      submission left it (pending_verification).  The owner recovers via
      resubmit_document().
    - Document write and startup tier write are committed together.

Usage:
    from oos.services import verification_service as vs

    doc = vs.submit_document(startup_id, owner, "cac_certificate", url)
    vs.review_document(doc.id, admin, "approved", startup_id)
"""

import logging
from datetime import datetime, timezone

from oos.core.exceptions import NotFoundError, TransitionError, ValidationError
from oos.models import db
from oos.models.auth import User
from oos.models.startup import (
    CAC_CERTIFICATE,
    DOCUMENT_TRANSITIONS,
    Startup,
    StartupDocument,
)
from oos.services import authorization as authz

logger = logging.getLogger(__name__)

# Review decision → transition action
_DECISION_ACTION = {
    "approved": "approve",
    "rejected": "reject",
}

MAX_DOCUMENT_TYPE_LENGTH = 50


def _validate_transition(doc: StartupDocument, action: str) -> str:
    """Return the target status or raise TransitionError."""
    rule = DOCUMENT_TRANSITIONS[action]
    if doc.status not in rule["from"]:
        raise TransitionError(
            "StartupDocument", action, doc.status,
            f"Cannot '{action}' from status '{doc.status}'",
        )
    return rule["to"]


def _get_document(document_id: str) -> StartupDocument:
    doc = db.session.get(StartupDocument, document_id)
    if doc is None:
        raise NotFoundError("StartupDocument", document_id)
    return doc


def _mark_pending_review(startup: Startup) -> None:
    startup.verification_tier = "pending_verification"


def submit_document(
    startup_id: str,
    user: User,
    document_type: str,
    document_url: str,
) -> StartupDocument:
    """Owner submits a verification document (status=pending).

    Raises:
        ValidationError: missing type or URL.
        NotFoundError / PermissionDenied: startup missing or not owned.
    """
    document_type = (document_type or "").strip()
    document_url = (document_url or "").strip()
    missing = [f for f, v in (("documentType", document_type), ("documentUrl", document_url)) if not v]
    if missing:
        raise ValidationError("Missing required fields", details={f: "required" for f in missing})
    if len(document_type) > MAX_DOCUMENT_TYPE_LENGTH:
        raise ValidationError("documentType is too long", details={"documentType": "too_long"})

    startup = authz.require_startup_owner(user.id, startup_id)

    doc = StartupDocument(
        startup_id=startup.id,
        document_type=document_type,
        document_url=document_url,
        status="pending",
    )
    db.session.add(doc)
    if document_type == CAC_CERTIFICATE:
        _mark_pending_review(startup)
    db.session.commit()

    logger.info(
        "Verification document submitted",
        extra={
            "event_type": "document_submitted",
            "startup_id": startup.id,
            "document_id": doc.id,
            "document_type": document_type,
        },
    )
    return doc


def review_document(
    document_id: str,
    user: User,
    decision: str,
    startup_id: str | None = None,
) -> StartupDocument:
    """Admin approves or rejects a pending document.

    Args:
        decision: "approved" or "rejected".
        startup_id: Optional caller-supplied startup; must match the
            document's own startup when given.

    Raises:
        PermissionDenied: caller holds no admin badge.
        ValidationError: unknown decision or mismatched startup_id.
        TransitionError: document is not pending.
    """
    authz.require_admin_capability(user, "document.review")

    action = _DECISION_ACTION.get(decision)
    if action is None:
        raise ValidationError(
            f"Invalid status '{decision}'. Must be one of: approved, rejected",
            details={"status": "invalid"},
        )

    doc = _get_document(document_id)
    if startup_id and startup_id != doc.startup_id:
        raise ValidationError(
            "startupId does not match the document's startup",
            details={"startupId": "mismatch"},
        )

    doc.status = _validate_transition(doc, action)
    doc.verified_by = user.id
    doc.verified_at = datetime.now(timezone.utc)

    if doc.status == "approved" and doc.document_type == CAC_CERTIFICATE:
        startup = db.session.get(Startup, doc.startup_id)
        startup.verification_tier = "verified"
        startup.kyc_status = "verified"

    db.session.commit()

    logger.info(
        "Verification document reviewed",
        extra={
            "event_type": "document_reviewed",
            "startup_id": doc.startup_id,
            "document_id": doc.id,
            "decision": decision,
            "user_id": user.id,
        },
    )
    return doc


def resubmit_document(document_id: str, user: User, document_url: str) -> StartupDocument:
    """Owner replaces a rejected document's file and returns it to pending."""
    document_url = (document_url or "").strip()
    if not document_url:
        raise ValidationError("Document URL is required", details={"documentUrl": "required"})

    doc = _get_document(document_id)
    startup = authz.require_startup_owner(user.id, doc.startup_id)

    doc.status = _validate_transition(doc, "resubmit")
    doc.document_url = document_url
    doc.verified_by = None
    doc.verified_at = None
    if doc.document_type == CAC_CERTIFICATE:
        _mark_pending_review(startup)
    db.session.commit()

    logger.info(
        "Verification document resubmitted",
        extra={"event_type": "document_resubmitted", "startup_id": startup.id, "document_id": doc.id},
    )
    return doc


def list_documents(startup_id: str, user: User) -> list[StartupDocument]:
    """Documents for one startup; visible to the owner and to admins."""
    startup = db.session.get(Startup, startup_id)
    if startup is None:
        raise NotFoundError("Startup", startup_id)
    if not authz.has_admin_capability(user.id):
        authz.require_resource_ownership(user.id, startup)
    return (
        StartupDocument.query
        .filter_by(startup_id=startup_id)
        .order_by(StartupDocument.created_at.desc())
        .all()
    )


def list_pending_documents(user: User) -> list[StartupDocument]:
    """Review queue (admin only), oldest first."""
    authz.require_admin_capability(user, "document.review")
    return (
        StartupDocument.query
        .filter_by(status="pending")
        .order_by(StartupDocument.created_at)
        .all()
    )
