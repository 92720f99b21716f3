"""
Startup Service — fundraising profiles, soft delete, comments and newsletter
subscriptions.

Derived counters (subscriber_count) are updated with a SQL-side increment in
the same transaction as the subscription row, so the count never drifts from
the subscription table.

Usage:
    from oos.services import startup_service

    startup = startup_service.create_startup(user, {"name": ..., "pitch": ...})
    startup_service.subscribe(startup.id, reader)
"""

import logging
import math
from datetime import datetime, timezone
from urllib.parse import urlparse

from sqlalchemy.exc import IntegrityError

from oos.core.exceptions import ConflictError, NotFoundError, ValidationError
from oos.models import db
from oos.models.auth import User
from oos.models.startup import (
    NewsletterSubscription,
    Startup,
    StartupComment,
    StartupDeletionLog,
)
from oos.services import authorization as authz

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10

# Fields the owner may write.  Tier, KYC and the bank-verified flag are
# owned by the verification services.
PROFILE_FIELDS = ("name", "description", "pitch", "website_url")
BANK_FIELDS = ("bank_name", "bank_account", "bank_account_name", "cac_number")
BANK_ACCOUNT_FIELDS = ("bank_name", "bank_account", "bank_account_name")


def _utcnow():
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone=True columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _validate_profile(data: dict, *, partial: bool) -> dict:
    errors = {}
    clean = {}

    if "name" in data or not partial:
        name = (data.get("name") or "").strip()
        if len(name) < MIN_NAME_LENGTH:
            errors["name"] = f"Startup name must be at least {MIN_NAME_LENGTH} characters"
        clean["name"] = name

    if "description" in data or not partial:
        description = (data.get("description") or "").strip()
        if len(description) < MIN_DESCRIPTION_LENGTH:
            errors["description"] = (
                f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters"
            )
        clean["description"] = description

    if "pitch" in data or not partial:
        pitch = (data.get("pitch") or "").strip()
        if not pitch:
            errors["pitch"] = "Pitch is required"
        clean["pitch"] = pitch

    if "website_url" in data:
        url = (data.get("website_url") or "").strip()
        if url:
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors["website_url"] = "Invalid website URL"
        clean["website_url"] = url or None

    for field in BANK_FIELDS:
        if field in data:
            clean[field] = (data.get(field) or "").strip() or None

    if errors:
        raise ValidationError("Invalid startup data", details=errors)
    return clean


# ── Profiles ─────────────────────────────────────────────────────────────────


def create_startup(user: User, data: dict) -> Startup:
    """Register a startup for *user*; expires two years after creation."""
    clean = _validate_profile(data, partial=False)
    startup = Startup(user_id=user.id, **clean)
    db.session.add(startup)
    db.session.commit()
    logger.info(
        "Startup created",
        extra={"event_type": "startup_created", "startup_id": startup.id, "user_id": user.id},
    )
    return startup


def get_startup(startup_id: str) -> Startup:
    startup = db.session.get(Startup, startup_id)
    if startup is None:
        raise NotFoundError("Startup", startup_id)
    return startup


def list_startups(active_only: bool = True, owner_id: str | None = None) -> list[Startup]:
    q = Startup.query
    if active_only:
        q = q.filter(Startup.is_active.is_(True))
    if owner_id:
        q = q.filter(Startup.user_id == owner_id)
    return q.order_by(Startup.created_at.desc()).all()


def update_startup(startup_id: str, user: User, data: dict) -> Startup:
    """Owner-only update of profile and bank fields.

    Changing the bank name, account number or account name clears
    bank_account_verified; the new account has to be verified again.
    """
    startup = authz.require_startup_owner(user.id, startup_id)
    clean = _validate_profile(data, partial=True)
    bank_changed = any(
        key in BANK_ACCOUNT_FIELDS and getattr(startup, key) != value
        for key, value in clean.items()
    )
    for key, value in clean.items():
        setattr(startup, key, value)
    if bank_changed and startup.bank_account_verified:
        startup.bank_account_verified = False
        logger.info(
            "Bank details changed, verification cleared",
            extra={"event_type": "bank_verification_cleared", "startup_id": startup.id},
        )
    db.session.commit()
    return startup


def deactivate_startup(startup_id: str, user: User, reason: str | None = None) -> Startup:
    """Soft delete: is_active=False plus a deletion log row, one commit."""
    startup = authz.require_startup_owner(user.id, startup_id)
    if not startup.is_active:
        raise ConflictError(
            "Startup", "is_active", "false", message="Startup is already inactive",
        )

    startup.is_active = False
    db.session.add(StartupDeletionLog(
        startup_id=startup.id,
        reason=(reason or "").strip()[:200] or "owner_request",
    ))
    db.session.commit()
    logger.info(
        "Startup deactivated",
        extra={"event_type": "startup_deactivated", "startup_id": startup.id, "user_id": user.id},
    )
    return startup


def expiration_status(startup: Startup, now: datetime | None = None) -> dict:
    """Days left until the listing expires (ceil), and whether it has."""
    now = now or _utcnow()
    remaining = (_as_aware(startup.expires_at) - now).total_seconds()
    days = math.ceil(remaining / 86400)
    return {
        "expires_at": startup.expires_at.isoformat(),
        "days_remaining": days,
        "is_expired": days <= 0,
    }


# ── Comments ─────────────────────────────────────────────────────────────────


def list_comments(startup_id: str) -> list[StartupComment]:
    get_startup(startup_id)
    return (
        StartupComment.query
        .filter_by(startup_id=startup_id, is_public=True)
        .order_by(StartupComment.created_at.desc())
        .all()
    )


def add_comment(startup_id: str, user: User, content: str) -> StartupComment:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content is required", details={"content": "required"})
    get_startup(startup_id)

    comment = StartupComment(startup_id=startup_id, user_id=user.id, content=content)
    db.session.add(comment)
    db.session.commit()
    return comment


# ── Newsletter subscriptions ─────────────────────────────────────────────────


def _get_subscription(startup_id: str, user_id: str) -> NewsletterSubscription | None:
    return NewsletterSubscription.query.filter_by(startup_id=startup_id, user_id=user_id).first()


def subscribe(startup_id: str, user: User) -> NewsletterSubscription:
    """Subscribe *user* and bump subscriber_count in the same transaction."""
    get_startup(startup_id)
    if _get_subscription(startup_id, user.id) is not None:
        raise ConflictError("NewsletterSubscription", "user_id", user.id, message="Already subscribed")

    subscription = NewsletterSubscription(startup_id=startup_id, user_id=user.id)
    db.session.add(subscription)
    try:
        # The insert flushes first, so a concurrent duplicate fails before the bump
        db.session.flush()
        Startup.query.filter_by(id=startup_id).update(
            {Startup.subscriber_count: Startup.subscriber_count + 1},
            synchronize_session=False,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("NewsletterSubscription", "user_id", user.id, message="Already subscribed")
    return subscription


def unsubscribe(startup_id: str, user: User) -> None:
    """Remove the subscription and decrement subscriber_count (floor 0)."""
    subscription = _get_subscription(startup_id, user.id)
    if subscription is None:
        raise NotFoundError("NewsletterSubscription")

    db.session.delete(subscription)
    Startup.query.filter(
        Startup.id == startup_id, Startup.subscriber_count > 0,
    ).update(
        {Startup.subscriber_count: Startup.subscriber_count - 1},
        synchronize_session=False,
    )
    db.session.commit()


def subscription_status(startup_id: str, user: User) -> dict:
    subscription = _get_subscription(startup_id, user.id)
    return {
        "isSubscribed": subscription is not None,
        "subscription": subscription.to_dict() if subscription else None,
    }
