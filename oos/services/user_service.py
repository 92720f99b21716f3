"""
User Service — local identity provider: registration, credential checks,
principal lookups, profiles.
"""

import logging
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from oos.core.exceptions import AuthenticationError, ConflictError, ValidationError
from oos.models import db
from oos.models.auth import EXPERIENCE_LEVELS, Profile, User
from oos.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MIN_FULL_NAME_LENGTH = 2


def normalize_email(email: str) -> str:
    """Validate *email* syntactically and return its lower-cased form.

    Raises:
        ValidationError: when the address is malformed.
    """
    try:
        valid = validate_email((email or "").strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(e)})
    return valid.normalized.lower()


def register_user(email: str, password: str, full_name: str | None = None) -> User:
    """Create a principal with a bcrypt password hash."""
    email = normalize_email(email)
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={"password": "too_short"},
        )
    full_name = (full_name or "").strip() or None
    if full_name is not None and len(full_name) < MIN_FULL_NAME_LENGTH:
        raise ValidationError(
            f"Full name must be at least {MIN_FULL_NAME_LENGTH} characters",
            details={"full_name": "too_short"},
        )

    if User.query.filter_by(email=email).first():
        raise ConflictError("User", "email", email)

    user = User(email=email, password_hash=hash_password(password), full_name=full_name)
    db.session.add(user)
    db.session.commit()
    logger.info("User registered", extra={"event_type": "user_registered"})
    return user


def authenticate_user(email: str, password: str) -> User:
    """Return the principal for valid credentials.

    Raises:
        AuthenticationError: unknown email or wrong password (same message
            for both).
    """
    email = (email or "").strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("Invalid email or password")
    return user


def get_user_by_id(user_id: str) -> User | None:
    """Find a user by ID."""
    return db.session.get(User, user_id)


def get_user_by_email(email: str) -> User | None:
    """Find a user by (case-insensitive) email."""
    return User.query.filter_by(email=(email or "").strip().lower()).first()


# ── Profiles ─────────────────────────────────────────────────────────────────

MAX_SKILLS = 30


def get_profile(user: User) -> Profile | None:
    return db.session.get(Profile, user.id)


def _clean_skills(value) -> list[str]:
    # Accepts a list or the comma-separated string the profile form sends
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValidationError("Skills must be a list", details={"skills": "invalid"})
    skills = []
    for item in value:
        skill = str(item or "").strip()
        if skill and skill not in skills:
            skills.append(skill)
    if len(skills) > MAX_SKILLS:
        raise ValidationError(f"At most {MAX_SKILLS} skills", details={"skills": "too_many"})
    return skills


def update_profile(user: User, data: dict) -> Profile:
    """Partial update of the caller's profile plus users.full_name.

    The profile row is created on first write.  Nothing is written when
    any field fails validation.

    Raises:
        ValidationError: bad experience level, website URL, skills or name.
    """
    errors = {}
    changes = {}

    if "full_name" in data:
        full_name = (data.get("full_name") or "").strip() or None
        if full_name is not None and len(full_name) < MIN_FULL_NAME_LENGTH:
            errors["full_name"] = f"Full name must be at least {MIN_FULL_NAME_LENGTH} characters"

    if "experience_level" in data:
        level = (data.get("experience_level") or "").strip().lower()
        if level not in EXPERIENCE_LEVELS:
            errors["experience_level"] = f"Must be one of: {', '.join(EXPERIENCE_LEVELS)}"
        changes["experience_level"] = level

    if "website_url" in data:
        url = (data.get("website_url") or "").strip()
        parsed = urlparse(url)
        if url and (parsed.scheme not in ("http", "https") or not parsed.netloc):
            errors["website_url"] = "Invalid website URL"
        changes["website_url"] = url or None

    if "skills" in data:
        try:
            changes["skills"] = _clean_skills(data.get("skills") or [])
        except ValidationError as e:
            errors.update(e.details)

    for field in ("bio", "phone_number", "location"):
        if field in data:
            changes[field] = (data.get(field) or "").strip() or None

    if errors:
        raise ValidationError("Invalid profile", details=errors)

    profile = get_profile(user)
    if profile is None:
        profile = Profile(id=user.id, skills=[], experience_level="beginner")
        db.session.add(profile)
    for key, value in changes.items():
        setattr(profile, key, value)
    if "full_name" in data:
        user.full_name = full_name
    db.session.commit()
    logger.info("Profile updated", extra={"event_type": "profile_updated", "user_id": user.id})
    return profile
