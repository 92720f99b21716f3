"""
Crypto utilities — bcrypt password hashing and HMAC signature checks.
"""

import hashlib
import hmac

import bcrypt


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt (12 rounds)."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash:
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )


def hmac_sha512_hex(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


def signature_matches(secret: str, payload: bytes, signature: str | None) -> bool:
    """Constant-time comparison of an HMAC-SHA512 hex signature."""
    if not secret or not signature:
        return False
    return hmac.compare_digest(hmac_sha512_hex(secret, payload), signature.strip().lower())
