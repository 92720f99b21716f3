"""
OOS WebApp
Blueprint helpers.
"""

from flask import request

from oos.utils.errors import E, api_error


def json_body() -> dict:
    """Parsed JSON object body, or {} when absent or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def require_fields(data: dict, *fields):
    """Return a 400 error tuple naming the first missing field, else None.

    Usage:
        err = require_fields(data, "roomName")
        if err:
            return err
    """
    missing = [f for f in fields if data.get(f) in (None, "")]
    if not missing:
        return None
    label = " and ".join(missing)
    verb = "are" if len(missing) > 1 else "is"
    return api_error(
        E.VALIDATION_REQUIRED, f"{label} {verb} required",
        details={f: "required" for f in missing},
    )
