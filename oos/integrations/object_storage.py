"""
Object Storage — local filesystem backend for verification documents and
bank proof uploads.

Files land under UPLOAD_FOLDER with a random key prefix and are served back
at ``/uploads/<key>``.  Size and content-type checks run before anything is
written.
"""

from __future__ import annotations

import logging
import os
import uuid

from flask import current_app, url_for
from werkzeug.utils import safe_join, secure_filename

from oos.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"application/pdf"})
ALLOWED_CONTENT_PREFIXES = ("image/",)


def is_allowed_content_type(content_type: str | None) -> bool:
    content_type = (content_type or "").split(";")[0].strip().lower()
    if not content_type:
        return False
    return content_type in ALLOWED_CONTENT_TYPES or content_type.startswith(ALLOWED_CONTENT_PREFIXES)


class LocalObjectStorage:
    """Writes uploads to a directory on local disk.

    Args:
        root: Target directory; defaults to ``UPLOAD_FOLDER`` from app config.
        max_bytes: Size cap; defaults to ``MAX_UPLOAD_BYTES``.
    """

    def __init__(self, root: str | None = None, max_bytes: int | None = None) -> None:
        self._root = root
        self._max_bytes = max_bytes

    @property
    def root(self) -> str:
        return self._root or current_app.config["UPLOAD_FOLDER"]

    @property
    def max_bytes(self) -> int:
        return self._max_bytes or current_app.config["MAX_UPLOAD_BYTES"]

    def _check(self, data: bytes, content_type: str | None) -> None:
        if not data:
            raise ValidationError("File is empty", details={"file": "empty"})
        if len(data) > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise ValidationError(
                f"File size must be less than {limit_mb:g}MB", details={"file": "too_large"},
            )
        if not is_allowed_content_type(content_type):
            raise ValidationError(
                "Only images and PDF files are allowed", details={"file": "unsupported_type"},
            )

    def store(self, data: bytes, filename: str, content_type: str | None) -> str:
        """Persist *data* and return its key."""
        self._check(data, content_type)
        safe_name = secure_filename(filename or "") or "upload"
        key = f"{uuid.uuid4().hex}_{safe_name}"

        os.makedirs(self.root, exist_ok=True)
        with open(os.path.join(self.root, key), "wb") as fh:
            fh.write(data)

        logger.info("Stored upload key=%s bytes=%d", key, len(data))
        return key

    def path_for(self, key: str) -> str:
        path = safe_join(self.root, key)
        if path is None or not os.path.isfile(path):
            raise NotFoundError("Upload", key)
        return path

    def public_url(self, key: str) -> str:
        base = current_app.config.get("PUBLIC_BASE_URL") or ""
        if base:
            return f"{base.rstrip('/')}/uploads/{key}"
        return url_for("uploads.serve_upload", key=key, _external=False)


storage = LocalObjectStorage()


def store(data: bytes, filename: str, content_type: str | None) -> str:
    """Store an upload and return the URL it is served from."""
    key = storage.store(data, filename, content_type)
    return storage.public_url(key)
