"""
Uploads Blueprint — verification document and bank proof files.

  POST /api/v1/uploads     — multipart "file" → { "url", "key" }
  GET  /uploads/<key>      — Serve a stored file
"""

import os

from flask import Blueprint, jsonify, request, send_file

from oos.integrations import object_storage
from oos.services import authorization as authz
from oos.utils.errors import E, api_error

uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.route("/api/v1/uploads", methods=["POST"])
def upload():
    authz.require_authenticated()
    file = request.files.get("file")
    if file is None or not file.filename:
        return api_error(E.VALIDATION_REQUIRED, "file is required")

    data = file.read()
    key = object_storage.storage.store(data, file.filename, file.mimetype)
    return jsonify({"key": key, "url": object_storage.storage.public_url(key)}), 201


@uploads_bp.route("/uploads/<path:key>", methods=["GET"])
def serve_upload(key):
    path = object_storage.storage.path_for(key)
    return send_file(os.path.abspath(path))
