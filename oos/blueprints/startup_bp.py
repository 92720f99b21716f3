"""
Startup Blueprint — profiles, verification, bank proof, audience, totals.

Profiles:
  GET    /api/v1/startups                          — Active startups (?mine=1 for own)
  POST   /api/v1/startups                          — Register
  GET    /api/v1/startups/<id>                     — Detail (+ bank fields for owner)
  PUT    /api/v1/startups/<id>                     — Update profile / bank fields (owner)
  DELETE /api/v1/startups/<id>                     — Soft delete (owner)
  GET    /api/v1/startups/<id>/expiration          — Days remaining

Verification documents:
  POST   /api/v1/startups/verify                   — Submit { startupId, documentType, documentUrl }
  PUT    /api/v1/startups/verify                   — Review { documentId, status, startupId }
  GET    /api/v1/startups/<id>/documents           — Owner / admin
  POST   /api/v1/startups/documents/<doc_id>/resubmit

Bank verification:
  POST   /api/v1/startups/<id>/bank-verify         — Submit { documentUrl }
  PUT    /api/v1/startups/<id>/bank-verify         — Review { verificationId, status }
  GET    /api/v1/startups/<id>/bank-verify         — Owner / admin
  POST   /api/v1/startups/bank-verify/<vid>/resubmit

Audience & money:
  GET|POST|DELETE /api/v1/startups/<id>/newsletter
  GET|POST        /api/v1/startups/<id>/comments
  GET             /api/v1/startups/<id>/donations/total
"""

from flask import Blueprint, jsonify, request

from oos.blueprints import json_body, require_fields
from oos.core.exceptions import NotFoundError
from oos.services import authorization as authz
from oos.services import bank_verification_service as bank_svc
from oos.services import donation_service as donation_svc
from oos.services import startup_service as startup_svc
from oos.services import verification_service as verification_svc

startup_bp = Blueprint("startup", __name__, url_prefix="/api/v1/startups")


def _money(value):
    return f"{value:.2f}"


# ═══════════════════════════════════════════════════════════════
# Profiles
# ═══════════════════════════════════════════════════════════════
@startup_bp.route("", methods=["GET"])
def list_startups():
    owner_id = None
    if request.args.get("mine") in ("1", "true"):
        owner_id = authz.require_authenticated().id
    startups = startup_svc.list_startups(active_only=owner_id is None, owner_id=owner_id)
    return jsonify({"startups": [s.to_dict() for s in startups]})


@startup_bp.route("", methods=["POST"])
def create_startup():
    user = authz.require_authenticated()
    startup = startup_svc.create_startup(user, json_body())
    return jsonify({"startup": startup.to_dict(include_bank=True)}), 201


@startup_bp.route("/<startup_id>", methods=["GET"])
def get_startup(startup_id):
    startup = startup_svc.get_startup(startup_id)
    viewer = authz.current_principal()
    is_owner = viewer is not None and viewer.id == startup.user_id
    if not startup.is_active and not is_owner:
        raise NotFoundError("Startup", startup_id)
    return jsonify({
        "startup": startup.to_dict(include_bank=is_owner),
        "expiration": startup_svc.expiration_status(startup),
    })


@startup_bp.route("/<startup_id>", methods=["PUT"])
def update_startup(startup_id):
    user = authz.require_authenticated()
    startup = startup_svc.update_startup(startup_id, user, json_body())
    return jsonify({"startup": startup.to_dict(include_bank=True)})


@startup_bp.route("/<startup_id>", methods=["DELETE"])
def delete_startup(startup_id):
    user = authz.require_authenticated()
    startup_svc.deactivate_startup(startup_id, user, json_body().get("reason"))
    return jsonify({"message": "Startup deleted successfully"})


@startup_bp.route("/<startup_id>/expiration", methods=["GET"])
def expiration(startup_id):
    startup = startup_svc.get_startup(startup_id)
    return jsonify(startup_svc.expiration_status(startup))


# ═══════════════════════════════════════════════════════════════
# Verification documents
# ═══════════════════════════════════════════════════════════════
@startup_bp.route("/verify", methods=["POST"])
def submit_document():
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "startupId", "documentType", "documentUrl")
    if err:
        return err
    doc = verification_svc.submit_document(
        data["startupId"], user, data["documentType"], data["documentUrl"],
    )
    return jsonify({"success": True, "document": doc.to_dict()}), 201


@startup_bp.route("/verify", methods=["PUT"])
def review_document():
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "documentId", "status")
    if err:
        return err
    doc = verification_svc.review_document(
        data["documentId"], user, data["status"], data.get("startupId"),
    )
    return jsonify({"success": True, "document": doc.to_dict()})


@startup_bp.route("/<startup_id>/documents", methods=["GET"])
def list_documents(startup_id):
    user = authz.require_authenticated()
    docs = verification_svc.list_documents(startup_id, user)
    return jsonify({"documents": [d.to_dict() for d in docs]})


@startup_bp.route("/documents/<document_id>/resubmit", methods=["POST"])
def resubmit_document(document_id):
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "documentUrl")
    if err:
        return err
    doc = verification_svc.resubmit_document(document_id, user, data["documentUrl"])
    return jsonify({"success": True, "document": doc.to_dict()})


# ═══════════════════════════════════════════════════════════════
# Bank verification
# ═══════════════════════════════════════════════════════════════
@startup_bp.route("/<startup_id>/bank-verify", methods=["POST"])
def submit_bank_verification(startup_id):
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "documentUrl")
    if err:
        return err
    verification = bank_svc.submit_bank_verification(startup_id, user, data["documentUrl"])
    return jsonify({
        "success": True,
        "message": "Bank verification submitted successfully",
        "verification": verification.to_dict(mask_account=True),
    }), 201


@startup_bp.route("/<startup_id>/bank-verify", methods=["PUT"])
def review_bank_verification(startup_id):
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "verificationId", "status")
    if err:
        return err
    verification = bank_svc.review_bank_verification(
        data["verificationId"], user, data["status"], startup_id,
    )
    return jsonify({
        "success": True,
        "message": f"Bank verification {verification.status}",
        "verification": verification.to_dict(mask_account=True),
    })


@startup_bp.route("/<startup_id>/bank-verify", methods=["GET"])
def list_bank_verifications(startup_id):
    user = authz.require_authenticated()
    rows = bank_svc.list_bank_verifications(startup_id, user)
    return jsonify({"verifications": [v.to_dict(mask_account=True) for v in rows]})


@startup_bp.route("/bank-verify/<verification_id>/resubmit", methods=["POST"])
def resubmit_bank_verification(verification_id):
    user = authz.require_authenticated()
    data = json_body()
    err = require_fields(data, "documentUrl")
    if err:
        return err
    verification = bank_svc.resubmit_bank_verification(verification_id, user, data["documentUrl"])
    return jsonify({"success": True, "verification": verification.to_dict(mask_account=True)})


# ═══════════════════════════════════════════════════════════════
# Newsletter
# ═══════════════════════════════════════════════════════════════
@startup_bp.route("/<startup_id>/newsletter", methods=["GET"])
def newsletter_status(startup_id):
    user = authz.require_authenticated()
    return jsonify(startup_svc.subscription_status(startup_id, user))


@startup_bp.route("/<startup_id>/newsletter", methods=["POST"])
def newsletter_subscribe(startup_id):
    user = authz.require_authenticated()
    subscription = startup_svc.subscribe(startup_id, user)
    return jsonify({
        "message": "Successfully subscribed to newsletter",
        "subscription": subscription.to_dict(),
    }), 201


@startup_bp.route("/<startup_id>/newsletter", methods=["DELETE"])
def newsletter_unsubscribe(startup_id):
    user = authz.require_authenticated()
    startup_svc.unsubscribe(startup_id, user)
    return jsonify({"message": "Successfully unsubscribed from newsletter"})


# ═══════════════════════════════════════════════════════════════
# Comments
# ═══════════════════════════════════════════════════════════════
@startup_bp.route("/<startup_id>/comments", methods=["GET"])
def list_comments(startup_id):
    comments = startup_svc.list_comments(startup_id)
    return jsonify({"comments": [c.to_dict() for c in comments]})


@startup_bp.route("/<startup_id>/comments", methods=["POST"])
def add_comment(startup_id):
    user = authz.require_authenticated()
    comment = startup_svc.add_comment(startup_id, user, json_body().get("content"))
    return jsonify({"comment": comment.to_dict()}), 201


# ═══════════════════════════════════════════════════════════════
# Donations
# ═══════════════════════════════════════════════════════════════
@startup_bp.route("/<startup_id>/donations/total", methods=["GET"])
def donation_total(startup_id):
    startup_svc.get_startup(startup_id)
    summary = donation_svc.donation_summary(startup_id)
    return jsonify({
        "startup_id": startup_id,
        "total_raised": _money(summary["total_raised"]),
        "net_raised": _money(summary["net_raised"]),
        "platform_fees": _money(summary["platform_fees"]),
        "donation_count": summary["donation_count"],
    })
