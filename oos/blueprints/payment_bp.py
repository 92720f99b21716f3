"""
Payment Blueprint — gateway webhook and the advisory client callback.

  POST /api/v1/payments/webhook    — Signed gateway event (sole writer of "completed")
  POST /api/v1/payments/callback   — Browser callback after checkout; checks the
                                     reference with the provider and records a
                                     pending donation only
"""

import logging

from flask import Blueprint, jsonify, request

from oos.blueprints import json_body, require_fields
from oos.integrations.payment_gateway import SIGNATURE_HEADER
from oos.services import donation_service as donation_svc

logger = logging.getLogger(__name__)

payment_bp = Blueprint("payments", __name__, url_prefix="/api/v1/payments")


@payment_bp.route("/webhook", methods=["POST"])
def webhook():
    result = donation_svc.handle_payment_webhook(
        request.get_data(cache=False), request.headers.get(SIGNATURE_HEADER),
    )
    return jsonify(result), 200


@payment_bp.route("/callback", methods=["POST"])
def callback():
    """
    Body: { "startupId", "email", "amount", "reference", "donorName" }
    """
    data = json_body()
    err = require_fields(data, "startupId", "email", "amount", "reference")
    if err:
        return err
    donation = donation_svc.record_callback_donation(
        data["startupId"],
        data["email"],
        data["amount"],
        data["reference"],
        donor_name=data.get("donorName"),
    )
    return jsonify({"donation": donation.to_dict()}), 202
