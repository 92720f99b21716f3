"""
Payment Gateway — Paystack-compatible webhook verification and transaction
lookup.

All outbound HTTP calls to the payment provider go through this class.
Services never call `requests` directly.

  - Webhook bodies are authenticated with HMAC-SHA512 of the raw body keyed
    by the secret key (header ``X-Paystack-Signature``).
  - Amounts arrive in minor units (kobo / cents) and are converted to
    2-place Decimals before they leave this module.
  - verify_transaction() is the optional server-side confirmation against
    ``PAYSTACK_BASE_URL/transaction/verify/<reference>``.

Testability: pass a mock `session` to PaymentGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal

import requests
from flask import current_app

from oos.core.exceptions import AuthenticationError, UpstreamError, ValidationError
from oos.utils.crypto import signature_matches
from oos.utils.money import from_minor_units

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Paystack-Signature"

# Gateway event → ledger action
EVENT_ACTIONS = {
    "charge.success": "complete",
    "charge.failed": "fail",
    "refund.processed": "refund",
}


@dataclass
class PaymentEvent:
    """Normalised webhook payload."""

    event: str
    action: str | None
    reference: str
    amount: Decimal | None = None
    email: str | None = None
    startup_id: str | None = None
    donor_name: str | None = None
    raw: dict = field(default_factory=dict, repr=False)


def _metadata(data: dict) -> dict:
    meta = data.get("metadata") or {}
    # Paystack echoes metadata back as a JSON string when it was sent as one
    if isinstance(meta, str):
        try:
            meta = json.loads(meta)
        except ValueError:
            meta = {}
    return meta if isinstance(meta, dict) else {}


def _reference(event: str, data: dict) -> str:
    if event.startswith("refund."):
        ref = data.get("transaction_reference") or (data.get("transaction") or {}).get("reference")
    else:
        ref = data.get("reference")
    return str(ref or "").strip()


class PaymentGateway:
    """Paystack API gateway.

    Usage:
        from oos.integrations.payment_gateway import payment_gateway
        event = payment_gateway.parse_webhook(raw_body, signature)
    """

    provider = "paystack"

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @staticmethod
    def _secret() -> str:
        return current_app.config.get("PAYSTACK_SECRET_KEY") or ""

    # ── Webhooks ─────────────────────────────────────────────────────────────

    def verify_signature(self, raw_body: bytes, signature: str | None) -> bool:
        return signature_matches(self._secret(), raw_body, signature)

    def parse_webhook(self, raw_body: bytes, signature: str | None) -> PaymentEvent:
        """Authenticate and normalise a webhook body.

        Raises:
            UpstreamError: no secret key configured.
            AuthenticationError: missing or bad signature.
            ValidationError: malformed payload.
        """
        if not self._secret():
            raise UpstreamError(self.provider, "not_configured", "Payment gateway is not configured")
        if not self.verify_signature(raw_body, signature):
            logger.warning("Rejected payment webhook: invalid signature")
            raise AuthenticationError("Invalid webhook signature")

        try:
            payload = json.loads(raw_body)
        except ValueError as exc:
            raise ValidationError("Malformed webhook payload") from exc
        if not isinstance(payload, dict):
            raise ValidationError("Malformed webhook payload")

        event = str(payload.get("event") or "")
        data = payload.get("data") or {}
        meta = _metadata(data)

        amount = None
        if data.get("amount") is not None:
            try:
                amount = from_minor_units(data["amount"])
            except ValueError as exc:
                raise ValidationError("Malformed webhook amount", details={"amount": "invalid"}) from exc

        return PaymentEvent(
            event=event,
            action=EVENT_ACTIONS.get(event),
            reference=_reference(event, data),
            amount=amount,
            email=(data.get("customer") or {}).get("email") or meta.get("email"),
            startup_id=meta.get("startup_id") or meta.get("startupId"),
            donor_name=meta.get("donor_name") or meta.get("donorName"),
            raw=payload,
        )

    # ── Server-side verification ─────────────────────────────────────────────

    def verify_transaction(self, reference: str) -> dict:
        """Look up a transaction at the provider.

        Returns:
            dict with ``status`` (provider status string), ``amount`` (Decimal,
            major units) and ``email``.

        Raises:
            UpstreamError: not configured, network failure or non-2xx.
        """
        secret = self._secret()
        if not secret:
            raise UpstreamError(self.provider, "not_configured", "Payment gateway is not configured")

        base_url = current_app.config["PAYSTACK_BASE_URL"].rstrip("/")
        timeout = current_app.config.get("PAYMENT_VERIFY_TIMEOUT", 10)
        try:
            resp = self.session.get(
                f"{base_url}/transaction/verify/{reference}",
                headers={"Authorization": f"Bearer {secret}"},
                timeout=timeout,
            )
        except requests.RequestException as exc:
            logger.error("Payment verification request failed ref=%s: %s", reference, exc)
            raise UpstreamError(self.provider, "upstream_error", "Payment provider unreachable") from exc

        if resp.status_code == 429:
            raise UpstreamError(self.provider, "rate_limited", "Payment provider rate limit hit")
        if resp.status_code == 401:
            raise UpstreamError(self.provider, "invalid_credentials", "Payment provider rejected credentials")
        if not resp.ok:
            raise UpstreamError(
                self.provider, "upstream_error",
                f"Payment verification failed (HTTP {resp.status_code})",
            )

        data = (resp.json() or {}).get("data") or {}
        return {
            "status": data.get("status"),
            "amount": from_minor_units(data["amount"]) if data.get("amount") is not None else None,
            "email": (data.get("customer") or {}).get("email"),
        }


payment_gateway = PaymentGateway()
