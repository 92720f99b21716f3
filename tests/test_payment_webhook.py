"""
Payment webhook tests — signature check, event handling, idempotency,
reconciling callback rows and provider-side callback verification.
"""

import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from oos.core.exceptions import UpstreamError
from oos.integrations.payment_gateway import PaymentGateway, payment_gateway
from oos.models import db
from oos.models.donation import Donation
from oos.models.startup import Startup
from oos.services import donation_service as donation_svc
from oos.utils.crypto import hmac_sha512_hex

SECRET = "sk_test_webhook_secret"


def _post(client, payload, signature=None):
    body = json.dumps(payload).encode()
    sig = signature if signature is not None else hmac_sha512_hex(SECRET, body)
    return client.post(
        "/api/v1/payments/webhook",
        data=body,
        content_type="application/json",
        headers={"X-Paystack-Signature": sig},
    )


def _charge(startup, ref="pay-1", amount_kobo=1000000, event="charge.success"):
    return {
        "event": event,
        "data": {
            "reference": ref,
            "amount": amount_kobo,
            "customer": {"email": "donor@acme.io"},
            "metadata": {"startup_id": startup.id, "donor_name": "Dee Donor"},
        },
    }


class TestSignature:
    def test_bad_signature_rejected_no_row(self, client, startup):
        res = _post(client, _charge(startup), signature="deadbeef")
        assert res.status_code == 401
        assert Donation.query.count() == 0

    def test_missing_signature_rejected(self, client, startup):
        res = _post(client, _charge(startup), signature="")
        assert res.status_code == 401
        assert Donation.query.count() == 0

    def test_unconfigured_secret_is_503(self, app, client, startup):
        app.config["PAYSTACK_SECRET_KEY"] = ""
        try:
            res = _post(client, _charge(startup))
        finally:
            app.config["PAYSTACK_SECRET_KEY"] = SECRET
        assert res.status_code == 503


class TestEvents:
    def test_charge_success_records_completed(self, client, startup):
        res = _post(client, _charge(startup))
        assert res.status_code == 200
        body = res.get_json()
        assert body["handled"] is True
        assert body["donation"]["amount"] == "10000.00"
        assert body["donation"]["net_amount"] == "8400.00"
        assert body["donation"]["status"] == "completed"

    def test_redelivery_is_idempotent(self, client, startup):
        _post(client, _charge(startup))
        _post(client, _charge(startup))
        assert Donation.query.count() == 1
        assert donation_svc.total_raised(startup.id) == Decimal("10000.00")

    def test_success_promotes_pending_callback_row(self, client, startup):
        pending = donation_svc.record_pending_donation(startup.id, "donor@acme.io", 10000, "pay-1")
        _post(client, _charge(startup))
        assert Donation.query.count() == 1
        assert db.session.get(Donation, pending.id).status == "completed"

    def test_charge_failed(self, client, startup):
        donation_svc.record_pending_donation(startup.id, "donor@acme.io", 100, "pay-2")
        res = _post(client, _charge(startup, ref="pay-2", amount_kobo=10000, event="charge.failed"))
        assert res.get_json()["donation"]["status"] == "failed"

    def test_refund(self, client, startup):
        _post(client, _charge(startup))
        res = _post(client, {
            "event": "refund.processed",
            "data": {"transaction_reference": "pay-1", "amount": 1000000},
        })
        assert res.get_json()["donation"]["status"] == "refunded"
        assert donation_svc.total_raised(startup.id) == Decimal("0.00")

    def test_refund_for_unknown_reference_is_ignored(self, client, startup):
        res = _post(client, {"event": "refund.processed", "data": {"transaction_reference": "nope"}})
        assert res.status_code == 200
        assert res.get_json()["handled"] is False

    def test_unknown_event_acknowledged(self, client, startup):
        res = _post(client, {"event": "transfer.success", "data": {}})
        assert res.status_code == 200
        assert res.get_json()["handled"] is False

    def test_missing_startup_metadata(self, client, startup):
        payload = _charge(startup)
        payload["data"]["metadata"] = {}
        res = _post(client, payload)
        assert res.status_code == 422
        assert Donation.query.count() == 0

    def test_metadata_as_json_string(self, client, startup):
        payload = _charge(startup)
        payload["data"]["metadata"] = json.dumps({"startup_id": startup.id})
        res = _post(client, payload)
        assert res.status_code == 200
        assert res.get_json()["donation"]["startup_id"] == startup.id


class TestVerifyTransaction:
    def _gateway(self, status_code=200, body=None):
        session = MagicMock()
        resp = MagicMock()
        resp.status_code = status_code
        resp.ok = 200 <= status_code < 300
        resp.json.return_value = body or {}
        session.get.return_value = resp
        return PaymentGateway(session=session), session

    def test_success_converts_minor_units(self):
        gw, session = self._gateway(body={
            "data": {"status": "success", "amount": 250050, "customer": {"email": "donor@acme.io"}},
        })
        result = gw.verify_transaction("pay-9")
        assert result == {"status": "success", "amount": Decimal("2500.50"), "email": "donor@acme.io"}
        url = session.get.call_args[0][0]
        assert url.endswith("/transaction/verify/pay-9")
        assert session.get.call_args[1]["headers"]["Authorization"] == f"Bearer {SECRET}"

    @pytest.mark.parametrize("status_code, reason", [
        (429, "rate_limited"),
        (401, "invalid_credentials"),
        (500, "upstream_error"),
    ])
    def test_errors_classified(self, status_code, reason):
        gw, _ = self._gateway(status_code=status_code)
        with pytest.raises(UpstreamError) as exc:
            gw.verify_transaction("pay-9")
        assert exc.value.reason == reason


def _callback(client, startup, amount, ref):
    return client.post("/api/v1/payments/callback", json={
        "startupId": startup.id, "email": "donor@acme.io", "amount": amount, "reference": ref,
    })


@pytest.fixture()
def second_startup(owner):
    s = Startup(
        user_id=owner.id,
        name="AquaPure",
        description="Water filters for schools",
        bank_name="Zenith Bank",
        bank_account="9876543210",
        bank_account_name="AquaPure Ltd",
    )
    db.session.add(s)
    db.session.commit()
    return s


class TestPendingRowReconciliation:
    def test_signed_amount_replaces_inflated_callback_amount(self, client, startup):
        assert _callback(client, startup, 1000000, "pay-x").status_code == 202

        res = _post(client, _charge(startup, ref="pay-x", amount_kobo=10000))

        assert res.status_code == 200
        db.session.expire_all()
        row = Donation.query.filter_by(payment_reference="pay-x").one()
        assert row.status == "completed"
        assert row.amount == Decimal("100.00")
        assert row.fee_amount == Decimal("16.00")
        assert row.net_amount == Decimal("84.00")
        assert donation_svc.total_raised(startup.id) == Decimal("100.00")

    def test_signed_startup_replaces_callback_startup(self, client, startup, second_startup):
        _callback(client, second_startup, 100, "pay-y")

        _post(client, _charge(startup, ref="pay-y", amount_kobo=10000))

        db.session.expire_all()
        assert Donation.query.filter_by(payment_reference="pay-y").one().startup_id == startup.id
        assert donation_svc.total_raised(second_startup.id) == Decimal("0.00")
        assert donation_svc.total_raised(startup.id) == Decimal("100.00")

    def test_event_without_startup_keeps_row_startup(self, client, startup):
        _callback(client, startup, 100, "pay-z")
        payload = _charge(startup, ref="pay-z", amount_kobo=10000)
        payload["data"]["metadata"] = {}

        res = _post(client, payload)

        assert res.status_code == 200
        assert res.get_json()["donation"]["startup_id"] == startup.id
        assert res.get_json()["donation"]["status"] == "completed"

    def test_event_without_amount_leaves_row_pending(self, client, startup):
        _callback(client, startup, 1000000, "pay-n")
        payload = _charge(startup, ref="pay-n")
        del payload["data"]["amount"]

        res = _post(client, payload)

        assert res.status_code == 422
        db.session.expire_all()
        assert Donation.query.filter_by(payment_reference="pay-n").one().status == "pending"
        assert donation_svc.total_raised(startup.id) == Decimal("0.00")


class TestCallbackVerification:
    @pytest.fixture()
    def provider(self, app, monkeypatch):
        session = MagicMock()
        resp = MagicMock()
        resp.status_code = 200
        resp.ok = True
        session.get.return_value = resp
        monkeypatch.setattr(payment_gateway, "_session", session)
        app.config["PAYMENT_VERIFY_CALLBACK"] = True
        yield session, resp
        app.config["PAYMENT_VERIFY_CALLBACK"] = False

    def test_provider_amount_and_email_replace_client_values(self, client, startup, provider):
        session, resp = provider
        resp.json.return_value = {
            "data": {"status": "success", "amount": 10000, "customer": {"email": "Real@Donor.io"}},
        }

        res = _callback(client, startup, 1000000, "cb-9")

        assert res.status_code == 202
        body = res.get_json()["donation"]
        assert body["status"] == "pending"
        assert body["amount"] == "100.00"
        assert body["donor_email"] == "real@donor.io"
        assert session.get.call_args[0][0].endswith("/transaction/verify/cb-9")

    def test_failed_charge_rejected(self, client, startup, provider):
        _, resp = provider
        resp.json.return_value = {"data": {"status": "failed", "amount": 10000}}

        res = _callback(client, startup, 100, "cb-10")

        assert res.status_code == 422
        assert Donation.query.count() == 0

    def test_provider_outage_is_502(self, client, startup, provider):
        _, resp = provider
        resp.status_code = 500
        resp.ok = False

        res = _callback(client, startup, 100, "cb-11")

        assert res.status_code == 502
        assert Donation.query.count() == 0
