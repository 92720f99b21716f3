"""
Donation ledger tests — fee split, idempotency, transitions, totals.
"""

from decimal import Decimal

import pytest

from oos.core.exceptions import NotFoundError, TransitionError, ValidationError
from oos.models import db
from oos.models.donation import Donation
from oos.services import donation_service as donation_svc


def _record(startup, amount, ref, status="completed", provider="paystack"):
    return donation_svc.record_donation(
        startup.id, "donor@acme.io", amount, ref, provider, status=status,
    )


class TestSplitAmount:
    @pytest.mark.parametrize("gross, fee, net", [
        ("100.00", "16.00", "84.00"),
        ("1.00", "0.16", "0.84"),
        ("12.34", "1.97", "10.37"),
        ("0.50", "0.08", "0.42"),
    ])
    def test_split(self, gross, fee, net):
        assert donation_svc.split_amount(gross) == (Decimal(fee), Decimal(net))

    def test_fee_plus_net_is_gross(self):
        for cents in range(100, 2000, 37):
            gross = Decimal(cents) / 100
            fee, net = donation_svc.split_amount(gross)
            assert fee + net == gross


class TestRecordDonation:
    def test_hundred(self, startup):
        d = _record(startup, 100, "ref-100")
        assert d.fee_percentage == Decimal("16.00")
        assert d.fee_amount == Decimal("16.00")
        assert d.net_amount == Decimal("84.00")
        assert d.status == "completed"

    def test_float_input_goes_through_str(self, startup):
        d = _record(startup, 10.1 + 0.2, "ref-float")
        assert d.amount == Decimal("10.30")

    def test_duplicate_reference_returns_existing(self, startup):
        first = _record(startup, 50, "ref-dup")
        second = _record(startup, 50, "ref-dup")
        assert first.id == second.id
        assert Donation.query.count() == 1

    def test_same_reference_other_provider_is_distinct(self, startup):
        _record(startup, 50, "ref-x", provider="paystack")
        _record(startup, 50, "ref-x", provider="flutterwave")
        assert Donation.query.count() == 2

    @pytest.mark.parametrize("amount", [0, "0.99", -5, "abc", None])
    def test_invalid_amount(self, startup, amount):
        with pytest.raises(ValidationError):
            _record(startup, amount, "ref-bad")
        assert Donation.query.count() == 0

    def test_invalid_email(self, startup):
        with pytest.raises(ValidationError):
            donation_svc.record_donation(startup.id, "not-an-email", 10, "ref-1", "paystack")

    def test_empty_reference(self, startup):
        with pytest.raises(ValidationError):
            _record(startup, 10, "   ")

    def test_inactive_startup(self, startup):
        startup.is_active = False
        db.session.commit()
        with pytest.raises(NotFoundError):
            _record(startup, 10, "ref-inactive")

    def test_unknown_startup(self):
        with pytest.raises(NotFoundError):
            donation_svc.record_donation("missing", "donor@acme.io", 10, "ref-1", "paystack")


class TestTransitions:
    def test_pending_to_completed_to_refunded(self, startup):
        d = _record(startup, 20, "ref-t", status="pending")
        donation_svc.mark_completed(d.id)
        assert d.status == "completed"
        donation_svc.refund_donation(d.id)
        assert d.status == "refunded"

    def test_pending_to_failed(self, startup):
        d = _record(startup, 20, "ref-f", status="pending")
        donation_svc.mark_failed(d.id)
        assert d.status == "failed"

    def test_refund_pending_is_rejected(self, startup):
        d = _record(startup, 20, "ref-r", status="pending")
        with pytest.raises(TransitionError):
            donation_svc.refund_donation(d.id)

    def test_failed_cannot_complete(self, startup):
        d = _record(startup, 20, "ref-x", status="failed")
        with pytest.raises(TransitionError):
            donation_svc.mark_completed(d.id)

    def test_amounts_never_change(self, startup):
        d = _record(startup, 20, "ref-a", status="pending")
        donation_svc.mark_completed(d.id)
        donation_svc.refund_donation(d.id)
        assert (d.amount, d.fee_amount, d.net_amount) == (
            Decimal("20.00"), Decimal("3.20"), Decimal("16.80"),
        )


class TestTotals:
    def test_total_counts_completed_only(self, startup):
        _record(startup, "50.00", "r1")
        _record(startup, "30.00", "r2")
        _record(startup, "99.00", "r3", status="pending")
        assert donation_svc.total_raised(startup.id) == Decimal("80.00")

    def test_refund_reduces_total(self, startup):
        d = _record(startup, "50.00", "r1")
        _record(startup, "30.00", "r2")
        donation_svc.refund_donation(d.id)
        assert donation_svc.total_raised(startup.id) == Decimal("30.00")

    def test_empty_total_is_zero(self, startup):
        assert donation_svc.total_raised(startup.id) == Decimal("0.00")

    def test_summary(self, startup):
        _record(startup, "50.00", "r1")
        _record(startup, "30.00", "r2")
        summary = donation_svc.donation_summary(startup.id)
        assert summary["total_raised"] == Decimal("80.00")
        assert summary["platform_fees"] == Decimal("12.80")
        assert summary["net_raised"] == Decimal("67.20")
        assert summary["donation_count"] == 2

    def test_total_endpoint(self, client, startup):
        _record(startup, "50.00", "r1")
        _record(startup, "30.00", "r2")
        res = client.get(f"/api/v1/startups/{startup.id}/donations/total")
        assert res.status_code == 200
        body = res.get_json()
        assert body["total_raised"] == "80.00"
        assert body["net_raised"] == "67.20"


class TestClientCallback:
    def test_callback_records_pending_only(self, client, startup):
        res = client.post("/api/v1/payments/callback", json={
            "startupId": startup.id,
            "email": "donor@acme.io",
            "amount": 25,
            "reference": "cb-1",
            "donorName": "Dee Donor",
        })
        assert res.status_code == 202
        assert res.get_json()["donation"]["status"] == "pending"
        assert donation_svc.total_raised(startup.id) == Decimal("0.00")

    def test_callback_below_minimum(self, client, startup):
        res = client.post("/api/v1/payments/callback", json={
            "startupId": startup.id, "email": "donor@acme.io", "amount": "0.5", "reference": "cb-2",
        })
        assert res.status_code == 422
