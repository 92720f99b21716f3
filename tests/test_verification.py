"""
Verification tier state machine tests.

    registered ──submit cac──▶ pending_verification ──approve──▶ verified
    document: pending → approved | rejected, rejected → pending (resubmit)
"""

import pytest

from oos.core.exceptions import NotFoundError, PermissionDenied, TransitionError, ValidationError
from oos.models import db
from oos.models.startup import DOCUMENT_TRANSITIONS, StartupDocument
from oos.services import verification_service as vs

DOC_URL = "https://files.acme.io/cac.pdf"


def _submit(startup, owner, document_type="cac_certificate"):
    return vs.submit_document(startup.id, owner, document_type, DOC_URL)


class TestSubmit:
    def test_cac_submission_moves_tier_to_pending(self, startup, owner):
        doc = _submit(startup, owner)
        assert doc.status == "pending"
        assert startup.verification_tier == "pending_verification"

    def test_other_document_leaves_tier(self, startup, owner):
        _submit(startup, owner, "tax_clearance")
        assert startup.verification_tier == "registered"

    def test_non_owner_forbidden(self, startup, outsider):
        with pytest.raises(PermissionDenied):
            _submit(startup, outsider)
        assert StartupDocument.query.count() == 0

    def test_unknown_startup(self, owner):
        with pytest.raises(NotFoundError):
            vs.submit_document("missing", owner, "cac_certificate", DOC_URL)

    def test_missing_url(self, startup, owner):
        with pytest.raises(ValidationError):
            vs.submit_document(startup.id, owner, "cac_certificate", "  ")


class TestReview:
    def test_approve_cac_verifies_startup(self, startup, owner, admin):
        doc = _submit(startup, owner)
        vs.review_document(doc.id, admin, "approved", startup.id)

        assert doc.status == "approved"
        assert doc.verified_by == admin.id
        assert doc.verified_at is not None
        assert startup.verification_tier == "verified"
        assert startup.kyc_status == "verified"

    def test_reject_keeps_tier_pending(self, startup, owner, admin):
        doc = _submit(startup, owner)
        vs.review_document(doc.id, admin, "rejected")
        assert doc.status == "rejected"
        assert startup.verification_tier == "pending_verification"
        assert startup.kyc_status == "pending"

    def test_review_requires_badge(self, startup, owner, outsider):
        doc = _submit(startup, owner)
        with pytest.raises(PermissionDenied):
            vs.review_document(doc.id, outsider, "approved")
        assert doc.status == "pending"

    def test_owner_without_badge_cannot_self_approve(self, startup, owner):
        doc = _submit(startup, owner)
        with pytest.raises(PermissionDenied):
            vs.review_document(doc.id, owner, "approved")

    def test_mismatched_startup_id(self, startup, owner, admin):
        doc = _submit(startup, owner)
        with pytest.raises(ValidationError):
            vs.review_document(doc.id, admin, "approved", "another-startup")
        assert doc.status == "pending"

    def test_invalid_decision(self, startup, owner, admin):
        doc = _submit(startup, owner)
        with pytest.raises(ValidationError):
            vs.review_document(doc.id, admin, "maybe")

    @pytest.mark.parametrize("first", ["approved", "rejected"])
    def test_reviewed_document_cannot_be_reviewed_again(self, startup, owner, admin, first):
        doc = _submit(startup, owner)
        vs.review_document(doc.id, admin, first)
        with pytest.raises(TransitionError):
            vs.review_document(doc.id, admin, "approved")


class TestResubmit:
    def test_rejected_document_returns_to_pending(self, startup, owner, admin):
        doc = _submit(startup, owner)
        vs.review_document(doc.id, admin, "rejected")

        vs.resubmit_document(doc.id, owner, "https://files.acme.io/cac-v2.pdf")
        assert doc.status == "pending"
        assert doc.document_url.endswith("cac-v2.pdf")
        assert doc.verified_by is None

        vs.review_document(doc.id, admin, "approved")
        assert startup.verification_tier == "verified"

    def test_pending_document_cannot_be_resubmitted(self, startup, owner):
        doc = _submit(startup, owner)
        with pytest.raises(TransitionError):
            vs.resubmit_document(doc.id, owner, DOC_URL)

    def test_transition_table_shape(self):
        assert DOCUMENT_TRANSITIONS["resubmit"] == {"from": ["rejected"], "to": "pending"}


class TestListing:
    def test_pending_queue_is_admin_only(self, startup, owner, admin):
        _submit(startup, owner)
        assert len(vs.list_pending_documents(admin)) == 1
        with pytest.raises(PermissionDenied):
            vs.list_pending_documents(owner)

    def test_documents_visible_to_owner_and_admin(self, startup, owner, admin, outsider):
        _submit(startup, owner)
        assert len(vs.list_documents(startup.id, owner)) == 1
        assert len(vs.list_documents(startup.id, admin)) == 1
        with pytest.raises(PermissionDenied):
            vs.list_documents(startup.id, outsider)


class TestVerificationAPI:
    def test_submit_and_approve(self, client, startup, owner, admin, auth_headers):
        res = client.post(
            "/api/v1/startups/verify",
            json={"startupId": startup.id, "documentType": "cac_certificate", "documentUrl": DOC_URL},
            headers=auth_headers(owner),
        )
        assert res.status_code == 201
        doc_id = res.get_json()["document"]["id"]

        res = client.put(
            "/api/v1/startups/verify",
            json={"documentId": doc_id, "status": "approved", "startupId": startup.id},
            headers=auth_headers(admin),
        )
        assert res.status_code == 200
        assert res.get_json()["document"]["status"] == "approved"

        db.session.expire_all()
        res = client.get(f"/api/v1/startups/{startup.id}")
        assert res.get_json()["startup"]["verification_tier"] == "verified"

    def test_missing_fields_is_400(self, client, owner, auth_headers):
        res = client.post("/api/v1/startups/verify", json={}, headers=auth_headers(owner))
        assert res.status_code == 400

    def test_review_without_badge_is_403(self, client, startup, owner, auth_headers):
        doc = _submit(startup, owner)
        res = client.put(
            "/api/v1/startups/verify",
            json={"documentId": doc.id, "status": "approved"},
            headers=auth_headers(owner),
        )
        assert res.status_code == 403

    def test_second_review_is_409(self, client, startup, owner, admin, auth_headers):
        doc = _submit(startup, owner)
        vs.review_document(doc.id, admin, "rejected")
        res = client.put(
            "/api/v1/startups/verify",
            json={"documentId": doc.id, "status": "approved"},
            headers=auth_headers(admin),
        )
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFLICT_STATE"
        assert body["details"]["current_status"] == "rejected"
