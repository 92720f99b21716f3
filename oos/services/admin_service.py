"""
Admin Service — platform-wide counters and the combined review queue.

Callers must hold an admin badge.
"""

from oos.models.auth import User
from oos.models.donation import Donation
from oos.models.startup import BankVerification, Startup, StartupDocument
from oos.models.workspace import Workspace
from oos.services import authorization as authz
from oos.services import bank_verification_service as bank_svc
from oos.services import verification_service as verification_svc


def platform_stats(user: User) -> dict:
    authz.require_admin_capability(user, "admin.stats")
    return {
        "totalUsers": User.query.count(),
        "totalStartups": Startup.query.filter_by(is_active=True).count(),
        "totalWorkspaces": Workspace.query.count(),
        "totalDonations": Donation.query.filter_by(status="completed").count(),
        "pendingDocuments": StartupDocument.query.filter_by(status="pending").count(),
        "pendingBankVerifications": BankVerification.query.filter_by(status="pending").count(),
    }


def pending_verifications(user: User) -> dict:
    """Documents and bank requests awaiting review; account numbers masked."""
    documents = verification_svc.list_pending_documents(user)
    bank = bank_svc.list_pending_bank_verifications(user)
    return {
        "documents": [d.to_dict() for d in documents],
        "bankVerifications": [b.to_dict(mask_account=True) for b in bank],
    }
