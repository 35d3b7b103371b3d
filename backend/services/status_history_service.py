"""
Service for reading the complaint status history ledger.

Ledger entries are appended only by ComplaintRepository, in the same
transaction as the status change they record.
"""

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from repositories.complaint_repository import ComplaintRepository
from repositories.status_history_repository import StatusHistoryRepository
from services.access_policy import AccessPolicy
from services.identity_service import IdentityService


class StatusHistoryService:
    """Read access to a complaint's status history."""

    @staticmethod
    def list_for_complaint(
        db: Session, complaint_id: str, requester_id: str
    ) -> list[db_models.StatusHistoryEntry]:
        """
        Get the ledger for a complaint, oldest entry first.

        Visibility follows the owning complaint: its student or an admin.

        Args:
            db: Database session
            complaint_id: Complaint ID
            requester_id: Requesting principal

        Returns:
            Ledger entries ordered by changed_at ascending

        Raises:
            ComplaintAccessDeniedException: Requester is not owner/admin
            ComplaintNotFoundException: Admin requested a missing complaint
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        AccessPolicy.ensure_complaint_visible(
            principal,
            ComplaintRepository(db).get_visible(
                complaint_id, principal.id, principal.is_admin
            ),
            complaint_id,
        )
        return StatusHistoryRepository(db).list_for_complaint(complaint_id)
