"""
Status history ledger data access.

``append`` only stages a row in the caller's session. It never commits, so the
ledger row and the complaint change it describes are flushed and committed (or
rolled back) together by ComplaintRepository.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class StatusHistoryRepository(BaseRepository[db_models.StatusHistoryEntry]):
    """Append-only access to complaint_status_history."""

    def __init__(self, db: Session):
        super().__init__(db_models.StatusHistoryEntry, db)

    def append(
        self,
        complaint: db_models.Complaint,
        changed_by_user_id: str,
        from_status: Optional[db_models.ComplaintStatus],
        to_status: db_models.ComplaintStatus,
        note_snapshot: Optional[str],
    ) -> db_models.StatusHistoryEntry:
        """
        Stage a ledger entry for a status change.

        Args:
            complaint: Complaint whose status changed (already flushed)
            changed_by_user_id: Acting principal
            from_status: Previous status, None for the initial entry
            to_status: New status
            note_snapshot: Admin note as of this change

        Returns:
            The staged entry (flushed, not committed)
        """
        entry = db_models.StatusHistoryEntry(
            complaint_id=complaint.id,
            changed_by_user_id=changed_by_user_id,
            from_status=from_status,
            to_status=to_status,
            note_snapshot=note_snapshot,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_for_complaint(
        self, complaint_id: str
    ) -> list[db_models.StatusHistoryEntry]:
        """
        Ledger entries for one complaint, oldest first.

        Args:
            complaint_id: Complaint ID

        Returns:
            Entries ordered by changed_at ascending
        """
        return (
            self.db.query(db_models.StatusHistoryEntry)
            .filter(db_models.StatusHistoryEntry.complaint_id == complaint_id)
            .order_by(db_models.StatusHistoryEntry.changed_at.asc())
            .all()
        )
