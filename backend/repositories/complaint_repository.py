"""
Complaint repository.

Reads are row-scoped: a non-admin principal only ever sees rows it owns, the
same filter a row-level security policy would apply in the database.

Writes that change ``status`` go through ``insert_with_history`` and
``apply_status_change``. Both stage the ledger entry in the same session and
commit once, so a status change without its history row (or the reverse) is
never persisted.
"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, contains_eager

import repositories.db_models as db_models
from models.exceptions import (
    InvalidStatusTransitionException,
    LedgerWriteException,
    ResolvedComplaintFrozenException,
    ValidationException,
)
from .base import BaseRepository
from .status_history_repository import StatusHistoryRepository


def escape_like(text: str) -> str:
    """
    Escape special LIKE pattern characters for safe use in SQL LIKE queries.

    Args:
        text: The text to escape

    Returns:
        Escaped text safe for use in LIKE patterns
    """
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ComplaintRepository(BaseRepository[db_models.Complaint]):
    """Repository for Complaint entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize complaint repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.Complaint, db)
        self.history = StatusHistoryRepository(db)

    # ------------------------------------------------------------------
    # Row-scoped reads
    # ------------------------------------------------------------------

    def _scoped(self, principal_id: str, is_admin: bool) -> Query:
        query = self.db.query(db_models.Complaint)
        if not is_admin:
            query = query.filter(db_models.Complaint.student_id == principal_id)
        return query

    def get_visible(
        self, complaint_id: str, principal_id: str, is_admin: bool
    ) -> Optional[db_models.Complaint]:
        """
        Get a complaint if the principal may see it.

        Args:
            complaint_id: Complaint ID
            principal_id: Requesting principal
            is_admin: Whether the principal holds the admin role

        Returns:
            The complaint, or None if it is missing or not visible
        """
        return (
            self._scoped(principal_id, is_admin)
            .filter(db_models.Complaint.id == complaint_id)
            .first()
        )

    def list_for_student(
        self, student_id: str, skip: int = 0, limit: int = 100
    ) -> list[db_models.Complaint]:
        """
        Complaints owned by a student, newest first.

        Args:
            student_id: Owning student
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Complaints ordered by created_at descending
        """
        return (
            self.db.query(db_models.Complaint)
            .filter(db_models.Complaint.student_id == student_id)
            .order_by(db_models.Complaint.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def search(
        self,
        status: Optional[db_models.ComplaintStatus] = None,
        category: Optional[db_models.ComplaintCategory] = None,
        search_term: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[db_models.Complaint]:
        """
        Filter all complaints, joined with the owning student's profile.

        ``search_term`` matches case-insensitively against title, description,
        and the student's full name and email.

        Args:
            status: Optional status filter
            category: Optional category filter
            search_term: Optional free-text term
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Complaints ordered by created_at descending, with ``student`` loaded
        """
        query = (
            self.db.query(db_models.Complaint)
            .join(
                db_models.Profile,
                db_models.Complaint.student_id == db_models.Profile.id,
            )
            .options(contains_eager(db_models.Complaint.student))
        )

        if status is not None:
            query = query.filter(db_models.Complaint.status == status)
        if category is not None:
            query = query.filter(db_models.Complaint.category == category)
        if search_term:
            pattern = f"%{escape_like(search_term.lower())}%"
            query = query.filter(
                or_(
                    func.lower(db_models.Complaint.title).like(pattern, escape="\\"),
                    func.lower(db_models.Complaint.description).like(
                        pattern, escape="\\"
                    ),
                    func.lower(db_models.Profile.full_name).like(pattern, escape="\\"),
                    func.lower(db_models.Profile.email).like(pattern, escape="\\"),
                )
            )

        return (
            query.order_by(db_models.Complaint.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_by_status(
        self, student_id: Optional[str] = None
    ) -> dict[db_models.ComplaintStatus, int]:
        """
        Count complaints per status.

        Args:
            student_id: Restrict to one student's complaints when given

        Returns:
            Mapping with an entry for every status (zero when absent)
        """
        query = self.db.query(
            db_models.Complaint.status, func.count(db_models.Complaint.id)
        )
        if student_id is not None:
            query = query.filter(db_models.Complaint.student_id == student_id)

        counts = {status: 0 for status in db_models.ComplaintStatus}
        for status, total in query.group_by(db_models.Complaint.status).all():
            counts[status] = total
        return counts

    def is_attachment_referenced(self, attachment_id: str) -> bool:
        """Check whether any complaint already references the attachment."""
        return (
            self.db.query(db_models.Complaint.id)
            .filter(db_models.Complaint.attachment_id == attachment_id)
            .first()
            is not None
        )

    # ------------------------------------------------------------------
    # Transactional writes
    # ------------------------------------------------------------------

    def insert_with_history(
        self, complaint: db_models.Complaint, actor_id: str
    ) -> db_models.Complaint:
        """
        Insert a complaint and its initial ledger entry in one transaction.

        Args:
            complaint: New complaint (status defaults to open)
            actor_id: Principal creating the complaint

        Returns:
            The committed complaint

        Raises:
            ValidationException: If the attachment was linked to another
                complaint in the meantime
            LedgerWriteException: If either row could not be written
        """
        attachment_id = complaint.attachment_id
        try:
            self.db.add(complaint)
            self.db.flush()
            self.history.append(
                complaint,
                changed_by_user_id=actor_id,
                from_status=None,
                to_status=complaint.status,
                note_snapshot=complaint.admin_note,
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if attachment_id is not None and self.is_attachment_referenced(
                attachment_id
            ):
                raise ValidationException(
                    "Attachment is already linked to another complaint"
                ) from exc
            raise LedgerWriteException("Complaint could not be recorded") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise LedgerWriteException("Complaint could not be recorded") from exc

        self.db.refresh(complaint)
        return complaint

    def _update_if_unchanged(
        self,
        complaint: db_models.Complaint,
        expected_status: db_models.ComplaintStatus,
        values: dict,
    ) -> None:
        """
        Update the row only while it still holds ``expected_status``.

        A session holding a stale copy never overwrites a status committed
        by another session, so a resolved row stays resolved.

        Raises:
            ResolvedComplaintFrozenException: If the stored row is resolved
            InvalidStatusTransitionException: If the stored status moved on
        """
        if expected_status == db_models.ComplaintStatus.RESOLVED:
            raise ResolvedComplaintFrozenException(complaint.id)

        updated = (
            self.db.query(db_models.Complaint)
            .filter(
                db_models.Complaint.id == complaint.id,
                db_models.Complaint.status == expected_status,
            )
            .update(values, synchronize_session=False)
        )
        if updated:
            return

        self.db.rollback()
        self.db.refresh(complaint)
        if complaint.status == db_models.ComplaintStatus.RESOLVED:
            raise ResolvedComplaintFrozenException(complaint.id)
        raise InvalidStatusTransitionException(
            expected_status.value,
            complaint.status.value,
            f"Complaint {complaint.id} changed status to "
            f"'{complaint.status.value}' in the meantime; reload and retry",
        )

    def apply_status_change(
        self,
        complaint: db_models.Complaint,
        new_status: db_models.ComplaintStatus,
        admin_note: Optional[str],
        actor_id: str,
    ) -> db_models.StatusHistoryEntry:
        """
        Change status and note, and append the ledger entry, atomically.

        Args:
            complaint: Complaint to change (loaded in this session)
            new_status: Target status
            admin_note: Note to store (also snapshotted into the ledger)
            actor_id: Admin performing the change

        Returns:
            The committed ledger entry

        Raises:
            ResolvedComplaintFrozenException: If the stored row is resolved
            InvalidStatusTransitionException: If the stored status no longer
                matches the one this session loaded
            LedgerWriteException: If the change or the ledger row failed
        """
        previous_status = complaint.status
        try:
            self._update_if_unchanged(
                complaint,
                previous_status,
                {
                    db_models.Complaint.status: new_status,
                    db_models.Complaint.admin_note: admin_note,
                },
            )
            entry = self.history.append(
                complaint,
                changed_by_user_id=actor_id,
                from_status=previous_status,
                to_status=new_status,
                note_snapshot=admin_note,
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise LedgerWriteException(
                "Status change could not be recorded; no changes were saved"
            ) from exc

        self.db.refresh(complaint)
        return entry

    def update_note(
        self, complaint: db_models.Complaint, admin_note: Optional[str]
    ) -> db_models.Complaint:
        """
        Replace the admin note without touching status (no ledger entry).

        Raises:
            ResolvedComplaintFrozenException: If the stored row is resolved
            InvalidStatusTransitionException: If the stored status no longer
                matches the one this session loaded
        """
        try:
            self._update_if_unchanged(
                complaint,
                complaint.status,
                {db_models.Complaint.admin_note: admin_note},
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(complaint)
        return complaint
