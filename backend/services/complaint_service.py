"""
Complaint Service

Complaint lifecycle: submission by students, triage and resolution by admins.

Status machine::

    open <-> in_progress
    open -> resolved
    in_progress -> resolved
    resolved is terminal

Every status change is written together with its ledger entry by
ComplaintRepository; there is no code path that changes status without one.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from helpers.sanitization import sanitize_plain_text
from models.exceptions import (
    InvalidStatusTransitionException,
    ValidationException,
)
from repositories.attachment_repository import AttachmentRepository
from repositories.complaint_repository import ComplaintRepository
from services.access_policy import AccessPolicy
from services.audit_service import AuditAction, AuditService
from services.identity_service import IdentityService

MAX_TITLE_LENGTH = 120
MAX_DESCRIPTION_LENGTH = 5000
MAX_NOTE_LENGTH = 5000

ALLOWED_TRANSITIONS: dict[db_models.ComplaintStatus, frozenset[db_models.ComplaintStatus]] = {
    db_models.ComplaintStatus.OPEN: frozenset(
        {db_models.ComplaintStatus.IN_PROGRESS, db_models.ComplaintStatus.RESOLVED}
    ),
    db_models.ComplaintStatus.IN_PROGRESS: frozenset(
        {db_models.ComplaintStatus.OPEN, db_models.ComplaintStatus.RESOLVED}
    ),
    db_models.ComplaintStatus.RESOLVED: frozenset(),
}


def _coerce_enum(enum_cls, value, field: str):  # type: ignore[no-untyped-def]
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationException(f"Invalid {field} '{value}'. Allowed: {allowed}")


def _clean_text(value: Optional[str], field: str, max_length: int) -> str:
    cleaned = sanitize_plain_text(value) or ""
    if not cleaned:
        raise ValidationException(f"{field} is required")
    if len(cleaned) > max_length:
        raise ValidationException(f"{field} must be at most {max_length} characters")
    return cleaned


def _clean_note(note: Optional[str]) -> Optional[str]:
    """Trim a note; blank notes are stored as NULL."""
    cleaned = sanitize_plain_text(note)
    if not cleaned:
        return None
    if len(cleaned) > MAX_NOTE_LENGTH:
        raise ValidationException(
            f"Admin note must be at most {MAX_NOTE_LENGTH} characters"
        )
    return cleaned


class ComplaintService:
    """Service for the complaint record engine."""

    @staticmethod
    def create_complaint(
        db: Session,
        student_id: str,
        title: str,
        category: db_models.ComplaintCategory | str,
        description: str,
        attachment_id: Optional[str] = None,
    ) -> db_models.Complaint:
        """
        Submit a new complaint owned by ``student_id``.

        The complaint starts ``open`` with no admin note, and its first ledger
        entry (``None -> open``) is written in the same transaction.

        Args:
            db: Database session
            student_id: Submitting student (becomes the immutable owner)
            title: 1-120 characters
            category: One of ComplaintCategory
            description: 1-5000 characters
            attachment_id: Optional previously uploaded attachment

        Returns:
            The created complaint

        Raises:
            ProfileNotFoundException: If the student has no profile
            StudentRequiredException: If the principal is not a student
            ValidationException: If a field constraint is violated
        """
        principal = IdentityService.resolve_principal(db, student_id)
        AccessPolicy.require_student(principal)

        clean_title = _clean_text(title, "Title", MAX_TITLE_LENGTH)
        clean_description = _clean_text(
            description, "Description", MAX_DESCRIPTION_LENGTH
        )
        clean_category = _coerce_enum(db_models.ComplaintCategory, category, "category")

        repo = ComplaintRepository(db)

        if attachment_id is not None:
            attachment = AttachmentRepository(db).get_visible(
                attachment_id, principal.id, is_admin=False
            )
            if attachment is None:
                raise ValidationException("Attachment not found")
            if repo.is_attachment_referenced(attachment_id):
                raise ValidationException(
                    "Attachment is already linked to another complaint"
                )

        complaint = db_models.Complaint(
            student_id=principal.id,
            title=clean_title,
            category=clean_category,
            description=clean_description,
            attachment_id=attachment_id,
            status=db_models.ComplaintStatus.OPEN,
            admin_note=None,
        )
        complaint = repo.insert_with_history(complaint, actor_id=principal.id)

        AuditService.log(
            principal.id,
            AuditAction.COMPLAINT_CREATED,
            "complaint",
            complaint.id,
            {"category": clean_category.value},
        )
        return complaint

    @staticmethod
    def get_complaint(
        db: Session, complaint_id: str, requester_id: str
    ) -> db_models.Complaint:
        """
        Get a complaint for its owner or an admin.

        Raises:
            ComplaintAccessDeniedException: Requester is not owner/admin
            ComplaintNotFoundException: Admin requested a missing complaint
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        complaint = ComplaintRepository(db).get_visible(
            complaint_id, principal.id, principal.is_admin
        )
        return AccessPolicy.ensure_complaint_visible(principal, complaint, complaint_id)

    @staticmethod
    def list_for_student(
        db: Session, student_id: str, skip: int = 0, limit: int = 100
    ) -> list[db_models.Complaint]:
        """
        A student's own complaints, newest first.

        Args:
            db: Database session
            student_id: Owning student
            skip: Pagination offset
            limit: Pagination limit
        """
        return ComplaintRepository(db).list_for_student(student_id, skip, limit)

    @staticmethod
    def list_all(
        db: Session,
        requester_id: str,
        status: Optional[db_models.ComplaintStatus | str] = None,
        category: Optional[db_models.ComplaintCategory | str] = None,
        search_term: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[db_models.Complaint]:
        """
        All complaints with optional filters (admin only), newest first.

        Raises:
            AdminRequiredException: If the requester is not an admin
            ValidationException: If a filter value is not a known enum value
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        AccessPolicy.require_admin(principal)

        status_filter = (
            _coerce_enum(db_models.ComplaintStatus, status, "status")
            if status is not None
            else None
        )
        category_filter = (
            _coerce_enum(db_models.ComplaintCategory, category, "category")
            if category is not None
            else None
        )
        term = search_term.strip() if search_term else None

        return ComplaintRepository(db).search(
            status=status_filter,
            category=category_filter,
            search_term=term or None,
            skip=skip,
            limit=limit,
        )

    @staticmethod
    def update_status(
        db: Session,
        complaint_id: str,
        requester_id: str,
        new_status: db_models.ComplaintStatus | str,
        note: Optional[str] = None,
    ) -> db_models.Complaint:
        """
        Move a complaint through the status machine (admin only).

        ``note`` replaces the admin note; ``None`` keeps the current note and
        a blank string clears it. Resolving requires a non-blank note.

        Raises:
            AdminRequiredException: If the requester is not an admin
            ComplaintNotFoundException: If the complaint does not exist
            InvalidStatusTransitionException: If the complaint is resolved, the
                transition is not allowed, or another session changed the
                status first
            ValidationException: If resolving without a note, or the note is too long
            LedgerWriteException: If the change could not be committed atomically
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        AccessPolicy.require_admin(principal)

        repo = ComplaintRepository(db)
        complaint = AccessPolicy.ensure_complaint_visible(
            principal,
            repo.get_visible(complaint_id, principal.id, principal.is_admin),
            complaint_id,
        )

        target = _coerce_enum(db_models.ComplaintStatus, new_status, "status")
        current = complaint.status

        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransitionException(current.value, target.value)

        admin_note = complaint.admin_note if note is None else _clean_note(note)
        if target == db_models.ComplaintStatus.RESOLVED and (
            note is None or admin_note is None
        ):
            raise ValidationException(
                "A note explaining the resolution is required to resolve a complaint"
            )

        repo.apply_status_change(complaint, target, admin_note, actor_id=principal.id)

        AuditService.log(
            principal.id,
            AuditAction.COMPLAINT_STATUS_CHANGED,
            "complaint",
            complaint.id,
            {"from": current.value, "to": target.value},
        )
        return complaint

    @staticmethod
    def update_note(
        db: Session, complaint_id: str, requester_id: str, note: Optional[str]
    ) -> db_models.Complaint:
        """
        Edit the admin note without changing status (admin only).

        No ledger entry is written because status does not change.

        Raises:
            AdminRequiredException: If the requester is not an admin
            ComplaintNotFoundException: If the complaint does not exist
            InvalidStatusTransitionException: If the complaint is resolved or
                another session changed its status first
            ValidationException: If the note is too long
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        AccessPolicy.require_admin(principal)

        repo = ComplaintRepository(db)
        complaint = AccessPolicy.ensure_complaint_visible(
            principal,
            repo.get_visible(complaint_id, principal.id, principal.is_admin),
            complaint_id,
        )

        if complaint.status == db_models.ComplaintStatus.RESOLVED:
            raise InvalidStatusTransitionException(
                complaint.status.value,
                complaint.status.value,
                "Resolved complaints cannot be modified",
            )

        complaint = repo.update_note(complaint, _clean_note(note))
        AuditService.log(
            principal.id, AuditAction.COMPLAINT_NOTE_UPDATED, "complaint", complaint.id
        )
        return complaint

    @staticmethod
    def student_summary(db: Session, student_id: str) -> dict[str, int]:
        """Own complaint counts per status, plus ``total``."""
        counts = ComplaintRepository(db).count_by_status(student_id=student_id)
        return ComplaintService._summary(counts)

    @staticmethod
    def global_summary(db: Session, requester_id: str) -> dict[str, int]:
        """
        Counts per status across all complaints (admin only).

        Raises:
            AdminRequiredException: If the requester is not an admin
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        AccessPolicy.require_admin(principal)
        counts = ComplaintRepository(db).count_by_status()
        return ComplaintService._summary(counts)

    @staticmethod
    def _summary(counts: dict[db_models.ComplaintStatus, int]) -> dict[str, int]:
        summary = {status.value: total for status, total in counts.items()}
        summary["total"] = sum(counts.values())
        return summary
