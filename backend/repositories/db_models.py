"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

Integrity rules that must hold no matter which code path writes are enforced
here rather than in services:

- enumerations are closed sets (CHECK constraints on the stored values)
- field lengths and attachment sizes are CHECK constraints
- a complaint whose stored status is ``resolved`` cannot be updated
- status history rows can be inserted but never updated or deleted
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.exceptions import HistoryImmutableException, ResolvedComplaintFrozenException
from repositories.database import Base


class AppRole(str, enum.Enum):
    STUDENT = "student"
    ADMIN = "admin"


class ComplaintCategory(str, enum.Enum):
    MENTOR = "mentor"
    ADMIN = "admin"
    ACADEMIC_COUNSELLOR = "academic_counsellor"
    WORKING_HUB = "working_hub"
    PEER = "peer"
    OTHER = "other"


class ComplaintStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Enum stored by value with a CHECK constraint on every backend."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        create_constraint=True,
        validate_strings=True,
    )


class Profile(Base):
    """Identity record for an authenticated principal."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint(
            "length(full_name) > 0 AND length(full_name) <= 100",
            name="ck_profiles_full_name_length",
        ),
        CheckConstraint("length(email) <= 254", name="ck_profiles_email_length"),
        Index("idx_profiles_role", "role"),
        Index("idx_profiles_active", "is_active"),
    )

    # Issued by the identity provider; stable for the account's lifetime
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    role: Mapped[AppRole] = mapped_column(
        _enum_column(AppRole, "app_role"), default=AppRole.STUDENT, nullable=False
    )
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(254), unique=True, index=True, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    roles: Mapped[List["UserRole"]] = relationship(
        "UserRole", back_populates="user", passive_deletes=True
    )
    complaints: Mapped[List["Complaint"]] = relationship(
        "Complaint", back_populates="student", passive_deletes=True
    )


class UserRole(Base):
    """Role grants; a principal may hold more than one."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[AppRole] = mapped_column(
        _enum_column(AppRole, "user_role"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    user: Mapped["Profile"] = relationship("Profile", back_populates="roles")


class Attachment(Base):
    """Metadata for an uploaded blob. Written once, never updated."""

    __tablename__ = "attachments"
    __table_args__ = (
        CheckConstraint(
            "length(original_filename) > 0 AND length(original_filename) <= 255",
            name="ck_attachments_filename_length",
        ),
        CheckConstraint(
            "length(stored_path) <= 1024", name="ck_attachments_stored_path_length"
        ),
        CheckConstraint(
            "mime_type IN ('application/pdf', 'image/jpeg', 'image/png')",
            name="ck_attachments_mime_type",
        ),
        CheckConstraint(
            "byte_size > 0 AND byte_size <= 10485760", name="ck_attachments_byte_size"
        ),
        Index("idx_attachments_owner_user_id", "owner_user_id"),
        Index("idx_attachments_complaint_id", "complaint_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    complaint_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("complaints.id", ondelete="CASCADE"), nullable=True
    )
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    byte_size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    owner: Mapped["Profile"] = relationship("Profile")


class Complaint(Base):
    __tablename__ = "complaints"
    __table_args__ = (
        CheckConstraint(
            "length(title) > 0 AND length(title) <= 120",
            name="ck_complaints_title_length",
        ),
        CheckConstraint(
            "length(description) > 0 AND length(description) <= 5000",
            name="ck_complaints_description_length",
        ),
        CheckConstraint(
            "admin_note IS NULL OR length(admin_note) <= 5000",
            name="ck_complaints_admin_note_length",
        ),
        UniqueConstraint("attachment_id", name="uq_complaints_attachment_id"),
        Index("idx_complaints_student_id_created_at", "student_id", "created_at"),
        Index("idx_complaints_status", "status"),
        Index("idx_complaints_category", "category"),
        Index("idx_complaints_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    category: Mapped[ComplaintCategory] = mapped_column(
        _enum_column(ComplaintCategory, "complaint_category"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # Weak reference: the attachment is referenced, not owned
    attachment_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey(
            "attachments.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_complaints_attachment",
        ),
        nullable=True,
    )
    status: Mapped[ComplaintStatus] = mapped_column(
        _enum_column(ComplaintStatus, "complaint_status"),
        default=ComplaintStatus.OPEN,
        nullable=False,
        active_history=True,
    )
    admin_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    student: Mapped["Profile"] = relationship("Profile", back_populates="complaints")
    attachment: Mapped[Optional["Attachment"]] = relationship(
        "Attachment", foreign_keys=[attachment_id]
    )
    history: Mapped[List["StatusHistoryEntry"]] = relationship(
        "StatusHistoryEntry",
        order_by="StatusHistoryEntry.changed_at",
        viewonly=True,
    )


class StatusHistoryEntry(Base):
    """One row per status transition, including the initial ``open``."""

    __tablename__ = "complaint_status_history"
    __table_args__ = (
        CheckConstraint(
            "note_snapshot IS NULL OR length(note_snapshot) <= 5000",
            name="ck_history_note_snapshot_length",
        ),
        Index("idx_history_complaint_id_changed_at", "complaint_id", "changed_at"),
        Index("idx_history_changed_by_user_id", "changed_by_user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    complaint_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    changed_by_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[Optional[ComplaintStatus]] = mapped_column(
        _enum_column(ComplaintStatus, "history_from_status"), nullable=True
    )
    to_status: Mapped[ComplaintStatus] = mapped_column(
        _enum_column(ComplaintStatus, "history_to_status"), nullable=False
    )
    note_snapshot: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    complaint: Mapped["Complaint"] = relationship("Complaint")
    changed_by: Mapped["Profile"] = relationship("Profile")


# ============================================================================
# Storage-level guards
# ============================================================================


def _persisted_status(target: Complaint) -> Optional[ComplaintStatus]:
    """Status as currently stored, ignoring any pending in-memory change."""
    history = inspect(target).attrs.status.history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return target.status


@event.listens_for(Complaint, "before_update")
def _reject_update_of_resolved_complaint(mapper, connection, target):  # type: ignore[no-untyped-def]
    """Resolved complaints are frozen."""
    if _persisted_status(target) == ComplaintStatus.RESOLVED:
        raise ResolvedComplaintFrozenException(target.id)


@event.listens_for(StatusHistoryEntry, "before_update")
@event.listens_for(StatusHistoryEntry, "before_delete")
def _reject_history_mutation(mapper, connection, target):  # type: ignore[no-untyped-def]
    """History is append-only."""
    raise HistoryImmutableException()
