from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from repositories.db_models import AppRole, ComplaintCategory, ComplaintStatus


# Profile Schemas
class ProfileCreate(BaseModel):
    full_name: str
    email: EmailStr


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None


class Profile(BaseModel):
    id: str
    role: AppRole
    full_name: str
    email: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileWithRoles(Profile):
    roles: List[AppRole] = []


# Attachment Schemas
class Attachment(BaseModel):
    id: str
    owner_user_id: str
    complaint_id: Optional[str] = None
    original_filename: str
    mime_type: str
    byte_size: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Complaint Schemas
class ComplaintCreate(BaseModel):
    title: str
    category: ComplaintCategory
    description: str
    attachment_id: Optional[str] = None


class ComplaintStatusUpdate(BaseModel):
    status: ComplaintStatus
    note: Optional[str] = Field(
        default=None,
        description="New admin note. Required when resolving; omit to keep the current note.",
    )


class ComplaintNoteUpdate(BaseModel):
    note: Optional[str] = None


class Complaint(BaseModel):
    id: str
    student_id: str
    title: str
    category: ComplaintCategory
    description: str
    attachment_id: Optional[str]
    status: ComplaintStatus
    admin_note: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StudentSummary(BaseModel):
    id: str
    full_name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class ComplaintWithStudent(Complaint):
    student: StudentSummary


class StatusHistoryEntry(BaseModel):
    id: str
    complaint_id: str
    changed_by_user_id: str
    from_status: Optional[ComplaintStatus]
    to_status: ComplaintStatus
    note_snapshot: Optional[str]
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusSummary(BaseModel):
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    total: int = 0
