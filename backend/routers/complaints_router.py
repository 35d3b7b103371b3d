from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from helpers.pagination import PaginationLimit, PaginationSkip
from helpers.rate_limiter import limiter
from models.config import settings
from repositories.database import get_db
from services.complaint_service import ComplaintService
from services.identity_service import Principal
from services.status_history_service import StatusHistoryService

router = APIRouter(prefix="/complaints", tags=["complaints"])


@router.post("", response_model=schemas.Complaint, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.COMPLAINT_CREATE_RATE_LIMIT)
def create_complaint(
    request: Request,
    complaint: schemas.ComplaintCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """
    Submit a complaint as the authenticated student.

    The owner is always the caller; there is no way to submit on behalf of
    another principal.
    """
    return ComplaintService.create_complaint(
        db,
        principal.id,
        title=complaint.title,
        category=complaint.category,
        description=complaint.description,
        attachment_id=complaint.attachment_id,
    )


@router.get("/mine", response_model=List[schemas.Complaint])
def list_my_complaints(
    skip: PaginationSkip = 0,
    limit: PaginationLimit = 20,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """List the caller's complaints, newest first."""
    return ComplaintService.list_for_student(db, principal.id, skip, limit)


@router.get("/mine/summary", response_model=schemas.StatusSummary)
def my_complaint_summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """Counts of the caller's complaints per status."""
    return ComplaintService.student_summary(db, principal.id)


@router.get("/{complaint_id}", response_model=schemas.Complaint)
def get_complaint(
    complaint_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """
    Get a single complaint (owner or admin).

    Domain exceptions are caught by centralized exception handlers.
    """
    return ComplaintService.get_complaint(db, complaint_id, principal.id)


@router.get("/{complaint_id}/history", response_model=List[schemas.StatusHistoryEntry])
def get_complaint_history(
    complaint_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """Status history for a complaint, oldest first (owner or admin)."""
    return StatusHistoryService.list_for_complaint(db, complaint_id, principal.id)
