from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import PaginationLimitLarge, PaginationSkip
from repositories.database import get_db
from services.complaint_service import ComplaintService
from services.identity_service import Principal

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/complaints", response_model=List[schemas.ComplaintWithStudent])
def list_all_complaints(
    skip: PaginationSkip = 0,
    limit: PaginationLimitLarge = 50,
    status: Optional[db_models.ComplaintStatus] = Query(
        None, description="Filter by status"
    ),
    category: Optional[db_models.ComplaintCategory] = Query(
        None, description="Filter by category"
    ),
    search: Optional[str] = Query(
        None,
        max_length=200,
        description="Match title, description, student name or email",
    ),
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_admin_principal),
):
    """
    Triage queue: every complaint with its student, newest first.

    Domain exceptions are caught by centralized exception handlers.
    """
    return ComplaintService.list_all(
        db,
        principal.id,
        status=status,
        category=category,
        search_term=search,
        skip=skip,
        limit=limit,
    )


@router.get("/complaints/summary", response_model=schemas.StatusSummary)
def complaint_summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_admin_principal),
):
    """Counts of all complaints per status."""
    return ComplaintService.global_summary(db, principal.id)


@router.patch("/complaints/{complaint_id}/status", response_model=schemas.Complaint)
def update_complaint_status(
    complaint_id: str,
    update: schemas.ComplaintStatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_admin_principal),
):
    """
    Move a complaint to a new status.

    Resolving requires a note. Resolved complaints cannot change again.
    """
    return ComplaintService.update_status(
        db, complaint_id, principal.id, update.status, update.note
    )


@router.patch("/complaints/{complaint_id}/note", response_model=schemas.Complaint)
def update_complaint_note(
    complaint_id: str,
    update: schemas.ComplaintNoteUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_admin_principal),
):
    """Edit the admin note without changing status."""
    return ComplaintService.update_note(db, complaint_id, principal.id, update.note)
