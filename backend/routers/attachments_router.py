from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
from helpers.rate_limiter import limiter
from models.config import settings
from repositories.database import get_db
from services.attachment_service import AttachmentService
from services.identity_service import Principal

router = APIRouter(prefix="/attachments", tags=["attachments"])


@router.post(
    "", response_model=schemas.Attachment, status_code=status.HTTP_201_CREATED
)
@limiter.limit(settings.ATTACHMENT_UPLOAD_RATE_LIMIT)
async def upload_attachment(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """
    Upload a file to attach to a complaint.

    Reads at most one byte past the size limit so oversized uploads are
    rejected without buffering the whole body.
    """
    data = await file.read(settings.ATTACHMENT_MAX_BYTES + 1)
    return AttachmentService.upload(
        db,
        principal.id,
        filename=file.filename or "",
        mime_type=file.content_type or "",
        data=data,
    )


@router.get("/{attachment_id}", response_model=schemas.Attachment)
def get_attachment(
    attachment_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """Get attachment metadata (owner or admin)."""
    return AttachmentService.get_metadata(db, attachment_id, principal.id)


@router.get("/{attachment_id}/download")
def download_attachment(
    attachment_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
) -> Response:
    """Download attachment content (owner or admin)."""
    attachment, content = AttachmentService.download(db, attachment_id, principal.id)
    return Response(
        content=content,
        media_type=attachment.mime_type,
        headers={
            "Content-Disposition": (
                f"attachment; filename*=UTF-8''{quote(attachment.original_filename)}"
            )
        },
    )
