"""
Attachment Store service.

Uploads are two separate steps: the blob is written first, then the metadata
record is inserted. A failed insert leaves an orphaned blob behind; it is
logged at ERROR with its path for out-of-band cleanup and never deleted here.
"""

import magic
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from helpers.sanitization import sanitize_filename
from models.config import settings
from models.exceptions import AttachmentRejectedException
from repositories.attachment_repository import AttachmentRepository
from repositories.blob_store import LocalBlobStore
from services.access_policy import AccessPolicy
from services.audit_service import AuditAction, AuditService
from services.identity_service import IdentityService

MAX_FILENAME_LENGTH = 255

EXTENSIONS = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}

MIME_ALIASES = {"image/jpg": "image/jpeg"}


def get_blob_store() -> LocalBlobStore:
    """Blob store rooted at the configured storage directory."""
    return LocalBlobStore(settings.ATTACHMENT_STORAGE_DIR)


def normalize_mime_type(mime_type: str | None) -> str:
    """Lower-case, drop parameters (``; charset=...``) and resolve aliases."""
    value = (mime_type or "").split(";", 1)[0].strip().lower()
    return MIME_ALIASES.get(value, value)


class AttachmentService:
    """Upload, metadata and download for complaint attachments."""

    @staticmethod
    def upload(
        db: Session,
        owner_id: str,
        filename: str,
        mime_type: str,
        data: bytes,
    ) -> db_models.Attachment:
        """
        Store an uploaded file and record its metadata.

        All checks run before anything is written.

        Args:
            db: Database session
            owner_id: Uploading principal
            filename: Client filename (reduced to its last path component)
            mime_type: Declared content type
            data: File content

        Returns:
            The attachment record

        Raises:
            AttachmentRejectedException: Type not allowed or not matching the
                content, empty, or too large
            ProfileNotFoundException: If the uploader has no profile
        """
        principal = IdentityService.resolve_principal(db, owner_id)

        clean_name = sanitize_filename(filename)
        if not clean_name:
            raise AttachmentRejectedException("A filename is required")
        if len(clean_name) > MAX_FILENAME_LENGTH:
            raise AttachmentRejectedException(
                f"Filename must be at most {MAX_FILENAME_LENGTH} characters"
            )

        clean_mime = normalize_mime_type(mime_type)
        if clean_mime not in settings.ATTACHMENT_ALLOWED_MIME_TYPES:
            allowed = ", ".join(settings.ATTACHMENT_ALLOWED_MIME_TYPES)
            raise AttachmentRejectedException(
                f"File type '{mime_type}' is not allowed. Allowed types: {allowed}"
            )

        size = len(data)
        if size == 0:
            raise AttachmentRejectedException("File is empty")
        if size > settings.ATTACHMENT_MAX_BYTES:
            raise AttachmentRejectedException(
                f"File is too large ({size} bytes). "
                f"Maximum size is {settings.ATTACHMENT_MAX_BYTES} bytes"
            )

        # Declared type must agree with the sniffed content
        detected = normalize_mime_type(magic.from_buffer(data, mime=True))
        if detected != clean_mime:
            raise AttachmentRejectedException(
                f"File content ('{detected}') does not match declared type "
                f"'{clean_mime}'"
            )

        store = get_blob_store()
        stored_path = store.build_path(principal.id, EXTENSIONS.get(clean_mime, ""))
        store.write(principal.id, stored_path, data)

        repo = AttachmentRepository(db)
        attachment = db_models.Attachment(
            owner_user_id=principal.id,
            original_filename=clean_name,
            stored_path=stored_path,
            mime_type=clean_mime,
            byte_size=size,
        )
        try:
            attachment = repo.create(attachment)
        except SQLAlchemyError:
            repo.rollback()
            logger.error(
                f"Orphaned blob '{stored_path}': attachment record insert failed "
                f"for owner {principal.id}"
            )
            raise

        AuditService.log(
            principal.id,
            AuditAction.ATTACHMENT_UPLOADED,
            "attachment",
            attachment.id,
            {"mime_type": clean_mime, "byte_size": size},
        )
        return attachment

    @staticmethod
    def get_metadata(
        db: Session, attachment_id: str, requester_id: str
    ) -> db_models.Attachment:
        """
        Attachment record for its owner or an admin.

        Raises:
            AttachmentAccessDeniedException: Requester is not owner/admin
            AttachmentNotFoundException: Admin requested a missing attachment
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        attachment = AttachmentRepository(db).get_visible(
            attachment_id, principal.id, principal.is_admin
        )
        return AccessPolicy.ensure_attachment_visible(
            principal, attachment, attachment_id
        )

    @staticmethod
    def download(
        db: Session, attachment_id: str, requester_id: str
    ) -> tuple[db_models.Attachment, bytes]:
        """
        Load an attachment's bytes for its owner or an admin.

        Returns:
            Tuple of (attachment record, file content)

        Raises:
            AttachmentAccessDeniedException: Requester is not owner/admin
            AttachmentNotFoundException: Admin requested a missing attachment
            BlobMissingException: The record exists but the blob is gone
        """
        principal = IdentityService.resolve_principal(db, requester_id)
        attachment = AccessPolicy.ensure_attachment_visible(
            principal,
            AttachmentRepository(db).get_visible(
                attachment_id, principal.id, principal.is_admin
            ),
            attachment_id,
        )

        content = get_blob_store().read(
            principal.id, attachment.stored_path, is_admin=principal.is_admin
        )

        AuditService.log(
            principal.id, AuditAction.ATTACHMENT_DOWNLOADED, "attachment", attachment.id
        )
        return attachment, content
