"""
Unit tests for AttachmentService.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

import repositories.db_models as db_models
from models.config import settings
from models.exceptions import (
    AttachmentAccessDeniedException,
    AttachmentNotFoundException,
    AttachmentRejectedException,
    BlobMissingException,
    ValidationException,
)
from repositories.attachment_repository import AttachmentRepository
from services.attachment_service import AttachmentService, normalize_mime_type

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
    b"\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde"
)
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"


class TestUpload:
    """Tests for AttachmentService.upload"""

    def test_upload_pdf(self, db_session, student, blob_dir):
        attachment = AttachmentService.upload(
            db_session, student.id, "report.pdf", "application/pdf", PDF_BYTES
        )

        assert attachment.owner_user_id == student.id
        assert attachment.original_filename == "report.pdf"
        assert attachment.mime_type == "application/pdf"
        assert attachment.byte_size == len(PDF_BYTES)
        assert attachment.complaint_id is None
        assert attachment.stored_path.startswith(f"{student.id}/")
        assert attachment.stored_path.endswith(".pdf")
        assert (blob_dir / attachment.stored_path).read_bytes() == PDF_BYTES

    def test_upload_paths_are_unique(self, db_session, student):
        first = AttachmentService.upload(
            db_session, student.id, "a.png", "image/png", PNG_BYTES
        )
        second = AttachmentService.upload(
            db_session, student.id, "a.png", "image/png", PNG_BYTES
        )
        assert first.stored_path != second.stored_path

    def test_jpg_alias_normalized(self, db_session, student):
        attachment = AttachmentService.upload(
            db_session, student.id, "photo.jpg", "image/jpg", JPEG_BYTES
        )
        assert attachment.mime_type == "image/jpeg"

    def test_client_path_reduced_to_filename(self, db_session, student):
        attachment = AttachmentService.upload(
            db_session,
            student.id,
            "C:\\Users\\ada\\Desktop\\proof.pdf",
            "application/pdf",
            PDF_BYTES,
        )
        assert attachment.original_filename == "proof.pdf"

    @pytest.mark.parametrize(
        "mime_type", ["text/html", "application/zip", "image/gif", ""]
    )
    def test_rejects_disallowed_type(self, db_session, student, blob_dir, mime_type):
        with pytest.raises(AttachmentRejectedException):
            AttachmentService.upload(
                db_session, student.id, "file.bin", mime_type, b"data"
            )
        assert list(blob_dir.iterdir()) == []

    def test_rejects_text_declared_as_pdf(self, db_session, student, blob_dir):
        """The declared type alone does not get a file accepted."""
        with pytest.raises(AttachmentRejectedException):
            AttachmentService.upload(
                db_session,
                student.id,
                "notes.pdf",
                "application/pdf",
                b"just plain text, not a pdf\n",
            )
        assert list(blob_dir.iterdir()) == []
        assert db_session.query(db_models.Attachment).count() == 0

    def test_rejects_allowed_type_mismatch(self, db_session, student, blob_dir):
        with pytest.raises(AttachmentRejectedException):
            AttachmentService.upload(
                db_session, student.id, "scan.png", "image/png", PDF_BYTES
            )
        assert list(blob_dir.iterdir()) == []

    def test_rejects_empty_file(self, db_session, student):
        with pytest.raises(AttachmentRejectedException):
            AttachmentService.upload(
                db_session, student.id, "empty.pdf", "application/pdf", b""
            )

    def test_rejects_oversized_file(self, db_session, student, blob_dir):
        data = b"x" * (settings.ATTACHMENT_MAX_BYTES + 1)
        with pytest.raises(AttachmentRejectedException):
            AttachmentService.upload(
                db_session, student.id, "big.pdf", "application/pdf", data
            )
        assert list(blob_dir.iterdir()) == []

    def test_accepts_exact_size_limit(self, db_session, student):
        data = PDF_BYTES + b" " * (settings.ATTACHMENT_MAX_BYTES - len(PDF_BYTES))
        attachment = AttachmentService.upload(
            db_session, student.id, "max.pdf", "application/pdf", data
        )
        assert attachment.byte_size == settings.ATTACHMENT_MAX_BYTES

    def test_rejects_missing_filename(self, db_session, student):
        with pytest.raises(ValidationException):
            AttachmentService.upload(
                db_session, student.id, "", "application/pdf", PDF_BYTES
            )

    def test_failed_record_insert_leaves_blob(
        self, db_session, student, blob_dir, monkeypatch
    ):
        """Blob and record are separate steps; the blob is not deleted."""

        def failing_create(self, entity):
            raise IntegrityError("INSERT", {}, Exception("constraint failed"))

        monkeypatch.setattr(AttachmentRepository, "create", failing_create)

        with pytest.raises(IntegrityError):
            AttachmentService.upload(
                db_session, student.id, "orphan.pdf", "application/pdf", PDF_BYTES
            )

        written = list((blob_dir / student.id).iterdir())
        assert len(written) == 1
        assert db_session.query(db_models.Attachment).count() == 0


class TestGetMetadataAndDownload:
    """Tests for AttachmentService.get_metadata and download"""

    def test_owner_downloads(self, db_session, student, attachment):
        record, content = AttachmentService.download(
            db_session, attachment.id, student.id
        )
        assert record.id == attachment.id
        assert content == PDF_BYTES

    def test_admin_downloads(self, db_session, admin, attachment):
        _, content = AttachmentService.download(db_session, attachment.id, admin.id)
        assert content == PDF_BYTES

    def test_other_student_denied(self, db_session, other_student, attachment):
        with pytest.raises(AttachmentAccessDeniedException):
            AttachmentService.download(db_session, attachment.id, other_student.id)
        with pytest.raises(AttachmentAccessDeniedException):
            AttachmentService.get_metadata(db_session, attachment.id, other_student.id)

    def test_missing_attachment(self, db_session, student, admin):
        missing_id = str(uuid.uuid4())
        with pytest.raises(AttachmentAccessDeniedException):
            AttachmentService.get_metadata(db_session, missing_id, student.id)
        with pytest.raises(AttachmentNotFoundException):
            AttachmentService.get_metadata(db_session, missing_id, admin.id)

    def test_missing_blob(self, db_session, student, attachment, blob_dir):
        (blob_dir / attachment.stored_path).unlink()

        with pytest.raises(BlobMissingException):
            AttachmentService.download(db_session, attachment.id, student.id)


class TestNormalizeMimeType:
    """Tests for normalize_mime_type"""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("image/jpg", "image/jpeg"),
            ("IMAGE/PNG", "image/png"),
            ("application/pdf; charset=binary", "application/pdf"),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_mime_type(raw) == expected
