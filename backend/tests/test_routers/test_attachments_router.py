"""Tests for attachments_router endpoints."""

import uuid

from fastapi import status

from models.config import settings

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


class TestUploadAttachment:
    """POST /api/attachments"""

    def test_upload_pdf(self, client, student, student_headers):
        response = client.post(
            "/api/attachments",
            files={"file": ("notes.pdf", PDF_BYTES, "application/pdf")},
            headers=student_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["owner_user_id"] == student.id
        assert data["original_filename"] == "notes.pdf"
        assert data["byte_size"] == len(PDF_BYTES)
        assert "stored_path" not in data

    def test_rejects_html(self, client, student_headers):
        response = client.post(
            "/api/attachments",
            files={"file": ("page.html", b"<html></html>", "text/html")},
            headers=student_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_rejects_content_not_matching_declared_type(self, client, student_headers):
        response = client.post(
            "/api/attachments",
            files={"file": ("notes.pdf", b"plain text notes\n", "application/pdf")},
            headers=student_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_rejects_oversized(self, client, student_headers):
        data = b"x" * (settings.ATTACHMENT_MAX_BYTES + 1)
        response = client.post(
            "/api/attachments",
            files={"file": ("big.pdf", data, "application/pdf")},
            headers=student_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_requires_authentication(self, client):
        response = client.post(
            "/api/attachments",
            files={"file": ("notes.pdf", PDF_BYTES, "application/pdf")},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestReadAttachment:
    """GET /api/attachments/{id} and /download"""

    def test_metadata(self, client, attachment, student_headers):
        response = client.get(f"/api/attachments/{attachment.id}", headers=student_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["mime_type"] == "application/pdf"

    def test_download(self, client, attachment, student_headers):
        response = client.get(
            f"/api/attachments/{attachment.id}/download", headers=student_headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.content == PDF_BYTES
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == (
            "attachment; filename*=UTF-8''evidence.pdf"
        )
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_admin_download(self, client, attachment, admin_headers):
        response = client.get(
            f"/api/attachments/{attachment.id}/download", headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK

    def test_other_student_forbidden(self, client, attachment, other_student_headers):
        response = client.get(
            f"/api/attachments/{attachment.id}/download",
            headers=other_student_headers,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_for_admin(self, client, admin_headers):
        response = client.get(
            f"/api/attachments/{uuid.uuid4()}", headers=admin_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
