"""Tests for admin_router endpoints."""

import uuid

from fastapi import status

import repositories.db_models as db_models


class TestAdminListComplaints:
    """GET /api/admin/complaints"""

    def test_lists_every_student(
        self, client, student, other_student, admin_headers, make_complaint
    ):
        make_complaint(student.id)
        make_complaint(other_student.id)

        response = client.get("/api/admin/complaints", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 2
        assert {item["student"]["email"] for item in data} == {
            "student@example.com",
            "other@example.com",
        }

    def test_filters(self, client, student, admin_headers, make_complaint):
        make_complaint(student.id, category=db_models.ComplaintCategory.PEER)
        make_complaint(student.id, category=db_models.ComplaintCategory.MENTOR)

        response = client.get(
            "/api/admin/complaints?category=peer&status=open", headers=admin_headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert [item["category"] for item in response.json()] == ["peer"]

    def test_search_by_student_name(
        self, client, student, other_student, admin_headers, make_complaint
    ):
        make_complaint(student.id)
        make_complaint(other_student.id)

        response = client.get("/api/admin/complaints?search=ben", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert [item["student_id"] for item in response.json()] == [other_student.id]

    def test_unknown_status_filter(self, client, admin_headers):
        response = client.get(
            "/api/admin/complaints?status=closed", headers=admin_headers
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_students_forbidden(self, client, student_headers):
        response = client.get("/api/admin/complaints", headers=student_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_summary(self, client, student, admin_headers, make_complaint):
        make_complaint(student.id)

        response = client.get("/api/admin/complaints/summary", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["open"] == 1
        assert response.json()["total"] == 1


class TestAdminUpdateStatus:
    """PATCH /api/admin/complaints/{id}/status"""

    def _patch(self, client, complaint_id, headers, **body):
        return client.patch(
            f"/api/admin/complaints/{complaint_id}/status", json=body, headers=headers
        )

    def test_move_to_in_progress(self, client, complaint, admin_headers):
        response = self._patch(
            client, complaint.id, admin_headers, status="in_progress", note="On it"
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "in_progress"
        assert data["admin_note"] == "On it"

    def test_resolve_requires_note(self, client, complaint, admin_headers):
        response = self._patch(client, complaint.id, admin_headers, status="resolved")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_resolved_is_final(self, client, complaint, admin_headers):
        self._patch(client, complaint.id, admin_headers, status="resolved", note="Done")

        response = self._patch(
            client, complaint.id, admin_headers, status="open", note="Reopen"
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_same_status_rejected(self, client, complaint, admin_headers):
        response = self._patch(client, complaint.id, admin_headers, status="open")
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_missing_complaint(self, client, admin_headers):
        response = self._patch(
            client, str(uuid.uuid4()), admin_headers, status="in_progress"
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_history_written(self, client, complaint, admin, admin_headers):
        self._patch(client, complaint.id, admin_headers, status="in_progress")
        self._patch(client, complaint.id, admin_headers, status="resolved", note="Done")

        response = client.get(
            f"/api/complaints/{complaint.id}/history", headers=admin_headers
        )

        assert [e["to_status"] for e in response.json()] == [
            "open",
            "in_progress",
            "resolved",
        ]


class TestAdminUpdateNote:
    """PATCH /api/admin/complaints/{id}/note"""

    def test_edit_note(self, client, complaint, admin_headers):
        response = client.patch(
            f"/api/admin/complaints/{complaint.id}/note",
            json={"note": "Called the mentor"},
            headers=admin_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["admin_note"] == "Called the mentor"
        assert response.json()["status"] == "open"

    def test_note_on_resolved_rejected(self, client, complaint, admin_headers):
        client.patch(
            f"/api/admin/complaints/{complaint.id}/status",
            json={"status": "resolved", "note": "Done"},
            headers=admin_headers,
        )

        response = client.patch(
            f"/api/admin/complaints/{complaint.id}/note",
            json={"note": "Afterthought"},
            headers=admin_headers,
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_students_forbidden(self, client, complaint, student_headers):
        response = client.patch(
            f"/api/admin/complaints/{complaint.id}/note",
            json={"note": "Mine now"},
            headers=student_headers,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
