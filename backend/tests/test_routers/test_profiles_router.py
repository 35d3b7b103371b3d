"""Tests for profiles_router endpoints."""

import uuid

from fastapi import status

from authentication.auth import create_access_token


def _token_headers(principal_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': principal_id})}"}


class TestProvisionProfile:
    """POST /api/profiles"""

    def test_first_sign_in_creates_student(self, client):
        principal_id = str(uuid.uuid4())
        headers = _token_headers(principal_id)

        response = client.post(
            "/api/profiles",
            json={"full_name": "Dana New", "email": "dana@example.com"},
            headers=headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["id"] == principal_id
        assert data["role"] == "student"
        assert data["roles"] == ["student"]

    def test_second_provision_conflicts(self, client, student_headers):
        response = client.post(
            "/api/profiles",
            json={"full_name": "Again", "email": "again@example.com"},
            headers=student_headers,
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_invalid_email(self, client):
        response = client.post(
            "/api/profiles",
            json={"full_name": "Dana New", "email": "not-an-email"},
            headers=_token_headers(str(uuid.uuid4())),
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_unprovisioned_caller_has_no_profile(self, client):
        response = client.get(
            "/api/profiles/me", headers=_token_headers(str(uuid.uuid4()))
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestOwnProfile:
    """GET/PATCH /api/profiles/me"""

    def test_get_me(self, client, student, student_headers):
        response = client.get("/api/profiles/me", headers=student_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == "student@example.com"

    def test_admin_roles_listed(self, client, admin_headers):
        response = client.get("/api/profiles/me", headers=admin_headers)
        assert response.json()["roles"] == ["admin"]

    def test_update_me(self, client, student_headers):
        response = client.patch(
            "/api/profiles/me",
            json={"full_name": "Ada Renamed"},
            headers=student_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["full_name"] == "Ada Renamed"
        assert response.json()["role"] == "student"

    def test_role_is_not_updatable(self, client, student_headers):
        response = client.patch(
            "/api/profiles/me",
            json={"role": "admin"},
            headers=student_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] == "student"
        assert response.json()["roles"] == ["student"]


class TestViewProfile:
    """GET /api/profiles/{id}"""

    def test_admin_views_student(self, client, student, admin_headers):
        response = client.get(f"/api/profiles/{student.id}", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

    def test_student_cannot_view_other(self, client, other_student, student_headers):
        response = client.get(
            f"/api/profiles/{other_student.id}", headers=student_headers
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
