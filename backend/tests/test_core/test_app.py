"""Tests for application wiring: health, middleware and error responses."""

from fastapi import status


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy"}


class TestCorrelationId:
    """Every response carries a correlation ID."""

    def test_generated_when_missing(self, client):
        response = client.get("/api/health")

        correlation_id = response.headers.get("X-Correlation-ID", "")
        assert len(correlation_id) == 8

    def test_incoming_header_echoed(self, client):
        response = client.get("/api/health", headers={"X-Correlation-ID": "req-1234"})
        assert response.headers["X-Correlation-ID"] == "req-1234"

    def test_error_body_uses_request_correlation_id(
        self, client, complaint, other_student_headers
    ):
        headers = {**other_student_headers, "X-Correlation-ID": "trace-42"}

        response = client.get(f"/api/complaints/{complaint.id}", headers=headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["correlation_id"] == "trace-42"
        assert "detail" in response.json()

    def test_response_time_header(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Response-Time"].endswith("s")


class TestSecurityHeaders:
    """Security headers are present on API responses."""

    def test_headers(self, client):
        response = client.get("/api/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "no-referrer"
        assert "camera=()" in response.headers["Permissions-Policy"]
        assert "default-src 'none'" in response.headers["Content-Security-Policy"]
        assert response.headers["Cache-Control"] == "no-store, max-age=0"

    def test_no_hsts_outside_production(self, client):
        response = client.get("/api/health")
        assert "Strict-Transport-Security" not in response.headers

    def test_docs_skip_csp(self, client):
        response = client.get("/docs")
        assert "Content-Security-Policy" not in response.headers


class TestRateLimit:
    def test_complaint_submission_is_rate_limited(self, client, student_headers):
        payload = {
            "title": "Noise in the hub",
            "category": "working_hub",
            "description": "Loud music every afternoon.",
        }
        codes = [
            client.post("/api/complaints", json=payload, headers=student_headers).status_code
            for _ in range(11)
        ]

        assert codes[:10] == [status.HTTP_201_CREATED] * 10
        assert codes[10] == status.HTTP_429_TOO_MANY_REQUESTS
