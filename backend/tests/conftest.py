"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["ENVIRONMENT"] = "test"
os.environ["CORS_ORIGINS"] = '["http://localhost:3000"]'
os.environ["LOG_DIR"] = ""
os.environ["ROLE_CACHE_TTL_SECONDS"] = "60"

from authentication.auth import create_access_token  # noqa: E402
from models.config import settings  # noqa: E402
from repositories.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
import repositories.db_models as db_models  # noqa: E402
from services.identity_service import IdentityService  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


@pytest.fixture(autouse=True)
def clear_role_cache():
    """Role cache is process-wide; never let it leak between tests."""
    IdentityService.clear_role_cache()
    yield
    IdentityService.clear_role_cache()


@pytest.fixture(autouse=True)
def blob_dir(tmp_path, monkeypatch) -> Path:
    """Point the attachment store at a per-test directory."""
    storage = tmp_path / "attachments"
    storage.mkdir()
    monkeypatch.setattr(settings, "ATTACHMENT_STORAGE_DIR", str(storage))
    return storage


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


@pytest.fixture(scope="function")
def second_session(db_session):
    """A separate session on the same database, e.g. a concurrent request."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with overridden database dependency."""
    from main import app
    from helpers.rate_limiter import limiter

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _provision(
    db_session, email: str, full_name: str, role: db_models.AppRole
) -> db_models.Profile:
    return IdentityService.provision_profile(
        db_session,
        str(uuid.uuid4()),
        email=email,
        full_name=full_name,
        role=role,
    )


@pytest.fixture
def student(db_session) -> db_models.Profile:
    """A student profile."""
    return _provision(
        db_session, "student@example.com", "Ada Student", db_models.AppRole.STUDENT
    )


@pytest.fixture
def other_student(db_session) -> db_models.Profile:
    """A second student (for ownership tests)."""
    return _provision(
        db_session, "other@example.com", "Ben Other", db_models.AppRole.STUDENT
    )


@pytest.fixture
def admin(db_session) -> db_models.Profile:
    """An admin profile."""
    return _provision(
        db_session, "admin@example.com", "Cora Admin", db_models.AppRole.ADMIN
    )


def _headers(principal_id: str) -> dict:
    token = create_access_token(data={"sub": principal_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_headers(student) -> dict:
    """Bearer headers for the student."""
    return _headers(student.id)


@pytest.fixture
def other_student_headers(other_student) -> dict:
    """Bearer headers for the second student."""
    return _headers(other_student.id)


@pytest.fixture
def admin_headers(admin) -> dict:
    """Bearer headers for the admin."""
    return _headers(admin.id)


@pytest.fixture
def make_complaint(db_session):
    """Factory fixture that submits a complaint through the service."""
    from services.complaint_service import ComplaintService

    def _make(
        student_id: str,
        title: str = "Mentor missed sessions",
        category: db_models.ComplaintCategory = db_models.ComplaintCategory.MENTOR,
        description: str = "My mentor has missed the last three weekly sessions.",
        attachment_id: str | None = None,
    ) -> db_models.Complaint:
        return ComplaintService.create_complaint(
            db_session,
            student_id,
            title=title,
            category=category,
            description=description,
            attachment_id=attachment_id,
        )

    return _make


@pytest.fixture
def complaint(student, make_complaint) -> db_models.Complaint:
    """An open complaint owned by the student."""
    return make_complaint(student.id)


@pytest.fixture
def attachment(db_session, student) -> db_models.Attachment:
    """A PDF uploaded by the student."""
    from services.attachment_service import AttachmentService

    return AttachmentService.upload(
        db_session,
        student.id,
        filename="evidence.pdf",
        mime_type="application/pdf",
        data=PDF_BYTES,
    )
