"""Tests for the provisioning CLI and the init_db admin bootstrap."""

import uuid

import jwt

import repositories.db_models as db_models
from init_db import bootstrap_admin
from models.config import settings
from scripts.provision_profile import build_parser, run
from services.identity_service import IdentityService


def _run(db_session, *argv: str) -> None:
    run(build_parser().parse_args(list(argv)), db_session)


class TestProvisionProfileScript:
    def test_create_admin(self, db_session):
        principal_id = str(uuid.uuid4())

        _run(db_session, "create", principal_id, "ops@example.com", "Ops Admin", "--admin")

        assert IdentityService.is_admin(db_session, principal_id)

    def test_create_student(self, db_session):
        principal_id = str(uuid.uuid4())

        _run(db_session, "create", principal_id, "kid@example.com", "Kid Student")

        assert IdentityService.resolve_role(db_session, principal_id) == (
            db_models.AppRole.STUDENT
        )

    def test_grant_admin(self, db_session, student):
        _run(db_session, "grant-admin", student.id)

        assert IdentityService.is_admin(db_session, student.id)

    def test_deactivate_and_activate(self, db_session, student):
        _run(db_session, "deactivate", student.id)
        db_session.refresh(student)
        assert student.is_active is False

        _run(db_session, "activate", student.id)
        db_session.refresh(student)
        assert student.is_active is True

    def test_token(self, db_session, student, capsys):
        _run(db_session, "token", student.id, "--minutes", "5")

        token = capsys.readouterr().out.strip()
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == student.id


class TestBootstrapAdmin:
    def test_skipped_without_settings(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_PRINCIPAL_ID", "")
        monkeypatch.setattr(settings, "ADMIN_EMAIL", "")

        assert bootstrap_admin(db_session) is False
        assert db_session.query(db_models.Profile).count() == 0

    def test_creates_admin_once(self, db_session, monkeypatch):
        principal_id = str(uuid.uuid4())
        monkeypatch.setattr(settings, "ADMIN_PRINCIPAL_ID", principal_id)
        monkeypatch.setattr(settings, "ADMIN_EMAIL", "root@example.com")

        assert bootstrap_admin(db_session) is True
        assert bootstrap_admin(db_session) is False
        assert IdentityService.is_admin(db_session, principal_id)

    def test_promotes_existing_profile(self, db_session, student, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_PRINCIPAL_ID", student.id)
        monkeypatch.setattr(settings, "ADMIN_EMAIL", student.email)

        assert bootstrap_admin(db_session) is True
        assert IdentityService.is_admin(db_session, student.id)
