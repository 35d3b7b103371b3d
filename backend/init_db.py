"""Initialize the database and bootstrap the first admin profile."""

from pathlib import Path

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from models.config import settings
from repositories.database import Base, SessionLocal, engine
from services.identity_service import IdentityService


def bootstrap_admin(db: Session) -> bool:
    """
    Provision the configured admin profile if it does not exist yet.

    Does nothing unless both ADMIN_PRINCIPAL_ID and ADMIN_EMAIL are set.

    Returns:
        True if a profile was created or an admin role was granted
    """
    if not settings.ADMIN_PRINCIPAL_ID or not settings.ADMIN_EMAIL:
        print("[SKIP] ADMIN_PRINCIPAL_ID / ADMIN_EMAIL not set; no admin bootstrapped")
        return False

    existing = db.get(db_models.Profile, settings.ADMIN_PRINCIPAL_ID)
    if existing is None:
        IdentityService.provision_profile(
            db,
            settings.ADMIN_PRINCIPAL_ID,
            email=settings.ADMIN_EMAIL,
            full_name=settings.ADMIN_FULL_NAME,
            role=db_models.AppRole.ADMIN,
        )
        print("[OK] Admin profile created")
        print(f"  Principal: {settings.ADMIN_PRINCIPAL_ID}")
        print(f"  Email: {settings.ADMIN_EMAIL}")
        return True

    granted = IdentityService.grant_role(
        db, settings.ADMIN_PRINCIPAL_ID, db_models.AppRole.ADMIN
    )
    if granted:
        print("[OK] Admin role granted to existing profile")
    return granted


def init_db() -> None:
    """Create tables, the attachment directory and the bootstrap admin."""
    if "sqlite" in settings.DATABASE_URL:
        Path("data").mkdir(parents=True, exist_ok=True)
    Path(settings.ATTACHMENT_STORAGE_DIR).mkdir(parents=True, exist_ok=True)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        bootstrap_admin(db)
        print("\n[OK] Database initialization complete!")
    except Exception as e:
        print(f"Error initializing database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
