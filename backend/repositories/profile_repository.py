"""
Profile and role repositories.

RoleRepository is the privileged read path used to decide whether a principal
is an admin. It never goes through AccessPolicy, since AccessPolicy itself
depends on its answer.
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class ProfileRepository(BaseRepository[db_models.Profile]):
    """Repository for Profile entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize profile repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.Profile, db)

    def get_by_email(self, email: str) -> Optional[db_models.Profile]:
        """
        Get profile by email (case-insensitive).

        Args:
            email: Profile email

        Returns:
            Profile if found, None otherwise
        """
        return (
            self.db.query(db_models.Profile)
            .filter(func.lower(db_models.Profile.email) == email.lower())
            .first()
        )

    def email_taken_by_other(self, email: str, principal_id: str) -> bool:
        """
        Check whether another profile already uses this email.

        Args:
            email: Email to check
            principal_id: Profile allowed to hold the email

        Returns:
            True if a different profile holds the email
        """
        existing = self.get_by_email(email)
        return existing is not None and existing.id != principal_id

    def create_with_role(
        self, profile: db_models.Profile, role: db_models.AppRole
    ) -> db_models.Profile:
        """
        Insert a profile together with its first role grant.

        Args:
            profile: Profile to insert
            role: Role granted at provisioning time

        Returns:
            Created profile
        """
        self.db.add(profile)
        self.db.add(db_models.UserRole(user_id=profile.id, role=role))
        self.db.commit()
        self.db.refresh(profile)
        return profile


class RoleRepository(BaseRepository[db_models.UserRole]):
    """Unfiltered role lookups."""

    def __init__(self, db: Session):
        super().__init__(db_models.UserRole, db)

    def roles_for(self, principal_id: str) -> set[db_models.AppRole]:
        """
        Return every role granted to the principal.

        Args:
            principal_id: Principal to look up

        Returns:
            Set of roles (empty if the principal has no grants)
        """
        rows = (
            self.db.query(db_models.UserRole.role)
            .filter(db_models.UserRole.user_id == principal_id)
            .all()
        )
        return {row[0] for row in rows}

    def has_role(self, principal_id: str, role: db_models.AppRole) -> bool:
        """Check a single role grant."""
        return (
            self.db.query(db_models.UserRole.id)
            .filter(
                db_models.UserRole.user_id == principal_id,
                db_models.UserRole.role == role,
            )
            .first()
            is not None
        )

    def grant(self, principal_id: str, role: db_models.AppRole) -> bool:
        """
        Grant a role if the principal does not already hold it.

        Returns:
            True if a new grant was written
        """
        if self.has_role(principal_id, role):
            return False
        self.db.add(db_models.UserRole(user_id=principal_id, role=role))
        self.db.commit()
        return True
