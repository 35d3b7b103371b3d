"""
Identity & role store.

Role resolution is a privileged read: it queries user_roles directly and is
never filtered by AccessPolicy, because AccessPolicy depends on its result.
Resolved role sets are cached per principal for ROLE_CACHE_TTL_SECONDS.
"""

import threading
import time
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from models.config import settings
from models.exceptions import (
    EmailAlreadyInUseException,
    InactiveProfileException,
    ProfileAlreadyExistsException,
    ProfileNotFoundException,
    ValidationException,
)
from repositories.profile_repository import ProfileRepository, RoleRepository
from services.audit_service import AuditAction, AuditService

MAX_FULL_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 254


@dataclass(frozen=True)
class Principal:
    """An authenticated actor with its resolved roles."""

    id: str
    roles: frozenset[db_models.AppRole]

    @property
    def is_admin(self) -> bool:
        return db_models.AppRole.ADMIN in self.roles

    @property
    def is_student(self) -> bool:
        return db_models.AppRole.STUDENT in self.roles


_role_cache: dict[str, tuple[float, frozenset[db_models.AppRole]]] = {}
_role_cache_lock = threading.Lock()


def _cached_roles(principal_id: str) -> Optional[frozenset[db_models.AppRole]]:
    ttl = settings.ROLE_CACHE_TTL_SECONDS
    if ttl <= 0:
        return None
    with _role_cache_lock:
        cached = _role_cache.get(principal_id)
    if cached is None:
        return None
    stored_at, roles = cached
    if time.monotonic() - stored_at > ttl:
        return None
    return roles


def _store_roles(principal_id: str, roles: frozenset[db_models.AppRole]) -> None:
    if settings.ROLE_CACHE_TTL_SECONDS <= 0:
        return
    with _role_cache_lock:
        _role_cache[principal_id] = (time.monotonic(), roles)


def _clean_full_name(full_name: str) -> str:
    cleaned = (full_name or "").strip()
    if not cleaned:
        raise ValidationException("Full name is required")
    if len(cleaned) > MAX_FULL_NAME_LENGTH:
        raise ValidationException(
            f"Full name must be at most {MAX_FULL_NAME_LENGTH} characters"
        )
    return cleaned


def _clean_email(email: str) -> str:
    cleaned = (email or "").strip()
    if not cleaned or "@" not in cleaned:
        raise ValidationException("A valid email address is required")
    if len(cleaned) > MAX_EMAIL_LENGTH:
        raise ValidationException(
            f"Email must be at most {MAX_EMAIL_LENGTH} characters"
        )
    return cleaned


class IdentityService:
    """Profile lookups, provisioning and role resolution."""

    @staticmethod
    def clear_role_cache(principal_id: Optional[str] = None) -> None:
        """Forget cached roles for one principal, or for everyone."""
        with _role_cache_lock:
            if principal_id is None:
                _role_cache.clear()
            else:
                _role_cache.pop(principal_id, None)

    @staticmethod
    def get_profile(db: Session, principal_id: str) -> db_models.Profile:
        """
        Privileged profile read (no policy check).

        Raises:
            ProfileNotFoundException: If no profile exists for the principal
        """
        profile = ProfileRepository(db).get_by_id(principal_id)
        if not profile:
            raise ProfileNotFoundException(principal_id)
        return profile

    @staticmethod
    def resolve_roles(db: Session, principal_id: str) -> frozenset[db_models.AppRole]:
        """
        All roles held by the principal.

        Profiles provisioned before role grants existed fall back to the
        role stored on the profile row.

        Raises:
            ProfileNotFoundException: If no profile exists for the principal
        """
        cached = _cached_roles(principal_id)
        if cached is not None:
            return cached

        roles = frozenset(RoleRepository(db).roles_for(principal_id))
        if not roles:
            profile = IdentityService.get_profile(db, principal_id)
            roles = frozenset({profile.role})

        _store_roles(principal_id, roles)
        return roles

    @staticmethod
    def resolve_role(db: Session, principal_id: str) -> db_models.AppRole:
        """
        Effective role: admin if the principal holds it, student otherwise.

        Raises:
            ProfileNotFoundException: If no profile exists for the principal
        """
        roles = IdentityService.resolve_roles(db, principal_id)
        if db_models.AppRole.ADMIN in roles:
            return db_models.AppRole.ADMIN
        return db_models.AppRole.STUDENT

    @staticmethod
    def is_admin(db: Session, principal_id: str) -> bool:
        """
        Raises:
            ProfileNotFoundException: If no profile exists for the principal
        """
        return IdentityService.resolve_role(db, principal_id) == db_models.AppRole.ADMIN

    @staticmethod
    def resolve_principal(db: Session, principal_id: str) -> Principal:
        """
        Build the Principal used by every authorization decision.

        Raises:
            ProfileNotFoundException: If no profile exists for the principal
            InactiveProfileException: If the profile is soft-disabled
        """
        profile = IdentityService.get_profile(db, principal_id)
        if not profile.is_active:
            raise InactiveProfileException()
        return Principal(
            id=profile.id, roles=IdentityService.resolve_roles(db, principal_id)
        )

    @staticmethod
    def view_profile(
        db: Session, principal_id: str, requester_id: str
    ) -> db_models.Profile:
        """
        Read a profile on behalf of another principal (owner or admin).

        Raises:
            PermissionDeniedException: If requester is neither owner nor admin
            ProfileNotFoundException: If the target profile does not exist
        """
        from services.access_policy import AccessPolicy

        requester = IdentityService.resolve_principal(db, requester_id)
        AccessPolicy.ensure_profile_visible(requester, principal_id)
        return IdentityService.get_profile(db, principal_id)

    @staticmethod
    def provision_profile(
        db: Session,
        principal_id: str,
        email: str,
        full_name: str,
        role: db_models.AppRole = db_models.AppRole.STUDENT,
    ) -> db_models.Profile:
        """
        Create the profile and its role grant for a new principal.

        Runs exactly once per principal.

        Raises:
            ValidationException: If name or email are invalid
            ProfileAlreadyExistsException: If the principal already has a profile
            EmailAlreadyInUseException: If another profile uses the email
        """
        principal_id = (principal_id or "").strip()
        if not principal_id or len(principal_id) > 36 or "/" in principal_id:
            raise ValidationException("Invalid principal id")

        cleaned_name = _clean_full_name(full_name)
        cleaned_email = _clean_email(email)

        repo = ProfileRepository(db)
        if repo.get_by_id(principal_id):
            raise ProfileAlreadyExistsException(principal_id)
        if repo.get_by_email(cleaned_email):
            raise EmailAlreadyInUseException()

        profile = db_models.Profile(
            id=principal_id,
            role=role,
            full_name=cleaned_name,
            email=cleaned_email,
            is_active=True,
        )
        profile = repo.create_with_role(profile, role)
        IdentityService.clear_role_cache(principal_id)

        logger.info(f"Provisioned {role.value} profile {principal_id}")
        AuditService.log(
            principal_id,
            AuditAction.PROFILE_PROVISIONED,
            "profile",
            principal_id,
            {"role": role.value},
        )
        return profile

    @staticmethod
    def update_own_profile(
        db: Session,
        principal_id: str,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> db_models.Profile:
        """
        Update name and/or email of the caller's own profile.

        The role is not updatable here.

        Raises:
            ProfileNotFoundException: If the profile does not exist
            ValidationException: If a field is invalid
            EmailAlreadyInUseException: If another profile uses the email
        """
        repo = ProfileRepository(db)
        profile = IdentityService.get_profile(db, principal_id)

        if full_name is not None:
            profile.full_name = _clean_full_name(full_name)
        if email is not None:
            cleaned_email = _clean_email(email)
            if repo.email_taken_by_other(cleaned_email, principal_id):
                raise EmailAlreadyInUseException()
            profile.email = cleaned_email

        repo.commit()
        repo.refresh(profile)
        return profile

    @staticmethod
    def set_active(db: Session, principal_id: str, is_active: bool) -> db_models.Profile:
        """
        Soft-enable or soft-disable an account.

        Raises:
            ProfileNotFoundException: If the profile does not exist
        """
        repo = ProfileRepository(db)
        profile = IdentityService.get_profile(db, principal_id)
        profile.is_active = is_active
        repo.commit()
        repo.refresh(profile)
        return profile

    @staticmethod
    def grant_role(db: Session, principal_id: str, role: db_models.AppRole) -> bool:
        """
        Grant an additional role (CLI/bootstrap use only).

        Raises:
            ProfileNotFoundException: If the profile does not exist
        """
        IdentityService.get_profile(db, principal_id)
        granted = RoleRepository(db).grant(principal_id, role)
        IdentityService.clear_role_cache(principal_id)
        return granted
