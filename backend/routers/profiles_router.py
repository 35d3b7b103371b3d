from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from repositories.database import get_db
from services.identity_service import IdentityService, Principal

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _with_roles(db: Session, profile: db_models.Profile) -> schemas.ProfileWithRoles:
    roles = IdentityService.resolve_roles(db, profile.id)
    return schemas.ProfileWithRoles(
        **schemas.Profile.model_validate(profile).model_dump(),
        roles=sorted(roles, key=lambda role: role.value),
    )


@router.post(
    "", response_model=schemas.ProfileWithRoles, status_code=status.HTTP_201_CREATED
)
def provision_profile(
    profile: schemas.ProfileCreate,
    db: Session = Depends(get_db),
    principal_id: str = Depends(auth.get_current_principal_id),
) -> schemas.ProfileWithRoles:
    """
    Create the caller's profile on first sign-in.

    Self-provisioned profiles are always students; admins are provisioned
    from the command line.
    """
    created = IdentityService.provision_profile(
        db, principal_id, email=profile.email, full_name=profile.full_name
    )
    return _with_roles(db, created)


@router.get("/me", response_model=schemas.ProfileWithRoles)
def get_my_profile(
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
) -> schemas.ProfileWithRoles:
    """Get the caller's profile and roles."""
    return _with_roles(db, IdentityService.get_profile(db, principal.id))


@router.patch("/me", response_model=schemas.ProfileWithRoles)
def update_my_profile(
    update: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
) -> schemas.ProfileWithRoles:
    """Update the caller's name and/or email."""
    profile = IdentityService.update_own_profile(
        db, principal.id, full_name=update.full_name, email=update.email
    )
    return _with_roles(db, profile)


@router.get("/{principal_id}", response_model=schemas.Profile)
def get_profile(
    principal_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(auth.get_current_principal),
):
    """
    Get a profile (owner or admin).

    Domain exceptions are caught by centralized exception handlers.
    """
    return IdentityService.view_profile(db, principal_id, principal.id)
