"""
Bearer-token authentication.

Sessions are issued by an external identity provider that signs HS256 JWTs
with the shared SECRET_KEY. The ``sub`` claim is the principal id; everything
else about the caller (profile, roles) is resolved from our own tables.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlalchemy.orm import Session

from models.config import settings
from models.exceptions import AdminRequiredException, AuthenticationException
from repositories.database import get_db
from services.identity_service import IdentityService, Principal

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a token the same way the identity provider does.

    Used by the provisioning CLI and by tests.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )
    return encoded_jwt


async def get_current_principal_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Extract the principal id from the bearer token.

    Raises:
        AuthenticationException: If the token is missing, expired or invalid.
    """
    if credentials is None:
        raise AuthenticationException("Not authenticated")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
    except jwt.exceptions.ExpiredSignatureError:
        raise AuthenticationException("Session expired. Please log in again.")
    except jwt.exceptions.InvalidTokenError:
        raise AuthenticationException("Could not validate credentials")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationException("Could not validate credentials")
    return str(subject)


async def get_current_principal(
    principal_id: str = Depends(get_current_principal_id),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the caller's profile and roles.

    Raises:
        ProfileNotFoundException: If the caller has not provisioned a profile.
        InactiveProfileException: If the profile has been deactivated.
    """
    return IdentityService.resolve_principal(db, principal_id)


async def get_admin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """
    Require the admin role.

    Raises:
        AdminRequiredException: If the caller is not an admin.
    """
    if not principal.is_admin:
        raise AdminRequiredException()
    return principal
