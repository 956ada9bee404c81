"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from teenlancer_sync.core.settings import settings
from teenlancer_sync.db.session import get_db
from teenlancer_sync.services.provider import (
    ProviderClient,
    ProviderError,
    ProviderUnavailable,
    get_provider_client,
)

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Get the authenticated user's id from the JWT subject.

    Args:
        credentials: HTTP Bearer token credentials

    Returns:
        User id carried in the token's ``sub`` claim

    Raises:
        HTTPException: If the token is invalid or carries no subject
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return subject


def get_provider_client_dep() -> ProviderClient:
    """Return the shared provider client."""
    return get_provider_client()


# Type alias for current user dependency
CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]
ProviderClientDep = Annotated[ProviderClient, Depends(get_provider_client_dep)]


def provider_http_error(exc: ProviderError) -> HTTPException:
    """Translate a provider failure into the HTTP error surfaced to callers."""
    if isinstance(exc, ProviderUnavailable):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Conversation provider unavailable: {exc}",
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Conversation provider error: {exc}",
    )
