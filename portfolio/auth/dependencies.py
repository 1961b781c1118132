"""
FastAPI Authentication Dependencies

Provides dependency injection for authentication and authorization.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from portfolio.auth.config import get_auth_config
from portfolio.auth.jwt import verify_token, user_from_payload, JWTError
from portfolio.auth.models import CurrentUser, UserRole

logger = logging.getLogger(__name__)

# HTTP Bearer token extraction
security = HTTPBearer(auto_error=False)

DEV_USER = CurrentUser(
    id="00000000-0000-0000-0000-000000000000",
    email="dev@localhost",
    name="Dev Admin",
    role=UserRole.ADMIN,
)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Get the current authenticated user.

    Raises:
        HTTPException 401: If not authenticated
    """
    config = get_auth_config()

    # If auth is disabled (local dev), act as an admin
    if not config.auth_enabled:
        return DEV_USER

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(credentials.credentials, config)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_from_payload(payload)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """
    Get the current user if authenticated, None otherwise.

    Use this for public endpoints whose output differs for admins.
    """
    config = get_auth_config()

    if not config.auth_enabled:
        return DEV_USER

    if not credentials:
        return None

    try:
        return user_from_payload(verify_token(credentials.credentials, config))
    except JWTError:
        return None


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Require the current user to be an admin.

    Raises:
        HTTPException 403: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
