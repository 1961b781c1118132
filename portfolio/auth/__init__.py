"""
Authentication and Authorization Module

Bearer-token auth against the external auth provider's shared secret:
- Tokens are verified with PyJWT
- The caller is represented by CurrentUser (id, email, role)
- Admin-only routes depend on require_admin

Usage:
    @router.get("/analytics/summary")
    async def summary(admin: CurrentUser = Depends(require_admin)):
        ...
"""

from .config import AuthConfig, get_auth_config
from .jwt import verify_token, user_from_payload, create_access_token, JWTError
from .models import CurrentUser, UserRole
from .dependencies import (
    get_current_user,
    get_current_user_optional,
    require_admin,
)

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "verify_token",
    "user_from_payload",
    "create_access_token",
    "JWTError",
    "CurrentUser",
    "UserRole",
    "get_current_user",
    "get_current_user_optional",
    "require_admin",
]
