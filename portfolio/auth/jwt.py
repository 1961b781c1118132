"""
JWT Token Validation

Validates bearer tokens signed with the shared JWT secret and maps their
claims onto a CurrentUser.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWTError

from portfolio.auth.config import AuthConfig, get_auth_config
from portfolio.auth.models import CurrentUser, UserRole

logger = logging.getLogger(__name__)


class JWTError(Exception):
    """Custom JWT validation error."""
    pass


def verify_token(token: str, config: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """
    Verify a bearer token and return its payload.

    Raises:
        JWTError: If token is invalid, expired, or malformed
    """
    config = config or get_auth_config()

    if not config.jwt_secret:
        raise JWTError("JWT_SECRET not configured")

    options = {"verify_aud": config.jwt_audience is not None}

    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            audience=config.jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise JWTError("Token has expired")
    except jwt.InvalidAudienceError:
        raise JWTError("Invalid token audience")
    except jwt.InvalidSignatureError:
        raise JWTError("Invalid token signature")
    except jwt.DecodeError as e:
        raise JWTError(f"Token decode error: {str(e)}")
    except PyJWTError as e:
        raise JWTError(f"Token validation error: {str(e)}")

    # Validate required claims
    if not payload.get("sub"):
        raise JWTError("Token missing 'sub' claim (user ID)")

    return payload


def user_from_payload(payload: Dict[str, Any]) -> CurrentUser:
    """Map verified claims to a CurrentUser. Unknown roles become USER."""
    raw_role = str(payload.get("role", UserRole.USER.value)).upper()
    try:
        role = UserRole(raw_role)
    except ValueError:
        role = UserRole.USER

    return CurrentUser(
        id=str(payload["sub"]),
        email=payload.get("email"),
        name=payload.get("name"),
        role=role,
    )


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    role: UserRole = UserRole.USER,
    config: Optional[AuthConfig] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    """
    Sign a token the way the auth provider does.

    For local tooling and tests; production tokens come from the provider.
    """
    config = config or get_auth_config()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role.value,
        "iat": now,
        "exp": now + (expires_in or timedelta(minutes=config.jwt_expires_minutes)),
    }
    if config.jwt_audience:
        payload["aud"] = config.jwt_audience
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)
