"""
Authentication Configuration

Settings for bearer-token validation. Tokens are issued by the external auth
provider and signed with a shared secret.
"""

import os
from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class AuthConfig(BaseSettings):
    """Authentication configuration loaded from environment."""

    # JWT Settings
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = None
    jwt_expires_minutes: int = 60 * 24 * 7

    # Auth behavior
    auth_enabled: bool = True  # Set to False for local dev without auth

    class Config:
        env_prefix = ""
        extra = "ignore"

    @property
    def is_configured(self) -> bool:
        """Check if auth is properly configured."""
        return bool(self.jwt_secret)


@lru_cache()
def get_auth_config() -> AuthConfig:
    """Get cached auth configuration."""
    return AuthConfig(
        jwt_secret=os.getenv("JWT_SECRET", ""),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_audience=os.getenv("JWT_AUDIENCE") or None,
        auth_enabled=os.getenv("AUTH_ENABLED", "true").lower() == "true",
    )
