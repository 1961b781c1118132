"""
Authentication Models

User records live with the external auth provider; requests carry the
identity as token claims.
"""

import enum
from dataclasses import dataclass
from typing import Optional


class UserRole(enum.Enum):
    """User role for access control."""
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller, built from verified token claims."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role == UserRole.ADMIN
