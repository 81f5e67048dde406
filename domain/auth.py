"""Domain Entities - Auth"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from domain.enums import UserRole

ALL_PERMISSIONS = "*"

_RECEPTIONIST_PERMISSIONS = (
    "check_availability",
    "create_reservation",
    "view_reservations",
    "confirm_reservation",
    "cancel_reservation",
    "check_in",
    "check_out",
    "view_rooms",
)

ROLE_PERMISSIONS: Dict[UserRole, Tuple[str, ...]] = {
    UserRole.GUEST: (
        "check_availability",
        "create_reservation",
        "view_own_reservations",
        "cancel_own_reservations",
    ),
    UserRole.RECEPTIONIST: _RECEPTIONIST_PERMISSIONS,
    UserRole.MANAGER: _RECEPTIONIST_PERMISSIONS + (
        "manage_rooms",
        "manage_users",
        "view_reports",
    ),
    UserRole.ADMIN: (ALL_PERMISSIONS,),
}


def permissions_for(role: UserRole) -> FrozenSet[str]:
    return frozenset(ROLE_PERMISSIONS.get(role, ()))


class User(BaseModel):
    """User Entity"""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: str = Field(default_factory=lambda: str(uuid4()))
    email: str
    full_name: Optional[str] = None
    role: UserRole = UserRole.GUEST
    disabled: bool = False
    last_login_at: Optional[datetime] = None

    @property
    def permissions(self) -> FrozenSet[str]:
        return permissions_for(self.role)

    def can(self, permission: str) -> bool:
        if self.disabled:
            return False
        granted = self.permissions
        return ALL_PERMISSIONS in granted or permission in granted


class UserInDB(User):
    """User with hashed password for DB storage"""
    hashed_password: str


class AuthenticatedPrincipal(BaseModel):
    """Outcome of a successful login"""
    user: User
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    permissions: Tuple[str, ...]


class TokenIssuer(ABC):
    """Issues signed access tokens for authenticated users"""

    @abstractmethod
    def issue(self, subject: str, claims: Dict[str, Any], now: datetime) -> Tuple[str, datetime]:
        """Return the encoded token and its expiry"""
        pass

    @abstractmethod
    def decode(self, token: str) -> Dict[str, Any]:
        """Return the token claims, raising AuthenticationError when invalid"""
        pass
