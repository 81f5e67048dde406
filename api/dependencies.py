"""API Dependencies - repositories, services and authentication"""
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from application.services import (
    AuthService, AvailabilityService, Clock, ReservationService, RoomService,
)
from config import settings
from domain.auth import TokenIssuer, User
from domain.entities import Reservation
from domain.exceptions import AuthenticationError, InactiveUserError, PermissionDeniedError
from domain.repositories import ReservationRepository, RoomRepository, UserRepository
from domain.value_objects import utcnow
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryRoomRepository, InMemoryUserRepository,
)
from infrastructure.security import JWTTokenIssuer

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Process-wide storage; tests swap these through app.dependency_overrides
room_repo = InMemoryRoomRepository()
reservation_repo = InMemoryReservationRepository()
user_repo = InMemoryUserRepository()
token_issuer = JWTTokenIssuer(settings)


# ============================================================================
# REPOSITORIES & COLLABORATORS
# ============================================================================

def get_room_repository() -> RoomRepository:
    return room_repo

def get_reservation_repository() -> ReservationRepository:
    return reservation_repo

def get_user_repository() -> UserRepository:
    return user_repo

def get_token_issuer() -> TokenIssuer:
    return token_issuer

def get_clock() -> Clock:
    """Clock used by booking rules"""
    return utcnow


# ============================================================================
# SERVICES
# ============================================================================

def get_reservation_service(
    reservations: ReservationRepository = Depends(get_reservation_repository),
    rooms: RoomRepository = Depends(get_room_repository),
    clock: Clock = Depends(get_clock),
) -> ReservationService:
    return ReservationService(
        reservations, rooms, clock=clock, max_guests=settings.max_guests_per_reservation
    )

def get_availability_service(
    rooms: RoomRepository = Depends(get_room_repository),
    reservations: ReservationRepository = Depends(get_reservation_repository),
    clock: Clock = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(rooms, reservations, clock=clock)

def get_room_service(
    rooms: RoomRepository = Depends(get_room_repository),
    clock: Clock = Depends(get_clock),
) -> RoomService:
    return RoomService(rooms, clock=clock)

def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    # tokens are checked against wall-clock time, so they are always issued with it
    return AuthService(users, tokens)


# ============================================================================
# AUTHENTICATION & PERMISSIONS
# ============================================================================

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    users: UserRepository = Depends(get_user_repository),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> User:
    payload = tokens.decode(token)
    stored = await users.find_by_id(payload["sub"])
    if stored is None:
        raise AuthenticationError("Could not validate credentials")
    return User(**stored.model_dump(exclude={"hashed_password"}))

async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise InactiveUserError("Inactive user")
    return current_user

def require_permission(*permissions: str):
    """Dependency allowing users that hold any of the given permissions"""

    async def checker(current_user: User = Depends(get_current_active_user)) -> User:
        if not any(current_user.can(p) for p in permissions):
            raise PermissionDeniedError(
                "You do not have permission to perform this action",
                {"required": list(permissions)},
            )
        return current_user

    return checker

def ensure_reservation_access(user: User, reservation: Reservation, staff_permission: str) -> None:
    """Staff need ``staff_permission``; guests may only touch their own bookings"""
    if user.can(staff_permission):
        return
    if reservation.guest_id == user.user_id:
        return
    raise PermissionDeniedError("You can only access your own reservations")
