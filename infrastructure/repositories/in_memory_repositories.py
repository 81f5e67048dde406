"""In-Memory Repository Implementations

Each ``save`` checks its invariants and writes without awaiting in between,
so on a single event loop the check and the write cannot interleave with
another request.
"""
from datetime import datetime
from typing import Dict, List, Optional

from domain.auth import UserInDB
from domain.entities import Reservation, Room
from domain.exceptions import (
    RoomNotAvailableError, RoomNumberTakenError, StaleReservationError, UserNotFoundError,
)
from domain.repositories import ReservationRepository, RoomRepository, UserRepository
from infrastructure.security import verify_password


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self):
        self._storage: Dict[str, Room] = {}

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        for other in self._storage.values():
            if other.id != room.id and other.number == room.number:
                raise RoomNumberTakenError(
                    f"Room number {room.number} already exists", {"number": room.number}
                )
        self._storage[room.id] = room
        return room

    async def find_by_id(self, room_id: str) -> Optional[Room]:
        """Find room by ID"""
        return self._storage.get(room_id)

    async def find_by_number(self, number: str) -> Optional[Room]:
        """Find room by number"""
        for room in self._storage.values():
            if room.number == number:
                return room
        return None

    async def find_active(self) -> List[Room]:
        """Find rooms that can be booked"""
        return [r for r in self._storage.values() if r.is_bookable()]

    async def find_by_type(self, type_name: str) -> List[Room]:
        """Find rooms of a room type"""
        wanted = type_name.strip().lower()
        return [r for r in self._storage.values() if r.room_type.name.lower() == wanted]

    async def find_all(self) -> List[Room]:
        """Find all rooms"""
        return list(self._storage.values())


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[str, Reservation] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Insert or replace a reservation by id"""
        stored = self._storage.get(reservation.id)
        if stored is not None and reservation.version <= stored.version:
            raise StaleReservationError(
                f"Reservation {reservation.id} was modified concurrently",
                {"stored_version": stored.version, "incoming_version": reservation.version},
            )

        if reservation.is_active():
            for other in self._storage.values():
                if (
                    other.id != reservation.id
                    and other.room_id == reservation.room_id
                    and other.is_active()
                    and other.period.overlaps(reservation.period)
                ):
                    raise RoomNotAvailableError(
                        "Room is already booked for the requested dates",
                        {"room_id": reservation.room_id, "conflicting_reservation": other.id},
                    )

        self._storage[reservation.id] = reservation
        return reservation

    async def find_by_id(self, reservation_id: str) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._storage.get(reservation_id)

    async def find_by_room(self, room_id: str) -> List[Reservation]:
        """Find reservations of a room"""
        return [r for r in self._storage.values() if r.room_id == room_id]

    async def find_by_guest_id(self, guest_id: str) -> List[Reservation]:
        """Find reservations by guest ID"""
        return [r for r in self._storage.values() if r.guest_id == guest_id]

    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        return list(self._storage.values())


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository"""

    def __init__(self):
        self._storage: Dict[str, UserInDB] = {}

    async def save(self, user: UserInDB) -> UserInDB:
        self._storage[user.user_id] = user
        return user

    async def find_by_email(self, email: str) -> Optional[UserInDB]:
        wanted = email.strip().lower()
        for user in self._storage.values():
            if user.email.lower() == wanted:
                return user
        return None

    async def find_by_id(self, user_id: str) -> Optional[UserInDB]:
        return self._storage.get(user_id)

    async def verify_credentials(self, email: str, password: str) -> Optional[UserInDB]:
        user = await self.find_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    async def update_last_login(self, user_id: str, moment: datetime) -> None:
        user = self._storage.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found", {"user_id": user_id})
        self._storage[user_id] = user.model_copy(update={"last_login_at": moment})
