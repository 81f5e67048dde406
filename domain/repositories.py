"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from domain.auth import UserInDB
from domain.entities import Reservation, Room


class RoomRepository(ABC):
    """Repository interface for Room Aggregate"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Insert or replace a room; the room number must stay unique"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: str) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_by_number(self, number: str) -> Optional[Room]:
        """Find room by its door number"""
        pass

    @abstractmethod
    async def find_active(self) -> List[Room]:
        """Find rooms that can be booked"""
        pass

    @abstractmethod
    async def find_by_type(self, type_name: str) -> List[Room]:
        """Find rooms of a room type (case-insensitive)"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        """Find all rooms"""
        pass


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate

    ``save`` is the last line of defence for two invariants and must check
    them atomically with the write:

    * no two blocking reservations of the same room overlap
      (raise ``RoomNotAvailableError``)
    * an update must carry a newer ``version`` than the stored one
      (raise ``StaleReservationError``)
    """

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: str) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_room(self, room_id: str) -> List[Reservation]:
        """Find reservations of a room, in any state"""
        pass

    @abstractmethod
    async def find_by_guest_id(self, guest_id: str) -> List[Reservation]:
        """Find reservations by guest ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        pass


class UserRepository(ABC):
    """Repository interface for User"""

    @abstractmethod
    async def save(self, user: UserInDB) -> UserInDB:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[UserInDB]:
        pass

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[UserInDB]:
        pass

    @abstractmethod
    async def verify_credentials(self, email: str, password: str) -> Optional[UserInDB]:
        """Return the user when the password matches, None otherwise"""
        pass

    @abstractmethod
    async def update_last_login(self, user_id: str, moment: datetime) -> None:
        pass
