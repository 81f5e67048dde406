"""Demo data loaded at startup when ``seed_demo_data`` is enabled"""
import logging
from decimal import Decimal
from typing import Dict

from domain.auth import UserInDB
from domain.entities import Room
from domain.enums import UserRole
from domain.repositories import RoomRepository, UserRepository
from domain.value_objects import Money, RoomType
from infrastructure.security import get_password_hash

logger = logging.getLogger(__name__)


def demo_room_types(currency: str = "USD") -> Dict[str, RoomType]:
    return {
        "individual": RoomType(
            name="individual",
            capacity=1,
            base_rate=Money(amount=Decimal("100"), currency=currency),
            amenities=("WiFi", "TV"),
            description="Single room for one guest",
        ),
        "double": RoomType(
            name="double",
            capacity=2,
            base_rate=Money(amount=Decimal("150"), currency=currency),
            amenities=("WiFi", "TV", "Minibar"),
            description="Double room for two guests",
        ),
        "suite": RoomType(
            name="suite",
            capacity=4,
            base_rate=Money(amount=Decimal("300"), currency=currency),
            amenities=("WiFi", "TV", "Minibar", "Jacuzzi", "Sea view"),
            description="Suite with living area",
        ),
    }


# (number, type, floor, view, active)
DEMO_ROOMS = (
    ("101", "individual", 1, "city", True),
    ("102", "individual", 1, "garden", True),
    ("201", "double", 2, "city", True),
    ("202", "double", 2, "garden", True),
    ("301", "suite", 3, "sea", True),
    ("302", "suite", 3, "sea", False),
)

# (email, full name, role, password)
DEMO_USERS = (
    ("admin@hotel.com", "Admin User", UserRole.ADMIN, "admin123"),
    ("manager@hotel.com", "Hotel Manager", UserRole.MANAGER, "manager123"),
    ("reception@hotel.com", "Front Desk", UserRole.RECEPTIONIST, "reception123"),
    ("guest@hotel.com", "Demo Guest", UserRole.GUEST, "guest123"),
)


async def seed_rooms(rooms: RoomRepository, currency: str = "USD") -> None:
    room_types = demo_room_types(currency)
    for number, type_name, floor, view, active in DEMO_ROOMS:
        if await rooms.find_by_number(number) is not None:
            continue
        room_type = room_types[type_name]
        room = Room.create(number=number, room_type=room_type, base_price=room_type.base_rate,
                           floor=floor, view=view)
        if not active:
            room = room.deactivate()
        await rooms.save(room)


async def seed_users(users: UserRepository) -> None:
    for email, full_name, role, password in DEMO_USERS:
        if await users.find_by_email(email) is not None:
            continue
        await users.save(UserInDB(
            email=email,
            full_name=full_name,
            role=role,
            hashed_password=get_password_hash(password),
        ))


async def seed_demo_data(rooms: RoomRepository, users: UserRepository, currency: str = "USD") -> None:
    await seed_rooms(rooms, currency)
    await seed_users(users)
    logger.info(f"Demo data ready: {len(DEMO_ROOMS)} rooms, {len(DEMO_USERS)} users")
