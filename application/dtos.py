"""Application DTOs - use case commands and results"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from domain.entities import Reservation, Room
from domain.enums import PaymentMethod
from domain.value_objects import Moment, Money, RoomType


# ============================================================================
# COMMANDS
# ============================================================================

@dataclass(frozen=True)
class CreateReservationCommand:
    room_id: str
    guest_id: str
    check_in: Moment
    check_out: Moment
    guest_count: int
    notes: Optional[str] = None


@dataclass(frozen=True)
class ConfirmReservationCommand:
    """Card fields are required for card payments; they are validated, never stored"""
    reservation_id: str
    payment_method: str
    card_number: Optional[str] = None
    security_code: Optional[str] = None
    expiry_date: Optional[str] = None  # YYYY-MM


@dataclass(frozen=True)
class CancelReservationCommand:
    reservation_id: str
    reason: str
    cancelled_by: str


@dataclass(frozen=True)
class AvailabilityQuery:
    check_in: Moment
    check_out: Moment
    room_type: Optional[str] = None
    min_capacity: Optional[int] = None
    max_price: Optional[Decimal] = None


@dataclass(frozen=True)
class RegisterRoomCommand:
    number: str
    room_type: RoomType
    base_price: Money
    floor: int = 1
    view: str = ""


@dataclass(frozen=True)
class LoginCommand:
    email: str
    password: str


# ============================================================================
# RESULTS
# ============================================================================

@dataclass(frozen=True)
class ConfirmationResult:
    reservation: Reservation
    payment_method: PaymentMethod
    confirmed_at: datetime


@dataclass(frozen=True)
class CancellationResult:
    reservation: Reservation
    cancelled_by: str
    penalty: Money
    penalty_percentage: Decimal
    refund: Money
    refund_method: str = "original_payment_method"

    @property
    def penalty_applied(self) -> bool:
        return not self.penalty.is_zero()


@dataclass(frozen=True)
class AvailableRoom:
    room: Room
    total_price: Money


@dataclass(frozen=True)
class AvailabilityResult:
    check_in: datetime
    check_out: datetime
    nights: int
    rooms: List[AvailableRoom] = field(default_factory=list)

    @property
    def total_available(self) -> int:
        return len(self.rooms)
