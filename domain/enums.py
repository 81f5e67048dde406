"""Domain Enums"""
from enum import Enum


class ReservationState(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"

    @property
    def blocks_room(self) -> bool:
        """Whether a reservation in this state occupies its room"""
        return self in BLOCKING_STATES

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationState.CANCELLED, ReservationState.CHECKED_OUT)


BLOCKING_STATES = frozenset({
    ReservationState.PENDING,
    ReservationState.CONFIRMED,
    ReservationState.CHECKED_IN,
})


class UserRole(str, Enum):
    GUEST = "GUEST"
    RECEPTIONIST = "RECEPTIONIST"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"

    @property
    def requires_card(self) -> bool:
        return self in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)
