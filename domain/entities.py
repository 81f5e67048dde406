"""Domain Entities - Aggregates

Both aggregates are immutable: every state change returns a new instance
carrying the updated state, ``updated_at`` and (for reservations) ``version``.
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.enums import ReservationState
from domain.exceptions import (
    InvalidReservationStateError, InvalidStateTransitionError, ValidationError,
)
from domain.policies import penalty_for, penalty_percentage
from domain.value_objects import Money, Period, RoomType, as_utc, utcnow

CANCELLATION_REASON_MIN_LENGTH = 10
CANCELLATION_REASON_MAX_LENGTH = 200


def _new_id() -> str:
    return str(uuid4())


def _moment(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else utcnow()


class Room(BaseModel):
    """Room Aggregate Root Entity"""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    # Identity
    id: str = Field(default_factory=_new_id)
    number: str

    # Value Objects
    room_type: RoomType
    base_price: Money

    active: bool = True
    floor: int = 1
    view: str = ""

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _validate(self) -> "Room":
        if not self.number.strip():
            raise ValidationError("Room number is required")
        if self.floor < 1:
            raise ValidationError("Floor must be 1 or higher", {"floor": self.floor})
        return self

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        number: str,
        room_type: RoomType,
        base_price: Money,
        floor: int = 1,
        view: str = "",
        room_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Room":
        moment = _moment(now)
        return Room(
            id=room_id or _new_id(),
            number=number.strip(),
            room_type=room_type,
            base_price=base_price,
            active=True,
            floor=floor,
            view=view,
            created_at=moment,
            updated_at=moment,
        )

    # ==================== QUERY METHODS ====================
    def is_bookable(self) -> bool:
        return self.active

    def can_accommodate(self, guests: int) -> bool:
        return self.room_type.can_accommodate(guests)

    def total_price_for(self, nights: int) -> Money:
        if nights <= 0:
            raise ValidationError("Number of nights must be greater than 0", {"nights": nights})
        return self.base_price.scale(nights)

    # ==================== STATE TRANSITION METHODS ====================
    def activate(self, now: Optional[datetime] = None) -> "Room":
        if self.active:
            raise InvalidStateTransitionError(f"Room {self.number} is already active")
        return self.model_copy(update={"active": True, "updated_at": _moment(now)})

    def deactivate(self, now: Optional[datetime] = None) -> "Room":
        if not self.active:
            raise InvalidStateTransitionError(f"Room {self.number} is already inactive")
        return self.model_copy(update={"active": False, "updated_at": _moment(now)})

    def change_price(self, new_price: Money, now: Optional[datetime] = None) -> "Room":
        return self.model_copy(update={"base_price": new_price, "updated_at": _moment(now)})


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    # Identity
    id: str = Field(default_factory=_new_id)

    # References to other aggregates
    room_id: str
    guest_id: str

    # Value Objects
    period: Period
    total_price: Money

    state: ReservationState = ReservationState.PENDING
    guest_count: int
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    @model_validator(mode="after")
    def _validate(self) -> "Reservation":
        if not self.room_id.strip():
            raise ValidationError("Room id is required")
        if not self.guest_id.strip():
            raise ValidationError("Guest id is required")
        if self.guest_count <= 0:
            raise ValidationError("Guest count must be greater than 0", {"guest_count": self.guest_count})
        return self

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room_id: str,
        guest_id: str,
        period: Period,
        total_price: Money,
        guest_count: int,
        notes: Optional[str] = None,
        reservation_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Reservation":
        """Create a new reservation in PENDING state"""
        moment = _moment(now)
        return Reservation(
            id=reservation_id or _new_id(),
            room_id=room_id,
            guest_id=guest_id,
            period=period,
            total_price=total_price,
            state=ReservationState.PENDING,
            guest_count=guest_count,
            notes=notes,
            created_at=moment,
            updated_at=moment,
        )

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self, now: Optional[datetime] = None) -> "Reservation":
        self._require_state((ReservationState.PENDING,), "confirm")
        return self._transition(ReservationState.CONFIRMED, _moment(now))

    def cancel(self, reason: str, now: Optional[datetime] = None) -> "Reservation":
        if not self.is_cancellable():
            raise InvalidReservationStateError(
                f"Cannot cancel reservation with state {self.state.value}",
                {"current_state": self.state.value},
            )

        reason = (reason or "").strip()
        if len(reason) < CANCELLATION_REASON_MIN_LENGTH:
            raise ValidationError(
                f"Cancellation reason must be at least {CANCELLATION_REASON_MIN_LENGTH} characters"
            )
        if len(reason) > CANCELLATION_REASON_MAX_LENGTH:
            raise ValidationError(
                f"Cancellation reason cannot exceed {CANCELLATION_REASON_MAX_LENGTH} characters"
            )

        moment = _moment(now)
        return self._transition(
            ReservationState.CANCELLED, moment,
            cancellation_reason=reason, cancelled_at=moment,
        )

    def check_in(self, now: Optional[datetime] = None) -> "Reservation":
        self._require_state((ReservationState.CONFIRMED,), "check in")

        moment = _moment(now)
        if self.period.check_in.date() > moment.date():
            raise InvalidReservationStateError(
                "Cannot check in before the check-in date",
                {"check_in": self.period.check_in.date().isoformat()},
            )
        return self._transition(ReservationState.CHECKED_IN, moment)

    def check_out(self, now: Optional[datetime] = None) -> "Reservation":
        self._require_state((ReservationState.CHECKED_IN,), "check out")
        return self._transition(ReservationState.CHECKED_OUT, _moment(now))

    # ==================== QUERY METHODS ====================
    def is_cancellable(self) -> bool:
        return self.state in (ReservationState.PENDING, ReservationState.CONFIRMED)

    def is_active(self) -> bool:
        """Whether this reservation still occupies its room"""
        return self.state.blocks_room

    def nights(self) -> int:
        return self.period.nights()

    def days_notice(self) -> Optional[int]:
        """Days between cancellation and check-in, None unless cancelled"""
        if self.state != ReservationState.CANCELLED:
            return None
        return self.period.days_until_check_in(self.cancelled_at or self.updated_at)

    def cancellation_penalty(self) -> Money:
        days = self.days_notice()
        if days is None:
            return Money.zero(self.total_price.currency)
        return penalty_for(self.total_price, days)

    def cancellation_penalty_percentage(self) -> Decimal:
        days = self.days_notice()
        return penalty_percentage(days) if days is not None else Decimal(0)

    def refund_amount(self) -> Money:
        return self.total_price.subtract(self.cancellation_penalty())

    # ==================== PRIVATE HELPERS ====================
    def _require_state(self, allowed: Iterable[ReservationState], action: str) -> None:
        if self.state not in allowed:
            raise InvalidReservationStateError(
                f"Cannot {action} reservation with state {self.state.value}",
                {"current_state": self.state.value},
            )

    def _transition(self, state: ReservationState, moment: datetime, **changes) -> "Reservation":
        changes.update(state=state, updated_at=moment, version=self.version + 1)
        return self.model_copy(update=changes)
