"""Domain Services - availability checking and pricing"""
from decimal import Decimal
from typing import Iterable, List, Optional

from domain.entities import Reservation, Room
from domain.exceptions import ValidationError
from domain.policies import penalty_for
from domain.value_objects import Money, Period

HIGH_SEASON_MONTHS = frozenset({12, 1, 2, 7, 8})
MID_SEASON_MONTHS = frozenset({3, 4, 5, 9, 10})
HIGH_SEASON_FACTOR = Decimal("1.5")
MID_SEASON_FACTOR = Decimal("1.2")
EXTRA_GUEST_SURCHARGE_PERCENT = Decimal("10")


class AvailabilityChecker:
    """Decides whether a room is free for a period.

    Only reservations in a blocking state (pending, confirmed, checked-in)
    count; cancelled and checked-out stays never conflict.
    """

    def is_available(self, room: Room, period: Period, existing: Iterable[Reservation]) -> bool:
        if not room.is_bookable():
            return False
        return not self.has_conflict(room.id, period, existing)

    def has_conflict(
        self,
        room_id: str,
        period: Period,
        existing: Iterable[Reservation],
        exclude_reservation_id: Optional[str] = None,
    ) -> bool:
        return bool(self.conflicts(room_id, period, existing, exclude_reservation_id))

    def conflicts(
        self,
        room_id: str,
        period: Period,
        existing: Iterable[Reservation],
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Reservation]:
        """Blocking reservations of the room that overlap the period"""
        return [
            r for r in existing
            if r.room_id == room_id
            and r.is_active()
            and r.id != exclude_reservation_id
            and r.period.overlaps(period)
        ]

    def find_available_rooms(
        self,
        rooms: Iterable[Room],
        period: Period,
        existing: Iterable[Reservation],
        room_type: Optional[str] = None,
    ) -> List[Room]:
        # one pass per room over the reservation list; fine for a single hotel
        existing = list(existing)
        wanted_type = room_type.strip().lower() if room_type else None
        return [
            room for room in rooms
            if room.is_bookable()
            and (wanted_type is None or room.room_type.name.lower() == wanted_type)
            and self.is_available(room, period, existing)
        ]


class PricingCalculator:
    """Computes stay prices; all results are Money in the room's currency"""

    def price(self, room: Room, period: Period) -> Money:
        return room.total_price_for(period.nights())

    def price_with_discount(self, room: Room, period: Period, pct) -> Money:
        return self.price(room, period).apply_discount_percent(pct)

    def price_with_tax(self, base: Money, tax_pct) -> Money:
        tax_pct = Decimal(str(tax_pct))
        if tax_pct < 0:
            raise ValidationError("Tax percentage cannot be negative", {"tax_pct": str(tax_pct)})
        return base.add(base.percentage(tax_pct))

    def cancellation_penalty(self, price: Money, days_before_check_in: int) -> Money:
        return penalty_for(price, days_before_check_in)

    def price_with_season(self, room: Room, period: Period, factor=None) -> Money:
        """Price scaled by a season factor; derived from the check-in month when omitted"""
        factor = self.seasonal_factor(period) if factor is None else Decimal(str(factor))
        if factor <= 0:
            raise ValidationError("Season factor must be greater than 0", {"factor": str(factor)})
        return self.price(room, period).scale(factor)

    def seasonal_factor(self, period: Period) -> Decimal:
        month = period.check_in.month
        if month in HIGH_SEASON_MONTHS:
            return HIGH_SEASON_FACTOR
        if month in MID_SEASON_MONTHS:
            return MID_SEASON_FACTOR
        return Decimal("1")

    def price_for_group(self, room: Room, period: Period, guests: int) -> Money:
        if guests <= 0:
            raise ValidationError("Number of guests must be greater than 0", {"guests": guests})
        base = self.price(room, period)
        extra_guests = guests - room.room_type.capacity
        if extra_guests <= 0:
            return base
        surcharge = base.percentage(EXTRA_GUEST_SURCHARGE_PERCENT).scale(extra_guests)
        return base.add(surcharge)

    def length_of_stay_discount(self, nights: int) -> Decimal:
        """Discount percent granted for longer stays"""
        if nights >= 7:
            return Decimal("15")
        if nights >= 3:
            return Decimal("5")
        return Decimal("0")
