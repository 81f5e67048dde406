"""Cancellation penalty schedule.

The single source for how much of a booking is withheld on cancellation.
Both the Reservation aggregate and the PricingCalculator read from here.
"""
from decimal import Decimal
from typing import Tuple

from domain.value_objects import Money

# (minimum days before check-in, penalty percent), checked top to bottom
CANCELLATION_PENALTY_SCHEDULE: Tuple[Tuple[int, int], ...] = (
    (7, 0),
    (3, 25),
    (1, 50),
)
LATE_CANCELLATION_PENALTY = 100


def penalty_percentage(days_before_check_in: int) -> Decimal:
    for min_days, percent in CANCELLATION_PENALTY_SCHEDULE:
        if days_before_check_in >= min_days:
            return Decimal(percent)
    return Decimal(LATE_CANCELLATION_PENALTY)


def penalty_for(price: Money, days_before_check_in: int) -> Money:
    return price.percentage(penalty_percentage(days_before_check_in))
