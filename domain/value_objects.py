"""Domain Value Objects"""
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from domain.exceptions import (
    CurrencyMismatchError, InvalidAmountError, InvalidPeriodError,
    PastCheckInError, ValidationError,
)

DEFAULT_CURRENCY = "USD"
CENT = Decimal("0.01")
ONE_DAY = timedelta(days=1)

Moment = Union[datetime, date, str]
Number = Union[int, float, Decimal]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Moment) -> datetime:
    """Normalize a datetime, date or ISO-8601 string to an aware UTC datetime.

    Naive datetimes are taken as UTC and a bare date means midnight UTC.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidPeriodError(f"Invalid ISO-8601 date: {value!r}") from e
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise InvalidPeriodError(f"Unsupported date value: {value!r}")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as e:
            raise InvalidAmountError(f"Not a number: {value!r}") from e
    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be a finite number: {value!r}")
    return amount


class Money(BaseModel):
    """Value Object for monetary amounts"""
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, v):
        if isinstance(v, (int, float, str, Decimal)) and not isinstance(v, bool):
            return _to_decimal(v)
        return v

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise InvalidAmountError("Currency is required")
        return v

    @model_validator(mode="after")
    def _non_negative(self) -> "Money":
        if self.amount < 0:
            raise InvalidAmountError(
                "Amount cannot be negative", {"amount": str(self.amount)}
            )
        return self

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(amount=Decimal("0"), currency=currency)

    # ==================== ARITHMETIC ====================
    def add(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        if other.amount > self.amount:
            raise InvalidAmountError("Subtraction would produce a negative amount")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def scale(self, factor: Number) -> "Money":
        """Multiply by a non-negative factor, rounded to cents"""
        factor = _to_decimal(factor)
        if factor < 0:
            raise InvalidAmountError("Scale factor cannot be negative", {"factor": str(factor)})
        return Money(amount=_round(self.amount * factor), currency=self.currency)

    def apply_discount_percent(self, pct: Number) -> "Money":
        pct = _to_decimal(pct)
        if pct < 0 or pct > 100:
            raise ValidationError("Discount must be between 0 and 100 percent", {"percent": str(pct)})
        return self.scale((Decimal(100) - pct) / Decimal(100))

    def percentage(self, pct: Number) -> "Money":
        """Return pct percent of this amount"""
        return self.scale(_to_decimal(pct) / Decimal(100))

    # ==================== QUERIES ====================
    def is_zero(self) -> bool:
        return self.amount == 0

    def __lt__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount >= other.amount

    def _ensure_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot combine {self.currency} with {other.currency}",
                {"left": self.currency, "right": other.currency},
            )

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class Period(BaseModel):
    """Value Object for a stay: half-open interval [check_in, check_out)"""
    model_config = ConfigDict(frozen=True)

    check_in: datetime
    check_out: datetime

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def _normalize(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def _check_out_after_check_in(self) -> "Period":
        if self.check_in >= self.check_out:
            raise InvalidPeriodError(
                "Check-out must be after check-in",
                {"check_in": self.check_in.isoformat(), "check_out": self.check_out.isoformat()},
            )
        return self

    @classmethod
    def create(cls, check_in: Moment, check_out: Moment, now: Optional[datetime] = None) -> "Period":
        """Build a period for a new booking; check-in must lie in the future"""
        period = cls(check_in=check_in, check_out=check_out)
        moment = as_utc(now) if now is not None else utcnow()
        if period.check_in <= moment:
            raise PastCheckInError(
                "Check-in must be in the future",
                {"check_in": period.check_in.isoformat()},
            )
        return period

    def nights(self) -> int:
        """Number of nights, rounded up and never less than one"""
        nights = math.ceil((self.check_out - self.check_in) / ONE_DAY)
        return max(1, nights)

    def overlaps(self, other: "Period") -> bool:
        # touching boundaries (one checks out as the other checks in) do not overlap
        return self.check_in < other.check_out and self.check_out > other.check_in

    def includes(self, moment: Moment) -> bool:
        moment = as_utc(moment)
        return self.check_in <= moment < self.check_out

    def days_until_check_in(self, moment: Moment) -> int:
        return math.ceil((self.check_in - as_utc(moment)) / ONE_DAY)


class RoomType(BaseModel):
    """Value Object for a room category, copied by value into each Room"""
    model_config = ConfigDict(frozen=True)

    name: str
    capacity: int
    base_rate: Money
    amenities: Tuple[str, ...] = ()
    description: Optional[str] = None

    @model_validator(mode="after")
    def _validate(self) -> "RoomType":
        if not self.name.strip():
            raise ValidationError("Room type name is required")
        if self.capacity <= 0:
            raise ValidationError("Room type capacity must be greater than 0", {"capacity": self.capacity})
        return self

    def can_accommodate(self, guests: int) -> bool:
        return 0 < guests <= self.capacity

    def has_amenity(self, amenity: str) -> bool:
        wanted = amenity.strip().lower()
        return any(a.lower() == wanted for a in self.amenities)
