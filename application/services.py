"""Application Services - Business use cases

Every public use case returns a ``Result``: ``Success`` with the value, or
``Failure`` with a ``DomainError``. Unexpected repository exceptions are
logged and reported as ``InfrastructureError``.
"""
import functools
import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

from application.dtos import (
    AvailabilityQuery, AvailabilityResult, AvailableRoom,
    CancellationResult, CancelReservationCommand, ConfirmationResult,
    ConfirmReservationCommand, CreateReservationCommand, LoginCommand,
    RegisterRoomCommand,
)
from domain.auth import AuthenticatedPrincipal, TokenIssuer, User
from domain.entities import Reservation, Room
from domain.enums import PaymentMethod
from domain.exceptions import (
    CapacityExceededError, DomainError, InactiveUserError, InfrastructureError,
    InvalidCredentialsError, ReservationNotFoundError, RoomNotAvailableError,
    RoomNotBookableError, RoomNotFoundError, RoomNumberTakenError, ValidationError,
)
from domain.repositories import ReservationRepository, RoomRepository, UserRepository
from domain.result import Result, Success, Failure
from domain.services import AvailabilityChecker, PricingCalculator
from domain.value_objects import Money, Period, utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_MAX_GUESTS = 10
MAX_NOTES_LENGTH = 500
MIN_PASSWORD_LENGTH = 6

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CARD_NUMBER_PATTERN = re.compile(r"^\d{13,19}$")
SECURITY_CODE_PATTERN = re.compile(r"^\d{3,4}$")


def use_case(name: str):
    """Turn a coroutine that raises domain errors into one that returns a Result"""

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs) -> Result:
            try:
                return await fn(*args, **kwargs)
            except DomainError as e:
                logger.warning(f"{name} rejected: {e.code} - {e.message}")
                return Failure(e)
            except Exception:
                logger.exception(f"{name} failed unexpectedly")
                return Failure(InfrastructureError(f"Could not complete {name}, please retry later"))
        return wrapper

    return decorator


def _require(value: Optional[str], message: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(message)
    return str(value).strip()


class ReservationService:
    """Service for Reservation business use cases"""

    def __init__(
        self,
        reservations: ReservationRepository,
        rooms: RoomRepository,
        checker: Optional[AvailabilityChecker] = None,
        pricing: Optional[PricingCalculator] = None,
        clock: Clock = utcnow,
        max_guests: int = DEFAULT_MAX_GUESTS,
    ):
        self.reservations = reservations
        self.rooms = rooms
        self.checker = checker or AvailabilityChecker()
        self.pricing = pricing or PricingCalculator()
        self.clock = clock
        self.max_guests = max_guests

    @use_case("create reservation")
    async def create_reservation(self, command: CreateReservationCommand) -> Result[Reservation]:
        """Book a room; the reservation starts in PENDING"""
        now = self.clock()

        # 1. Validate input shape
        room_id = _require(command.room_id, "Room id is required")
        guest_id = _require(command.guest_id, "Guest id is required")
        guest_count = command.guest_count
        if isinstance(guest_count, bool) or not isinstance(guest_count, int):
            raise ValidationError("Guest count must be an integer", {"guest_count": guest_count})
        if not 1 <= guest_count <= self.max_guests:
            raise ValidationError(
                f"Guest count must be between 1 and {self.max_guests}",
                {"guest_count": guest_count},
            )
        if command.notes is not None and len(command.notes) > MAX_NOTES_LENGTH:
            raise ValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
        period = Period.create(command.check_in, command.check_out, now=now)

        # 2-3. Load the room and check it can be booked
        room = await self._load_room(room_id)
        if not room.is_bookable():
            raise RoomNotBookableError(f"Room {room.number} is not available for booking")

        # 4. Availability
        existing = await self.reservations.find_by_room(room.id)
        if self.checker.has_conflict(room.id, period, existing):
            raise RoomNotAvailableError(
                f"Room {room.number} is already booked for the requested dates",
                {"room_id": room.id},
            )

        # 5. Capacity
        if not room.can_accommodate(guest_count):
            raise CapacityExceededError(
                f"Room {room.number} holds at most {room.room_type.capacity} guests",
                {"capacity": room.room_type.capacity, "guest_count": guest_count},
            )

        # 6-8. Price, build and persist
        reservation = Reservation.create(
            room_id=room.id,
            guest_id=guest_id,
            period=period,
            total_price=self.pricing.price(room, period),
            guest_count=guest_count,
            notes=command.notes,
            now=now,
        )
        saved = await self.reservations.save(reservation)
        logger.info(
            f"Reservation created: {saved.id}, room={room.number}, guest={guest_id}, "
            f"nights={period.nights()}, total={saved.total_price}"
        )
        return Success(saved)

    @use_case("confirm reservation")
    async def confirm_reservation(self, command: ConfirmReservationCommand) -> Result[ConfirmationResult]:
        """Confirm a pending reservation after validating the payment details"""
        now = self.clock()
        reservation_id = _require(command.reservation_id, "Reservation id is required")
        method = self._validate_payment(command, now)

        reservation = await self._load_reservation(reservation_id)
        confirmed = reservation.confirm(now)

        # a conflicting booking may have been stored since this one was made
        existing = await self.reservations.find_by_room(reservation.room_id)
        if self.checker.has_conflict(
            reservation.room_id, reservation.period, existing, exclude_reservation_id=reservation.id
        ):
            raise RoomNotAvailableError(
                "The room is no longer available for the reservation dates",
                {"room_id": reservation.room_id},
            )

        saved = await self.reservations.save(confirmed)
        logger.info(f"Reservation confirmed: {saved.id}, payment={method.value}")
        return Success(ConfirmationResult(reservation=saved, payment_method=method, confirmed_at=now))

    @use_case("cancel reservation")
    async def cancel_reservation(self, command: CancelReservationCommand) -> Result[CancellationResult]:
        """Cancel a pending or confirmed reservation and work out the refund"""
        now = self.clock()
        reservation_id = _require(command.reservation_id, "Reservation id is required")
        cancelled_by = _require(command.cancelled_by, "The cancelling user is required")

        reservation = await self._load_reservation(reservation_id)
        cancelled = reservation.cancel(command.reason, now)
        saved = await self.reservations.save(cancelled)

        result = CancellationResult(
            reservation=saved,
            cancelled_by=cancelled_by,
            penalty=saved.cancellation_penalty(),
            penalty_percentage=saved.cancellation_penalty_percentage(),
            refund=saved.refund_amount(),
        )
        logger.info(
            f"Reservation cancelled: {saved.id}, by={cancelled_by}, "
            f"penalty={result.penalty}, refund={result.refund}"
        )
        return Success(result)

    @use_case("check in")
    async def check_in(self, reservation_id: str) -> Result[Reservation]:
        reservation = await self._load_reservation(_require(reservation_id, "Reservation id is required"))
        saved = await self.reservations.save(reservation.check_in(self.clock()))
        logger.info(f"Guest checked in: reservation={saved.id}, room={saved.room_id}")
        return Success(saved)

    @use_case("check out")
    async def check_out(self, reservation_id: str) -> Result[Reservation]:
        reservation = await self._load_reservation(_require(reservation_id, "Reservation id is required"))
        saved = await self.reservations.save(reservation.check_out(self.clock()))
        logger.info(f"Guest checked out: reservation={saved.id}, room={saved.room_id}")
        return Success(saved)

    @use_case("get reservation")
    async def get_reservation(self, reservation_id: str) -> Result[Reservation]:
        return Success(await self._load_reservation(reservation_id))

    @use_case("list reservations")
    async def list_reservations(self, guest_id: Optional[str] = None) -> Result[List[Reservation]]:
        """All reservations, or one guest's, oldest first"""
        if guest_id is not None:
            found = await self.reservations.find_by_guest_id(guest_id)
        else:
            found = await self.reservations.find_all()
        return Success(sorted(found, key=lambda r: r.created_at))

    async def _load_room(self, room_id: str) -> Room:
        room = await self.rooms.find_by_id(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found", {"room_id": room_id})
        return room

    async def _load_reservation(self, reservation_id: str) -> Reservation:
        reservation = await self.reservations.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(
                f"Reservation {reservation_id} not found", {"reservation_id": reservation_id}
            )
        return reservation

    def _validate_payment(self, command: ConfirmReservationCommand, now: datetime) -> PaymentMethod:
        raw = _require(command.payment_method, "Payment method is required")
        try:
            method = PaymentMethod(raw.lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported payment method: {raw}",
                {"allowed": [m.value for m in PaymentMethod]},
            )
        if not method.requires_card:
            return method

        card_number = _require(command.card_number, "Card number is required for card payments")
        security_code = _require(command.security_code, "Security code is required for card payments")
        expiry = _require(command.expiry_date, "Expiry date is required for card payments")

        if not CARD_NUMBER_PATTERN.match(re.sub(r"\s", "", card_number)):
            raise ValidationError("Card number must have between 13 and 19 digits")
        if not SECURITY_CODE_PATTERN.match(security_code):
            raise ValidationError("Security code must have 3 or 4 digits")
        try:
            expires = datetime.strptime(expiry, "%Y-%m")
        except ValueError:
            raise ValidationError("Expiry date must use the YYYY-MM format")
        # a card is valid through the last day of its expiry month
        if (expires.year, expires.month) < (now.year, now.month):
            raise ValidationError("Card has expired")
        return method


class AvailabilityService:
    """Service for availability queries"""

    def __init__(
        self,
        rooms: RoomRepository,
        reservations: ReservationRepository,
        checker: Optional[AvailabilityChecker] = None,
        pricing: Optional[PricingCalculator] = None,
        clock: Clock = utcnow,
    ):
        self.rooms = rooms
        self.reservations = reservations
        self.checker = checker or AvailabilityChecker()
        self.pricing = pricing or PricingCalculator()
        self.clock = clock

    @use_case("availability query")
    async def query_availability(self, query: AvailabilityQuery) -> Result[AvailabilityResult]:
        if query.min_capacity is not None and query.min_capacity <= 0:
            raise ValidationError("Minimum capacity must be greater than 0")
        max_price = None
        if query.max_price is not None:
            try:
                max_price = Decimal(str(query.max_price))
            except InvalidOperation:
                raise ValidationError("Maximum price must be a number")
            if not max_price.is_finite():
                raise ValidationError("Maximum price must be a finite number")
            if max_price <= 0:
                raise ValidationError("Maximum price must be greater than 0")

        period = Period.create(query.check_in, query.check_out, now=self.clock())

        if query.room_type:
            candidates = await self.rooms.find_by_type(query.room_type)
        else:
            candidates = await self.rooms.find_active()
        existing = await self.reservations.find_all()

        available = []
        for room in self.checker.find_available_rooms(candidates, period, existing, query.room_type):
            if query.min_capacity is not None and room.room_type.capacity < query.min_capacity:
                continue
            total = self.pricing.price(room, period)
            if max_price is not None and total.amount > max_price:
                continue
            available.append(AvailableRoom(room=room, total_price=total))

        available.sort(key=lambda a: (a.total_price.amount, a.room.number))
        logger.info(
            f"Availability query: {len(available)} rooms free from "
            f"{period.check_in.date()} to {period.check_out.date()}"
        )
        return Success(AvailabilityResult(
            check_in=period.check_in,
            check_out=period.check_out,
            nights=period.nights(),
            rooms=available,
        ))


class RoomService:
    """Service for room administration"""

    def __init__(self, rooms: RoomRepository, clock: Clock = utcnow):
        self.rooms = rooms
        self.clock = clock

    @use_case("register room")
    async def register_room(self, command: RegisterRoomCommand) -> Result[Room]:
        number = _require(command.number, "Room number is required")
        if await self.rooms.find_by_number(number) is not None:
            raise RoomNumberTakenError(f"Room number {number} already exists", {"number": number})

        room = Room.create(
            number=number,
            room_type=command.room_type,
            base_price=command.base_price,
            floor=command.floor,
            view=command.view,
            now=self.clock(),
        )
        saved = await self.rooms.save(room)
        logger.info(f"Room registered: {saved.number} ({saved.room_type.name}) at {saved.base_price}")
        return Success(saved)

    @use_case("list rooms")
    async def list_rooms(self, active_only: bool = False) -> Result[List[Room]]:
        found = await self.rooms.find_active() if active_only else await self.rooms.find_all()
        return Success(sorted(found, key=lambda r: r.number))

    @use_case("get room")
    async def get_room(self, room_id: str) -> Result[Room]:
        return Success(await self._load(room_id))

    @use_case("activate room")
    async def activate_room(self, room_id: str) -> Result[Room]:
        room = await self._load(room_id)
        saved = await self.rooms.save(room.activate(self.clock()))
        logger.info(f"Room activated: {saved.number}")
        return Success(saved)

    @use_case("deactivate room")
    async def deactivate_room(self, room_id: str) -> Result[Room]:
        room = await self._load(room_id)
        saved = await self.rooms.save(room.deactivate(self.clock()))
        logger.info(f"Room deactivated: {saved.number}")
        return Success(saved)

    @use_case("change room price")
    async def change_price(self, room_id: str, new_price: Money) -> Result[Room]:
        room = await self._load(room_id)
        saved = await self.rooms.save(room.change_price(new_price, self.clock()))
        logger.info(f"Room repriced: {saved.number}, {room.base_price} -> {saved.base_price}")
        return Success(saved)

    async def _load(self, room_id: str) -> Room:
        room = await self.rooms.find_by_id(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found", {"room_id": room_id})
        return room


class AuthService:
    """Service for user authentication"""

    INVALID_CREDENTIALS = "Invalid email or password"

    def __init__(self, users: UserRepository, tokens: TokenIssuer, clock: Clock = utcnow):
        self.users = users
        self.tokens = tokens
        self.clock = clock

    @use_case("login")
    async def authenticate(self, command: LoginCommand) -> Result[AuthenticatedPrincipal]:
        email = _require(command.email, "Email is required").lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Email format is invalid")
        password = command.password or ""
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        stored = await self.users.find_by_email(email)
        if stored is None:
            raise InvalidCredentialsError(self.INVALID_CREDENTIALS)
        if stored.disabled:
            raise InactiveUserError("User account is disabled")
        if await self.users.verify_credentials(email, password) is None:
            raise InvalidCredentialsError(self.INVALID_CREDENTIALS)

        now = self.clock()
        await self.users.update_last_login(stored.user_id, now)
        user = User(**stored.model_dump(exclude={"hashed_password"})).model_copy(
            update={"last_login_at": now}
        )
        token, expires_at = self.tokens.issue(user.user_id, {"role": user.role.value}, now)

        logger.info(f"User logged in: {user.email} ({user.role.value})")
        return Success(AuthenticatedPrincipal(
            user=user,
            access_token=token,
            expires_at=expires_at,
            permissions=tuple(sorted(user.permissions)),
        ))
