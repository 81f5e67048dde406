"""
Tests for the application use cases and the in-memory repositories.
Services run against a fixed clock so date-pinned scenarios are deterministic.
"""

import asyncio
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from application.dtos import (
    AvailabilityQuery, CancelReservationCommand, ConfirmReservationCommand,
    CreateReservationCommand, LoginCommand, RegisterRoomCommand,
)
from application.services import (
    AuthService, AvailabilityService, ReservationService, RoomService,
)
from domain.auth import UserInDB
from domain.entities import Reservation, Room
from domain.enums import PaymentMethod, ReservationState, UserRole
from domain.exceptions import (
    CapacityExceededError, InactiveUserError, InfrastructureError, InvalidCredentialsError,
    InvalidReservationStateError, InvalidStateTransitionError, PastCheckInError,
    ReservationNotFoundError, RoomNotAvailableError, RoomNotBookableError, RoomNotFoundError,
    RoomNumberTakenError, StaleReservationError, ValidationError,
)
from domain.value_objects import Money, Period
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryRoomRepository, InMemoryUserRepository,
)
from infrastructure.security import JWTTokenIssuer, get_password_hash
from infrastructure.seed import demo_room_types
from config import Settings

UTC = timezone.utc
REASON = "Change of travel plans"


def at(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


class FixedClock:
    """Clock that only moves when told to"""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment


class PermissiveReservationRepository(InMemoryReservationRepository):
    """Stores anything; lets tests plant conflicting bookings behind the service's back"""

    async def save(self, reservation: Reservation) -> Reservation:
        self._storage[reservation.id] = reservation
        return reservation


class BrokenRoomRepository(InMemoryRoomRepository):
    async def find_by_id(self, room_id: str):
        raise RuntimeError("connection to db-primary:5432 refused")


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def clock():
    return FixedClock(at(2025, 5, 1))


@pytest.fixture
def room_types():
    return demo_room_types()


@pytest.fixture
def room_repository():
    return InMemoryRoomRepository()


@pytest.fixture
def reservation_repository():
    return InMemoryReservationRepository()


@pytest.fixture
async def rooms(room_repository, room_types):
    """R1 is the double room: capacity 2 at 150 USD a night"""
    created = {
        "single": Room.create(number="101", room_type=room_types["individual"],
                              base_price=room_types["individual"].base_rate, room_id="room-101"),
        "R1": Room.create(number="201", room_type=room_types["double"],
                          base_price=room_types["double"].base_rate, room_id="room-201"),
        "suite": Room.create(number="301", room_type=room_types["suite"],
                             base_price=room_types["suite"].base_rate, room_id="room-301"),
        "closed": Room.create(number="302", room_type=room_types["suite"],
                              base_price=room_types["suite"].base_rate, room_id="room-302").deactivate(),
    }
    for room in created.values():
        await room_repository.save(room)
    return created


@pytest.fixture
def reservation_service(reservation_repository, room_repository, clock):
    return ReservationService(reservation_repository, room_repository, clock=clock)


@pytest.fixture
def availability_service(room_repository, reservation_repository, clock):
    return AvailabilityService(room_repository, reservation_repository, clock=clock)


@pytest.fixture
def room_service(room_repository, clock):
    return RoomService(room_repository, clock=clock)


def june_booking(room_id="room-201", guest_count=2, check_in="2025-06-01", check_out="2025-06-04",
                 guest_id="guest-1", notes=None):
    return CreateReservationCommand(
        room_id=room_id, guest_id=guest_id, check_in=check_in, check_out=check_out,
        guest_count=guest_count, notes=notes,
    )


async def create_ok(service, command=None) -> Reservation:
    result = await service.create_reservation(command or june_booking())
    assert result.is_success(), result
    return result.value


# ============================================================================
# CREATE RESERVATION
# ============================================================================

class TestCreateReservation:
    """Test ReservationService.create_reservation"""

    @pytest.mark.unit
    @pytest.mark.application
    async def test_three_nights_at_150(self, reservation_service, reservation_repository, rooms):
        reservation = await create_ok(reservation_service)

        assert reservation.state == ReservationState.PENDING
        assert reservation.total_price == Money(amount=Decimal("450"), currency="USD")
        assert reservation.nights() == 3
        assert reservation.created_at == at(2025, 5, 1)
        assert await reservation_repository.find_by_id(reservation.id) == reservation

    @pytest.mark.unit
    @pytest.mark.application
    async def test_capacity_exceeded(self, reservation_service, reservation_repository, rooms):
        result = await reservation_service.create_reservation(june_booking(guest_count=3))

        assert result.is_failure()
        assert isinstance(result.error, CapacityExceededError)
        assert await reservation_repository.find_all() == []

    @pytest.mark.unit
    @pytest.mark.application
    async def test_overlapping_booking_rejected(self, reservation_service, rooms):
        await create_ok(reservation_service)

        result = await reservation_service.create_reservation(
            june_booking(check_in="2025-06-03", check_out="2025-06-05", guest_id="guest-2"))

        assert isinstance(result.error, RoomNotAvailableError)

    @pytest.mark.unit
    @pytest.mark.application
    @pytest.mark.edge_case
    async def test_back_to_back_booking_allowed(self, reservation_service, rooms):
        await create_ok(reservation_service)
        await create_ok(reservation_service,
                        june_booking(check_in="2025-06-04", check_out="2025-06-06", guest_id="guest-2"))

    @pytest.mark.unit
    @pytest.mark.application
    async def test_cancelled_booking_frees_room(self, reservation_service, rooms):
        first = await create_ok(reservation_service)
        cancelled = await reservation_service.cancel_reservation(
            CancelReservationCommand(first.id, REASON, "guest-1"))
        assert cancelled.is_success()

        await create_ok(reservation_service, june_booking(guest_id="guest-2"))

    @pytest.mark.unit
    @pytest.mark.application
    async def test_unknown_room(self, reservation_service, rooms):
        result = await reservation_service.create_reservation(june_booking(room_id="nope"))
        assert isinstance(result.error, RoomNotFoundError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_inactive_room(self, reservation_service, rooms):
        result = await reservation_service.create_reservation(june_booking(room_id="room-302"))
        assert isinstance(result.error, RoomNotBookableError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_past_check_in(self, reservation_service, rooms):
        result = await reservation_service.create_reservation(
            june_booking(check_in="2025-04-20", check_out="2025-04-22"))
        assert isinstance(result.error, PastCheckInError)

    @pytest.mark.unit
    @pytest.mark.application
    @pytest.mark.edge_case
    @pytest.mark.parametrize("overrides", [
        {"guest_count": 0},
        {"guest_count": 11},
        {"guest_id": "  "},
        {"room_id": ""},
        {"notes": "n" * 501},
        {"check_in": "2025-06-04", "check_out": "2025-06-01"},
    ])
    async def test_invalid_input(self, reservation_service, reservation_repository, rooms, overrides):
        result = await reservation_service.create_reservation(june_booking(**overrides))

        assert isinstance(result.error, ValidationError)
        assert await reservation_repository.find_all() == []

    @pytest.mark.unit
    @pytest.mark.application
    @pytest.mark.edge_case
    async def test_concurrent_overlapping_requests_book_once(self, reservation_service,
                                                             reservation_repository, rooms):
        results = await asyncio.gather(
            reservation_service.create_reservation(june_booking(guest_id="guest-1")),
            reservation_service.create_reservation(
                june_booking(check_in="2025-06-02", check_out="2025-06-05", guest_id="guest-2")),
        )

        assert sorted(r.is_success() for r in results) == [False, True]
        assert len(await reservation_repository.find_all()) == 1


# ============================================================================
# CONFIRM / CHECK-IN / CHECK-OUT
# ============================================================================

class TestReservationLifecycle:
    """Test confirm, check-in and check-out use cases"""

    @pytest.mark.unit
    @pytest.mark.application
    async def test_confirm_with_cash(self, reservation_service, rooms, clock):
        reservation = await create_ok(reservation_service)
        clock.set(at(2025, 5, 2))

        result = await reservation_service.confirm_reservation(
            ConfirmReservationCommand(reservation.id, "cash"))

        assert result.is_success()
        assert result.value.reservation.state == ReservationState.CONFIRMED
        assert result.value.payment_method == PaymentMethod.CASH
        assert result.value.confirmed_at == at(2025, 5, 2)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_confirm_with_card(self, reservation_service, rooms):
        reservation = await create_ok(reservation_service)

        result = await reservation_service.confirm_reservation(ConfirmReservationCommand(
            reservation.id, "credit_card", card_number="4111 1111 1111 1111",
            security_code="123", expiry_date="2027-12"))

        assert result.is_success()

    @pytest.mark.unit
    @pytest.mark.application
    @pytest.mark.edge_case
    @pytest.mark.parametrize("method, card, code, expiry", [
        ("bitcoin", None, None, None),
        ("", None, None, None),
        ("debit_card", None, "123", "2027-12"),
        ("debit_card", "1234", "123", "2027-12"),
        ("debit_card", "4111111111111111", "12", "2027-12"),
        ("debit_card", "4111111111111111", "123", "12/27"),
        ("credit_card", "4111111111111111", "123", "2025-04"),
    ])
    async def test_invalid_payment(self, reservation_service, reservation_repository, rooms,
                                   method, card, code, expiry):
        reservation = await create_ok(reservation_service)

        result = await reservation_service.confirm_reservation(
            ConfirmReservationCommand(reservation.id, method, card, code, expiry))

        assert isinstance(result.error, ValidationError)
        stored = await reservation_repository.find_by_id(reservation.id)
        assert stored.state == ReservationState.PENDING

    @pytest.mark.unit
    @pytest.mark.application
    async def test_card_expiring_this_month_accepted(self, reservation_service, rooms):
        reservation = await create_ok(reservation_service)
        result = await reservation_service.confirm_reservation(ConfirmReservationCommand(
            reservation.id, "debit_card", "4111111111111111", "1234", "2025-05"))
        assert result.is_success()

    @pytest.mark.unit
    @pytest.mark.application
    async def test_confirm_twice_keeps_stored_state(self, reservation_service,
                                                    reservation_repository, rooms):
        reservation = await create_ok(reservation_service)
        first = await reservation_service.confirm_reservation(ConfirmReservationCommand(reservation.id, "cash"))
        second = await reservation_service.confirm_reservation(ConfirmReservationCommand(reservation.id, "cash"))

        assert first.is_success()
        assert isinstance(second.error, InvalidReservationStateError)
        stored = await reservation_repository.find_by_id(reservation.id)
        assert stored.state == ReservationState.CONFIRMED
        assert stored.version == 2

    @pytest.mark.unit
    @pytest.mark.application
    async def test_confirm_rechecks_availability(self, room_repository, rooms, clock):
        reservations = PermissiveReservationRepository()
        service = ReservationService(reservations, room_repository, clock=clock)
        reservation = await create_ok(service)
        intruder = Reservation.create(
            room_id="room-201", guest_id="guest-2",
            period=Period(check_in=at(2025, 6, 2), check_out=at(2025, 6, 3)),
            total_price=Money(amount=Decimal("150")), guest_count=1, now=clock())
        await reservations.save(intruder)

        result = await service.confirm_reservation(ConfirmReservationCommand(reservation.id, "cash"))

        assert isinstance(result.error, RoomNotAvailableError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_confirm_unknown_reservation(self, reservation_service, rooms):
        result = await reservation_service.confirm_reservation(ConfirmReservationCommand("missing", "cash"))
        assert isinstance(result.error, ReservationNotFoundError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_check_in_timing(self, reservation_service, rooms, clock):
        reservation = await create_ok(reservation_service)
        await reservation_service.confirm_reservation(ConfirmReservationCommand(reservation.id, "cash"))

        clock.set(at(2025, 5, 31, 18))
        early = await reservation_service.check_in(reservation.id)
        assert isinstance(early.error, InvalidReservationStateError)

        clock.set(at(2025, 6, 1, 15))
        on_time = await reservation_service.check_in(reservation.id)
        assert on_time.value.state == ReservationState.CHECKED_IN

        clock.set(at(2025, 6, 4, 10))
        done = await reservation_service.check_out(reservation.id)
        assert done.value.state == ReservationState.CHECKED_OUT

    @pytest.mark.unit
    @pytest.mark.application
    async def test_check_in_pending_fails(self, reservation_service, rooms, clock):
        reservation = await create_ok(reservation_service)
        clock.set(at(2025, 6, 1, 15))
        result = await reservation_service.check_in(reservation.id)
        assert isinstance(result.error, InvalidReservationStateError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_check_out_requires_check_in(self, reservation_service, rooms):
        reservation = await create_ok(reservation_service)
        result = await reservation_service.check_out(reservation.id)
        assert isinstance(result.error, InvalidReservationStateError)


# ============================================================================
# CANCEL
# ============================================================================

class TestCancelReservation:
    """Test ReservationService.cancel_reservation"""

    @pytest.mark.unit
    @pytest.mark.application
    async def test_twenty_days_ahead_full_refund(self, reservation_service, rooms, clock):
        reservation = await create_ok(reservation_service)
        clock.set(at(2025, 5, 12))

        result = await reservation_service.cancel_reservation(
            CancelReservationCommand(reservation.id, REASON, "guest-1"))

        outcome = result.value
        assert outcome.reservation.state == ReservationState.CANCELLED
        assert outcome.cancelled_by == "guest-1"
        assert outcome.penalty.is_zero()
        assert not outcome.penalty_applied
        assert outcome.penalty_percentage == 0
        assert outcome.refund.amount == Decimal("450")
        assert outcome.refund_method == "original_payment_method"

    @pytest.mark.unit
    @pytest.mark.application
    async def test_two_days_ahead_half_penalty(self, reservation_service, rooms, clock):
        reservation = await create_ok(reservation_service)
        clock.set(at(2025, 5, 30))

        outcome = (await reservation_service.cancel_reservation(
            CancelReservationCommand(reservation.id, REASON, "guest-1"))).value

        assert outcome.penalty_applied
        assert outcome.penalty_percentage == 50
        assert outcome.penalty.amount == Decimal("225")
        assert outcome.refund.amount == Decimal("225")

    @pytest.mark.unit
    @pytest.mark.application
    async def test_check_in_day_no_refund(self, reservation_service, rooms, clock):
        reservation = await create_ok(reservation_service)
        clock.set(at(2025, 6, 1, 9))

        outcome = (await reservation_service.cancel_reservation(
            CancelReservationCommand(reservation.id, REASON, "reception-1"))).value

        assert outcome.penalty_percentage == 100
        assert outcome.refund.is_zero()

    @pytest.mark.unit
    @pytest.mark.application
    @pytest.mark.edge_case
    async def test_short_reason(self, reservation_service, reservation_repository, rooms):
        reservation = await create_ok(reservation_service)

        result = await reservation_service.cancel_reservation(
            CancelReservationCommand(reservation.id, "meh", "guest-1"))

        assert isinstance(result.error, ValidationError)
        assert (await reservation_repository.find_by_id(reservation.id)).state == ReservationState.PENDING

    @pytest.mark.unit
    @pytest.mark.application
    async def test_missing_canceller(self, reservation_service, rooms):
        reservation = await create_ok(reservation_service)
        result = await reservation_service.cancel_reservation(
            CancelReservationCommand(reservation.id, REASON, ""))
        assert isinstance(result.error, ValidationError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_cancel_checked_out_fails(self, reservation_service, rooms, clock):
        reservation = await create_ok(reservation_service)
        await reservation_service.confirm_reservation(ConfirmReservationCommand(reservation.id, "cash"))
        clock.set(at(2025, 6, 1, 15))
        await reservation_service.check_in(reservation.id)
        clock.set(at(2025, 6, 4, 10))
        await reservation_service.check_out(reservation.id)

        result = await reservation_service.cancel_reservation(
            CancelReservationCommand(reservation.id, REASON, "guest-1"))

        assert isinstance(result.error, InvalidReservationStateError)


# ============================================================================
# QUERIES & FAILURES
# ============================================================================

class TestReservationQueries:
    """Test reservation lookups and infrastructure failure handling"""

    @pytest.mark.unit
    @pytest.mark.application
    async def test_get_and_list(self, reservation_service, rooms):
        first = await create_ok(reservation_service)
        second = await create_ok(reservation_service, june_booking(room_id="room-301", guest_id="guest-2"))

        assert (await reservation_service.get_reservation(first.id)).value == first
        assert (await reservation_service.list_reservations()).value == [first, second]
        assert (await reservation_service.list_reservations(guest_id="guest-2")).value == [second]

    @pytest.mark.unit
    @pytest.mark.application
    async def test_get_missing(self, reservation_service, rooms):
        result = await reservation_service.get_reservation("missing")
        assert isinstance(result.error, ReservationNotFoundError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_repository_failure_becomes_infrastructure_error(self, reservation_repository, clock):
        service = ReservationService(reservation_repository, BrokenRoomRepository(), clock=clock)

        result = await service.create_reservation(june_booking())

        assert isinstance(result.error, InfrastructureError)
        assert "db-primary" not in result.error.message


# ============================================================================
# AVAILABILITY
# ============================================================================

class TestAvailabilityService:
    """Test AvailabilityService.query_availability"""

    @pytest.mark.unit
    @pytest.mark.application
    async def test_all_active_rooms_free(self, availability_service, rooms):
        result = (await availability_service.query_availability(
            AvailabilityQuery("2025-06-01", "2025-06-04"))).value

        assert result.nights == 3
        assert result.check_in == at(2025, 6, 1)
        assert [a.room.number for a in result.rooms] == ["101", "201", "301"]
        assert [a.total_price.amount for a in result.rooms] == [Decimal("300"), Decimal("450"), Decimal("900")]
        assert result.total_available == 3

    @pytest.mark.unit
    @pytest.mark.application
    async def test_booked_room_excluded(self, availability_service, reservation_service, rooms):
        await create_ok(reservation_service)

        result = (await availability_service.query_availability(
            AvailabilityQuery("2025-06-03", "2025-06-05"))).value

        assert "201" not in [a.room.number for a in result.rooms]

    @pytest.mark.unit
    @pytest.mark.application
    async def test_filters(self, availability_service, rooms):
        by_capacity = (await availability_service.query_availability(
            AvailabilityQuery("2025-06-01", "2025-06-04", min_capacity=2))).value
        by_price = (await availability_service.query_availability(
            AvailabilityQuery("2025-06-01", "2025-06-04", max_price=Decimal("450")))).value
        by_type = (await availability_service.query_availability(
            AvailabilityQuery("2025-06-01", "2025-06-04", room_type="Suite"))).value

        assert [a.room.number for a in by_capacity.rooms] == ["201", "301"]
        assert [a.room.number for a in by_price.rooms] == ["101", "201"]
        assert [a.room.number for a in by_type.rooms] == ["301"]

    @pytest.mark.unit
    @pytest.mark.application
    @pytest.mark.edge_case
    @pytest.mark.parametrize("query", [
        AvailabilityQuery("2025-06-01", "2025-06-04", min_capacity=0),
        AvailabilityQuery("2025-06-01", "2025-06-04", max_price=Decimal("-5")),
        AvailabilityQuery("2025-06-01", "2025-06-04", max_price=Decimal("NaN")),
        AvailabilityQuery("2025-06-01", "2025-06-04", max_price=float("inf")),
        AvailabilityQuery("2025-06-04", "2025-06-01"),
        AvailabilityQuery("2025-04-01", "2025-04-04"),
    ])
    async def test_invalid_queries(self, availability_service, rooms, query):
        result = await availability_service.query_availability(query)
        assert isinstance(result.error, ValidationError)


# ============================================================================
# ROOMS
# ============================================================================

class TestRoomService:
    """Test RoomService"""

    @pytest.mark.unit
    @pytest.mark.application
    async def test_register_room(self, room_service, room_types):
        result = await room_service.register_room(RegisterRoomCommand(
            number="401", room_type=room_types["double"], base_price=Money(amount=Decimal("175")),
            floor=4, view="park"))

        room = result.value
        assert room.number == "401"
        assert room.is_bookable()
        assert room.created_at == at(2025, 5, 1)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_duplicate_number(self, room_service, room_types, rooms):
        result = await room_service.register_room(RegisterRoomCommand(
            number="201", room_type=room_types["double"], base_price=Money(amount=Decimal("150"))))
        assert isinstance(result.error, RoomNumberTakenError)

    @pytest.mark.unit
    @pytest.mark.application
    async def test_list_rooms(self, room_service, rooms):
        everything = (await room_service.list_rooms()).value
        active = (await room_service.list_rooms(active_only=True)).value

        assert [r.number for r in everything] == ["101", "201", "301", "302"]
        assert [r.number for r in active] == ["101", "201", "301"]

    @pytest.mark.unit
    @pytest.mark.application
    async def test_activation_cycle(self, room_service, rooms):
        assert isinstance((await room_service.activate_room("room-201")).error, InvalidStateTransitionError)

        deactivated = (await room_service.deactivate_room("room-201")).value
        assert not deactivated.active
        reactivated = (await room_service.activate_room("room-201")).value
        assert reactivated.active

    @pytest.mark.unit
    @pytest.mark.application
    async def test_change_price(self, room_service, room_repository, rooms):
        result = await room_service.change_price("room-201", Money(amount=Decimal("180")))

        assert result.value.base_price.amount == Decimal("180")
        assert (await room_repository.find_by_id("room-201")).base_price.amount == Decimal("180")

    @pytest.mark.unit
    @pytest.mark.application
    async def test_missing_room(self, room_service, rooms):
        assert isinstance((await room_service.get_room("missing")).error, RoomNotFoundError)


# ============================================================================
# AUTHENTICATION
# ============================================================================

@pytest.fixture(scope="module")
def hashed_secret():
    return get_password_hash("secret123")


@pytest.fixture
async def user_repository(hashed_secret):
    repo = InMemoryUserRepository()
    await repo.save(UserInDB(user_id="u-guest", email="guest@hotel.com", full_name="Guest",
                             role=UserRole.GUEST, hashed_password=hashed_secret))
    await repo.save(UserInDB(user_id="u-old", email="old@hotel.com", role=UserRole.RECEPTIONIST,
                             disabled=True, hashed_password=hashed_secret))
    return repo


@pytest.fixture
def token_issuer():
    return JWTTokenIssuer(Settings(secret_key="test-secret", access_token_expire_minutes=5))


@pytest.fixture
def auth_service(user_repository, token_issuer):
    return AuthService(user_repository, token_issuer)


class TestAuthService:
    """Test AuthService.authenticate"""

    @pytest.mark.unit
    @pytest.mark.application
    async def test_login(self, auth_service, user_repository, token_issuer):
        principal = (await auth_service.authenticate(LoginCommand("Guest@Hotel.com", "secret123"))).value

        assert principal.user.user_id == "u-guest"
        assert principal.token_type == "bearer"
        assert "create_reservation" in principal.permissions
        claims = token_issuer.decode(principal.access_token)
        assert claims["sub"] == "u-guest"
        assert claims["role"] == "GUEST"
        assert (await user_repository.find_by_id("u-guest")).last_login_at is not None

    @pytest.mark.unit
    @pytest.mark.application
    async def test_same_message_for_unknown_email_and_bad_password(self, auth_service):
        unknown = await auth_service.authenticate(LoginCommand("nobody@hotel.com", "secret123"))
        wrong = await auth_service.authenticate(LoginCommand("guest@hotel.com", "wrong-password"))

        assert isinstance(unknown.error, InvalidCredentialsError)
        assert isinstance(wrong.error, InvalidCredentialsError)
        assert unknown.error.message == wrong.error.message

    @pytest.mark.unit
    @pytest.mark.application
    async def test_disabled_user(self, auth_service):
        result = await auth_service.authenticate(LoginCommand("old@hotel.com", "secret123"))
        assert isinstance(result.error, InactiveUserError)

    @pytest.mark.unit
    @pytest.mark.application
    @pytest.mark.edge_case
    @pytest.mark.parametrize("email, password", [
        ("not-an-email", "secret123"),
        ("", "secret123"),
        ("guest@hotel.com", "12345"),
    ])
    async def test_invalid_input(self, auth_service, email, password):
        result = await auth_service.authenticate(LoginCommand(email, password))
        assert isinstance(result.error, ValidationError)


# ============================================================================
# REPOSITORY BACKSTOP
# ============================================================================

class TestInMemoryRepositories:
    """Test invariants enforced by the in-memory repositories"""

    @pytest.mark.unit
    @pytest.mark.infrastructure
    async def test_overlap_rejected_on_save(self, reservation_repository):
        def stay(check_in, check_out, guest):
            return Reservation.create(
                room_id="room-201", guest_id=guest,
                period=Period(check_in=check_in, check_out=check_out),
                total_price=Money(amount=Decimal("150")), guest_count=1)

        await reservation_repository.save(stay(at(2025, 6, 1), at(2025, 6, 4), "a"))
        await reservation_repository.save(stay(at(2025, 6, 4), at(2025, 6, 5), "b"))
        with pytest.raises(RoomNotAvailableError):
            await reservation_repository.save(stay(at(2025, 6, 3), at(2025, 6, 5), "c"))

    @pytest.mark.unit
    @pytest.mark.infrastructure
    async def test_stale_version_rejected(self, reservation_repository):
        original = Reservation.create(
            room_id="room-201", guest_id="a",
            period=Period(check_in=at(2025, 6, 1), check_out=at(2025, 6, 4)),
            total_price=Money(amount=Decimal("450")), guest_count=2, now=at(2025, 5, 1))
        await reservation_repository.save(original)

        # two writers start from the same stored version
        confirmed = original.confirm(now=at(2025, 5, 2))
        cancelled = original.cancel(REASON, now=at(2025, 5, 2))
        await reservation_repository.save(confirmed)

        with pytest.raises(StaleReservationError):
            await reservation_repository.save(cancelled)
        assert (await reservation_repository.find_by_id(original.id)).state == ReservationState.CONFIRMED

    @pytest.mark.unit
    @pytest.mark.infrastructure
    async def test_room_number_unique(self, room_repository, rooms, room_types):
        duplicate = Room.create(number="101", room_type=room_types["individual"],
                                base_price=Money(amount=Decimal("100")))
        with pytest.raises(RoomNumberTakenError):
            await room_repository.save(duplicate)

    @pytest.mark.unit
    @pytest.mark.infrastructure
    async def test_find_by_type_ignores_case(self, room_repository, rooms):
        assert {r.number for r in await room_repository.find_by_type("SUITE")} == {"301", "302"}
