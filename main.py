import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import List, Optional

from fastapi import FastAPI, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Rooms
    CreateRoomRequest, ChangePriceRequest, RoomResponse, RoomTypeResponse,
    MoneyRequest, MoneyResponse,
    # Reservations
    CreateReservationRequest, ConfirmReservationRequest, CancelReservationRequest,
    ReservationResponse, ConfirmationResponse, CancellationResponse,
    PenaltyResponse, RefundResponse,
    # Availability
    AvailabilityResponse, AvailableRoomResponse, PeriodResponse,
    # Auth
    LoginRequest, LoginResponse, Token, UserResponse,
)
from api.dependencies import (
    get_auth_service, get_availability_service, get_reservation_service, get_room_service,
    get_current_active_user, require_permission, ensure_reservation_access,
    room_repo, user_repo,
)
from api.errors import register_exception_handlers
from api.middleware import log_requests
from application.dtos import (
    AvailabilityQuery, AvailabilityResult, CancellationResult, CancelReservationCommand,
    ConfirmationResult, ConfirmReservationCommand, CreateReservationCommand, LoginCommand,
    RegisterRoomCommand,
)
from application.services import AuthService, AvailabilityService, ReservationService, RoomService
from config import settings
from domain.auth import AuthenticatedPrincipal, User
from domain.entities import Reservation, Room
from domain.value_objects import Money, RoomType
from infrastructure.seed import seed_demo_data

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.seed_demo_data:
        await seed_demo_data(room_repo, user_repo, settings.default_currency)
    logger.info(f"{settings.app_name} {settings.app_version} started")
    yield


app = FastAPI(
    title=settings.app_name,
    description="Hotel room reservations: availability, booking lifecycle and authentication",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(log_requests)
register_exception_handlers(app)

# ============================================================================
# HEALTH ENDPOINT
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.app_name, "version": settings.app_version}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/auth/login", response_model=LoginResponse, tags=["Auth"])
async def login(request: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Log in with email and password"""
    principal = (await service.authenticate(LoginCommand(request.email, request.password))).unwrap()
    return _principal_to_response(principal)

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AuthService = Depends(get_auth_service),
):
    """OAuth2 password flow; the username is the user's email"""
    principal = (await service.authenticate(LoginCommand(form_data.username, form_data.password))).unwrap()
    return {"access_token": principal.access_token, "token_type": principal.token_type}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return UserResponse.model_validate(current_user)

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    active_only: bool = False,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(require_permission("view_rooms", "check_availability")),
):
    """List rooms"""
    rooms = (await service.list_rooms(active_only=active_only)).unwrap()
    return [_room_to_response(r) for r in rooms]

@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(
    room_id: str,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(require_permission("view_rooms", "check_availability")),
):
    """Get room by ID"""
    return _room_to_response((await service.get_room(room_id)).unwrap())

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def register_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(require_permission("manage_rooms")),
):
    """Register a new room"""
    room_type = RoomType(
        name=request.room_type.name,
        capacity=request.room_type.capacity,
        base_rate=_money(request.room_type.base_rate),
        amenities=tuple(request.room_type.amenities),
        description=request.room_type.description,
    )
    command = RegisterRoomCommand(
        number=request.number,
        room_type=room_type,
        base_price=_money(request.base_price),
        floor=request.floor,
        view=request.view,
    )
    return _room_to_response((await service.register_room(command)).unwrap())

@app.post("/api/rooms/{room_id}/activate", response_model=RoomResponse, tags=["Rooms"])
async def activate_room(
    room_id: str,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(require_permission("manage_rooms")),
):
    """Make a room bookable again"""
    return _room_to_response((await service.activate_room(room_id)).unwrap())

@app.post("/api/rooms/{room_id}/deactivate", response_model=RoomResponse, tags=["Rooms"])
async def deactivate_room(
    room_id: str,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(require_permission("manage_rooms")),
):
    """Take a room out of booking"""
    return _room_to_response((await service.deactivate_room(room_id)).unwrap())

@app.put("/api/rooms/{room_id}/price", response_model=RoomResponse, tags=["Rooms"])
async def change_room_price(
    room_id: str,
    request: ChangePriceRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(require_permission("manage_rooms")),
):
    """Change a room's nightly price"""
    return _room_to_response((await service.change_price(room_id, _money(request.base_price))).unwrap())

# ============================================================================
# AVAILABILITY ENDPOINT
# ============================================================================

@app.get("/api/reservations/availability", response_model=AvailabilityResponse, tags=["Availability"])
async def check_availability(
    check_in: str = Query(..., alias="checkIn", description="ISO-8601 date or datetime"),
    check_out: str = Query(..., alias="checkOut", description="ISO-8601 date or datetime"),
    room_type: Optional[str] = Query(None, alias="roomType"),
    min_capacity: Optional[int] = Query(None, alias="minCapacity"),
    max_price: Optional[float] = Query(None, alias="maxPrice", allow_inf_nan=False),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Public: rooms free for the whole period, cheapest first"""
    query = AvailabilityQuery(
        check_in=check_in,
        check_out=check_out,
        room_type=room_type,
        min_capacity=min_capacity,
        max_price=Decimal(str(max_price)) if max_price is not None else None,
    )
    return _availability_to_response((await service.query_availability(query)).unwrap())

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_permission("create_reservation")),
):
    """Create new reservation"""
    guest_id = current_user.user_id
    if request.guest_id and current_user.can("view_reservations"):
        guest_id = request.guest_id
    command = CreateReservationCommand(
        room_id=request.room_id,
        guest_id=guest_id,
        check_in=request.check_in,
        check_out=request.check_out,
        guest_count=request.guest_count,
        notes=request.notes,
    )
    return _reservation_to_response((await service.create_reservation(command)).unwrap())

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_reservations(
    guest_id: Optional[str] = None,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_permission("view_reservations", "view_own_reservations")),
):
    """List reservations; guests only see their own"""
    if not current_user.can("view_reservations"):
        guest_id = current_user.user_id
    reservations = (await service.list_reservations(guest_id=guest_id)).unwrap()
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_permission("view_reservations", "view_own_reservations")),
):
    """Get reservation by ID"""
    reservation = (await service.get_reservation(reservation_id)).unwrap()
    ensure_reservation_access(current_user, reservation, "view_reservations")
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/confirm", response_model=ConfirmationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: str,
    request: ConfirmReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_permission("confirm_reservation")),
):
    """Confirm a pending reservation"""
    command = ConfirmReservationCommand(
        reservation_id=reservation_id,
        payment_method=request.payment_method.value,
        card_number=request.card_number,
        security_code=request.security_code,
        expiry_date=request.expiry_date,
    )
    return _confirmation_to_response((await service.confirm_reservation(command)).unwrap())

@app.post("/api/reservations/{reservation_id}/cancel", response_model=CancellationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: str,
    request: CancelReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_permission("cancel_reservation", "cancel_own_reservations")),
):
    """Cancel a reservation and report penalty and refund"""
    reservation = (await service.get_reservation(reservation_id)).unwrap()
    ensure_reservation_access(current_user, reservation, "cancel_reservation")
    command = CancelReservationCommand(
        reservation_id=reservation_id,
        reason=request.reason,
        cancelled_by=current_user.user_id,
    )
    return _cancellation_to_response((await service.cancel_reservation(command)).unwrap())

@app.post("/api/reservations/{reservation_id}/check-in", response_model=ReservationResponse, tags=["Reservations"])
async def check_in(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_permission("check_in")),
):
    """Check in guest"""
    return _reservation_to_response((await service.check_in(reservation_id)).unwrap())

@app.post("/api/reservations/{reservation_id}/check-out", response_model=ReservationResponse, tags=["Reservations"])
async def check_out(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_permission("check_out")),
):
    """Check out guest"""
    return _reservation_to_response((await service.check_out(reservation_id)).unwrap())

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _money(request: MoneyRequest) -> Money:
    return Money(amount=Decimal(str(request.amount)), currency=request.currency)

def _money_to_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amount=float(money.amount), currency=money.currency)

def _room_to_response(room: Room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.id,
        number=room.number,
        room_type=RoomTypeResponse(
            name=room.room_type.name,
            capacity=room.room_type.capacity,
            base_rate=_money_to_response(room.room_type.base_rate),
            amenities=list(room.room_type.amenities),
            description=room.room_type.description,
        ),
        base_price=_money_to_response(room.base_price),
        active=room.active,
        floor=room.floor,
        view=room.view,
        created_at=room.created_at,
        updated_at=room.updated_at,
    )

def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.id,
        room_id=reservation.room_id,
        guest_id=reservation.guest_id,
        check_in=reservation.period.check_in,
        check_out=reservation.period.check_out,
        nights=reservation.nights(),
        guest_count=reservation.guest_count,
        total_price=float(reservation.total_price.amount),
        currency=reservation.total_price.currency,
        state=reservation.state,
        notes=reservation.notes,
        cancellation_reason=reservation.cancellation_reason,
        cancelled_at=reservation.cancelled_at,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
        version=reservation.version,
    )

def _confirmation_to_response(result: ConfirmationResult) -> ConfirmationResponse:
    return ConfirmationResponse(
        reservation=_reservation_to_response(result.reservation),
        payment_method=result.payment_method,
        confirmed_at=result.confirmed_at,
    )

def _cancellation_to_response(result: CancellationResult) -> CancellationResponse:
    return CancellationResponse(
        reservation=_reservation_to_response(result.reservation),
        cancelled_by=result.cancelled_by,
        penalty=PenaltyResponse(
            applied=result.penalty_applied,
            amount=float(result.penalty.amount),
            percentage=float(result.penalty_percentage),
        ),
        refund=RefundResponse(amount=float(result.refund.amount), method=result.refund_method),
    )

def _availability_to_response(result: AvailabilityResult) -> AvailabilityResponse:
    return AvailabilityResponse(
        rooms=[
            AvailableRoomResponse(
                room_id=a.room.id,
                number=a.room.number,
                room_type=a.room.room_type.name,
                capacity=a.room.room_type.capacity,
                base_price=float(a.room.base_price.amount),
                total_price=float(a.total_price.amount),
                currency=a.total_price.currency,
                floor=a.room.floor,
                view=a.room.view,
                amenities=list(a.room.room_type.amenities),
            )
            for a in result.rooms
        ],
        total_available=result.total_available,
        period=PeriodResponse(check_in=result.check_in, check_out=result.check_out, nights=result.nights),
    )

def _principal_to_response(principal: AuthenticatedPrincipal) -> LoginResponse:
    return LoginResponse(
        access_token=principal.access_token,
        token_type=principal.token_type,
        expires_at=principal.expires_at,
        user=UserResponse.model_validate(principal.user),
        permissions=list(principal.permissions),
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
