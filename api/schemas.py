"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

from config import settings
from domain.enums import PaymentMethod, ReservationState, UserRole


# ============================================================================
# SHARED SCHEMAS
# ============================================================================

class MoneyRequest(BaseModel):
    """Money request DTO"""
    amount: float = Field(ge=0, allow_inf_nan=False)
    currency: str = Field(default=settings.default_currency, min_length=3, max_length=3)


class MoneyResponse(BaseModel):
    """Money response DTO"""
    amount: float
    currency: str


class ErrorResponse(BaseModel):
    """Error body returned for every failed request"""
    message: str
    code: str
    timestamp: datetime
    details: Optional[dict] = None


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class RoomTypeSchema(BaseModel):
    """Room type DTO"""
    name: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    base_rate: MoneyRequest
    amenities: List[str] = []
    description: Optional[str] = None


class CreateRoomRequest(BaseModel):
    """Register room request DTO"""
    number: str = Field(min_length=1, max_length=10)
    room_type: RoomTypeSchema
    base_price: MoneyRequest
    floor: int = Field(default=1, ge=1)
    view: str = ""


class ChangePriceRequest(BaseModel):
    """Change room price request DTO"""
    base_price: MoneyRequest


class RoomTypeResponse(BaseModel):
    """Room type response DTO"""
    name: str
    capacity: int
    base_rate: MoneyResponse
    amenities: List[str]
    description: Optional[str] = None


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: str
    number: str
    room_type: RoomTypeResponse
    base_price: MoneyResponse
    active: bool
    floor: int
    view: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO

    Staff may book for any guest; guests always book for themselves.
    """
    room_id: str
    guest_id: Optional[str] = None
    check_in: datetime
    check_out: datetime
    guest_count: int = Field(ge=1, le=settings.max_guests_per_reservation)
    notes: Optional[str] = Field(default=None, max_length=500)


class ConfirmReservationRequest(BaseModel):
    """Confirm reservation request DTO"""
    payment_method: PaymentMethod
    card_number: Optional[str] = None
    security_code: Optional[str] = None
    expiry_date: Optional[str] = Field(default=None, description="Card expiry as YYYY-MM")


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: str = Field(min_length=10, max_length=200)


class PeriodResponse(BaseModel):
    """Stay period response DTO"""
    check_in: datetime
    check_out: datetime
    nights: int


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: str
    room_id: str
    guest_id: str
    check_in: datetime
    check_out: datetime
    nights: int
    guest_count: int
    total_price: float
    currency: str
    state: ReservationState
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    version: int


class ConfirmationResponse(BaseModel):
    """Confirm reservation response DTO"""
    reservation: ReservationResponse
    payment_method: PaymentMethod
    confirmed_at: datetime


class PenaltyResponse(BaseModel):
    applied: bool
    amount: float
    percentage: float


class RefundResponse(BaseModel):
    amount: float
    method: str


class CancellationResponse(BaseModel):
    """Cancel reservation response DTO"""
    reservation: ReservationResponse
    cancelled_by: str
    penalty: PenaltyResponse
    refund: RefundResponse


class AvailableRoomResponse(BaseModel):
    """Available room response DTO"""
    room_id: str
    number: str
    room_type: str
    capacity: int
    base_price: float
    total_price: float
    currency: str
    floor: int
    view: str
    amenities: List[str]


class AvailabilityResponse(BaseModel):
    """Availability query response DTO"""
    rooms: List[AvailableRoomResponse]
    total_available: int
    period: PeriodResponse


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class LoginRequest(BaseModel):
    """JSON login request DTO"""
    email: str
    password: str


class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class UserResponse(BaseModel):
    """User response DTO"""
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole
    disabled: bool
    last_login_at: Optional[datetime] = None


class LoginResponse(Token):
    """JSON login response DTO"""
    expires_at: datetime
    user: UserResponse
    permissions: List[str]
