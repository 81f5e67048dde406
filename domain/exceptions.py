"""Domain Errors - typed failure taxonomy shared by every layer"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for every expected failure in the reservation domain"""

    code: str = "DOMAIN_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ==================== KINDS ====================

class ValidationError(DomainError):
    """Malformed or out-of-range input"""
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(DomainError):
    """Entity id does not resolve"""
    code = "NOT_FOUND"
    status_code = 404


class BusinessRuleError(DomainError):
    """State transition or invariant violation"""
    code = "BUSINESS_RULE_ERROR"
    status_code = 422


class ConflictError(DomainError):
    """Room not available or concurrent modification detected"""
    code = "CONFLICT"
    status_code = 409


class AuthenticationError(DomainError):
    code = "UNAUTHORIZED"
    status_code = 401


class AuthorizationError(DomainError):
    code = "FORBIDDEN"
    status_code = 403


class InfrastructureError(DomainError):
    """Persistence or external service failure"""
    code = "INFRASTRUCTURE_ERROR"
    status_code = 500


# ==================== VALIDATION ====================

class CurrencyMismatchError(ValidationError):
    code = "CURRENCY_MISMATCH"


class InvalidAmountError(ValidationError):
    code = "INVALID_AMOUNT"


class InvalidPeriodError(ValidationError):
    code = "INVALID_PERIOD"


class PastCheckInError(ValidationError):
    code = "PAST_CHECK_IN"


# ==================== BUSINESS RULES ====================

class InvalidStateTransitionError(BusinessRuleError):
    code = "INVALID_STATE_TRANSITION"


class InvalidReservationStateError(BusinessRuleError):
    code = "INVALID_RESERVATION_STATE"


class RoomNotBookableError(BusinessRuleError):
    code = "ROOM_NOT_BOOKABLE"


class CapacityExceededError(BusinessRuleError):
    code = "CAPACITY_EXCEEDED"


# ==================== NOT FOUND ====================

class RoomNotFoundError(NotFoundError):
    code = "ROOM_NOT_FOUND"


class ReservationNotFoundError(NotFoundError):
    code = "RESERVATION_NOT_FOUND"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"


# ==================== CONFLICTS ====================

class RoomNotAvailableError(ConflictError):
    code = "ROOM_NOT_AVAILABLE"


class RoomNumberTakenError(ConflictError):
    code = "ROOM_NUMBER_TAKEN"


class StaleReservationError(ConflictError):
    code = "STALE_RESERVATION"


# ==================== AUTH ====================

class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_CREDENTIALS"


class InactiveUserError(AuthenticationError):
    code = "INACTIVE_USER"


class PermissionDeniedError(AuthorizationError):
    code = "PERMISSION_DENIED"
