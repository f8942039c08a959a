"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from domain.enums import (
    UserRole, UserType, AuthMode, ReservationStatus, PaymentStatus, PaymentMethod, SlotStatus,
)


# ============================================================================
# AUTH & USER SCHEMAS
# ============================================================================

class Token(BaseModel):
    access_token: str
    token_type: str


class RegisterRequest(BaseModel):
    """Register user request DTO"""
    email: str
    phone: str
    dni: str
    password: str


class RegisterResponse(BaseModel):
    user_id: str
    user_type: UserType


class ValidateAccountRequest(BaseModel):
    """Account validation request DTO"""
    email_ok: Optional[bool] = None
    phone_ok: Optional[bool] = None


class UserResponse(BaseModel):
    """User response DTO"""
    id: str
    role: UserRole
    email: str
    phone: str
    dni: str
    user_type: UserType
    is_email_validated: bool
    is_phone_validated: bool
    created_at: datetime


# ============================================================================
# CONFIG & COURT SCHEMAS
# ============================================================================

class ConfigResponse(BaseModel):
    """Club policy response DTO"""
    auth_mode: AuthMode
    require_email_validation: bool
    require_phone_validation: bool
    price_socio: Decimal
    price_no_socio: Decimal
    currency: str


class CourtResponse(BaseModel):
    id: str
    name: str
    is_active: bool


class SetCourtActiveRequest(BaseModel):
    is_active: bool


class CourtAvailabilityResponse(BaseModel):
    court_id: str
    name: str
    is_active: bool
    status: SlotStatus


# ============================================================================
# BLOCK SCHEMAS
# ============================================================================

class CreateBlockRequest(BaseModel):
    """Maintenance block request DTO"""
    court_id: str
    date_iso: str
    time: str
    reason: str = "Maintenance"


class BlockResponse(BaseModel):
    id: str
    court_id: str
    date_iso: str
    time: str
    reason: str
    created_by: str
    created_at: datetime


# ============================================================================
# RESERVATION & PAYMENT SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    date_iso: str = Field(description="Booking date, YYYY-MM-DD")
    time: str = Field(description="Slot start, HH:00")
    court_id: str


class ManualReservationRequestDTO(BaseModel):
    """Desk booking request DTO"""
    user_id: str
    date_iso: str
    time: str
    court_id: str
    mark_paid_cash: bool = False


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: str = ""


class PaymentResponse(BaseModel):
    """Payment response DTO"""
    id: str
    reservation_id: str
    method: Optional[PaymentMethod] = None
    status: PaymentStatus
    amount: Decimal
    refunded_amount: Optional[Decimal] = None
    meta: Dict[str, Any] = {}
    updated_at: datetime


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    id: str
    user_id: str
    created_by: str
    date_iso: str
    time: str
    court_id: str
    status: ReservationStatus
    price: Decimal
    cancel_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    payment: Optional[PaymentResponse] = None


class RefundResponse(BaseModel):
    reservation_id: str
    refund_amount: Decimal


# ============================================================================
# AUDIT & NOTIFICATION SCHEMAS
# ============================================================================

class AuditEntryResponse(BaseModel):
    id: str
    at: datetime
    by: str
    action: str
    detail: str


class NotificationResponse(BaseModel):
    id: str
    at: datetime
    channel: str
    to: str
    event: str
    payload: Dict[str, Any]
