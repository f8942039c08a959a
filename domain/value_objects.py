"""Domain Value Objects"""
from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Any, Dict

from domain.enums import AuthMode, SlotStatus
from domain.errors import ValidationError

# Hourly slots, 08:00 to 21:00 inclusive
SLOT_TIMES = [f"{hour:02d}:00" for hour in range(8, 22)]
SLOT_MINUTES = 60
BOOKING_HORIZON_DAYS = 7
NO_SHOW_REFUND_PERCENT = 50


def parse_date_iso(date_iso: str) -> date:
    """Parse a YYYY-MM-DD string, raising ValidationError when malformed"""
    try:
        return date.fromisoformat(str(date_iso))
    except ValueError:
        raise ValidationError(f"Invalid date: {date_iso!r}", code="invalid_date")


def normalize_date_iso(date_iso: str) -> str:
    """Canonical YYYY-MM-DD spelling of a date"""
    return parse_date_iso(date_iso).isoformat()


def normalize_time(time: str) -> str:
    """Canonical HH:00 spelling of a slot start; rejects anything outside SLOT_TIMES"""
    hour, sep, minute = str(time or "").strip().partition(":")
    if sep and hour.isdigit() and minute.isdigit():
        candidate = f"{int(hour):02d}:{int(minute):02d}"
        if candidate in SLOT_TIMES:
            return candidate
    raise ValidationError(f"Invalid slot time: {time!r}", code="invalid_time")


def percent_of(amount: Decimal, percent: int) -> Decimal:
    """Percentage of a money amount rounded half-up to whole units"""
    share = Decimal(amount) * Decimal(percent) / Decimal(100)
    return share.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class Slot(BaseModel):
    """A bookable (court, date, hour) unit"""
    court_id: str
    date_iso: str
    time: str

    class Config:
        frozen = True

    @staticmethod
    def normalized(court_id: str, date_iso: str, time: str) -> "Slot":
        """Slot keyed by canonical date and time, so one slot has one spelling"""
        return Slot(court_id=court_id, date_iso=normalize_date_iso(date_iso), time=normalize_time(time))


class ConfigPatch(BaseModel):
    """Partial update of the club policy; unknown fields are rejected"""
    auth_mode: Optional[AuthMode] = None
    require_email_validation: Optional[bool] = None
    require_phone_validation: Optional[bool] = None
    price_socio: Optional[Decimal] = Field(None, ge=0)
    price_no_socio: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    class Config:
        extra = "forbid"
        frozen = True

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually set"""
        return self.model_dump(exclude_unset=True)


class Registration(BaseModel):
    """Sign-up data as typed by the user"""
    email: str = ""
    phone: str = ""
    dni: str = ""
    password: str = ""


class AccountValidation(BaseModel):
    """Validation flags to set on the acting user; None leaves a flag as is"""
    email_ok: Optional[bool] = None
    phone_ok: Optional[bool] = None


class ReservationRequest(BaseModel):
    """Booking of one slot, optionally on behalf of another user"""
    date_iso: str
    time: str
    court_id: str
    for_user_id: Optional[str] = None


class ManualReservationRequest(BaseModel):
    """Desk booking made by staff for a member"""
    user_id: str
    date_iso: str
    time: str
    court_id: str
    mark_paid_cash: bool = False


class BlockRequest(BaseModel):
    """Maintenance block for one slot"""
    court_id: str
    date_iso: str
    time: str
    reason: str = ""


class SocioStatus(BaseModel):
    """Answer of the membership registry"""
    socio_active: bool

    class Config:
        frozen = True


class GatewayCharge(BaseModel):
    """Answer of the payment gateway"""
    approved: bool
    operation_id: str

    class Config:
        frozen = True


class CourtAvailability(BaseModel):
    """Bookability of one court at one slot"""
    court_id: str
    name: str
    is_active: bool
    status: SlotStatus

    class Config:
        frozen = True
