"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import uuid4
from datetime import datetime, date, timedelta
from typing import Optional, List, Dict, Any
from decimal import Decimal

from domain.enums import (
    UserRole, UserType, AuthMode, ReservationStatus, PaymentStatus, PaymentMethod,
    NotificationChannel, NotificationEvent,
)
from domain.errors import ValidationError
from domain.value_objects import (
    Slot, ConfigPatch, BOOKING_HORIZON_DAYS, NO_SHOW_REFUND_PERCENT, percent_of,
)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:16]}"


class ClubConfig(BaseModel):
    """Club-wide booking policy"""
    auth_mode: AuthMode = AuthMode.EMAIL_PASSWORD
    require_email_validation: bool = True
    require_phone_validation: bool = True
    price_socio: Decimal = Decimal("0")
    price_no_socio: Decimal = Decimal("8000")
    currency: str = "ARS"

    def apply(self, patch: ConfigPatch) -> "ClubConfig":
        """Return the config with the patched fields replaced"""
        return self.model_copy(update=patch.changes())

    def price_for(self, user_type: UserType) -> Decimal:
        return self.price_socio if user_type == UserType.SOCIO else self.price_no_socio


class Court(BaseModel):
    """Bookable tennis court"""
    id: str
    name: str
    is_active: bool = True


class User(BaseModel):
    """Club user"""
    id: str = Field(default_factory=lambda: new_id("usr"))
    role: UserRole = UserRole.USER
    email: str
    phone: str
    dni: str
    user_type: UserType
    password_hash: str
    is_email_validated: bool = False
    is_phone_validated: bool = False
    created_at: datetime


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    id: str = Field(default_factory=lambda: new_id("res"))

    # References to other aggregates
    user_id: str
    created_by: str

    # Slot
    date_iso: str
    time: str
    court_id: str

    # Status and price captured at booking time
    status: ReservationStatus = ReservationStatus.PENDING_PAYMENT
    price: Decimal
    cancel_reason: Optional[str] = None

    # Metadata
    created_at: datetime
    updated_at: datetime

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(user_id: str, created_by: str, slot: Slot, price: Decimal, at: datetime) -> "Reservation":
        """Create a reservation awaiting payment"""
        return Reservation(
            user_id=user_id,
            created_by=created_by,
            date_iso=slot.date_iso,
            time=slot.time,
            court_id=slot.court_id,
            status=ReservationStatus.PENDING_PAYMENT,
            price=price,
            created_at=at,
            updated_at=at,
        )

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self, at: datetime) -> None:
        """Confirm reservation after payment"""
        if self.status != ReservationStatus.PENDING_PAYMENT:
            raise ValidationError(
                f"Cannot confirm reservation with status {self.status.value}",
                code="invalid_transition",
            )
        self.status = ReservationStatus.CONFIRMED
        self.updated_at = at

    def cancel(self, reason: str, at: datetime) -> None:
        """Cancel reservation; cancelling twice only refreshes the reason"""
        if self.status == ReservationStatus.NO_SHOW:
            raise ValidationError(
                f"Cannot cancel reservation with status {self.status.value}",
                code="invalid_transition",
            )
        self.status = ReservationStatus.CANCELLED
        self.cancel_reason = reason or ""
        self.updated_at = at

    def mark_no_show(self, at: datetime) -> None:
        """Mark holder as not present"""
        if self.is_terminal():
            raise ValidationError(
                f"Cannot mark as no-show with status {self.status.value}",
                code="invalid_transition",
            )
        self.status = ReservationStatus.NO_SHOW
        self.updated_at = at

    # ==================== QUERY METHODS ====================
    @property
    def slot(self) -> Slot:
        return Slot(court_id=self.court_id, date_iso=self.date_iso, time=self.time)

    def occupies_slot(self) -> bool:
        """Every status except Cancelled keeps the slot taken"""
        return self.status != ReservationStatus.CANCELLED

    def is_terminal(self) -> bool:
        return self.status in (ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW)

    @staticmethod
    def validate_booking_window(target: date, today: date) -> None:
        """Bookable from today up to and including today + 7 days"""
        if target < today:
            raise ValidationError("Cannot book past dates", code="past_date")
        if target > today + timedelta(days=BOOKING_HORIZON_DAYS):
            raise ValidationError(
                f"Bookings are only allowed up to {BOOKING_HORIZON_DAYS} days ahead",
                code="beyond_horizon",
            )


class Payment(BaseModel):
    """Payment paired one-to-one with a reservation"""
    id: str = Field(default_factory=lambda: new_id("pay"))
    reservation_id: str
    method: Optional[PaymentMethod] = None
    status: PaymentStatus = PaymentStatus.PENDING
    amount: Decimal
    created_at: datetime
    updated_at: datetime
    meta: Dict[str, Any] = Field(default_factory=dict)

    @staticmethod
    def open_for(reservation: Reservation) -> "Payment":
        """Pending payment for the full reservation price"""
        return Payment(
            reservation_id=reservation.id,
            amount=reservation.price,
            created_at=reservation.created_at,
            updated_at=reservation.created_at,
        )

    def approve(self, method: PaymentMethod, meta: Dict[str, Any], at: datetime) -> None:
        if self.status != PaymentStatus.PENDING:
            raise ValidationError(
                f"Cannot approve payment with status {self.status.value}",
                code="invalid_transition",
            )
        self.method = method
        self.status = PaymentStatus.APPROVED
        self.meta = {**self.meta, **meta}
        self.updated_at = at

    def refund_partial(self, by: str, at: datetime, percent: int = NO_SHOW_REFUND_PERCENT) -> Decimal:
        """Record a partial refund and return the refunded amount"""
        refund = percent_of(self.amount, percent)
        self.status = PaymentStatus.REFUNDED_PARTIAL
        self.meta = {
            **self.meta,
            "refund": {"percent": percent, "amount": str(refund), "by": by, "at": at.isoformat()},
        }
        self.updated_at = at
        return refund

    @property
    def refunded_amount(self) -> Optional[Decimal]:
        refund = self.meta.get("refund")
        if not refund:
            return None
        return Decimal(refund["amount"])


class Block(BaseModel):
    """Maintenance block preventing bookings on one slot"""
    id: str = Field(default_factory=lambda: new_id("blk"))
    court_id: str
    date_iso: str
    time: str
    reason: str = ""
    created_by: str
    created_at: datetime

    def covers(self, slot: Slot) -> bool:
        return (self.court_id, self.date_iso, self.time) == (slot.court_id, slot.date_iso, slot.time)


class AuditEntry(BaseModel):
    """Immutable record of who did what, when"""
    id: str = Field(default_factory=lambda: new_id("aud"))
    at: datetime
    by: str
    action: str
    detail: str

    class Config:
        frozen = True


class Notification(BaseModel):
    """Recorded intent to inform a user on one channel"""
    id: str = Field(default_factory=lambda: new_id("ntf"))
    at: datetime
    channel: NotificationChannel
    to: str
    event: NotificationEvent
    payload: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True


class Sessions(BaseModel):
    current_user_id: Optional[str] = None


class ClubState(BaseModel):
    """Root store: every collection, cross-referenced only by id"""
    config: ClubConfig = Field(default_factory=ClubConfig)
    courts: Dict[str, Court] = Field(default_factory=dict)
    users: Dict[str, User] = Field(default_factory=dict)
    sessions: Sessions = Field(default_factory=Sessions)
    reservations: Dict[str, Reservation] = Field(default_factory=dict)
    # Keyed by reservation id: exactly one payment per reservation
    payments: Dict[str, Payment] = Field(default_factory=dict)
    blocks: Dict[str, Block] = Field(default_factory=dict)
    # Newest first
    audit: List[AuditEntry] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)

    def clone(self) -> "ClubState":
        return self.model_copy(deep=True)

    # ==================== LOOKUPS ====================
    def find_user_by_email(self, email: str) -> Optional[User]:
        wanted = (email or "").strip().lower()
        for user in self.users.values():
            if user.email.lower() == wanted:
                return user
        return None

    def user_exists(self, email: str, dni: str) -> bool:
        return any(u.email == email or u.dni == dni for u in self.users.values())

    def is_blocked(self, slot: Slot) -> bool:
        return any(block.covers(slot) for block in self.blocks.values())

    def court_taken(self, slot: Slot) -> bool:
        return any(r.occupies_slot() and r.slot == slot for r in self.reservations.values())

    def user_booked_at(self, user_id: str, date_iso: str, time: str) -> bool:
        return any(
            r.occupies_slot() and r.user_id == user_id and r.date_iso == date_iso and r.time == time
            for r in self.reservations.values()
        )

    def reservations_on(self, date_iso: str) -> List[Reservation]:
        return sorted(
            (r for r in self.reservations.values() if r.date_iso == date_iso),
            key=lambda r: (r.time, r.court_id),
        )
