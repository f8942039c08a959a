"""Application Services - Business use cases

Each service applies one kind of mutation to a ClubState handed to it by the
façade. They never persist anything themselves: the façade runs them on a
clone inside StateStore.commit, so a raised error discards all their changes.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from application.audit import AuditLog, NotificationDispatcher
from domain.auth import validate_password, validate_registration_fields
from domain.entities import ClubState, ClubConfig, User, Reservation, Payment, Block
from domain.enums import (
    AuditAction, NotificationEvent, PaymentMethod, PaymentStatus, ReservationStatus, UserRole, UserType,
)
from domain.errors import ValidationError, ConflictError, AuthorizationError, NotFoundError
from domain.value_objects import (
    ConfigPatch, Registration, AccountValidation, ReservationRequest, BlockRequest,
    SocioStatus, GatewayCharge, Slot, NO_SHOW_REFUND_PERCENT, parse_date_iso,
)
from infrastructure.security import get_password_hash, verify_password


class ConfigStore:
    """Club policy: validation requirements and prices"""

    def __init__(self, audit: AuditLog):
        self.audit = audit

    def get(self, state: ClubState) -> ClubConfig:
        return state.config

    def set(self, state: ClubState, actor_id: str, patch: ConfigPatch, at: datetime) -> ClubConfig:
        state.config = state.config.apply(patch)
        self.audit.append(state, actor_id, AuditAction.CONFIG, patch.model_dump_json(exclude_unset=True), at)
        return state.config


class CourtRegistry:
    """Fixed set of courts that can be switched on and off"""

    def __init__(self, audit: AuditLog):
        self.audit = audit
        self.logger = logging.getLogger(self.__class__.__name__)

    def set_active(self, state: ClubState, actor_id: str, court_id: str, is_active: bool, at: datetime) -> bool:
        court = state.courts.get(court_id)
        if court is None:
            self.logger.warning("Court %s not found; nothing to change", court_id)
            return False
        court.is_active = is_active
        self.audit.append(state, actor_id, AuditAction.COURT, f"{court_id} active={is_active}", at)
        return True


class BlockRegistry:
    """Maintenance blocks on single slots"""

    def __init__(self, audit: AuditLog):
        self.audit = audit
        self.logger = logging.getLogger(self.__class__.__name__)

    def add(self, state: ClubState, actor_id: str, request: BlockRequest, at: datetime) -> str:
        # Blocking an already blocked slot is harmless, so duplicates are allowed
        slot = Slot.normalized(request.court_id, request.date_iso, request.time)
        block = Block(
            court_id=slot.court_id,
            date_iso=slot.date_iso,
            time=slot.time,
            reason=request.reason,
            created_by=actor_id,
            created_at=at,
        )
        state.blocks[block.id] = block
        self.audit.append(
            state, actor_id, AuditAction.BLOCK,
            f"{block.court_id} {block.date_iso} {block.time} ({block.reason or 'no reason'})", at,
        )
        return block.id

    def remove(self, state: ClubState, actor_id: str, block_id: str, at: datetime) -> bool:
        if state.blocks.pop(block_id, None) is None:
            self.logger.warning("Block %s not found; nothing to remove", block_id)
            return False
        self.audit.append(state, actor_id, AuditAction.UNBLOCK, block_id, at)
        return True


class UserDirectory:
    """User accounts, credentials and validation flags"""

    def __init__(self, audit: AuditLog, notifier: NotificationDispatcher):
        self.audit = audit
        self.notifier = notifier

    @staticmethod
    def normalize(registration: Registration) -> Registration:
        """Trim and lowercase the sign-up data, then check its format"""
        clean = Registration(
            email=(registration.email or "").strip().lower(),
            phone=(registration.phone or "").strip(),
            dni=(registration.dni or "").strip(),
            password=registration.password or "",
        )
        validate_registration_fields(clean.email, clean.phone, clean.dni)
        validate_password(clean.password)
        return clean

    @staticmethod
    def ensure_unique(state: ClubState, email: str, dni: str) -> None:
        if state.user_exists(email, dni):
            raise ConflictError("A user with that email or DNI already exists", code="duplicate_user")

    def create(self, state: ClubState, registration: Registration, socio: SocioStatus, at: datetime) -> str:
        """Add an unvalidated user; registration must already be normalized"""
        self.ensure_unique(state, registration.email, registration.dni)
        user_type = UserType.SOCIO if socio.socio_active else UserType.NO_SOCIO
        user = User(
            role=UserRole.USER,
            email=registration.email,
            phone=registration.phone,
            dni=registration.dni,
            user_type=user_type,
            password_hash=get_password_hash(registration.password),
            created_at=at,
        )
        state.users[user.id] = user
        self.audit.append(state, user.id, AuditAction.REGISTER, f"New user ({user_type.value})", at)
        self.notifier.notify(
            state, NotificationEvent.ACCOUNT_VALIDATION_REQUIRED, user.email,
            {"msg": "Your account was created. Validate your email and WhatsApp to book."}, at,
        )
        return user.id

    def login(self, state: ClubState, email: str, password: str, at: datetime) -> str:
        user = state.find_user_by_email(email)
        if user is None:
            raise NotFoundError("User not found", code="unknown_user")
        if not verify_password(password, user.password_hash):
            raise AuthorizationError("Invalid credentials", code="invalid_credentials")
        state.sessions.current_user_id = user.id
        self.audit.append(state, user.id, AuditAction.LOGIN, "Email+Password", at)
        return user.id

    @staticmethod
    def logout(state: ClubState, actor_id: str) -> None:
        if state.sessions.current_user_id == actor_id:
            state.sessions.current_user_id = None

    def validate_account(self, state: ClubState, actor_id: str, flags: AccountValidation, at: datetime) -> User:
        user = state.users.get(actor_id)
        if user is None:
            raise NotFoundError("User not found", code="unknown_user")
        if flags.email_ok is not None:
            user.is_email_validated = flags.email_ok
        if flags.phone_ok is not None:
            user.is_phone_validated = flags.phone_ok
        self.audit.append(
            state, actor_id, AuditAction.ACCOUNT,
            f"Validation: email={_flag(flags.email_ok)}, phone={_flag(flags.phone_ok)}", at,
        )
        self.notifier.notify(
            state, NotificationEvent.ACCOUNT_VALIDATION_UPDATED, user.email,
            flags.model_dump(), at,
        )
        return user


class ReservationLedger:
    """Reservations and the rules deciding whether one may be created"""

    def __init__(self, audit: AuditLog, notifier: NotificationDispatcher):
        self.audit = audit
        self.notifier = notifier

    def check_eligibility(self, state: ClubState, actor_id: str, request: ReservationRequest, today) -> Tuple[User, Slot]:
        """Run the booking rules in their user-visible order; return target user and slot"""
        user = state.users.get(request.for_user_id or actor_id)
        if user is None:
            raise NotFoundError("Invalid user", code="unknown_user")

        config = state.config
        if config.require_email_validation and not user.is_email_validated:
            raise AuthorizationError("You must validate your email before booking", code="email_not_validated")
        if config.require_phone_validation and not user.is_phone_validated:
            raise AuthorizationError("You must validate your WhatsApp before booking", code="phone_not_validated")

        Reservation.validate_booking_window(parse_date_iso(request.date_iso), today)
        slot = Slot.normalized(request.court_id, request.date_iso, request.time)

        court = state.courts.get(slot.court_id)
        if court is None or not court.is_active:
            raise ValidationError("Court not available", code="court_unavailable")

        if state.is_blocked(slot):
            raise ConflictError("Slot blocked for maintenance", code="blocked")
        if state.court_taken(slot):
            raise ConflictError("Court taken at that date and time", code="court_taken")
        if state.user_booked_at(user.id, slot.date_iso, slot.time):
            raise ConflictError(
                "User double-booked: already holds a reservation at that date and time",
                code="user_double_booked",
            )
        return user, slot

    def create(self, state: ClubState, actor_id: str, request: ReservationRequest, at: datetime) -> str:
        user, slot = self.check_eligibility(state, actor_id, request, at.date())
        price = state.config.price_for(user.user_type)

        reservation = Reservation.create(user.id, actor_id, slot, price, at)
        state.reservations[reservation.id] = reservation
        state.payments[reservation.id] = Payment.open_for(reservation)

        self.audit.append(
            state, actor_id, AuditAction.RESERVATION,
            f"Created {reservation.id} ({slot.date_iso} {slot.time} {slot.court_id})", at,
        )
        self.notifier.notify(
            state, NotificationEvent.RESERVATION_CREATED, user.email,
            {
                "reservation_id": reservation.id,
                "date_iso": slot.date_iso,
                "time": slot.time,
                "court_id": slot.court_id,
                "price": str(price),
            },
            at,
        )
        return reservation.id

    def cancel(self, state: ClubState, actor_id: str, reservation_id: str, reason: str, at: datetime) -> Reservation:
        """Cancel; the payment is left alone, refunds only follow a no-show"""
        reservation = _get_reservation(state, reservation_id)
        reservation.cancel(reason, at)
        self.audit.append(
            state, actor_id, AuditAction.RESERVATION,
            f"Cancelled {reservation_id} ({reason or 'no reason'})", at,
        )
        _notify_holder(
            self.notifier, state, reservation, NotificationEvent.CANCELLATION,
            {"reservation_id": reservation_id, "reason": reason or ""}, at,
        )
        return reservation


class PaymentLedger:
    """Payment approval and refund workflow"""

    def __init__(self, audit: AuditLog, notifier: NotificationDispatcher):
        self.audit = audit
        self.notifier = notifier
        self.logger = logging.getLogger(self.__class__.__name__)

    def find_payable(self, state: ClubState, reservation_id: str) -> Optional[Tuple[Reservation, Payment]]:
        reservation = state.reservations.get(reservation_id)
        payment = state.payments.get(reservation_id)
        if reservation is None or payment is None:
            return None
        return reservation, payment

    def ensure_pending(self, state: ClubState, reservation_id: str) -> None:
        """Raise unless the reservation still awaits its payment"""
        found = self.find_payable(state, reservation_id)
        if found is None:
            raise NotFoundError("Reservation not found", code="unknown_reservation")
        reservation, payment = found
        if reservation.status != ReservationStatus.PENDING_PAYMENT or payment.status != PaymentStatus.PENDING:
            raise ValidationError(
                f"Reservation {reservation_id} is not awaiting payment ({reservation.status.value})",
                code="not_payable",
            )

    def approve_gateway(self, state: ClubState, actor_id: str, reservation_id: str,
                        charge: GatewayCharge, at: datetime) -> bool:
        found = self.find_payable(state, reservation_id)
        if found is None:
            self.logger.warning("Reservation %s vanished during gateway payment", reservation_id)
            return False
        reservation, payment = found
        payment.approve(
            PaymentMethod.GATEWAY,
            {"gateway": {"status": "approved", "operation_id": charge.operation_id, "at": at.isoformat()}},
            at,
        )
        reservation.confirm(at)
        self.audit.append(state, actor_id, AuditAction.PAYMENT, f"Gateway approved (res={reservation_id})", at)
        _notify_holder(
            self.notifier, state, reservation, NotificationEvent.PAYMENT_CONFIRMED,
            {"reservation_id": reservation_id, "method": PaymentMethod.GATEWAY.value}, at,
        )
        return True

    def record_unapplied_charge(self, state: ClubState, actor_id: str, reservation_id: str,
                                charge: GatewayCharge, reason: str, at: datetime) -> None:
        """Keep a gateway charge that could no longer confirm the reservation, for a manual refund"""
        payment = state.payments[reservation_id]
        unapplied = list(payment.meta.get("unapplied_charges", []))
        unapplied.append({"operation_id": charge.operation_id, "at": at.isoformat(), "reason": reason})
        payment.meta = {**payment.meta, "unapplied_charges": unapplied}
        payment.updated_at = at
        self.audit.append(
            state, actor_id, AuditAction.PAYMENT,
            f"Gateway charge {charge.operation_id} not applied (res={reservation_id}): {reason}", at,
        )

    def register_cash(self, state: ClubState, actor_id: str, reservation_id: str, at: datetime) -> Payment:
        found = self.find_payable(state, reservation_id)
        if found is None:
            raise NotFoundError("Reservation not found", code="unknown_reservation")
        reservation, payment = found
        payment.approve(PaymentMethod.CASH, {"cash": {"by": actor_id, "at": at.isoformat()}}, at)
        reservation.confirm(at)
        self.audit.append(state, actor_id, AuditAction.PAYMENT, f"Cash approved (res={reservation_id})", at)
        _notify_holder(
            self.notifier, state, reservation, NotificationEvent.PAYMENT_CONFIRMED,
            {"reservation_id": reservation_id, "method": PaymentMethod.CASH.value}, at,
        )
        return payment

    def mark_no_show_and_refund(self, state: ClubState, actor_id: str, reservation_id: str, at: datetime) -> Decimal:
        found = self.find_payable(state, reservation_id)
        if found is None:
            raise NotFoundError("Reservation not found", code="unknown_reservation")
        reservation, payment = found
        reservation.mark_no_show(at)
        refund = payment.refund_partial(actor_id, at)
        self.audit.append(
            state, actor_id, AuditAction.NO_SHOW,
            f"No-show with {NO_SHOW_REFUND_PERCENT}% refund of {refund} (res={reservation_id})", at,
        )
        _notify_holder(
            self.notifier, state, reservation, NotificationEvent.NO_SHOW,
            {"reservation_id": reservation_id, "refund_percent": NO_SHOW_REFUND_PERCENT, "refund_amount": str(refund)}, at,
        )
        return refund


def _flag(value: Optional[bool]) -> str:
    return "-" if value is None else str(value).lower()


def _get_reservation(state: ClubState, reservation_id: str) -> Reservation:
    reservation = state.reservations.get(reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found", code="unknown_reservation")
    return reservation


def _notify_holder(notifier: NotificationDispatcher, state: ClubState, reservation: Reservation,
                   event: NotificationEvent, payload: dict, at: datetime) -> None:
    holder = state.users.get(reservation.user_id)
    if holder is not None:
        notifier.notify(state, event, holder.email, payload, at)
