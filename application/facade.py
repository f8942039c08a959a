"""ClubAPI - the one entry point for every command and query.

Commands follow the same pattern: validate, mutate a clone of the state,
append the audit entry and notifications, persist, swap. Reads work on the
current state and never mutate it.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Union

from application.audit import AuditLog, NotificationDispatcher
from application.services import (
    ConfigStore, CourtRegistry, BlockRegistry, UserDirectory, ReservationLedger, PaymentLedger,
)
from application.store import StateStore
from domain.entities import (
    ClubState, ClubConfig, Court, User, Reservation, Payment, Block, AuditEntry, Notification,
)
from domain.enums import AuditAction, NotificationChannel, SlotStatus
from domain.errors import ConflictError, ValidationError
from domain.gateways import SocioVerifier, PaymentGateway
from domain.repositories import SnapshotRepository
from domain.value_objects import (
    ConfigPatch, Registration, AccountValidation, ReservationRequest, ManualReservationRequest,
    BlockRequest, CourtAvailability, Slot, normalize_date_iso,
)


class ClubAPI:
    """Façade over the reservation and payment ledgers"""

    def __init__(
        self,
        repository: SnapshotRepository,
        socio_verifier: SocioVerifier,
        payment_gateway: PaymentGateway,
        channels: Iterable[Union[NotificationChannel, str]] = tuple(NotificationChannel),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.clock = clock
        self.store = StateStore(repository, clock)
        self.socio_verifier = socio_verifier
        self.payment_gateway = payment_gateway

        self.audit = AuditLog()
        self.notifier = NotificationDispatcher(channels)
        self.config = ConfigStore(self.audit)
        self.courts = CourtRegistry(self.audit)
        self.blocks = BlockRegistry(self.audit)
        self.users = UserDirectory(self.audit, self.notifier)
        self.reservations = ReservationLedger(self.audit, self.notifier)
        self.payments = PaymentLedger(self.audit, self.notifier)
        # Reservations with a gateway charge awaiting its answer
        self._charges_in_flight = set()
        self.logger = logging.getLogger(self.__class__.__name__)

    async def ensure_loaded(self) -> ClubState:
        return await self.store.ensure_loaded()

    @property
    def state(self) -> ClubState:
        return self.store.state

    # ==================== CONFIG & COURTS ====================
    def get_config(self) -> ClubConfig:
        return self.config.get(self.state)

    async def set_config(self, actor_id: str, patch: ConfigPatch) -> ClubConfig:
        at = self.clock()
        config = await self.store.commit(lambda st: self.config.set(st, actor_id, patch, at))
        self.logger.info("Config updated by %s: %s", actor_id, patch.changes())
        return config

    async def set_court_active(self, actor_id: str, court_id: str, is_active: bool) -> bool:
        """Switch a court on or off; an unknown court is ignored"""
        if court_id not in self.state.courts:
            self.logger.warning("set_court_active: unknown court %s", court_id)
            return False
        at = self.clock()
        changed = await self.store.commit(lambda st: self.courts.set_active(st, actor_id, court_id, is_active, at))
        self.logger.info("Court %s set active=%s by %s", court_id, is_active, actor_id)
        return changed

    # ==================== USERS ====================
    async def register(self, registration: Registration) -> str:
        clean = self.users.normalize(registration)
        self.users.ensure_unique(self.state, clean.email, clean.dni)

        # The store is not locked while the registry answers; create() checks uniqueness again
        socio = await self.socio_verifier.verify(clean.dni)

        at = self.clock()
        user_id = await self.store.commit(lambda st: self.users.create(st, clean, socio, at))
        self.logger.info("Registered user %s (socio=%s)", user_id, socio.socio_active)
        return user_id

    async def login(self, email: str, password: str) -> str:
        at = self.clock()
        user_id = await self.store.commit(lambda st: self.users.login(st, email, password, at))
        self.logger.info("User %s logged in", user_id)
        return user_id

    async def logout(self, actor_id: str) -> None:
        await self.store.commit(lambda st: self.users.logout(st, actor_id))

    async def validate_account(self, actor_id: str, flags: AccountValidation) -> User:
        at = self.clock()
        return await self.store.commit(lambda st: self.users.validate_account(st, actor_id, flags, at))

    # ==================== BLOCKS ====================
    async def add_block(self, actor_id: str, request: BlockRequest) -> str:
        at = self.clock()
        block_id = await self.store.commit(lambda st: self.blocks.add(st, actor_id, request, at))
        self.logger.info("Block %s on %s %s %s", block_id, request.court_id, request.date_iso, request.time)
        return block_id

    async def remove_block(self, actor_id: str, block_id: str) -> bool:
        """Delete a block; an unknown id is ignored"""
        if block_id not in self.state.blocks:
            self.logger.warning("remove_block: unknown block %s", block_id)
            return False
        at = self.clock()
        return await self.store.commit(lambda st: self.blocks.remove(st, actor_id, block_id, at))

    # ==================== RESERVATIONS & PAYMENTS ====================
    async def create_reservation(self, actor_id: str, request: ReservationRequest) -> str:
        at = self.clock()
        reservation_id = await self.store.commit(lambda st: self.reservations.create(st, actor_id, request, at))
        self.logger.info(
            "Reservation %s created by %s for %s %s %s",
            reservation_id, actor_id, request.court_id, request.date_iso, request.time,
        )
        return reservation_id

    async def pay_with_gateway(self, actor_id: str, reservation_id: str) -> bool:
        """Charge through the gateway and confirm; unknown reservations are ignored"""
        if self.payments.find_payable(self.state, reservation_id) is None:
            self.logger.warning("pay_with_gateway: unknown reservation %s", reservation_id)
            return False
        # Refuse before charging anyone; approve_gateway checks again after the charge
        self.payments.ensure_pending(self.state, reservation_id)
        if reservation_id in self._charges_in_flight:
            raise ConflictError(
                f"A gateway payment for {reservation_id} is already in progress", code="payment_in_progress"
            )

        self._charges_in_flight.add(reservation_id)
        try:
            charge = await self.payment_gateway.charge(reservation_id)
            if not charge.approved:
                self.logger.warning("Gateway declined reservation %s; payment stays pending", reservation_id)
                return False

            at = self.clock()
            try:
                approved = await self.store.commit(
                    lambda st: self.payments.approve_gateway(st, actor_id, reservation_id, charge, at)
                )
            except ValidationError as e:
                # The reservation moved on while the gateway was charging; keep the charge on record
                await self.store.commit(
                    lambda st: self.payments.record_unapplied_charge(
                        st, actor_id, reservation_id, charge, e.message, at
                    )
                )
                self.logger.warning(
                    "Gateway charge %s for %s not applied: %s", charge.operation_id, reservation_id, e.message
                )
                return False
        finally:
            self._charges_in_flight.discard(reservation_id)

        self.logger.info("Gateway payment %s for reservation %s", charge.operation_id, reservation_id)
        return approved

    async def register_cash_payment(self, actor_id: str, reservation_id: str) -> Payment:
        at = self.clock()
        payment = await self.store.commit(lambda st: self.payments.register_cash(st, actor_id, reservation_id, at))
        self.logger.info("Cash payment for reservation %s taken by %s", reservation_id, actor_id)
        return payment

    async def cancel_reservation(self, actor_id: str, reservation_id: str, reason: str = "") -> Reservation:
        at = self.clock()
        reservation = await self.store.commit(
            lambda st: self.reservations.cancel(st, actor_id, reservation_id, reason or "", at)
        )
        self.logger.info("Reservation %s cancelled by %s", reservation_id, actor_id)
        return reservation

    async def mark_no_show_and_refund_50(self, actor_id: str, reservation_id: str) -> Decimal:
        at = self.clock()
        refund = await self.store.commit(
            lambda st: self.payments.mark_no_show_and_refund(st, actor_id, reservation_id, at)
        )
        self.logger.info("No-show on %s, refunded %s", reservation_id, refund)
        return refund

    async def admin_create_manual_reservation(self, actor_id: str, request: ManualReservationRequest) -> str:
        """Desk booking: reserve for the user, optionally take cash, then record the admin action"""
        reservation_id = await self.create_reservation(
            actor_id,
            ReservationRequest(
                date_iso=request.date_iso,
                time=request.time,
                court_id=request.court_id,
                for_user_id=request.user_id,
            ),
        )
        if request.mark_paid_cash:
            await self.register_cash_payment(actor_id, reservation_id)
        at = self.clock()
        await self.store.commit(
            lambda st: self.audit.append(st, actor_id, AuditAction.ADMIN, f"Manual reservation {reservation_id}", at)
        )
        return reservation_id

    # ==================== QUERIES ====================
    def get_user(self, user_id: str) -> Optional[User]:
        return self.state.users.get(user_id)

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.state.find_user_by_email(email)

    def list_users(self) -> List[User]:
        return list(self.state.users.values())

    def list_courts(self) -> List[Court]:
        return list(self.state.courts.values())

    def list_blocks(self, date_iso: Optional[str] = None) -> List[Block]:
        if date_iso is not None:
            date_iso = normalize_date_iso(date_iso)
        return [b for b in self.state.blocks.values() if date_iso is None or b.date_iso == date_iso]

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self.state.reservations.get(reservation_id)

    def get_payment(self, reservation_id: str) -> Optional[Payment]:
        return self.state.payments.get(reservation_id)

    def list_reservations(self, user_id: Optional[str] = None, date_iso: Optional[str] = None) -> List[Reservation]:
        """Reservations ordered by date and time, optionally for one user or one day"""
        if date_iso is not None:
            date_iso = normalize_date_iso(date_iso)
        found = [
            r for r in self.state.reservations.values()
            if (user_id is None or r.user_id == user_id) and (date_iso is None or r.date_iso == date_iso)
        ]
        return sorted(found, key=lambda r: (r.date_iso, r.time, r.court_id))

    def slot_availability(self, date_iso: str, time: str) -> List[CourtAvailability]:
        state = self.state
        result = []
        for court in state.courts.values():
            slot = Slot.normalized(court.id, date_iso, time)
            if not court.is_active:
                status = SlotStatus.INACTIVE
            elif state.is_blocked(slot):
                status = SlotStatus.MAINTENANCE
            elif state.court_taken(slot):
                status = SlotStatus.OCCUPIED
            else:
                status = SlotStatus.AVAILABLE
            result.append(
                CourtAvailability(court_id=court.id, name=court.name, is_active=court.is_active, status=status)
            )
        return result

    def audit_entries(self, limit: Optional[int] = None) -> List[AuditEntry]:
        return self.audit.entries(self.state, limit)

    def notifications(self, limit: Optional[int] = None) -> List[Notification]:
        return self.notifier.sent(self.state, limit)
