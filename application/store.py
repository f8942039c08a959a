"""Copy-and-swap holder of the club state"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, TypeVar

from domain.entities import ClubState, ClubConfig, Court, User, AuditEntry
from domain.enums import UserRole, UserType, AuditAction
from domain.repositories import SnapshotRepository
from infrastructure.security import get_password_hash

T = TypeVar("T")

DEFAULT_COURTS = [
    Court(id="c1", name="Cancha 1"),
    Court(id="c2", name="Cancha 2"),
    Court(id="c3", name="Cancha 3"),
    Court(id="c4", name="Cancha 4"),
]
SEED_ADMIN_EMAIL = "admin@edlp.com"
SEED_ADMIN_PASSWORD = "admin"


def seed_state(at: datetime) -> ClubState:
    """First-run state: one demo admin, the default courts and policy"""
    admin = User(
        role=UserRole.ADMIN,
        email=SEED_ADMIN_EMAIL,
        phone="11-0000-0000",
        dni="12345678",
        user_type=UserType.SOCIO,
        password_hash=get_password_hash(SEED_ADMIN_PASSWORD),
        is_email_validated=True,
        is_phone_validated=True,
        created_at=at,
    )
    return ClubState(
        config=ClubConfig(),
        courts={court.id: court.model_copy() for court in DEFAULT_COURTS},
        users={admin.id: admin},
        audit=[
            AuditEntry(
                at=at,
                by=admin.id,
                action=AuditAction.SEED.value,
                detail=f"System initialised with demo admin ({SEED_ADMIN_EMAIL})",
            )
        ],
    )


class StateStore:
    """Single writer over the club state.

    Every commit clones the current state, runs the mutator on the clone,
    persists the clone and only then swaps it in. A mutator that raises
    leaves the current state untouched. Commits are serialised, so a
    mutator always sees the result of the previous one.
    """

    def __init__(self, repository: SnapshotRepository, clock: Callable[[], datetime] = datetime.now):
        self._repository = repository
        self._clock = clock
        self._state: Optional[ClubState] = None
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    async def ensure_loaded(self) -> ClubState:
        """Load the snapshot once, seeding it on first run"""
        if self._state is None:
            async with self._lock:
                if self._state is None:
                    state = await self._repository.load()
                    if state is None:
                        self.logger.info("No snapshot found, seeding initial state")
                        state = seed_state(self._clock())
                        await self._repository.save(state)
                    self._state = state
        return self._state

    @property
    def state(self) -> ClubState:
        if self._state is None:
            raise RuntimeError("State not loaded; await ensure_loaded() first")
        return self._state

    async def commit(self, mutator: Callable[[ClubState], T]) -> T:
        await self.ensure_loaded()
        async with self._lock:
            draft = self._state.clone()
            result = mutator(draft)
            await self._repository.save(draft)
            self._state = draft
            return result
