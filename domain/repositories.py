"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional

from domain.entities import ClubState


class SnapshotRepository(ABC):
    """Durable home of the whole club state, written in full on every change"""

    @abstractmethod
    async def load(self) -> Optional[ClubState]:
        """Load the last saved snapshot, or None when nothing was saved yet"""
        pass

    @abstractmethod
    async def save(self, state: ClubState) -> None:
        """Overwrite the snapshot"""
        pass
