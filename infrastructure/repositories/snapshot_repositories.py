"""Snapshot Repository Implementations"""
import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from domain.repositories import SnapshotRepository
from domain.entities import ClubState


class InMemorySnapshotRepository(SnapshotRepository):
    """In-memory implementation of SnapshotRepository"""

    def __init__(self, initial: Optional[ClubState] = None):
        self._snapshot: Optional[str] = initial.model_dump_json() if initial is not None else None
        self.save_count = 0

    async def load(self) -> Optional[ClubState]:
        """Load snapshot from memory"""
        if self._snapshot is None:
            return None
        return ClubState.model_validate_json(self._snapshot)

    async def save(self, state: ClubState) -> None:
        """Keep a serialized copy so later mutations cannot leak in"""
        self._snapshot = state.model_dump_json()
        self.save_count += 1


class JsonFileSnapshotRepository(SnapshotRepository):
    """Single JSON file holding the whole state; file I/O runs on a worker thread"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(self.__class__.__name__)

    async def load(self) -> Optional[ClubState]:
        """Read the snapshot file if present"""
        raw = await asyncio.to_thread(self._read)
        if raw is None:
            return None
        try:
            return ClubState.model_validate_json(raw)
        except ValueError:
            self.logger.error("Unreadable snapshot at %s", self.path)
            raise

    async def save(self, state: ClubState) -> None:
        await asyncio.to_thread(self._write, state.model_dump_json(indent=2))

    def _read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write(self, payload: str) -> None:
        """Write to a temp file then swap it in, so readers never see half a file"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
