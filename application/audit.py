"""Append-only side effects of every command: audit trail and notifications"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from domain.entities import ClubState, AuditEntry, Notification
from domain.enums import AuditAction, NotificationChannel, NotificationEvent


class AuditLog:
    """Business record of who did what; newest entry first"""

    def append(self, state: ClubState, by: str, action: AuditAction, detail: str, at: datetime) -> AuditEntry:
        entry = AuditEntry(at=at, by=by, action=action.value, detail=detail)
        state.audit.insert(0, entry)
        return entry

    def entries(self, state: ClubState, limit: Optional[int] = None) -> List[AuditEntry]:
        return list(state.audit if limit is None else state.audit[:limit])


class NotificationDispatcher:
    """Records one notification per channel; delivery happens elsewhere, if at all"""

    def __init__(self, channels: Iterable[NotificationChannel]):
        self.channels = [NotificationChannel(ch) for ch in channels]

    def notify(
        self,
        state: ClubState,
        event: NotificationEvent,
        to: str,
        payload: Dict[str, Any],
        at: datetime,
        channels: Optional[Iterable[NotificationChannel]] = None,
    ) -> List[Notification]:
        created = [
            Notification(at=at, channel=channel, to=to, event=event, payload=dict(payload))
            for channel in (self.channels if channels is None else channels)
        ]
        state.notifications[0:0] = created
        return created

    def sent(self, state: ClubState, limit: Optional[int] = None) -> List[Notification]:
        return list(state.notifications if limit is None else state.notifications[:limit])
