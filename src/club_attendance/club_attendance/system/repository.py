from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from ..core.enums import LogoutStatus
from .model import DailyLogoutLogEntry


class LogoutLogRepository(Protocol):
    def append(self, *, executed_at: datetime, affected_count: int, status: LogoutStatus) -> DailyLogoutLogEntry:
        raise NotImplementedError

    def list_recent(self, *, limit: int) -> Sequence[DailyLogoutLogEntry]:
        raise NotImplementedError
