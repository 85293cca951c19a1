from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import LogoutStatus


@dataclass(frozen=True)
class DailyLogoutLogEntry:
    """Audit record of one bulk logout run. Never mutated."""

    log_id: int
    executed_at: datetime
    affected_count: int
    status: LogoutStatus

    def to_dict(self) -> dict:
        return {
            "log_id": self.log_id,
            "executed_at": self.executed_at.isoformat(),
            "affected_count": self.affected_count,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class BulkLogoutResult:
    status: LogoutStatus
    closed_count: int
    message: str
    executed_at: datetime

    @property
    def success(self) -> bool:
        return self.status == LogoutStatus.SUCCESS
