from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Optional

from ..common.datetime_utils import ORG_TIMEZONE, as_utc, to_local_date
from ..core.enums import PunchKind, PunchStatus


@dataclass(frozen=True)
class AttendanceEvent:
    """Immutable ledger fact: one card tap (punch)."""

    event_id: int
    user_id: str
    card_id: str
    kind: PunchKind
    occurred_at: datetime
    local_date: date

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.occurred_at, self.event_id)


@dataclass(frozen=True)
class PunchDraft:
    """An event about to be appended (no id yet).

    Build it with ``PunchDraft.at`` so ``local_date`` is always derived from
    ``occurred_at``.
    """

    user_id: str
    card_id: str
    kind: PunchKind
    occurred_at: datetime
    local_date: date

    @classmethod
    def at(
        cls,
        *,
        user_id: str,
        card_id: str,
        kind: PunchKind,
        occurred_at: datetime,
        tz: tzinfo = ORG_TIMEZONE,
    ) -> "PunchDraft":
        instant = as_utc(occurred_at)
        return cls(
            user_id=user_id,
            card_id=card_id,
            kind=kind,
            occurred_at=instant,
            local_date=to_local_date(instant, tz),
        )

    def saved_as(self, event_id: int) -> AttendanceEvent:
        return AttendanceEvent(
            event_id=int(event_id),
            user_id=self.user_id,
            card_id=self.card_id,
            kind=self.kind,
            occurred_at=self.occurred_at,
            local_date=self.local_date,
        )


@dataclass(frozen=True)
class PunchResult:
    status: PunchStatus
    message: str
    kind: Optional[PunchKind] = None
    user_id: Optional[str] = None
    display_name: Optional[str] = None
    event: Optional[AttendanceEvent] = None

    @property
    def success(self) -> bool:
        return self.status == PunchStatus.OK

    def to_kiosk(self) -> dict:
        return {
            "success": self.success,
            "status": self.status.value,
            "message": self.message,
            "display_name": self.display_name,
            "kind": self.kind.value if self.kind else None,
        }
