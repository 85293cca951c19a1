from __future__ import annotations

import logging
import time
from datetime import datetime, tzinfo
from typing import Callable, Optional, Sequence

from ..attendance.model import PunchDraft
from ..attendance.repository import EventRepository
from ..common.datetime_utils import ORG_TIMEZONE, as_utc, now_utc, parse_hhmm, within_window
from ..core.constants import BULK_LOGOUT_MAX_ATTEMPTS, DEFAULT_LOG_LIMIT
from ..core.enums import LogoutStatus, PunchKind
from ..core.exceptions import ConcurrentAppendError, PartialBatchFailure, StoreUnavailable
from ..core.messages import LOGOUT_MESSAGES, NOBODY_PRESENT_MESSAGE
from .model import BulkLogoutResult, DailyLogoutLogEntry
from .repository import LogoutLogRepository

logger = logging.getLogger(__name__)


class BulkLogoutService:
    """Force-closes every open session at a scheduled boundary.

    The OUT batch is all-or-nothing: on any failure nothing is appended and
    the audit entry records ``error`` with ``affected_count = 0``. Time-window
    gating is the scheduler's job, not this service's.

    Each attempt stamps its OUT events when it writes, so a punch that lands
    between the request and the write is closed by a later OUT.
    """

    def __init__(
        self,
        events: EventRepository,
        logs: LogoutLogRepository,
        *,
        tz: tzinfo = ORG_TIMEZONE,
        max_attempts: int = BULK_LOGOUT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._events = events
        self._logs = logs
        self._tz = tz
        self._max_attempts = max(1, int(max_attempts))
        self._clock = clock

    def force_logout_all(self, *, now: datetime | None = None, timeout: Optional[float] = None) -> BulkLogoutResult:
        executed_at = as_utc(now) if now else as_utc(self._clock())
        # An explicit ``now`` pins every attempt to that instant.
        stamp = (lambda: executed_at) if now else self._clock
        try:
            closed = self._close_open_sessions(stamp, timeout)
        except (StoreUnavailable, ConcurrentAppendError, PartialBatchFailure):
            logger.exception("bulk logout at %s failed", executed_at.isoformat())
            self._logs.append(executed_at=executed_at, affected_count=0, status=LogoutStatus.ERROR)
            return BulkLogoutResult(
                status=LogoutStatus.ERROR,
                closed_count=0,
                message=LOGOUT_MESSAGES[LogoutStatus.ERROR],
                executed_at=executed_at,
            )

        self._logs.append(executed_at=executed_at, affected_count=closed, status=LogoutStatus.SUCCESS)
        logger.info("bulk logout closed %d session(s)", closed)
        message = LOGOUT_MESSAGES[LogoutStatus.SUCCESS].format(count=closed) if closed else NOBODY_PRESENT_MESSAGE
        return BulkLogoutResult(
            status=LogoutStatus.SUCCESS,
            closed_count=closed,
            message=message,
            executed_at=executed_at,
        )

    def list_logs(self, *, limit: int = DEFAULT_LOG_LIMIT) -> Sequence[DailyLogoutLogEntry]:
        return self._logs.list_recent(limit=limit)

    def _close_open_sessions(self, stamp: Callable[[], datetime], timeout: Optional[float]) -> int:
        deadline = time.monotonic() + timeout if timeout is not None else None

        for attempt in range(1, self._max_attempts + 1):
            open_events = [e for e in self._events.list_latest_per_user() if e.kind == PunchKind.IN]
            if not open_events:
                return 0

            occurred_at = as_utc(stamp())
            drafts = [
                PunchDraft.at(
                    user_id=e.user_id,
                    card_id=e.card_id,
                    kind=PunchKind.OUT,
                    occurred_at=occurred_at,
                    tz=self._tz,
                )
                for e in open_events
            ]
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise PartialBatchFailure("bulk logout timed out before writing")
            try:
                self._events.append_batch(
                    drafts,
                    expected_last_ids={e.user_id: e.event_id for e in open_events},
                    timeout=remaining,
                )
            except ConcurrentAppendError as exc:
                logger.info("bulk logout raced with a punch of user %s (attempt %d)", exc.user_id, attempt)
                continue
            return len(drafts)

        raise PartialBatchFailure(f"bulk logout gave up after {self._max_attempts} attempts")


def logout_window_open(now: datetime, *, tz: tzinfo, start: str, end: str) -> bool:
    """Whether ``now`` falls in the local HH:MM window where bulk logout may run."""
    local_time = as_utc(now).astimezone(tz).time()
    return within_window(local_time, parse_hhmm(start), parse_hhmm(end))
