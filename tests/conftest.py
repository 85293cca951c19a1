from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Optional

import pytest

from src.club_attendance.club_attendance.attendance.model import AttendanceEvent, PunchDraft
from src.club_attendance.club_attendance.common.datetime_utils import ORG_TIMEZONE
from src.club_attendance.club_attendance.container import wire_container
from src.club_attendance.club_attendance.core.enums import LogoutStatus, MemberStatus, PunchKind
from src.club_attendance.club_attendance.core.exceptions import (
    ConcurrentAppendError,
    DuplicateCardBinding,
    StoreUnavailable,
)
from src.club_attendance.club_attendance.members.model import CardBinding, MemberProfile, Team
from src.club_attendance.club_attendance.registration.model import RegistrationToken
from src.club_attendance.club_attendance.system.model import DailyLogoutLogEntry


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class InMemoryEvents:
    """Ledger fake with the same conditional-append contract as the MySQL repository."""

    def __init__(self, tz=ORG_TIMEZONE):
        self._lock = threading.Lock()
        self._events: list[AttendanceEvent] = []
        self._next_id = 1
        self._tz = tz
        self.unavailable = False
        # Called (once each, outside the lock) before the next append_batch.
        self.before_batch: list[Callable[[], None]] = []

    def add(self, user_id: str, kind: PunchKind, occurred_at: datetime, *, card_id: str = "card") -> AttendanceEvent:
        draft = PunchDraft.at(user_id=user_id, card_id=card_id, kind=kind, occurred_at=occurred_at, tz=self._tz)
        with self._lock:
            return self._store(draft)

    def all(self) -> list[AttendanceEvent]:
        with self._lock:
            return sorted(self._events, key=lambda e: e.sort_key)

    def _check(self) -> None:
        if self.unavailable:
            raise StoreUnavailable("ledger is down")

    def _store(self, draft: PunchDraft) -> AttendanceEvent:
        event = draft.saved_as(self._next_id)
        self._next_id += 1
        self._events.append(event)
        return event

    def _last(self, user_id: str) -> Optional[AttendanceEvent]:
        mine = [e for e in self._events if e.user_id == user_id]
        return max(mine, key=lambda e: e.sort_key) if mine else None

    def get_last_for_user(self, user_id):
        self._check()
        with self._lock:
            return self._last(user_id)

    def append_if_last(self, draft, *, expected_last_id):
        self._check()
        with self._lock:
            last = self._last(draft.user_id)
            if (last.event_id if last else None) != expected_last_id:
                return None
            return self._store(draft)

    def append_batch(self, drafts, *, expected_last_ids, timeout=None):
        while self.before_batch:
            self.before_batch.pop(0)()
        self._check()
        with self._lock:
            for draft in drafts:
                last = self._last(draft.user_id)
                if (last.event_id if last else None) != expected_last_ids.get(draft.user_id):
                    raise ConcurrentAppendError(draft.user_id)
                if last is not None and draft.occurred_at <= last.occurred_at:
                    raise ConcurrentAppendError(draft.user_id)
            return [self._store(d) for d in drafts]

    def list_for_user(self, user_id, *, start, end):
        return self.list_in_range(start=start, end=end, user_ids=[user_id])

    def list_in_range(self, *, start, end, user_ids=None, timeout=None):
        self._check()
        with self._lock:
            return [
                e
                for e in sorted(self._events, key=lambda e: e.sort_key)
                if start <= e.local_date <= end and (user_ids is None or e.user_id in user_ids)
            ]

    def list_latest_per_user(self, *, before=None, user_ids=None, timeout=None):
        self._check()
        with self._lock:
            latest = {}
            for e in sorted(self._events, key=lambda e: e.sort_key):
                if before is not None and e.local_date >= before:
                    continue
                if user_ids is not None and e.user_id not in user_ids:
                    continue
                latest[e.user_id] = e
            return [latest[uid] for uid in sorted(latest)]


class InMemoryBindings:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_user: dict[str, CardBinding] = {}

    def bind(self, user_id: str, card_id: str, *, now: Optional[datetime] = None) -> CardBinding:
        """Same rules as ``bind_card``: a card has at most one owner."""
        with self._lock:
            for binding in self._by_user.values():
                if binding.card_id == card_id and binding.user_id != user_id:
                    raise DuplicateCardBinding(card_id, binding.user_id)
            binding = CardBinding(user_id=user_id, card_id=card_id, created_at=now, updated_at=now)
            self._by_user[user_id] = binding
            return binding

    def all(self) -> list[CardBinding]:
        with self._lock:
            return list(self._by_user.values())

    def get_by_card(self, card_id):
        with self._lock:
            return next((b for b in self._by_user.values() if b.card_id == card_id), None)

    def get_by_user(self, user_id):
        with self._lock:
            return self._by_user.get(user_id)

    def rebind(self, *, user_id, card_id, now):
        if self.get_by_user(user_id) is None:
            return False
        self.bind(user_id, card_id, now=now)
        return True


class InMemoryMembers:
    def __init__(self, profiles=(), teams=()):
        self.profiles = {p.user_id: p for p in profiles}
        self.teams = list(teams)
        self.resolver_broken = False

    def list_members(self):
        return list(self.profiles.values())

    def list_teams(self):
        return list(self.teams)

    def resolve(self, user_id):
        if self.resolver_broken:
            raise RuntimeError("directory unreachable")
        profile = self.profiles.get(user_id)
        return profile.display_name if profile else None


class InMemoryRegistrations:
    def __init__(self, bindings: InMemoryBindings):
        self._lock = threading.Lock()
        self._tokens: dict[str, RegistrationToken] = {}
        self._bindings = bindings

    def replace_for_card(self, token):
        with self._lock:
            for value, existing in list(self._tokens.items()):
                if existing.card_id == token.card_id and existing.used_at is None:
                    del self._tokens[value]
            self._tokens[token.token] = token
            return token

    def get(self, token):
        with self._lock:
            return self._tokens.get(token)

    def mark_accessed(self, token, *, now):
        with self._lock:
            found = self._tokens.get(token)
            if found is None or found.accessed_at is not None:
                return False
            self._tokens[token] = replace(found, accessed_at=now)
            return True

    def mark_used_and_bind(self, token, *, user_id, now):
        with self._lock:
            found = self._tokens.get(token)
            if found is None or found.used_at is not None or found.expires_at <= now:
                return None
            # Raises before used_at is written, like the rolled-back transaction.
            binding = self._bindings.bind(user_id, found.card_id, now=now)
            self._tokens[token] = replace(found, used_at=now)
            return binding

    def list_recent(self, *, limit):
        with self._lock:
            return sorted(self._tokens.values(), key=lambda t: t.created_at, reverse=True)[:limit]

    def delete(self, token):
        with self._lock:
            return self._tokens.pop(token, None) is not None


class InMemoryLogoutLogs:
    def __init__(self):
        self.entries: list[DailyLogoutLogEntry] = []

    def append(self, *, executed_at, affected_count, status: LogoutStatus):
        entry = DailyLogoutLogEntry(
            log_id=len(self.entries) + 1,
            executed_at=executed_at,
            affected_count=affected_count,
            status=status,
        )
        self.entries.append(entry)
        return entry

    def list_recent(self, *, limit):
        return list(reversed(self.entries))[:limit]


@pytest.fixture
def fixed_now() -> datetime:
    # 10:00 in Tokyo.
    return utc(2026, 2, 2, 1, 0, 0)


@pytest.fixture
def events() -> InMemoryEvents:
    return InMemoryEvents()


@pytest.fixture
def bindings() -> InMemoryBindings:
    return InMemoryBindings()


@pytest.fixture
def members() -> InMemoryMembers:
    return InMemoryMembers(
        profiles=[
            MemberProfile(user_id="u1", display_name="Aoi", team_id="t1", team_name="Robotics", grade=1),
            MemberProfile(user_id="u2", display_name="Ren", team_id="t1", team_name="Robotics", grade=2),
            MemberProfile(user_id="u3", display_name="Sora", team_id="t2", team_name="Design", grade=1),
            MemberProfile(
                user_id="u4",
                display_name="Yuki",
                team_id="t2",
                team_name="Design",
                grade=4,
                status=MemberStatus.ALUMNI,
            ),
        ],
        teams=[Team(team_id="t1", team_name="Robotics"), Team(team_id="t2", team_name="Design")],
    )


@pytest.fixture
def registrations(bindings) -> InMemoryRegistrations:
    return InMemoryRegistrations(bindings)


@pytest.fixture
def logout_logs() -> InMemoryLogoutLogs:
    return InMemoryLogoutLogs()


@pytest.fixture
def container(events, members, bindings, registrations, logout_logs):
    return wire_container(
        events_repo=events,
        members_repo=members,
        bindings_repo=bindings,
        registration_repo=registrations,
        logout_logs_repo=logout_logs,
        timezone=ORG_TIMEZONE,
    )


@pytest.fixture
def local_day() -> date:
    return date(2026, 2, 2)
