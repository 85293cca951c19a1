from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from src.club_attendance.club_attendance.attendance.service import PunchService, next_kind
from src.club_attendance.club_attendance.core.enums import PunchKind, PunchStatus
from src.club_attendance.club_attendance.core.messages import punch_message
from src.club_attendance.club_attendance.members.service import DisplayNames


def _service(events, bindings, members=None, **kwargs) -> PunchService:
    return PunchService(events, bindings, names=DisplayNames(members), **kwargs)


def test_next_kind_starts_with_in():
    assert next_kind(None) == PunchKind.IN


def test_punches_alternate_in_and_out(events, bindings, members, fixed_now):
    bindings.bind("u1", "04a31f22")
    svc = _service(events, bindings, members)

    first = svc.record_punch("04:A3:1F:22", now=fixed_now)
    second = svc.record_punch("04a31f22", now=fixed_now + timedelta(hours=1))
    third = svc.record_punch("04-a3-1f-22", now=fixed_now + timedelta(hours=2))

    assert [first.kind, second.kind, third.kind] == [PunchKind.IN, PunchKind.OUT, PunchKind.IN]
    assert first.success and first.display_name == "Aoi"
    assert first.message == punch_message(PunchStatus.OK, PunchKind.IN)
    assert second.message == punch_message(PunchStatus.OK, PunchKind.OUT)
    assert [e.kind for e in events.all()] == [PunchKind.IN, PunchKind.OUT, PunchKind.IN]
    assert all(e.card_id == "04a31f22" for e in events.all())


def test_event_local_date_uses_org_timezone(events, bindings):
    bindings.bind("u1", "c1")
    svc = _service(events, bindings)

    # 2026-02-01 15:30 UTC is already Feb 2 in Tokyo.
    result = svc.record_punch("c1", now=datetime(2026, 2, 1, 15, 30, tzinfo=timezone.utc))

    assert result.event.local_date.isoformat() == "2026-02-02"


def test_unknown_card_has_its_own_message(events, bindings, fixed_now):
    svc = _service(events, bindings)

    result = svc.record_punch("ffff", now=fixed_now)

    assert result.status == PunchStatus.UNKNOWN_CARD
    assert result.message == punch_message(PunchStatus.UNKNOWN_CARD)
    assert result.message != punch_message(PunchStatus.FAILURE)
    assert events.all() == []


def test_empty_card_is_unknown(events, bindings, fixed_now):
    result = _service(events, bindings).record_punch("  ", now=fixed_now)

    assert result.status == PunchStatus.UNKNOWN_CARD


def test_name_lookup_failure_falls_back_to_placeholder(events, bindings, members, fixed_now):
    bindings.bind("u1", "c1")
    members.resolver_broken = True

    result = _service(events, bindings, members).record_punch("c1", now=fixed_now)

    assert result.success
    assert result.kind == PunchKind.IN
    assert result.display_name == "Anonymous"


def test_unresolved_user_gets_placeholder_name(events, bindings, members, fixed_now):
    bindings.bind("ghost", "c9")

    result = _service(events, bindings, members).record_punch("c9", now=fixed_now)

    assert result.display_name == "Anonymous"


def test_store_outage_is_reported_as_failure(events, bindings, fixed_now):
    bindings.bind("u1", "c1")
    events.unavailable = True

    result = _service(events, bindings).record_punch("c1", now=fixed_now)

    assert result.status == PunchStatus.FAILURE
    assert not result.success


def test_lost_race_rereads_last_event(events, bindings, fixed_now):
    bindings.bind("u1", "c1")
    original = events.append_if_last
    calls = []

    def racing_append(draft, *, expected_last_id):
        if not calls:
            # Another kiosk records an IN between our read and our write.
            events.add("u1", PunchKind.IN, fixed_now - timedelta(seconds=1))
        calls.append(draft.kind)
        return original(draft, expected_last_id=expected_last_id)

    events.append_if_last = racing_append

    result = _service(events, bindings).record_punch("c1", now=fixed_now)

    assert calls == [PunchKind.IN, PunchKind.OUT]
    assert result.kind == PunchKind.OUT
    assert [e.kind for e in events.all()] == [PunchKind.IN, PunchKind.OUT]


def test_concurrent_punches_keep_strict_alternation(events, bindings, fixed_now):
    bindings.bind("u1", "c1")
    svc = _service(events, bindings, max_attempts=50)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda i: svc.record_punch("c1", now=fixed_now), range(40)))

    stored = events.all()
    kinds = [e.kind for e in stored]
    assert len(stored) == sum(1 for r in results if r.success)
    assert all(a != b for a, b in zip(kinds, kinds[1:]))
    assert kinds[0] == PunchKind.IN


def test_force_toggle_flips_state(events, bindings, fixed_now):
    bindings.bind("u2", "c2")
    svc = _service(events, bindings)

    result = svc.force_toggle("u2", now=fixed_now)

    assert result.kind == PunchKind.IN
    assert result.message == punch_message(PunchStatus.OK, PunchKind.IN, forced=True)
    assert svc.current_status("u2") == PunchKind.IN


def test_force_toggle_without_card(events, bindings, fixed_now):
    result = _service(events, bindings).force_toggle("nobody", now=fixed_now)

    assert result.status == PunchStatus.UNKNOWN_CARD
    assert result.user_id == "nobody"


def test_current_status_and_presence(events, bindings, fixed_now):
    events.add("u1", PunchKind.IN, fixed_now)
    events.add("u2", PunchKind.IN, fixed_now)
    events.add("u2", PunchKind.OUT, fixed_now + timedelta(hours=1))
    svc = _service(events, bindings)

    assert svc.current_status("u1") == PunchKind.IN
    assert svc.current_status("u2") == PunchKind.OUT
    assert svc.current_status("u3") is None
    assert [e.user_id for e in svc.currently_present()] == ["u1"]
