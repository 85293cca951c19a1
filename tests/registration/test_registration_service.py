from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from src.club_attendance.club_attendance.core.enums import ConsumeStatus, IssueStatus, TokenState
from src.club_attendance.club_attendance.core.exceptions import StoreUnavailable, ValidationError
from src.club_attendance.club_attendance.registration.service import RegistrationService


@pytest.fixture
def service(registrations, bindings):
    return RegistrationService(registrations, bindings, ttl_minutes=30)


def test_issue_creates_live_token(service, fixed_now):
    result = service.issue("AB:C1:23", now=fixed_now)

    assert result.success
    assert result.token.token.startswith("qr_")
    assert result.token.card_id == "abc123"
    assert result.token.expires_at == fixed_now + timedelta(minutes=30)
    assert result.token.state(fixed_now) == TokenState.CREATED


def test_issuing_twice_invalidates_first_token(service, fixed_now):
    first = service.issue("abc123", now=fixed_now).token
    second = service.issue("abc123", now=fixed_now + timedelta(seconds=5)).token

    assert first.token != second.token
    assert service.consume(first.token, "u1", now=fixed_now + timedelta(minutes=1)).status == ConsumeStatus.INVALID
    assert service.consume(second.token, "u1", now=fixed_now + timedelta(minutes=1)).success


def test_issue_for_registered_card(service, bindings, fixed_now):
    bindings.bind("u1", "abc123")

    result = service.issue("abc123", now=fixed_now)

    assert result.status == IssueStatus.ALREADY_REGISTERED
    assert result.token is None


def test_issue_with_unreadable_card(service, fixed_now):
    assert service.issue("", now=fixed_now).status == IssueStatus.INVALID_CARD


def test_issue_when_store_is_down(registrations, bindings, fixed_now):
    def broken(token):
        raise StoreUnavailable("down")

    registrations.replace_for_card = broken
    result = RegistrationService(registrations, bindings).issue("abc123", now=fixed_now)

    assert result.status == IssueStatus.FAILURE


@pytest.mark.parametrize("ttl", [0, -5, 1441])
def test_ttl_must_be_bounded(registrations, bindings, ttl):
    with pytest.raises(ValidationError):
        RegistrationService(registrations, bindings, ttl_minutes=ttl)


def test_consume_binds_card(service, bindings, fixed_now):
    token = service.issue("abc123", now=fixed_now).token

    result = service.consume(token.token, "u1", now=fixed_now + timedelta(minutes=5))

    assert result.success
    assert result.binding.card_id == "abc123"
    assert bindings.get_by_card("abc123").user_id == "u1"


def test_consume_twice_reports_already_used(service, fixed_now):
    token = service.issue("abc123", now=fixed_now).token
    service.consume(token.token, "u1", now=fixed_now)

    result = service.consume(token.token, "u1", now=fixed_now + timedelta(minutes=1))

    assert result.status == ConsumeStatus.ALREADY_USED


def test_consume_expired_token(service, bindings, fixed_now):
    token = service.issue("abc123", now=fixed_now).token

    result = service.consume(token.token, "u1", now=fixed_now + timedelta(minutes=30))

    assert result.status == ConsumeStatus.EXPIRED
    assert bindings.get_by_card("abc123") is None


def test_consume_unknown_token(service, fixed_now):
    assert service.consume("qr_missing", "u1", now=fixed_now).status == ConsumeStatus.INVALID


def test_consume_refuses_card_bound_meanwhile(service, bindings, registrations, fixed_now):
    token = service.issue("abc123", now=fixed_now).token
    # An admin bound the card to someone else after the QR code was shown.
    bindings.bind("u2", "abc123")

    result = service.consume(token.token, "u1", now=fixed_now)

    assert result.status == ConsumeStatus.DUPLICATE_CARD
    assert bindings.get_by_card("abc123").user_id == "u2"
    assert registrations.get(token.token).used_at is None


def test_concurrent_consume_succeeds_exactly_once(service, bindings, fixed_now):
    token = service.issue("abc123", now=fixed_now).token

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda i: service.consume(token.token, f"user-{i}", now=fixed_now), range(16)))

    winners = [r for r in results if r.success]
    assert len(winners) == 1
    assert {r.status for r in results if not r.success} == {ConsumeStatus.ALREADY_USED}
    assert len(bindings.all()) == 1
    assert bindings.get_by_card("abc123").user_id == winners[0].binding.user_id


def test_peek_stamps_first_access_only(service, fixed_now):
    token = service.issue("abc123", now=fixed_now).token

    first = service.peek(token.token, now=fixed_now + timedelta(minutes=1))
    second = service.peek(token.token, now=fixed_now + timedelta(minutes=2))

    assert first.accessed_at == fixed_now + timedelta(minutes=1)
    assert second.accessed_at == first.accessed_at
    assert second.state(fixed_now + timedelta(minutes=2)) == TokenState.ACCESSED
    assert second.used_at is None
    assert service.peek("qr_missing", now=fixed_now) is None


def test_consumed_token_stays_consumed_after_expiry(service, fixed_now):
    token = service.issue("abc123", now=fixed_now).token
    service.consume(token.token, "u1", now=fixed_now)

    stored = service.peek(token.token, now=fixed_now + timedelta(days=1))

    assert stored.state(fixed_now + timedelta(days=1)) == TokenState.CONSUMED


def test_list_and_delete_tokens(service, fixed_now):
    older = service.issue("c1", now=fixed_now).token
    newer = service.issue("c2", now=fixed_now + timedelta(minutes=1)).token

    assert [t.token for t in service.list_tokens(limit=10)] == [newer.token, older.token]
    assert service.delete_token(older.token)
    assert not service.delete_token(older.token)
    assert [t.token for t in service.list_tokens(limit=10)] == [newer.token]
