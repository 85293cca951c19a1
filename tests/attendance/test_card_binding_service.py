from __future__ import annotations

from src.club_attendance.club_attendance.core.enums import BindingStatus
from src.club_attendance.club_attendance.members.service import CardBindingService


def test_rebind_moves_user_to_new_card(bindings, fixed_now):
    bindings.bind("u1", "old")
    svc = CardBindingService(bindings)

    result = svc.rebind("u1", "NE:W1", now=fixed_now)

    assert result.success
    assert bindings.get_by_user("u1").card_id == "new1"
    assert bindings.get_by_card("old") is None
    assert svc.lookup("ne-w1").user_id == "u1"


def test_rebind_refuses_card_of_other_user(bindings, fixed_now):
    bindings.bind("u1", "c1")
    bindings.bind("u2", "c2")

    result = CardBindingService(bindings).rebind("u1", "c2", now=fixed_now)

    assert result.status == BindingStatus.DUPLICATE_CARD
    assert bindings.get_by_user("u1").card_id == "c1"
    assert bindings.get_by_card("c2").user_id == "u2"


def test_rebind_unknown_user_and_empty_card(bindings, fixed_now):
    svc = CardBindingService(bindings)

    assert svc.rebind("ghost", "c1", now=fixed_now).status == BindingStatus.NOT_FOUND
    assert svc.rebind("ghost", " : ", now=fixed_now).status == BindingStatus.INVALID_CARD
    assert svc.lookup("") is None
