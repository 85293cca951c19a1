from __future__ import annotations

import pytest

from src.club_attendance.club_attendance.common.validators import normalize_card_id
from src.club_attendance.club_attendance.core import messages
from src.club_attendance.club_attendance.core.enums import BindingStatus, ConsumeStatus, IssueStatus, PunchStatus


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("04:A3:1F:22", "04a31f22"),
        ("04-a3-1f-22", "04a31f22"),
        (" 04 A3 1F 22\n", "04a31f22"),
        (None, ""),
    ],
)
def test_normalize_card_id(raw, expected):
    assert normalize_card_id(raw) == expected


@pytest.mark.parametrize(
    "table,statuses",
    [
        (messages.ISSUE_MESSAGES, IssueStatus),
        (messages.CONSUME_MESSAGES, ConsumeStatus),
        (messages.BINDING_MESSAGES, BindingStatus),
    ],
)
def test_every_result_variant_has_a_distinct_message(table, statuses):
    assert set(table) == set(statuses)
    assert len(set(table.values())) == len(table)


def test_punch_messages_are_distinct():
    texts = [
        messages.punch_message(PunchStatus.UNKNOWN_CARD),
        messages.punch_message(PunchStatus.FAILURE),
        *messages.PUNCH_KIND_MESSAGES.values(),
        *messages.FORCED_PUNCH_MESSAGES.values(),
    ]
    assert len(set(texts)) == len(texts)
