from __future__ import annotations

from enum import Enum


class PunchKind(str, Enum):
    """Kind of a ledger event. The next punch always flips the previous one."""

    IN = "in"
    OUT = "out"

    def flipped(self) -> "PunchKind":
        return PunchKind.OUT if self is PunchKind.IN else PunchKind.IN


class PunchStatus(str, Enum):
    OK = "ok"
    UNKNOWN_CARD = "unknown_card"
    FAILURE = "failure"


class IssueStatus(str, Enum):
    OK = "ok"
    ALREADY_REGISTERED = "already_registered"
    INVALID_CARD = "invalid_card"
    FAILURE = "failure"


class ConsumeStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"
    DUPLICATE_CARD = "duplicate_card"
    FAILURE = "failure"


class BindingStatus(str, Enum):
    OK = "ok"
    DUPLICATE_CARD = "duplicate_card"
    NOT_FOUND = "not_found"
    INVALID_CARD = "invalid_card"
    FAILURE = "failure"


class TokenState(str, Enum):
    """Lifecycle of a registration token: CREATED -> (ACCESSED)? -> CONSUMED | EXPIRED."""

    CREATED = "created"
    ACCESSED = "accessed"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class LogoutStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Grouping(str, Enum):
    TEAM = "team"
    GRADE = "grade"
    NONE = "none"


class MemberStatus(str, Enum):
    """Membership status as exposed by the member directory."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ALUMNI = "alumni"
