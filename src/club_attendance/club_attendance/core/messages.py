"""User-facing messages.

Every result variant has its own message so kiosk and registration screens
can tell failures apart.
"""

from __future__ import annotations

from .enums import BindingStatus, ConsumeStatus, IssueStatus, LogoutStatus, PunchKind, PunchStatus

PUNCH_MESSAGES = {
    PunchStatus.UNKNOWN_CARD: "This card is not registered.",
    PunchStatus.FAILURE: "The punch could not be recorded. Please tap again.",
}

PUNCH_KIND_MESSAGES = {
    PunchKind.IN: "Checked in.",
    PunchKind.OUT: "Checked out.",
}

FORCED_PUNCH_MESSAGES = {
    PunchKind.IN: "User was forced to check in.",
    PunchKind.OUT: "User was forced to check out.",
}

ISSUE_MESSAGES = {
    IssueStatus.OK: "Registration QR code generated.",
    IssueStatus.ALREADY_REGISTERED: "This card is already registered.",
    IssueStatus.INVALID_CARD: "The card id could not be read.",
    IssueStatus.FAILURE: "Temporary registration failed.",
}

CONSUME_MESSAGES = {
    ConsumeStatus.OK: "Registration completed.",
    ConsumeStatus.INVALID: "This registration link is invalid.",
    ConsumeStatus.ALREADY_USED: "This registration link has already been used.",
    ConsumeStatus.EXPIRED: "This registration link has expired.",
    ConsumeStatus.DUPLICATE_CARD: "This card is already registered to another user.",
    ConsumeStatus.FAILURE: "Linking the card to your account failed.",
}

BINDING_MESSAGES = {
    BindingStatus.OK: "Card id updated.",
    BindingStatus.DUPLICATE_CARD: "This card id is already registered to another user.",
    BindingStatus.NOT_FOUND: "Attendance user not found.",
    BindingStatus.INVALID_CARD: "The new card id is empty.",
    BindingStatus.FAILURE: "Updating the card id failed.",
}

LOGOUT_MESSAGES = {
    LogoutStatus.SUCCESS: "{count} user(s) were checked out.",
    LogoutStatus.ERROR: "Bulk logout failed. No user was checked out.",
}

NOBODY_PRESENT_MESSAGE = "Nobody is currently checked in."


def punch_message(status: PunchStatus, kind: PunchKind | None = None, *, forced: bool = False) -> str:
    if status == PunchStatus.OK and kind is not None:
        return (FORCED_PUNCH_MESSAGES if forced else PUNCH_KIND_MESSAGES)[kind]
    return PUNCH_MESSAGES[status]
