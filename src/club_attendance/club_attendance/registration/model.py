from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import as_utc
from ..core.enums import ConsumeStatus, IssueStatus, TokenState
from ..members.model import CardBinding


@dataclass(frozen=True)
class RegistrationToken:
    """Short-lived, single-use credential that binds a card to an account."""

    token: str
    card_id: str
    created_at: datetime
    expires_at: datetime
    used_at: Optional[datetime] = None
    accessed_at: Optional[datetime] = None

    def state(self, now: datetime) -> TokenState:
        # A consumed token stays consumed even after its TTL runs out.
        if self.used_at is not None:
            return TokenState.CONSUMED
        if self.expires_at <= as_utc(now):
            return TokenState.EXPIRED
        if self.accessed_at is not None:
            return TokenState.ACCESSED
        return TokenState.CREATED

    def is_live(self, now: datetime) -> bool:
        return self.state(now) in (TokenState.CREATED, TokenState.ACCESSED)

    def to_dict(self, now: datetime) -> dict:
        return {
            "token": self.token,
            "card_id": self.card_id,
            "state": self.state(now).value,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "used_at": self.used_at.isoformat() if self.used_at else None,
            "accessed_at": self.accessed_at.isoformat() if self.accessed_at else None,
        }


@dataclass(frozen=True)
class IssueResult:
    status: IssueStatus
    message: str
    token: Optional[RegistrationToken] = None

    @property
    def success(self) -> bool:
        return self.status == IssueStatus.OK


@dataclass(frozen=True)
class ConsumeResult:
    status: ConsumeStatus
    message: str
    binding: Optional[CardBinding] = None

    @property
    def success(self) -> bool:
        return self.status == ConsumeStatus.OK
