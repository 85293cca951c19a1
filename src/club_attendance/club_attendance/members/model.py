from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import BindingStatus, MemberStatus


@dataclass(frozen=True)
class Team:
    team_id: str
    team_name: str


@dataclass(frozen=True)
class MemberProfile:
    """Read-only view of a club member, as provided by the member directory.

    Membership is read as of now; there is no point-in-time history.
    """

    user_id: str
    display_name: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    grade: Optional[int] = None
    status: MemberStatus = MemberStatus.ACTIVE

    @property
    def counts_in_stats(self) -> bool:
        return self.status != MemberStatus.ALUMNI


@dataclass(frozen=True)
class CardBinding:
    """Permanent association between a physical card and a user account."""

    user_id: str
    card_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class BindingResult:
    status: BindingStatus
    message: str
    binding: Optional[CardBinding] = None

    @property
    def success(self) -> bool:
        return self.status == BindingStatus.OK

