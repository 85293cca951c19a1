from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import as_utc, now_utc
from ..common.validators import normalize_card_id
from ..core.constants import (
    DEFAULT_LOG_LIMIT,
    REGISTRATION_TOKEN_MAX_TTL_MINUTES,
    REGISTRATION_TOKEN_PREFIX,
    REGISTRATION_TOKEN_TTL_MINUTES,
)
from ..core.enums import ConsumeStatus, IssueStatus, TokenState
from ..core.exceptions import DuplicateCardBinding, StoreUnavailable, ValidationError
from ..core.messages import CONSUME_MESSAGES, ISSUE_MESSAGES
from ..members.model import CardBinding
from ..members.repository import CardBindingRepository
from .model import ConsumeResult, IssueResult, RegistrationToken
from .repository import RegistrationRepository

logger = logging.getLogger(__name__)

_STATE_TO_FAILURE = {
    TokenState.CONSUMED: ConsumeStatus.ALREADY_USED,
    TokenState.EXPIRED: ConsumeStatus.EXPIRED,
}


def new_token_value() -> str:
    return f"{REGISTRATION_TOKEN_PREFIX}{uuid.uuid4()}"


class RegistrationService:
    """Issues, shows and consumes card registration tokens.

    Lifecycle: CREATED -> (ACCESSED)? -> CONSUMED | EXPIRED. At most one
    live token exists per card; consuming is exactly-once.
    """

    def __init__(
        self,
        tokens: RegistrationRepository,
        bindings: CardBindingRepository,
        *,
        ttl_minutes: int = REGISTRATION_TOKEN_TTL_MINUTES,
    ):
        ttl_minutes = int(ttl_minutes)
        if not 0 < ttl_minutes <= REGISTRATION_TOKEN_MAX_TTL_MINUTES:
            raise ValidationError(
                f"registration token TTL must be between 1 and {REGISTRATION_TOKEN_MAX_TTL_MINUTES} minutes"
            )
        self._tokens = tokens
        self._bindings = bindings
        self._ttl = timedelta(minutes=ttl_minutes)

    def issue(self, raw_card_id: str, *, now: datetime | None = None) -> IssueResult:
        now = as_utc(now) if now else now_utc()
        card_id = normalize_card_id(raw_card_id)
        if not card_id:
            return IssueResult(status=IssueStatus.INVALID_CARD, message=ISSUE_MESSAGES[IssueStatus.INVALID_CARD])

        try:
            if self._bindings.get_by_card(card_id) is not None:
                return IssueResult(
                    status=IssueStatus.ALREADY_REGISTERED,
                    message=ISSUE_MESSAGES[IssueStatus.ALREADY_REGISTERED],
                )
            token = self._tokens.replace_for_card(
                RegistrationToken(
                    token=new_token_value(),
                    card_id=card_id,
                    created_at=now,
                    expires_at=now + self._ttl,
                )
            )
        except StoreUnavailable:
            logger.exception("issuing registration token for card %s failed", card_id)
            return IssueResult(status=IssueStatus.FAILURE, message=ISSUE_MESSAGES[IssueStatus.FAILURE])

        logger.info("registration token issued for card %s (expires %s)", card_id, token.expires_at.isoformat())
        return IssueResult(status=IssueStatus.OK, message=ISSUE_MESSAGES[IssueStatus.OK], token=token)

    def peek(self, token: str, *, now: datetime | None = None) -> Optional[RegistrationToken]:
        """Read a token without consuming it; the first read stamps accessed_at."""
        now = as_utc(now) if now else now_utc()
        found = self._tokens.get(token)
        if found is None or found.accessed_at is not None:
            return found
        if self._tokens.mark_accessed(token, now=now):
            return replace(found, accessed_at=now)
        # Another reader stamped it first.
        return self._tokens.get(token)

    def consume(self, token: str, user_id: str, *, now: datetime | None = None) -> ConsumeResult:
        now = as_utc(now) if now else now_utc()
        try:
            found = self._tokens.get(token)
            if found is None:
                return self._result(ConsumeStatus.INVALID)
            state = found.state(now)
            if state in _STATE_TO_FAILURE:
                return self._result(_STATE_TO_FAILURE[state])

            binding = self._tokens.mark_used_and_bind(token, user_id=user_id, now=now)
            if binding is None:
                return self._classify_lost_race(token, now)
        except DuplicateCardBinding as exc:
            logger.info("token %s refused: card %s belongs to %s", token, exc.card_id, exc.owner_user_id)
            return self._result(ConsumeStatus.DUPLICATE_CARD)
        except StoreUnavailable:
            logger.exception("consuming registration token %s failed", token)
            return self._result(ConsumeStatus.FAILURE)

        logger.info("card %s bound to user %s", binding.card_id, user_id)
        return self._result(ConsumeStatus.OK, binding)

    def list_tokens(self, *, limit: int = DEFAULT_LOG_LIMIT) -> Sequence[RegistrationToken]:
        return self._tokens.list_recent(limit=limit)

    def delete_token(self, token: str) -> bool:
        return self._tokens.delete(token)

    def _classify_lost_race(self, token: str, now: datetime) -> ConsumeResult:
        current = self._tokens.get(token)
        if current is None:
            return self._result(ConsumeStatus.INVALID)
        return self._result(_STATE_TO_FAILURE.get(current.state(now), ConsumeStatus.FAILURE))

    @staticmethod
    def _result(status: ConsumeStatus, binding: Optional[CardBinding] = None) -> ConsumeResult:
        return ConsumeResult(status=status, message=CONSUME_MESSAGES[status], binding=binding)
