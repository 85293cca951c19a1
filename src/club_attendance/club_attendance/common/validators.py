from __future__ import annotations

import re

from ..core.exceptions import ValidationError

_CARD_SEPARATORS = re.compile(r"[\s:\-]")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def normalize_card_id(raw: str | None) -> str:
    """Card readers report ids like ``04:A3:1F:22``; the ledger stores ``04a31f22``."""
    return _CARD_SEPARATORS.sub("", raw or "").lower()
