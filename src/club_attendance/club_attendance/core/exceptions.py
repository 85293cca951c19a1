class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class StoreUnavailable(DomainError):
    """Transient failure of the backing store. Callers may retry."""


class DuplicateCardBinding(DomainError):
    """Raised when a card is already bound to a different user."""

    def __init__(self, card_id: str, owner_user_id: str | None = None):
        super().__init__(f"card {card_id} is already bound")
        self.card_id = card_id
        self.owner_user_id = owner_user_id


class ConcurrentAppendError(DomainError):
    """Raised when a conditional append lost against a concurrent writer."""

    def __init__(self, user_id: str):
        super().__init__(f"last event of user {user_id} changed concurrently")
        self.user_id = user_id


class PartialBatchFailure(DomainError):
    """Raised when a bulk write was aborted. Nothing from the batch was applied."""
