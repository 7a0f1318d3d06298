"""Error taxonomy of the trainer."""


class LingoDeckError(Exception):
    """Base class for all trainer errors."""


class StorageFailure(LingoDeckError):
    """A document could not be written to the key-value store."""


class StorageQuotaExceeded(StorageFailure):
    """A write would exceed the store's quota."""


class LoadFailure(LingoDeckError):
    """An external vocabulary catalog could not be fetched or parsed."""


class ValidationFailure(LingoDeckError):
    """An uploaded or imported document is malformed."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NoCardsAvailable(LingoDeckError):
    """The scheduler found nothing to study right now."""


class SessionStateError(LingoDeckError):
    """An action does not fit the current state of a study session."""
