"""Input errors raised by the reconciliation core."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for caller mistakes detected by the core."""


class UnsupportedCategoryError(ReconciliationError):
    def __init__(self, category: object) -> None:
        super().__init__(f"Unsupported catalog category: {category!r}")
        self.category = category


class MalformedBatchError(ReconciliationError):
    """Raised before any record is processed when the batch itself is invalid."""


class InvalidChangeIdError(ReconciliationError):
    def __init__(self, token: str, reason: str) -> None:
        super().__init__(f"Invalid change id {token!r}: {reason}")
        self.token = token


class InvalidPostalCodeError(ReconciliationError):
    def __init__(self, postal_code: str) -> None:
        super().__init__(f"Invalid postal code: {postal_code!r}")
        self.postal_code = postal_code


class AreaNotFoundError(ReconciliationError):
    def __init__(self, postal_code: str) -> None:
        super().__init__(f"No administrative area found for postal code {postal_code!r}")
        self.postal_code = postal_code


class InvalidStatusTransitionError(ReconciliationError):
    pass


class ExternalLookupError(RuntimeError):
    """Raised by lookup adapters for transient or malformed external responses."""


class PersistenceError(RuntimeError):
    """Raised by repositories when the store rejects a read or write."""
