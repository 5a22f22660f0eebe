"""
Exceptions raised by the markstore engine.

Every failure the engine surfaces is a StoreError, so callers can tell the
four kinds apart without inspecting driver exceptions:

    ValidationError     a required field is missing; nothing was written
    ConflictError       a unique constraint (url, tag name, username) was hit
    NotFoundError       the requested record does not exist
    TransactionFailure  the storage layer failed; the transaction was rolled back
"""


class StoreError(Exception):
    """Base class for all markstore errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    """Raised when input is rejected before any write happens."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class ConflictError(StoreError):
    """Raised when a write violates a uniqueness constraint."""


class NotFoundError(StoreError):
    """Raised when a requested bookmark or account does not exist."""

    def __init__(self, kind: str, key) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class TransactionFailure(StoreError):
    """
    Raised when the storage layer fails.

    The enclosing transaction has been rolled back, so the operation can be
    retried as a whole.
    """


class ProvisionError(TransactionFailure):
    """Raised when the schema cannot be created at startup."""


class NestedTransactionError(StoreError):
    """
    Raised when atomic() is entered while a transaction is already open.

    A usage error rather than a storage failure: retrying cannot succeed.
    """

    def __init__(self) -> None:
        super().__init__(
            "A transaction is already open on this thread; "
            "pass its session through instead of opening another"
        )
