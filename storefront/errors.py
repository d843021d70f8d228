"""Error taxonomy for the reconciliation subsystem.

None of these are fatal to the application: the engine catches them at
each suspension point and settles in the safest available state.
"""

from typing import Any


class StorefrontError(Exception):
    """Base error for gateway and storage failures."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        retryable: bool = False,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.raw_error = raw_error


class InvalidCredential(StorefrontError):
    """Stored credential is stale, expired or rejected (HTTP 401/403)."""

    def __init__(self, message: str = "Credential rejected", raw_error: Any = None) -> None:
        super().__init__(message, code="INVALID_CREDENTIAL", retryable=False, raw_error=raw_error)


class NetworkFailure(StorefrontError):
    """A gateway call did not complete (timeout, connection error, 5xx)."""

    def __init__(self, message: str = "Backend unreachable", raw_error: Any = None) -> None:
        super().__init__(message, code="NETWORK_FAILURE", retryable=True, raw_error=raw_error)


class MergeConflict(StorefrontError):
    """Backend refused to merge the guest cart into the account cart."""

    def __init__(self, message: str = "Cart merge rejected", raw_error: Any = None) -> None:
        super().__init__(message, code="MERGE_CONFLICT", retryable=False, raw_error=raw_error)


__all__ = [
    "StorefrontError",
    "InvalidCredential",
    "NetworkFailure",
    "MergeConflict",
]
