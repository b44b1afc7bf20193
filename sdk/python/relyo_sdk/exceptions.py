"""Exception hierarchy for the RELYO SDK.

Every error raised by the SDK derives from :class:`RelyoError`. Local,
recoverable outcomes such as a failed signature check are reported as
values instead (see :func:`relyo_sdk.identity.verify` and
:func:`relyo_sdk.transaction.validate_transaction`).
"""

from __future__ import annotations


class RelyoError(Exception):
    """Base class for all RELYO SDK errors."""


class FormatError(RelyoError, ValueError):
    """Raised for malformed hex, address, amount, or wire payload data."""


class ValidationError(RelyoError, ValueError):
    """Raised when a transaction field is structurally invalid."""


class IncompleteTransactionError(RelyoError):
    """Raised by the transaction builder when a required field is missing."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field} not set")


class InvalidKeyError(RelyoError, ValueError):
    """Raised when key material has the wrong encoding or length."""


class SeedLengthError(InvalidKeyError):
    """Raised when an HD wallet seed is shorter than 32 bytes."""


class NetworkError(RelyoError):
    """Raised when the node cannot be reached or answers with an error.

    Covers transport failures, non-2xx responses, and ``success: false``
    envelopes.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        attempts: int = 1,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.attempts = attempts
        super().__init__(message)


class RelyoTimeoutError(RelyoError, TimeoutError):
    """Raised when a request or a confirmation wait exceeds its deadline."""

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        self.message = message
        self.attempts = attempts
        super().__init__(message)
