"""Transaction construction, signing, and verification.

Provides a fluent builder for transfer parameters, the canonical encodings
shared with the RAINSONET node, and a stateless validator for signed
transactions received from any source.

Canonical encodings (UTF-8, colon-delimited, fields in this exact order)::

    signing message  RELYO:transfer:{from}:{to}:{amount}:{fee}:{nonce}:{timestamp}
    transaction id   blake3("tx:{from}:{to}:{amount}:{fee}:{nonce}:{timestamp}")

The signing message layout is part of the wire contract with the node and
must not change on one side only. The transaction id covers the public
fields only, never the signature.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, NamedTuple, Self

from pydantic import ValidationError as PydanticValidationError

from relyo_sdk.codec import (
    bytes_to_hex,
    concat_and_hash,
    hex_to_bytes,
    is_valid_address,
    is_valid_amount,
    is_valid_hex,
    normalize_address,
)
from relyo_sdk.exceptions import (
    FormatError,
    IncompleteTransactionError,
    ValidationError,
)
from relyo_sdk.identity import (
    PUBLIC_KEY_LENGTH,
    address_from_public_key,
    derive_public_key,
    sign,
    verify,
)
from relyo_sdk.types import (
    Amount,
    AmountWei,
    SignedTransaction,
    TransactionData,
    TransactionParams,
)

logger = logging.getLogger(__name__)

SIGNING_DOMAIN = "RELYO:transfer"
TX_ID_DOMAIN = "tx"

_UINT64_MAX = 2**64 - 1


# ---------------------------------------------------------------------------
# Canonical encodings
# ---------------------------------------------------------------------------


def _fields(sender: str, to: str, amount: str, fee: str, nonce: int, timestamp: int) -> str:
    return f"{sender}:{to}:{amount}:{fee}:{nonce}:{timestamp}"


def signing_message(
    sender: str, to: str, amount: str, fee: str, nonce: int, timestamp: int
) -> bytes:
    """Return the exact bytes that are Ed25519-signed to authorise a transfer."""
    return f"{SIGNING_DOMAIN}:{_fields(sender, to, amount, fee, nonce, timestamp)}".encode("utf-8")


def transaction_hash(
    sender: str, to: str, amount: str, fee: str, nonce: int, timestamp: int
) -> str:
    """Return the hex transaction id for the given public fields."""
    data = f"{TX_ID_DOMAIN}:{_fields(sender, to, amount, fee, nonce, timestamp)}".encode("utf-8")
    return bytes_to_hex(concat_and_hash(data))


def signable_bytes(tx: TransactionData) -> bytes:
    """Return the signing message for *tx*."""
    return signing_message(tx.sender, tx.to, tx.amount, tx.fee, tx.nonce, tx.timestamp)


def compute_transaction_id(tx: TransactionData) -> str:
    """Compute the transaction id of *tx* (64 hex characters)."""
    return transaction_hash(tx.sender, tx.to, tx.amount, tx.fee, tx.nonce, tx.timestamp)


def compute_total_cost(tx: TransactionData) -> int:
    """Return ``amount + fee`` in wei.

    Raises:
        FormatError: If either amount is not a non-negative integer string.
    """
    if not is_valid_amount(tx.amount) or not is_valid_amount(tx.fee):
        raise FormatError("amount and fee must be non-negative integers")
    return int(tx.amount) + int(tx.fee)


# ---------------------------------------------------------------------------
# Signing and verification
# ---------------------------------------------------------------------------


def sign_transaction(tx: TransactionData, secret_key: bytes) -> SignedTransaction:
    """Sign *tx* and return the :class:`SignedTransaction`.

    The ``sender`` field is taken from *tx* as-is; binding it to the signing
    key is the caller's job (:class:`relyo_sdk.wallet.Wallet` does this).
    """
    public_key = derive_public_key(secret_key)
    signature = sign(signable_bytes(tx), secret_key)
    return SignedTransaction(
        sender=tx.sender,
        to=tx.to,
        amount=tx.amount,
        fee=tx.fee,
        nonce=tx.nonce,
        timestamp=tx.timestamp,
        public_key=bytes_to_hex(public_key),
        signature=bytes_to_hex(signature),
    )


def verify_transaction_signature(tx: SignedTransaction) -> bool:
    """Check the signature of *tx* against its own public key.

    The signing message is recomputed from the transaction's fields. This
    does not check that the public key belongs to the sender address; see
    :class:`TransactionValidator` for the full check.
    """
    if not is_valid_hex(tx.signature) or not is_valid_hex(tx.public_key):
        return False
    return verify(hex_to_bytes(tx.signature), signable_bytes(tx), hex_to_bytes(tx.public_key))


class ValidationResult(NamedTuple):
    """Outcome of :func:`validate_transaction`."""

    valid: bool
    error: str | None = None


class TransactionValidator:
    """Stateless acceptance check for signed transactions.

    Checks run in order and stop at the first failure:

    1. sender is a valid address
    2. recipient is a valid address
    3. amount is a non-negative integer
    4. fee is a non-negative integer
    5. sender and recipient differ
    6. the public key hashes to the sender address
    7. the signature verifies over the recomputed signing message

    Args:
        require_sender_binding: Run check 6. Disabling it reproduces the
            behaviour of earlier SDKs, where a valid signature from any key
            was accepted for any sender.
    """

    def __init__(self, *, require_sender_binding: bool = True) -> None:
        self.require_sender_binding = require_sender_binding

    def validate(self, tx: SignedTransaction | Mapping[str, Any]) -> ValidationResult:
        """Validate *tx*. Never raises for malformed input."""
        if not isinstance(tx, SignedTransaction):
            try:
                tx = SignedTransaction.model_validate(tx)
            except PydanticValidationError as exc:
                return self._reject(f"Malformed transaction: {exc.error_count()} invalid field(s)")

        if not is_valid_address(tx.sender):
            return self._reject("Invalid sender address")
        if not is_valid_address(tx.to):
            return self._reject("Invalid recipient address")
        if not is_valid_amount(tx.amount):
            return self._reject("Invalid amount")
        if not is_valid_amount(tx.fee):
            return self._reject("Invalid fee")
        if normalize_address(tx.sender) == normalize_address(tx.to):
            return self._reject("Cannot send to self")

        if self.require_sender_binding:
            if not is_valid_hex(tx.public_key) or len(hex_to_bytes(tx.public_key)) != PUBLIC_KEY_LENGTH:
                return self._reject("Invalid public key")
            signer = address_from_public_key(hex_to_bytes(tx.public_key))
            if signer != normalize_address(tx.sender):
                return self._reject("Public key does not match sender address")

        if not verify_transaction_signature(tx):
            return self._reject("Invalid signature")

        return ValidationResult(True)

    @staticmethod
    def _reject(reason: str) -> ValidationResult:
        logger.debug("transaction rejected: %s", reason)
        return ValidationResult(False, reason)


_default_validator = TransactionValidator()


def validate_transaction(tx: SignedTransaction | Mapping[str, Any]) -> ValidationResult:
    """Validate *tx* with the default (sender-binding) rules."""
    return _default_validator.validate(tx)


# ---------------------------------------------------------------------------
# Amount normalisation
# ---------------------------------------------------------------------------


def to_wei_amount(value: AmountWei | int | float | Decimal, name: str = "amount") -> AmountWei:
    """Normalise *value* to a wei decimal string.

    ``float`` and ``Decimal`` are display units (RELYO) and are converted;
    ``int`` and ``str`` are taken to be wei already.

    Raises:
        FormatError: If the value is negative or not an integer amount.
    """
    if isinstance(value, (float, Decimal)):
        return Amount.to_wei(value)
    return _parse_wei(value, name)


def _parse_wei(value: AmountWei | int, name: str) -> AmountWei:
    if not is_valid_amount(value):
        raise FormatError(f"invalid {name}: {value!r}")
    return str(int(value))


def check_uint64(value: int, name: str) -> int:
    """Return *value* if it is an int in [0, 2**64), else raise :class:`ValidationError`."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _UINT64_MAX:
        raise ValidationError(f"{name} must be an integer in [0, 2^64), got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class TransactionBuilder:
    """Fluent builder for :class:`TransactionParams`.

    Every setter validates its input immediately and returns the builder.
    The builder never signs and never touches the network; pass the result
    to :meth:`relyo_sdk.wallet.Wallet.create_transaction_from_params`.

    Example::

        params = (
            TransactionBuilder()
            .set_recipient("bb" * 32)
            .set_amount(1.5)
            .set_fee(0.001)
            .set_nonce(7)
            .build()
        )
    """

    def __init__(self) -> None:
        self._to: str | None = None
        self._amount: AmountWei | None = None
        self._fee: AmountWei | None = None
        self._nonce: int | None = None
        self._timestamp: int | None = None

    def set_recipient(self, to: str) -> Self:
        """Set the recipient address.

        Raises:
            ValidationError: If *to* is not a valid address.
        """
        if not is_valid_address(to):
            raise ValidationError("Invalid recipient address")
        self._to = normalize_address(to)
        return self

    def set_amount(self, relyo: float | int | str | Decimal) -> Self:
        """Set the amount in RELYO."""
        self._amount = Amount.to_wei(relyo)
        return self

    def set_amount_wei(self, wei: AmountWei | int) -> Self:
        """Set the amount in wei."""
        self._amount = _parse_wei(wei, "amount")
        return self

    def set_fee(self, relyo: float | int | str | Decimal) -> Self:
        """Set the fee in RELYO."""
        self._fee = Amount.to_wei(relyo)
        return self

    def set_fee_wei(self, wei: AmountWei | int) -> Self:
        """Set the fee in wei."""
        self._fee = _parse_wei(wei, "fee")
        return self

    def set_nonce(self, nonce: int) -> Self:
        self._nonce = check_uint64(nonce, "nonce")
        return self

    def set_timestamp(self, timestamp: int) -> Self:
        """Set an explicit timestamp in milliseconds (defaults to signing time)."""
        self._timestamp = check_uint64(timestamp, "timestamp")
        return self

    def build(self) -> TransactionParams:
        """Return the accumulated parameters.

        Raises:
            IncompleteTransactionError: If recipient, amount, fee, or nonce
                was never set. ``field`` names the first missing one.
        """
        if self._to is None:
            raise IncompleteTransactionError("recipient")
        if self._amount is None:
            raise IncompleteTransactionError("amount")
        if self._fee is None:
            raise IncompleteTransactionError("fee")
        if self._nonce is None:
            raise IncompleteTransactionError("nonce")

        return TransactionParams(
            to=self._to,
            amount=self._amount,
            fee=self._fee,
            nonce=self._nonce,
            timestamp=self._timestamp,
        )
