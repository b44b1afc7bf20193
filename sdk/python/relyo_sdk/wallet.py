"""High-level wallet abstraction for RELYO.

:class:`Wallet` bundles a single Ed25519 keypair, its address, and
transaction signing behind one interface. :class:`HDWallet` derives any
number of wallets deterministically from one seed so that only the seed
needs to be stored.
"""

from __future__ import annotations

import json
import struct
import time
from decimal import Decimal

from relyo_sdk.codec import (
    bytes_to_hex,
    concat_and_hash,
    hex_to_bytes,
    is_valid_address,
    normalize_address,
)
from relyo_sdk.exceptions import FormatError, InvalidKeyError, SeedLengthError, ValidationError
from relyo_sdk.identity import (
    address_from_public_key,
    derive_public_key,
    generate_keypair,
    sign,
)
from relyo_sdk.transaction import check_uint64, sign_transaction, to_wei_amount
from relyo_sdk.types import (
    Address,
    AmountWei,
    SignedTransaction,
    TransactionData,
    TransactionParams,
)

MIN_SEED_LENGTH = 32


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Wallet:
    """In-memory RELYO wallet holding a single Ed25519 keypair.

    Wallets are created via :meth:`create`, :meth:`from_secret_key` or
    :meth:`from_json`. The secret key is held in memory and only leaves the
    object through :meth:`export_secret_key` and :meth:`to_json`; callers
    must manage persistence and encryption.
    """

    __slots__ = ("_secret_key", "_public_key", "_address")

    def __init__(self, secret_key: bytes) -> None:
        public_key = derive_public_key(secret_key)
        self._secret_key = bytes(secret_key)
        self._public_key = bytes_to_hex(public_key)
        self._address = address_from_public_key(public_key)

    def __repr__(self) -> str:
        return f"Wallet(address={self._address!r})"

    # ----- constructors ----------------------------------------------------

    @classmethod
    def create(cls) -> "Wallet":
        """Generate a new wallet with a random keypair."""
        return cls(generate_keypair().secret_key)

    @classmethod
    def from_secret_key(cls, secret_key_hex: str) -> "Wallet":
        """Import a wallet from a hex-encoded 32-byte secret key.

        Raises:
            InvalidKeyError: If the hex is malformed or not 32 bytes.
        """
        try:
            secret_key = hex_to_bytes(secret_key_hex)
        except FormatError as exc:
            raise InvalidKeyError(f"Invalid secret key: {exc}") from exc
        return cls(secret_key)

    @classmethod
    def from_json(cls, data: str) -> "Wallet":
        """Import a wallet exported with :meth:`to_json`.

        Raises:
            InvalidKeyError: If the JSON is malformed or lacks ``secretKey``.
        """
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise InvalidKeyError(f"Invalid wallet JSON: {exc.msg}") from exc
        if not isinstance(payload, dict) or not payload.get("secretKey"):
            raise InvalidKeyError("Invalid wallet JSON: missing secretKey")
        return cls.from_secret_key(payload["secretKey"])

    # ----- properties ------------------------------------------------------

    @property
    def address(self) -> Address:
        """The hex address (BLAKE3 of the public key)."""
        return self._address

    @property
    def public_key(self) -> str:
        """The hex Ed25519 public key."""
        return self._public_key

    # ----- export ----------------------------------------------------------

    def export_secret_key(self) -> str:
        """Return the secret key as hex. Keep it secure."""
        return bytes_to_hex(self._secret_key)

    def to_json(self) -> str:
        """Serialise the wallet, secret key included."""
        return json.dumps(
            {
                "address": self.address,
                "publicKey": self.public_key,
                "secretKey": self.export_secret_key(),
            }
        )

    # ----- signing ---------------------------------------------------------

    def sign_bytes(self, data: bytes) -> bytes:
        """Sign arbitrary bytes, returning the 64-byte signature."""
        return sign(data, self._secret_key)

    def sign_message(self, message: str) -> str:
        """Sign a UTF-8 string, returning the hex signature."""
        return bytes_to_hex(self.sign_bytes(message.encode("utf-8")))

    def create_transaction(
        self,
        to: Address,
        amount: AmountWei | int | float | Decimal,
        fee: AmountWei | int | float | Decimal,
        nonce: int,
        timestamp: int | None = None,
    ) -> SignedTransaction:
        """Build and sign a transfer from this wallet.

        Args:
            to: Recipient address.
            amount: Wei when ``str`` or ``int`` (``1`` is one wei); RELYO
                display units when ``float`` or ``Decimal``. Note that
                :meth:`RelyoClient.send` treats every type as RELYO.
            fee: Same conventions as *amount*.
            nonce: Sender nonce; fetch it from the node first.
            timestamp: Milliseconds since the epoch. Defaults to now.

        Raises:
            ValidationError: If *to* is not a valid address.
            FormatError: If an amount is negative or not an integer wei value.
        """
        if not is_valid_address(to):
            raise ValidationError("Invalid recipient address")

        data = TransactionData(
            sender=self._address,
            to=normalize_address(to),
            amount=to_wei_amount(amount, "amount"),
            fee=to_wei_amount(fee, "fee"),
            nonce=check_uint64(nonce, "nonce"),
            timestamp=_now_ms() if timestamp is None else check_uint64(timestamp, "timestamp"),
        )
        return sign_transaction(data, self._secret_key)

    def create_transaction_from_params(self, params: TransactionParams) -> SignedTransaction:
        """Sign parameters produced by :class:`~relyo_sdk.transaction.TransactionBuilder`."""
        return self.create_transaction(
            to=params.to,
            amount=params.amount,
            fee=params.fee,
            nonce=params.nonce,
            timestamp=params.timestamp,
        )


class HDWallet:
    """Deterministic derivation of many wallets from one seed.

    The child secret key at ``index`` is ``blake3(seed || be32(index))``.
    This is a simplified scheme and is not compatible with BIP-32.
    """

    __slots__ = ("_seed",)

    def __init__(self, seed: bytes) -> None:
        if len(seed) < MIN_SEED_LENGTH:
            raise SeedLengthError(f"Seed must be at least {MIN_SEED_LENGTH} bytes")
        self._seed = bytes(seed)

    def __repr__(self) -> str:
        return "HDWallet(<seed hidden>)"

    @classmethod
    def from_seed(cls, seed: bytes) -> "HDWallet":
        return cls(seed)

    @classmethod
    def from_hex(cls, seed_hex: str) -> "HDWallet":
        """Create from a hex-encoded seed."""
        return cls(hex_to_bytes(seed_hex))

    def derive_wallet(self, index: int) -> Wallet:
        """Derive the wallet at *index* (``0 <= index < 2**32``)."""
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < 2**32:
            raise ValidationError(f"index must be a uint32, got {index!r}")
        child_key = concat_and_hash(self._seed, struct.pack(">I", index))
        return Wallet(child_key)

    def derive_wallets(self, count: int, start_index: int = 0) -> list[Wallet]:
        """Derive *count* consecutive wallets starting at *start_index*."""
        return [self.derive_wallet(start_index + i) for i in range(count)]
