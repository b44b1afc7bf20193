"""Core types for the RELYO SDK.

All public-facing data structures are defined here as Pydantic v2 models.
Wire format follows the RAINSONET node API: amounts are unsigned integers in
wei, carried as decimal strings because they exceed 64 bits; keys,
signatures, addresses, and hashes are lowercase hex.

Two families of models live here:

* SDK models (``SignedTransaction``, ``NodeStatus``, ``Account`` ...) with
  Python field names.
* Wire models (``*Wire``) mirroring the exact JSON shape of each node
  endpoint. They are strict: a missing or mistyped field is a decode error.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, ClassVar, Generic, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    field_validator,
)

from relyo_sdk.codec import format_amount, is_valid_address, is_valid_amount
from relyo_sdk.exceptions import FormatError

T = TypeVar("T")

Address = str
Hash = str
AmountWei = str

Uint64 = Annotated[int, Field(ge=0, lt=2**64)]


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


class Amount:
    """Conversions between display units (RELYO) and wei."""

    DECIMALS: ClassVar[int] = 18
    ONE_RELYO: ClassVar[int] = 10**18

    @classmethod
    def to_wei(cls, relyo: float | int | str | Decimal) -> AmountWei:
        """Convert a display amount to a wei decimal string.

        The conversion is ``round(relyo * 10**18)``, done in decimal
        arithmetic so that ``0.1`` maps to exactly ``10**17`` wei.

        Raises:
            FormatError: If *relyo* is not a finite, non-negative number.
        """
        try:
            value = Decimal(str(relyo)) if not isinstance(relyo, Decimal) else relyo
        except InvalidOperation as exc:
            raise FormatError(f"invalid amount: {relyo!r}") from exc
        if not value.is_finite() or value < 0:
            raise FormatError(f"invalid amount: {relyo!r}")
        wei = (value * cls.ONE_RELYO).to_integral_value(rounding=ROUND_HALF_EVEN)
        return str(int(wei))

    @classmethod
    def from_wei(cls, wei: AmountWei | int) -> Decimal:
        """Convert wei to an exact display amount."""
        if not is_valid_amount(wei):
            raise FormatError(f"invalid amount: {wei!r}")
        return Decimal(int(wei)) / cls.ONE_RELYO

    @classmethod
    def format(cls, wei: AmountWei | int, decimals: int = 4) -> str:
        """Format wei as a RELYO string with *decimals* fraction digits."""
        return format_amount(wei, cls.DECIMALS, decimals)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TransactionStatus(str, Enum):
    """Node-reported lifecycle status of a transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def is_final(self) -> bool:
        return self in (TransactionStatus.CONFIRMED, TransactionStatus.FAILED)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TransactionData(BaseModel):
    """The six public fields of a transfer.

    ``sender`` is serialised as ``from``. Addresses and amounts are kept as
    plain strings so that a malformed transaction can still be represented
    and reported by the validator.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sender: Address = Field(alias="from")
    to: Address
    amount: AmountWei
    fee: AmountWei
    nonce: Uint64
    timestamp: Uint64

    @field_validator("amount", "fee", mode="before")
    @classmethod
    def _int_to_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class SignedTransaction(TransactionData):
    """A transfer with the signer's public key and Ed25519 signature (hex)."""

    public_key: str = Field(validation_alias=AliasChoices("public_key", "publicKey"))
    signature: str

    def to_wire(self) -> dict[str, Any]:
        """Return the ``POST /transaction`` request body."""
        return {
            "from": self.sender,
            "to": self.to,
            "amount": self.amount,
            "fee": self.fee,
            "nonce": self.nonce,
            "public_key": self.public_key,
            "signature": self.signature,
        }


class TransactionParams(BaseModel):
    """Unsigned transfer parameters produced by the transaction builder."""

    model_config = ConfigDict(frozen=True)

    to: Address
    amount: AmountWei
    fee: AmountWei
    nonce: Uint64
    timestamp: Uint64 | None = None


class TransactionResponse(BaseModel):
    """Submission or lookup result for a transaction."""

    model_config = ConfigDict(frozen=True)

    tx_id: Hash
    status: TransactionStatus


# ---------------------------------------------------------------------------
# Node / account state
# ---------------------------------------------------------------------------


class NodeStatus(BaseModel):
    """Snapshot of a node's identity, state, and mempool."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    state_version: int
    state_root: Hash
    peer_count: int
    is_validator: bool
    mempool_size: int


class Account(BaseModel):
    """Balance (wei) and nonce of one address."""

    model_config = ConfigDict(frozen=True)

    address: Address
    balance: AmountWei
    nonce: int


class BalanceInfo(BaseModel):
    """Balance of one address, in wei and formatted RELYO."""

    model_config = ConfigDict(frozen=True)

    address: Address
    balance: AmountWei
    balance_relyo: str


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class _Wire(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")


class _AddressBalanceWire(_Wire):
    address: StrictStr
    balance: StrictStr

    @field_validator("address")
    @classmethod
    def _valid_address(cls, v: str) -> str:
        if not is_valid_address(v):
            raise ValueError("not a 32-byte hex address")
        return v

    @field_validator("balance")
    @classmethod
    def _valid_balance(cls, v: str) -> str:
        if not is_valid_amount(v):
            raise ValueError("not a non-negative integer string")
        return v


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every node response: ``{success, data?, error?}``."""

    success: StrictBool
    data: T | None = None
    error: str | None = None


class StatusWire(_Wire):
    node_id: StrictStr
    state_version: StrictInt
    state_root: StrictStr
    peer_count: StrictInt
    is_validator: StrictBool
    mempool_size: StrictInt

    def to_model(self) -> NodeStatus:
        return NodeStatus(**self.model_dump())


class AccountWire(_AddressBalanceWire):
    nonce: Annotated[StrictInt, Field(ge=0)]

    def to_model(self) -> Account:
        return Account(address=self.address, balance=self.balance, nonce=self.nonce)


class BalanceWire(_AddressBalanceWire):
    balance_relyo: StrictStr

    def to_model(self) -> BalanceInfo:
        return BalanceInfo(
            address=self.address,
            balance=self.balance,
            balance_relyo=self.balance_relyo,
        )


class TransactionWire(_Wire):
    tx_id: StrictStr
    status: StrictStr

    @field_validator("status")
    @classmethod
    def _known_status(cls, v: str) -> str:
        TransactionStatus(v)
        return v

    def to_model(self) -> TransactionResponse:
        return TransactionResponse(tx_id=self.tx_id, status=TransactionStatus(self.status))


# ---------------------------------------------------------------------------
# Network configuration
# ---------------------------------------------------------------------------


class NetworkConfig(BaseModel):
    """A named RAINSONET network and its default node URL."""

    model_config = ConfigDict(frozen=True)

    chain_id: Annotated[int, Field(ge=0)]
    chain_name: str
    node_url: str


class Networks:
    """Predefined networks."""

    MAINNET: ClassVar[NetworkConfig] = NetworkConfig(
        chain_id=1,
        chain_name="RAINSONET Mainnet",
        node_url="https://mainnet.rainsonet.io",
    )
    TESTNET: ClassVar[NetworkConfig] = NetworkConfig(
        chain_id=2,
        chain_name="RAINSONET Testnet",
        node_url="https://testnet.rainsonet.io",
    )
    DEVNET: ClassVar[NetworkConfig] = NetworkConfig(
        chain_id=3,
        chain_name="RAINSONET Devnet",
        node_url="http://127.0.0.1:8080",
    )

    @classmethod
    def by_name(cls, name: str) -> NetworkConfig:
        """Look up a preset by name (``mainnet``, ``testnet``, ``devnet``)."""
        network = getattr(cls, name.upper(), None)
        if not isinstance(network, NetworkConfig):
            raise ValueError(f"unknown network: {name!r}")
        return network
