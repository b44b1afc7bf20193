"""RELYO Python SDK.

Provides everything needed to transfer RELYO on a RAINSONET network from
Python: key management, deterministic wallet derivation, transaction
building, signing and validation, and an async client for the node HTTP API.

Quick start::

    from relyo_sdk import RelyoClient, Wallet

    wallet = Wallet.create()
    print(wallet.address)

    async with RelyoClient.devnet() as client:
        result = await client.send(wallet, to="bb" * 32, amount=1.5)
        final = await client.wait_for_transaction(result.tx_id)
"""

from relyo_sdk.client import ClientConfig, RelyoClient, create_client
from relyo_sdk.codec import (
    bytes_to_hex,
    concat_and_hash,
    format_amount,
    from_base64,
    hash_blake3,
    hash_sha256,
    hex_to_bytes,
    is_valid_address,
    is_valid_amount,
    is_valid_hex,
    normalize_address,
    to_base64,
    truncate_address,
)
from relyo_sdk.exceptions import (
    FormatError,
    IncompleteTransactionError,
    InvalidKeyError,
    NetworkError,
    RelyoError,
    RelyoTimeoutError,
    SeedLengthError,
    ValidationError,
)
from relyo_sdk.identity import (
    KeyPair,
    address_from_public_key,
    derive_address,
    derive_public_key,
    generate_keypair,
    sign,
    verify,
)
from relyo_sdk.transaction import (
    SIGNING_DOMAIN,
    TransactionBuilder,
    TransactionValidator,
    ValidationResult,
    compute_total_cost,
    compute_transaction_id,
    sign_transaction,
    signing_message,
    validate_transaction,
    verify_transaction_signature,
)
from relyo_sdk.types import (
    Account,
    Amount,
    BalanceInfo,
    NetworkConfig,
    Networks,
    NodeStatus,
    SignedTransaction,
    TransactionData,
    TransactionParams,
    TransactionResponse,
    TransactionStatus,
)
from relyo_sdk.wallet import HDWallet, Wallet

__all__ = [
    # Client
    "ClientConfig",
    "RelyoClient",
    "create_client",
    # Codec
    "bytes_to_hex",
    "concat_and_hash",
    "format_amount",
    "from_base64",
    "hash_blake3",
    "hash_sha256",
    "hex_to_bytes",
    "is_valid_address",
    "is_valid_amount",
    "is_valid_hex",
    "normalize_address",
    "to_base64",
    "truncate_address",
    # Errors
    "FormatError",
    "IncompleteTransactionError",
    "InvalidKeyError",
    "NetworkError",
    "RelyoError",
    "RelyoTimeoutError",
    "SeedLengthError",
    "ValidationError",
    # Key material
    "KeyPair",
    "address_from_public_key",
    "derive_address",
    "derive_public_key",
    "generate_keypair",
    "sign",
    "verify",
    # Transaction
    "SIGNING_DOMAIN",
    "TransactionBuilder",
    "TransactionValidator",
    "ValidationResult",
    "compute_total_cost",
    "compute_transaction_id",
    "sign_transaction",
    "signing_message",
    "validate_transaction",
    "verify_transaction_signature",
    # Types
    "Account",
    "Amount",
    "BalanceInfo",
    "NetworkConfig",
    "Networks",
    "NodeStatus",
    "SignedTransaction",
    "TransactionData",
    "TransactionParams",
    "TransactionResponse",
    "TransactionStatus",
    # Wallet
    "HDWallet",
    "Wallet",
]

__version__ = "0.1.0"
