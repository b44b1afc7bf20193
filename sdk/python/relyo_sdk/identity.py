"""RELYO key material: keypair generation, address derivation, signing.

All signature operations use Ed25519 via PyNaCl (libsodium binding).
An address is the 32-byte BLAKE3 digest of the Ed25519 public key, shown
as 64 lowercase hex characters.
"""

from __future__ import annotations

from typing import NamedTuple

from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey

from relyo_sdk.codec import bytes_to_hex, hash_blake3
from relyo_sdk.exceptions import InvalidKeyError

SECRET_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


class KeyPair(NamedTuple):
    """An Ed25519 keypair; ``secret_key`` is the 32-byte seed."""

    secret_key: bytes
    public_key: bytes


def _signing_key(secret_key: bytes) -> SigningKey:
    if len(secret_key) != SECRET_KEY_LENGTH:
        raise InvalidKeyError(
            f"secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret_key)}"
        )
    return SigningKey(bytes(secret_key))


def generate_keypair() -> KeyPair:
    """Generate a random Ed25519 keypair from the OS CSPRNG."""
    sk = SigningKey.generate()
    return KeyPair(bytes(sk), bytes(sk.verify_key))


def derive_public_key(secret_key: bytes) -> bytes:
    """Derive the 32-byte Ed25519 public key for *secret_key*.

    Raises:
        InvalidKeyError: If *secret_key* is not 32 bytes.
    """
    return bytes(_signing_key(secret_key).verify_key)


def derive_address(public_key: bytes) -> bytes:
    """Return the 32-byte address (BLAKE3 digest) of *public_key*."""
    return hash_blake3(public_key)


def address_from_public_key(public_key: bytes) -> str:
    """Return the hex address for *public_key*."""
    return bytes_to_hex(derive_address(public_key))


def sign(message: bytes, secret_key: bytes) -> bytes:
    """Sign *message* with an Ed25519 secret key.

    Ed25519 is deterministic: the same key and message always give the same
    64-byte signature.
    """
    return _signing_key(secret_key).sign(message).signature


def verify(signature: bytes, message: bytes, public_key: bytes) -> bool:
    """Verify an Ed25519 signature.

    Never raises: malformed keys, signatures of the wrong length, or
    non-bytes input all yield ``False``.
    """
    try:
        if len(public_key) != PUBLIC_KEY_LENGTH or len(signature) != SIGNATURE_LENGTH:
            return False
        VerifyKey(bytes(public_key)).verify(bytes(message), bytes(signature))
        return True
    except (BadSignatureError, CryptoError, TypeError, ValueError):
        return False
