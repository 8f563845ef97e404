"""Key material and identity handling for Threema Gateway."""

import binascii
from dataclasses import dataclass, field

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from .types import IDENTITY_SIZE, PRIVATE_KEY_SIZE, PUBLIC_KEY_SIZE, InvalidKeyLengthError


@dataclass(frozen=True)
class KeyPair:
    """
    Long-term Curve25519 key pair of a gateway identity.

    Only the public half is meant to leave the process. The private half is
    kept out of ``repr`` and is reachable through :meth:`export_private_key`
    alone.
    """

    public_key: bytes
    _private_key: bytes = field(repr=False)

    def export_private_key(self) -> bytes:
        """Return the raw 32-byte private key."""
        return self._private_key

    def export_private_key_hex(self) -> str:
        """Return the private key as lowercase hex, e.g. for a key file."""
        return self._private_key.hex()

    @property
    def public_key_hex(self) -> str:
        """The public key as lowercase hex."""
        return self.public_key.hex()


def _check_length(what: str, data: bytes, expected: int) -> bytes:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"{what} must be bytes, got {type(data).__name__}")
    if len(data) != expected:
        raise InvalidKeyLengthError(what, expected, len(data))
    return bytes(data)


def _decode_hex(what: str, value: str, expected: int) -> bytes:
    try:
        return binascii.unhexlify(value.strip())
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyLengthError(what, expected, message=f"{what} is not valid hex") from e


def _raw_private(private_key: X25519PrivateKey) -> bytes:
    return private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())


def _raw_public(private_key: X25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def generate_keypair() -> KeyPair:
    """
    Generate a new random Curve25519 key pair.

    Returns:
        KeyPair drawn from the operating system's CSPRNG
    """
    private_key = X25519PrivateKey.generate()
    return KeyPair(public_key=_raw_public(private_key), _private_key=_raw_private(private_key))


def keypair_from_bytes(private_key: bytes, public_key: bytes) -> KeyPair:
    """
    Build a key pair from raw key bytes.

    Args:
        private_key: 32-byte private key
        public_key: 32-byte public key

    Returns:
        KeyPair holding copies of both halves

    Raises:
        InvalidKeyLengthError: If either key is not 32 bytes
    """
    private_key = _check_length("Private key", private_key, PRIVATE_KEY_SIZE)
    public_key = _check_length("Public key", public_key, PUBLIC_KEY_SIZE)
    return KeyPair(public_key=public_key, _private_key=private_key)


def keypair_from_private_key(private_key: bytes) -> KeyPair:
    """Build a key pair from a raw private key, deriving the public half."""
    private_key = _check_length("Private key", private_key, PRIVATE_KEY_SIZE)
    x25519_key = X25519PrivateKey.from_private_bytes(private_key)
    return KeyPair(public_key=_raw_public(x25519_key), _private_key=private_key)


def keypair_from_hex(private_key_hex: str) -> KeyPair:
    """Build a key pair from a hex encoded private key (case-insensitive)."""
    return keypair_from_private_key(_decode_hex("Private key", private_key_hex, PRIVATE_KEY_SIZE))


def public_key_from_bytes(data: bytes) -> bytes:
    """Validate a raw peer public key."""
    return _check_length("Public key", data, PUBLIC_KEY_SIZE)


def public_key_from_hex(value: str) -> bytes:
    """Parse a hex encoded peer public key as returned by the directory."""
    return public_key_from_bytes(_decode_hex("Public key", value, PUBLIC_KEY_SIZE))


def validate_identity(identity: str) -> str:
    """
    Check that an identity is 8 printable ASCII characters.

    Gateway identities start with ``*``, regular ones are alphanumeric.

    Raises:
        ValueError: If the identity is malformed
    """
    if not isinstance(identity, str):
        raise ValueError(f"Identity must be a string, got {type(identity).__name__}")
    if len(identity) != IDENTITY_SIZE:
        raise ValueError(f"Identity must be {IDENTITY_SIZE} characters, got {len(identity)}")
    if not all(0x21 <= ord(c) <= 0x7E for c in identity):
        raise ValueError(f"Identity contains non-printable characters: {identity!r}")
    return identity
