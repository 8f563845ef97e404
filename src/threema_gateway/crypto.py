"""
Authenticated encryption primitives for Threema Gateway messages.

Public-key encryption uses NaCl ``crypto_box`` (Curve25519, XSalsa20,
Poly1305); symmetric encryption uses ``crypto_secretbox`` (XSalsa20,
Poly1305). Every ciphertext is exactly ``TAG_SIZE`` bytes longer than its
plaintext and carries no nonce; nonces travel separately.
"""

from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey
from nacl.secret import SecretBox

from .types import (
    NONCE_SIZE,
    PRIVATE_KEY_SIZE,
    PUBLIC_KEY_SIZE,
    SYMMETRIC_KEY_SIZE,
    TAG_SIZE,
    DecryptionFailedError,
    InvalidKeyLengthError,
    WeakPublicKeyError,
)


def _check_key(what: str, key: bytes, expected: int) -> None:
    if len(key) != expected:
        raise InvalidKeyLengthError(what, expected, len(key))


def _check_nonce(nonce: bytes) -> None:
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")


def _box(my_private: bytes, their_public: bytes) -> Box:
    _check_key("Private key", my_private, PRIVATE_KEY_SIZE)
    _check_key("Public key", their_public, PUBLIC_KEY_SIZE)
    try:
        return Box(PrivateKey(bytes(my_private)), PublicKey(bytes(their_public)))
    except CryptoError:
        # libsodium refuses low-order points during key agreement
        raise WeakPublicKeyError() from None


def _secret_box(key: bytes) -> SecretBox:
    _check_key("Symmetric key", key, SYMMETRIC_KEY_SIZE)
    return SecretBox(bytes(key))


def seal(plaintext: bytes, nonce: bytes, my_private: bytes, their_public: bytes) -> bytes:
    """
    Encrypt and authenticate ``plaintext`` from us to a peer.

    The result depends only on the inputs. Callers must pass a nonce that
    has never been used with this key pair before.

    Args:
        plaintext: Bytes to encrypt
        nonce: 24-byte nonce
        my_private: Our 32-byte private key
        their_public: The recipient's 32-byte public key

    Returns:
        Ciphertext (plaintext length + 16 bytes)

    Raises:
        InvalidKeyLengthError: If a key has the wrong length
        WeakPublicKeyError: If the recipient key is a low-order point
        ValueError: If the nonce has the wrong length
    """
    _check_nonce(nonce)
    box = _box(my_private, their_public)
    return box.encrypt(bytes(plaintext), bytes(nonce)).ciphertext


def open_box(ciphertext: bytes, nonce: bytes, their_public: bytes, my_private: bytes) -> bytes:
    """
    Verify and decrypt a ciphertext sent to us by a peer.

    Args:
        ciphertext: Output of :func:`seal`
        nonce: The 24-byte nonce it was sealed with
        their_public: The sender's 32-byte public key
        my_private: Our 32-byte private key

    Returns:
        The plaintext

    Raises:
        DecryptionFailedError: If authentication fails for any reason,
            including an unusable sender key
        InvalidKeyLengthError: If a key has the wrong length
        ValueError: If the nonce has the wrong length
    """
    _check_nonce(nonce)
    try:
        box = _box(my_private, their_public)
    except WeakPublicKeyError:
        raise DecryptionFailedError() from None
    if len(ciphertext) < TAG_SIZE:
        raise DecryptionFailedError()
    try:
        return box.decrypt(bytes(ciphertext), bytes(nonce))
    except CryptoError:
        raise DecryptionFailedError() from None


def seal_symmetric(plaintext: bytes, nonce: bytes, key: bytes) -> bytes:
    """Encrypt and authenticate ``plaintext`` with a 32-byte shared key."""
    _check_nonce(nonce)
    return _secret_box(key).encrypt(bytes(plaintext), bytes(nonce)).ciphertext


def open_symmetric(ciphertext: bytes, nonce: bytes, key: bytes) -> bytes:
    """
    Verify and decrypt a ciphertext produced by :func:`seal_symmetric`.

    Raises:
        DecryptionFailedError: If authentication fails for any reason
    """
    _check_nonce(nonce)
    secret_box = _secret_box(key)
    if len(ciphertext) < TAG_SIZE:
        raise DecryptionFailedError()
    try:
        return secret_box.decrypt(bytes(ciphertext), bytes(nonce))
    except CryptoError:
        raise DecryptionFailedError() from None
