"""
Attachment encryption for the blob store.

Attachments never travel inside a message. They are encrypted here,
uploaded by the caller, and referenced from the message body by blob ID
together with the key material needed to decrypt them.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import nacl.utils

from .crypto import open_box, open_symmetric, seal, seal_symmetric
from .keys import KeyPair
from .nonce import NonceSource, next_nonce
from .types import BLOB_ID_SIZE, FILE_NONCE, SYMMETRIC_KEY_SIZE, THUMBNAIL_NONCE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobReference:
    """Everything a recipient needs to fetch and decrypt one blob."""
    blob_id: bytes
    symmetric_key: bytes = field(repr=False)
    encryption_nonce: bytes
    content_size: int


@dataclass(frozen=True)
class EncryptedBlob:
    """An attachment encrypted with its own one-time key."""
    ciphertext: bytes = field(repr=False)
    key: bytes = field(repr=False)
    nonce: bytes

    def reference(self, blob_id: bytes) -> BlobReference:
        """Build the reference for this blob once it has been uploaded as ``blob_id``."""
        if len(blob_id) != BLOB_ID_SIZE:
            raise ValueError(f"Blob ID must be {BLOB_ID_SIZE} bytes, got {len(blob_id)}")
        return BlobReference(
            blob_id=bytes(blob_id),
            symmetric_key=self.key,
            encryption_nonce=self.nonce,
            content_size=len(self.ciphertext),
        )


@dataclass(frozen=True)
class EncryptedFileData:
    """A file and its optional thumbnail, both encrypted with one key."""
    file: bytes = field(repr=False)
    thumbnail: Optional[bytes] = field(repr=False)
    key: bytes = field(repr=False)


def generate_blob_key() -> bytes:
    """Generate a fresh 32-byte symmetric key."""
    return nacl.utils.random(SYMMETRIC_KEY_SIZE)


def encrypt_blob(data: bytes, nonce_source: Optional[NonceSource] = None) -> EncryptedBlob:
    """
    Encrypt an attachment with a freshly generated key and nonce.

    Args:
        data: Attachment bytes
        nonce_source: Source for the nonce (random by default)

    Returns:
        EncryptedBlob with the ciphertext to upload and the key material
    """
    key = generate_blob_key()
    nonce = next_nonce(nonce_source)
    ciphertext = seal_symmetric(data, nonce, key)
    logger.debug("Encrypted blob (%d bytes)", len(ciphertext))
    return EncryptedBlob(ciphertext=ciphertext, key=key, nonce=nonce)


def decrypt_blob(ciphertext: bytes, key: bytes, nonce: bytes) -> bytes:
    """
    Decrypt an attachment downloaded from the blob store.

    Raises:
        DecryptionFailedError: If the blob was tampered with or the key/nonce is wrong
    """
    return open_symmetric(ciphertext, nonce, key)


def encrypt_file_data(data: bytes, thumbnail: Optional[bytes] = None) -> EncryptedFileData:
    """
    Encrypt a file and its thumbnail for a file message.

    A new key is generated on every call, which makes the fixed file and
    thumbnail nonces safe to use.

    Args:
        data: File contents
        thumbnail: Optional thumbnail image

    Returns:
        EncryptedFileData holding both ciphertexts and the shared key
    """
    key = generate_blob_key()
    encrypted_file = seal_symmetric(data, FILE_NONCE, key)
    encrypted_thumbnail = None
    if thumbnail is not None:
        encrypted_thumbnail = seal_symmetric(thumbnail, THUMBNAIL_NONCE, key)
    return EncryptedFileData(file=encrypted_file, thumbnail=encrypted_thumbnail, key=key)


def decrypt_file_data(
    encrypted_file: bytes,
    key: bytes,
    encrypted_thumbnail: Optional[bytes] = None,
) -> Tuple[bytes, Optional[bytes]]:
    """
    Decrypt the blobs referenced by a file message.

    Returns:
        Tuple of (file, thumbnail); thumbnail is None if none was given

    Raises:
        DecryptionFailedError: If either blob fails authentication
    """
    data = open_symmetric(encrypted_file, FILE_NONCE, key)
    thumbnail = None
    if encrypted_thumbnail is not None:
        thumbnail = open_symmetric(encrypted_thumbnail, THUMBNAIL_NONCE, key)
    return data, thumbnail


def encrypt_image_data(
    data: bytes,
    my_keypair: KeyPair,
    recipient_public_key: bytes,
    nonce_source: Optional[NonceSource] = None,
) -> Tuple[bytes, bytes]:
    """
    Box image data for an image message.

    Images are encrypted with the identity key pairs instead of a one-time
    key; the returned nonce goes into the image message.

    Returns:
        Tuple of (ciphertext, nonce)
    """
    nonce = next_nonce(nonce_source)
    ciphertext = seal(data, nonce, my_keypair.export_private_key(), recipient_public_key)
    return ciphertext, nonce


def decrypt_image_data(
    ciphertext: bytes,
    nonce: bytes,
    sender_public_key: bytes,
    my_keypair: KeyPair,
) -> bytes:
    """Open image data referenced by an image message."""
    return open_box(ciphertext, nonce, sender_public_key, my_keypair.export_private_key())
