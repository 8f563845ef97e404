"""
Threema Gateway - End-to-end encrypted messaging core

Python implementation of the Threema Gateway E2E message format using
NaCl box (Curve25519 + XSalsa20-Poly1305) and secretbox.
"""

from .keys import (
    KeyPair,
    generate_keypair,
    keypair_from_bytes,
    keypair_from_private_key,
    keypair_from_hex,
    public_key_from_bytes,
    public_key_from_hex,
    validate_identity,
)
from .nonce import NonceSource, RandomNonceSource, next_nonce
from .crypto import seal, open_box, seal_symmetric, open_symmetric
from .messages import (
    MessageType,
    ReceiptType,
    RenderingType,
    TextMessage,
    ImageMessage,
    FileMessage,
    DeliveryReceipt,
    TypingIndicator,
    GroupMessage,
    Message,
)
from .codec import encode_message, decode_message, is_known_message_type
from .blob import (
    BlobReference,
    EncryptedBlob,
    EncryptedFileData,
    encrypt_blob,
    decrypt_blob,
    encrypt_file_data,
    decrypt_file_data,
    encrypt_image_data,
    decrypt_image_data,
)
from .envelope import (
    Envelope,
    prepare_for_send,
    process_received,
    seal_raw,
    open_raw,
    pad_payload,
    unpad_payload,
)
from .account import GatewayIdentity
from .config import E2EConfig
from .types import (
    MAX_TEXT_BYTES,
    NONCE_SIZE,
    TAG_SIZE,
    GatewayError,
    InvalidKeyLengthError,
    WeakPublicKeyError,
    DecryptionFailedError,
    UnknownMessageTypeError,
    MalformedPayloadError,
    PayloadTooLargeError,
)

__version__ = "0.1.0"

__all__ = [
    # Keys
    "KeyPair",
    "generate_keypair",
    "keypair_from_bytes",
    "keypair_from_private_key",
    "keypair_from_hex",
    "public_key_from_bytes",
    "public_key_from_hex",
    "validate_identity",
    # Nonces
    "NonceSource",
    "RandomNonceSource",
    "next_nonce",
    # Crypto
    "seal",
    "open_box",
    "seal_symmetric",
    "open_symmetric",
    # Messages
    "MessageType",
    "ReceiptType",
    "RenderingType",
    "TextMessage",
    "ImageMessage",
    "FileMessage",
    "DeliveryReceipt",
    "TypingIndicator",
    "GroupMessage",
    "Message",
    # Codec
    "encode_message",
    "decode_message",
    "is_known_message_type",
    # Blobs
    "BlobReference",
    "EncryptedBlob",
    "EncryptedFileData",
    "encrypt_blob",
    "decrypt_blob",
    "encrypt_file_data",
    "decrypt_file_data",
    "encrypt_image_data",
    "decrypt_image_data",
    # Envelope
    "Envelope",
    "prepare_for_send",
    "process_received",
    "seal_raw",
    "open_raw",
    "pad_payload",
    "unpad_payload",
    # Identity
    "GatewayIdentity",
    # Config
    "E2EConfig",
    # Errors
    "GatewayError",
    "InvalidKeyLengthError",
    "WeakPublicKeyError",
    "DecryptionFailedError",
    "UnknownMessageTypeError",
    "MalformedPayloadError",
    "PayloadTooLargeError",
    # Constants
    "MAX_TEXT_BYTES",
    "NONCE_SIZE",
    "TAG_SIZE",
]
