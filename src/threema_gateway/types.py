"""Type definitions and protocol constants for Threema Gateway E2E messaging."""

from typing import Optional

# Key and nonce sizes (NaCl crypto_box / crypto_secretbox)
PUBLIC_KEY_SIZE = 32
PRIVATE_KEY_SIZE = 32
SYMMETRIC_KEY_SIZE = 32
NONCE_SIZE = 24
TAG_SIZE = 16

# Identity constants
IDENTITY_SIZE = 8
GROUP_ID_SIZE = 8

# Message constants
MESSAGE_ID_SIZE = 8
BLOB_ID_SIZE = 16
MAX_TEXT_BYTES = 3500

# Padding constants
MIN_PADDED_LENGTH = 32
MAX_PADDING = 255

# Fixed nonces used for file and thumbnail blobs (the key is fresh per file)
FILE_NONCE = bytes(23) + b"\x01"
THUMBNAIL_NONCE = bytes(23) + b"\x02"


# Exception types
class GatewayError(Exception):
    """Base exception for Threema Gateway errors."""
    pass


class InvalidKeyLengthError(GatewayError):
    """Key material has the wrong length or encoding."""

    def __init__(
        self,
        what: str,
        expected: int,
        actual: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"{what} must be {expected} bytes, got {actual}")


class WeakPublicKeyError(InvalidKeyLengthError):
    """Public key has the right size but is a low-order point."""

    def __init__(self) -> None:
        super().__init__(
            "Public key",
            PUBLIC_KEY_SIZE,
            PUBLIC_KEY_SIZE,
            message="Public key cannot be used for key agreement",
        )


class DecryptionFailedError(GatewayError):
    """Authenticated decryption failed."""

    def __init__(self) -> None:
        super().__init__("Decryption failed")


class UnknownMessageTypeError(GatewayError):
    """Payload carries a type tag this library does not know."""

    def __init__(self, type_tag: int) -> None:
        self.type_tag = type_tag
        super().__init__(f"Unknown message type: 0x{type_tag:02x}")


class MalformedPayloadError(GatewayError):
    """Payload violates the layout of its message type."""
    pass


class PayloadTooLargeError(GatewayError):
    """A textual field exceeds the protocol maximum."""

    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(f"Payload too large: {size} bytes (max {max_size})")
