"""Message models for Threema Gateway E2E messages."""

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .keys import validate_identity
from .types import (
    BLOB_ID_SIZE,
    GROUP_ID_SIZE,
    MESSAGE_ID_SIZE,
    NONCE_SIZE,
    SYMMETRIC_KEY_SIZE,
)


class MessageType(IntEnum):
    """Type tag written as the first byte of every payload."""
    TEXT = 0x01
    IMAGE = 0x02
    FILE = 0x17
    GROUP_TEXT = 0x41
    GROUP_IMAGE = 0x43
    GROUP_FILE = 0x46
    DELIVERY_RECEIPT = 0x80
    TYPING_INDICATOR = 0x81


class ReceiptType(IntEnum):
    """Status carried by a delivery receipt."""
    RECEIVED = 0x01
    READ = 0x02
    USER_ACK = 0x03
    USER_DECLINE = 0x04


class RenderingType(IntEnum):
    """How a receiving client should display a file message."""
    FILE = 0
    MEDIA = 1
    STICKER = 2


def _require_size(what: str, value: bytes, expected: int) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != expected:
        raise ValueError(f"{what} must be {expected} bytes")


def _require_utf8(what: str, value: Optional[str]) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise ValueError(f"{what} must be a string")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValueError(f"{what} cannot be encoded as UTF-8") from e


@dataclass(frozen=True)
class TextMessage:
    """A plain text message."""
    message_type: ClassVar[MessageType] = MessageType.TEXT

    text: str

    def __post_init__(self) -> None:
        _require_utf8("Text", self.text)


@dataclass(frozen=True)
class ImageMessage:
    """
    Reference to an uploaded image.

    The image itself is boxed with the sender's and recipient's key pair
    under ``nonce`` and uploaded to the blob store as ``blob_id``.
    """
    message_type: ClassVar[MessageType] = MessageType.IMAGE

    blob_id: bytes  # 16 bytes
    size: int  # ciphertext size in bytes
    nonce: bytes  # 24 bytes

    def __post_init__(self) -> None:
        _require_size("Blob ID", self.blob_id, BLOB_ID_SIZE)
        _require_size("Image nonce", self.nonce, NONCE_SIZE)
        if not 0 <= self.size <= 0xFFFFFFFF:
            raise ValueError(f"Image size out of range: {self.size}")


@dataclass(frozen=True)
class FileMessage:
    """
    Reference to an uploaded file and optional thumbnail.

    Both blobs are encrypted with the same one-time ``key`` and the fixed
    file/thumbnail nonces.
    """
    message_type: ClassVar[MessageType] = MessageType.FILE

    blob_id: bytes  # 16 bytes
    key: bytes  # 32 bytes
    mime_type: str
    size: int
    file_name: Optional[str] = None
    thumbnail_blob_id: Optional[bytes] = None
    thumbnail_mime_type: Optional[str] = None
    caption: Optional[str] = None
    rendering_type: RenderingType = RenderingType.FILE
    metadata: Optional[Dict[str, Any]] = field(default=None, hash=False)

    def __post_init__(self) -> None:
        _require_size("Blob ID", self.blob_id, BLOB_ID_SIZE)
        _require_size("File key", self.key, SYMMETRIC_KEY_SIZE)
        if self.thumbnail_blob_id is not None:
            _require_size("Thumbnail blob ID", self.thumbnail_blob_id, BLOB_ID_SIZE)
        if self.size < 0:
            raise ValueError(f"File size must not be negative: {self.size}")
        _require_utf8("MIME type", self.mime_type)
        _require_utf8("File name", self.file_name)
        _require_utf8("Thumbnail MIME type", self.thumbnail_mime_type)
        _require_utf8("Caption", self.caption)
        if self.metadata is not None:
            try:
                json.dumps(self.metadata, ensure_ascii=False).encode("utf-8")
            except (TypeError, ValueError, RecursionError) as e:
                raise ValueError("File metadata must be JSON serializable UTF-8") from e
        object.__setattr__(self, "rendering_type", RenderingType(self.rendering_type))


@dataclass(frozen=True)
class DeliveryReceipt:
    """Receipt for one or more previously received messages."""
    message_type: ClassVar[MessageType] = MessageType.DELIVERY_RECEIPT

    status: ReceiptType
    message_ids: Tuple[bytes, ...]  # 8 bytes each

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", ReceiptType(self.status))
        object.__setattr__(self, "message_ids", tuple(self.message_ids))
        if not self.message_ids:
            raise ValueError("Delivery receipt needs at least one message ID")
        for message_id in self.message_ids:
            _require_size("Message ID", message_id, MESSAGE_ID_SIZE)


@dataclass(frozen=True)
class TypingIndicator:
    """Whether the sender is currently typing."""
    message_type: ClassVar[MessageType] = MessageType.TYPING_INDICATOR

    is_typing: bool


GroupableMessage = Union[TextMessage, ImageMessage, FileMessage]

# Group tag for every message type that may be sent to a group
GROUP_MESSAGE_TYPES: Dict[MessageType, MessageType] = {
    MessageType.TEXT: MessageType.GROUP_TEXT,
    MessageType.IMAGE: MessageType.GROUP_IMAGE,
    MessageType.FILE: MessageType.GROUP_FILE,
}


@dataclass(frozen=True)
class GroupMessage:
    """
    A text, image or file message addressed to a group.

    The group is identified by the identity of its creator and an 8-byte
    group ID chosen by the creator.
    """

    creator: str
    group_id: bytes  # 8 bytes
    message: GroupableMessage

    def __post_init__(self) -> None:
        validate_identity(self.creator)
        _require_size("Group ID", self.group_id, GROUP_ID_SIZE)
        if type(self.message).message_type not in GROUP_MESSAGE_TYPES:
            raise ValueError(f"{type(self.message).__name__} cannot be sent to a group")

    @property
    def message_type(self) -> MessageType:
        return GROUP_MESSAGE_TYPES[self.message.message_type]


Message = Union[
    TextMessage,
    ImageMessage,
    FileMessage,
    DeliveryReceipt,
    TypingIndicator,
    GroupMessage,
]
