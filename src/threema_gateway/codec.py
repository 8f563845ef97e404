"""
Payload encoding and decoding for Threema Gateway messages.

Every payload starts with a one-byte type tag followed by the body of that
type:

    TEXT              [1..]    UTF-8 text
    IMAGE             [1..16]  blob ID
                      [17..20] ciphertext size (little-endian uint32)
                      [21..44] image nonce
    FILE              [1..]    UTF-8 JSON object
    DELIVERY_RECEIPT  [1]      receipt status
                      [2..]    message IDs, 8 bytes each
    TYPING_INDICATOR  [1]      0x00 or 0x01
    GROUP_*           [1..8]   group creator identity
                      [9..16]  group ID
                      [17..]   body of the corresponding non-group type
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from .config import DEFAULT_CONFIG, E2EConfig
from .messages import (
    GROUP_MESSAGE_TYPES,
    DeliveryReceipt,
    FileMessage,
    GroupMessage,
    ImageMessage,
    Message,
    MessageType,
    ReceiptType,
    RenderingType,
    TextMessage,
    TypingIndicator,
)
from .types import (
    BLOB_ID_SIZE,
    GROUP_ID_SIZE,
    IDENTITY_SIZE,
    MESSAGE_ID_SIZE,
    NONCE_SIZE,
    SYMMETRIC_KEY_SIZE,
    MalformedPayloadError,
    PayloadTooLargeError,
    UnknownMessageTypeError,
)

logger = logging.getLogger(__name__)

IMAGE_BODY_SIZE = BLOB_ID_SIZE + 4 + NONCE_SIZE
GROUP_HEADER_SIZE = IDENTITY_SIZE + GROUP_ID_SIZE

BodyEncoder = Callable[[Any, E2EConfig], bytes]
BodyDecoder = Callable[[bytes], Any]


def _decode_utf8(data: bytes, what: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedPayloadError(f"{what} is not valid UTF-8") from e


def _encode_limited_text(text: str, max_bytes: int) -> bytes:
    data = text.encode("utf-8")
    if len(data) > max_bytes:
        raise PayloadTooLargeError(len(data), max_bytes)
    return data


# Text

def _encode_text(message: TextMessage, config: E2EConfig) -> bytes:
    return _encode_limited_text(message.text, config.max_text_bytes)


def _decode_text(body: bytes) -> TextMessage:
    return TextMessage(text=_decode_utf8(body, "Text"))


# Image

def _encode_image(message: ImageMessage, config: E2EConfig) -> bytes:
    return (
        bytes(message.blob_id)
        + message.size.to_bytes(4, byteorder="little")
        + bytes(message.nonce)
    )


def _decode_image(body: bytes) -> ImageMessage:
    if len(body) != IMAGE_BODY_SIZE:
        raise MalformedPayloadError(
            f"Image body must be {IMAGE_BODY_SIZE} bytes, got {len(body)}"
        )

    offset = 0
    blob_id = body[offset : offset + BLOB_ID_SIZE]
    offset += BLOB_ID_SIZE

    size = int.from_bytes(body[offset : offset + 4], byteorder="little")
    offset += 4

    nonce = body[offset : offset + NONCE_SIZE]

    return ImageMessage(blob_id=blob_id, size=size, nonce=nonce)


# File

def _encode_file(message: FileMessage, config: E2EConfig) -> bytes:
    payload: Dict[str, Any] = {
        "b": message.blob_id.hex(),
        "k": message.key.hex(),
        "m": message.mime_type,
        "s": message.size,
        "j": int(message.rendering_type),
        # Older clients only understand this flag
        "i": 0 if message.rendering_type == RenderingType.FILE else 1,
    }
    if message.thumbnail_blob_id is not None:
        payload["t"] = message.thumbnail_blob_id.hex()
    if message.thumbnail_mime_type is not None:
        payload["p"] = message.thumbnail_mime_type
    if message.file_name is not None:
        payload["n"] = message.file_name
    if message.caption is not None:
        _encode_limited_text(message.caption, config.max_text_bytes)
        payload["d"] = message.caption
    if message.metadata is not None:
        payload["x"] = message.metadata

    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _hex_field(payload: Dict[str, Any], name: str, size: int) -> bytes:
    value = payload[name]
    if not isinstance(value, str):
        raise MalformedPayloadError(f"File field {name!r} must be a hex string")
    try:
        data = bytes.fromhex(value)
    except ValueError as e:
        raise MalformedPayloadError(f"File field {name!r} is not valid hex") from e
    # fromhex skips whitespace, so check the decoded size
    if len(data) != size:
        raise MalformedPayloadError(f"File field {name!r} must encode {size} bytes, got {len(data)}")
    return data


def _str_field(payload: Dict[str, Any], name: str) -> Optional[str]:
    value = payload.get(name)
    if value is not None and not isinstance(value, str):
        raise MalformedPayloadError(f"File field {name!r} must be a string")
    return value


def _decode_file(body: bytes) -> FileMessage:
    text = _decode_utf8(body, "File message")
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        raise MalformedPayloadError("File message is not valid JSON") from e

    if not isinstance(payload, dict):
        raise MalformedPayloadError("File message must be a JSON object")

    missing = [name for name in ("b", "k", "m", "s") if name not in payload]
    if missing:
        raise MalformedPayloadError(f"File message is missing fields: {', '.join(missing)}")

    size = payload["s"]
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise MalformedPayloadError("File field 's' must be a non-negative integer")

    mime_type = _str_field(payload, "m")
    if mime_type is None:
        raise MalformedPayloadError("File field 'm' must be a string")

    # Fall back to the legacy flag when the rendering type is absent
    rendering_value = payload.get("j", payload.get("i", 0))
    if isinstance(rendering_value, bool):
        raise MalformedPayloadError(f"Unknown rendering type: {rendering_value!r}")
    try:
        rendering_type = RenderingType(rendering_value)
    except ValueError as e:
        raise MalformedPayloadError(f"Unknown rendering type: {rendering_value!r}") from e

    metadata = payload.get("x")
    if metadata is not None and not isinstance(metadata, dict):
        raise MalformedPayloadError("File field 'x' must be an object")

    thumbnail_blob_id = None
    if payload.get("t") is not None:
        thumbnail_blob_id = _hex_field(payload, "t", BLOB_ID_SIZE)

    blob_id = _hex_field(payload, "b", BLOB_ID_SIZE)
    key = _hex_field(payload, "k", SYMMETRIC_KEY_SIZE)

    try:
        return FileMessage(
            blob_id=blob_id,
            key=key,
            mime_type=mime_type,
            size=size,
            file_name=_str_field(payload, "n"),
            thumbnail_blob_id=thumbnail_blob_id,
            thumbnail_mime_type=_str_field(payload, "p"),
            caption=_str_field(payload, "d"),
            rendering_type=rendering_type,
            metadata=metadata,
        )
    except ValueError as e:
        raise MalformedPayloadError(str(e)) from e


# Delivery receipt

def _encode_delivery_receipt(message: DeliveryReceipt, config: E2EConfig) -> bytes:
    return bytes([message.status]) + b"".join(bytes(m) for m in message.message_ids)


def _decode_delivery_receipt(body: bytes) -> DeliveryReceipt:
    if len(body) < 1 + MESSAGE_ID_SIZE:
        raise MalformedPayloadError(f"Delivery receipt too short: {len(body)} bytes")
    if (len(body) - 1) % MESSAGE_ID_SIZE != 0:
        raise MalformedPayloadError(
            f"Delivery receipt message IDs must be multiples of {MESSAGE_ID_SIZE} bytes"
        )

    try:
        status = ReceiptType(body[0])
    except ValueError as e:
        raise MalformedPayloadError(f"Unknown receipt status: 0x{body[0]:02x}") from e

    message_ids = tuple(
        body[offset : offset + MESSAGE_ID_SIZE]
        for offset in range(1, len(body), MESSAGE_ID_SIZE)
    )
    return DeliveryReceipt(status=status, message_ids=message_ids)


# Typing indicator

def _encode_typing_indicator(message: TypingIndicator, config: E2EConfig) -> bytes:
    return b"\x01" if message.is_typing else b"\x00"


def _decode_typing_indicator(body: bytes) -> TypingIndicator:
    if len(body) != 1:
        raise MalformedPayloadError(f"Typing indicator body must be 1 byte, got {len(body)}")
    if body[0] not in (0x00, 0x01):
        raise MalformedPayloadError(f"Invalid typing indicator flag: 0x{body[0]:02x}")
    return TypingIndicator(is_typing=body[0] == 0x01)


_BODY_CODECS: Dict[MessageType, Tuple[BodyEncoder, BodyDecoder]] = {
    MessageType.TEXT: (_encode_text, _decode_text),
    MessageType.IMAGE: (_encode_image, _decode_image),
    MessageType.FILE: (_encode_file, _decode_file),
    MessageType.DELIVERY_RECEIPT: (_encode_delivery_receipt, _decode_delivery_receipt),
    MessageType.TYPING_INDICATOR: (_encode_typing_indicator, _decode_typing_indicator),
}

# Group type -> inner type, e.g. GROUP_TEXT -> TEXT
_GROUP_INNER_TYPES: Dict[MessageType, MessageType] = {
    group_type: inner_type for inner_type, group_type in GROUP_MESSAGE_TYPES.items()
}


# Group composition

def _encode_group(message: GroupMessage, config: E2EConfig) -> bytes:
    encode_inner, _ = _BODY_CODECS[message.message.message_type]
    return (
        message.creator.encode("ascii")
        + bytes(message.group_id)
        + encode_inner(message.message, config)
    )


def _decode_group(inner_type: MessageType, body: bytes) -> GroupMessage:
    if len(body) < GROUP_HEADER_SIZE:
        raise MalformedPayloadError(
            f"Group message too short: {len(body)} bytes (minimum {GROUP_HEADER_SIZE})"
        )

    try:
        creator = body[:IDENTITY_SIZE].decode("ascii")
    except UnicodeDecodeError as e:
        raise MalformedPayloadError("Group creator is not a valid identity") from e

    group_id = body[IDENTITY_SIZE:GROUP_HEADER_SIZE]
    _, decode_inner = _BODY_CODECS[inner_type]
    inner = decode_inner(body[GROUP_HEADER_SIZE:])

    try:
        return GroupMessage(creator=creator, group_id=group_id, message=inner)
    except ValueError as e:
        raise MalformedPayloadError(str(e)) from e


def encode_message(message: Message, config: Optional[E2EConfig] = None) -> bytes:
    """
    Encode a message into its tagged payload.

    Args:
        message: Message to encode
        config: Protocol settings (default limits if omitted)

    Returns:
        Type tag followed by the message body

    Raises:
        PayloadTooLargeError: If text or caption exceed ``config.max_text_bytes``
    """
    config = config or DEFAULT_CONFIG
    message_type = message.message_type

    if isinstance(message, GroupMessage):
        body = _encode_group(message, config)
    else:
        encode_body, _ = _BODY_CODECS[message_type]
        body = encode_body(message, config)

    logger.debug("Encoded %s payload (%d bytes)", message_type.name, len(body) + 1)
    return bytes([message_type]) + body


def decode_message(data: bytes) -> Message:
    """
    Decode a tagged payload into a message.

    Args:
        data: Decrypted, unpadded payload

    Returns:
        The decoded message

    Raises:
        UnknownMessageTypeError: If the type tag is not known
        MalformedPayloadError: If the body does not match its type's layout
    """
    if not data:
        raise MalformedPayloadError("Empty payload")

    try:
        message_type = MessageType(data[0])
    except ValueError:
        raise UnknownMessageTypeError(data[0]) from None

    body = bytes(data[1:])
    if message_type in _GROUP_INNER_TYPES:
        message = _decode_group(_GROUP_INNER_TYPES[message_type], body)
    else:
        _, decode_body = _BODY_CODECS[message_type]
        message = decode_body(body)

    logger.debug("Decoded %s payload (%d bytes)", message_type.name, len(data))
    return message


def is_known_message_type(type_tag: int) -> bool:
    """Check whether a type tag can be decoded by this library."""
    return any(type_tag == message_type for message_type in MessageType)
