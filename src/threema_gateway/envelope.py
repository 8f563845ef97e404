"""
Envelope assembly for sending and receiving E2E messages.

Sending: encode -> pad -> fresh nonce -> box.
Receiving: open box -> strip padding -> decode.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Dict, Optional

from .codec import decode_message, encode_message
from .config import DEFAULT_CONFIG, E2EConfig
from .crypto import open_box, seal
from .keys import KeyPair
from .messages import Message
from .nonce import NonceSource, next_nonce
from .types import NONCE_SIZE, TAG_SIZE, MalformedPayloadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Envelope:
    """
    A sealed message ready for transport.

    Two fixed wire forms are supported:

    - ``to_bytes()``: the 24-byte nonce immediately followed by the
      ciphertext, no length prefix.
    - ``to_form_fields()``: hex encoded ``nonce`` and ``box`` fields as
      sent to the gateway's ``send_e2e`` endpoint.
    """
    nonce: bytes  # 24 bytes
    ciphertext: bytes  # payload + 16-byte tag

    def __post_init__(self) -> None:
        if len(self.nonce) != NONCE_SIZE:
            raise MalformedPayloadError(f"Nonce must be {NONCE_SIZE} bytes, got {len(self.nonce)}")

    def to_bytes(self) -> bytes:
        """Encode as nonce followed by ciphertext."""
        return bytes(self.nonce) + bytes(self.ciphertext)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Envelope":
        """
        Split a concatenated envelope back into nonce and ciphertext.

        Raises:
            MalformedPayloadError: If data cannot hold a nonce and a tag
        """
        minimum = NONCE_SIZE + TAG_SIZE
        if len(data) < minimum:
            raise MalformedPayloadError(f"Envelope too short: {len(data)} bytes (minimum {minimum})")
        return cls(nonce=bytes(data[:NONCE_SIZE]), ciphertext=bytes(data[NONCE_SIZE:]))

    def to_form_fields(self) -> Dict[str, str]:
        """Encode as the hex form fields of the gateway HTTP API."""
        return {"nonce": self.nonce.hex(), "box": self.ciphertext.hex()}

    @classmethod
    def from_form_fields(cls, fields: Dict[str, str]) -> "Envelope":
        """
        Parse the hex ``nonce`` and ``box`` fields of an incoming message.

        Raises:
            MalformedPayloadError: If a field is missing or not valid hex
        """
        try:
            nonce = bytes.fromhex(fields["nonce"])
            ciphertext = bytes.fromhex(fields["box"])
        except KeyError as e:
            raise MalformedPayloadError(f"Missing envelope field: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError("Envelope fields must be hex strings") from e
        return cls(nonce=nonce, ciphertext=ciphertext)


def pad_payload(
    payload: bytes,
    config: Optional[E2EConfig] = None,
    padding_length: Optional[int] = None,
) -> bytes:
    """
    Append PKCS#7-style padding to hide the exact payload length.

    Each padding byte holds the padding length. The length is random in
    ``1..config.max_padding`` unless given, and is raised so the result is
    at least ``config.min_padded_length`` bytes long.
    """
    config = config or DEFAULT_CONFIG
    if padding_length is None:
        padding_length = secrets.randbelow(config.max_padding) + 1
    if not 1 <= padding_length <= config.max_padding:
        raise ValueError(f"Padding length must be between 1 and {config.max_padding}")
    if len(payload) + padding_length < config.min_padded_length:
        padding_length = config.min_padded_length - len(payload)
    return bytes(payload) + bytes([padding_length]) * padding_length


def unpad_payload(data: bytes) -> bytes:
    """
    Strip padding added by :func:`pad_payload`.

    Raises:
        MalformedPayloadError: If the padding is inconsistent
    """
    if not data:
        raise MalformedPayloadError("Empty padded payload")

    padding_length = data[-1]
    if padding_length == 0 or padding_length >= len(data):
        raise MalformedPayloadError(f"Invalid padding length: {padding_length}")
    if data[-padding_length:] != bytes([padding_length]) * padding_length:
        raise MalformedPayloadError("Inconsistent padding bytes")
    return bytes(data[:-padding_length])


def seal_raw(
    payload: bytes,
    my_keypair: KeyPair,
    recipient_public_key: bytes,
    nonce_source: Optional[NonceSource] = None,
) -> Envelope:
    """Seal already encoded bytes under a fresh nonce."""
    nonce = next_nonce(nonce_source)
    ciphertext = seal(payload, nonce, my_keypair.export_private_key(), recipient_public_key)
    return Envelope(nonce=nonce, ciphertext=ciphertext)


def open_raw(envelope: Envelope, sender_public_key: bytes, my_keypair: KeyPair) -> bytes:
    """Open an envelope without decoding its payload."""
    return open_box(
        envelope.ciphertext,
        envelope.nonce,
        sender_public_key,
        my_keypair.export_private_key(),
    )


def prepare_for_send(
    message: Message,
    my_keypair: KeyPair,
    recipient_public_key: bytes,
    *,
    nonce_source: Optional[NonceSource] = None,
    config: Optional[E2EConfig] = None,
) -> Envelope:
    """
    Encode, pad and seal a message for a recipient.

    Args:
        message: Message to send
        my_keypair: Our key pair
        recipient_public_key: The recipient's 32-byte public key
        nonce_source: Source for the nonce (random by default)
        config: Protocol settings

    Returns:
        Envelope to hand to the transport

    Raises:
        PayloadTooLargeError: If the message text exceeds the limit
        InvalidKeyLengthError: If the recipient key is not 32 bytes
    """
    config = config or DEFAULT_CONFIG
    payload = encode_message(message, config)
    if config.pad_payload:
        payload = pad_payload(payload, config)

    envelope = seal_raw(payload, my_keypair, recipient_public_key, nonce_source)
    logger.debug(
        "Sealed %s message (%d bytes ciphertext)",
        message.message_type.name,
        len(envelope.ciphertext),
    )
    return envelope


def process_received(
    envelope: Envelope,
    sender_public_key: bytes,
    my_keypair: KeyPair,
    *,
    config: Optional[E2EConfig] = None,
) -> Message:
    """
    Open and decode a message received from a sender.

    Args:
        envelope: Envelope from the transport
        sender_public_key: The sender's 32-byte public key
        my_keypair: Our key pair
        config: Protocol settings

    Returns:
        The decoded message

    Raises:
        DecryptionFailedError: If the envelope does not authenticate
        UnknownMessageTypeError: If the payload has an unknown type tag
        MalformedPayloadError: If padding or body are malformed
    """
    config = config or DEFAULT_CONFIG
    payload = open_raw(envelope, sender_public_key, my_keypair)
    if config.pad_payload:
        payload = unpad_payload(payload)
    return decode_message(payload)
