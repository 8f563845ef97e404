"""
Gateway identity for Threema Gateway E2E messaging.

A GatewayIdentity bundles a gateway ID with its long-term key pair so the
application can build it once and pass it to whatever sends or receives.
"""

from dataclasses import dataclass, field
from typing import Optional

from .config import DEFAULT_CONFIG, E2EConfig
from .envelope import Envelope, prepare_for_send, process_received
from .keys import KeyPair, keypair_from_hex, public_key_from_bytes, validate_identity
from .messages import Message, TextMessage
from .nonce import NonceSource


@dataclass(frozen=True)
class GatewayIdentity:
    """
    A gateway ID together with its key pair.

    Attributes:
        identity: The 8-character gateway ID (e.g. ``*ABCDEFG``).
        keypair: The identity's long-term key pair.
        config: Protocol settings used for every message.
    """

    identity: str
    keypair: KeyPair
    config: E2EConfig = field(default=DEFAULT_CONFIG)

    def __post_init__(self) -> None:
        validate_identity(self.identity)

    @classmethod
    def from_private_key_hex(
        cls,
        identity: str,
        private_key_hex: str,
        config: Optional[E2EConfig] = None,
    ) -> "GatewayIdentity":
        """
        Create an identity from a hex encoded private key.

        Raises:
            ValueError: If the identity is malformed
            InvalidKeyLengthError: If the key is not 32 bytes of hex
        """
        return cls(
            identity=identity,
            keypair=keypair_from_hex(private_key_hex),
            config=config or DEFAULT_CONFIG,
        )

    @property
    def public_key(self) -> bytes:
        """The identity's public key."""
        return self.keypair.public_key

    def encrypt(
        self,
        message: Message,
        recipient_public_key: bytes,
        nonce_source: Optional[NonceSource] = None,
    ) -> Envelope:
        """Seal a message for a recipient."""
        return prepare_for_send(
            message,
            self.keypair,
            public_key_from_bytes(recipient_public_key),
            nonce_source=nonce_source,
            config=self.config,
        )

    def encrypt_text(
        self,
        text: str,
        recipient_public_key: bytes,
        nonce_source: Optional[NonceSource] = None,
    ) -> Envelope:
        """Seal a text message for a recipient."""
        return self.encrypt(TextMessage(text=text), recipient_public_key, nonce_source)

    def decrypt(self, envelope: Envelope, sender_public_key: bytes) -> Message:
        """Open and decode a message from a sender."""
        return process_received(
            envelope,
            public_key_from_bytes(sender_public_key),
            self.keypair,
            config=self.config,
        )
