"""Tests for envelope assembly."""

import pytest
from threema_gateway.blob import encrypt_image_data
from threema_gateway.config import E2EConfig
from threema_gateway.crypto import open_box
from threema_gateway.envelope import (
    Envelope,
    open_raw,
    pad_payload,
    prepare_for_send,
    process_received,
    seal_raw,
    unpad_payload,
)
from threema_gateway.keys import keypair_from_hex
from threema_gateway.messages import (
    DeliveryReceipt,
    GroupMessage,
    ImageMessage,
    ReceiptType,
    TextMessage,
    TypingIndicator,
)
from threema_gateway.types import (
    DecryptionFailedError,
    MalformedPayloadError,
    PayloadTooLargeError,
    UnknownMessageTypeError,
    WeakPublicKeyError,
)
from .test_vectors import (
    ALICE_PRIVATE_KEY_HEX,
    BLOB_ID,
    BOB_PRIVATE_KEY_HEX,
    CAROL_PRIVATE_KEY_HEX,
    FIXED_NONCE,
    GROUP_CREATOR,
    GROUP_ID,
    CountingNonceSource,
    FixedNonceSource,
)

UNPADDED = E2EConfig(pad_payload=False)


class TestSendReceive:
    """Test prepare_for_send and process_received."""

    @pytest.fixture
    def alice(self):
        """Alice's key pair."""
        return keypair_from_hex(ALICE_PRIVATE_KEY_HEX)

    @pytest.fixture
    def bob(self):
        """Bob's key pair."""
        return keypair_from_hex(BOB_PRIVATE_KEY_HEX)

    @pytest.mark.parametrize(
        "message",
        [
            TextMessage(text="Hello, Bob!"),
            TextMessage(text=""),
            TypingIndicator(is_typing=True),
            DeliveryReceipt(status=ReceiptType.READ, message_ids=(bytes(8),)),
            GroupMessage(GROUP_CREATOR, GROUP_ID, TextMessage(text="Hi all")),
        ],
    )
    def test_round_trip(self, alice, bob, message) -> None:
        """Bob receives exactly what Alice sent."""
        envelope = prepare_for_send(message, alice, bob.public_key)
        assert len(envelope.nonce) == 24
        assert process_received(envelope, alice.public_key, bob) == message

    def test_fresh_nonce_per_message(self, alice, bob) -> None:
        """Two sends of the same message use different nonces."""
        message = TextMessage(text="same")
        first = prepare_for_send(message, alice, bob.public_key)
        second = prepare_for_send(message, alice, bob.public_key)

        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext

    def test_injected_nonce_source(self, alice, bob) -> None:
        """An injected nonce source supplies the envelope nonce."""
        source = CountingNonceSource()
        envelope = prepare_for_send(TextMessage(text="x"), alice, bob.public_key, nonce_source=source)
        assert envelope.nonce == (1).to_bytes(24, byteorder="big")

    def test_unpadded_is_deterministic(self, alice, bob) -> None:
        """Without padding the ciphertext depends only on the inputs."""
        source = FixedNonceSource()
        first = prepare_for_send(
            TextMessage(text="hi"), alice, bob.public_key, nonce_source=source, config=UNPADDED
        )
        second = prepare_for_send(
            TextMessage(text="hi"), alice, bob.public_key, nonce_source=source, config=UNPADDED
        )

        assert first == second
        assert len(first.ciphertext) == 3 + 16
        assert open_box(first.ciphertext, FIXED_NONCE, alice.public_key, bob.export_private_key()) == b"\x01hi"

    def test_padded_payload_is_at_least_32_bytes(self, alice, bob) -> None:
        """Padding hides short messages."""
        envelope = prepare_for_send(TextMessage(text="hi"), alice, bob.public_key)
        assert len(envelope.ciphertext) >= 32 + 16

    def test_wrong_recipient(self, alice, bob) -> None:
        """Carol cannot open a message sent to Bob."""
        carol = keypair_from_hex(CAROL_PRIVATE_KEY_HEX)
        envelope = prepare_for_send(TextMessage(text="secret"), alice, bob.public_key)

        with pytest.raises(DecryptionFailedError):
            process_received(envelope, alice.public_key, carol)

    def test_tampered_envelope(self, alice, bob) -> None:
        """A modified ciphertext is rejected."""
        envelope = prepare_for_send(TextMessage(text="secret"), alice, bob.public_key)
        last = envelope.ciphertext[-1] ^ 0x80
        tampered = Envelope(nonce=envelope.nonce, ciphertext=envelope.ciphertext[:-1] + bytes([last]))

        with pytest.raises(DecryptionFailedError):
            process_received(tampered, alice.public_key, bob)

    def test_low_order_recipient_key(self, alice) -> None:
        """Sending to an all-zero public key raises a key error."""
        with pytest.raises(WeakPublicKeyError):
            prepare_for_send(TextMessage(text="secret"), alice, bytes(32))

    def test_low_order_sender_key(self, alice, bob) -> None:
        """Receiving with an all-zero sender key is a decryption failure."""
        envelope = prepare_for_send(TextMessage(text="secret"), alice, bob.public_key)

        with pytest.raises(DecryptionFailedError):
            process_received(envelope, bytes(32), bob)

    def test_text_too_large(self, alice, bob) -> None:
        """Oversized texts are rejected before encryption."""
        with pytest.raises(PayloadTooLargeError):
            prepare_for_send(TextMessage(text="A" * 3501), alice, bob.public_key)

    def test_unknown_type_propagates(self, alice, bob) -> None:
        """Unknown type tags surface unchanged."""
        envelope = seal_raw(pad_payload(b"\xff\x00", padding_length=1), alice, bob.public_key)

        with pytest.raises(UnknownMessageTypeError):
            process_received(envelope, alice.public_key, bob)

    def test_malformed_payload_propagates(self, alice, bob) -> None:
        """Malformed bodies surface unchanged."""
        envelope = seal_raw(b"\x81\x05", alice, bob.public_key)

        with pytest.raises(MalformedPayloadError):
            process_received(envelope, alice.public_key, bob, config=UNPADDED)

    def test_image_message_flow(self, alice, bob) -> None:
        """An image is boxed separately and referenced by nonce."""
        ciphertext, image_nonce = encrypt_image_data(b"jpeg bytes", alice, bob.public_key)
        message = ImageMessage(blob_id=BLOB_ID, size=len(ciphertext), nonce=image_nonce)

        received = process_received(prepare_for_send(message, alice, bob.public_key), alice.public_key, bob)
        assert received == message
        assert open_box(ciphertext, received.nonce, alice.public_key, bob.export_private_key()) == b"jpeg bytes"

    def test_raw_round_trip(self, alice, bob) -> None:
        """Raw bytes can be sealed and opened without the codec."""
        envelope = seal_raw(b"raw bytes", alice, bob.public_key)
        assert open_raw(envelope, alice.public_key, bob) == b"raw bytes"


class TestPadding:
    """Test payload padding."""

    def test_pad_and_unpad(self) -> None:
        """Padding bytes hold the padding length."""
        padded = pad_payload(b"\x01" + bytes(40), padding_length=5)
        assert padded[-5:] == b"\x05" * 5
        assert unpad_payload(padded) == b"\x01" + bytes(40)

    def test_minimum_length(self) -> None:
        """Short payloads are padded to 32 bytes."""
        padded = pad_payload(b"\x01hi", padding_length=1)
        assert len(padded) == 32
        assert padded[-1] == 29
        assert unpad_payload(padded) == b"\x01hi"

    def test_random_padding(self) -> None:
        """Random padding stays within bounds and strips cleanly."""
        payload = b"\x01" + b"x" * 100
        for _ in range(50):
            padded = pad_payload(payload)
            assert 1 <= len(padded) - len(payload) <= 255
            assert unpad_payload(padded) == payload

    def test_invalid_padding_length(self) -> None:
        """Explicit padding lengths must be within 1..255."""
        with pytest.raises(ValueError):
            pad_payload(b"\x01", padding_length=0)
        with pytest.raises(ValueError):
            pad_payload(b"\x01", padding_length=256)

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"\x01hi\x00",
            b"\x05\x05\x05",
            b"\x01hi\x01\x03\x03",
        ],
    )
    def test_unpad_rejects_invalid_padding(self, data: bytes) -> None:
        """Zero, overlong and inconsistent padding is malformed."""
        with pytest.raises(MalformedPayloadError):
            unpad_payload(data)


class TestEnvelopeWireFormat:
    """Test envelope transport representations."""

    ENVELOPE = Envelope(nonce=FIXED_NONCE, ciphertext=bytes(range(20)))

    def test_bytes_round_trip(self) -> None:
        """Nonce is followed directly by the ciphertext."""
        data = self.ENVELOPE.to_bytes()
        assert data[:24] == FIXED_NONCE
        assert data[24:] == bytes(range(20))
        assert Envelope.from_bytes(data) == self.ENVELOPE

    def test_bytes_too_short(self) -> None:
        """Data shorter than nonce plus tag is rejected."""
        with pytest.raises(MalformedPayloadError):
            Envelope.from_bytes(bytes(39))

    def test_form_fields(self) -> None:
        """Form fields carry hex nonce and box."""
        fields = self.ENVELOPE.to_form_fields()
        assert fields == {"nonce": FIXED_NONCE.hex(), "box": bytes(range(20)).hex()}
        assert Envelope.from_form_fields(fields) == self.ENVELOPE

    @pytest.mark.parametrize(
        "fields",
        [
            {"nonce": FIXED_NONCE.hex()},
            {"nonce": "zz", "box": "00"},
            {"nonce": "00" * 12, "box": "00" * 20},
        ],
    )
    def test_form_fields_invalid(self, fields) -> None:
        """Missing fields, bad hex and short nonces are rejected."""
        with pytest.raises(MalformedPayloadError):
            Envelope.from_form_fields(fields)
