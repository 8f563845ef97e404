"""Tests for attachment encryption."""

import pytest
from threema_gateway.blob import (
    decrypt_blob,
    decrypt_file_data,
    decrypt_image_data,
    encrypt_blob,
    encrypt_file_data,
    encrypt_image_data,
)
from threema_gateway.keys import keypair_from_hex
from threema_gateway.types import FILE_NONCE, THUMBNAIL_NONCE, DecryptionFailedError
from .test_vectors import (
    ALICE_PRIVATE_KEY_HEX,
    BLOB_ID,
    BOB_PRIVATE_KEY_HEX,
    FIXED_NONCE,
    FixedNonceSource,
)

ATTACHMENTS = {
    "empty": b"",
    "small": b"\x00\x01\x02",
    "jpeg_header": b"\xff\xd8\xff\xe0" + bytes(100),
    "large": bytes(range(256)) * 1024,
}


class TestBlobCipher:
    """Test one-time key blob encryption."""

    @pytest.mark.parametrize("name,data", ATTACHMENTS.items())
    def test_round_trip(self, name: str, data: bytes) -> None:
        """Encrypted blobs decrypt to the original bytes."""
        blob = encrypt_blob(data)
        assert len(blob.ciphertext) == len(data) + 16
        assert decrypt_blob(blob.ciphertext, blob.key, blob.nonce) == data

    def test_fresh_key_and_nonce(self) -> None:
        """Identical inputs get different keys, nonces and ciphertexts."""
        first = encrypt_blob(b"same attachment")
        second = encrypt_blob(b"same attachment")

        assert first.key != second.key
        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext

    def test_key_fresh_with_fixed_nonce_source(self) -> None:
        """The key is fresh even when the nonce source is fixed."""
        source = FixedNonceSource()
        first = encrypt_blob(b"data", nonce_source=source)
        second = encrypt_blob(b"data", nonce_source=source)

        assert first.nonce == second.nonce == FIXED_NONCE
        assert first.key != second.key

    def test_tampered_blob(self) -> None:
        """Tampering with the ciphertext is detected."""
        blob = encrypt_blob(b"attachment")
        tampered = bytes([blob.ciphertext[0] ^ 0x01]) + blob.ciphertext[1:]

        with pytest.raises(DecryptionFailedError):
            decrypt_blob(tampered, blob.key, blob.nonce)

    def test_wrong_nonce(self) -> None:
        """A mismatching nonce is detected."""
        blob = encrypt_blob(b"attachment")

        with pytest.raises(DecryptionFailedError):
            decrypt_blob(blob.ciphertext, blob.key, bytes(24))

    def test_reference(self) -> None:
        """A reference carries the key material and ciphertext size."""
        blob = encrypt_blob(b"attachment")
        reference = blob.reference(BLOB_ID)

        assert reference.blob_id == BLOB_ID
        assert reference.symmetric_key == blob.key
        assert reference.encryption_nonce == blob.nonce
        assert reference.content_size == len(blob.ciphertext)

    def test_reference_rejects_bad_blob_id(self) -> None:
        """Blob IDs must be 16 bytes."""
        with pytest.raises(ValueError):
            encrypt_blob(b"attachment").reference(b"short")

    def test_key_not_in_repr(self) -> None:
        """Key material stays out of repr."""
        blob = encrypt_blob(b"attachment")
        assert blob.key.hex() not in repr(blob)
        assert repr(blob.key) not in repr(blob.reference(BLOB_ID))


class TestFileData:
    """Test file and thumbnail encryption."""

    def test_round_trip_with_thumbnail(self) -> None:
        """File and thumbnail decrypt with the shared key."""
        encrypted = encrypt_file_data(b"file contents", b"thumbnail")
        data, thumbnail = decrypt_file_data(encrypted.file, encrypted.key, encrypted.thumbnail)

        assert data == b"file contents"
        assert thumbnail == b"thumbnail"

    def test_round_trip_without_thumbnail(self) -> None:
        """Files without thumbnail are supported."""
        encrypted = encrypt_file_data(b"file contents")
        assert encrypted.thumbnail is None
        assert decrypt_file_data(encrypted.file, encrypted.key) == (b"file contents", None)

    def test_fixed_nonces(self) -> None:
        """File and thumbnail use distinct fixed nonces."""
        from threema_gateway.crypto import open_symmetric

        encrypted = encrypt_file_data(b"file", b"thumb")
        assert open_symmetric(encrypted.file, FILE_NONCE, encrypted.key) == b"file"
        assert open_symmetric(encrypted.thumbnail, THUMBNAIL_NONCE, encrypted.key) == b"thumb"

    def test_new_key_per_file(self) -> None:
        """Every call generates a new key."""
        assert encrypt_file_data(b"file").key != encrypt_file_data(b"file").key

    def test_swapped_blobs_fail(self) -> None:
        """A thumbnail cannot be opened as the file."""
        encrypted = encrypt_file_data(b"file", b"thumb")
        with pytest.raises(DecryptionFailedError):
            decrypt_file_data(encrypted.thumbnail, encrypted.key)


class TestImageData:
    """Test boxed image data."""

    def test_round_trip(self) -> None:
        """Bob opens an image Alice boxed for him."""
        alice = keypair_from_hex(ALICE_PRIVATE_KEY_HEX)
        bob = keypair_from_hex(BOB_PRIVATE_KEY_HEX)

        ciphertext, nonce = encrypt_image_data(b"\xff\xd8image", alice, bob.public_key)
        assert len(nonce) == 24
        assert decrypt_image_data(ciphertext, nonce, alice.public_key, bob) == b"\xff\xd8image"
