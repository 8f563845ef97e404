"""Configuration for the E2E envelope layer."""

from dataclasses import dataclass

from .types import MAX_TEXT_BYTES, MIN_PADDED_LENGTH, MAX_PADDING


@dataclass(frozen=True)
class E2EConfig:
    """Protocol settings shared by the sending and receiving side."""

    max_text_bytes: int = MAX_TEXT_BYTES
    """Maximum UTF-8 length of a text message or file caption."""

    pad_payload: bool = True
    """Whether payloads are padded before sealing and unpadded after opening."""

    min_padded_length: int = MIN_PADDED_LENGTH
    """Minimum length of a padded payload."""

    max_padding: int = MAX_PADDING
    """Upper bound for the random padding length."""

    def __post_init__(self) -> None:
        if self.max_text_bytes <= 0:
            raise ValueError(f"max_text_bytes must be positive, got {self.max_text_bytes}")
        if not 1 <= self.max_padding <= MAX_PADDING:
            raise ValueError(f"max_padding must be between 1 and {MAX_PADDING}, got {self.max_padding}")
        if not 0 <= self.min_padded_length <= MAX_PADDING:
            raise ValueError(
                f"min_padded_length must be between 0 and {MAX_PADDING}, got {self.min_padded_length}"
            )


DEFAULT_CONFIG = E2EConfig()
