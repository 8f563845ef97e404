"""Nonce generation for box and secretbox operations."""

from abc import ABC, abstractmethod
from typing import Optional

import nacl.utils

from .types import NONCE_SIZE


class NonceSource(ABC):
    """Interface for anything that hands out 24-byte nonces."""

    @abstractmethod
    def next_nonce(self) -> bytes:
        """Return a nonce that has never been returned before."""
        ...


class RandomNonceSource(NonceSource):
    """
    Nonce source backed by libsodium's ``randombytes``.

    libsodium reads from the operating system's entropy source and is safe
    to call from several threads at once, so no locking is needed here.
    Random 192-bit nonces do not depend on call order or process restarts.
    """

    def next_nonce(self) -> bytes:
        return nacl.utils.random(NONCE_SIZE)


DEFAULT_NONCE_SOURCE = RandomNonceSource()


def next_nonce(source: Optional[NonceSource] = None) -> bytes:
    """
    Draw a nonce from ``source`` or from the default random source.

    Raises:
        ValueError: If the source returns a nonce of the wrong size
    """
    nonce = (source or DEFAULT_NONCE_SOURCE).next_nonce()
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
    return nonce
