"""
On-disk header of a secure file.

Layout:  NONCE(16) | CIPHERTEXT(...)

The nonce is written once, in plaintext, when an empty object is
initialised, and is read back on every later open. There is no magic, no
version byte and no length field: plaintext length = size - NONCE_SIZE.
"""

from __future__ import annotations

import os
import secrets

from .config import NONCE_SIZE
from .errors import HeaderCorruptError, StorageError
from .storage import StorageHandle


def new_nonce() -> bytearray:
    """Fresh random nonce from the OS CSPRNG."""
    try:
        return bytearray(secrets.token_bytes(NONCE_SIZE))
    except OSError as exc:
        raise StorageError(f"random source failed: {exc}") from exc


def create_header(handle: StorageHandle) -> bytearray:
    """Generate a nonce and write it at physical offset 0 of an empty object."""
    nonce = new_nonce()
    handle.seek(0, os.SEEK_SET)
    handle.write(bytes(nonce))
    return nonce


def read_header(handle: StorageHandle) -> bytearray:
    """Read the nonce back from physical offset 0.

    Leaves the cursor just past the header.
    """
    handle.seek(0, os.SEEK_SET)
    raw = handle.read(NONCE_SIZE)
    if len(raw) < NONCE_SIZE:
        raise HeaderCorruptError(NONCE_SIZE, len(raw))
    return bytearray(raw)


def data_length(handle: StorageHandle) -> int:
    """Plaintext length stored behind the header."""
    return max(0, handle.size() - NONCE_SIZE)


__all__ = ["new_nonce", "create_header", "read_header", "data_length"]
