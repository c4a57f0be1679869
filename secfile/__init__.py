"""secfile  –  transparent AES-256-CTR encryption for random-access files.

Exports:
- open / write_file / read_file (from secfile.stream)
- SecureFile, SecureStream
- the error taxonomy and KEY_SIZE / NONCE_SIZE

On disk a secure file is NONCE(16) | CIPHERTEXT. There is no integrity
protection: a tampered file decrypts to garbage without an error.
"""

from __future__ import annotations

from .config import KEY_SIZE, NONCE_SIZE
from .errors import (
    CipherInitError,
    ClosedStreamError,
    HeaderCorruptError,
    InvalidOffsetError,
    KeyLengthError,
    SecureFileError,
    StorageError,
    UnsupportedModeError,
)
from .keystream import KeystreamCipher
from .storage import Access, FileStorage, StorageBackend, StorageHandle
from .stream import SecureFile, SecureStream, open, read_file, write_file

__version__ = "1.0.0"

__all__ = [
    "open",
    "read_file",
    "write_file",
    "SecureFile",
    "SecureStream",
    "KeystreamCipher",
    "Access",
    "FileStorage",
    "StorageBackend",
    "StorageHandle",
    "KEY_SIZE",
    "NONCE_SIZE",
    "SecureFileError",
    "KeyLengthError",
    "StorageError",
    "HeaderCorruptError",
    "UnsupportedModeError",
    "InvalidOffsetError",
    "ClosedStreamError",
    "CipherInitError",
]
