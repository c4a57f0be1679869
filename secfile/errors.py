"""Error taxonomy for secfile.

Every error raised by the package derives from :class:`SecureFileError`.
Where a builtin category fits, the error also inherits from it so callers
catching ``ValueError`` or ``OSError`` keep working.
"""

from __future__ import annotations


class SecureFileError(Exception):
    """Base class for all secfile errors."""


class KeyLengthError(SecureFileError, ValueError):
    """Raised when the key is not exactly the required length."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"{expected} byte key required, got {actual}")


class StorageError(SecureFileError, OSError):
    """Failure reported by the storage backend.

    The original exception is kept on ``__cause__`` and is not reinterpreted.
    """


class HeaderCorruptError(SecureFileError):
    """Raised when fewer than ``NONCE_SIZE`` bytes are present where a nonce is expected."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Truncated header: expected {expected} bytes, found {actual}")


class UnsupportedModeError(SecureFileError, ValueError):
    """Raised for modes the stream cannot serve (read+write, text, unknown)."""

    def __init__(self, mode: str, reason: str | None = None):
        self.mode = mode
        super().__init__(reason or f"Unsupported mode: {mode!r}")


class InvalidOffsetError(SecureFileError, ValueError):
    """Raised when a seek would produce a negative logical offset."""

    def __init__(self, offset: int):
        self.offset = offset
        super().__init__(f"Negative logical offset: {offset}")


class ClosedStreamError(SecureFileError, ValueError):
    """Raised for any operation attempted after close()."""

    def __init__(self, message: str = "I/O operation on closed secure file"):
        super().__init__(message)


class CipherInitError(SecureFileError):
    """Raised when the keystream cipher cannot be constructed."""


__all__ = [
    "SecureFileError",
    "KeyLengthError",
    "StorageError",
    "HeaderCorruptError",
    "UnsupportedModeError",
    "InvalidOffsetError",
    "ClosedStreamError",
    "CipherInitError",
]
