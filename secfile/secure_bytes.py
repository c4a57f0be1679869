# secure_bytes.py
"""Wipeable byte container for key material."""
from __future__ import annotations

import contextlib
import ctypes
import threading
import weakref
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def secure_memzero(buf: bytearray) -> None:
    """
    Zero a buffer in place.

    Uses ``ctypes.memset`` on the buffer's address, then walks the buffer so
    any byte the fast path missed is cleared as well. Safe on empty buffers.
    """
    if not buf:
        return

    n = len(buf)
    holder = (ctypes.c_char * n).from_buffer(buf)
    ctypes.memset(ctypes.addressof(holder), 0, n)
    del holder

    for i in range(n):
        if buf[i]:
            buf[i] = 0


class SecureBytes:
    """
    Container for sensitive bytes with guaranteed cleanup.

    Features:
    - Internal bytearray (a private copy) that is zeroed on clear()
    - Context manager support
    - No information leakage through repr/str

    Usage:
        sb = SecureBytes(key)
        cipher = make_cipher(sb.view())
        sb.clear()
    """

    __slots__ = ("_buf", "_cleared", "_lock", "_finalizer", "__weakref__")

    def __init__(self, data: BytesLike) -> None:
        """
        Args:
            data: Bytes to protect. Must not be empty.

        Raises:
            TypeError: If data is not bytes/bytearray/memoryview
            ValueError: If data is empty
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"SecureBytes requires bytes/bytearray/memoryview, got {type(data).__name__}")
        if len(data) == 0:
            raise ValueError("SecureBytes cannot be empty")

        self._buf = bytearray(data)
        self._cleared = False
        self._lock = threading.RLock()
        # Ensure cleanup even if GC'd without an explicit clear()
        self._finalizer = weakref.finalize(self, secure_memzero, self._buf)

    def view(self) -> memoryview:
        """
        Read-only view of the data without copying.

        Raises:
            ValueError: If already cleared
        """
        with self._lock:
            if self._cleared:
                raise ValueError("SecureBytes already cleared")
            return memoryview(self._buf).toreadonly()

    def clear(self) -> None:
        """
        Zero the internal buffer and mark as cleared. Idempotent.
        """
        with self._lock:
            if self._cleared:
                return
            secure_memzero(self._buf)
            # views handed out by view() pin the size; the bytes are zero either way
            with contextlib.suppress(BufferError):
                self._buf.clear()
            self._cleared = True
            self._finalizer.detach()

    @property
    def cleared(self) -> bool:
        with self._lock:
            return self._cleared

    def __enter__(self) -> SecureBytes:
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        self.clear()

    def __len__(self) -> int:
        with self._lock:
            return 0 if self._cleared else len(self._buf)

    def __repr__(self) -> str:
        return "<SecureBytes ***>"

    __str__ = __repr__


__all__ = ["SecureBytes", "secure_memzero"]
