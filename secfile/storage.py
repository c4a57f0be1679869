"""
Storage backend seam: the byte-addressable object that holds nonce + ciphertext.

`SecureFile` only talks to the two protocols below. `FileStorage` is the
local-filesystem implementation, built on raw ``os`` file descriptors so
every byte written is visible to the next ``size()`` without buffering.
All ``OSError``s are re-raised as :class:`StorageError` chained to the
original.
"""

from __future__ import annotations

import contextlib
import os
from enum import Enum
from typing import Iterator, Protocol

from .config import DEFAULT_FILE_MODE
from .errors import StorageError

_O_BINARY = getattr(os, "O_BINARY", 0)


class Access(Enum):
    READ = "read"  # must exist
    TRUNCATE = "truncate"  # create or truncate
    EXCLUSIVE = "exclusive"  # create, must not exist
    APPEND = "append"  # create if missing, keep contents

    @property
    def os_flags(self) -> int:
        if self is Access.READ:
            return os.O_RDONLY | _O_BINARY
        base = os.O_RDWR | os.O_CREAT | _O_BINARY
        if self is Access.TRUNCATE:
            return base | os.O_TRUNC
        if self is Access.EXCLUSIVE:
            return base | os.O_EXCL
        return base


class StorageHandle(Protocol):
    """An open storage object with a single cursor."""

    @property
    def created(self) -> bool:
        """True when open() brought this object into existence."""

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes; fewer only at end of data."""

    def write(self, data: bytes) -> int:
        """Write all of ``data`` at the cursor."""

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Reposition the cursor, return the new absolute position."""

    def size(self) -> int:
        """Current size of the object in bytes."""

    def flush(self) -> None:
        """Push written bytes to the underlying medium."""

    def close(self) -> None:
        """Release the handle. Idempotent."""


class StorageBackend(Protocol):
    def open(self, path: str, access: Access, perms: int = DEFAULT_FILE_MODE) -> StorageHandle:
        """Open ``path``; raise StorageError on failure."""

    def remove(self, path: str) -> None:
        """Delete ``path``; raise StorageError on failure."""


@contextlib.contextmanager
def _storage_errors(operation: str, path: str) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        if isinstance(exc, StorageError):
            raise
        raise StorageError(exc.errno, f"{operation} failed for {path}: {exc.strerror or exc}") from exc


class FileHandle:
    """`StorageHandle` over an ``os``-level file descriptor."""

    __slots__ = ("path", "_fd", "_created")

    def __init__(self, path: str, fd: int, created: bool):
        self.path = path
        self._fd: int | None = fd
        self._created = created

    @property
    def created(self) -> bool:
        return self._created

    @property
    def closed(self) -> bool:
        return self._fd is None

    def _require_fd(self) -> int:
        if self._fd is None:
            raise StorageError(f"storage handle for {self.path} is closed")
        return self._fd

    def read(self, n: int) -> bytes:
        fd = self._require_fd()
        chunks = []
        remaining = n
        with _storage_errors("read", self.path):
            while remaining > 0:
                chunk = os.read(fd, remaining)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
        return b"".join(chunks)

    def write(self, data: bytes) -> int:
        fd = self._require_fd()
        view = memoryview(data)
        written = 0
        with _storage_errors("write", self.path):
            while written < len(view):
                written += os.write(fd, view[written:])
        return written

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        fd = self._require_fd()
        with _storage_errors("seek", self.path):
            return os.lseek(fd, offset, whence)

    def size(self) -> int:
        fd = self._require_fd()
        with _storage_errors("stat", self.path):
            return os.fstat(fd).st_size

    def flush(self) -> None:
        fd = self._require_fd()
        with _storage_errors("fsync", self.path):
            os.fsync(fd)

    def close(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        with _storage_errors("close", self.path):
            os.close(fd)

    def __repr__(self) -> str:
        return f"<FileHandle {self.path!r} fd={self._fd}>"


class FileStorage:
    """Local filesystem backend."""

    def open(self, path: str, access: Access, perms: int = DEFAULT_FILE_MODE) -> FileHandle:
        path = os.fspath(path)
        existed = access is not Access.EXCLUSIVE and os.path.exists(path)
        with _storage_errors("open", path):
            fd = os.open(path, access.os_flags, perms)
        return FileHandle(path, fd, created=access is not Access.READ and not existed)

    def remove(self, path: str) -> None:
        path = os.fspath(path)
        with _storage_errors("remove", path):
            os.remove(path)


__all__ = ["Access", "StorageHandle", "StorageBackend", "FileHandle", "FileStorage"]
