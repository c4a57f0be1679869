"""
stream.py  –  transparent AES-256-CTR file wrapper

Callers read and write plaintext; storage only ever sees

    NONCE(16) | CIPHERTEXT

The wrapper keeps one invariant above all: before any read or write the
keystream position equals the logical offset (physical offset - 16).

Modes follow the builtin ``open``: "r", "w", "x", "a" with an optional
"b". A stream is either read-only or write-only for its whole life;
"+" modes are rejected because one keystream cannot serve two cursors.

Seek cost: the keystream is rebuilt from (key, nonce) and run forward to
the target, so seek(n) is O(n). Append-open is O(existing length) for the
same reason.
"""
from __future__ import annotations

import logging
import os
from typing import Protocol, runtime_checkable

from .config import DEFAULT_FILE_MODE, KEY_SIZE, NONCE_SIZE
from .errors import (
    ClosedStreamError,
    InvalidOffsetError,
    KeyLengthError,
    StorageError,
    UnsupportedModeError,
)
from .header import create_header, data_length, read_header
from .keystream import KeystreamCipher
from .logger import log_best_effort, logger
from .secure_bytes import BytesLike, SecureBytes, secure_memzero
from .storage import Access, FileStorage, StorageBackend, StorageHandle

_ACCESS_BY_CHAR = {
    "r": Access.READ,
    "w": Access.TRUNCATE,
    "x": Access.EXCLUSIVE,
    "a": Access.APPEND,
}


@runtime_checkable
class SecureStream(Protocol):
    """What a secure stream offers: read, write, seek, close."""

    def read(self, size: int = -1) -> bytes: ...

    def write(self, data: BytesLike) -> int: ...

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int: ...

    def close(self) -> None: ...


def parse_mode(mode: str) -> Access:
    """Map an ``open``-style mode string to a storage access kind."""
    if not isinstance(mode, str):
        raise TypeError(f"mode must be str, not {type(mode).__name__}")
    if "+" in mode:
        raise UnsupportedModeError(mode, "Simultaneous read and write is not supported")
    if "t" in mode:
        raise UnsupportedModeError(mode, "Text mode is not supported; secure files are binary")
    if len(set(mode)) != len(mode) or not set(mode) <= set("rwxab"):
        raise UnsupportedModeError(mode)
    kinds = [c for c in mode if c in _ACCESS_BY_CHAR]
    if len(kinds) != 1:
        raise UnsupportedModeError(mode, f"Mode must have exactly one of r/w/x/a: {mode!r}")
    return _ACCESS_BY_CHAR[kinds[0]]


def _validate_key(key: BytesLike) -> None:
    if not isinstance(key, (bytes, bytearray, memoryview)):
        raise TypeError(f"key must be bytes-like, not {type(key).__name__}")
    size = memoryview(key).nbytes
    if size != KEY_SIZE:
        raise KeyLengthError(KEY_SIZE, size)


class SecureFile:
    """Encrypting file object over a `StorageHandle`.

    Use :func:`open` to construct one.
    """

    def __init__(self, name: str, mode: str, access: Access, handle: StorageHandle, key: BytesLike):
        self._name = name
        self._mode = mode
        self._access = access
        self._handle = handle
        self._closed = True  # until the keystream is aligned
        self._misaligned = False
        self._key = SecureBytes(key)
        self._nonce = bytearray()
        self._keystream: KeystreamCipher | None = None
        self._pos = 0

        try:
            if access is Access.READ:
                self._nonce = read_header(handle)
            elif handle.size() == 0:
                self._nonce = create_header(handle)
            else:
                # append: recover the nonce, continue after existing ciphertext
                self._nonce = read_header(handle)
                self._pos = data_length(handle)
                handle.seek(0, os.SEEK_END)

            self._keystream = KeystreamCipher(self._key.view(), self._nonce)
            self._keystream.advance(self._pos)
        except Exception:
            if self._keystream is not None:
                self._keystream.wipe()
            secure_memzero(self._nonce)
            self._key.clear()
            raise
        self._closed = False

    # ── state ─────────────────────────────────────────────────────────
    @property
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        self._check_open()
        return self._access is Access.READ

    def writable(self) -> bool:
        self._check_open()
        return self._access is not Access.READ

    def seekable(self) -> bool:
        self._check_open()
        return True

    def tell(self) -> int:
        """Current logical offset."""
        self._check_open()
        return self._pos

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedStreamError()

    def _sync(self) -> None:
        """Re-establish cursor/keystream alignment after a failed storage call."""
        if not self._misaligned:
            return
        self._handle.seek(self._pos + NONCE_SIZE, os.SEEK_SET)
        self._keystream.realign(self._pos)
        self._misaligned = False

    # ── I/O ───────────────────────────────────────────────────────────
    def read(self, size: int | None = -1) -> bytes:
        """Read and decrypt up to ``size`` bytes (all remaining if negative).

        A short result means end of data.
        """
        self._check_open()
        if self._access is not Access.READ:
            raise UnsupportedModeError(self._mode, "Stream not opened for reading")
        self._sync()
        if size is None or size < 0:
            size = max(0, data_length(self._handle) - self._pos)
        if size == 0:
            return b""
        try:
            ct = self._handle.read(size)
        except StorageError:
            self._misaligned = True
            raise
        pt = self._keystream.transform(ct)
        self._pos += len(ct)
        return pt

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        data = self.read(view.nbytes)
        view[: len(data)] = data
        return len(data)

    def write(self, data: BytesLike) -> int:
        """Encrypt ``data`` at the current offset and write all of it."""
        self._check_open()
        if self._access is Access.READ:
            raise UnsupportedModeError(self._mode, "Stream not opened for writing")
        self._sync()
        view = memoryview(data).cast("B")
        if not view.nbytes:
            return 0
        ct = self._keystream.transform(view)
        try:
            self._handle.write(ct)
        except StorageError:
            self._misaligned = True
            raise
        self._pos += view.nbytes
        return view.nbytes

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move to a logical offset and realign the keystream there.

        Costs O(new offset): the keystream is regenerated from offset 0.
        """
        self._check_open()
        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._pos + offset
        elif whence == os.SEEK_END:
            target = self._handle.size() - NONCE_SIZE + offset
        else:
            raise ValueError(f"invalid whence ({whence}, should be 0, 1 or 2)")
        if target < 0:
            raise InvalidOffsetError(target)

        try:
            self._handle.seek(target + NONCE_SIZE, os.SEEK_SET)
        except StorageError:
            self._misaligned = True
            raise
        self._keystream.realign(target)
        self._pos = target
        self._misaligned = False
        logger.debug("Seek %s -> %d (whence=%d)", self._name, target, whence)
        return target

    def flush(self) -> None:
        self._check_open()
        if self._access is not Access.READ:
            self._handle.flush()

    def close(self) -> None:
        """Wipe key, nonce and keystream, then release storage. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._keystream is not None:
                self._keystream.wipe()
            secure_memzero(self._nonce)
            self._key.clear()
        finally:
            self._handle.close()
        logger.debug("Closed %s", self._name)

    def __enter__(self) -> SecureFile:
        self._check_open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        # instances whose __init__ failed are already wiped and report closed
        if getattr(self, "_closed", True):
            return
        try:
            self.close()
        except Exception as exc:
            log_best_effort(__name__, exc, message="close on garbage collection failed")

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"offset={self._pos}"
        return f"<SecureFile name={self._name!r} mode={self._mode!r} {state}>"


def _abandon(storage: StorageBackend, path: str, handle: StorageHandle) -> None:
    """Undo a failed open: release the handle and drop an object we just created."""
    try:
        handle.close()
    except StorageError as exc:
        log_best_effort(__name__, exc, message=f"close after failed open of {path}")
    if handle.created:
        try:
            storage.remove(path)
        except StorageError as exc:
            log_best_effort(__name__, exc, message=f"cleanup of {path}")
        else:
            logger.debug("Removed partially initialised %s", path)


def open(
    path: str | os.PathLike[str],
    key: BytesLike,
    mode: str = "rb",
    *,
    perms: int = DEFAULT_FILE_MODE,
    storage: StorageBackend | None = None,
) -> SecureFile:
    """Open ``path`` as an encrypted stream.

    Args:
        path: storage location
        key: 32 raw key bytes; a private copy is kept and wiped on close
        mode: "rb" (read), "wb" (create/truncate), "xb" (create new),
            "ab" (append); "+" modes raise UnsupportedModeError
        perms: permission bits for newly created files
        storage: backend to use; local files by default

    Mode and key are validated before storage is touched. If opening fails
    after a new object was created, the object is removed.
    """
    access = parse_mode(mode)
    _validate_key(key)
    name = os.fspath(path)
    storage = storage if storage is not None else FileStorage()

    handle = storage.open(name, access, perms)
    try:
        sf = SecureFile(name, mode, access, handle, key)
    except Exception as exc:
        logger.exception_with_context(
            "Secure open failed",
            exc,
            {"path": name, "mode": mode, "created": handle.created},
            level=logging.DEBUG,
        )
        _abandon(storage, name, handle)
        raise
    logger.debug("Opened %s (mode=%s, offset=%d)", name, mode, sf.tell())
    return sf


def write_file(
    path: str | os.PathLike[str],
    key: BytesLike,
    data: BytesLike,
    *,
    append: bool = False,
    perms: int = DEFAULT_FILE_MODE,
) -> int:
    """Encrypt ``data`` into ``path`` (truncating unless ``append``)."""
    with open(path, key, "ab" if append else "wb", perms=perms) as f:
        return f.write(data)


def read_file(path: str | os.PathLike[str], key: BytesLike) -> bytes:
    """Decrypt the whole of ``path``."""
    with open(path, key, "rb") as f:
        return f.read()


__all__ = ["SecureStream", "SecureFile", "parse_mode", "open", "write_file", "read_file"]
