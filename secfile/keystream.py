"""
keystream.py  –  AES-256-CTR keystream with explicit position tracking

The keystream byte at logical offset i is a pure function of
(key, nonce, i). The nonce is the initial 128-bit counter block, exactly
as `modes.CTR` consumes it.

Security notes:
• a (key, nonce) pair must NEVER protect two different plaintexts.
  Nothing here checks it; fresh random nonces per stream are the only defence.
• no integrity: CTR is malleable, tampering goes undetected.

Cost notes:
• realign(offset) rebuilds the cipher and discards `offset` keystream bytes,
  so it is O(offset). The counter block is never manipulated directly.
"""
from __future__ import annotations

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .config import ADVANCE_CHUNK_SIZE, KEY_SIZE, NONCE_SIZE
from .errors import CipherInitError, InvalidOffsetError, KeyLengthError
from .secure_bytes import BytesLike


class KeystreamCipher:
    """Counter-mode keystream that can be advanced or rebuilt at an offset."""

    def __init__(self, key: BytesLike, nonce: BytesLike):
        if len(key) != KEY_SIZE:
            raise KeyLengthError(KEY_SIZE, len(key))
        if len(nonce) != NONCE_SIZE:
            raise CipherInitError(f"{NONCE_SIZE} byte nonce required, got {len(nonce)}")
        self._key = key
        self._nonce = nonce
        self._ctx = None
        self._position = 0
        self._zeros: bytes | None = None
        self.rebuild()

    @property
    def position(self) -> int:
        """Keystream bytes consumed since logical offset 0."""
        return self._position

    @property
    def wiped(self) -> bool:
        return self._ctx is None and self._key is None

    def rebuild(self) -> None:
        """Start a fresh keystream at position 0 from the same key and nonce."""
        if self._key is None:
            raise CipherInitError("keystream has been wiped")
        try:
            cipher = Cipher(algorithms.AES(self._key), modes.CTR(self._nonce))
            ctx = cipher.encryptor()
        except (ValueError, TypeError) as exc:
            raise CipherInitError(f"AES-CTR init failed: {exc}") from exc
        self._finalize_ctx()
        self._ctx = ctx
        self._position = 0

    def transform(self, data: BytesLike) -> bytes:
        """XOR ``data`` against the next ``len(data)`` keystream bytes.

        The same call encrypts and decrypts.
        """
        if self._ctx is None:
            raise CipherInitError("keystream has been wiped")
        out = self._ctx.update(data)
        self._position += len(out)
        return out

    def advance(self, n: int) -> None:
        """Consume and discard the next ``n`` keystream bytes."""
        if n < 0:
            raise InvalidOffsetError(n)
        if self._ctx is None:
            raise CipherInitError("keystream has been wiped")
        if self._zeros is None:
            self._zeros = bytes(ADVANCE_CHUNK_SIZE)
        while n:
            step = min(n, ADVANCE_CHUNK_SIZE)
            self._ctx.update(self._zeros[:step] if step < ADVANCE_CHUNK_SIZE else self._zeros)
            self._position += step
            n -= step

    def realign(self, offset: int) -> None:
        """Position the keystream at ``offset`` as if consumed sequentially from 0."""
        if offset < 0:
            raise InvalidOffsetError(offset)
        self.rebuild()
        self.advance(offset)

    def wipe(self) -> None:
        """Drop the cipher context and the key/nonce references. Idempotent."""
        self._finalize_ctx()
        self._ctx = None
        self._key = None
        self._nonce = None
        self._zeros = None
        self._position = 0

    def _finalize_ctx(self) -> None:
        if self._ctx is not None:
            # CTR has no tail; finalize() only releases the OpenSSL context
            self._ctx.finalize()

    def __repr__(self) -> str:
        state = "wiped" if self.wiped else f"position={self._position}"
        return f"<KeystreamCipher AES-256-CTR {state}>"


__all__ = ["KeystreamCipher"]
