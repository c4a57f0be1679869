"""
Central parameters for secfile.
Values are read once at import; environment overrides are optional.
"""

from __future__ import annotations

import os
from pathlib import Path

# ───── cipher geometry ──────────────────────────────────────────────────
KEY_SIZE = 32  # AES-256
NONCE_SIZE = 16  # AES block size; also the on-disk header length

# Keystream fast-forward is done against a zero buffer of at most this size
ADVANCE_CHUNK_SIZE = max(16, int(os.getenv("SECFILE_ADVANCE_CHUNK", str(1024 * 1024))))

# ───── storage ──────────────────────────────────────────────────────────
DEFAULT_FILE_MODE = 0o600

# ───── logging ──────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("SECFILE_LOG_LEVEL", "WARNING").upper()
_log_path = os.getenv("SECFILE_LOG_PATH", "").strip()
LOG_PATH: Path | None = Path(_log_path).expanduser() if _log_path else None
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


__all__ = [
    "KEY_SIZE",
    "NONCE_SIZE",
    "ADVANCE_CHUNK_SIZE",
    "DEFAULT_FILE_MODE",
    "LOG_LEVEL",
    "LOG_PATH",
    "LOG_MAX_BYTES",
    "LOG_BACKUP_COUNT",
]
