"""
Central logger for secfile.

Goals:
- Rotate log file at LOG_PATH (only when SECFILE_LOG_PATH is set).
- Redact secrets (hex, base64, key/nonce assignments).
- Remove full tracebacks (keep type+message only).
- Stay silent by default: a library must not print unless asked to.

Public API: `logger`
"""

from __future__ import annotations

import contextlib
import inspect
import logging
import os
import sys
from logging import Logger
from logging.handlers import RotatingFileHandler
from typing import Any

from .config import LOG_BACKUP_COUNT, LOG_LEVEL, LOG_MAX_BYTES, LOG_PATH
from .redactlog import NoLocalsFilter, RedactingFormatter


class SecureRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler with owner-only file permissions (POSIX)."""

    def _set_secure_mode(self, path: str) -> None:
        if os.name != "nt":
            with contextlib.suppress(OSError):
                os.chmod(path, 0o600)

    def _open(self):
        stream = super()._open()
        self._set_secure_mode(self.baseFilename)
        return stream

    def doRollover(self) -> None:
        super().doRollover()
        if os.name == "nt":
            return
        self._set_secure_mode(self.baseFilename)
        for idx in range(1, self.backupCount + 1):
            candidate = self.rotation_filename(f"{self.baseFilename}.{idx}")
            if os.path.exists(candidate):
                self._set_secure_mode(candidate)


_LEVEL = getattr(logging, LOG_LEVEL, logging.WARNING)

_SENSITIVE_KEYS = {
    "key",
    "nonce",
    "iv",
    "secret",
    "token",
    "password",
    "plaintext",
    "data",
}
_ALLOWED_CONTEXT_KEYS = {
    "path",
    "filename",
    "operation",
    "mode",
    "offset",
    "whence",
    "size",
    "created",
    "reason",
}
_MAX_CONTEXT_VALUE_LEN = 120


def log_best_effort(channel: str, exc: BaseException, *, message: str | None = None) -> None:
    """Record a failed cleanup step at DEBUG; the caller carries on."""
    logging.getLogger(channel).debug("%s: %s: %s", message or "Best-effort step failed", type(exc).__name__, exc)


def _truncate_value(value: Any, limit: int = _MAX_CONTEXT_VALUE_LEN) -> str:
    """Render a value to a bounded representation."""
    try:
        rendered = repr(value)
    except Exception:
        rendered = f"<{type(value).__name__}>"
    if len(rendered) > limit:
        return rendered[:limit] + "..."
    return rendered


def _sanitize_mapping(mapping: dict[str, Any], *, allowed_keys: set[str] | None = None) -> dict[str, str]:
    """Collapse a mapping into a log-safe dictionary."""
    safe: dict[str, str] = {}
    for raw_key, value in mapping.items():
        key = str(raw_key)
        lowered = key.lower()
        if lowered.startswith("_") or callable(value):
            continue
        if lowered in _SENSITIVE_KEYS:
            safe[key] = "[REDACTED]"
            continue
        if allowed_keys is not None and lowered not in allowed_keys:
            safe[key] = "[hidden]"
            continue
        safe[key] = _truncate_value(value)
    return safe


def _ensure_log_dir() -> None:
    if LOG_PATH is None:
        return
    with contextlib.suppress(OSError):
        LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        if os.name != "nt":
            os.chmod(LOG_PATH.parent, 0o700)
            if LOG_PATH.exists():
                os.chmod(LOG_PATH, 0o600)


def _build_logger() -> Logger:
    lg = logging.getLogger("secfile")
    lg.setLevel(_LEVEL)

    if lg.handlers:
        return lg

    if LOG_PATH is not None:
        _ensure_log_dir()
        fh = SecureRotatingFileHandler(
            LOG_PATH,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
            delay=True,
        )
        fh.setFormatter(
            RedactingFormatter(
                fmt="%(asctime)s [%(levelname)s] %(message)s (%(pathname)s:%(lineno)d in %(funcName)s)",
                datefmt="%Y-%m-%d %H:%M:%S%z",
                enable_colors=False,
            )
        )
        lg.addHandler(fh)

    if _LEVEL <= logging.DEBUG:
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(
            RedactingFormatter(
                fmt="%(asctime)s [%(levelname)s] %(message)s (%(pathname)s:%(lineno)d)",
                datefmt="%H:%M:%S",
                enable_colors=True,
            )
        )
        lg.addHandler(sh)

    if lg.handlers:
        # our own handlers are in place; keep records out of the root logger
        lg.propagate = False
    else:
        lg.addHandler(logging.NullHandler())

    # the logger filter strips records before they propagate to the host's handlers;
    # the handler filters also cover records propagated up from child loggers
    lg.addFilter(NoLocalsFilter())
    for handler in lg.handlers:
        handler.addFilter(NoLocalsFilter())
    return lg


class DetailedLogger:
    """
    Logger wrapper that attaches sanitized context to error records.
    """

    def __init__(self, base_logger: Logger):
        self._logger = base_logger

    def __getattr__(self, name):
        return getattr(self._logger, name)

    def exception_with_context(
        self,
        msg: str,
        exc: BaseException | None = None,
        extra_context: dict[str, Any] | None = None,
        *,
        level: int = logging.ERROR,
    ) -> None:
        """
        Log an exception together with its caller and a sanitized context.

        Args:
            msg: Base error message
            exc: Exception to log (uses the one being handled if None)
            extra_context: Additional context; sensitive keys are redacted
            level: Record level; failures re-raised to the caller go at DEBUG
        """
        frame = inspect.currentframe()
        caller_frame = frame.f_back if frame else None
        try:
            context_info = []
            if caller_frame:
                caller_info = inspect.getframeinfo(caller_frame)
                context_info.append(
                    f"Caller: {caller_info.filename}:{caller_info.lineno} in {caller_info.function}"
                )
            if extra_context:
                safe_context = _sanitize_mapping(extra_context, allowed_keys=_ALLOWED_CONTEXT_KEYS)
                if safe_context:
                    context_info.append(f"Extra context: {safe_context}")

            full_msg = msg if not context_info else f"{msg} | Context: {' | '.join(context_info)}"
            if exc is not None:
                self._logger.log(level, full_msg, exc_info=(type(exc), exc, exc.__traceback__))
            else:
                self._logger.log(level, full_msg, exc_info=True)
        except Exception as log_exc:
            log_best_effort(self._logger.name, log_exc, message=f"{msg} | Logging error")
        finally:
            del caller_frame
            del frame


_base_logger = _build_logger()
logger: DetailedLogger = DetailedLogger(_base_logger)

__all__ = ["logger", "DetailedLogger", "SecureRotatingFileHandler", "log_best_effort"]
