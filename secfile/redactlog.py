from __future__ import annotations

import logging
import re
from typing import Pattern


class NoLocalsFilter(logging.Filter):
    """
    Avoid logging full tracebacks; keep only type+message.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if record.exc_info:
            etype, evalue, _tb = record.exc_info
            if etype is not None:
                suffix = f" | {etype.__name__}: {evalue}"
                record.msg = f"{record.msg}{suffix.replace('%', '%%') if record.args else suffix}"
            record.exc_info = None
            record.exc_text = None
        return True


class RedactingFormatter(logging.Formatter):
    """
    Formatter that REDACTS sensitive content:
      - long hex (>=32 chars, i.e. a 16-byte nonce or longer) → [hex_redacted]
      - common base64 (>=32 chars) → [b64_redacted]
      - suspicious key=value pairs (key|nonce|iv|secret|token|password) → [redacted]
    """

    _HEX_RE: Pattern[str] = re.compile(r"\b[0-9a-fA-F]{32,}\b")
    _B64_RE: Pattern[str] = re.compile(r"\b[A-Za-z0-9+/]{32,}={0,2}(?![A-Za-z0-9+/=])")
    _KEYVAL_RE: Pattern[str] = re.compile(
        r"(?i)\b(password|secret|token|nonce|iv|key)\s*[=:]\s*([^\s,;|]+)"
    )

    def __init__(self, fmt: str, datefmt: str | None = None, enable_colors: bool = False):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._colors = enable_colors

    def _redact(self, msg: str) -> str:
        msg = self._HEX_RE.sub("[hex_redacted]", msg)
        msg = self._B64_RE.sub("[b64_redacted]", msg)
        msg = self._KEYVAL_RE.sub(lambda m: f"{m.group(1)}=[redacted]", msg)
        return msg

    def format(self, record: logging.LogRecord) -> str:
        out = self._redact(super().format(record))
        if not self._colors:
            return out
        if record.levelno >= logging.ERROR:
            return f"\x1b[31m{out}\x1b[0m"
        if record.levelno >= logging.WARNING:
            return f"\x1b[33m{out}\x1b[0m"
        if record.levelno >= logging.INFO:
            return f"\x1b[37m{out}\x1b[0m"
        return f"\x1b[90m{out}\x1b[0m"
