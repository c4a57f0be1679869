import sys
import os
import logging

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from secfile.logger import DetailedLogger, _sanitize_mapping, log_best_effort
from secfile.redactlog import NoLocalsFilter, RedactingFormatter


def _record(msg, *args, exc_info=None):
    return logging.LogRecord("secfile", logging.ERROR, __file__, 1, msg, args, exc_info)


def test_formatter_redacts_hex_and_assignments():
    fmt = RedactingFormatter("%(message)s")
    out = fmt.format(_record("nonce=%s key: %s", "00112233445566778899aabbccddeeff", "abc"))
    assert "00112233445566778899aabbccddeeff" not in out
    assert "key=[redacted]" in out


def test_formatter_keeps_plain_messages():
    fmt = RedactingFormatter("%(message)s")
    assert fmt.format(_record("Opened %s (mode=%s)", "/tmp/a", "rb")) == "Opened /tmp/a (mode=rb)"


def test_no_locals_filter_strips_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        rec = _record("failed", exc_info=sys.exc_info())
    assert NoLocalsFilter().filter(rec)
    assert rec.exc_info is None
    assert "RuntimeError: boom" in rec.msg


def test_sanitize_mapping_redacts_secrets():
    safe = _sanitize_mapping({"path": "/x", "key": b"k" * 32, "other": 1, "_p": 2},
                             allowed_keys={"path"})
    assert safe == {"path": "'/x'", "key": "[REDACTED]", "other": "[hidden]"}


def test_exception_with_context(caplog):
    base = logging.getLogger("secfile.test_detail")
    base.propagate = True
    detailed = DetailedLogger(base)
    with caplog.at_level(logging.ERROR, logger="secfile.test_detail"):
        detailed.exception_with_context("open failed", ValueError("bad"), {"mode": "rb", "key": "x"})
    assert "open failed" in caplog.text
    assert "[REDACTED]" in caplog.text


def test_open_failure_keeps_tracebacks_out_of_host_handlers(tmp_path, caplog):
    """A failure re-raised to the caller is logged at DEBUG, without exc_info."""
    import pytest
    import secfile
    from secfile import HeaderCorruptError

    path = tmp_path / "short.secret"
    path.write_bytes(b"\x01" * 3)
    with caplog.at_level(logging.DEBUG, logger="secfile"):
        with pytest.raises(HeaderCorruptError):
            secfile.open(path, b"k" * 32, "rb")
    assert any(r.getMessage().startswith("Secure open failed") for r in caplog.records)
    assert all(r.exc_info is None for r in caplog.records)
    assert all(r.levelno < logging.ERROR for r in caplog.records)
    assert "Traceback" not in caplog.text


def test_log_best_effort_records_debug(caplog):
    with caplog.at_level(logging.DEBUG, logger="secfile.cleanup"):
        log_best_effort("secfile.cleanup", OSError("busy"), message="cleanup of /tmp/x")
    (rec,) = caplog.records
    assert rec.name == "secfile.cleanup"
    assert rec.levelno == logging.DEBUG
    assert rec.getMessage() == "cleanup of /tmp/x: OSError: busy"
