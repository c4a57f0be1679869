import sys
import os
import gc
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from secfile.secure_bytes import SecureBytes, secure_memzero


def test_secure_memzero_zeroes_buffer():
    buf = bytearray(b"\xff" * 64)
    secure_memzero(buf)
    assert buf == bytearray(64)
    secure_memzero(bytearray())


def test_view_is_readonly_copy():
    src = bytearray(b"secret-key-material")
    sb = SecureBytes(src)
    src[0] = 0
    view = sb.view()
    assert bytes(view) == b"secret-key-material"
    with pytest.raises(TypeError):
        view[0] = 1


def test_clear_is_idempotent_and_blocks_access():
    sb = SecureBytes(b"k" * 32)
    sb.clear()
    sb.clear()
    assert sb.cleared
    assert len(sb) == 0
    with pytest.raises(ValueError, match="already cleared"):
        sb.view()


def test_clear_with_outstanding_view_zeroes_bytes():
    sb = SecureBytes(b"\x42" * 32)
    view = sb.view()
    sb.clear()
    assert bytes(view) == bytes(32)


def test_repr_does_not_leak():
    sb = SecureBytes(b"topsecret")
    assert "topsecret" not in repr(sb)
    assert str(sb) == "<SecureBytes ***>"


def test_rejects_empty_and_wrong_types():
    with pytest.raises(ValueError):
        SecureBytes(b"")
    with pytest.raises(TypeError):
        SecureBytes("text")


def test_dropped_without_clear_is_zeroed_by_finalizer():
    sb = SecureBytes(b"\x42" * 32)
    buf = sb._buf
    del sb
    gc.collect()
    assert buf == bytearray(32)
