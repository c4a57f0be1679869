import sys
import os
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from secfile import keystream as keystream_mod
from secfile.errors import CipherInitError, InvalidOffsetError, KeyLengthError
from secfile.keystream import KeystreamCipher

KEY = bytes(range(32))
NONCE = bytes(range(100, 116))


def _reference_keystream(n: int) -> bytes:
    enc = Cipher(algorithms.AES(KEY), modes.CTR(NONCE)).encryptor()
    return enc.update(bytes(n))


def test_transform_matches_aes_ctr():
    ks = KeystreamCipher(KEY, NONCE)
    assert ks.transform(bytes(64)) == _reference_keystream(64)
    assert ks.position == 64


def test_transform_is_involutive():
    plain = b"counter mode is its own inverse"
    ct = KeystreamCipher(KEY, NONCE).transform(plain)
    assert ct != plain
    assert KeystreamCipher(KEY, NONCE).transform(ct) == plain


@pytest.mark.parametrize("offset", [0, 1, 15, 16, 17, 1000, 4096 + 3])
def test_realign_equals_sequential(offset):
    """Rebuild + advance(offset) lands on the same keystream bytes."""
    expected = _reference_keystream(offset + 32)[offset:]

    sequential = KeystreamCipher(KEY, NONCE)
    sequential.transform(bytes(offset))
    assert sequential.transform(bytes(32)) == expected

    jumped = KeystreamCipher(KEY, NONCE)
    jumped.transform(bytes(123))
    jumped.realign(offset)
    assert jumped.position == offset
    assert jumped.transform(bytes(32)) == expected


def test_advance_in_chunks(monkeypatch):
    monkeypatch.setattr(keystream_mod, "ADVANCE_CHUNK_SIZE", 16)
    ks = KeystreamCipher(KEY, NONCE)
    ks.advance(50)
    assert ks.position == 50
    assert ks.transform(bytes(10)) == _reference_keystream(60)[50:]


def test_rebuild_resets_position():
    ks = KeystreamCipher(KEY, NONCE)
    first = ks.transform(bytes(20))
    ks.rebuild()
    assert ks.position == 0
    assert ks.transform(bytes(20)) == first


def test_negative_offsets_rejected():
    ks = KeystreamCipher(KEY, NONCE)
    with pytest.raises(InvalidOffsetError):
        ks.advance(-1)
    with pytest.raises(InvalidOffsetError):
        ks.realign(-16)


def test_key_length_checked():
    with pytest.raises(KeyLengthError):
        KeystreamCipher(KEY[:16], NONCE)


def test_bad_nonce_rejected():
    with pytest.raises(CipherInitError):
        KeystreamCipher(KEY, NONCE[:12])


def test_wipe_blocks_further_use():
    ks = KeystreamCipher(KEY, NONCE)
    ks.transform(b"abc")
    ks.wipe()
    ks.wipe()
    assert ks.wiped
    assert "wiped" in repr(ks)
    with pytest.raises(CipherInitError):
        ks.transform(b"x")
    with pytest.raises(CipherInitError):
        ks.realign(0)
