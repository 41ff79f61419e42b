"""Tests for frame checksum calculation."""

from hand_protocol.checksum import Checksum


def test_twos_complement_status_command():
    """STATUS with no payload: (~0x0B + 1) & 0xFF."""
    assert Checksum.twos_complement(0x0B, 0, b"") == 0xF5


def test_twos_complement_empty_is_zero():
    """Zero sum has a zero checksum."""
    assert Checksum.twos_complement(0x00, 0, b"") == 0x00


def test_twos_complement_cancels_sum():
    """Sum of covered bytes plus checksum is 0 mod 256."""
    cmd, payload = 0x20, bytes(range(200, 231))
    checksum = Checksum.twos_complement(cmd, len(payload), payload)
    assert (cmd + len(payload) + sum(payload) + checksum) % 256 == 0


def test_twos_complement_wraps():
    """Large sums keep only the low byte."""
    payload = b"\xFF" * 255
    result = Checksum.twos_complement(0xFF, 255, payload)
    assert 0 <= result <= 0xFF
    assert result == (-(0xFF + 255 + 0xFF * 255)) % 256


def test_twos_complement_accepts_list():
    """Payload may be any iterable of ints."""
    assert Checksum.twos_complement(0x13, 1, [2]) == Checksum.twos_complement(0x13, 1, b"\x02")


def test_modular_sum():
    """Legacy checksum is the plain byte sum."""
    assert Checksum.modular_sum(0x0B, 0) == 0x0B
    assert Checksum.modular_sum(0x0B, 2, b"\x01\x02") == 0x10
    assert Checksum.modular_sum(0xFF, 1, b"\x02") == 0x02


def test_deterministic():
    """Same input should always produce same output."""
    data = b"\x01\x02\x03"
    assert Checksum.twos_complement(0x05, 3, data) == Checksum.twos_complement(0x05, 3, data)


def test_verify():
    assert Checksum.verify(0x0B, 0, b"", 0xF5)
    assert not Checksum.verify(0x0B, 0, b"", 0xF4)
