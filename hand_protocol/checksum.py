"""
Frame checksums.

Both algorithms cover CMD + LEN + PAYLOAD and keep only the low byte.
Neither is a CRC; they catch most single-byte errors and nothing more.
"""

from typing import Iterable


class Checksum:
    """One-byte frame checksum calculator."""

    @staticmethod
    def _sum(cmd: int, length: int, payload: Iterable[int]) -> int:
        total = (cmd + length) & 0xFF
        for byte in payload:
            total = (total + byte) & 0xFF
        return total

    @staticmethod
    def twos_complement(cmd: int, length: int, payload: Iterable[int] = b"") -> int:
        """
        Two's-complement of the byte sum.

        Args:
            cmd: Command type byte
            length: Payload length byte
            payload: Payload bytes

        Returns:
            Checksum such that sum + checksum == 0 (mod 256)
        """
        return (~Checksum._sum(cmd, length, payload) + 1) & 0xFF

    @staticmethod
    def modular_sum(cmd: int, length: int, payload: Iterable[int] = b"") -> int:
        """Plain byte sum modulo 256 (legacy revision)."""
        return Checksum._sum(cmd, length, payload)

    @staticmethod
    def verify(cmd: int, length: int, payload: bytes, checksum: int) -> bool:
        """Verify a two's-complement checksum."""
        return Checksum.twos_complement(cmd, length, payload) == checksum
