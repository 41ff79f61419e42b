"""
Custom exceptions for the hand sensor protocol.

Only TransportError is meant to propagate to callers as a hard failure.
The frame, overflow and payload errors are handed to error sinks by the
decoder and dispatcher and never raised out of them.
"""

from .constants import Command, ResultCode


class HandProtocolError(Exception):
    """Base exception for hand protocol errors."""
    pass


class TransportError(HandProtocolError):
    """Byte transport failure; the connection is assumed dead."""
    pass


class EndOfStream(TransportError):
    """Transport reached end of stream."""
    pass


class FrameError(HandProtocolError):
    """Frame parsing or building error."""
    pass


class FrameCorruption(FrameError):
    """Tail or checksum mismatch in a candidate frame."""

    def __init__(self, reason: str, expected: int, received: int):
        self.reason = reason
        self.expected = expected
        self.received = received
        super().__init__(
            f"{reason} mismatch: expected 0x{expected:02X}, received 0x{received:02X}"
        )


class BufferOverflow(FrameError):
    """Decoder buffer exceeded its capacity and was reset."""

    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"Buffer overflow: {size} bytes exceeds {capacity}")


class EncodeTooLarge(FrameError, ValueError):
    """Outbound payload does not fit the one-byte length field."""

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Payload length {length} exceeds maximum {limit}")


class PayloadTooShort(HandProtocolError):
    """Notification payload shorter than its fixed layout."""

    def __init__(self, kind: str, expected: int, received: int):
        self.kind = kind
        self.expected = expected
        self.received = received
        super().__init__(
            f"{kind} payload too short: expected {expected} bytes, got {received}"
        )


class CommandFailed(HandProtocolError):
    """Device acknowledged a command with a non-success result."""

    def __init__(self, ack):
        self.ack = ack
        super().__init__(
            f"{Command.name_of(ack.cmd)} failed: "
            f"{ResultCode.name_of(ack.result)} (0x{ack.result:02X})"
        )
