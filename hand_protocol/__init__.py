"""
Hand Protocol - Python implementation of the hand-joint sensor serial protocol.

This package provides:
- Protocol constants and result codes
- Two's-complement and modular-sum checksums
- Frame building and resynchronizing stream parsing
- Sensor / mapping telemetry decoding
- Frame dispatching with statistics
- Byte transports and a threaded protocol client
"""

from .constants import (
    FRAME_HEADER, FRAME_TAIL, MAX_PAYLOAD, JOINT_NAMES,
    Command, ResultCode, Hand, ProtocolId, Finger,
)
from .checksum import Checksum
from .exceptions import (
    HandProtocolError, TransportError, EndOfStream, FrameError,
    FrameCorruption, BufferOverflow, EncodeTooLarge, PayloadTooShort,
    CommandFailed,
)
from .frame import (
    Frame, FrameConfig, FrameBuilder, FrameParser,
    DEFAULT_CONFIG, LEGACY_CONFIG,
)
from .telemetry import (
    SensorReading, MappingReading, DeviceStatus,
    decode_sensor, decode_mapping, decode_status,
)
from .dispatcher import CommandAck, Dispatcher, Statistics
from .transport import ByteTransport, SerialTransport, LoopbackTransport
from .client import HandSensorClient

__version__ = "1.0.0"
__all__ = [
    # Constants
    "FRAME_HEADER", "FRAME_TAIL", "MAX_PAYLOAD", "JOINT_NAMES",
    "Command", "ResultCode", "Hand", "ProtocolId", "Finger",
    # Checksum
    "Checksum",
    # Exceptions
    "HandProtocolError", "TransportError", "EndOfStream", "FrameError",
    "FrameCorruption", "BufferOverflow", "EncodeTooLarge", "PayloadTooShort",
    "CommandFailed",
    # Frame
    "Frame", "FrameConfig", "FrameBuilder", "FrameParser",
    "DEFAULT_CONFIG", "LEGACY_CONFIG",
    # Telemetry
    "SensorReading", "MappingReading", "DeviceStatus",
    "decode_sensor", "decode_mapping", "decode_status",
    # Dispatcher
    "CommandAck", "Dispatcher", "Statistics",
    # Transport
    "ByteTransport", "SerialTransport", "LoopbackTransport",
    # Client
    "HandSensorClient",
]
