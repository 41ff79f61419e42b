"""
Frame parsing and building.

Frame Format: [HEADER][CMD][LEN][PAYLOAD...][CHECKSUM][TAIL]
- HEADER: 0xAA (Start of frame)
- CMD: Command or notification code
- LEN: Payload length (0-255), NOT including CMD
- PAYLOAD: Command-specific data (0-255 bytes)
- CHECKSUM: two's-complement byte sum of CMD+LEN+PAYLOAD
- TAIL: 0x55 (End of frame)

The sentinels, the checksum algorithm and the buffer bounds come from a
FrameConfig so the older two-byte-sentinel revision runs on the same
parser.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Union

from .checksum import Checksum
from .constants import (
    FRAME_HEADER, FRAME_TAIL, MAX_PAYLOAD, BUFFER_SIZE, BUFFER_KEEP_TAIL,
    FRAME_ENABLE_TEXT, Command, Finger, Hand, ProtocolId,
)
from .exceptions import (
    BufferOverflow, EncodeTooLarge, FrameCorruption, HandProtocolError,
)

logger = logging.getLogger(__name__)

ErrorSink = Callable[[HandProtocolError], None]


@dataclass(frozen=True)
class FrameConfig:
    """Protocol revision: sentinels, checksum and decoder buffer bounds."""
    header: bytes = bytes([FRAME_HEADER])
    tail: bytes = bytes([FRAME_TAIL])
    max_payload: int = MAX_PAYLOAD
    checksum: Callable[[int, int, bytes], int] = Checksum.twos_complement
    buffer_size: int = BUFFER_SIZE
    keep_tail: int = BUFFER_KEEP_TAIL

    def __post_init__(self):
        if not self.header or not self.tail:
            raise ValueError("Header and tail sentinels must not be empty")
        if not 0 <= self.max_payload <= MAX_PAYLOAD:
            raise ValueError(f"max_payload must be 0-{MAX_PAYLOAD}, got {self.max_payload}")
        if not 0 <= self.keep_tail < self.buffer_size:
            raise ValueError("keep_tail must be smaller than buffer_size")

    @property
    def overhead(self) -> int:
        """Bytes on the wire besides the payload."""
        return len(self.header) + 2 + 1 + len(self.tail)

    def frame_length(self, payload_len: int) -> int:
        return self.overhead + payload_len


DEFAULT_CONFIG = FrameConfig()

# Sentinel values unconfirmed against legacy firmware
LEGACY_CONFIG = FrameConfig(
    header=b"\xAA\x55",
    tail=b"\x55\xAA",
    checksum=Checksum.modular_sum,
)


@dataclass(frozen=True)
class Frame:
    """Protocol frame structure."""
    cmd: int
    payload: bytes = field(default_factory=bytes)

    def __post_init__(self):
        if not isinstance(self.payload, bytes):
            object.__setattr__(self, "payload", bytes(self.payload))
        if len(self.payload) > MAX_PAYLOAD:
            raise EncodeTooLarge(len(self.payload), MAX_PAYLOAD)

    @property
    def payload_len(self) -> int:
        return len(self.payload)

    def __repr__(self) -> str:
        return (f"Frame(cmd={Command.name_of(self.cmd)}, "
                f"payload={self.payload.hex(' ') if self.payload else '(empty)'})")


class FrameBuilder:
    """Builds frames for transmission."""

    def __init__(self, config: FrameConfig = DEFAULT_CONFIG):
        self.config = config

    def encode(self, cmd: int, payload: Union[bytes, Sequence[int]] = b"") -> bytes:
        """
        Build complete frame with checksum.

        Args:
            cmd: Command code
            payload: Command-specific data

        Returns:
            Complete frame bytes ready for transmission

        Raises:
            EncodeTooLarge: If payload exceeds the revision's maximum
        """
        payload = bytes(payload)
        length = len(payload)
        if length > self.config.max_payload:
            raise EncodeTooLarge(length, self.config.max_payload)

        checksum = self.config.checksum(cmd, length, payload)
        return (self.config.header + bytes([cmd, length]) + payload
                + bytes([checksum]) + self.config.tail)

    def build(self, frame: Frame) -> bytes:
        """Build frame bytes from a Frame object."""
        return self.encode(frame.cmd, frame.payload)

    @staticmethod
    def raw_command(text: str) -> bytes:
        """
        Build an unframed text command.

        The device accepts a few bootstrap commands as newline-terminated
        ASCII outside the binary framing.
        """
        if not text.endswith("\n"):
            text += "\n"
        return text.encode("ascii")

    def build_enable(self) -> bytes:
        """Build the framed-mode enable command (raw text)."""
        return self.raw_command(FRAME_ENABLE_TEXT)

    def build_disable(self) -> bytes:
        return self.encode(Command.DISABLE)

    def build_quick_start(self) -> bytes:
        """Build QUICK_START calibration command frame."""
        return self.encode(Command.QUICK_START)

    def build_quick_finish(self) -> bytes:
        """Build QUICK_FINISH calibration command frame."""
        return self.encode(Command.QUICK_FINISH)

    def build_anchor_start(self, hand: int, fingers: Sequence[int]) -> bytes:
        """
        Build ANCHOR_START command frame.

        Args:
            hand: Hand side (0=right, 1=left)
            fingers: Finger codes to calibrate (1=index .. 4=pinky)
        """
        if hand not in (Hand.RIGHT, Hand.LEFT):
            raise ValueError(f"Hand must be 0 or 1, got {hand}")
        for finger in fingers:
            if not Finger.INDEX <= finger <= Finger.PINKY:
                raise ValueError(f"Finger must be 1-4, got {finger}")
        payload = bytes([hand, len(fingers)]) + bytes(fingers)
        return self.encode(Command.ANCHOR_START, payload)

    def build_record(self) -> bytes:
        return self.encode(Command.RECORD)

    def build_apply(self) -> bytes:
        return self.encode(Command.APPLY)

    def build_save(self) -> bytes:
        return self.encode(Command.SAVE)

    def build_load(self) -> bytes:
        return self.encode(Command.LOAD)

    def build_clear(self) -> bytes:
        return self.encode(Command.CLEAR)

    def build_reset(self) -> bytes:
        return self.encode(Command.RESET)

    def build_status(self) -> bytes:
        """Build STATUS query command frame."""
        return self.encode(Command.STATUS)

    def build_can(self, enabled: bool) -> bytes:
        """Build CAN control enable/disable frame."""
        return self.encode(Command.CAN_ENABLE if enabled else Command.CAN_DISABLE)

    def build_sensor(self, enabled: bool) -> bytes:
        """Build sensor data push enable/disable frame."""
        return self.encode(Command.SENSOR_ENABLE if enabled else Command.SENSOR_DISABLE)

    def build_mapping(self, enabled: bool) -> bytes:
        """Build mapping data push enable/disable frame."""
        return self.encode(Command.MAPPING_ENABLE if enabled else Command.MAPPING_DISABLE)

    def build_set_protocol(self, protocol_id: int) -> bytes:
        """
        Build SET_PROTOCOL command frame.

        Args:
            protocol_id: 0=L20, 1=L10, 2=L21
        """
        if not ProtocolId.L20 <= protocol_id <= ProtocolId.L21:
            raise ValueError(f"Protocol ID must be 0 (L20), 1 (L10) or 2 (L21), got {protocol_id}")
        return self.encode(Command.SET_PROTOCOL, bytes([protocol_id]))


class FrameParser:
    """
    Parses frames from an arbitrarily chunked byte stream.

    Validation failures drop a single byte and rescan, so a header value
    inside garbage never costs more than one byte of lock. Recoverable
    errors go to ``on_error`` and the log; ``feed`` never raises them.

    Not thread-safe: one reader feeds one parser.
    """

    def __init__(
        self,
        config: FrameConfig = DEFAULT_CONFIG,
        on_error: Optional[ErrorSink] = None
    ):
        """
        Initialize frame parser.

        Args:
            config: Protocol revision
            on_error: Optional sink for recoverable errors
        """
        self.config = config
        self.on_error = on_error
        self._buffer = bytearray()
        self.frames_ok = 0
        self.frames_dropped = 0
        self.overflows = 0

    def feed(self, data: bytes) -> List[Frame]:
        """
        Add data to parse buffer and extract every complete frame.

        Args:
            data: Next chunk from the transport

        Returns:
            Validated frames in wire order
        """
        frames: List[Frame] = []
        step = max(1, self.config.buffer_size // 2)
        for offset in range(0, len(data), step):
            self._append(data[offset:offset + step])
            frames.extend(self._parse_buffer())
        return frames

    def frames(self, chunks: Iterable[bytes]) -> Iterator[Frame]:
        """Lazily yield frames decoded from a chunk source."""
        for chunk in chunks:
            yield from self.feed(chunk)

    def clear(self) -> None:
        """Clear parse buffer."""
        self._buffer = bytearray()

    @property
    def buffer_size(self) -> int:
        """Get current buffer size."""
        return len(self._buffer)

    def _append(self, data: bytes) -> None:
        self._buffer.extend(data)
        if len(self._buffer) > self.config.buffer_size:
            self._reset_buffer(self.config.buffer_size)

    def _reset_buffer(self, limit: int) -> None:
        # Keep only the last keep_tail bytes; a header may straddle the cut
        size = len(self._buffer)
        keep = self.config.keep_tail
        self._buffer = self._buffer[-keep:] if keep else bytearray()
        self.overflows += 1
        self._report(BufferOverflow(size, limit))

    def _parse_buffer(self) -> List[Frame]:
        config = self.config
        header = config.header
        hlen = len(header)
        frames: List[Frame] = []

        while self._buffer:
            start = self._buffer.find(header)
            if start < 0:
                if len(self._buffer) > config.buffer_size // 2:
                    logger.debug(f"No frame header in {len(self._buffer)} bytes")
                    self._reset_buffer(config.buffer_size // 2)
                break

            # Remove bytes before header
            if start > 0:
                logger.debug(f"Discarding {start} bytes before header")
                del self._buffer[:start]

            # Need at least HEADER + CMD + LEN
            if len(self._buffer) < hlen + 2:
                break

            cmd = self._buffer[hlen]
            length = self._buffer[hlen + 1]
            if length > config.max_payload:
                self._resync(FrameCorruption("Length", config.max_payload, length))
                continue

            total = config.frame_length(length)
            if len(self._buffer) < total:
                break

            payload_start = hlen + 2
            payload = bytes(self._buffer[payload_start:payload_start + length])
            recv_checksum = self._buffer[payload_start + length]
            tail = bytes(self._buffer[payload_start + length + 1:total])

            if tail != config.tail:
                self._resync(FrameCorruption(
                    "Tail",
                    int.from_bytes(config.tail, "big"),
                    int.from_bytes(tail, "big"),
                ))
                continue

            calc_checksum = config.checksum(cmd, length, payload)
            if calc_checksum != recv_checksum:
                self._resync(FrameCorruption("Checksum", calc_checksum, recv_checksum))
                continue

            del self._buffer[:total]
            self.frames_ok += 1
            frames.append(Frame(cmd, payload))

        return frames

    def _resync(self, error: FrameCorruption) -> None:
        # Drop only the leading header byte and rescan
        del self._buffer[:1]
        self.frames_dropped += 1
        self._report(error)

    def _report(self, error: HandProtocolError) -> None:
        logger.warning(str(error))
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception as e:
            logger.error(f"Error sink raised: {e}")
