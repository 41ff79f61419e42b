"""
Frame dispatcher and response router.

Notifications (SENSOR_DATA, MAPPING_DATA) are decoded into readings and
handed to the telemetry sink. Every other frame is an acknowledgement
whose first payload byte is the ResultCode of the original command.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Union

from .constants import Command, ResultCode
from .exceptions import PayloadTooShort
from .frame import Frame
from .telemetry import MappingReading, SensorReading, decode_mapping, decode_sensor

logger = logging.getLogger(__name__)

Reading = Union[SensorReading, MappingReading]
Event = Union[SensorReading, MappingReading, "CommandAck"]


@dataclass(frozen=True)
class CommandAck:
    """Acknowledgement for a previously sent command."""
    ok: bool
    cmd: int
    result: int
    extra: bytes = b""

    @property
    def result_name(self) -> str:
        return ResultCode.name_of(self.result)

    def __repr__(self) -> str:
        return (f"CommandAck({Command.name_of(self.cmd)}, {self.result_name}, "
                f"extra={self.extra.hex(' ') if self.extra else '(empty)'})")


@dataclass
class Statistics:
    """Notification counters owned by one Dispatcher."""
    packet_count: int = 0
    update_rate: int = 0        # Hz, instantaneous
    last_update_time: float = 0.0   # ms

    def update(self, now: float) -> None:
        """Record a notification received at ``now`` (ms)."""
        if now > self.last_update_time:
            self.update_rate = round(1000 / (now - self.last_update_time))
        self.last_update_time = now
        self.packet_count += 1

    def reset(self, now: float = 0.0) -> None:
        self.packet_count = 0
        self.update_rate = 0
        self.last_update_time = now

    def snapshot(self) -> 'Statistics':
        """Return a copy safe to hand to other threads."""
        return replace(self)


def _now_ms() -> float:
    return time.time() * 1000.0


class Dispatcher:
    """Routes validated frames to telemetry and response sinks."""

    def __init__(
        self,
        on_telemetry: Optional[Callable[[Reading], None]] = None,
        on_response: Optional[Callable[[CommandAck], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        clock: Callable[[], float] = _now_ms
    ):
        """
        Initialize dispatcher.

        Args:
            on_telemetry: Sink for SensorReading / MappingReading
            on_response: Sink for CommandAck
            on_error: Sink for recoverable errors (short payloads)
            clock: Millisecond clock used for statistics
        """
        self.on_telemetry = on_telemetry
        self.on_response = on_response
        self.on_error = on_error
        self.clock = clock
        self.statistics = Statistics()

    def dispatch(self, frame: Frame) -> Optional[Event]:
        """
        Dispatch one validated frame.

        Returns:
            The reading or ack produced, or None if the frame was dropped
        """
        return self.dispatch_raw(frame.cmd, frame.payload)

    def dispatch_raw(self, cmd: int, payload: bytes) -> Optional[Event]:
        if Command.is_notification(cmd):
            decoder = decode_sensor if cmd == Command.SENSOR_DATA else decode_mapping
            return self._handle_notification(cmd, payload, decoder)
        return self._handle_ack(cmd, payload)

    def reset_statistics(self, now: Optional[float] = None) -> None:
        """Zero counters; ``now`` (ms) seeds the rate estimator."""
        self.statistics.reset(self.clock() if now is None else now)

    def _handle_notification(self, cmd: int, payload: bytes, decoder) -> Optional[Reading]:
        now = self.clock()
        try:
            reading = decoder(
                payload,
                timestamp=now / 1000.0,
                packet_number=self.statistics.packet_count,
            )
        except PayloadTooShort as e:
            logger.warning(f"Dropping {Command.name_of(cmd)} frame: {e}")
            self._emit(self.on_error, e)
            return None

        self.statistics.update(now)
        self._emit(self.on_telemetry, reading)
        return reading

    def _handle_ack(self, cmd: int, payload: bytes) -> CommandAck:
        # Empty payload is treated as FAIL
        result = payload[0] if payload else int(ResultCode.FAIL)
        extra = bytes(payload[1:])
        ack = CommandAck(
            ok=result == ResultCode.SUCCESS,
            cmd=cmd,
            result=result,
            extra=extra,
        )

        if ack.ok:
            logger.info(f"Command succeeded: {Command.name_of(cmd)} (0x{cmd:02X})")
        else:
            logger.info(f"Command failed: {Command.name_of(cmd)} (0x{cmd:02X}), "
                        f"{ack.result_name}")

        self._emit(self.on_response, ack)
        return ack

    def _emit(self, sink: Optional[Callable], event) -> None:
        if sink is None:
            return
        try:
            sink(event)
        except Exception as e:
            logger.error(f"Sink {sink!r} raised: {e}")
            if sink is not self.on_error and self.on_error is not None:
                try:
                    self.on_error(e)
                except Exception as err:
                    logger.error(f"Error sink raised: {err}")
