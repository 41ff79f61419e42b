"""
High-level protocol client.

Runs a background reader that feeds the frame parser and dispatches
validated frames, and provides the command API for the hand sensor
firmware. Events are published to bounded queues and optional callbacks.
"""

import logging
import threading
import time
from queue import Empty, Full, Queue
from typing import Callable, List, Optional, Sequence

from .constants import FRAME_ENABLE_TEXT, Command
from .dispatcher import CommandAck, Dispatcher, Reading, Statistics
from .exceptions import CommandFailed, EndOfStream, TransportError
from .frame import DEFAULT_CONFIG, Frame, FrameBuilder, FrameConfig, FrameParser
from .telemetry import DeviceStatus, decode_status
from .transport import ByteTransport

logger = logging.getLogger(__name__)


class HandSensorClient:
    """High-level client for the hand sensor protocol."""

    def __init__(
        self,
        transport: ByteTransport,
        config: FrameConfig = DEFAULT_CONFIG,
        on_telemetry: Optional[Callable[[Reading], None]] = None,
        on_response: Optional[Callable[[CommandAck], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        queue_size: int = 256
    ):
        """
        Initialize hand sensor client.

        Args:
            transport: Byte transport instance
            config: Protocol revision
            on_telemetry: Optional callback for readings (reader thread)
            on_response: Optional callback for acks (reader thread)
            on_error: Optional callback for recoverable and transport errors
            queue_size: Capacity of the telemetry and response queues
        """
        self.transport = transport
        self.config = config
        self.on_telemetry = on_telemetry
        self.on_response = on_response
        self.on_error = on_error

        self.telemetry: Queue = Queue(maxsize=queue_size)
        self.responses: Queue = Queue(maxsize=queue_size)
        self.error: Optional[TransportError] = None

        self._builder = FrameBuilder(config)
        self._parser = FrameParser(config, on_error=self._handle_error)
        self._dispatcher = Dispatcher(
            on_telemetry=self._handle_telemetry,
            on_response=self._handle_response,
            on_error=self._handle_error,
        )
        self._rx_thread: Optional[threading.Thread] = None
        self._running = False

    # === Lifecycle ===

    def start(self, enable: bool = True) -> None:
        """
        Open the transport and start the reader thread.

        Args:
            enable: Send the frame_enable bootstrap command after opening
        """
        if self._running:
            logger.warning("Reader already running")
            return

        if not self.transport.is_open:
            self.transport.open()

        self._parser.clear()
        self._dispatcher.reset_statistics()
        self.error = None

        self._running = True
        self._rx_thread = threading.Thread(target=self._rx_loop, daemon=True)
        self._rx_thread.start()
        logger.info(f"Reader started on {self.transport!r}")

        if enable:
            try:
                self.enable()
            except TransportError as e:
                # Connection stays up; the device may already be in framed mode
                logger.warning(f"Automatic frame_enable failed: {e}")

    def stop(self) -> None:
        """Stop the reader thread, close the transport and drop buffered bytes."""
        self._running = False
        self.transport.close()

        if self._rx_thread and self._rx_thread is not threading.current_thread():
            self._rx_thread.join(timeout=1.0)
        self._rx_thread = None

        self._parser.clear()
        logger.info("Reader stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def statistics(self) -> Statistics:
        """Snapshot of notification statistics."""
        return self._dispatcher.statistics.snapshot()

    def reset_statistics(self) -> None:
        self._dispatcher.reset_statistics()

    def _rx_loop(self) -> None:
        """Background receive thread."""
        try:
            while self._running:
                try:
                    data = self.transport.read()
                except EndOfStream:
                    logger.info("Transport stream ended")
                    break
                except TransportError as e:
                    if not self._running:
                        break
                    logger.error(f"RX error: {e}")
                    self.error = e
                    self._handle_error(e)
                    break

                if data:
                    self._process(data)
        finally:
            self._running = False

    def _process(self, data: bytes) -> None:
        for frame in self._parser.feed(data):
            if not self._running:
                break
            self._dispatcher.dispatch(frame)

    # === Sinks ===

    def _handle_telemetry(self, reading: Reading) -> None:
        self._publish(self.telemetry, reading)
        if self.on_telemetry:
            self.on_telemetry(reading)

    def _handle_response(self, ack: CommandAck) -> None:
        self._publish(self.responses, ack)
        if self.on_response:
            self.on_response(ack)

    def _handle_error(self, error: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception as e:
            logger.error(f"Error callback raised: {e}")

    @staticmethod
    def _publish(queue: Queue, item) -> None:
        # Drop the oldest event when nobody is draining the queue
        while True:
            try:
                queue.put_nowait(item)
                return
            except Full:
                try:
                    queue.get_nowait()
                except Empty:
                    pass

    # === Sending ===

    def send_frame(self, cmd: int, payload: bytes = b"") -> bytes:
        """
        Encode and send one frame.

        Returns:
            The bytes written

        Raises:
            EncodeTooLarge: If payload exceeds the protocol maximum
            TransportError: If the transport write fails
        """
        data = self._builder.encode(cmd, payload)
        self._write(data)
        logger.debug(f"Sent frame: {Frame(cmd, payload)!r}")
        return data

    def send_raw(self, text: str) -> bytes:
        """Send an unframed text command."""
        data = self._builder.raw_command(text)
        self._write(data)
        logger.debug(f"Sent raw command: {text.strip()!r}")
        return data

    def _write(self, data: bytes) -> None:
        self.transport.write(data)

    def wait_response(
        self,
        cmd: Optional[int] = None,
        timeout: float = 1.0
    ) -> Optional[CommandAck]:
        """
        Wait for an acknowledgement from the response queue.

        Acks for other commands are consumed and discarded. There is no
        retry; a missing ack simply returns None.

        Args:
            cmd: Command to wait for (None accepts any)
            timeout: Seconds to wait

        Returns:
            CommandAck, or None on timeout

        Raises:
            TransportError: If the reader stopped on a transport failure
        """
        deadline = time.monotonic() + timeout
        while True:
            if self.error is not None:
                raise self.error
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                ack = self.responses.get(timeout=min(remaining, 0.1))
            except Empty:
                continue
            if cmd is None or ack.cmd == cmd:
                return ack
            logger.debug(f"Discarding unrelated ack {ack!r}")

    def drain_telemetry(self) -> List[Reading]:
        """Return all queued readings."""
        readings = []
        while True:
            try:
                readings.append(self.telemetry.get_nowait())
            except Empty:
                break
        return readings

    # === Commands ===

    def enable(self) -> bytes:
        """Switch the device to framed mode (raw text command)."""
        data = self.send_raw(FRAME_ENABLE_TEXT)
        logger.info("Sent frame_enable")
        return data

    def disable(self) -> bytes:
        return self.send_frame(Command.DISABLE)

    def start_quick_calibration(self) -> bytes:
        return self.send_frame(Command.QUICK_START)

    def finish_quick_calibration(self) -> bytes:
        return self.send_frame(Command.QUICK_FINISH)

    def start_anchor_calibration(self, hand: int, fingers: Sequence[int]) -> bytes:
        """
        Start anchor-point calibration.

        Args:
            hand: Hand side (0=right, 1=left)
            fingers: Finger codes (1=index, 2=middle, 3=ring, 4=pinky)
        """
        data = self._builder.build_anchor_start(hand, fingers)
        self._write(data)
        logger.info(f"Anchor calibration started: hand={hand}, fingers={list(fingers)}")
        return data

    def record_anchor_point(self) -> bytes:
        return self.send_frame(Command.RECORD)

    def apply_anchor_calibration(self) -> bytes:
        return self.send_frame(Command.APPLY)

    def save_calibration(self) -> bytes:
        return self.send_frame(Command.SAVE)

    def load_calibration(self) -> bytes:
        return self.send_frame(Command.LOAD)

    def clear_calibration(self) -> bytes:
        return self.send_frame(Command.CLEAR)

    def reset_calibration(self) -> bytes:
        return self.send_frame(Command.RESET)

    def get_status(self) -> bytes:
        """Send a STATUS query; the answer arrives as an ack."""
        return self.send_frame(Command.STATUS)

    def enable_can(self) -> bytes:
        return self._send(self._builder.build_can(True))

    def disable_can(self) -> bytes:
        return self._send(self._builder.build_can(False))

    def enable_sensor(self) -> bytes:
        return self._send(self._builder.build_sensor(True))

    def disable_sensor(self) -> bytes:
        return self._send(self._builder.build_sensor(False))

    def enable_mapping(self) -> bytes:
        return self._send(self._builder.build_mapping(True))

    def disable_mapping(self) -> bytes:
        return self._send(self._builder.build_mapping(False))

    def set_protocol(self, protocol_id: int) -> bytes:
        """
        Select the downstream hand protocol.

        Args:
            protocol_id: 0=L20, 1=L10, 2=L21
        """
        return self._send(self._builder.build_set_protocol(protocol_id))

    def _send(self, data: bytes) -> bytes:
        self._write(data)
        return data

    def query_status(self, timeout: float = 1.0) -> Optional[DeviceStatus]:
        """
        Send STATUS and wait for the decoded answer.

        Returns:
            DeviceStatus, or None if no ack arrived within timeout

        Raises:
            CommandFailed: If the device rejected the query
            PayloadTooShort: If the ack carries fewer than 6 status bytes
        """
        self.get_status()
        ack = self.wait_response(Command.STATUS, timeout=timeout)
        if ack is None:
            logger.warning(f"No STATUS response within {timeout}s")
            return None
        if not ack.ok:
            raise CommandFailed(ack)
        status = decode_status(ack.extra)
        logger.info(f"Device status: {status}")
        return status

    def __enter__(self) -> 'HandSensorClient':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
