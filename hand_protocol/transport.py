"""
Byte transport layer.

The protocol engine only needs a duplex byte channel: ``write`` and a
``read`` that returns the next chunk (empty on timeout). SerialTransport
provides one over pyserial; LoopbackTransport replays chunks in memory.
"""

import logging
import threading
from abc import ABC, abstractmethod
from queue import Empty, Queue
from typing import Any, Dict, Iterable, List, Optional

import serial

from .exceptions import EndOfStream, TransportError

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 1152000
READ_CHUNK_SIZE = 256


class ByteTransport(ABC):
    """Abstract duplex byte channel."""

    @abstractmethod
    def open(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Send data.

        Returns:
            Number of bytes written

        Raises:
            TransportError: If the channel is closed or the write fails
        """
        ...

    @abstractmethod
    def read(self) -> bytes:
        """
        Read the next chunk.

        Returns:
            Received bytes (empty on timeout)

        Raises:
            EndOfStream: If the channel is finished
            TransportError: On read failure
        """
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    def __enter__(self) -> 'ByteTransport':
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SerialTransport(ByteTransport):
    """Serial communication transport layer."""

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        bytesize: int = serial.EIGHTBITS,
        parity: str = serial.PARITY_NONE,
        stopbits: float = serial.STOPBITS_ONE,
        read_timeout: float = 0.1,
        chunk_size: int = READ_CHUNK_SIZE
    ):
        """
        Initialize serial transport.

        Args:
            port: Serial port name (e.g., '/dev/ttyUSB0' or 'COM3')
            baudrate: Baud rate (default: 1152000)
            bytesize: Data bits
            parity: Parity setting
            stopbits: Stop bits
            read_timeout: Timeout for a single chunk read in seconds
            chunk_size: Maximum bytes per read
        """
        self.port = port
        self.baudrate = baudrate
        self.bytesize = bytesize
        self.parity = parity
        self.stopbits = stopbits
        self.read_timeout = read_timeout
        self.chunk_size = chunk_size
        self._serial: Optional[serial.Serial] = None
        self._write_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SerialTransport':
        """
        Create transport from a configuration dictionary.

        Keys: port, baudrate, bytesize, parity, stopbits, timeout
        """
        return cls(
            port=config.get("port", "/dev/ttyUSB0"),
            baudrate=config.get("baudrate", DEFAULT_BAUDRATE),
            bytesize=config.get("bytesize", serial.EIGHTBITS),
            parity=config.get("parity", serial.PARITY_NONE),
            stopbits=config.get("stopbits", serial.STOPBITS_ONE),
            read_timeout=config.get("timeout", 0.1),
        )

    def open(self) -> None:
        """Open serial port."""
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=self.bytesize,
                parity=self.parity,
                stopbits=self.stopbits,
                xonxoff=False,
                rtscts=False,
                timeout=self.read_timeout
            )
            logger.info(f"Opened serial port {self.port} at {self.baudrate} bps")
        except serial.SerialException as e:
            raise TransportError(f"Failed to open {self.port}: {e}") from e

    def close(self) -> None:
        """Close serial port."""
        if self._serial:
            try:
                self._serial.close()
            except serial.SerialException as e:
                logger.warning(f"Error closing {self.port}: {e}")
            self._serial = None
            logger.info(f"Closed serial port {self.port}")

    def write(self, data: bytes) -> int:
        """
        Send data over serial port.

        Raises:
            TransportError: If port is not open or write fails
        """
        if not self.is_open:
            raise TransportError("Serial port not open")

        with self._write_lock:
            try:
                count = self._serial.write(data)
                logger.debug(f"TX ({count} bytes): {data.hex(' ')}")
                return count
            except serial.SerialException as e:
                raise TransportError(f"Send failed: {e}") from e

    def read(self) -> bytes:
        """Read up to chunk_size bytes, waiting at most read_timeout."""
        if not self.is_open:
            raise EndOfStream("Serial port closed")

        try:
            data = self._serial.read(self.chunk_size)
        except serial.SerialException as e:
            raise TransportError(f"Receive failed: {e}") from e
        except (TypeError, AttributeError) as e:
            # pyserial raises these when the port is closed mid-read
            raise EndOfStream(f"Serial port closed: {e}") from e

        if data:
            logger.debug(f"RX ({len(data)} bytes): {data.hex(' ')}")
        return data

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        return self._serial is not None and self._serial.is_open

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"SerialTransport({self.port}, {self.baudrate}, {status})"


_CLOSED = object()


class LoopbackTransport(ByteTransport):
    """
    In-memory transport.

    Chunks passed to ``inject`` (or the constructor) are returned by
    ``read`` in order; ``finish`` ends the stream. Written data is kept
    in ``written``.
    """

    def __init__(self, chunks: Iterable[bytes] = (), read_timeout: float = 0.05):
        self.read_timeout = read_timeout
        self.written: List[bytes] = []
        self._rx_queue: Queue = Queue()
        self._open = False
        self._write_lock = threading.Lock()
        for chunk in chunks:
            self.inject(chunk)

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        if self._open:
            self._open = False
            # Wake a blocked reader
            self._rx_queue.put(_CLOSED)

    def inject(self, data: bytes) -> None:
        """Queue a chunk for the reader."""
        self._rx_queue.put(bytes(data))

    def finish(self) -> None:
        """Mark end of stream after queued chunks."""
        self._rx_queue.put(None)

    def write(self, data: bytes) -> int:
        if not self._open:
            raise TransportError("Loopback transport not open")
        with self._write_lock:
            self.written.append(bytes(data))
        return len(data)

    def read(self) -> bytes:
        if not self._open:
            raise EndOfStream("Loopback transport closed")
        try:
            data = self._rx_queue.get(timeout=self.read_timeout)
        except Empty:
            return b""
        if data is _CLOSED:
            if self._open:
                # Left over from an earlier session
                return b""
            raise EndOfStream("Loopback transport closed")
        if data is None:
            raise EndOfStream("Loopback stream finished")
        return data

    @property
    def is_open(self) -> bool:
        return self._open

    def __repr__(self) -> str:
        status = "open" if self._open else "closed"
        return f"LoopbackTransport({status})"
