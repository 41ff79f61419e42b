"""
Hand Sensor Driver Module

asyncio driver for the hand-joint sensor glove. Wraps HandSensorClient,
whose serial I/O is blocking, by running calls in the default executor.
"""

import logging
from queue import Empty
from typing import Any, Callable, Dict, List, Optional

from .base import SensorDriver
from ..client import HandSensorClient
from ..dispatcher import Reading
from ..exceptions import HandProtocolError
from ..frame import DEFAULT_CONFIG, LEGACY_CONFIG
from ..transport import ByteTransport, DEFAULT_BAUDRATE, SerialTransport

logger = logging.getLogger(__name__)


class HandSensorDriver(SensorDriver):
    """
    Hand sensor driver.

    Attributes:
        port: Serial port path
        baudrate: Communication speed
        timeout: Response timeout in seconds
    """

    def __init__(
        self,
        name: str = "HandSensorDriver",
        config: Optional[Dict[str, Any]] = None,
        transport_factory: Optional[Callable[[Dict[str, Any]], ByteTransport]] = None
    ):
        """
        Initialize hand sensor driver.

        Args:
            name: Driver name
            config: Configuration with keys:
                - port: Serial port (default: "/dev/ttyUSB0")
                - baudrate: Baud rate (default: 1152000)
                - timeout: Response timeout (default: 1.0)
                - legacy: Use the two-byte-sentinel protocol revision (default: False)
                - auto_enable: Send frame_enable after connecting (default: True)
            transport_factory: Builds the transport from config
                (default: SerialTransport.from_config)
        """
        super().__init__(name=name, config=config)

        self.port: str = self.config.get("port", "/dev/ttyUSB0")
        self.baudrate: int = self.config.get("baudrate", DEFAULT_BAUDRATE)
        self.timeout: float = self.config.get("timeout", 1.0)
        self.legacy: bool = self.config.get("legacy", False)
        self.auto_enable: bool = self.config.get("auto_enable", True)

        self._transport_factory = transport_factory or self._serial_transport
        self._client: Optional[HandSensorClient] = None

    def _serial_transport(self, config: Dict[str, Any]) -> ByteTransport:
        return SerialTransport.from_config({
            **config,
            "port": self.port,
            "baudrate": self.baudrate,
            "timeout": 0.1,
        })

    async def connect(self) -> bool:
        """
        Open the transport and start the reader.

        Returns:
            bool: True if connection successful
        """
        try:
            logger.info(f"Connecting to hand sensor on {self.port} at {self.baudrate} bps")

            transport = self._transport_factory(self.config)
            self._client = HandSensorClient(
                transport=transport,
                config=LEGACY_CONFIG if self.legacy else DEFAULT_CONFIG,
            )
            await self._run_sync(self._client.start, self.auto_enable)

            self._connected = True
            logger.info("Connected to hand sensor")
            return True

        except HandProtocolError as e:
            logger.error(f"Failed to connect to hand sensor: {e}")
            await self.disconnect()
            return False

    async def disconnect(self) -> None:
        """Stop the reader and close the transport."""
        if self._client:
            await self._run_sync(self._client.stop)
            self._client = None

        self._connected = False
        logger.info("Disconnected from hand sensor")

    async def reset(self) -> None:
        """Reset calibration on the device."""
        client = self._require_client()
        await self._run_sync(client.reset_calibration)

    async def identify(self) -> str:
        """
        Return identification string with the current status flags.

        Returns:
            str: e.g. "HandSensor,frame=1,push=1"
        """
        if not self._client:
            return "HandSensor,Unknown"
        try:
            status = await self.get_status()
        except HandProtocolError as e:
            logger.warning(f"Status query failed: {e}")
            return "HandSensor,Unknown"
        if status is None:
            return "HandSensor,Unknown"
        return f"HandSensor,frame={status['frame_mode']},push={status['sensor_push']}"

    # === Commands ===

    async def get_status(self) -> Optional[Dict[str, int]]:
        """
        Query device status.

        Returns:
            Dict of status flags, or None on timeout
        """
        client = self._require_client()
        status = await self._run_sync(client.query_status, self.timeout)
        if status is None:
            return None
        return {
            "quick_calibration": status.quick_calibration,
            "anchor_calibration": status.anchor_calibration,
            "frame_mode": status.frame_mode,
            "sensor_print": status.sensor_print,
            "can_control": status.can_control,
            "sensor_push": status.sensor_push,
        }

    async def set_streaming(self, sensor: bool = True, mapping: bool = False) -> None:
        """Enable or disable the sensor and mapping data pushes."""
        client = self._require_client()
        await self._run_sync(client.enable_sensor if sensor else client.disable_sensor)
        await self._run_sync(client.enable_mapping if mapping else client.disable_mapping)

    async def read_telemetry(self, timeout: float = 1.0) -> Optional[Reading]:
        """
        Wait for the next reading.

        Returns:
            SensorReading or MappingReading, or None on timeout
        """
        client = self._require_client()
        return await self._run_sync(self._next_reading, client, timeout)

    async def drain_telemetry(self) -> List[Reading]:
        client = self._require_client()
        return client.drain_telemetry()

    def statistics(self) -> Dict[str, Any]:
        """Return notification statistics as a dictionary."""
        client = self._require_client()
        stats = client.statistics
        return {
            "packet_count": stats.packet_count,
            "update_rate": stats.update_rate,
            "last_update_time": stats.last_update_time,
            "connected": self._connected,
        }

    # === Helper Methods ===

    @staticmethod
    def _next_reading(client: HandSensorClient, timeout: float) -> Optional[Reading]:
        try:
            return client.telemetry.get(timeout=timeout)
        except Empty:
            return None

    def _require_client(self) -> HandSensorClient:
        if not self._client:
            raise RuntimeError("Not connected to hand sensor")
        return self._client
