"""
Sensor Driver Module

Abstract asyncio interface for streaming sensor devices whose client
library performs blocking I/O.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional


class SensorDriver(ABC):
    """
    Abstract streaming sensor driver.

    Subclasses wrap a blocking client and expose the connection lifecycle,
    a status query and a telemetry stream as coroutines.

    Attributes:
        name: Driver identifier name
        config: Configuration dictionary
    """

    def __init__(
        self,
        name: str,
        config: Optional[Dict[str, Any]] = None
    ):
        self.name = name
        self.config = config or {}
        self._connected = False

    @abstractmethod
    async def connect(self) -> bool:
        """
        Open the device and start receiving.

        Returns:
            bool: True if connection successful
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def reset(self) -> None:
        ...

    @abstractmethod
    async def identify(self) -> str:
        ...

    @abstractmethod
    async def get_status(self) -> Optional[Dict[str, int]]:
        """Device flags by name, or None when the device did not answer."""
        ...

    @abstractmethod
    async def set_streaming(self, sensor: bool = True, mapping: bool = False) -> None:
        ...

    @abstractmethod
    async def read_telemetry(self, timeout: float = 1.0) -> Optional[Any]:
        """Next reading, or None after timeout seconds."""
        ...

    async def is_connected(self) -> bool:
        return self._connected

    async def _run_sync(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        # Blocking client calls run in the default executor
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, connected={self._connected})"
