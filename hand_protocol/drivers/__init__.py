"""
asyncio drivers for the hand sensor.
"""

from .base import SensorDriver
from .hand_sensor import HandSensorDriver

__all__ = ["SensorDriver", "HandSensorDriver"]
