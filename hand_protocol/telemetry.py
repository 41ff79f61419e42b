"""
Telemetry data structures.

All multi-byte values use Little-endian byte order.

Sensor notification: [HAND][15 x uint16]   (31 bytes)
Mapping notification: [HAND][15 x float32] (61 bytes)

Joint order is finger-major: thumb, index, middle, ring, pinky, each
with yaw, pitch, tip.
"""

import struct
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from .constants import (
    JOINT_COUNT, JOINT_NAMES, SENSOR_PAYLOAD_SIZE, MAPPING_PAYLOAD_SIZE,
    STATUS_SIZE, Hand,
)
from .exceptions import PayloadTooShort

_SENSOR_STRUCT = struct.Struct(f"<B{JOINT_COUNT}H")
_MAPPING_STRUCT = struct.Struct(f"<B{JOINT_COUNT}f")


def _hand(value: int) -> Union[Hand, int]:
    try:
        return Hand(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class SensorReading:
    """Raw joint sensor readings."""
    hand: int
    joints: Tuple[int, ...]
    timestamp: float = 0.0
    packet_number: int = 0

    @property
    def hand_name(self) -> str:
        return Hand.name_of(self.hand)

    def joint(self, name: str) -> int:
        """Get a joint value by name, e.g. 'index_pitch'."""
        return self.joints[JOINT_NAMES.index(name)]

    def as_dict(self) -> Dict[str, int]:
        return dict(zip(JOINT_NAMES, self.joints))

    def __repr__(self) -> str:
        return (f"SensorReading(hand={self.hand_name}, joints={list(self.joints)}, "
                f"packet={self.packet_number})")


@dataclass(frozen=True)
class MappingReading:
    """
    Normalized joint positions.

    The device scales each value to [0.0, 1.0]; no clamping happens here.
    """
    hand: int
    joints: Tuple[float, ...]
    timestamp: float = 0.0
    packet_number: int = 0

    @property
    def hand_name(self) -> str:
        return Hand.name_of(self.hand)

    def joint(self, name: str) -> float:
        """Get a joint value by name, e.g. 'thumb_tip'."""
        return self.joints[JOINT_NAMES.index(name)]

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(JOINT_NAMES, self.joints))

    def __repr__(self) -> str:
        values = ", ".join(f"{v:.3f}" for v in self.joints)
        return (f"MappingReading(hand={self.hand_name}, joints=[{values}], "
                f"packet={self.packet_number})")


@dataclass(frozen=True)
class DeviceStatus:
    """Device state flags from a STATUS acknowledgement."""
    quick_calibration: int
    anchor_calibration: int
    frame_mode: int
    sensor_print: int
    can_control: int
    sensor_push: int

    @classmethod
    def from_bytes(cls, data: bytes) -> 'DeviceStatus':
        """
        Deserialize from ack extra data.

        Format (one uint8 each):
        - quick calibration state
        - anchor calibration state
        - frame mode
        - sensor print
        - CAN control
        - sensor push
        """
        if len(data) < STATUS_SIZE:
            raise PayloadTooShort("Status", STATUS_SIZE, len(data))
        return cls(*data[:STATUS_SIZE])

    def __repr__(self) -> str:
        return (f"DeviceStatus(quick={self.quick_calibration}, anchor={self.anchor_calibration}, "
                f"frame={self.frame_mode}, print={self.sensor_print}, "
                f"can={self.can_control}, push={self.sensor_push})")


def decode_sensor(
    payload: bytes,
    timestamp: Optional[float] = None,
    packet_number: int = 0
) -> SensorReading:
    """
    Decode a SENSOR_DATA notification payload.

    Args:
        payload: Frame payload (at least 31 bytes)
        timestamp: Receipt time in seconds (None uses time.time())
        packet_number: Sequence number assigned by the dispatcher

    Raises:
        PayloadTooShort: If payload is shorter than 31 bytes
    """
    if len(payload) < SENSOR_PAYLOAD_SIZE:
        raise PayloadTooShort("Sensor", SENSOR_PAYLOAD_SIZE, len(payload))

    hand, *joints = _SENSOR_STRUCT.unpack_from(payload)
    return SensorReading(
        hand=_hand(hand),
        joints=tuple(joints),
        timestamp=time.time() if timestamp is None else timestamp,
        packet_number=packet_number,
    )


def decode_mapping(
    payload: bytes,
    timestamp: Optional[float] = None,
    packet_number: int = 0
) -> MappingReading:
    """
    Decode a MAPPING_DATA notification payload.

    Raises:
        PayloadTooShort: If payload is shorter than 61 bytes
    """
    if len(payload) < MAPPING_PAYLOAD_SIZE:
        raise PayloadTooShort("Mapping", MAPPING_PAYLOAD_SIZE, len(payload))

    hand, *joints = _MAPPING_STRUCT.unpack_from(payload)
    return MappingReading(
        hand=_hand(hand),
        joints=tuple(joints),
        timestamp=time.time() if timestamp is None else timestamp,
        packet_number=packet_number,
    )


def decode_status(extra: bytes) -> DeviceStatus:
    """Decode the extra data of a successful STATUS ack."""
    return DeviceStatus.from_bytes(extra)
