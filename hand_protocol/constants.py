"""
Protocol constants matching the hand sensor firmware.

Command and result codes are fixed by the device firmware version.
Frame sentinels live here as defaults only; a protocol revision is
selected at runtime through FrameConfig.
"""

from enum import IntEnum

# Frame delimiters (default revision)
FRAME_HEADER = 0xAA
FRAME_TAIL = 0x55

# Maximum payload size (length field is one byte)
MAX_PAYLOAD = 255

# Decoder accumulation buffer
BUFFER_SIZE = 1024
BUFFER_KEEP_TAIL = 10

# Bootstrap text command that switches the device into framed mode
FRAME_ENABLE_TEXT = "frame_enable"

JOINT_COUNT = 15
SENSOR_PAYLOAD_SIZE = 1 + JOINT_COUNT * 2
MAPPING_PAYLOAD_SIZE = 1 + JOINT_COUNT * 4
STATUS_SIZE = 6

FINGERS = ("thumb", "index", "middle", "ring", "pinky")
JOINT_AXES = ("yaw", "pitch", "tip")

# Wire order: finger-major, axis-minor
JOINT_NAMES = tuple(f"{finger}_{axis}" for finger in FINGERS for axis in JOINT_AXES)


class Command(IntEnum):
    """Command codes (Host -> Device) and notification codes (Device -> Host)."""
    ENABLE = 0x01
    DISABLE = 0x02
    QUICK_START = 0x03
    QUICK_FINISH = 0x04
    ANCHOR_START = 0x05
    RECORD = 0x06
    APPLY = 0x07
    SAVE = 0x08
    LOAD = 0x09
    CLEAR = 0x0A
    STATUS = 0x0B
    RESET = 0x0C
    CAN_ENABLE = 0x0D
    CAN_DISABLE = 0x0E
    SENSOR_ENABLE = 0x0F
    SENSOR_DISABLE = 0x10
    MAPPING_ENABLE = 0x11
    MAPPING_DISABLE = 0x12
    SET_PROTOCOL = 0x13

    # Notifications
    SENSOR_DATA = 0x20
    MAPPING_DATA = 0x21

    @classmethod
    def name_of(cls, cmd: int) -> str:
        """Get command name from code."""
        try:
            return cls(cmd).name
        except ValueError:
            return f"Unknown(0x{cmd:02X})"

    @classmethod
    def is_notification(cls, cmd: int) -> bool:
        """Check if code is a telemetry notification rather than an ack."""
        return cmd in (cls.SENSOR_DATA, cls.MAPPING_DATA)


class ResultCode(IntEnum):
    """Result codes carried as the first payload byte of an ack frame."""
    SUCCESS = 0x00
    FAIL = 0x01
    UNKNOWN_CMD = 0xFD
    NOT_ENABLED = 0xFE
    CHECKSUM_ERROR = 0xFF

    @classmethod
    def name_of(cls, result: int) -> str:
        """Get result name from code."""
        names = {
            cls.SUCCESS: "SUCCESS",
            cls.FAIL: "FAIL",
            cls.UNKNOWN_CMD: "UNKNOWN_CMD",
            cls.NOT_ENABLED: "NOT_ENABLED",
            cls.CHECKSUM_ERROR: "CHECKSUM_ERROR",
        }
        return names.get(result, f"Unknown(0x{result:02X})")


class Hand(IntEnum):
    """Hand side prefixing every telemetry payload."""
    RIGHT = 0
    LEFT = 1

    @classmethod
    def name_of(cls, hand: int) -> str:
        """Get hand name from wire value."""
        names = {
            cls.RIGHT: "Right",
            cls.LEFT: "Left",
        }
        return names.get(hand, f"Unknown(0x{hand:02X})")


class ProtocolId(IntEnum):
    """Downstream hand protocol selected with SET_PROTOCOL."""
    L20 = 0
    L10 = 1
    L21 = 2


class Finger(IntEnum):
    """Finger codes used by anchor calibration."""
    INDEX = 1
    MIDDLE = 2
    RING = 3
    PINKY = 4
