"""Tests for frame dispatching and statistics."""

import struct

from hand_protocol.constants import Command, Hand, ResultCode
from hand_protocol.dispatcher import CommandAck, Dispatcher, Statistics
from hand_protocol.exceptions import PayloadTooShort
from hand_protocol.frame import Frame
from hand_protocol.telemetry import MappingReading, SensorReading, decode_status

SENSOR_PAYLOAD = bytes([0, 1, 0]) + bytes(28)
MAPPING_PAYLOAD = bytes([1]) + struct.pack("<f", 0.5) * 15


def make_clock(*times):
    it = iter(times)
    return lambda: next(it)


def test_sensor_frame_routed_to_telemetry():
    readings = []
    dispatcher = Dispatcher(on_telemetry=readings.append, clock=make_clock(1000.0))
    result = dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    assert isinstance(result, SensorReading)
    assert readings == [result]
    assert result.hand == Hand.RIGHT
    assert result.timestamp == 1.0


def test_mapping_frame_routed_to_telemetry():
    readings = []
    dispatcher = Dispatcher(on_telemetry=readings.append, clock=make_clock(1000.0))
    dispatcher.dispatch(Frame(Command.MAPPING_DATA, MAPPING_PAYLOAD))
    assert isinstance(readings[0], MappingReading)
    assert readings[0].joints == (0.5,) * 15


def test_statistics_rate():
    """Rate is the reciprocal of the last inter-arrival time."""
    dispatcher = Dispatcher(clock=make_clock(1000.0, 1020.0))
    dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    stats = dispatcher.statistics
    assert stats.packet_count == 2
    assert stats.update_rate == 50
    assert stats.last_update_time == 1020.0


def test_statistics_same_timestamp_keeps_rate():
    dispatcher = Dispatcher(clock=make_clock(500.0, 500.0))
    dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    assert dispatcher.statistics.update_rate == 2
    assert dispatcher.statistics.packet_count == 2


def test_packet_numbers_increase():
    dispatcher = Dispatcher(clock=make_clock(1.0, 2.0, 3.0))
    numbers = [
        dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD)).packet_number,
        dispatcher.dispatch(Frame(Command.MAPPING_DATA, MAPPING_PAYLOAD)).packet_number,
        dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD)).packet_number,
    ]
    assert numbers == [0, 1, 2]


def test_success_ack():
    acks = []
    dispatcher = Dispatcher(on_response=acks.append)
    ack = dispatcher.dispatch(Frame(Command.STATUS, bytes([0, 1, 0, 1, 1, 0, 1])))
    assert acks == [ack]
    assert ack.ok
    assert ack.cmd == Command.STATUS
    assert ack.extra == bytes([1, 0, 1, 1, 0, 1])
    assert decode_status(ack.extra).anchor_calibration == 0


def test_failure_ack():
    acks = []
    dispatcher = Dispatcher(on_response=acks.append)
    dispatcher.dispatch(Frame(Command.ANCHOR_START, bytes([ResultCode.UNKNOWN_CMD, 9])))
    ack = acks[0]
    assert not ack.ok
    assert ack.result == ResultCode.UNKNOWN_CMD
    assert ack.result_name == "UNKNOWN_CMD"
    assert ack.extra == b"\x09"


def test_empty_ack_is_fail():
    ack = Dispatcher().dispatch(Frame(Command.SAVE))
    assert ack == CommandAck(ok=False, cmd=Command.SAVE, result=ResultCode.FAIL, extra=b"")


def test_ack_does_not_touch_statistics():
    dispatcher = Dispatcher()
    dispatcher.dispatch(Frame(Command.STATUS, b"\x00"))
    assert dispatcher.statistics == Statistics()


def test_short_notification_dropped():
    errors, readings = [], []
    dispatcher = Dispatcher(
        on_telemetry=readings.append,
        on_error=errors.append,
        clock=make_clock(1000.0),
    )
    assert dispatcher.dispatch(Frame(Command.SENSOR_DATA, bytes(10))) is None
    assert readings == []
    assert isinstance(errors[0], PayloadTooShort)
    assert dispatcher.statistics.packet_count == 0


def test_sink_exception_reported():
    errors = []

    def broken_sink(reading):
        raise ValueError("display failed")

    dispatcher = Dispatcher(
        on_telemetry=broken_sink,
        on_error=errors.append,
        clock=make_clock(1000.0),
    )
    reading = dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    assert reading is not None
    assert isinstance(errors[0], ValueError)
    assert dispatcher.statistics.packet_count == 1


def test_reset_statistics():
    dispatcher = Dispatcher(clock=make_clock(1000.0, 2000.0))
    dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    dispatcher.reset_statistics()
    assert dispatcher.statistics.packet_count == 0
    assert dispatcher.statistics.last_update_time == 2000.0


def test_snapshot_is_copy():
    dispatcher = Dispatcher(clock=make_clock(1000.0, 1010.0))
    dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    snap = dispatcher.statistics.snapshot()
    dispatcher.dispatch(Frame(Command.SENSOR_DATA, SENSOR_PAYLOAD))
    assert snap.packet_count == 1
    assert dispatcher.statistics.packet_count == 2


def test_only_data_codes_are_notifications():
    assert Command.is_notification(Command.SENSOR_DATA)
    assert Command.is_notification(0x21)
    assert not Command.is_notification(Command.STATUS)
    assert not Command.is_notification(0x22)
