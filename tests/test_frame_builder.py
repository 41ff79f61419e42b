"""Tests for outbound frame building."""

import pytest

from hand_protocol.constants import Command, ProtocolId
from hand_protocol.exceptions import EncodeTooLarge
from hand_protocol.frame import Frame, FrameBuilder, FrameConfig, LEGACY_CONFIG


def test_encode_status_layout():
    """[HEADER][CMD][LEN][CHECKSUM][TAIL] for an empty payload."""
    frame = FrameBuilder().encode(Command.STATUS)
    assert frame == bytes([0xAA, 0x0B, 0x00, 0xF5, 0x55])


def test_encode_with_payload():
    frame = FrameBuilder().encode(0x13, b"\x02")
    assert frame[0] == 0xAA
    assert frame[1] == 0x13
    assert frame[2] == 0x01
    assert frame[3] == 0x02
    assert frame[4] == (-(0x13 + 1 + 2)) % 256
    assert frame[5] == 0x55


def test_encode_length_invariant():
    """Wire length is always 5 + payload length."""
    builder = FrameBuilder()
    for length in (0, 1, 31, 61, 255):
        assert len(builder.encode(0x01, bytes(length))) == 5 + length


def test_encode_too_large():
    """Payloads over 255 bytes are rejected before producing bytes."""
    with pytest.raises(EncodeTooLarge) as exc_info:
        FrameBuilder().encode(0x01, bytes(256))
    assert exc_info.value.length == 256
    assert exc_info.value.limit == 255


def test_encode_too_large_is_value_error():
    with pytest.raises(ValueError):
        FrameBuilder().encode(0x01, bytes(300))


def test_encode_respects_config_limit():
    builder = FrameBuilder(FrameConfig(max_payload=16))
    builder.encode(0x01, bytes(16))
    with pytest.raises(EncodeTooLarge):
        builder.encode(0x01, bytes(17))


def test_build_from_frame():
    builder = FrameBuilder()
    assert builder.build(Frame(0x0B)) == builder.encode(0x0B)


def test_frame_rejects_oversized_payload():
    with pytest.raises(EncodeTooLarge):
        Frame(0x01, bytes(256))


def test_frame_converts_list_payload():
    frame = Frame(0x05, [1, 2, 3])
    assert frame.payload == b"\x01\x02\x03"
    assert frame.payload_len == 3


def test_frame_repr():
    r = repr(Frame(0x0B, b"\x00"))
    assert "STATUS" in r
    assert "00" in r


def test_raw_enable_command():
    """The framed-mode bootstrap is plain text, not a binary frame."""
    assert FrameBuilder().build_enable() == b"frame_enable\n"


def test_raw_command_keeps_existing_newline():
    assert FrameBuilder.raw_command("frame_enable\n") == b"frame_enable\n"


def test_build_anchor_start():
    """Payload is [hand, finger_count, *fingers]."""
    builder = FrameBuilder()
    frame = builder.build_anchor_start(0, [1, 2])
    assert frame == builder.encode(Command.ANCHOR_START, bytes([0, 2, 1, 2]))


def test_build_anchor_start_rejects_bad_finger():
    with pytest.raises(ValueError):
        FrameBuilder().build_anchor_start(0, [0])
    with pytest.raises(ValueError):
        FrameBuilder().build_anchor_start(2, [1])


def test_build_set_protocol():
    builder = FrameBuilder()
    assert builder.build_set_protocol(ProtocolId.L21) == builder.encode(0x13, b"\x02")
    with pytest.raises(ValueError):
        builder.build_set_protocol(3)


def test_build_toggles():
    builder = FrameBuilder()
    assert builder.build_sensor(True)[1] == Command.SENSOR_ENABLE
    assert builder.build_sensor(False)[1] == Command.SENSOR_DISABLE
    assert builder.build_mapping(True)[1] == Command.MAPPING_ENABLE
    assert builder.build_mapping(False)[1] == Command.MAPPING_DISABLE
    assert builder.build_can(True)[1] == Command.CAN_ENABLE
    assert builder.build_can(False)[1] == Command.CAN_DISABLE


def test_build_simple_commands():
    builder = FrameBuilder()
    expected = {
        builder.build_disable: Command.DISABLE,
        builder.build_quick_start: Command.QUICK_START,
        builder.build_quick_finish: Command.QUICK_FINISH,
        builder.build_record: Command.RECORD,
        builder.build_apply: Command.APPLY,
        builder.build_save: Command.SAVE,
        builder.build_load: Command.LOAD,
        builder.build_clear: Command.CLEAR,
        builder.build_reset: Command.RESET,
        builder.build_status: Command.STATUS,
    }
    for build, cmd in expected.items():
        assert build() == builder.encode(cmd)


def test_legacy_layout():
    """Legacy revision uses two-byte sentinels and a plain sum."""
    frame = FrameBuilder(LEGACY_CONFIG).encode(0x0B, b"\x01\x02")
    assert frame[:2] == b"\xAA\x55"
    assert frame[-2:] == b"\x55\xAA"
    assert frame[-3] == 0x10
    assert len(frame) == LEGACY_CONFIG.frame_length(2)


def test_config_validation():
    with pytest.raises(ValueError):
        FrameConfig(header=b"")
    with pytest.raises(ValueError):
        FrameConfig(max_payload=256)
    with pytest.raises(ValueError):
        FrameConfig(buffer_size=8, keep_tail=8)
