"""
Tests for the MIDI wire message model.
"""

import mido
import pytest

from deckmap.errors import InvalidMessageError
from deckmap.midi import ProtocolMessage


class TestProtocolMessage:
    """Test ProtocolMessage construction and accessors."""

    def test_from_bytes(self):
        msg = ProtocolMessage.from_bytes([0x90, 60, 127])
        assert msg.status == 0x90
        assert msg.data == (60, 127)
        assert msg.identifier == 60
        assert msg.value == 127

    def test_data_list_becomes_tuple(self):
        msg = ProtocolMessage(0xB0, [7, 100])
        assert msg.data == (7, 100)
        assert hash(msg) == hash(ProtocolMessage(0xB0, (7, 100)))

    def test_from_mido_note_on(self):
        msg = ProtocolMessage.from_mido(mido.Message('note_on', channel=1, note=60, velocity=127))
        assert msg == ProtocolMessage(0x91, (60, 127))
        assert msg.channel == 1

    def test_from_mido_control_change(self):
        msg = ProtocolMessage.from_mido(mido.Message('control_change', control=28, value=64))
        assert msg == ProtocolMessage(0xB0, (28, 64))

    def test_byte_out_of_range_rejected(self):
        with pytest.raises(InvalidMessageError, match="status"):
            ProtocolMessage(256, (1, 2))
        with pytest.raises(InvalidMessageError, match=r"data\[1\]"):
            ProtocolMessage(0x90, (1, -1))

    def test_empty_bytes_rejected(self):
        with pytest.raises(InvalidMessageError):
            ProtocolMessage.from_bytes([])

    def test_short_message_has_no_value(self):
        msg = ProtocolMessage(0xC0, (5,))
        with pytest.raises(InvalidMessageError, match="at least 2 data bytes"):
            msg.value

    def test_str_is_hex(self):
        assert str(ProtocolMessage(0x90, (0x3C, 0x7F))) == "90 3C 7F"
