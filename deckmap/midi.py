"""
MIDI wire message model.

A ProtocolMessage is one status byte plus its data bytes, exactly as read
off the wire. Dispatch needs at least two data bytes (identifier, value);
shorter messages are rejected by the dispatcher with InvalidMessageError.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import mido

from deckmap.errors import InvalidMessageError


# Minimum data bytes for a dispatchable message: identifier + value
MIN_DATA_BYTES = 2


def _check_byte(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 0xFF:
        raise InvalidMessageError(f"{name} must be a byte (0-255), got {value!r}")
    return value


@dataclass(frozen=True)
class ProtocolMessage:
    """One received MIDI message.

    Attributes:
        status (int): Status byte (e.g. 0x90 = note on, channel 1)
        data (tuple): Data bytes in wire order
    """
    status: int
    data: Tuple[int, ...]

    def __post_init__(self):
        _check_byte("status", self.status)
        data = tuple(self.data)
        for i, byte in enumerate(data):
            _check_byte(f"data[{i}]", byte)
        object.__setattr__(self, "data", data)

    @classmethod
    def from_bytes(cls, raw: Sequence[int]) -> "ProtocolMessage":
        """Build a message from a raw byte sequence (status first)."""
        if len(raw) == 0:
            raise InvalidMessageError("Empty MIDI message")
        return cls(status=raw[0], data=tuple(raw[1:]))

    @classmethod
    def from_mido(cls, msg: mido.Message) -> "ProtocolMessage":
        """Convert a mido message into a ProtocolMessage.

        Examples:
            >>> ProtocolMessage.from_mido(mido.Message('note_on', note=60, velocity=127))
            ProtocolMessage(status=144, data=(60, 127))
        """
        return cls.from_bytes(msg.bytes())

    @property
    def channel(self) -> int:
        """MIDI channel (0-15) encoded in the low nibble of the status byte."""
        return self.status & 0x0F

    @property
    def identifier(self) -> int:
        """First data byte (note or controller number)."""
        self.require_data()
        return self.data[0]

    @property
    def value(self) -> int:
        """Second data byte (velocity or controller value)."""
        self.require_data()
        return self.data[1]

    def require_data(self) -> None:
        """Raise InvalidMessageError unless identifier and value bytes are present."""
        if len(self.data) < MIN_DATA_BYTES:
            raise InvalidMessageError(
                f"Expected at least {MIN_DATA_BYTES} data bytes, got {len(self.data)} "
                f"(status=0x{self.status:02X})"
            )

    def __str__(self) -> str:
        data = " ".join(f"{b:02X}" for b in self.data)
        return f"{self.status:02X} {data}".rstrip()
