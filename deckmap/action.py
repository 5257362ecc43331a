"""
Action vocabulary shared by the declarative rule table and the script bridge.

Two variants reach the host:
    ValueAction: a continuous control (fader, knob) normalized to [0, 1]
    PressAction: a button going down or up, optionally parameterized
                 (hotcue index, loop length in beats, resize factor)

OutputIntent is the host -> controller direction, reserved for LED/feedback
translation; nothing produces MIDI from it yet.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class ValueControl(str, Enum):
    """Continuous controls."""
    CROSSFADER = "crossfader"
    VOLUME = "volume"
    GAIN = "gain"
    LOWS = "lows"
    MIDS = "mids"
    HIGHS = "highs"
    HEADPHONE_MIX = "headphoneMix"
    SAMPLER = "sampler"
    RATE = "rate"


class PressKind(str, Enum):
    """Button controls."""
    PLAY = "play"
    CUE = "cue"
    STOP_AT_START = "stopAtStart"
    SLIP = "slip"
    SYNC = "sync"
    HEADPHONE_CUE = "headphoneCue"
    HOTCUE = "hotcue"
    ROLL = "roll"
    JUMP = "jump"
    LOOP_TOGGLE = "loopToggle"
    LOOP_RESIZE = "loopResize"


@dataclass(frozen=True)
class PressControl:
    """A button control tag plus its parameter, if the kind takes one.

    Use the classmethod constructors for parameterized kinds:
        PressControl.hotcue(3), PressControl.loop_toggle(4),
        PressControl.loop_resize(0.5)
    """
    kind: PressKind
    index: Optional[int] = None
    beats: Optional[float] = None
    factor: Optional[float] = None

    @classmethod
    def hotcue(cls, index: int) -> "PressControl":
        return cls(PressKind.HOTCUE, index=index)

    @classmethod
    def roll(cls, beats: float) -> "PressControl":
        return cls(PressKind.ROLL, beats=beats)

    @classmethod
    def jump(cls, beats: float) -> "PressControl":
        return cls(PressKind.JUMP, beats=beats)

    @classmethod
    def loop_toggle(cls, beats: Optional[float] = None) -> "PressControl":
        return cls(PressKind.LOOP_TOGGLE, beats=beats)

    @classmethod
    def loop_resize(cls, factor: float) -> "PressControl":
        return cls(PressKind.LOOP_RESIZE, factor=factor)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.kind.value}
        if self.index is not None:
            result["index"] = self.index
        if self.beats is not None:
            result["beats"] = self.beats
        if self.factor is not None:
            result["factor"] = self.factor
        return result


@dataclass(frozen=True)
class ValueAction:
    """Set a continuous control.

    Attributes:
        control (ValueControl): Which control moved
        value (float): Normalized position, 0.0-1.0 inclusive
        deck (int, optional): 1-based deck, None for global controls
    """
    control: ValueControl
    value: float
    deck: Optional[int] = None

    type = "value"

    def __post_init__(self):
        if not 0.0 <= self.value <= 1.0:
            raise ValueError(f"Value must be in range 0.0-1.0, got {self.value}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "control": {"type": self.control.value},
            "value": self.value,
            "deck": self.deck,
        }


@dataclass(frozen=True)
class PressAction:
    """Press or release a button control.

    Attributes:
        control (PressControl): Which button, with its parameter
        down (bool): True on press, False on release
        deck (int, optional): 1-based deck, None for global controls
    """
    control: PressControl
    down: bool
    deck: Optional[int] = None

    type = "press"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "control": self.control.to_dict(),
            "down": self.down,
            "deck": self.deck,
        }


Action = Union[ValueAction, PressAction]
Control = Union[ValueControl, PressControl]


@dataclass(frozen=True)
class OutputIntent:
    """Host state change that a controller may want to reflect (LEDs, displays)."""
    group: str
    key: str
    value: float
