"""
Declarative translation rules - binding key/group -> action.

Applied to every binding that is not a script binding. Rules are tried in
priority order and the first match wins:

    1. Exact key table (play, cue_default, volume, crossfader, ...)
    2. Equalizer rack parameters: group contains "EqualizerRack" and key is
       parameter1/2/3 -> lows/mids/highs
    3. Key patterns with a numeric parameter (beatloop_4_toggle,
       hotcue_3_activate, beatjump_8_backward, ...)
    4. No match -> no action (unmapped keys are valid in partial mappings)

Deck numbers come from a "[ChannelN]" substring anywhere in the group;
groups without one (e.g. "[Master]") are global.
"""

import re
from typing import Callable, List, Optional, Tuple

from deckmap.action import (
    Action,
    Control,
    PressAction,
    PressControl,
    PressKind,
    ValueAction,
    ValueControl,
)
from deckmap.mapping import ControlBinding

# Full scale of a 7-bit MIDI data byte
MIDI_VALUE_MAX = 127

DECK_PATTERN = re.compile(r"\[Channel(\d+)\]")

EQUALIZER_RACK = "EqualizerRack"

# Rule 1: exact keys
KEY_RULES = {
    "play": PressControl(PressKind.PLAY),
    "cue_default": PressControl(PressKind.CUE),
    "start_stop": PressControl(PressKind.STOP_AT_START),
    "loop_halve": PressControl.loop_resize(0.5),
    "loop_double": PressControl.loop_resize(2),
    "beatloop_activate": PressControl.loop_toggle(),
    "sync_enabled": PressControl(PressKind.SYNC),
    "slip_enabled": PressControl(PressKind.SLIP),
    "pfl": PressControl(PressKind.HEADPHONE_CUE),
    "volume": ValueControl.VOLUME,
    "pregain": ValueControl.GAIN,
    "crossfader": ValueControl.CROSSFADER,
    "headMix": ValueControl.HEADPHONE_MIX,
    "rate": ValueControl.RATE,
}

# Controls that ignore the binding's deck
GLOBAL_CONTROLS = {ValueControl.CROSSFADER, ValueControl.HEADPHONE_MIX}

# Rule 2: equalizer rack parameters
EQ_PARAMETERS = {
    "parameter1": ValueControl.LOWS,
    "parameter2": ValueControl.MIDS,
    "parameter3": ValueControl.HIGHS,
}

_NUMBER = r"(\d+(?:\.\d+)?)"


def _number(text: str) -> float:
    value = float(text)
    return int(value) if value.is_integer() else value


# Rule 3: parameterized key patterns, in priority order
PATTERN_RULES: List[Tuple[re.Pattern, Callable[[str], PressControl]]] = [
    (re.compile(rf"^beatloop_{_NUMBER}_toggle$"), lambda n: PressControl.loop_toggle(_number(n))),
    (re.compile(r"^hotcue_(\d+)_activate$"), lambda n: PressControl.hotcue(int(n))),
    (re.compile(rf"^beatlooproll_{_NUMBER}_activate$"), lambda n: PressControl.roll(_number(n))),
    (re.compile(rf"^beatjump_{_NUMBER}_forward$"), lambda n: PressControl.jump(_number(n))),
    (re.compile(rf"^beatjump_{_NUMBER}_backward$"), lambda n: PressControl.jump(-_number(n))),
]


def parse_deck(group: str) -> Optional[int]:
    """Extract the 1-based deck number from a binding group.

    Examples:
        >>> parse_deck("[Channel2]")
        2
        >>> parse_deck("[EqualizerRack1_[Channel1]_Effect1]")
        1
        >>> parse_deck("[Master]") is None
        True
    """
    match = DECK_PATTERN.search(group)
    if not match:
        return None
    return int(match.group(1))


def normalize(raw_value: int) -> float:
    """Map a 7-bit data byte onto [0, 1]."""
    return min(max(raw_value / MIDI_VALUE_MAX, 0.0), 1.0)


def resolve_control(group: str, key: str) -> Optional[Control]:
    """Look up the control tag for a group/key pair, or None if unmapped."""
    control = KEY_RULES.get(key)
    if control is not None:
        return control

    if EQUALIZER_RACK in group and key in EQ_PARAMETERS:
        return EQ_PARAMETERS[key]

    for pattern, build in PATTERN_RULES:
        match = pattern.match(key)
        if match:
            return build(match.group(1))

    return None


def build_action(control: Control, group: str, value: float) -> Action:
    """Build the action for a resolved control.

    Args:
        control: Resolved control tag
        group: Binding group (deck source)
        value: Normalized value in [0, 1]; press controls are down when > 0
    """
    if isinstance(control, ValueControl):
        deck = None if control in GLOBAL_CONTROLS else parse_deck(group)
        return ValueAction(control=control, value=value, deck=deck)
    return PressAction(control=control, down=value > 0, deck=parse_deck(group))


def translate(binding: ControlBinding, raw_value: int) -> List[Action]:
    """Apply the rule table to one resolved binding.

    Returns:
        A list with at most one action; empty when no rule matches
    """
    control = resolve_control(binding.group, binding.key)
    if control is None:
        return []
    return [build_action(control, binding.group, normalize(raw_value))]
