"""
Normalized rack events produced from MIDI input.

Every event carries a ``type`` discriminant so it can be routed by a
TopicBus.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Union

NOTE_ON = "noteon"
NOTE_OFF = "noteoff"
CONTROL_CHANGE = "controlChange"

# Status nibbles
STATUS_NOTE_OFF = 0x80
STATUS_NOTE_ON = 0x90
STATUS_CONTROL_CHANGE = 0xB0
STATUS_SYSTEM = 0xF0

CC_ALL_NOTES_OFF = 123


@dataclass(frozen=True)
class NoteOn:
    channel: int
    note: int
    velocity: float
    timestamp: float = 0.0
    type: str = field(default=NOTE_ON, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NoteOff:
    channel: int
    note: int
    timestamp: float = 0.0
    type: str = field(default=NOTE_OFF, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ControlChange:
    channel: int
    controller: int
    value: int
    timestamp: float = 0.0
    type: str = field(default=CONTROL_CHANGE, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


MIDIEvent = Union[NoteOn, NoteOff, ControlChange]
