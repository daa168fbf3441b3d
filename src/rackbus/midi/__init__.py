"""
MIDI Module

Decodes raw MIDI input into rack events and binds hardware input ports.
"""

from .events import (
    CONTROL_CHANGE,
    NOTE_OFF,
    NOTE_ON,
    ControlChange,
    MIDIEvent,
    NoteOff,
    NoteOn,
)
from .decoder import (
    OMNI,
    MIDIDecoder,
    channel_matches,
    decode_message,
    parse_channel_filter,
)
from .midi_input import MIDIInputController, midi_status_text

__all__ = [
    'CONTROL_CHANGE',
    'NOTE_OFF',
    'NOTE_ON',
    'ControlChange',
    'MIDIEvent',
    'NoteOff',
    'NoteOn',
    'OMNI',
    'MIDIDecoder',
    'channel_matches',
    'decode_message',
    'parse_channel_filter',
    'MIDIInputController',
    'midi_status_text',
]
