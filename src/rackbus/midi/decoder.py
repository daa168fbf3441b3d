"""
MIDI Decoder

Turns raw 3-byte MIDI messages into normalized rack events and publishes
them on an output Port. Decoding never raises: malformed or unsupported
messages simply produce no event.
"""

import time
import logging
from typing import Callable, Optional, Sequence, Union

from ..backplane.port import Port
from ..production.error_handler import ErrorSeverity
from .events import (
    CC_ALL_NOTES_OFF,
    STATUS_CONTROL_CHANGE,
    STATUS_NOTE_OFF,
    STATUS_NOTE_ON,
    STATUS_SYSTEM,
    ControlChange,
    MIDIEvent,
    NoteOff,
    NoteOn,
)

log = logging.getLogger(__name__)

OMNI = "omni"

ChannelFilter = Union[str, int]

# Voice categories subject to the channel filter
FILTERED_CATEGORIES = frozenset({STATUS_NOTE_OFF, STATUS_NOTE_ON, STATUS_CONTROL_CHANGE})


def parse_channel_filter(value) -> ChannelFilter:
    """
    Normalize a channel filter setting

    Accepts "omni" (any case), an int 1-16 or a numeric string "1".."16".

    Raises:
        ValueError: for anything else
    """
    if isinstance(value, str):
        text = value.strip()
        if text.lower() == OMNI:
            return OMNI
        if text.isdigit():
            value = int(text)
    if isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 16:
        return value
    raise ValueError(f"Channel filter must be 'omni' or 1-16, got {value!r}")


def channel_matches(channel_filter: ChannelFilter, channel: int) -> bool:
    if channel_filter == OMNI:
        return True
    return channel == channel_filter


def _is_byte(value, upper: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= upper


def decode_message(status: int, data1: int, data2: int, timestamp: float = 0.0,
                   channel: ChannelFilter = OMNI) -> Optional[MIDIEvent]:
    """
    Decode one MIDI message

    Args:
        status: Status byte (type nibble + channel nibble)
        data1: First data byte (note or controller number)
        data2: Second data byte (velocity or controller value)
        timestamp: Arrival time, passed through to the event
        channel: Channel filter, OMNI or 1-16

    Returns:
        NoteOn, NoteOff or ControlChange, or None when no event applies
    """
    if not (_is_byte(status, 0xFF) and status >= 0x80):
        return None
    if not (_is_byte(data1, 0x7F) and _is_byte(data2, 0x7F)):
        return None

    message_status = status & 0xF0
    midi_channel = (status & 0x0F) + 1

    # System messages (clock, sysex, active sensing...) are not decoded
    if message_status == STATUS_SYSTEM:
        return None

    if message_status in FILTERED_CATEGORIES and not channel_matches(channel, midi_channel):
        return None

    # Note On (0x9n); velocity 0 is a Note Off
    if message_status == STATUS_NOTE_ON and data2 > 0:
        return NoteOn(channel=midi_channel, note=data1, velocity=data2 / 127, timestamp=timestamp)

    # Note Off (0x8n)
    if message_status == STATUS_NOTE_OFF or message_status == STATUS_NOTE_ON:
        return NoteOff(channel=midi_channel, note=data1, timestamp=timestamp)

    # Control Change (0xBn)
    if message_status == STATUS_CONTROL_CHANGE:
        return ControlChange(channel=midi_channel, controller=data1, value=data2, timestamp=timestamp)

    return None


class MIDIDecoder:
    """
    Stateful front end to decode_message.

    Holds the current channel filter, which the host may change at any time,
    and publishes each decoded event once on ``output``.
    """

    def __init__(self, output: Optional[Port] = None, channel: ChannelFilter = OMNI,
                 on_activity: Optional[Callable[[MIDIEvent], None]] = None):
        self.output = output if output is not None else Port(name="midi")
        self._channel = parse_channel_filter(channel)
        self.on_activity = on_activity

        self.message_count = 0
        self.event_count = 0
        self.last_activity: float = 0.0

    @property
    def channel(self) -> ChannelFilter:
        return self._channel

    @channel.setter
    def channel(self, value):
        self._channel = parse_channel_filter(value)
        log.info(f"MIDI channel filter: {self._channel}")

    def decode(self, status: int, data1: int, data2: int,
               timestamp: float = 0.0) -> Optional[MIDIEvent]:
        """Decode against the current channel filter without publishing"""
        return decode_message(status, data1, data2, timestamp, self._channel)

    def handle_message(self, status: int, data1: int, data2: int,
                       timestamp: float = 0.0) -> Optional[MIDIEvent]:
        """Decode a message and publish the resulting event, if any"""
        self.message_count += 1
        event = self.decode(status, data1, data2, timestamp)
        if event is None:
            return None

        self.event_count += 1
        self.last_activity = time.time()
        log.debug(f"MIDI {event.type}: {event}")

        if self.on_activity is not None:
            try:
                self.on_activity(event)
            except Exception as e:
                self.output.error_handler.handle_error(
                    e, "midi:on_activity", ErrorSeverity.LOW, {"event": repr(event)},
                )
        self.output.publish(event)
        return event

    def handle_bytes(self, data: Sequence[int], timestamp: float = 0.0) -> Optional[MIDIEvent]:
        """Decode a raw byte sequence; only complete 3-byte messages qualify"""
        if not isinstance(data, (list, tuple, bytes, bytearray)) or len(data) != 3:
            self.message_count += 1
            return None
        status, data1, data2 = data
        return self.handle_message(status, data1, data2, timestamp)

    def all_notes_off(self, timestamp: Optional[float] = None):
        """Panic: publish All Notes Off (CC 123) on every channel"""
        if timestamp is None:
            timestamp = time.monotonic()
        for midi_channel in range(1, 17):
            self.output.publish(ControlChange(
                channel=midi_channel, controller=CC_ALL_NOTES_OFF, value=0, timestamp=timestamp,
            ))
        log.debug("MIDI: All notes off (panic)")
