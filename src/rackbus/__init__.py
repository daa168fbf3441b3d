"""
rackbus - event backplane for rack modules, with a MIDI input front end.
"""

from .backplane import Port, TopicBus, connect, create_topic_bus, tee
from .midi import MIDIDecoder, MIDIInputController, decode_message

__version__ = "0.1.0"

__all__ = [
    'Port',
    'TopicBus',
    'connect',
    'create_topic_bus',
    'tee',
    'MIDIDecoder',
    'MIDIInputController',
    'decode_message',
]
