"""
MIDI Input Module

Binds a hardware MIDI input port (via python-rtmidi) to a MIDIDecoder.
Device enumeration and selection live here so the decoder and the backplane
never hold hardware state.
"""

import time
import logging
from typing import Iterable, List, Optional, Sequence

try:
    import rtmidi
    RTMIDI_AVAILABLE = True
except ImportError:
    RTMIDI_AVAILABLE = False
    rtmidi = None

from .decoder import MIDIDecoder
from .events import MIDIEvent

log = logging.getLogger(__name__)


def midi_status_text(available: bool, connected: bool) -> str:
    """One-line status for the host UI"""
    if not available:
        return "MIDI not supported (python-rtmidi missing)"
    if not connected:
        return "No MIDI input connected"
    return "MIDI ready"


class MIDIInputController:
    """
    MIDI input handler for external MIDI devices.

    Opens one rtmidi input port and feeds every message it receives into a
    MIDIDecoder. rtmidi invokes the callback from its own input thread, one
    message at a time, so each message is decoded and fanned out before the
    next one arrives.
    """

    DEFAULT_PORT_KEYWORDS = ['keyboard', 'piano', 'midi']

    def __init__(self, decoder: MIDIDecoder, port_keywords: Optional[Iterable[str]] = None):
        self.decoder = decoder
        self.port_keywords = [k.lower() for k in (port_keywords or self.DEFAULT_PORT_KEYWORDS)]
        self._midi_in = None
        self._port_name: str = ""
        self._connected = False
        self._clock: float = 0.0

        if not RTMIDI_AVAILABLE:
            log.warning("python-rtmidi not available - MIDI input disabled")
            log.info("Install with: pip install python-rtmidi")

    @property
    def available(self) -> bool:
        """Check if MIDI input is available"""
        return RTMIDI_AVAILABLE

    @property
    def connected(self) -> bool:
        """Check if connected to MIDI device"""
        return self._connected

    @property
    def port_name(self) -> str:
        return self._port_name

    @property
    def status_text(self) -> str:
        return midi_status_text(self.available, self._connected)

    def list_ports(self) -> List[str]:
        """List available MIDI input ports"""
        if not RTMIDI_AVAILABLE:
            return []

        midi_in = rtmidi.MidiIn()
        try:
            return list(midi_in.get_ports())
        finally:
            midi_in.delete()

    def find_port(self, keywords: Optional[Iterable[str]] = None) -> Optional[str]:
        """First port whose name contains one of the keywords"""
        keywords = [k.lower() for k in keywords] if keywords is not None else self.port_keywords

        for port in self.list_ports():
            port_lower = port.lower()
            for keyword in keywords:
                if keyword in port_lower:
                    log.info(f"Auto-detected MIDI input: {port}")
                    return port

        return None

    def connect(self, port_name: Optional[str] = None, auto_detect: bool = True) -> bool:
        """
        Connect to MIDI input device

        Args:
            port_name: Specific port name (optional)
            auto_detect: Match port keywords if no name is given

        Returns:
            True if connection successful
        """
        if not RTMIDI_AVAILABLE:
            return False

        if self._connected:
            self.disconnect()

        ports = self.list_ports()

        if port_name is None and auto_detect:
            port_name = self.find_port()

        # Use first available if no specific port and nothing detected
        if port_name is None:
            if not ports:
                log.warning("No MIDI input devices found")
                return False
            port_name = ports[0]
            log.info(f"Using first available MIDI port: {port_name}")

        if port_name not in ports:
            log.warning(f"MIDI input not found: {port_name}")
            return False

        midi_in = rtmidi.MidiIn()
        try:
            midi_in.ignore_types(sysex=True, timing=True, active_sense=True)
            midi_in.open_port(ports.index(port_name))
            midi_in.set_callback(self._on_rtmidi_message)
        except rtmidi.RtMidiError as e:
            log.error(f"MIDI connection failed: {e}")
            midi_in.delete()
            self._connected = False
            return False

        self._midi_in = midi_in
        self._port_name = port_name
        self._connected = True
        self._clock = 0.0

        log.info(f"MIDI connected: {port_name}")
        return True

    def disconnect(self):
        """Disconnect from MIDI device"""
        if self._midi_in:
            try:
                self._midi_in.cancel_callback()
                self._midi_in.close_port()
                log.info("MIDI disconnected")
            except rtmidi.RtMidiError as e:
                log.error(f"MIDI disconnect error: {e}")
            finally:
                self._midi_in = None
                self._connected = False
                self._port_name = ""

    def dispatch(self, message: Sequence[int], timestamp: Optional[float] = None) -> Optional[MIDIEvent]:
        """Hand one raw message to the decoder"""
        if timestamp is None:
            timestamp = time.monotonic()
        return self.decoder.handle_bytes(list(message), timestamp)

    def _on_rtmidi_message(self, event, data=None):
        message, delta = event
        # rtmidi reports seconds since the previous message
        self._clock += delta
        self.dispatch(message, self._clock)
