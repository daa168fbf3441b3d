"""
MIDI input controller tests

python-rtmidi is replaced by a Mock so no hardware is needed.
"""

import unittest
from unittest.mock import MagicMock, Mock, patch

from rackbus.backplane import Port
from rackbus.midi import ControlChange, MIDIDecoder, MIDIInputController, NoteOn, midi_status_text
from rackbus.midi import midi_input


def make_rtmidi(ports):
    """Mock rtmidi module whose MidiIn reports the given ports"""
    mock_rtmidi = MagicMock()
    mock_rtmidi.RtMidiError = RuntimeError
    mock_rtmidi.MidiIn.return_value.get_ports.return_value = list(ports)
    return mock_rtmidi


class TestMIDIInputController(unittest.TestCase):
    """Test device selection and message dispatch"""

    def setUp(self):
        self.port = Port()
        self.received = []
        self.port.subscribe(self.received.append)
        self.decoder = MIDIDecoder(self.port)

    def _controller(self, ports, **kwargs):
        mock_rtmidi = make_rtmidi(ports)
        patchers = [
            patch.object(midi_input, 'rtmidi', mock_rtmidi),
            patch.object(midi_input, 'RTMIDI_AVAILABLE', True),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)
        return MIDIInputController(self.decoder, **kwargs), mock_rtmidi

    def test_list_ports(self):
        controller, _ = self._controller(['Through', 'USB Keyboard'])
        self.assertEqual(controller.list_ports(), ['Through', 'USB Keyboard'])

    def test_find_port_by_keyword(self):
        controller, _ = self._controller(['Midi Through 14:0', 'Arturia KeyStep'],
                                         port_keywords=['keystep'])
        self.assertEqual(controller.find_port(), 'Arturia KeyStep')
        self.assertIsNone(controller.find_port(['launchpad']))

    def test_connect_named_port(self):
        controller, mock_rtmidi = self._controller(['A', 'B'])
        midi_in = mock_rtmidi.MidiIn.return_value

        self.assertTrue(controller.connect('B'))

        midi_in.open_port.assert_called_once_with(1)
        midi_in.ignore_types.assert_called_once_with(sysex=True, timing=True, active_sense=True)
        midi_in.set_callback.assert_called_once()
        self.assertTrue(controller.connected)
        self.assertEqual(controller.port_name, 'B')
        self.assertEqual(controller.status_text, "MIDI ready")

    def test_connect_falls_back_to_first_port(self):
        controller, mock_rtmidi = self._controller(['Generic In'], port_keywords=['nomatch'])

        self.assertTrue(controller.connect())
        mock_rtmidi.MidiIn.return_value.open_port.assert_called_once_with(0)

    def test_connect_without_devices(self):
        controller, _ = self._controller([])

        self.assertFalse(controller.connect())
        self.assertFalse(controller.connected)
        self.assertEqual(controller.status_text, "No MIDI input connected")

    def test_connect_unknown_port(self):
        controller, _ = self._controller(['A'])
        self.assertFalse(controller.connect('Z'))

    def test_connect_error_reported(self):
        controller, mock_rtmidi = self._controller(['A'])
        mock_rtmidi.MidiIn.return_value.open_port.side_effect = RuntimeError("busy")

        self.assertFalse(controller.connect('A'))
        self.assertFalse(controller.connected)

    def test_failed_open_releases_port_handle(self):
        controller, mock_rtmidi = self._controller(['A'])
        lister, opener = MagicMock(), MagicMock()
        lister.get_ports.return_value = ['A']
        opener.set_callback.side_effect = RuntimeError("no callback")
        mock_rtmidi.MidiIn.side_effect = [lister, opener]

        self.assertFalse(controller.connect('A'))

        opener.delete.assert_called_once()
        lister.delete.assert_called_once()
        self.assertIsNone(controller._midi_in)

    def test_disconnect(self):
        controller, mock_rtmidi = self._controller(['A'])
        midi_in = mock_rtmidi.MidiIn.return_value
        controller.connect('A')

        controller.disconnect()
        controller.disconnect()

        midi_in.cancel_callback.assert_called_once()
        midi_in.close_port.assert_called_once()
        self.assertFalse(controller.connected)
        self.assertEqual(controller.port_name, "")

    def test_rtmidi_callback_feeds_decoder(self):
        """Deltas accumulate into the event timestamp"""
        controller, mock_rtmidi = self._controller(['A'])
        controller.connect('A')
        callback = mock_rtmidi.MidiIn.return_value.set_callback.call_args[0][0]

        callback(([0x90, 60, 100], 0.5))
        callback(([0xF8], 0.25))
        callback(([0xB0, 1, 64], 0.25))

        self.assertEqual(self.received, [
            NoteOn(channel=1, note=60, velocity=100 / 127, timestamp=0.5),
            ControlChange(channel=1, controller=1, value=64, timestamp=1.0),
        ])

    def test_dispatch_respects_channel_filter(self):
        controller, _ = self._controller(['A'])
        self.decoder.channel = 3

        self.assertIsNone(controller.dispatch([0x90, 60, 100], 0.0))
        self.assertIsNotNone(controller.dispatch([0x92, 60, 100], 0.0))
        self.assertEqual(len(self.received), 1)


def test_unavailable_backend():
    """Without python-rtmidi the controller reports and refuses to connect"""
    with patch.object(midi_input, 'RTMIDI_AVAILABLE', False):
        controller = MIDIInputController(MIDIDecoder())
        assert not controller.available
        assert controller.list_ports() == []
        assert controller.connect('anything') is False
        assert controller.status_text.startswith("MIDI not supported")


def test_status_text():
    assert midi_status_text(True, True) == "MIDI ready"
    assert midi_status_text(True, False) == "No MIDI input connected"
    assert "not supported" in midi_status_text(False, False)


def test_dispatch_uses_monotonic_clock_by_default():
    decoder = Mock()
    with patch.object(midi_input, 'RTMIDI_AVAILABLE', False), \
            patch.object(midi_input.time, 'monotonic', return_value=42.0):
        controller = MIDIInputController(decoder)
        controller.dispatch((0x90, 1, 2))

    decoder.handle_bytes.assert_called_once_with([0x90, 1, 2], 42.0)
