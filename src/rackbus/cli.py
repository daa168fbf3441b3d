#!/usr/bin/env python3
"""
rackbus command line
====================
Lists MIDI inputs, monitors decoded events and manages the config file.
"""

import sys
import time
import signal
import argparse
import logging
import threading
from dataclasses import asdict

import yaml

from .backplane import TopicBus, connect
from .config import (
    ConfigValidationError,
    create_default_config,
    get_config_path,
    load_config,
)
from .midi import CONTROL_CHANGE, NOTE_OFF, NOTE_ON, MIDIDecoder, MIDIInputController
from .midi.decoder import parse_channel_filter
from .production import get_default_error_handler, setup_production_logging

log = logging.getLogger(__name__)


def format_event(event) -> str:
    """Single-line rendering of a MIDI event"""
    if event.type == NOTE_ON:
        return f"[{event.timestamp:9.3f}] ch{event.channel:<2} note on   {event.note:3d} vel {event.velocity:.2f}"
    if event.type == NOTE_OFF:
        return f"[{event.timestamp:9.3f}] ch{event.channel:<2} note off  {event.note:3d}"
    if event.type == CONTROL_CHANGE:
        return f"[{event.timestamp:9.3f}] ch{event.channel:<2} cc        {event.controller:3d} = {event.value}"
    return repr(event)


def cmd_ports(args) -> int:
    controller = MIDIInputController(MIDIDecoder())
    if not controller.available:
        print(controller.status_text)
        return 1

    ports = controller.list_ports()
    if not ports:
        print("No MIDI inputs")
        return 1
    for i, port in enumerate(ports):
        print(f"  {i}: {port}")
    return 0


def cmd_monitor(args) -> int:
    config = load_config(args.config)
    setup_production_logging(
        verbose=args.verbose or config.logging.verbose,
        log_file=args.log_file or config.logging.log_file,
    )

    channel = parse_channel_filter(args.channel) if args.channel else config.midi.channel
    decoder = MIDIDecoder(channel=channel)
    controller = MIDIInputController(decoder, port_keywords=config.midi.port_keywords)

    bus = TopicBus(config.bus.topic_key)
    link = connect(decoder.output, bus.port)
    for event_type in (NOTE_ON, NOTE_OFF, CONTROL_CHANGE):
        bus.route(event_type, lambda e: print(format_event(e), flush=True))

    if not controller.connect(args.port or config.midi.input_port):
        print(controller.status_text)
        link.dispose()
        return 1

    print(f"Monitoring {controller.port_name} (channel filter: {decoder.channel}) - Ctrl+C to stop")

    stop = threading.Event()

    def signal_handler(sig, frame):
        stop.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        while not stop.is_set():
            time.sleep(0.1)
    finally:
        # Input thread must be stopped before the panic publishes on the same port
        controller.disconnect()
        decoder.all_notes_off()
        link.dispose()

    stats = get_default_error_handler().get_error_statistics()
    log.info(f"Decoded {decoder.event_count} events from {decoder.message_count} messages, "
             f"{stats['total_errors']} subscriber errors")
    return 0


def cmd_config(args) -> int:
    if args.action == 'init':
        path = create_default_config(args.config)
        print(path)
    elif args.action == 'path':
        print(args.config or get_config_path())
    elif args.action == 'show':
        config = load_config(args.config)
        print(yaml.safe_dump(asdict(config), default_flow_style=False, sort_keys=False), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rackbus",
        description="rackbus - MIDI input to rack events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ports                      # List MIDI inputs
  %(prog)s monitor                    # Auto-detect input, all channels
  %(prog)s monitor --channel 10       # Drums only
  %(prog)s config init                # Write ~/.config/rackbus/config.yaml
        """
    )
    parser.add_argument('--config', '-c', default=None,
                        help="Path to config file (default: XDG config dir)")

    sub = parser.add_subparsers(dest='command', required=True)

    ports = sub.add_parser('ports', help="List MIDI input ports")
    ports.set_defaults(func=cmd_ports)

    monitor = sub.add_parser('monitor', help="Print decoded MIDI events")
    monitor.add_argument('--port', '-p', default=None,
                         help="MIDI input port name (default: auto-detect)")
    monitor.add_argument('--channel', default=None,
                         help="Channel filter: omni or 1-16")
    monitor.add_argument('--verbose', '-v', action='store_true',
                         help="Debug logging")
    monitor.add_argument('--log-file', default=None,
                         help="Also log to this file (rotated)")
    monitor.set_defaults(func=cmd_monitor)

    config = sub.add_parser('config', help="Manage the config file")
    config.add_argument('action', choices=['init', 'show', 'path'])
    config.set_defaults(func=cmd_config)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return args.func(args)
    except (ConfigValidationError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
