"""
rackbus Configuration Module
============================
YAML configuration for the MIDI input, the topic bus and logging.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

import yaml

from .midi.decoder import OMNI, parse_channel_filter

log = logging.getLogger(__name__)

ENV_MIDI_CHANNEL = "RACKBUS_MIDI_CHANNEL"
ENV_MIDI_PORT = "RACKBUS_MIDI_PORT"


# Default configuration as YAML template
DEFAULT_CONFIG_YAML = """# rackbus Configuration
# =====================
# Place in ~/.config/rackbus/config.yaml

# MIDI input
midi:
  channel: omni        # omni, or 1-16 to accept a single channel
  input_port: null     # null = auto-detect by keyword, else exact port name
  port_keywords:       # matched case-insensitively against port names
    - keyboard
    - piano
    - midi

# Topic bus
bus:
  topic_key: type      # event field used for routing

# Logging
logging:
  verbose: false       # true = log every decoded event
  log_file: null       # path for a rotating log file
"""


class ConfigValidationError(Exception):
    """Configuration validation error"""
    pass


@dataclass
class MidiConfig:
    channel: Any = OMNI
    input_port: Optional[str] = None
    port_keywords: List[str] = field(default_factory=lambda: ['keyboard', 'piano', 'midi'])


@dataclass
class BusConfig:
    topic_key: str = "type"


@dataclass
class LoggingConfig:
    verbose: bool = False
    log_file: Optional[str] = None


@dataclass
class FullConfig:
    midi: MidiConfig = field(default_factory=MidiConfig)
    bus: BusConfig = field(default_factory=BusConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_path() -> Path:
    """Get the configuration file path"""
    xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
    return Path(xdg_config) / 'rackbus' / 'config.yaml'


def create_default_config(path: Optional[str] = None) -> Path:
    """Create default configuration file unless one exists"""
    config_path = Path(path) if path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if not config_path.exists():
        config_path.write_text(DEFAULT_CONFIG_YAML)
        log.info(f"Created default config: {config_path}")
    else:
        log.info(f"Config already exists: {config_path}")
    return config_path


def validate_config(config: FullConfig) -> FullConfig:
    """
    Check and normalize configuration values

    Raises:
        ConfigValidationError: if a value is out of range
    """
    try:
        config.midi.channel = parse_channel_filter(config.midi.channel)
    except ValueError as e:
        raise ConfigValidationError(f"midi.channel: {e}") from e

    if not isinstance(config.bus.topic_key, str) or not config.bus.topic_key:
        raise ConfigValidationError(f"bus.topic_key must be a non-empty string, got {config.bus.topic_key!r}")

    if not isinstance(config.midi.port_keywords, list) or \
            not all(isinstance(k, str) for k in config.midi.port_keywords):
        raise ConfigValidationError("midi.port_keywords must be a list of strings")

    return config


def _apply_environment(config: FullConfig):
    channel = os.environ.get(ENV_MIDI_CHANNEL)
    if channel:
        config.midi.channel = channel
    port = os.environ.get(ENV_MIDI_PORT)
    if port:
        config.midi.input_port = port


def load_config(path: Optional[str] = None) -> FullConfig:
    """Load configuration from YAML file, then environment overrides"""
    config_path = Path(path) if path else get_config_path()
    config = FullConfig()

    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigValidationError(f"{config_path}: top level must be a mapping")

        for section in ('midi', 'bus', 'logging'):
            if data.get(section) is not None and not isinstance(data[section], dict):
                raise ConfigValidationError(f"{config_path}: '{section}' must be a mapping")

        if 'midi' in data:
            midi = data['midi'] or {}
            config.midi = MidiConfig(
                channel=midi.get('channel', OMNI),
                input_port=midi.get('input_port'),
                port_keywords=midi.get('port_keywords', MidiConfig().port_keywords),
            )

        if 'bus' in data:
            bus = data['bus'] or {}
            config.bus = BusConfig(topic_key=bus.get('topic_key', 'type'))

        if 'logging' in data:
            logging_data = data['logging'] or {}
            config.logging = LoggingConfig(
                verbose=bool(logging_data.get('verbose', False)),
                log_file=logging_data.get('log_file'),
            )

        log.info(f"Loaded config: {config_path}")

    _apply_environment(config)
    return validate_config(config)


def config_to_dict(config: FullConfig) -> Dict[str, Any]:
    return asdict(config)


def save_config(config: FullConfig, path: Optional[str] = None) -> Path:
    """Save configuration to YAML file"""
    config_path = Path(path) if path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.safe_dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)

    log.info(f"Saved config: {config_path}")
    return config_path
