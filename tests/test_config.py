"""
rackbus Configuration Tests
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from rackbus import config as config_module
from rackbus.config import (
    BusConfig,
    ConfigValidationError,
    FullConfig,
    MidiConfig,
    load_config,
    save_config,
    validate_config,
)


@pytest.fixture(autouse=True)
def clean_environment():
    """Keep RACKBUS_* variables from the host out of the tests"""
    with patch.dict(os.environ, {}, clear=False):
        os.environ.pop(config_module.ENV_MIDI_CHANNEL, None)
        os.environ.pop(config_module.ENV_MIDI_PORT, None)
        yield


def test_default_config():
    config = FullConfig()
    assert config.midi.channel == "omni"
    assert config.midi.input_port is None
    assert config.bus.topic_key == "type"
    assert config.logging.verbose is False


def test_missing_file_gives_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        config = load_config(str(Path(tmpdir) / "absent.yaml"))
    assert config == FullConfig()


def test_default_config_creation():
    """The shipped template loads back to the defaults"""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "rackbus" / "config.yaml"

        created = config_module.create_default_config(str(config_path))
        assert created == config_path
        assert config_path.exists()

        config = load_config(str(config_path))
        assert config.midi.channel == "omni"
        assert config.midi.port_keywords == ['keyboard', 'piano', 'midi']
        assert config.bus.topic_key == "type"


def test_create_default_config_keeps_existing():
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yaml"
        config_path.write_text("midi:\n  channel: 4\n")

        config_module.create_default_config(str(config_path))

        assert load_config(str(config_path)).midi.channel == 4


def test_get_config_path_uses_xdg():
    with patch.dict(os.environ, {'XDG_CONFIG_HOME': '/tmp/xdg'}):
        assert config_module.get_config_path() == Path('/tmp/xdg/rackbus/config.yaml')


def test_load_values():
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yaml"
        config_path.write_text(
            "midi:\n"
            "  channel: '10'\n"
            "  input_port: Drum Pad\n"
            "bus:\n"
            "  topic_key: kind\n"
            "logging:\n"
            "  verbose: true\n"
        )

        config = load_config(str(config_path))

    assert config.midi.channel == 10
    assert config.midi.input_port == "Drum Pad"
    assert config.bus.topic_key == "kind"
    assert config.logging.verbose is True


def test_environment_overrides():
    with tempfile.TemporaryDirectory() as tmpdir:
        with patch.dict(os.environ, {
            config_module.ENV_MIDI_CHANNEL: "2",
            config_module.ENV_MIDI_PORT: "Env Port",
        }):
            config = load_config(str(Path(tmpdir) / "none.yaml"))

    assert config.midi.channel == 2
    assert config.midi.input_port == "Env Port"


def test_config_validation():
    with pytest.raises(ConfigValidationError):
        validate_config(FullConfig(midi=MidiConfig(channel=17)))
    with pytest.raises(ConfigValidationError):
        validate_config(FullConfig(bus=BusConfig(topic_key="")))
    with pytest.raises(ConfigValidationError):
        validate_config(FullConfig(midi=MidiConfig(port_keywords="piano")))

    config = validate_config(FullConfig(midi=MidiConfig(channel="OMNI")))
    assert config.midi.channel == "omni"


def test_invalid_top_level_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yaml"
        config_path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigValidationError):
            load_config(str(config_path))


def test_save_and_reload():
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "saved.yaml"
        original = FullConfig(midi=MidiConfig(channel=7, input_port="X"))

        save_config(original, str(config_path))
        data = yaml.safe_load(config_path.read_text())
        reloaded = load_config(str(config_path))

    assert data['midi']['channel'] == 7
    assert reloaded == original


@pytest.mark.parametrize("text", [
    "midi: 5\n",
    "bus: [type]\n",
    "logging: verbose\n",
    "midi:\n  port_keywords: [1, 2]\n",
])
def test_malformed_sections_rejected(text):
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yaml"
        config_path.write_text(text)

        with pytest.raises(ConfigValidationError):
            load_config(str(config_path))
