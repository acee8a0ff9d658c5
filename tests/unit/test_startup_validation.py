from ipaddress import IPv4Address
from pathlib import Path

import pytest
from pydantic import ValidationError

from artnet_rescaler.core.config import (
    ArtNetConfig,
    MidiControl,
    OscForwardConfig,
    OscMapping,
    RemapRule,
    Settings,
    UniverseConfig,
    validate_startup_config,
)
from artnet_rescaler.core.exceptions import ConfigError, RemapRuleError, UniverseConfigError

CONFIG_YAML = """
midi_port: "nanoKONTROL2 SLIDER/KNOB"
rescale_midi_control: {channel: 0, control: 0}
osc_forward:
  destination: "127.0.0.1:9000"
  mappings:
    - midi: {channel: 0, control: 1}
      osc: /fader/1
universes:
  0:
    rescale: true
    destination: 10.0.0.5
  1:
    remap:
      - {start: 0, length: 3, new_start: 10}
    destination: 10.0.0.6
"""


def _settings(*rules: RemapRule) -> Settings:
    return Settings(
        universes={2: UniverseConfig(remap=list(rules), destination=IPv4Address("10.0.0.2"))}
    )


def test_from_yaml_reads_full_configuration(tmp_path: Path) -> None:
    path = tmp_path / "rescaler.yaml"
    path.write_text(CONFIG_YAML)

    settings = Settings.from_yaml(path)

    assert settings.midi_port == "nanoKONTROL2 SLIDER/KNOB"
    assert settings.rescale_midi_control == MidiControl(channel=0, control=0)
    assert settings.osc_forward is not None
    assert (settings.osc_forward.host, settings.osc_forward.port) == ("127.0.0.1", 9000)
    assert settings.osc_forward.mapping_table() == {MidiControl(channel=0, control=1): "/fader/1"}
    assert settings.universes[0].rescale is True
    assert settings.universes[1].rescale is False
    assert settings.universes[1].remap == [RemapRule(source_start=0, length=3, dest_start=10)]
    assert settings.universes[1].destination == IPv4Address("10.0.0.6")
    validate_startup_config(settings)


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    settings = Settings.from_yaml(path)

    assert settings.universes == {}
    assert settings.artnet.port == 6454
    assert settings.artnet.short_name == "rescaler"


def test_yaml_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "rescaler.yaml"
    path.write_text(CONFIG_YAML)
    settings = Settings.from_yaml(path)

    out = tmp_path / "copy.yaml"
    settings.to_yaml(out)

    assert Settings.from_yaml(out).universes == settings.universes


def test_universe_outside_port_address_range_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(universes={0x8000: UniverseConfig(destination=IPv4Address("10.0.0.1"))})


def test_osc_address_must_be_absolute() -> None:
    with pytest.raises(ValidationError):
        OscMapping(midi=MidiControl(channel=0, control=1), osc="fader/1")


def test_startup_validation_rejects_remap_destination_beyond_512() -> None:
    settings = _settings(RemapRule(source_start=0, length=4, dest_start=510))

    with pytest.raises(RemapRuleError):
        validate_startup_config(settings)


def test_startup_validation_rejects_remap_source_beyond_512() -> None:
    settings = _settings(RemapRule(source_start=511, length=2, dest_start=0))

    with pytest.raises(RemapRuleError):
        validate_startup_config(settings)


def test_startup_validation_rejects_unspecified_destination() -> None:
    settings = Settings(universes={0: UniverseConfig(destination=IPv4Address("0.0.0.0"))})

    with pytest.raises(UniverseConfigError):
        validate_startup_config(settings)


def test_startup_validation_rejects_long_short_name() -> None:
    settings = Settings(artnet=ArtNetConfig(short_name="a-very-long-node-name"))

    with pytest.raises(ConfigError):
        validate_startup_config(settings)


def test_startup_validation_rejects_forwarding_scale_control() -> None:
    control = MidiControl(channel=0, control=0)
    settings = Settings(
        rescale_midi_control=control,
        osc_forward=OscForwardConfig(mappings=[OscMapping(midi=control, osc="/scale")]),
    )

    with pytest.raises(ConfigError):
        validate_startup_config(settings)


def test_startup_validation_rejects_duplicate_osc_mapping() -> None:
    control = MidiControl(channel=1, control=2)
    settings = Settings(
        osc_forward=OscForwardConfig(
            mappings=[OscMapping(midi=control, osc="/a"), OscMapping(midi=control, osc="/b")]
        ),
    )

    with pytest.raises(ConfigError):
        validate_startup_config(settings)


def test_startup_validation_allows_remap_filling_last_channel() -> None:
    settings = _settings(RemapRule(source_start=0, length=12, dest_start=500))

    validate_startup_config(settings)


def test_example_configuration_is_valid() -> None:
    example = Path(__file__).resolve().parents[2] / "config" / "rescaler.example.yaml"

    settings = Settings.from_yaml(example)

    validate_startup_config(settings)
    assert sorted(settings.universes) == [0, 1]
