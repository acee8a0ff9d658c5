"""
Configuration Management for the Art-Net Rescaler.

Uses Pydantic Settings for type-safe configuration with environment
variable support and YAML file loading.
"""

from __future__ import annotations

from ipaddress import IPv4Address
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from artnet_rescaler.core.exceptions import ConfigError, RemapRuleError, UniverseConfigError
from artnet_rescaler.dmx.artnet import ARTNET_PORT, ARTNET_PORT_ADDRESS_MAX, SHORT_NAME_LENGTH
from artnet_rescaler.dmx.universe import DMX_CHANNEL_COUNT


class MidiControl(BaseModel):
    """A MIDI control-change identifier: channel plus controller number."""
    model_config = ConfigDict(frozen=True)

    channel: int = Field(ge=0, le=15)
    control: int = Field(ge=0, le=127)

    def __str__(self) -> str:
        return f"ch{self.channel}/cc{self.control}"


class RemapRule(BaseModel):
    """Copy `length` channels from `source_start` to `dest_start`."""
    source_start: int = Field(ge=0, validation_alias=AliasChoices("source_start", "start"))
    length: int = Field(ge=0)
    dest_start: int = Field(ge=0, validation_alias=AliasChoices("dest_start", "new_start"))


class UniverseConfig(BaseModel):
    """Actions applied to one incoming Art-Net universe."""
    rescale: bool = False
    remap: List[RemapRule] = Field(default_factory=list)
    destination: IPv4Address
    port: int = Field(default=ARTNET_PORT, ge=1, le=65535)


class OscMapping(BaseModel):
    """Forward one MIDI control to an OSC address."""
    midi: MidiControl
    osc: str

    @field_validator("osc")
    @classmethod
    def _osc_address_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"OSC address must start with '/': {value!r}")
        return value


class OscForwardConfig(BaseModel):
    """OSC forwarding destination and control mappings."""
    host: str = "127.0.0.1"
    port: int = Field(default=9000, ge=1, le=65535)
    mappings: List[OscMapping] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _split_destination(cls, data: Any) -> Any:
        # Accept the compact "host:port" form as well.
        if isinstance(data, dict) and "destination" in data:
            data = dict(data)
            host, _, port = str(data.pop("destination")).rpartition(":")
            if not host or not port:
                raise ValueError("osc_forward.destination must look like 'host:port'")
            data.setdefault("host", host)
            data.setdefault("port", port)
        return data

    def mapping_table(self) -> Dict[MidiControl, str]:
        """Build the static control -> OSC address table."""
        return {mapping.midi: mapping.osc for mapping in self.mappings}


class ArtNetConfig(BaseModel):
    """Art-Net socket and discovery configuration."""
    bind_host: str = "0.0.0.0"
    port: int = Field(default=ARTNET_PORT, ge=1, le=65535)
    short_name: str = "rescaler"
    long_name: str = ""
    reply_ip: IPv4Address = IPv4Address("0.0.0.0")
    broadcast: bool = True
    reuse_address: bool = False
    recv_buffer_size: int = 2048


class Settings(BaseSettings):
    """
    Main application settings.

    Can be configured via:
    - Environment variables (prefixed with RESCALER_)
    - YAML config file
    - Direct instantiation
    """

    model_config = SettingsConfigDict(
        env_prefix="RESCALER_",
        env_nested_delimiter="__",
    )

    # Control surface
    midi_port: Optional[str] = None
    rescale_midi_control: Optional[MidiControl] = None

    # Outputs
    osc_forward: Optional[OscForwardConfig] = None
    universes: Dict[int, UniverseConfig] = Field(default_factory=dict)
    artnet: ArtNetConfig = Field(default_factory=ArtNetConfig)

    # Debug
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @field_validator("universes")
    @classmethod
    def _universe_ids_in_range(
        cls, value: Dict[int, UniverseConfig]
    ) -> Dict[int, UniverseConfig]:
        for universe in value:
            if not 0 <= universe <= ARTNET_PORT_ADDRESS_MAX:
                raise ValueError(
                    f"universe {universe} outside Art-Net port address range "
                    f"0-{ARTNET_PORT_ADDRESS_MAX}"
                )
        return value

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def actions(self) -> Dict[int, UniverseConfig]:
        """Return the universe action table keyed by Art-Net port address."""
        return dict(self.universes)


def validate_startup_config(settings: Settings) -> None:
    """
    Reject configurations the relay cannot honour at runtime.

    Raises a ConfigError subclass describing the first problem found.
    """
    for universe, action in sorted(settings.universes.items()):
        for index, rule in enumerate(action.remap):
            if rule.dest_start + rule.length > DMX_CHANNEL_COUNT:
                raise RemapRuleError(
                    universe,
                    index,
                    f"destination {rule.dest_start}+{rule.length} exceeds "
                    f"{DMX_CHANNEL_COUNT} channels",
                )
            if rule.source_start + rule.length > DMX_CHANNEL_COUNT:
                raise RemapRuleError(
                    universe,
                    index,
                    f"source {rule.source_start}+{rule.length} exceeds "
                    f"{DMX_CHANNEL_COUNT} channels",
                )
        if action.destination.is_unspecified:
            raise UniverseConfigError(universe, "destination must not be 0.0.0.0")

    for label, name, limit in (
        ("short_name", settings.artnet.short_name, SHORT_NAME_LENGTH - 1),
        ("long_name", settings.artnet.long_name, 63),
    ):
        if not name.isascii():
            raise ConfigError(f"artnet.{label} must be ASCII: {name!r}")
        if len(name) > limit:
            raise ConfigError(f"artnet.{label} longer than {limit} characters: {name!r}")

    if settings.osc_forward is not None:
        seen: set[MidiControl] = set()
        for mapping in settings.osc_forward.mappings:
            if mapping.midi in seen:
                raise ConfigError(f"duplicate OSC mapping for MIDI control {mapping.midi}")
            if mapping.midi == settings.rescale_midi_control:
                raise ConfigError(
                    f"MIDI control {mapping.midi} drives the rescale and cannot be "
                    "forwarded over OSC"
                )
            seen.add(mapping.midi)
