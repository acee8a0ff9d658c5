"""Core system components for the Art-Net Rescaler."""

from artnet_rescaler.core.exceptions import (
    RescalerError,
    ArtNetError,
    MidiError,
    OscError,
    ConfigError,
)
from artnet_rescaler.core.config import Settings, UniverseConfig, RemapRule, MidiControl
from artnet_rescaler.core.messages import (
    ControlEvent,
    DispatchMessage,
    PollReceived,
    ScaleUpdate,
    UniverseFrame,
)

__all__ = [
    "Settings",
    "UniverseConfig",
    "RemapRule",
    "MidiControl",
    "ControlEvent",
    "DispatchMessage",
    "PollReceived",
    "ScaleUpdate",
    "UniverseFrame",
    "RescalerError",
    "ArtNetError",
    "MidiError",
    "OscError",
    "ConfigError",
]
