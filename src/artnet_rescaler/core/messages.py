"""
Message Definitions for the Art-Net Rescaler.

DispatchMessage is the closed set of events consumed by the dispatch actor;
ControlEvent is what the MIDI listener hands to the OSC forwarder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from artnet_rescaler.core.config import MidiControl

MIDI_VALUE_MAX = 127


def unipolar_from_midi(value: int) -> float:
    """Map a 7-bit MIDI value onto [0, 1]."""
    return min(max(value, 0), MIDI_VALUE_MAX) / MIDI_VALUE_MAX


@dataclass(frozen=True)
class PollReceived:
    """An ArtPoll arrived; reply to `reply_to` on the Art-Net port."""
    reply_to: Tuple[str, int]


@dataclass(frozen=True)
class ScaleUpdate:
    """Replace the dispatcher's current scale factor."""
    scale: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.scale <= 1.0:
            raise ValueError(f"scale must be within [0, 1], got {self.scale}")

    @classmethod
    def from_midi(cls, value: int) -> "ScaleUpdate":
        return cls(unipolar_from_midi(value))


@dataclass(frozen=True)
class UniverseFrame:
    """One incoming ArtDmx frame."""
    universe: int
    data: bytes
    sequence: int = 0
    physical: int = 0


DispatchMessage = Union[PollReceived, ScaleUpdate, UniverseFrame]


@dataclass(frozen=True)
class ControlEvent:
    """A control-change destined for OSC forwarding."""
    control: MidiControl
    value: int
