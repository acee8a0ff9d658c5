"""
Art-Net Rescaler: live rescale and remap relay for Art-Net universes.

Receives ArtDmx frames, scales and remaps them per universe under control
of a MIDI fader, and forwards the result to configured nodes. Answers
ArtPoll discovery and can forward other MIDI controls as OSC.
"""

__version__ = "0.1.0"

from artnet_rescaler.core.config import Settings
from artnet_rescaler.core.messages import PollReceived, ScaleUpdate, UniverseFrame

__all__ = [
    "Settings",
    "PollReceived",
    "ScaleUpdate",
    "UniverseFrame",
    "__version__",
]
