"""Relay components: receiver, dispatcher, MIDI listener and OSC forwarder."""

from artnet_rescaler.relay.builder import build_relay, RescalerRelay
from artnet_rescaler.relay.dispatcher import DispatchActor
from artnet_rescaler.relay.midi_input import ControlSurfaceListener
from artnet_rescaler.relay.osc_forward import OscForwarder
from artnet_rescaler.relay.receiver import ArtNetReceiver

__all__ = [
    "build_relay",
    "RescalerRelay",
    "DispatchActor",
    "ControlSurfaceListener",
    "OscForwarder",
    "ArtNetReceiver",
]
