"""
Control-Surface Listener: route MIDI control changes.

One designated control drives the rescale factor; every other control
change is handed to the OSC forwarder. mido delivers messages on the
backend's own callback thread, so this class only classifies and enqueues.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, cast

import mido
import structlog

from artnet_rescaler.core.config import MidiControl
from artnet_rescaler.core.exceptions import MidiConnectionError, MidiPortNotFoundError
from artnet_rescaler.core.messages import ControlEvent, DispatchMessage, ScaleUpdate

logger = structlog.get_logger()

STATUS_NOTE_OFF = 0x8
STATUS_NOTE_ON = 0x9
STATUS_CONTROL_CHANGE = 0xB

_EVENT_TYPES = {
    STATUS_NOTE_OFF: "note_off",
    STATUS_NOTE_ON: "note_on",
    STATUS_CONTROL_CHANGE: "control_change",
}


def list_input_ports() -> list[str]:
    """Names of the MIDI input ports currently available."""
    return cast(list[str], mido.get_input_names())


class ControlSurfaceListener:
    """
    Listens to a named MIDI input port.

    Args:
        port_name: Exact name of the input port to open.
        scale_control: Control whose value sets the rescale factor.
        dispatch: Enqueue callable of the dispatch actor.
        forward: Enqueue callable of the OSC forwarder, if one is configured.
    """

    def __init__(
        self,
        port_name: str,
        scale_control: Optional[MidiControl],
        dispatch: Callable[[DispatchMessage], None],
        forward: Optional[Callable[[ControlEvent], None]] = None,
    ):
        self.port_name = port_name
        self.scale_control = scale_control
        self._dispatch = dispatch
        self._forward = forward
        self._port = None

    def start(self) -> None:
        """Open the port; raises a MidiError if it cannot be used."""
        available = list_input_ports()
        logger.debug("Available MIDI ports", ports=available)
        if self.port_name not in available:
            raise MidiPortNotFoundError(self.port_name, available)

        try:
            self._port = mido.open_input(self.port_name, callback=self._on_message)
        except Exception as e:
            raise MidiConnectionError(self.port_name, str(e)) from e
        logger.info("MIDI input started", port=self.port_name)

    def stop(self) -> None:
        """Close the port."""
        if self._port is not None:
            self._port.close()
            self._port = None
            logger.info("MIDI input stopped", port=self.port_name)

    def _on_message(self, msg: mido.Message) -> None:
        """Callback for incoming MIDI messages."""
        self.handle_raw(msg.bytes())

    def handle_raw(self, data: Sequence[int]) -> None:
        """Classify one raw MIDI message and route it."""
        if not data:
            return
        status = data[0] >> 4
        event_type = _EVENT_TYPES.get(status)
        if event_type is None:
            logger.warning(
                "Ignoring MIDI input event of unimplemented type",
                port=self.port_name,
                status=status,
            )
            return
        if status != STATUS_CONTROL_CHANGE:
            return
        if len(data) < 3:
            logger.warning("Ignoring truncated control change", port=self.port_name, data=list(data))
            return

        control = MidiControl(channel=data[0] & 0x0F, control=data[1])
        value = data[2]

        if control == self.scale_control:
            self._dispatch(ScaleUpdate.from_midi(value))
            return

        if self._forward is None:
            logger.debug("No OSC forwarding configured, dropping control", control=str(control))
            return
        self._forward(ControlEvent(control=control, value=value))
