"""
Relay Builder for the Art-Net Rescaler.

Wires the receiver, MIDI listener and OSC forwarder to the dispatch actor
and manages their lifecycle.
"""

from __future__ import annotations

import socket
from typing import Optional

import structlog

from artnet_rescaler.core.config import Settings, validate_startup_config
from artnet_rescaler.core.exceptions import MidiError, OscError
from artnet_rescaler.dmx.artnet import open_artnet_socket
from artnet_rescaler.relay.dispatcher import DispatchActor
from artnet_rescaler.relay.midi_input import ControlSurfaceListener
from artnet_rescaler.relay.osc_forward import OscForwarder
from artnet_rescaler.relay.receiver import ArtNetReceiver

logger = structlog.get_logger()


class RescalerRelay:
    """
    Owns the relay components and the shared Art-Net socket.

    The dispatch loop runs on whichever thread calls run_loop(); every
    other component runs on its own thread.
    """

    def __init__(
        self,
        settings: Settings,
        sock: socket.socket,
        dispatcher: DispatchActor,
        receiver: ArtNetReceiver,
        listener: Optional[ControlSurfaceListener] = None,
        forwarder: Optional[OscForwarder] = None,
    ):
        self.settings = settings
        self.socket = sock
        self.dispatcher = dispatcher
        self.receiver = receiver
        self.listener = listener
        self.forwarder = forwarder
        self._stopped = False

    def start(self) -> None:
        """Start all producer and forwarding threads."""
        logger.info("Starting rescaler relay")
        if self.forwarder is not None:
            self.forwarder.start()
        self.receiver.start()

        if self.listener is None:
            logger.info("No MIDI port configured, rescale stays at 1.0")
            return
        try:
            self.listener.start()
        except MidiError as e:
            # Degraded mode: relay keeps running without control surface input.
            logger.error("Failed to open MIDI port", error=e.message)
            self.listener = None

    def stop(self) -> None:
        """Stop all processing and clean up resources."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Stopping rescaler relay")

        if self.listener is not None:
            self.listener.stop()
        self.receiver.stop()
        self.dispatcher.stop()
        if self.forwarder is not None:
            self.forwarder.stop()
        self.socket.close()

    def run_loop(self) -> None:
        """Run the dispatch loop on the calling thread until stop()."""
        try:
            self.start()
            self.dispatcher.run()
        finally:
            self.stop()


def build_relay(settings: Optional[Settings] = None) -> RescalerRelay:
    """
    Bind the Art-Net socket and assemble the relay.

    Raises a ConfigError subclass for an invalid configuration,
    ArtNetBindError if the socket cannot be bound and OscClientError if the
    OSC destination cannot be resolved.
    """
    if settings is None:
        settings = Settings()
    validate_startup_config(settings)

    artnet = settings.artnet
    logger.info(
        "Building rescaler relay",
        bind_host=artnet.bind_host,
        port=artnet.port,
        universes=sorted(settings.universes),
    )

    sock = open_artnet_socket(
        artnet.bind_host,
        artnet.port,
        broadcast=artnet.broadcast,
        reuse_address=artnet.reuse_address,
    )

    forwarder: Optional[OscForwarder] = None
    if settings.osc_forward is not None:
        try:
            forwarder = OscForwarder(settings.osc_forward)
        except OscError:
            sock.close()
            raise

    dispatcher = DispatchActor(sock, settings.actions(), artnet)
    receiver = ArtNetReceiver(
        sock.dup(),
        dispatcher.submit,
        reply_port=artnet.port,
        buffer_size=artnet.recv_buffer_size,
    )

    listener: Optional[ControlSurfaceListener] = None
    if settings.midi_port:
        listener = ControlSurfaceListener(
            settings.midi_port,
            settings.rescale_midi_control,
            dispatch=dispatcher.submit,
            forward=forwarder.submit if forwarder is not None else None,
        )

    return RescalerRelay(settings, sock, dispatcher, receiver, listener, forwarder)
