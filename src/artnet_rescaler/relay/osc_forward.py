"""
OSC Forwarder: relay MIDI control changes as OSC messages.

Consumes its own queue on a dedicated thread, fully decoupled from the
dispatch actor. Each mapped control is sent as a single double in [0, 1].
"""

from __future__ import annotations

import queue
import threading
from typing import Dict, Optional

import structlog
from pythonosc.osc_message_builder import BuildError, OscMessageBuilder
from pythonosc.udp_client import UDPClient

from artnet_rescaler.core.config import MidiControl, OscForwardConfig
from artnet_rescaler.core.exceptions import OscClientError, OscSendError
from artnet_rescaler.core.messages import ControlEvent, unipolar_from_midi

logger = structlog.get_logger()

_SHUTDOWN = object()


class OscForwarder:
    """Maps control events to OSC addresses and sends them over UDP."""

    def __init__(self, config: OscForwardConfig, client: Optional[UDPClient] = None):
        self.config = config
        self._mapping: Dict[MidiControl, str] = config.mapping_table()
        if client is None:
            try:
                client = UDPClient(config.host, config.port)
            except OSError as e:
                raise OscClientError(config.host, config.port, str(e)) from e
        self._client = client

        self._queue: queue.Queue = queue.Queue()
        self._running = False
        self._thread: Optional[threading.Thread] = None

        self._sent = 0
        self._unmapped = 0
        self._errors = 0

    def submit(self, event: ControlEvent) -> None:
        """Enqueue an event; safe to call from the MIDI callback thread."""
        self._queue.put(event)

    def start(self) -> None:
        """Start the forwarding thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._forward_loop,
            name="OSC-Forward",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "OSC forwarding started",
            host=self.config.host,
            port=self.config.port,
            mappings=len(self._mapping),
        )

    def stop(self) -> None:
        """Drain queued events and stop the thread."""
        if not self._running:
            return
        self._queue.put(_SHUTDOWN)
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        self._running = False
        logger.info("OSC forwarding stopped", **self.get_stats())

    def _forward_loop(self) -> None:
        while True:
            event = self._queue.get()
            if event is _SHUTDOWN:
                break
            self.handle(event)

    def handle(self, event: ControlEvent) -> None:
        """Forward a single event."""
        address = self._mapping.get(event.control)
        if address is None:
            self._unmapped += 1
            logger.warning("Ignoring unmapped MIDI control", control=str(event.control))
            return

        try:
            self._send(address, unipolar_from_midi(event.value))
        except OscSendError as e:
            self._errors += 1
            logger.error(
                "OSC send error",
                host=self.config.host,
                port=self.config.port,
                error=e.message,
            )
            return
        self._sent += 1

    def _send(self, address: str, value: float) -> None:
        builder = OscMessageBuilder(address=address)
        builder.add_arg(value, OscMessageBuilder.ARG_TYPE_DOUBLE)
        try:
            message = builder.build()
        except BuildError as e:
            raise OscSendError(address, f"encode failed: {e}") from e
        try:
            self._client.send(message)
        except OSError as e:
            raise OscSendError(address, str(e)) from e

    def get_stats(self) -> dict:
        """Get forwarding statistics."""
        return {
            "sent": self._sent,
            "unmapped": self._unmapped,
            "errors": self._errors,
        }
