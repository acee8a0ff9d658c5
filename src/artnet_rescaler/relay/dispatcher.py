"""
Dispatch Actor: the single consumer that owns all relay state.

Every scale change, frame emission and poll reply goes through one queue
and one thread of control, so effects happen in exactly the order the
messages were enqueued. Only per-producer order is preserved; a fader move
and a network frame racing each other land in whatever order they reach
the queue.
"""

from __future__ import annotations

import queue
import socket
import threading
from typing import Mapping, Optional, Tuple

import structlog

from artnet_rescaler.core.config import ArtNetConfig, UniverseConfig
from artnet_rescaler.core.exceptions import ArtNetEncodeError
from artnet_rescaler.core.messages import (
    DispatchMessage,
    PollReceived,
    ScaleUpdate,
    UniverseFrame,
)
from artnet_rescaler.dmx.artnet import build_artdmx_packet, build_artpollreply_packet
from artnet_rescaler.dmx.universe import remap_universe, rescale_universe

logger = structlog.get_logger()

_SHUTDOWN = object()


class DispatchActor:
    """
    Applies per-universe actions to incoming frames and re-emits them.

    The action table is fixed at construction. The scale factor starts at
    1.0 and only changes when a ScaleUpdate is consumed from the queue.
    """

    def __init__(
        self,
        sock: socket.socket,
        actions: Mapping[int, UniverseConfig],
        artnet: Optional[ArtNetConfig] = None,
    ):
        self.artnet = artnet or ArtNetConfig()
        self._socket = sock
        self._actions = dict(actions)

        # Unbounded: a slow consumer grows memory rather than dropping frames.
        self._queue: queue.Queue = queue.Queue()
        self._scale = 1.0

        self._running = False
        self._thread: Optional[threading.Thread] = None

        # Stats
        self._frames_received = 0
        self._frames_forwarded = 0
        self._frames_dropped = 0
        self._poll_replies = 0
        self._errors = 0

    @property
    def scale(self) -> float:
        """Scale factor as of the last consumed ScaleUpdate."""
        return self._scale

    def submit(self, message: DispatchMessage) -> None:
        """Enqueue a message; safe to call from any thread."""
        self._queue.put(message)

    def start(self) -> None:
        """Run the dispatch loop on a background thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self.run,
            name="Artnet-Dispatch",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Finish the messages already queued, then leave the loop."""
        self._queue.put(_SHUTDOWN)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
            self._thread = None

    def run(self) -> None:
        """Consume the queue until stop() is called."""
        self._running = True
        logger.info("Dispatch loop started", universes=sorted(self._actions))
        try:
            while True:
                message = self._queue.get()
                if message is _SHUTDOWN:
                    break
                self.handle(message)
        finally:
            self._running = False
            logger.info("Dispatch loop stopped", **self.get_stats())

    def handle(self, message: DispatchMessage) -> None:
        """Process a single message on the caller's thread."""
        if isinstance(message, UniverseFrame):
            self._handle_frame(message)
        elif isinstance(message, ScaleUpdate):
            self._scale = message.scale
            logger.debug("Scale updated", scale=message.scale)
        elif isinstance(message, PollReceived):
            self._handle_poll(message)
        else:
            raise TypeError(f"Unsupported dispatch message: {message!r}")

    def _handle_poll(self, message: PollReceived) -> None:
        try:
            packet = build_artpollreply_packet(
                short_name=self.artnet.short_name,
                long_name=self.artnet.long_name,
                ip=self.artnet.reply_ip,
                port=self.artnet.port,
            )
        except ArtNetEncodeError as e:
            self._errors += 1
            logger.error("Failed to build poll reply", error=str(e))
            return

        if self._send(packet, message.reply_to, kind="ArtPollReply"):
            self._poll_replies += 1

    def _handle_frame(self, frame: UniverseFrame) -> None:
        self._frames_received += 1
        action = self._actions.get(frame.universe)
        if action is None:
            self._frames_dropped += 1
            logger.debug("Ignoring non-configured universe", universe=frame.universe)
            return

        data = frame.data
        if action.rescale:
            data = rescale_universe(data, self._scale)
        if action.remap:
            data = remap_universe(data, action.remap, universe=frame.universe)

        try:
            packet = build_artdmx_packet(
                universe=frame.universe,
                dmx_data=data,
                sequence=frame.sequence,
                physical=frame.physical,
            )
        except ArtNetEncodeError as e:
            self._errors += 1
            logger.error("Art-Net serialization error", universe=frame.universe, error=str(e))
            return

        destination = (str(action.destination), action.port)
        if self._send(packet, destination, kind="ArtDmx"):
            self._frames_forwarded += 1

    def _send(self, packet: bytes, address: Tuple[str, int], kind: str) -> bool:
        try:
            self._socket.sendto(packet, address)
        except OSError as e:
            self._errors += 1
            logger.error(
                "Art-Net send error",
                packet=kind,
                host=address[0],
                port=address[1],
                error=str(e),
            )
            return False
        return True

    def get_stats(self) -> dict:
        """Get dispatch statistics."""
        return {
            "running": self._running,
            "scale": self._scale,
            "frames_received": self._frames_received,
            "frames_forwarded": self._frames_forwarded,
            "frames_dropped": self._frames_dropped,
            "poll_replies": self._poll_replies,
            "errors": self._errors,
        }
