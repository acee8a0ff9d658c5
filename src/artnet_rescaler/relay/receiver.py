"""
Art-Net Receiver: turn incoming datagrams into dispatch messages.

Runs a blocking receive loop on its own thread. Polls and DMX frames are
handed to the dispatcher; everything else, including garbage, is dropped
without interrupting reception.
"""

from __future__ import annotations

import select
import socket
import threading
from typing import Callable, Optional, Tuple

import structlog

from artnet_rescaler.core.exceptions import ArtNetDecodeError
from artnet_rescaler.core.messages import DispatchMessage, PollReceived, UniverseFrame
from artnet_rescaler.dmx.artnet import ARTNET_PORT, ArtDmx, ArtPoll, parse_artnet_packet

logger = structlog.get_logger()


class ArtNetReceiver:
    """Receives Art-Net on a duplicate handle of the shared relay socket."""

    def __init__(
        self,
        sock: socket.socket,
        submit: Callable[[DispatchMessage], None],
        reply_port: int = ARTNET_PORT,
        buffer_size: int = 2048,
        poll_interval_s: float = 0.25,
    ):
        self._socket = sock
        self._submit = submit
        self.reply_port = reply_port
        self.buffer_size = buffer_size
        self.poll_interval_s = poll_interval_s

        self._running = False
        self._thread: Optional[threading.Thread] = None

        self._datagrams = 0
        self._decode_errors = 0

    def start(self) -> None:
        """Start the receive thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._receive_loop,
            name="Artnet-Receive",
            daemon=True,
        )
        self._thread.start()
        logger.info("Art-Net receiver started", reply_port=self.reply_port)

    def stop(self) -> None:
        """Stop receiving and close the receive handle."""
        self._running = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.poll_interval_s * 4)
            self._thread = None
        self._socket.close()
        logger.info(
            "Art-Net receiver stopped",
            datagrams=self._datagrams,
            decode_errors=self._decode_errors,
        )

    def _receive_loop(self) -> None:
        while self._running:
            try:
                # Wake periodically so stop() never waits on a blocked recvfrom.
                readable, _, _ = select.select([self._socket], [], [], self.poll_interval_s)
                if not readable:
                    continue
                datagram, source = self._socket.recvfrom(self.buffer_size)
            except OSError as e:
                if not self._running:
                    break
                logger.error("Art-Net receive error", error=str(e))
                continue

            message = self.handle_datagram(datagram, source)
            if message is not None:
                self._submit(message)

    def handle_datagram(
        self, datagram: bytes, source: Tuple[str, int]
    ) -> Optional[DispatchMessage]:
        """Map one datagram to a dispatch message, or None if it is ignored."""
        self._datagrams += 1
        try:
            packet = parse_artnet_packet(datagram)
        except ArtNetDecodeError as e:
            self._decode_errors += 1
            logger.error(
                "Art-Net receive error",
                host=source[0],
                port=source[1],
                error=str(e),
            )
            return None

        if isinstance(packet, ArtPoll):
            logger.info("Poll received", host=source[0], port=source[1])
            return PollReceived(reply_to=(source[0], self.reply_port))
        if isinstance(packet, ArtDmx):
            return UniverseFrame(
                universe=packet.universe,
                data=packet.data,
                sequence=packet.sequence,
                physical=packet.physical,
            )
        return None
