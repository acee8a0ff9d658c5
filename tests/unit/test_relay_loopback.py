from __future__ import annotations

import socket
from ipaddress import IPv4Address

from artnet_rescaler.core.config import ArtNetConfig, Settings, UniverseConfig
from artnet_rescaler.core.messages import ScaleUpdate
from artnet_rescaler.dmx.artnet import (
    ARTNET_OPCODE_POLL,
    ArtDmx,
    ArtPollReply,
    build_artdmx_packet,
    open_artnet_socket,
    parse_artnet_packet,
)
from artnet_rescaler.relay.builder import RescalerRelay
from artnet_rescaler.relay.dispatcher import DispatchActor
from artnet_rescaler.relay.receiver import ArtNetReceiver


def test_frames_and_polls_relayed_over_loopback() -> None:
    node = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    node.bind(("127.0.0.1", 0))
    node.settimeout(2.0)
    node_port = node.getsockname()[1]

    sock = open_artnet_socket("127.0.0.1", 0, broadcast=False)
    relay_address = sock.getsockname()
    artnet = ArtNetConfig(short_name="loopback")
    settings = Settings(
        artnet=artnet,
        universes={
            5: UniverseConfig(rescale=True, destination=IPv4Address("127.0.0.1"), port=node_port)
        },
    )
    dispatcher = DispatchActor(sock, settings.actions(), artnet)
    # Poll replies go back to the sender's own port here instead of 6454.
    receiver = ArtNetReceiver(
        sock.dup(), dispatcher.submit, reply_port=node_port, poll_interval_s=0.05
    )
    relay = RescalerRelay(settings, sock, dispatcher, receiver)

    relay.start()
    dispatcher.start()
    try:
        dispatcher.submit(ScaleUpdate(0.5))
        node.sendto(build_artdmx_packet(universe=9, dmx_data=b"\xff\xff"), relay_address)
        node.sendto(build_artdmx_packet(universe=5, dmx_data=b"\xc8\x64"), relay_address)
        frame = parse_artnet_packet(node.recvfrom(1024)[0])

        poll = b"Art-Net\x00" + ARTNET_OPCODE_POLL.to_bytes(2, "little") + b"\x00\x0e\x00\x00"
        node.sendto(poll, relay_address)
        reply = parse_artnet_packet(node.recvfrom(1024)[0])
    finally:
        relay.stop()
        node.close()

    assert frame == ArtDmx(universe=5, data=b"\x64\x32")
    assert isinstance(reply, ArtPollReply)
    assert reply.short_name == "loopback"
    assert dispatcher.get_stats()["frames_dropped"] == 1
