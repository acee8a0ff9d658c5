"""Art-Net codec and DMX universe transforms."""

from artnet_rescaler.dmx.artnet import (
    ARTNET_PORT,
    ArtDmx,
    ArtNetPacket,
    ArtPoll,
    ArtPollReply,
    ArtUnknown,
    build_artdmx_packet,
    build_artpollreply_packet,
    open_artnet_socket,
    parse_artnet_packet,
)
from artnet_rescaler.dmx.universe import (
    DMX_CHANNEL_COUNT,
    create_universe_buffer,
    remap_universe,
    rescale_universe,
)

__all__ = [
    "ARTNET_PORT",
    "ArtDmx",
    "ArtNetPacket",
    "ArtPoll",
    "ArtPollReply",
    "ArtUnknown",
    "build_artdmx_packet",
    "build_artpollreply_packet",
    "open_artnet_socket",
    "parse_artnet_packet",
    "DMX_CHANNEL_COUNT",
    "create_universe_buffer",
    "remap_universe",
    "rescale_universe",
]
