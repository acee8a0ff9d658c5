from ipaddress import IPv4Address

import pytest

from artnet_rescaler.core.exceptions import ArtNetBindError, ArtNetDecodeError, ArtNetEncodeError
from artnet_rescaler.dmx.artnet import (
    ARTNET_OPCODE_POLL,
    POLL_REPLY_SIZE,
    ArtDmx,
    ArtPoll,
    ArtPollReply,
    ArtUnknown,
    build_artdmx_packet,
    build_artpollreply_packet,
    open_artnet_socket,
    parse_artnet_packet,
)


def _artpoll() -> bytes:
    return b"Art-Net\x00" + ARTNET_OPCODE_POLL.to_bytes(2, "little") + b"\x00\x0e\x02\x00"


def test_build_artdmx_packet_layout() -> None:
    data = bytes([7] * 512)
    packet = build_artdmx_packet(universe=0x0123, dmx_data=data, sequence=5)

    assert packet[:8] == b"Art-Net\x00"
    assert packet[8:10] == b"\x00\x50"  # OpOutput / ArtDMX
    assert packet[10:12] == b"\x00\x0e"  # Protocol version 14
    assert packet[12] == 5
    assert packet[13] == 0
    assert packet[14:16] == b"\x23\x01"  # little-endian universe address
    assert packet[16:18] == b"\x02\x00"  # 512 slots
    assert packet[-512:] == data


def test_build_artdmx_packet_pads_odd_length_to_even() -> None:
    packet = build_artdmx_packet(universe=1, dmx_data=b"\x10\x20\x30")

    assert packet[16:18] == b"\x00\x04"
    assert packet[18:] == b"\x10\x20\x30\x00"


def test_build_artdmx_packet_rejects_oversized_payload() -> None:
    with pytest.raises(ArtNetEncodeError):
        build_artdmx_packet(universe=0, dmx_data=bytes(513))


def test_parse_artdmx_roundtrips_header_fields() -> None:
    packet = build_artdmx_packet(universe=0x7ABC & 0x7FFF, dmx_data=b"\x01\x02", sequence=9, physical=2)

    decoded = parse_artnet_packet(packet)

    assert decoded == ArtDmx(universe=0x7ABC, data=b"\x01\x02", sequence=9, physical=2)


def test_parse_artpoll() -> None:
    assert isinstance(parse_artnet_packet(_artpoll()), ArtPoll)


def test_build_artpollreply_layout() -> None:
    packet = build_artpollreply_packet(
        short_name="rescaler",
        long_name="Art-Net rescaler",
        ip=IPv4Address("10.0.0.7"),
    )

    assert len(packet) == POLL_REPLY_SIZE
    assert packet[:8] == b"Art-Net\x00"
    assert packet[8:10] == b"\x00\x21"  # OpPollReply
    assert packet[10:14] == bytes([10, 0, 0, 7])
    assert packet[14:16] == b"\x36\x19"  # 6454, little-endian
    assert packet[26:44] == b"rescaler".ljust(18, b"\x00")
    assert packet[44:60] == b"Art-Net rescaler"
    # Capability, status and port fields stay zeroed.
    assert packet[16:26] == bytes(10)
    assert packet[172:] == bytes(POLL_REPLY_SIZE - 172)


def test_parse_artpollreply_reads_names() -> None:
    packet = build_artpollreply_packet(short_name="node", ip=IPv4Address("2.0.0.1"))

    decoded = parse_artnet_packet(packet)

    assert decoded == ArtPollReply(ip=IPv4Address("2.0.0.1"), short_name="node", long_name="")


def test_build_artpollreply_rejects_long_short_name() -> None:
    with pytest.raises(ArtNetEncodeError):
        build_artpollreply_packet(short_name="x" * 18)


def test_parse_unknown_opcode_is_inert() -> None:
    packet = b"Art-Net\x00" + (0x9700).to_bytes(2, "little") + bytes(8)

    assert parse_artnet_packet(packet) == ArtUnknown(opcode=0x9700)


@pytest.mark.parametrize(
    "datagram",
    [
        b"",
        b"Art-Net",
        b"NotArtNet\x00\x00\x50" + bytes(20),
        b"Art-Net\x00\x00\x50\x00\x0e",  # truncated ArtDmx header
    ],
)
def test_parse_rejects_malformed_datagrams(datagram: bytes) -> None:
    with pytest.raises(ArtNetDecodeError):
        parse_artnet_packet(datagram)


def test_parse_rejects_artdmx_shorter_than_declared() -> None:
    packet = bytearray(build_artdmx_packet(universe=0, dmx_data=bytes(8)))
    packet[16:18] = (10).to_bytes(2, "big")

    with pytest.raises(ArtNetDecodeError):
        parse_artnet_packet(bytes(packet))


def test_open_artnet_socket_fails_when_port_already_bound() -> None:
    first = open_artnet_socket("127.0.0.1", 0, broadcast=False)
    try:
        port = first.getsockname()[1]

        with pytest.raises(ArtNetBindError) as exc_info:
            open_artnet_socket("127.0.0.1", port, broadcast=False)

        assert exc_info.value.port == port
        assert exc_info.value.recoverable is False
    finally:
        first.close()
