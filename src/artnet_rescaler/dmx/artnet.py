"""Art-Net packet codec and socket helpers."""

from __future__ import annotations

import socket
import struct
from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Union

from artnet_rescaler.core.exceptions import ArtNetBindError, ArtNetDecodeError, ArtNetEncodeError

ARTNET_PORT = 6454
ARTNET_HEADER = b"Art-Net\x00"
ARTNET_OPCODE_POLL = 0x2000
ARTNET_OPCODE_POLL_REPLY = 0x2100
ARTNET_OPCODE_DMX = 0x5000
ARTNET_PROTOCOL_VERSION = 14
ARTNET_PORT_ADDRESS_MAX = 0x7FFF
ARTDMX_MAX_LENGTH = 512

SHORT_NAME_LENGTH = 18
LONG_NAME_LENGTH = 64
POLL_REPLY_SIZE = 239

_HEADER_SIZE = 10  # ID + opcode
_ARTDMX_HEADER_SIZE = 18
_SHORT_NAME_OFFSET = 26
_LONG_NAME_OFFSET = 44


@dataclass(frozen=True)
class ArtPoll:
    """Discovery request."""


@dataclass(frozen=True)
class ArtDmx:
    """DMX output frame for one port address."""
    universe: int
    data: bytes
    sequence: int = 0
    physical: int = 0


@dataclass(frozen=True)
class ArtPollReply:
    """Discovery announcement from another node."""
    ip: IPv4Address
    short_name: str
    long_name: str = ""


@dataclass(frozen=True)
class ArtUnknown:
    """Valid Art-Net packet of a kind the relay does not act on."""
    opcode: int


ArtNetPacket = Union[ArtPoll, ArtDmx, ArtPollReply, ArtUnknown]


def build_artdmx_packet(
    universe: int,
    dmx_data: bytes,
    sequence: int = 0,
    physical: int = 0,
) -> bytes:
    """
    Build an ArtDmx packet.

    Odd-length payloads get one trailing zero slot; Art-Net requires an even
    length between 2 and 512.
    """
    if len(dmx_data) > ARTDMX_MAX_LENGTH:
        raise ArtNetEncodeError("ArtDmx", f"payload too large: {len(dmx_data)} bytes")
    if not 0 <= universe <= ARTNET_PORT_ADDRESS_MAX:
        raise ArtNetEncodeError("ArtDmx", f"port address out of range: {universe}")

    payload = bytes(dmx_data)
    if len(payload) < 2:
        payload = payload.ljust(2, b"\x00")
    elif len(payload) % 2:
        payload += b"\x00"
    # Length is big-endian per Art-Net spec.
    length = len(payload)

    packet = bytearray()
    packet.extend(ARTNET_HEADER)
    packet.extend(struct.pack("<H", ARTNET_OPCODE_DMX))
    packet.extend(struct.pack(">H", ARTNET_PROTOCOL_VERSION))
    packet.extend(bytes([sequence & 0xFF, physical & 0xFF]))
    packet.extend(struct.pack("<H", universe))
    packet.extend(struct.pack(">H", length))
    packet.extend(payload)
    return bytes(packet)


def _encode_name(field: str, value: str, size: int) -> bytes:
    try:
        encoded = value.encode("ascii")
    except UnicodeEncodeError as e:
        raise ArtNetEncodeError("ArtPollReply", f"{field} is not ASCII: {e}") from e
    if len(encoded) >= size:
        raise ArtNetEncodeError("ArtPollReply", f"{field} longer than {size - 1} bytes")
    return encoded.ljust(size, b"\x00")


def build_artpollreply_packet(
    short_name: str,
    long_name: str = "",
    ip: IPv4Address = IPv4Address("0.0.0.0"),
    port: int = ARTNET_PORT,
) -> bytes:
    """
    Build an ArtPollReply announcing this node.

    Only the identifying fields are filled in; version, OEM, port and status
    fields stay zero.
    """
    packet = bytearray(POLL_REPLY_SIZE)
    packet[0:8] = ARTNET_HEADER
    struct.pack_into("<H", packet, 8, ARTNET_OPCODE_POLL_REPLY)
    packet[10:14] = ip.packed
    struct.pack_into("<H", packet, 14, port)
    packet[_SHORT_NAME_OFFSET:_SHORT_NAME_OFFSET + SHORT_NAME_LENGTH] = _encode_name(
        "short_name", short_name, SHORT_NAME_LENGTH
    )
    packet[_LONG_NAME_OFFSET:_LONG_NAME_OFFSET + LONG_NAME_LENGTH] = _encode_name(
        "long_name", long_name, LONG_NAME_LENGTH
    )
    return bytes(packet)


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace")


def parse_artnet_packet(datagram: bytes) -> ArtNetPacket:
    """
    Decode a UDP datagram into one of the known Art-Net packet kinds.

    Raises ArtNetDecodeError for anything that is not a well-formed Art-Net
    packet. Valid packets with other opcodes decode to ArtUnknown.
    """
    if len(datagram) < _HEADER_SIZE:
        raise ArtNetDecodeError(f"datagram too short ({len(datagram)} bytes)")
    if datagram[:8] != ARTNET_HEADER:
        raise ArtNetDecodeError("missing Art-Net header")

    (opcode,) = struct.unpack_from("<H", datagram, 8)

    if opcode == ARTNET_OPCODE_POLL:
        return ArtPoll()

    if opcode == ARTNET_OPCODE_DMX:
        if len(datagram) < _ARTDMX_HEADER_SIZE:
            raise ArtNetDecodeError(f"truncated ArtDmx header ({len(datagram)} bytes)")
        sequence, physical = datagram[12], datagram[13]
        (universe,) = struct.unpack_from("<H", datagram, 14)
        (length,) = struct.unpack_from(">H", datagram, 16)
        if length > ARTDMX_MAX_LENGTH:
            raise ArtNetDecodeError(f"ArtDmx length {length} exceeds {ARTDMX_MAX_LENGTH}")
        data = datagram[_ARTDMX_HEADER_SIZE:_ARTDMX_HEADER_SIZE + length]
        if len(data) < length:
            raise ArtNetDecodeError(
                f"ArtDmx declares {length} slots but carries {len(data)}"
            )
        return ArtDmx(
            universe=universe & ARTNET_PORT_ADDRESS_MAX,
            data=bytes(data),
            sequence=sequence,
            physical=physical,
        )

    if opcode == ARTNET_OPCODE_POLL_REPLY:
        if len(datagram) < _LONG_NAME_OFFSET:
            raise ArtNetDecodeError(f"truncated ArtPollReply ({len(datagram)} bytes)")
        return ArtPollReply(
            ip=IPv4Address(bytes(datagram[10:14])),
            short_name=_decode_name(datagram[_SHORT_NAME_OFFSET:_LONG_NAME_OFFSET]),
            long_name=_decode_name(
                datagram[_LONG_NAME_OFFSET:_LONG_NAME_OFFSET + LONG_NAME_LENGTH]
            ),
        )

    return ArtUnknown(opcode=opcode)


def open_artnet_socket(
    host: str = "0.0.0.0",
    port: int = ARTNET_PORT,
    broadcast: bool = True,
    reuse_address: bool = False,
) -> socket.socket:
    """
    Bind the shared Art-Net UDP socket.

    SO_REUSEADDR is only set when reuse_address is true. Without it a port
    already held by another Art-Net process fails with ArtNetBindError.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        if reuse_address:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if broadcast:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise ArtNetBindError(host, port, str(e)) from e
    return sock
