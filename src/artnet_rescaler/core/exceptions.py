"""
Custom Exceptions for the Art-Net Rescaler.

Provides a hierarchy of exceptions for each relay component so callers can
tell per-message failures (skip and continue) apart from startup failures.
"""

from __future__ import annotations

from typing import Optional


class RescalerError(Exception):
    """Base exception for all rescaler errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


# =============================================================================
# Art-Net Errors
# =============================================================================


class ArtNetError(RescalerError):
    """Base exception for Art-Net related errors."""
    pass


class ArtNetDecodeError(ArtNetError):
    """Datagram could not be decoded as an Art-Net packet."""

    def __init__(self, reason: str, source: Optional[tuple] = None):
        origin = f" from {source[0]}:{source[1]}" if source else ""
        super().__init__(f"Art-Net decode error{origin}: {reason}", recoverable=True)
        self.reason = reason
        self.source = source


class ArtNetEncodeError(ArtNetError):
    """Art-Net packet could not be serialized."""

    def __init__(self, packet: str, reason: str):
        super().__init__(f"Art-Net {packet} encode error: {reason}", recoverable=True)
        self.packet = packet
        self.reason = reason


class ArtNetBindError(ArtNetError):
    """Failed to bind the Art-Net UDP socket."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(
            f"Failed to bind Art-Net socket on {host}:{port}: {reason}",
            recoverable=False
        )
        self.host = host
        self.port = port
        self.reason = reason


# =============================================================================
# MIDI Errors
# =============================================================================


class MidiError(RescalerError):
    """Base exception for MIDI-related errors."""
    pass


class MidiPortNotFoundError(MidiError):
    """MIDI port not found."""

    def __init__(self, port_name: str, available_ports: list[str]):
        ports_str = ", ".join(available_ports) if available_ports else "none"
        super().__init__(
            f"MIDI port '{port_name}' not found. Available: {ports_str}",
            recoverable=False
        )
        self.port_name = port_name
        self.available_ports = available_ports


class MidiConnectionError(MidiError):
    """Failed to connect to MIDI port."""

    def __init__(self, port_name: str, reason: str):
        super().__init__(f"Failed to connect to MIDI port '{port_name}': {reason}")
        self.port_name = port_name


# =============================================================================
# OSC Errors
# =============================================================================


class OscError(RescalerError):
    """Base exception for OSC forwarding errors."""
    pass


class OscSendError(OscError):
    """OSC message could not be built or sent."""

    def __init__(self, address: str, reason: str):
        super().__init__(f"OSC send to '{address}' failed: {reason}", recoverable=True)
        self.address = address
        self.reason = reason


class OscClientError(OscError):
    """OSC destination could not be resolved or opened."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Cannot open OSC client for {host}:{port}: {reason}", recoverable=False)
        self.host = host
        self.port = port
        self.reason = reason


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(RescalerError):
    """Base exception for configuration errors."""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class UniverseConfigError(ConfigError):
    """Invalid universe action configuration."""

    def __init__(self, universe: int, reason: str):
        super().__init__(f"Universe {universe} configuration error: {reason}")
        self.universe = universe


class RemapRuleError(UniverseConfigError):
    """Remap rule addresses channels outside the DMX universe."""

    def __init__(self, universe: int, index: int, reason: str):
        super().__init__(universe, f"remap rule #{index}: {reason}")
        self.index = index
