"""DMX universe sizing and the per-universe rescale/remap transforms."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np
import structlog

if TYPE_CHECKING:
    from artnet_rescaler.core.config import RemapRule

logger = structlog.get_logger()

DMX_CHANNEL_COUNT = 512
DMX_VALUE_MAX = 255


def create_universe_buffer() -> bytearray:
    """Create a zeroed 512-channel payload buffer."""
    return bytearray(DMX_CHANNEL_COUNT)


def rescale_universe(data: bytes, scale: float) -> bytes:
    """
    Multiply every channel level by `scale`.

    The product is truncated toward zero, so 1.0 is the identity and 0.0
    blacks the universe out.
    """
    if not 0.0 <= scale <= 1.0:
        raise ValueError(f"scale must be within [0, 1], got {scale}")
    levels = np.frombuffer(data, dtype=np.uint8)
    return (levels * scale).astype(np.uint8).tobytes()


def remap_universe(
    data: bytes,
    rules: Sequence[RemapRule],
    universe: Optional[int] = None,
) -> bytes:
    """
    Copy configured channel ranges into a fresh 512-channel payload.

    Rules apply in order, so later rules overwrite earlier ones where their
    destinations overlap. A rule reading past the end of `data` is skipped.
    """
    buffer = create_universe_buffer()
    for rule in rules:
        source_end = rule.source_start + rule.length
        if source_end > len(data):
            logger.warning(
                "Remap rule out of range, skipping",
                universe=universe,
                input_length=len(data),
                source_start=rule.source_start,
                length=rule.length,
                dest_start=rule.dest_start,
            )
            continue
        buffer[rule.dest_start:rule.dest_start + rule.length] = data[rule.source_start:source_end]
    return bytes(buffer)
