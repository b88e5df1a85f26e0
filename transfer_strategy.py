"""Choosing between single-shot and multipart transfer per object"""

from enum import Enum

from config import MULTIPART_THRESHOLD


class TransferStrategy(Enum):
    """How an object is written to the destination"""

    SINGLE = "single"
    CHUNKED = "chunked"


def select_strategy(size: int, threshold: int = MULTIPART_THRESHOLD) -> TransferStrategy:
    """
    Pick the transfer strategy for an object of the given size.

    Objects strictly smaller than the threshold go in one request; anything
    at or above it uses the multipart protocol.
    """
    if size < 0:
        raise ValueError(f"Object size cannot be negative: {size}")
    if size < threshold:
        return TransferStrategy.SINGLE
    return TransferStrategy.CHUNKED
