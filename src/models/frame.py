"""
Frame and pixel buffer models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .detection import PixelRect


@dataclass(frozen=True)
class Frame:
    """
    A compressed image pulled from a frame source.

    Attributes:
        data: Compressed image bytes (JPEG for all built-in sources).
        timestamp: Unix timestamp when the frame arrived.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier of the frame source.
    """
    data: bytes
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.data)


@dataclass
class PixelBuffer:
    """
    A decoded image: (height, width, 3) uint8, RGB, row-major interleaved.

    Owned by a single pipeline iteration and discarded afterwards.
    """
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 3:
            raise ValueError(
                f"PixelBuffer expects (height, width, 3) pixels, got shape {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"PixelBuffer expects uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def tobytes(self) -> bytes:
        """Raw pixel bytes in the buffer's existing layout."""
        return np.ascontiguousarray(self.pixels).tobytes()

    def crop(self, rect: PixelRect) -> np.ndarray:
        """
        Return the part of the buffer covered by rect.

        The rectangle is intersected with the buffer bounds first, so an
        out-of-bounds rectangle yields a smaller (possibly empty) region.
        """
        x0, y0, x1, y1 = rect.clamp(self.width, self.height).as_tuple()
        return self.pixels[y0:y1, x0:x1]
