"""
Detection models: inference slots and pixel-space crop rectangles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(frozen=True)
class PixelRect:
    """
    An axis-aligned integer rectangle in pixel coordinates.

    Attributes:
        x0: Left edge (inclusive).
        y0: Top edge (inclusive).
        x1: Right edge (exclusive).
        y1: Bottom edge (exclusive).
    """
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_tuple(self) -> Tuple[int, int, int, int]:
        """Return as (x0, y0, x1, y1) tuple."""
        return (self.x0, self.y0, self.x1, self.y1)

    def clamp(self, width: int, height: int) -> "PixelRect":
        """Intersect with the (0, 0, width, height) image bounds."""
        x0 = min(max(self.x0, 0), width)
        y0 = min(max(self.y0, 0), height)
        x1 = min(max(self.x1, x0), width)
        y1 = min(max(self.y1, y0), height)
        return PixelRect(x0=x0, y0=y0, x1=x1, y1=y1)


@dataclass(frozen=True)
class Detection:
    """
    One candidate slot returned by the detection model.

    Attributes:
        slot: Index of the slot in the model output (priority order).
        class_value: Float-encoded category id.
        score: Confidence in [0, 1].
        box: The 4 normalized box values exactly as returned.
    """
    slot: int
    class_value: float
    score: float
    box: Tuple[float, float, float, float]

    @classmethod
    def from_slot(
        cls,
        slot: int,
        class_value: float,
        score: float,
        box: Sequence[float],
    ) -> "Detection":
        return cls(
            slot=slot,
            class_value=float(class_value),
            score=float(score),
            box=(float(box[0]), float(box[1]), float(box[2]), float(box[3])),
        )
