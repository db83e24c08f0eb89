"""
Box mapper stage: normalized detection box -> pixel rectangle.

Supported box layouts:
- "legacy": [x0, y0, w, _] where the third value sizes both axes. This is
  what the deployed face model pipeline has always written out, so crops
  stay identical to earlier captures.
- "xywh": [x0, y0, w, h].
- "yxyx": [ymin, xmin, ymax, xmax], the TensorFlow Object Detection API
  layout.

Each term is a float32 product of the model value and the image dimension,
truncated to int on its own, so rectangles match earlier captures bit for
bit. Rectangles are not clamped to the image.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np

from models.detection import PixelRect


class BoxFormat(str, Enum):
    LEGACY = "legacy"
    XYWH = "xywh"
    YXYX = "yxyx"


def _scale(value: np.float32, size: int) -> int:
    with np.errstate(over="ignore", invalid="ignore"):
        product = value * np.float32(size)
    if not np.isfinite(product):
        raise ValueError(f"Box value {float(value)} does not map to a pixel on a {size}px axis")
    return int(product)


def map_box(
    values: Sequence[float],
    width: int,
    height: int,
    box_format: BoxFormat = BoxFormat.LEGACY,
) -> PixelRect:
    """
    Map 4 normalized box values onto a width x height image.

    Raises:
        ValueError: If fewer than 4 values are given or a value is not finite.
    """
    if len(values) < 4:
        raise ValueError(f"Box needs 4 values, got {len(values)}")
    v0, v1, v2, v3 = (np.float32(v) for v in values[:4])
    box_format = BoxFormat(box_format)

    if box_format is BoxFormat.YXYX:
        return PixelRect(
            x0=_scale(v1, width),
            y0=_scale(v0, height),
            x1=_scale(v3, width),
            y1=_scale(v2, height),
        )

    x0 = _scale(v0, width)
    y0 = _scale(v1, height)
    x1 = x0 + _scale(v2, width)
    if box_format is BoxFormat.XYWH:
        y1 = y0 + _scale(v3, height)
    else:
        y1 = y0 + _scale(v2, height)
    return PixelRect(x0=x0, y0=y0, x1=x1, y1=y1)
