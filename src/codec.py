"""
JPEG codec helpers built on OpenCV.

Pixel buffers in the pipeline are RGB; OpenCV works in BGR, so conversion
happens here and nowhere else.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from errors import DecodeError
from models.frame import PixelBuffer


def decode_image(data: bytes) -> PixelBuffer:
    """
    Decode compressed image bytes into an RGB pixel buffer.

    Raises:
        DecodeError: If the bytes are empty or not a decodable image.
    """
    if not data:
        raise DecodeError("Cannot decode an empty frame")

    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        bgr = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeError(f"Failed to decode frame: {e}") from e
    if bgr is None:
        raise DecodeError(f"Failed to decode frame ({len(data)} bytes)")

    return PixelBuffer(pixels=cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))


def encode_jpeg(image: np.ndarray, quality: Optional[int] = None, rgb: bool = True) -> bytes:
    """
    Encode an image as JPEG.

    Args:
        image: (H, W, 3) uint8 image.
        quality: JPEG quality 1-100. None = encoder default.
        rgb: Whether image channels are RGB (True) or already BGR (False).

    Raises:
        ValueError: If the image is empty or the encoder fails.
    """
    if image.size == 0:
        raise ValueError(f"Cannot encode an empty image (shape {image.shape})")

    bgr = cv2.cvtColor(np.ascontiguousarray(image), cv2.COLOR_RGB2BGR) if rgb else image
    params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)] if quality is not None else []
    ok, encoded = cv2.imencode(".jpg", bgr, params)
    if not ok:
        raise ValueError("JPEG encoder failed")
    return encoded.tobytes()
