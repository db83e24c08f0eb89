"""
Tensor encoder stage: pixel buffer -> model input tensor.
"""

from __future__ import annotations

from models.frame import PixelBuffer
from models.tensor import DT_UINT8, TensorDescriptor


def encode_tensor(pixels: PixelBuffer, input_name: str = "image_tensor") -> TensorDescriptor:
    """
    Pack a pixel buffer into a [1, W, H, 3] uint8 tensor.

    The content is the buffer's raw bytes in their existing row-major
    layout. Width is declared before height because that is the input shape
    the face detection model is served with. No resizing or color
    conversion is done.
    """
    return TensorDescriptor(
        name=input_name,
        dtype=DT_UINT8,
        shape=(1, pixels.width, pixels.height, 3),
        content=pixels.tobytes(),
    )
