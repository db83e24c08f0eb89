"""
Pipeline stages for the face capture service.

Each stage handles one step of per-frame processing:
- encode: pixel buffer -> model input tensor
- select: keep confident face detections
- boxes: normalized box -> pixel rectangle
- artifacts: crop, encode and persist
"""

from .artifacts import ArtifactWriter, ArtifactWriterConfig
from .boxes import BoxFormat, map_box
from .encode import encode_tensor
from .select import SelectionConfig, is_accepted, select_detections

__all__ = [
    "ArtifactWriter",
    "ArtifactWriterConfig",
    "BoxFormat",
    "map_box",
    "encode_tensor",
    "SelectionConfig",
    "is_accepted",
    "select_detections",
]
