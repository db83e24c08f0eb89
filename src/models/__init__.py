"""
Typed models for the face capture pipeline.
"""

from .frame import Frame, PixelBuffer
from .detection import Detection, PixelRect
from .tensor import DT_UINT8, InferenceResult, ModelSpec, TensorDescriptor
from .config import (
    Config,
    SourceConfig,
    InferenceConfig,
    DetectionConfig,
    ArtifactConfig,
    LoopConfig,
)

__all__ = [
    # Frame
    "Frame",
    "PixelBuffer",
    # Detection
    "Detection",
    "PixelRect",
    # Tensor
    "DT_UINT8",
    "InferenceResult",
    "ModelSpec",
    "TensorDescriptor",
    # Config
    "Config",
    "SourceConfig",
    "InferenceConfig",
    "DetectionConfig",
    "ArtifactConfig",
    "LoopConfig",
]
