"""
Tensor models exchanged with the inference service.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np


DT_UINT8 = "DT_UINT8"


@dataclass(frozen=True)
class ModelSpec:
    """
    Reference to a served model.

    Attributes:
        name: Model name on the serving side.
        signature_name: Signature to invoke.
        version: Numeric model version.
    """
    name: str = "face_detection"
    signature_name: str = "serving_default"
    version: int = 1


@dataclass(frozen=True)
class TensorDescriptor:
    """
    A named, typed, shaped tensor with raw byte content.

    Attributes:
        name: Input name the model signature expects.
        dtype: Serving dtype name (only DT_UINT8 is produced).
        shape: Tensor dimensions.
        content: Raw bytes, row-major.
    """
    name: str
    dtype: str
    shape: Tuple[int, ...]
    content: bytes

    @property
    def num_elements(self) -> int:
        n = 1
        for dim in self.shape:
            n *= dim
        return n

    def to_numpy(self) -> np.ndarray:
        """View the content as a uint8 array with the declared shape."""
        return np.frombuffer(self.content, dtype=np.uint8).reshape(self.shape)


@dataclass(frozen=True)
class InferenceResult:
    """
    Raw detection outputs for one frame.

    scores, classes and boxes are parallel: slot i has scores[i],
    classes[i] and boxes[4*i:4*i+4].
    """
    scores: np.ndarray
    classes: np.ndarray
    boxes: np.ndarray
    num_detections: Optional[int] = None

    @classmethod
    def from_sequences(
        cls,
        scores: Sequence[float],
        classes: Sequence[float],
        boxes: Sequence[float],
        num_detections: Optional[float] = None,
    ) -> "InferenceResult":
        return cls(
            scores=np.asarray(scores, dtype=np.float32).ravel(),
            classes=np.asarray(classes, dtype=np.float32).ravel(),
            boxes=np.asarray(boxes, dtype=np.float32).ravel(),
            num_detections=int(num_detections) if num_detections is not None else None,
        )

    @property
    def slot_count(self) -> int:
        """Number of slots fully present in all three outputs."""
        return min(len(self.scores), len(self.classes), len(self.boxes) // 4)

    def box(self, slot: int) -> np.ndarray:
        return self.boxes[slot * 4 : slot * 4 + 4]
