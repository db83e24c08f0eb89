"""
Inference service interface.

A service takes one encoded input tensor and returns the raw detection
outputs (scores, classes, boxes) for that frame. Transport details live in
the concrete clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

import numpy as np

from errors import InferenceError
from models.tensor import InferenceResult, TensorDescriptor


@dataclass(frozen=True)
class OutputNames:
    """Names of the model outputs the pipeline reads."""
    scores: str = "detection_scores"
    classes: str = "detection_classes"
    boxes: str = "detection_boxes"
    num_detections: Optional[str] = None

    @classmethod
    def from_inference_config(cls, d: Dict[str, Any]) -> "OutputNames":
        return cls(
            scores=d.get("scores_output", "detection_scores"),
            classes=d.get("classes_output", "detection_classes"),
            boxes=d.get("boxes_output", "detection_boxes"),
            num_detections=d.get("num_output"),
        )

    @property
    def required(self) -> tuple:
        return (self.scores, self.classes, self.boxes)


class InferenceService(Protocol):
    def infer(self, tensor: TensorDescriptor) -> InferenceResult:
        ...

    def close(self) -> None:
        ...


def result_from_outputs(outputs: Mapping[str, Any], names: OutputNames) -> InferenceResult:
    """
    Build an InferenceResult from a name -> values mapping.

    Values may be flat or nested sequences or arrays; they are flattened.

    Raises:
        InferenceError: If a required output is missing.
    """
    missing = [name for name in names.required if name not in outputs]
    if missing:
        raise InferenceError(
            f"Inference reply is missing outputs {missing} (got {sorted(outputs)})"
        )

    num_detections = None
    if names.num_detections and names.num_detections in outputs:
        values = np.asarray(outputs[names.num_detections], dtype=np.float32).ravel()
        if values.size:
            num_detections = float(values[0])

    return InferenceResult.from_sequences(
        scores=np.asarray(outputs[names.scores], dtype=np.float32),
        classes=np.asarray(outputs[names.classes], dtype=np.float32),
        boxes=np.asarray(outputs[names.boxes], dtype=np.float32),
        num_detections=num_detections,
    )
