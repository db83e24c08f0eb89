"""
Detection filter stage.

Walks the candidate slots in the order the model returned them (highest
confidence first) and keeps the confident face detections.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from models.detection import Detection
from models.tensor import InferenceResult


@dataclass(frozen=True)
class SelectionConfig:
    """
    Attributes:
        class_threshold: Classes strictly below this count as the face class
            (class ids are float-encoded, so 1.0 may arrive as 0.9999).
        score_threshold: Minimum confidence, inclusive.
        max_slots: Number of candidate slots the model produces.
    """
    class_threshold: float = 1.5
    score_threshold: float = 0.6
    max_slots: int = 100

    @classmethod
    def from_detection_config(cls, d: Dict[str, Any]) -> "SelectionConfig":
        return cls(
            class_threshold=float(d.get("class_threshold", 1.5)),
            score_threshold=float(d.get("score_threshold", 0.6)),
            max_slots=int(d.get("max_slots", 100)),
        )


def is_accepted(class_value: float, score: float, cfg: SelectionConfig = SelectionConfig()) -> bool:
    return class_value < cfg.class_threshold and score >= cfg.score_threshold


def slots_to_scan(result: InferenceResult, cfg: SelectionConfig = SelectionConfig()) -> int:
    """
    Number of leading slots worth inspecting.

    Never more than the slots actually present, so a short reply cannot
    cause an out-of-range read. A reported num_detections narrows it further.
    """
    n = min(cfg.max_slots, result.slot_count)
    if result.num_detections is not None:
        n = min(n, max(result.num_detections, 0))
    return n


def select_detections(result: InferenceResult, cfg: SelectionConfig = SelectionConfig()) -> List[Detection]:
    """Return accepted detections in slot order. No NMS, no deduplication."""
    accepted: List[Detection] = []
    for i in range(slots_to_scan(result, cfg)):
        class_value = float(result.classes[i])
        score = float(result.scores[i])
        if not is_accepted(class_value, score, cfg):
            continue
        accepted.append(Detection.from_slot(i, class_value, score, result.box(i)))
    return accepted
