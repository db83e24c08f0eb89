"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
source:
  backend: "http"
  url: "http://mirror.local:5555/frame.jpg"
  timeout: 10.0
  width: 1640
  height: 1232

inference:
  backend: "grpc"
  address: "localhost:8500"
  model_name: "face_detection"
  signature_name: "serving_default"
  model_version: 1
  input_name: "image_tensor"

detection:
  class_threshold: 1.5
  score_threshold: 0.6
  box_format: "legacy"

artifacts:
  output_dir: "."
  filename_pattern: "image%05d.jpg"

pipeline:
  throttle: 1.0

log_path: null
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "backend": "http",
            "url": "http://mirror.local:5555/frame.jpg",
            "timeout": 10.0,
            "width": 1640,
            "height": 1232,
        },
        "inference": {
            "backend": "rest",
            "address": "localhost:8501",
            "model_name": "face_detection",
            "signature_name": "serving_default",
            "model_version": 1,
            "input_name": "image_tensor",
            "scores_output": "detection_scores",
            "classes_output": "detection_classes",
            "boxes_output": "detection_boxes",
            "timeout": 30.0,
        },
        "detection": {
            "class_threshold": 1.5,
            "score_threshold": 0.6,
            "max_slots": 100,
            "box_format": "legacy",
        },
        "artifacts": {
            "output_dir": ".",
            "filename_pattern": "image%05d.jpg",
        },
        "pipeline": {
            "throttle": 1.0,
        },
        "log_path": None,
        "log_level": "INFO",
    }


@pytest.fixture
def rgb_image():
    """A 64x48 RGB gradient image (height 48, width 64)."""
    h, w = 48, 64
    xs = np.linspace(0, 255, w, dtype=np.uint8)
    ys = np.linspace(0, 255, h, dtype=np.uint8)
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[..., 0] = xs[None, :]
    img[..., 1] = ys[:, None]
    img[..., 2] = 128
    return img


@pytest.fixture
def jpeg_bytes(rgb_image):
    """rgb_image encoded as JPEG bytes."""
    ok, encoded = cv2.imencode(".jpg", cv2.cvtColor(rgb_image, cv2.COLOR_RGB2BGR))
    assert ok
    return encoded.tobytes()


def make_outputs(accepted=None, slots=100):
    """
    Build raw model outputs with `slots` empty slots.

    accepted maps slot index -> (class, score, [v0, v1, v2, v3]).
    Unlisted slots get class 2 and score 0 so they never pass the filter.
    """
    scores = np.zeros(slots, dtype=np.float32)
    classes = np.full(slots, 2.0, dtype=np.float32)
    boxes = np.zeros(slots * 4, dtype=np.float32)
    for slot, (cls, score, box) in (accepted or {}).items():
        classes[slot] = cls
        scores[slot] = score
        boxes[slot * 4:slot * 4 + 4] = box
    return scores, classes, boxes


@pytest.fixture
def outputs_factory():
    return make_outputs
