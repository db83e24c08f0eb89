"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass
class SourceConfig:
    """Frame source configuration."""
    backend: str = "http"
    url: str = "http://mirror.local:5555/frame.jpg"
    device_id: Union[int, str] = 0
    directory: str = ""
    loop: bool = False
    timeout: Optional[float] = 10.0
    width: int = 1640
    height: int = 1232

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "http"),
            url=d.get("url", "http://mirror.local:5555/frame.jpg"),
            device_id=d.get("device_id", 0),
            directory=d.get("directory", ""),
            loop=d.get("loop", False),
            timeout=d.get("timeout", 10.0),
            width=d.get("width", 1640),
            height=d.get("height", 1232),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "url": self.url,
            "device_id": self.device_id,
            "directory": self.directory,
            "loop": self.loop,
            "timeout": self.timeout,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class InferenceConfig:
    """Inference service configuration."""
    backend: str = "grpc"
    address: str = "localhost:8500"
    model_name: str = "face_detection"
    signature_name: str = "serving_default"
    model_version: int = 1
    input_name: str = "image_tensor"
    scores_output: str = "detection_scores"
    classes_output: str = "detection_classes"
    boxes_output: str = "detection_boxes"
    num_output: Optional[str] = None
    timeout: Optional[float] = 30.0
    max_message_bytes: int = 0x800000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "InferenceConfig":
        return cls(
            backend=d.get("backend", "grpc"),
            address=d.get("address", "localhost:8500"),
            model_name=d.get("model_name", "face_detection"),
            signature_name=d.get("signature_name", "serving_default"),
            model_version=d.get("model_version", 1),
            input_name=d.get("input_name", "image_tensor"),
            scores_output=d.get("scores_output", "detection_scores"),
            classes_output=d.get("classes_output", "detection_classes"),
            boxes_output=d.get("boxes_output", "detection_boxes"),
            num_output=d.get("num_output"),
            timeout=d.get("timeout", 30.0),
            max_message_bytes=d.get("max_message_bytes", 0x800000),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "backend": self.backend,
            "address": self.address,
            "model_name": self.model_name,
            "signature_name": self.signature_name,
            "model_version": self.model_version,
            "input_name": self.input_name,
            "scores_output": self.scores_output,
            "classes_output": self.classes_output,
            "boxes_output": self.boxes_output,
            "timeout": self.timeout,
            "max_message_bytes": self.max_message_bytes,
        }
        if self.num_output is not None:
            d["num_output"] = self.num_output
        return d


@dataclass
class DetectionConfig:
    """Detection filter and box mapping configuration."""
    class_threshold: float = 1.5
    score_threshold: float = 0.6
    max_slots: int = 100
    box_format: str = "legacy"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            class_threshold=d.get("class_threshold", 1.5),
            score_threshold=d.get("score_threshold", 0.6),
            max_slots=d.get("max_slots", 100),
            box_format=d.get("box_format", "legacy"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_threshold": self.class_threshold,
            "score_threshold": self.score_threshold,
            "max_slots": self.max_slots,
            "box_format": self.box_format,
        }


@dataclass
class ArtifactConfig:
    """Output artifact configuration."""
    output_dir: str = "."
    filename_pattern: str = "image%05d.jpg"
    jpeg_quality: Optional[int] = None
    resume_counter: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ArtifactConfig":
        return cls(
            output_dir=d.get("output_dir", "."),
            filename_pattern=d.get("filename_pattern", "image%05d.jpg"),
            jpeg_quality=d.get("jpeg_quality"),
            resume_counter=d.get("resume_counter", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "output_dir": self.output_dir,
            "filename_pattern": self.filename_pattern,
            "resume_counter": self.resume_counter,
        }
        if self.jpeg_quality is not None:
            d["jpeg_quality"] = self.jpeg_quality
        return d


@dataclass
class LoopConfig:
    """Processing loop configuration."""
    throttle: float = 1.0
    max_frames: Optional[int] = None
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            throttle=d.get("throttle", 1.0),
            max_frames=d.get("max_frames"),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "throttle": self.throttle,
            "stats_log_interval": self.stats_log_interval,
        }
        if self.max_frames is not None:
            d["max_frames"] = self.max_frames
        return d


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    artifacts: ArtifactConfig = field(default_factory=ArtifactConfig)
    pipeline: LoopConfig = field(default_factory=LoopConfig)
    log_path: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source") or {}),
            inference=InferenceConfig.from_dict(d.get("inference") or {}),
            detection=DetectionConfig.from_dict(d.get("detection") or {}),
            artifacts=ArtifactConfig.from_dict(d.get("artifacts") or {}),
            pipeline=LoopConfig.from_dict(d.get("pipeline") or {}),
            log_path=d.get("log_path"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "source": self.source.to_dict(),
            "inference": self.inference.to_dict(),
            "detection": self.detection.to_dict(),
            "artifacts": self.artifacts.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
