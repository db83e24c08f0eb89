"""
Observation layer for pluggable frame sources.

This layer abstracts where compressed frames come from (HTTP snapshot
endpoint, camera, video file, image directory) from the processing
pipeline. Each source implements the FrameSource interface and returns
Frame objects.
"""

from typing import Any, Dict

from .base import FrameSource, FrameSourceConfig
from .directory_source import DirectorySource, DirectorySourceConfig
from .http_source import HttpSnapshotSource, HttpSnapshotSourceConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig

SOURCE_BACKENDS = ("http", "opencv", "directory")


def create_source_from_config(source_cfg: Dict[str, Any], source_id: str = "frames") -> FrameSource:
    """
    Factory: build the frame source selected by source_cfg["backend"].

    Raises:
        ValueError: For an unknown backend name.
    """
    backend = source_cfg.get("backend", "http")
    if backend == "http":
        return HttpSnapshotSource(HttpSnapshotSourceConfig.from_source_config(source_cfg, source_id))
    if backend == "opencv":
        return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg, source_id))
    if backend == "directory":
        return DirectorySource(DirectorySourceConfig.from_source_config(source_cfg, source_id))
    raise ValueError(f"Unknown frame source backend: {backend!r} (expected one of {SOURCE_BACKENDS})")


__all__ = [
    "FrameSource",
    "FrameSourceConfig",
    "DirectorySource",
    "DirectorySourceConfig",
    "HttpSnapshotSource",
    "HttpSnapshotSourceConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "SOURCE_BACKENDS",
    "create_source_from_config",
]
