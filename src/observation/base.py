"""
FrameSource interface for pluggable compressed-frame sources.

This defines the contract that all frame sources must implement,
so the pipeline can pull frames from:
- HTTP snapshot endpoints
- USB/CSI/RTSP cameras and video files (via OpenCV)
- Directories of still images
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from errors import FrameSourceError
from models.frame import Frame


@dataclass
class FrameSourceConfig:
    """
    Base configuration for frame sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "mirror", "cam-01").
        timeout: Seconds to wait for one frame. None = wait indefinitely.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    timeout: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class FrameSource(ABC):
    """
    Abstract base class for frame sources.

    A frame source supplies one compressed image per fetch() call.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call fetch() once per pipeline iteration
        4. Call close() to release resources

    Can also be used as a context manager:
        with HttpSnapshotSource(config) as source:
            frame = source.fetch()
    """

    def __init__(self, config: FrameSourceConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to fetch."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames fetched since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the frame source.

        Must be called before fetch().

        Raises:
            FrameSourceError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def fetch(self) -> Frame:
        """
        Fetch the next compressed frame.

        Returns:
            Frame with the compressed bytes and arrival metadata.

        Raises:
            FrameSourceError: If no frame could be obtained.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close/release the frame source.

        Safe to call multiple times.
        """
        pass

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise FrameSourceError(f"Frame source {self.source_id} is not open")

    def __enter__(self) -> "FrameSource":
        """Context manager entry - opens the source."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes the source."""
        self.close()

    def __iter__(self) -> Iterator[Frame]:
        """
        Iterate over frames until the source raises FrameSourceError.

        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            try:
                frame = self.fetch()
            except FrameSourceError:
                break
            yield frame
