"""
OpenCV-based frame source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- RTSP/IP cameras (device_id as str URL)
- Video files (device_id as file path)

Captured frames are JPEG-encoded so the pipeline always receives the same
compressed Frame regardless of where it came from.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import cv2

from codec import encode_jpeg
from errors import FrameSourceError
from models.frame import Frame
from .base import FrameSource, FrameSourceConfig
from .url_utils import sanitize_url


@dataclass
class OpenCVSourceConfig(FrameSourceConfig):
    """
    Configuration for OpenCV-based frame sources.

    Attributes:
        device_id: Camera index (int), RTSP URL (str), or file path (str).
        resolution: Requested (width, height) for USB cameras.
        rtsp_transport: Transport protocol for RTSP ("tcp" or "udp").
        buffer_size: OpenCV capture buffer size (reduces latency for live feeds).
        max_retries: Maximum retries for camera initialization.
        jpeg_quality: Quality used when compressing captured frames.
    """
    device_id: Union[int, str] = 0
    resolution: Optional[Tuple[int, int]] = None
    rtsp_transport: str = "tcp"
    buffer_size: int = 1
    max_retries: int = 3
    jpeg_quality: int = 95

    @classmethod
    def from_source_config(cls, source_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the source config dict.

        Args:
            source_cfg: Source configuration dict (from config.yaml).
            source_id: Identifier for this source.
        """
        width = source_cfg.get("width")
        height = source_cfg.get("height")
        resolution = (int(width), int(height)) if width and height else None

        return cls(
            source_id=source_id,
            timeout=source_cfg.get("timeout"),
            device_id=source_cfg.get("device_id", 0),
            resolution=resolution,
            rtsp_transport=source_cfg.get("rtsp_transport", "tcp"),
            buffer_size=source_cfg.get("buffer_size", 1),
            max_retries=source_cfg.get("max_retries", 3),
            jpeg_quality=source_cfg.get("jpeg_quality", 95),
        )


class OpenCVSource(FrameSource):
    """
    OpenCV-based frame source for cameras and video files.

    Wraps cv2.VideoCapture; a failed read raises FrameSourceError, which ends
    the pipeline run.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(1640, 1232))
        with OpenCVSource(config) as source:
            frame = source.fetch()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_rtsp(self) -> bool:
        """Check if this is an RTSP stream."""
        return isinstance(self.device_id, str) and (
            self.device_id.startswith("rtsp://") or
            self.device_id.startswith("rtsps://")
        )

    @property
    def is_file(self) -> bool:
        """Check if this is a video file."""
        return (
            isinstance(self.device_id, str) and
            not self.is_rtsp and
            os.path.exists(self.device_id)
        )

    def open(self) -> None:
        """Open the video source."""
        if self._is_open:
            return

        self._initialize(retry_count=0)
        self._is_open = True
        self._frame_index = 0

        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={sanitize_url(self.device_id)}, resolution={self._opencv_config.resolution}"
        )

    def _initialize(self, retry_count: int = 0) -> None:
        """Initialize the capture device, retrying with backoff on failure."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None

        if retry_count > 0:
            wait_time = min(2 ** retry_count, 10)
            logging.info(
                f"Retrying initialization (attempt {retry_count + 1}/"
                f"{self._opencv_config.max_retries}) after {wait_time}s"
            )
            time.sleep(wait_time)

        if self.is_rtsp:
            logging.info(f"Setting RTSP transport to: {self._opencv_config.rtsp_transport}")
            os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = (
                f"rtsp_transport;{self._opencv_config.rtsp_transport}"
            )

        self._cap = cv2.VideoCapture(self.device_id)

        if not self._cap.isOpened():
            if retry_count < self._opencv_config.max_retries - 1:
                logging.warning(f"Failed to open device {sanitize_url(self.device_id)}, retrying...")
                return self._initialize(retry_count + 1)
            raise FrameSourceError(
                f"Failed to open device {sanitize_url(self.device_id)} after "
                f"{self._opencv_config.max_retries} attempts"
            )

        if self._opencv_config.timeout is not None and not self.is_file:
            timeout_ms = int(self._opencv_config.timeout * 1000)
            self._cap.set(cv2.CAP_PROP_OPEN_TIMEOUT_MSEC, timeout_ms)
            self._cap.set(cv2.CAP_PROP_READ_TIMEOUT_MSEC, timeout_ms)

        # USB cameras only; streams and files keep their native size
        if isinstance(self.device_id, int) and self._opencv_config.resolution:
            w, h = self._opencv_config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._opencv_config.buffer_size)

            actual_w = self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)
            actual_h = self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
            logging.info(f"Camera actual resolution: ({actual_w}x{actual_h})")

    def fetch(self) -> Frame:
        """Read one frame and return it JPEG-compressed."""
        self._ensure_open()

        ret, image = self._cap.read()
        if not ret or image is None:
            if self.is_file:
                raise FrameSourceError("End of video file reached")
            raise FrameSourceError(f"Failed to read frame from {sanitize_url(self.device_id)}")

        try:
            data = encode_jpeg(image, quality=self._opencv_config.jpeg_quality, rgb=False)
        except (ValueError, cv2.error) as e:
            raise FrameSourceError(f"Failed to compress captured frame: {e}") from e

        self._frame_index += 1
        return Frame(
            data=data,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        """Close the video source and release resources."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")
