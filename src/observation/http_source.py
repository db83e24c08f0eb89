"""
HTTP snapshot frame source.

Fetches one still image per request from an HTTP endpoint that serves the
latest camera frame (e.g. a JPEG snapshot URL exposed next to the camera).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from errors import FrameSourceError
from models.frame import Frame
from .base import FrameSource, FrameSourceConfig
from .url_utils import sanitize_url


@dataclass
class HttpSnapshotSourceConfig(FrameSourceConfig):
    """
    Configuration for HTTP snapshot sources.

    Attributes:
        url: Snapshot URL returning one compressed image per GET.
        headers: Extra request headers (e.g. authorization).
    """
    url: str = ""
    headers: Optional[Dict[str, str]] = None

    @classmethod
    def from_source_config(cls, source_cfg: Dict[str, Any], source_id: str = "http") -> "HttpSnapshotSourceConfig":
        """
        Adapter: Create HttpSnapshotSourceConfig from the source config dict.

        Args:
            source_cfg: Source configuration dict (from config.yaml).
            source_id: Identifier for this source.
        """
        return cls(
            source_id=source_id,
            timeout=source_cfg.get("timeout", 10.0),
            url=source_cfg.get("url", ""),
            headers=source_cfg.get("headers"),
        )


class HttpSnapshotSource(FrameSource):
    """
    Frame source that GETs a snapshot URL for every frame.

    Example:
        config = HttpSnapshotSourceConfig(url="http://mirror.local:5555/frame.jpg")
        with HttpSnapshotSource(config) as source:
            frame = source.fetch()
    """

    def __init__(self, config: HttpSnapshotSourceConfig, client: Optional[httpx.Client] = None):
        super().__init__(config)
        self._http_config = config
        self._client = client
        self._owns_client = client is None

    @property
    def url(self) -> str:
        return self._http_config.url

    def open(self) -> None:
        if self._is_open:
            return
        if not self.url:
            raise FrameSourceError("HTTP frame source requires a url")

        if self._client is None:
            self._client = httpx.Client(
                timeout=self._http_config.timeout,
                headers=self._http_config.headers,
            )
        self._is_open = True
        self._frame_index = 0
        logging.info(f"HttpSnapshotSource opened: source_id={self.source_id}, url={sanitize_url(self.url)}")

    def fetch(self) -> Frame:
        self._ensure_open()
        try:
            response = self._client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FrameSourceError(f"Failed to fetch frame from {sanitize_url(self.url)}: {e}") from e

        data = response.content
        if not data:
            raise FrameSourceError(f"Empty frame received from {sanitize_url(self.url)}")

        self._frame_index += 1
        return Frame(
            data=data,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._is_open = False
        logging.info(f"HttpSnapshotSource closed: source_id={self.source_id}")
