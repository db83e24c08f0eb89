"""
Directory replay frame source.

Serves the image files of a directory in sorted order, one per fetch.
Useful for replaying captured frames against a model offline.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from errors import FrameSourceError
from models.frame import Frame
from .base import FrameSource, FrameSourceConfig


IMAGE_EXTENSIONS: Tuple[str, ...] = (".jpg", ".jpeg", ".png")


@dataclass
class DirectorySourceConfig(FrameSourceConfig):
    """
    Configuration for directory replay.

    Attributes:
        directory: Directory containing image files.
        loop: Start over after the last file instead of failing.
    """
    directory: str = ""
    loop: bool = False

    @classmethod
    def from_source_config(cls, source_cfg: Dict[str, Any], source_id: str = "directory") -> "DirectorySourceConfig":
        return cls(
            source_id=source_id,
            directory=source_cfg.get("directory", ""),
            loop=source_cfg.get("loop", False),
        )


class DirectorySource(FrameSource):
    """Replays image files from a directory."""

    def __init__(self, config: DirectorySourceConfig):
        super().__init__(config)
        self._dir_config = config
        self._files: List[str] = []
        self._pos = 0

    @property
    def files(self) -> List[str]:
        return list(self._files)

    def open(self) -> None:
        if self._is_open:
            return

        directory = self._dir_config.directory
        if not directory or not os.path.isdir(directory):
            raise FrameSourceError(f"Frame directory not found: {directory!r}")

        self._files = sorted(
            os.path.join(directory, name)
            for name in os.listdir(directory)
            if name.lower().endswith(IMAGE_EXTENSIONS)
        )
        self._pos = 0
        self._frame_index = 0
        self._is_open = True
        logging.info(f"DirectorySource opened: {directory} ({len(self._files)} images)")

    def fetch(self) -> Frame:
        self._ensure_open()

        if self._pos >= len(self._files):
            if not self._dir_config.loop or not self._files:
                raise FrameSourceError(f"No more images in {self._dir_config.directory}")
            self._pos = 0

        path = self._files[self._pos]
        self._pos += 1
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise FrameSourceError(f"Failed to read {path}: {e}") from e

        self._frame_index += 1
        return Frame(
            data=data,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        self._is_open = False
