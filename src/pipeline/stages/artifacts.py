"""
Artifact writer stage: crop, JPEG-encode and persist one detection.

The image counter is owned by the caller. write() takes the current value
and returns the next one, which only advances after a successful write.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import cv2

from codec import encode_jpeg
from models.detection import PixelRect
from models.frame import PixelBuffer


@dataclass(frozen=True)
class ArtifactWriterConfig:
    """
    Attributes:
        output_dir: Directory the crops are written to.
        filename_pattern: printf-style pattern taking the counter.
        jpeg_quality: JPEG quality 1-100. None = encoder default.
        resume_counter: Start after the highest existing file index.
    """
    output_dir: str = "."
    filename_pattern: str = "image%05d.jpg"
    jpeg_quality: Optional[int] = None
    resume_counter: bool = True

    @classmethod
    def from_artifact_config(cls, d: Dict[str, Any]) -> "ArtifactWriterConfig":
        return cls(
            output_dir=d.get("output_dir", "."),
            filename_pattern=d.get("filename_pattern", "image%05d.jpg"),
            jpeg_quality=d.get("jpeg_quality"),
            resume_counter=d.get("resume_counter", True),
        )


# %d or zero-padded %0Nd; space padding would not read back as digits
COUNTER_FIELD = re.compile(r"%(?:0\d+)?d")


def is_valid_pattern(pattern: str) -> bool:
    """True if pattern holds exactly one counter field and no other % field."""
    return pattern.count("%") == 1 and COUNTER_FIELD.search(pattern) is not None


def _pattern_regex(pattern: str) -> "re.Pattern[str]":
    """Regex matching filenames produced by a single-%d pattern."""
    if not is_valid_pattern(pattern):
        raise ValueError(f"Unsupported counter field in pattern: {pattern!r}")
    field = COUNTER_FIELD.search(pattern)
    head, rest = pattern[:field.start()], pattern[field.end():]
    return re.compile(re.escape(head) + r"(\d+)" + re.escape(rest) + r"$")


class ArtifactWriter:
    """
    Writes detection crops as numbered JPEG files.

    Files are opened with exclusive creation, so an existing file is never
    overwritten. Any failure is logged and the counter is returned unchanged.

    Example:
        writer = ArtifactWriter(ArtifactWriterConfig(output_dir="faces"))
        counter = writer.initial_counter()
        counter = writer.write(pixels, rect, counter)
    """

    def __init__(self, config: ArtifactWriterConfig):
        self.config = config
        self._name_regex = _pattern_regex(config.filename_pattern)

    def path_for(self, counter: int) -> str:
        return os.path.join(self.config.output_dir, self.config.filename_pattern % counter)

    def prepare(self) -> None:
        """Create the output directory if needed."""
        if self.config.output_dir and not os.path.exists(self.config.output_dir):
            os.makedirs(self.config.output_dir)

    def initial_counter(self) -> int:
        """
        First counter value to use.

        0, or one past the highest index already present in output_dir when
        resume_counter is set.
        """
        if not self.config.resume_counter or not os.path.isdir(self.config.output_dir):
            return 0

        highest = -1
        for name in os.listdir(self.config.output_dir):
            match = self._name_regex.match(name)
            if match:
                highest = max(highest, int(match.group(1)))
        if highest >= 0:
            logging.info(f"Resuming artifact counter at {highest + 1} ({self.config.output_dir})")
        return highest + 1

    def write(self, pixels: PixelBuffer, rect: PixelRect, counter: int) -> int:
        """
        Crop rect out of pixels and persist it under the current counter.

        Returns:
            counter + 1 on success, counter on any failure.
        """
        try:
            data = encode_jpeg(pixels.crop(rect), quality=self.config.jpeg_quality)
        except (ValueError, cv2.error) as e:
            logging.warning(f"Error encoding jpeg for rect {rect.as_tuple()}: {e}")
            return counter

        path = self.path_for(counter)
        try:
            f = open(path, "xb")
        except OSError as e:
            logging.warning(f"Error opening file {path}: {e}")
            return counter

        try:
            with f:
                f.write(data)
        except OSError as e:
            logging.warning(f"Error writing jpeg to {path}: {e}")
            try:
                os.remove(path)
            except OSError:
                logging.debug(f"Could not remove partial file {path}")
            return counter

        logging.debug(f"Wrote {path} ({len(data)} bytes)")
        return counter + 1
