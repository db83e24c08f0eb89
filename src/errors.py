"""
Exception types raised by the face capture pipeline.

Frame, decode and inference errors are fatal to the processing loop.
Artifact failures are handled locally by the writer and never raised.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline errors."""


class FrameSourceError(PipelineError):
    """A frame could not be fetched from the frame source."""


class DecodeError(PipelineError):
    """A fetched frame could not be decoded into pixels."""


class InferenceError(PipelineError):
    """The inference call failed or returned an unusable reply."""
