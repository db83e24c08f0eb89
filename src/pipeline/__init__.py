"""
Pipeline module for the face capture service.

The pipeline orchestrates the full per-frame flow:
- Frame acquisition from a frame source
- Decoding and tensor encoding
- Remote inference
- Detection filtering, box mapping and crop persistence
"""

from .engine import (
    FrameResult,
    PipelineConfig,
    PipelineEngine,
    PipelineState,
    PipelineStats,
    Termination,
    TerminationReason,
    create_engine_from_config,
)

__all__ = [
    "FrameResult",
    "PipelineConfig",
    "PipelineEngine",
    "PipelineState",
    "PipelineStats",
    "Termination",
    "TerminationReason",
    "create_engine_from_config",
]
