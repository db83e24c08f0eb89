"""
Pipeline engine for the face capture service.

Pulls one frame at a time from a FrameSource, runs it through the remote
detection model and writes a JPEG crop for every accepted face. Loop
control is an explicit state machine: the engine is RUNNING until a stop
request, a frame limit or a fatal error moves it to TERMINATED, and the
reason is kept in a Termination record.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from codec import decode_image
from errors import DecodeError, FrameSourceError, InferenceError
from inference import InferenceService, create_inference_from_config
from models.frame import Frame, PixelBuffer
from models.detection import Detection, PixelRect
from observation import FrameSource, create_source_from_config
from pipeline.stages.artifacts import ArtifactWriter, ArtifactWriterConfig
from pipeline.stages.boxes import BoxFormat, map_box
from pipeline.stages.encode import encode_tensor
from pipeline.stages.select import SelectionConfig, select_detections


class PipelineState(str, Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


class TerminationReason(str, Enum):
    STOPPED = "stopped"
    INTERRUPTED = "interrupted"
    FRAME_LIMIT = "frame_limit"
    STARTUP_ERROR = "startup_error"
    FRAME_ERROR = "frame_error"
    DECODE_ERROR = "decode_error"
    INFERENCE_ERROR = "inference_error"
    UNEXPECTED_ERROR = "unexpected_error"

    @property
    def is_error(self) -> bool:
        return self not in (
            TerminationReason.STOPPED,
            TerminationReason.INTERRUPTED,
            TerminationReason.FRAME_LIMIT,
        )


@dataclass(frozen=True)
class Termination:
    """Why the engine stopped."""
    reason: TerminationReason
    error: Optional[BaseException] = None

    @property
    def is_error(self) -> bool:
        return self.reason.is_error


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        input_name: Model input tensor name.
        selection: Detection filter thresholds.
        box_format: Layout of the model's box values.
        throttle: Minimum seconds per iteration. 0 disables throttling.
        max_frames: Stop after this many frames. None = run until stopped.
        stats_log_interval: Seconds between status log messages.
        expected_size: Expected (width, height) of decoded frames, only
            used to warn about mismatches.
    """
    input_name: str = "image_tensor"
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    box_format: BoxFormat = BoxFormat.LEGACY
    throttle: float = 1.0
    max_frames: Optional[int] = None
    stats_log_interval: float = 60.0
    expected_size: Optional[Tuple[int, int]] = None


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detection_count: int = 0
    image_count: int = 0
    write_failures: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)


@dataclass(frozen=True)
class FrameResult:
    """Outcome of one processed frame."""
    frame_index: int
    detections: List[Detection]
    rects: List[PixelRect]
    written: int


class PipelineEngine:
    """
    Main processing engine.

    This engine:
    - Fetches one compressed frame per iteration from a FrameSource
    - Decodes it and encodes the pixels as a [1, W, H, 3] uint8 tensor
    - Calls the InferenceService once per frame
    - Filters the returned slots and maps accepted boxes to pixels
    - Writes one numbered JPEG crop per accepted detection

    Frame, decode and inference errors terminate the run; artifact errors
    only skip the affected crop.

    Example:
        engine = PipelineEngine(source, inference, writer, PipelineConfig())
        termination = engine.run()
    """

    def __init__(
        self,
        source: FrameSource,
        inference: InferenceService,
        writer: ArtifactWriter,
        config: PipelineConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.inference = inference
        self.writer = writer
        self.config = config
        self.stats = PipelineStats()
        self._sleep = sleep
        self._clock = clock
        self._state = PipelineState.RUNNING
        self._termination: Optional[Termination] = None
        self._stop_requested = False
        self._size_warned = False
        self._callbacks: List[Callable[[Frame, FrameResult], None]] = []

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def termination(self) -> Optional[Termination]:
        return self._termination

    def add_callback(self, callback: Callable[[Frame, FrameResult], None]) -> None:
        """
        Add a callback to be called after each frame is processed.

        Args:
            callback: Function taking (frame, frame_result) as arguments.
        """
        self._callbacks.append(callback)

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._stop_requested = True

    def run(self) -> Termination:
        """
        Run the main processing loop.

        Opens the frame source, processes frames until terminated, then
        closes resources.
        """
        self.stats = PipelineStats()

        try:
            self.source.open()
            self.writer.prepare()
            self.stats.image_count = self.writer.initial_counter()
        except (FrameSourceError, OSError) as e:
            logging.error(f"Pipeline startup failed: {e}")
            self._terminate(TerminationReason.STARTUP_ERROR, e)
            self._cleanup()
            return self._termination

        logging.info(
            f"Pipeline started: source={self.source.source_id}, "
            f"next image={self.stats.image_count}"
        )

        try:
            while self._state is PipelineState.RUNNING:
                started = self._clock()
                self.step()
                self._handle_periodic_tasks()
                if self._state is PipelineState.RUNNING and not self._stop_requested:
                    self._throttle(started)
        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
            self._terminate(TerminationReason.INTERRUPTED)
        finally:
            self._cleanup()

        return self._termination

    def step(self) -> PipelineState:
        """Process exactly one frame, or terminate if the engine must stop."""
        if self._state is PipelineState.TERMINATED:
            return self._state
        if self._stop_requested:
            self._terminate(TerminationReason.STOPPED)
            return self._state

        try:
            frame = self.source.fetch()
        except FrameSourceError as e:
            logging.error(f"error receiving frame: {e}")
            return self._terminate(TerminationReason.FRAME_ERROR, e)

        try:
            result = self._process_frame(frame)
        except DecodeError as e:
            logging.error(f"error decoding frame {frame.frame_index}: {e}")
            return self._terminate(TerminationReason.DECODE_ERROR, e)
        except InferenceError as e:
            logging.error(f"error from face detector: {e}")
            return self._terminate(TerminationReason.INFERENCE_ERROR, e)
        except Exception as e:
            logging.exception(f"Unexpected error processing frame {frame.frame_index}")
            return self._terminate(TerminationReason.UNEXPECTED_ERROR, e)

        for callback in self._callbacks:
            try:
                callback(frame, result)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

        if self.config.max_frames is not None and self.stats.frame_count >= self.config.max_frames:
            logging.info(f"Frame limit reached ({self.config.max_frames})")
            self._terminate(TerminationReason.FRAME_LIMIT)

        return self._state

    def _process_frame(self, frame: Frame) -> FrameResult:
        """Decode, infer, filter and persist crops for one frame."""
        self.stats.frame_count += 1

        pixels = decode_image(frame.data)
        self._check_size(pixels)

        tensor = encode_tensor(pixels, self.config.input_name)
        result = self.inference.infer(tensor)
        if len(result.scores):
            logging.debug(f"first confidence: {float(result.scores[0]):f}")

        detections = select_detections(result, self.config.selection)
        rects: List[PixelRect] = []
        written = 0
        for det in detections:
            logging.info(
                f"rect: {det.box[0]:f} {det.box[1]:f} {det.box[2]:f} {det.box[3]:f} "
                f"(slot={det.slot}, score={det.score:.3f})"
            )
            try:
                rect = map_box(det.box, pixels.width, pixels.height, self.config.box_format)
            except ValueError as e:
                logging.warning(f"Skipping slot {det.slot}: {e}")
                self.stats.write_failures += 1
                continue
            rects.append(rect)

            counter = self.stats.image_count
            self.stats.image_count = self.writer.write(pixels, rect, counter)
            if self.stats.image_count > counter:
                written += 1
            else:
                self.stats.write_failures += 1

        self.stats.detection_count += len(detections)
        return FrameResult(
            frame_index=frame.frame_index,
            detections=detections,
            rects=rects,
            written=written,
        )

    def _check_size(self, pixels: PixelBuffer) -> None:
        expected = self.config.expected_size
        if expected is None or self._size_warned:
            return
        if pixels.size != tuple(expected):
            logging.warning(
                f"Frame size {pixels.width}x{pixels.height} differs from configured "
                f"{expected[0]}x{expected[1]}; using the decoded size"
            )
            self._size_warned = True

    def _terminate(self, reason: TerminationReason, error: Optional[BaseException] = None) -> PipelineState:
        if self._state is PipelineState.RUNNING:
            self._state = PipelineState.TERMINATED
            self._termination = Termination(reason=reason, error=error)
        return self._state

    def _throttle(self, started: float) -> None:
        if self.config.throttle <= 0:
            return
        remaining = self.config.throttle - (self._clock() - started)
        if remaining > 0:
            self._sleep(remaining)

    def _handle_periodic_tasks(self) -> None:
        """Log statistics periodically."""
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"detections={self.stats.detection_count}, "
                f"next image={self.stats.image_count}, "
                f"write_failures={self.stats.write_failures}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        """Clean up resources."""
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        try:
            self.inference.close()
        except Exception as e:
            logging.warning(f"Error closing inference client: {e}")

        reason = self._termination.reason.value if self._termination else "unknown"
        logging.info(
            f"Pipeline stopped ({reason}): frames={self.stats.frame_count}, "
            f"images written up to {self.stats.image_count}"
        )


def create_engine_from_config(config: Dict[str, Any]) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from the full config dict.

    Args:
        config: Full application config dict (see load_config).
    """
    source_cfg = config.get("source", {}) or {}
    source = create_source_from_config(source_cfg, source_id="frames")
    inference = create_inference_from_config(config.get("inference", {}) or {})
    writer = ArtifactWriter(ArtifactWriterConfig.from_artifact_config(config.get("artifacts", {}) or {}))

    detection_cfg = config.get("detection", {}) or {}
    pipeline_cfg = config.get("pipeline", {}) or {}
    width, height = source_cfg.get("width"), source_cfg.get("height")

    pipeline_config = PipelineConfig(
        input_name=(config.get("inference", {}) or {}).get("input_name", "image_tensor"),
        selection=SelectionConfig.from_detection_config(detection_cfg),
        box_format=BoxFormat(detection_cfg.get("box_format", "legacy")),
        throttle=float(pipeline_cfg.get("throttle", 1.0)),
        max_frames=pipeline_cfg.get("max_frames"),
        stats_log_interval=float(pipeline_cfg.get("stats_log_interval", 60.0)),
        expected_size=(int(width), int(height)) if width and height else None,
    )
    return PipelineEngine(source, inference, writer, pipeline_config)
