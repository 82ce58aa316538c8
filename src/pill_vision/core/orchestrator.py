import time
from dataclasses import dataclass, asdict
from typing import Optional, Callable, Dict, Any

import numpy as np

from pill_vision.core.frame_loader import FrameLoader
from pill_vision.core.models import FrameAnalysis, AnalysisResult
from pill_vision.core.results_cache import ResultsCache
from pill_vision.core.vision_processor import PillVisionProcessor
from pill_vision.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RunSummary:
    """Totals of one orchestrated run."""
    frames_seen: int = 0
    frames_analysed: int = 0
    frames_failed: int = 0
    wall_time_s: float = 0.0
    mean_processing_ms: float = 0.0
    analysis_fps: float = 0.0
    status: str = "idle"

    def to_dict(self):
        return asdict(self)


class FrameThrottle:
    """
    Admits at most ``fps_target`` frames per second of video time.

    A frame is admitted when strictly more than one interval elapsed since the
    last admitted frame; the leftover (elapsed mod interval) is carried so the
    admitted rate does not drift below the target.
    """

    def __init__(self, fps_target: float):
        if fps_target <= 0:
            raise ValueError(f"fps_target must be positive, got {fps_target}")
        self.interval = 1.0 / fps_target
        self._last: Optional[float] = None

    def reset(self) -> None:
        self._last = None

    def admit(self, timestamp: float) -> bool:
        if self._last is None:
            self._last = timestamp
            return True

        elapsed = timestamp - self._last
        if elapsed > self.interval:
            self._last = timestamp - (elapsed % self.interval)
            return True
        return False


class AnalysisOrchestrator:
    """
    Coordinates analysis of a recorded video.

    Responsibilities:
    1. Reads frames from FrameLoader.
    2. Throttles them to the analysis rate target.
    3. Feeds admitted frames to PillVisionProcessor with an output buffer.
    4. Saves results to ResultsCache.
    5. Reports progress and handles cancellation.
    """

    def __init__(self, loader: FrameLoader, processor: PillVisionProcessor,
                 cache: ResultsCache, fps_target: Optional[float] = None,
                 frame_config: Optional[Dict[str, Any]] = None):
        """
        Args:
            loader: Frame source.
            processor: Frame analyser.
            cache: Result sink.
            fps_target: Analysed frames per second of video. Defaults to the
                        processor config's "fps_target".
            frame_config: Per-call overrides passed to every process_frame.
        """
        self.loader = loader
        self.processor = processor
        self.cache = cache
        self.frame_config = frame_config or {}
        self._cancel_requested = False

        processor_config = getattr(processor, "config", None)
        if not isinstance(processor_config, dict):
            processor_config = {}
        if fps_target is None:
            fps_target = float(processor_config.get("fps_target", 2.0))

        self.throttle = FrameThrottle(fps_target)
        self.summary = RunSummary()
        self.last_frame: Optional[np.ndarray] = None

    def cancel(self):
        """Requests the processing loop to stop."""
        self._cancel_requested = True
        logger.info("Cancellation requested.")

    def run(self, progress_callback: Optional[Callable[[int, int], None]] = None,
            frame_callback: Optional[Callable[[int, np.ndarray, AnalysisResult], None]] = None,
            limit: Optional[int] = None) -> RunSummary:
        """
        Runs the analysis loop over the video.

        Args:
            progress_callback: Called with (current_frame, total_frames).
            frame_callback: Called with (frame_id, annotated_rgb, result) for
                            each successfully analysed frame.
            limit: Optional maximum number of video frames to read.

        Returns:
            RunSummary of the run (also stored in the cache summary).
        """
        self._cancel_requested = False
        self.throttle.reset()
        self.summary = RunSummary(status="running")

        total_frames = self.loader.total_frames
        if limit is not None and limit < total_frames:
            total_frames = limit

        width, height = self.loader.width, self.loader.height
        fps = self.loader.fps
        sink = np.zeros((height, width, 3), dtype=np.uint8)

        logger.info(f"Starting analysis of {total_frames} frames "
                    f"at {1.0 / self.throttle.interval:.1f} analysed fps...")
        self.cache.start(
            metadata={"width": width, "height": height, "fps": fps,
                      "total_frames": self.loader.total_frames},
            cfg=self.processor.config if isinstance(self.processor.config, dict) else {},
        )

        processing_ms = 0.0
        wall_start = time.perf_counter()

        try:
            for frame_idx, frame_rgb in self.loader.iter_frames():
                if self._cancel_requested:
                    logger.info("Analysis cancelled by user.")
                    self.summary.status = "cancelled"
                    break

                if limit is not None and frame_idx >= limit:
                    logger.info(f"Reached limit of {limit} frames.")
                    break

                self.summary.frames_seen += 1
                timestamp = frame_idx / fps if fps > 0 else 0.0

                if self.throttle.admit(timestamp):
                    result = self.processor.process_frame(
                        frame_rgb, sink, width, height, self.frame_config)

                    if result.is_empty:
                        # Dropped, the next admitted frame is an independent attempt.
                        self.summary.frames_failed += 1
                    else:
                        self.summary.frames_analysed += 1
                        processing_ms += result.processing_time_ms or 0.0
                        self.cache.append(FrameAnalysis(frame_idx, timestamp, result))
                        # The sink is redrawn every frame; hand out a snapshot.
                        self.last_frame = sink.copy()
                        if frame_callback:
                            frame_callback(frame_idx, self.last_frame, result)

                if progress_callback and total_frames > 0:
                    progress_callback(min(frame_idx + 1, total_frames), total_frames)
        finally:
            self._finish(wall_start, processing_ms)

        return self.summary

    def _finish(self, wall_start: float, processing_ms: float) -> None:
        s = self.summary
        s.wall_time_s = time.perf_counter() - wall_start
        if s.frames_analysed:
            s.mean_processing_ms = processing_ms / s.frames_analysed
        if s.wall_time_s > 0:
            s.analysis_fps = s.frames_analysed / s.wall_time_s
        if s.status == "running":
            s.status = "finished"

        self.cache.finalize(s.to_dict())
        logger.info(f"Analysis {s.status}: {s.frames_analysed} analysed, "
                    f"{s.frames_failed} failed, {s.analysis_fps:.1f} fps")
