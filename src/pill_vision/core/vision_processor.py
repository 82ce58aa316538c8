# PillVision Vision Processor

"""
Per-frame pill analysis: the single entry point used by callers.

Pipeline (one call, one frame, no feedback):
1. Capture    - validate and crop the source frame to RGB
2. Enhance    - contrast + gamma
3. Mask       - edge-filled or saturation-threshold interiors
4. Markers    - sure background / sure foreground / unknown
5. Watershed  - resolve the unknown band
6. Extract    - per-region features
7. Merge      - collapse split detections
8. Classify   - normal/broken counts or appearance clusters
9. Annotate   - draw into the output sink

Every intermediate buffer lives in one FrameWorkspace. Any failure is logged
and turned into an empty AnalysisResult; nothing propagates to the caller.
"""

import time
from typing import Optional, Dict, Any

import cv2
import numpy as np

from pill_vision.core.annotator import Annotator
from pill_vision.core.boundary_mask import BoundaryMaskBuilder
from pill_vision.core.classifier import ClusteringStrategy, GreedyClusterer, StatusClassifier
from pill_vision.core.duplicate_merger import DuplicateMerger
from pill_vision.core.errors import CaptureError, EngineNotReadyError
from pill_vision.core.feature_extractor import FeatureExtractor
from pill_vision.core.image_enhancer import ImageEnhancer
from pill_vision.core.marker_generator import MarkerGenerator
from pill_vision.core.models import AnalysisResult, ClusterSummary
from pill_vision.core.region_segmenter import RegionSegmenter
from pill_vision.core.workspace import FrameWorkspace
from pill_vision.utils import config as app_config
from pill_vision.utils.logging import get_logger

logger = get_logger(__name__)

CLASSIFIER_MODES = ("binary", "clustering")

_REQUIRED_CV_OPS = (
    "cvtColor", "GaussianBlur", "Canny", "dilate", "erode", "findContours",
    "distanceTransform", "connectedComponents", "watershed", "moments", "LUT",
)


def is_ready() -> bool:
    """True once the OpenCV engine exposes every operation the pipeline needs."""
    return all(hasattr(cv2, op) for op in _REQUIRED_CV_OPS)


class PillVisionProcessor:
    """
    Counts and classifies pills in a single frame.

    Usage:
        processor = PillVisionProcessor()
        if processor.is_ready():
            result = processor.process_frame(frame_rgb, sink, 640, 480,
                                             {"classifier_mode": "clustering"})
    """

    def __init__(self, cfg: Optional[Dict[str, Any]] = None,
                 clusterer: Optional[ClusteringStrategy] = None):
        """
        Args:
            cfg: Optional config override. If None, uses global config.
            clusterer: Clustering strategy for clustering mode. Defaults to a
                       GreedyClusterer built from the per-call config.
        """
        self._cfg = cfg or app_config.CONFIG
        self._clusterer = clusterer
        self._segmenter = RegionSegmenter()

    @property
    def config(self) -> Dict[str, Any]:
        return self._cfg

    def is_ready(self) -> bool:
        return is_ready()

    def process_frame(self, source: np.ndarray, output_sink: Optional[np.ndarray],
                      width: int, height: int,
                      config: Optional[Dict[str, Any]] = None) -> AnalysisResult:
        """
        Analyse one frame and draw the annotated result into ``output_sink``.

        Args:
            source: uint8 frame (RGB, RGBA or grayscale), at least width x height.
            output_sink: Writable RGB/RGBA array receiving the annotated frame.
            width, height: Region of ``source`` to analyse (top-left anchored).
            config: Per-call overrides (gamma, contrast, boundary_mode,
                    classifier_mode, or any other config key).

        Returns:
            AnalysisResult for the active mode, or an empty result on failure.
        """
        start = time.perf_counter()

        try:
            if not self.is_ready():
                raise EngineNotReadyError("OpenCV engine is not initialized")
            cfg = self._cfg if not config else {**self._cfg, **config}
            result = self._run(source, output_sink, width, height, cfg)
        except (EngineNotReadyError, CaptureError) as e:
            logger.error(f"Frame skipped: {e}")
            return AnalysisResult()
        except Exception:
            logger.exception("Frame processing failed")
            return AnalysisResult()

        result.processing_time_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(f"Frame analysed in {result.processing_time_ms:.1f} ms: {len(result.objects)} pills")
        return result

    # ========================================================================
    # Pipeline
    # ========================================================================

    def _run(self, source, output_sink, width, height, cfg) -> AnalysisResult:
        mode = cfg.get("classifier_mode", "binary")
        if mode not in CLASSIFIER_MODES:
            raise ValueError(f"Unknown classifier mode: {mode!r}")
        if output_sink is None:
            raise CaptureError("No output sink")

        with FrameWorkspace() as ws:
            frame = ws.hold("frame", self._capture(source, width, height))

            enhanced = ws.hold("enhanced", ImageEnhancer(cfg).enhance(
                frame, cfg.get("contrast", 1.0), cfg.get("gamma", 1.2)))

            mask = ws.hold("mask", BoundaryMaskBuilder(cfg).build(enhanced))

            markers = ws.hold("markers", MarkerGenerator(cfg).generate(mask))
            ws.hold("sure_bg", markers.sure_bg)
            ws.hold("distance", markers.distance)
            ws.hold("sure_fg", markers.sure_fg)
            ws.hold("unknown", markers.unknown)
            labels = ws.hold("labels", markers.labels)

            self._segmenter.segment(enhanced, labels)

            objects = FeatureExtractor(cfg).extract(labels, enhanced)
            objects = DuplicateMerger(cfg.get("merge_distance_px", 30.0)).merge(objects)
            # Classify in label (discovery) order.
            objects.sort(key=lambda o: o.id)

            result = self._classify(objects, mode, cfg)

            if cfg.get("annotate", True):
                canvas = ws.hold("canvas", enhanced.copy())
                annotator = Annotator(cfg)
                annotator.draw(canvas, objects, mode)
                annotator.present(canvas, output_sink)

        return result

    def _capture(self, source, width: int, height: int) -> np.ndarray:
        """Validate the source and return a width x height RGB copy."""
        if source is None:
            raise CaptureError("No source frame")
        frame = np.asarray(source)

        if frame.dtype != np.uint8:
            raise CaptureError(f"Source must be uint8, got {frame.dtype}")
        if width <= 0 or height <= 0:
            raise CaptureError(f"Invalid frame size {width}x{height}")
        if frame.ndim not in (2, 3) or frame.shape[0] < height or frame.shape[1] < width:
            raise CaptureError(f"Source {frame.shape} smaller than {width}x{height}")

        frame = np.ascontiguousarray(frame[:height, :width])

        if frame.ndim == 2:
            return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
        if frame.shape[2] == 4:
            return cv2.cvtColor(frame, cv2.COLOR_RGBA2RGB)
        if frame.shape[2] == 3:
            return frame.copy()
        raise CaptureError(f"Unsupported channel count: {frame.shape[2]}")

    def _classify(self, objects, mode: str, cfg: Dict[str, Any]) -> AnalysisResult:
        if mode == "binary":
            classifier = StatusClassifier(cfg.get("circularity_threshold", 0.65))
            normal, broken = classifier.classify(objects)
            return AnalysisResult(normal_count=normal, broken_count=broken, objects=objects)

        clusterer = self._clusterer or GreedyClusterer(cfg)
        clusters = clusterer.assign(objects)
        return AnalysisResult(
            total_count=len(objects),
            clusters=[ClusterSummary(label=c.label, count=c.count, color_hex=c.color)
                      for c in clusters],
            objects=objects,
        )
