# PillVision Region Segmenter

"""
Marker-controlled watershed over the enhanced frame.

Floods from every seed label across the colour gradient. Pixels where two
floods meet are set to BOUNDARY_LABEL; afterwards no unknown (0) pixel
remains.
"""

import cv2
import numpy as np

from pill_vision.core.marker_generator import FIRST_OBJECT_LABEL

BOUNDARY_LABEL = -1


class RegionSegmenter:
    """Thin wrapper around ``cv2.watershed`` with input normalization."""

    def segment(self, enhanced: np.ndarray, labels: np.ndarray) -> np.ndarray:
        """
        Resolve the unknown band of ``labels`` in place.

        Args:
            enhanced: Enhanced uint8 frame (RGB, or grayscale which is expanded).
            labels: int32 marker map from MarkerGenerator. Mutated.

        Returns:
            The same ``labels`` array.
        """
        if enhanced.shape[:2] != labels.shape[:2]:
            raise ValueError(
                f"Image {enhanced.shape[:2]} and label map {labels.shape[:2]} differ in size"
            )
        if labels.dtype != np.int32:
            raise ValueError(f"Label map must be int32, got {labels.dtype}")

        if enhanced.ndim == 2:
            enhanced = cv2.cvtColor(enhanced, cv2.COLOR_GRAY2RGB)
        elif enhanced.shape[2] == 4:
            enhanced = cv2.cvtColor(enhanced, cv2.COLOR_RGBA2RGB)

        cv2.watershed(np.ascontiguousarray(enhanced), labels)
        return labels

    @staticmethod
    def object_labels(labels: np.ndarray) -> range:
        """Candidate object labels, 2 up to the observed maximum."""
        max_label = int(labels.max()) if labels.size else 0
        return range(FIRST_OBJECT_LABEL, max_label + 1)
