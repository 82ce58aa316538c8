# PillVision Marker Generator

"""
Watershed seeds from the binary object mask.

- sure background: mask dilated N times (grows outward, never into pills)
- distance field:  L2 distance to the nearest zero pixel, min-max normalized
- sure foreground: distance field > threshold (pill cores)
- unknown:         sure background minus sure foreground

Label map convention: 0 = unknown, 1 = background, >= 2 = one seed each.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any

import cv2
import numpy as np

from pill_vision.utils import config

UNKNOWN_LABEL = 0
BACKGROUND_LABEL = 1
FIRST_OBJECT_LABEL = 2


@dataclass
class Markers:
    """Intermediate buffers of marker generation."""
    labels: np.ndarray = field(repr=False)          # int32 label map
    sure_bg: np.ndarray = field(repr=False)         # uint8
    distance: np.ndarray = field(repr=False)        # float32 in [0, 1]
    sure_fg: np.ndarray = field(repr=False)         # uint8
    unknown: np.ndarray = field(repr=False)         # uint8
    seed_count: int = 0


class MarkerGenerator:
    """Derives sure-background / sure-foreground / unknown and the seed labels."""

    def __init__(self, cfg: Optional[Dict[str, Any]] = None):
        self._cfg = cfg or config.CONFIG

    def generate(self, mask: np.ndarray) -> Markers:
        """
        Args:
            mask: uint8 binary mask (255 = object interior).

        Returns:
            Markers with an int32 label map ready for watershed.
        """
        ksize = self._cfg.get("marker_kernel_size", 3)
        bg_iters = self._cfg.get("background_dilate_iterations", 3)
        fg_thresh = self._cfg.get("foreground_threshold", 0.5)

        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (ksize, ksize))
        sure_bg = cv2.dilate(mask, kernel, iterations=bg_iters)

        distance = cv2.distanceTransform(mask, cv2.DIST_L2, 5)
        distance = cv2.normalize(distance, None, 0, 1.0, cv2.NORM_MINMAX)

        _, sure_fg = cv2.threshold(distance, fg_thresh, 255, cv2.THRESH_BINARY)
        sure_fg = sure_fg.astype(np.uint8)

        unknown = cv2.subtract(sure_bg, sure_fg)

        n_labels, labels = cv2.connectedComponents(sure_fg)
        labels = labels.astype(np.int32) + 1
        labels[unknown == 255] = UNKNOWN_LABEL

        return Markers(
            labels=labels,
            sure_bg=sure_bg,
            distance=distance,
            sure_fg=sure_fg,
            unknown=unknown,
            seed_count=n_labels - 1,
        )
