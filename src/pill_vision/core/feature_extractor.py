# PillVision Feature Extractor

"""
Per-label shape and colour features after watershed.

For every label >= 2:
1. Isolate the label mask and take its external contour
2. Reject noise specks, accidental merges and zero-perimeter regions
3. Circularity, centroid, log-scaled moment invariant, convex-hull area
4. Mean colour over an eroded core mask (falls back to the full mask for
   small pills), converted analytically to HSV
"""

import math
from typing import List, Optional, Dict, Any, Tuple

import cv2
import numpy as np

from pill_vision.core.models import Region, DetectedObject
from pill_vision.core.region_segmenter import RegionSegmenter
from pill_vision.utils import config
from pill_vision.utils.logging import get_logger

logger = get_logger(__name__)

HU_EPSILON = 1e-12


def circularity(area: float, perimeter: float) -> float:
    """4*pi*area / perimeter^2; 1.0 for a perfect circle, 0.0 if perimeter is 0."""
    if perimeter <= 0:
        return 0.0
    return 4.0 * math.pi * area / (perimeter ** 2)


def log_hu(hu0: float) -> float:
    """Compress the first moment invariant: -sign(hu0) * log10(|hu0|)."""
    magnitude = abs(hu0) if hu0 != 0 else HU_EPSILON
    return float(-np.sign(hu0) * math.log10(magnitude))


def rgb_to_hsv(r: float, g: float, b: float,
               saturation_boost: float = 1.0) -> Tuple[float, float, float]:
    """
    Analytic RGB -> HSV.

    Args:
        r, g, b: Channel means in [0, 255].
        saturation_boost: Multiplier on saturation, result clamped to 100.

    Returns:
        (hue degrees [0, 360), saturation 0-100, value 0-100)
    """
    r_, g_, b_ = r / 255.0, g / 255.0, b / 255.0
    c_max = max(r_, g_, b_)
    c_min = min(r_, g_, b_)
    delta = c_max - c_min

    s = delta / c_max if c_max > 0 else 0.0

    if delta == 0:
        h = 0.0
    elif c_max == r_:
        h = ((g_ - b_) / delta) % 6.0
    elif c_max == g_:
        h = (b_ - r_) / delta + 2.0
    else:
        h = (r_ - g_) / delta + 4.0

    hue = (h * 60.0) % 360.0
    saturation = min(100.0, s * 100.0 * saturation_boost)
    value = c_max * 100.0
    return hue, saturation, value


def name_color(hue: float, saturation: float, value: float) -> str:
    """Coarse colour name used for on-screen labels."""
    if saturation < 25:
        if value > 60:
            return "white"
        if value > 30:
            return "gray"
        return "black"

    if hue < 20 or hue >= 340:
        return "red"
    if hue < 45:
        return "orange"
    if hue < 75:
        return "yellow"
    if hue < 165:
        return "green"
    if hue < 260:
        return "blue"
    return "purple"


class FeatureExtractor:
    """
    Turns a watershed label map into DetectedObjects.

    Rejections (empty label, area out of range, zero perimeter) are normal
    filtering and only logged at DEBUG.
    """

    def __init__(self, cfg: Optional[Dict[str, Any]] = None):
        self._cfg = cfg or config.CONFIG

        core_k = self._cfg.get("core_erode_ksize", 9)
        self._core_kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (core_k, core_k))

    def extract(self, labels: np.ndarray, color_rgb: np.ndarray) -> List[DetectedObject]:
        """
        Measure every candidate label.

        Args:
            labels: int32 label map after watershed.
            color_rgb: uint8 RGB frame to sample colour from.

        Returns:
            Detected objects in label order.
        """
        boost = self._cfg.get("saturation_boost", 1.3)
        objects = []

        for label in RegionSegmenter.object_labels(labels):
            mask = np.where(labels == label, 255, 0).astype(np.uint8)
            region = self.measure_region(mask, color_rgb, label)
            if region is None:
                continue

            hsv = rgb_to_hsv(*region.mean_rgb, saturation_boost=boost)
            objects.append(DetectedObject(
                id=label,
                x=region.cx,
                y=region.cy,
                area=region.area,
                perimeter=region.perimeter,
                circularity=region.circularity,
                convex_area=region.convex_area,
                hu_log=region.hu_log,
                rgb=region.mean_rgb,
                hsv=hsv,
                color_label=name_color(*hsv),
                contour=region.contour,
            ))

        return objects

    def measure_region(self, mask: np.ndarray, color_rgb: np.ndarray,
                       label: int = 0) -> Optional[Region]:
        """
        Measure one binary region mask.

        Returns:
            Region, or None if the region is empty, out of the plausible area
            range, or has zero perimeter.
        """
        min_area = self._cfg.get("min_area", 200.0)
        max_area = self._cfg.get("max_area", 8000.0)

        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        if not contours:
            return None

        contour = max(contours, key=cv2.contourArea)
        area = float(cv2.contourArea(contour))
        perimeter = float(cv2.arcLength(contour, True))

        if not (min_area < area < max_area):
            logger.debug(f"Label {label}: area {area:.0f} outside ({min_area:.0f}, {max_area:.0f})")
            return None
        if perimeter == 0:
            logger.debug(f"Label {label}: zero perimeter")
            return None

        m = cv2.moments(contour)
        if m["m00"] == 0:
            return None
        cx = m["m10"] / m["m00"]
        cy = m["m01"] / m["m00"]

        # First moment invariant from central moments
        hu0 = (m["mu20"] + m["mu02"]) / (m["m00"] ** 2)

        hull = cv2.convexHull(contour)
        convex_area = float(cv2.contourArea(hull))

        return Region(
            label=label,
            contour=contour,
            area=area,
            perimeter=perimeter,
            circularity=circularity(area, perimeter),
            cx=float(cx),
            cy=float(cy),
            convex_area=convex_area,
            hu_log=log_hu(hu0),
            mean_rgb=self._core_mean(mask, color_rgb),
        )

    def _core_mean(self, mask: np.ndarray,
                   color_rgb: np.ndarray) -> Tuple[float, float, float]:
        """Mean colour of the eroded core; the full mask if erosion empties it."""
        min_pixels = self._cfg.get("core_min_pixels", 10)

        core = cv2.erode(mask, self._core_kernel)
        sample_mask = core if cv2.countNonZero(core) > min_pixels else mask

        mean = cv2.mean(color_rgb, mask=sample_mask)
        return float(mean[0]), float(mean[1]), float(mean[2])
