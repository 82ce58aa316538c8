# PillVision Boundary Mask Builder

"""
Binary "object interior" mask from an enhanced RGB frame.

Two interchangeable strategies:
- edge:       Grayscale -> Gaussian blur -> Canny -> dilate -> fill external contours
- saturation: RGB -> HSV -> threshold the S channel

Both return a uint8 mask (255 = object interior, 0 = background). This mask
is the only structural input to segmentation.
"""

from typing import Optional, Dict, Any

import cv2
import numpy as np

from pill_vision.utils import config

BOUNDARY_MODES = ("edge", "saturation")


class BoundaryMaskBuilder:
    """Builds the solid object mask with the configured strategy."""

    def __init__(self, cfg: Optional[Dict[str, Any]] = None,
                 mode: Optional[str] = None):
        self._cfg = cfg or config.CONFIG
        self._mode = mode or self._cfg.get("boundary_mode", "edge")
        if self._mode not in BOUNDARY_MODES:
            raise ValueError(f"Unknown boundary mode: {self._mode!r} (expected one of {BOUNDARY_MODES})")

    @property
    def mode(self) -> str:
        return self._mode

    def build(self, enhanced_rgb: np.ndarray) -> np.ndarray:
        """
        Args:
            enhanced_rgb: Enhanced uint8 RGB frame.

        Returns:
            uint8 binary mask with the frame's height and width.
        """
        if self._mode == "saturation":
            return self._build_from_saturation(enhanced_rgb)
        return self._build_from_edges(enhanced_rgb)

    def _build_from_edges(self, rgb: np.ndarray) -> np.ndarray:
        """Edge strategy: close the Canny outline of each pill and fill it."""
        blur_k = self._cfg.get("blur_ksize", 5)
        low = self._cfg.get("canny_low", 30)
        high = self._cfg.get("canny_high", 100)
        dilate_k = self._cfg.get("edge_dilate_ksize", 3)

        gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
        blurred = cv2.GaussianBlur(gray, (blur_k, blur_k), 0)
        edges = cv2.Canny(blurred, low, high)

        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (dilate_k, dilate_k))
        edges = cv2.dilate(edges, kernel)

        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        mask = np.zeros(gray.shape, dtype=np.uint8)
        if contours:
            cv2.drawContours(mask, contours, -1, 255, thickness=cv2.FILLED)
        return mask

    def _build_from_saturation(self, rgb: np.ndarray) -> np.ndarray:
        """Saturation strategy: pills are more colourful than the background."""
        cutoff = self._cfg.get("saturation_threshold", 50)
        open_iters = self._cfg.get("saturation_open_iterations", 1)

        hsv = cv2.cvtColor(rgb, cv2.COLOR_RGB2HSV)
        saturation = hsv[:, :, 1]
        _, mask = cv2.threshold(saturation, cutoff, 255, cv2.THRESH_BINARY)

        if open_iters > 0:
            kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
            mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel, iterations=open_iters)
        return mask
