# PillVision Image Enhancer

"""
Contrast scaling and gamma correction for RGB frames.

Pipeline:
1. Contrast: v' = clamp(v * c, 0, 255)
2. Gamma:    v'' = clamp(255 * (v' / 255) ^ g, 0, 255) via a 256-entry LUT

The input frame is never modified; masking and colour sampling may still
need it at its original state.
"""

from typing import Optional, Dict, Any

import cv2
import numpy as np

from pill_vision.utils import config


def build_gamma_lut(gamma: float) -> np.ndarray:
    """Lookup table mapping every 8-bit value through the gamma curve."""
    if gamma <= 0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    levels = np.arange(256, dtype=np.float64) / 255.0
    table = 255.0 * np.power(levels, gamma)
    return np.clip(np.round(table), 0, 255).astype(np.uint8)


class ImageEnhancer:
    """
    Out-of-place contrast + gamma enhancement.

    The gamma LUT is built once per call and applied with ``cv2.LUT``.
    """

    def __init__(self, cfg: Optional[Dict[str, Any]] = None):
        self._cfg = cfg or config.CONFIG

    def enhance(self, frame_rgb: np.ndarray,
                contrast: Optional[float] = None,
                gamma: Optional[float] = None) -> np.ndarray:
        """
        Enhance an RGB frame.

        Args:
            frame_rgb: uint8 image (any channel count).
            contrast: Multiplier c. Defaults to config "contrast".
            gamma: Exponent g. Defaults to config "gamma".

        Returns:
            New uint8 image with the same shape.
        """
        if contrast is None:
            contrast = self._cfg.get("contrast", 1.0)
        if gamma is None:
            gamma = self._cfg.get("gamma", 1.2)
        if contrast < 0:
            raise ValueError(f"contrast must be non-negative, got {contrast}")

        lut = build_gamma_lut(gamma)

        scaled = self._apply_contrast(frame_rgb, contrast)
        return self._apply_gamma(scaled, lut)

    def _apply_contrast(self, frame: np.ndarray, contrast: float) -> np.ndarray:
        """Stage 1: Scale and saturate to [0, 255]."""
        # convertScaleAbs always returns a new array.
        return cv2.convertScaleAbs(frame, alpha=float(contrast), beta=0)

    def _apply_gamma(self, frame: np.ndarray, lut: np.ndarray) -> np.ndarray:
        """Stage 2: Per-value lookup."""
        return cv2.LUT(frame, lut)
