# PillVision - Utils Configuration

"""
Centralized configuration for the PillVision pipeline.
All parameters are exposed here for easy tuning and documentation.

The distance weights, gates and thresholds below were tuned for pills of a
few thousand pixels under indoor lighting. Treat them as starting points.
"""

from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

from pill_vision.utils.logging import get_logger

logger = get_logger(__name__)

CONFIG: Dict[str, Any] = {
    # ===========================================================================
    # Operating modes (per-call overridable)
    # ===========================================================================
    "boundary_mode": "edge",          # "edge" (Canny + fill) or "saturation" (HSV S threshold)
    "classifier_mode": "binary",      # "binary" (normal/broken) or "clustering"

    # ===========================================================================
    # Enhancement
    # ===========================================================================
    "contrast": 1.0,                  # Multiplier applied before gamma
    "gamma": 1.2,                     # Exponent of the 256-entry lookup table

    # ===========================================================================
    # Boundary Mask
    # ===========================================================================
    "blur_ksize": 5,                  # Gaussian blur before Canny
    "canny_low": 30,
    "canny_high": 100,
    "edge_dilate_ksize": 3,           # Closes small gaps in the edge map
    "saturation_threshold": 50,       # OpenCV S channel cutoff (0-255)
    "saturation_open_iterations": 1,  # Speckle cleanup after thresholding (0 = off)

    # ===========================================================================
    # Markers
    # ===========================================================================
    "marker_kernel_size": 3,          # Rect structuring element
    "background_dilate_iterations": 3,
    "foreground_threshold": 0.5,      # On the min-max normalized distance field

    # ===========================================================================
    # Feature Extraction
    # ===========================================================================
    "min_area": 200.0,                # Exclusive lower bound (px^2)
    "max_area": 8000.0,               # Exclusive upper bound (px^2)
    "core_erode_ksize": 9,            # Removes the background-blended rim
    "core_min_pixels": 10,            # Fall back to the full mask at or below this
    "saturation_boost": 1.3,          # Compensates enhancement desaturation (clamped to 100)

    # ===========================================================================
    # Classification
    # ===========================================================================
    "circularity_threshold": 0.65,    # normal if circularity > threshold

    # Clustering: distance threshold, hard gates, weights
    "cluster_threshold": 0.15,        # join if distance < threshold
    "gate_area_rel": 0.25,
    "gate_circularity_abs": 0.15,
    "gate_saturation_abs": 25.0,      # Saturation on the 0-100 scale
    "gray_saturation": 15.0,          # Below this hue is unreliable
    "weight_hue": 2.0,
    "weight_hue_gray": 0.2,
    "weight_saturation": 1.0,
    "weight_value": 1.0,
    "weight_circularity": 1.0,
    "weight_area": 1.5,
    "cluster_palette": [
        "#FF5252",  # Red
        "#448AFF",  # Blue
        "#69F0AE",  # Green
        "#FFD740",  # Amber
        "#E040FB",  # Purple
        "#18FFFF",  # Cyan
        "#FF6E40",  # Deep Orange
        "#B2FF59",  # Lime
    ],

    # ===========================================================================
    # Duplicate Merge
    # ===========================================================================
    "merge_distance_px": 30.0,

    # ===========================================================================
    # Annotation (RGB)
    # ===========================================================================
    "annotate": True,
    "color_normal": (0, 255, 0),
    "color_broken": (255, 140, 0),
    "color_id_text": (255, 255, 255),
    "color_label_text": (255, 255, 0),
    "color_area_text": (0, 255, 255),
    "contour_thickness": 2,

    # ===========================================================================
    # Analysis Loop
    # ===========================================================================
    "fps_target": 2.0,                # Analysed frames per second of video
}


def get_config() -> Dict[str, Any]:
    """Return a copy of the configuration dictionary."""
    return CONFIG.copy()


def get(key: str, default: Any = None) -> Any:
    """Get a configuration value by key."""
    return CONFIG.get(key, default)


def merge(overrides: Optional[Dict[str, Any]] = None,
          base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Overlay ``overrides`` on ``base`` (global CONFIG when omitted).

    Returns a new dict; neither input is modified.
    """
    merged = dict(CONFIG if base is None else base)
    if overrides:
        merged.update(overrides)
    return merged


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML config file and merge it over the defaults.

    Args:
        path: YAML file with top-level keys matching CONFIG.

    Returns:
        Merged configuration dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not hold a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(CONFIG))
    if unknown:
        logger.warning(f"Unrecognized config keys in {path.name}: {unknown}")

    # YAML has no tuples; keep colour entries as tuples for OpenCV.
    for key, value in data.items():
        if key.startswith("color_") and isinstance(value, list):
            data[key] = tuple(value)

    logger.info(f"Loaded config from {path}")
    return merge(data)


def save_config(cfg: Dict[str, Any], path: Union[str, Path]) -> None:
    """Write a config dict as YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    serializable = {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in cfg.items()
    }
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(serializable, f, default_flow_style=False, sort_keys=False)
    logger.info(f"Config saved to {path}")
