# PillVision Annotator

"""
Draws analysis overlays onto a frame and presents it to the output sink.

Per pill:
- Contour outline (status colour, or cluster colour in clustering mode)
- "#id", colour name and "A:<area>" text
- Cluster letter (clustering mode)
- Centroid dot
"""

from typing import List, Optional, Dict, Any, Tuple

import cv2
import numpy as np

from pill_vision.core.errors import CaptureError
from pill_vision.core.models import DetectedObject, PillStatus
from pill_vision.utils import config

Color = Tuple[int, int, int]


def hex_to_rgb(hex_color: str) -> Color:
    """'#RRGGBB' -> (r, g, b)."""
    value = hex_color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected #RRGGBB, got {hex_color!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


class Annotator:
    """
    Paints detected pills onto an RGB canvas.

    Usage:
        annotator = Annotator()
        canvas = annotator.draw(enhanced.copy(), objects, "binary")
        annotator.present(canvas, sink)
    """

    def __init__(self, cfg: Optional[Dict[str, Any]] = None):
        self._cfg = cfg or config.CONFIG

        self._color_normal = tuple(self._cfg.get("color_normal", (0, 255, 0)))
        self._color_broken = tuple(self._cfg.get("color_broken", (255, 140, 0)))
        self._color_id = tuple(self._cfg.get("color_id_text", (255, 255, 255)))
        self._color_label = tuple(self._cfg.get("color_label_text", (255, 255, 0)))
        self._color_area = tuple(self._cfg.get("color_area_text", (0, 255, 255)))
        self._thickness = int(self._cfg.get("contour_thickness", 2))

    # ========================================================================
    # Rendering
    # ========================================================================

    def draw(self, canvas_rgb: np.ndarray, objects: List[DetectedObject],
             mode: str = "binary") -> np.ndarray:
        """
        Paint overlays onto ``canvas_rgb`` in place.

        Returns:
            The same canvas.
        """
        for obj in objects:
            color = self._outline_color(obj, mode)
            if obj.contour is not None:
                cv2.drawContours(canvas_rgb, [obj.contour], -1, color, self._thickness)

        for obj in objects:
            self._draw_text(canvas_rgb, obj, mode)

        return canvas_rgb

    def _outline_color(self, obj: DetectedObject, mode: str) -> Color:
        if mode == "clustering" and obj.cluster_color:
            return hex_to_rgb(obj.cluster_color)
        if obj.status is PillStatus.BROKEN:
            return self._color_broken
        return self._color_normal

    def _draw_text(self, canvas: np.ndarray, obj: DetectedObject, mode: str) -> None:
        x, y = int(round(obj.x)), int(round(obj.y))
        font = cv2.FONT_HERSHEY_SIMPLEX

        cv2.putText(canvas, f"#{obj.id}", (x - 15, y), font, 0.5, self._color_id, 1)
        cv2.putText(canvas, obj.color_label, (x - 20, y + 15), font, 0.5, self._color_label, 1)
        cv2.putText(canvas, f"A:{round(obj.area)}", (x - 20, y + 30), font, 0.4, self._color_area, 1)

        if mode == "clustering" and obj.cluster_label:
            cluster_color = hex_to_rgb(obj.cluster_color) if obj.cluster_color else self._color_id
            cv2.putText(canvas, obj.cluster_label, (x - 5, y - 15), font, 0.6, cluster_color, 2)

        cv2.circle(canvas, (x, y), 2, self._color_area, -1)

    # ========================================================================
    # Output
    # ========================================================================

    def present(self, canvas_rgb: np.ndarray, sink: np.ndarray) -> None:
        """
        Copy the annotated canvas into the top-left of ``sink``.

        The sink may be RGB or RGBA and at least as large as the canvas.
        """
        if sink is None:
            raise CaptureError("No output sink")

        h, w = canvas_rgb.shape[:2]
        if sink.ndim != 3 or sink.shape[0] < h or sink.shape[1] < w:
            raise CaptureError(f"Output sink {sink.shape} cannot hold a {w}x{h} frame")

        if sink.shape[2] == 4:
            sink[:h, :w] = cv2.cvtColor(canvas_rgb, cv2.COLOR_RGB2RGBA)
        elif sink.shape[2] == 3:
            sink[:h, :w] = canvas_rgb
        else:
            raise CaptureError(f"Unsupported sink channel count: {sink.shape[2]}")
