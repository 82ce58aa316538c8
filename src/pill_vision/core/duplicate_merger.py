# PillVision Duplicate Merger

"""
Collapses detections whose centroids are closer than a fixed distance.

Watershed occasionally splits one pill into two labels. Objects are
processed largest radius first; each survivor absorbs every unprocessed
object within the distance and moves to the mean of their positions.
"""

import math
from dataclasses import replace
from typing import List, Optional

from pill_vision.core.models import DetectedObject
from pill_vision.utils import config


class DuplicateMerger:
    """
    Greedy centroid merge.

    Survivors are returned as copies flagged ``merged=True``; flagged objects
    pass through later merges unchanged, so merging is idempotent.
    """

    def __init__(self, distance_px: Optional[float] = None):
        if distance_px is None:
            distance_px = config.get("merge_distance_px", 30.0)
        self._distance = float(distance_px)

    @property
    def distance_px(self) -> float:
        return self._distance

    def merge(self, objects: List[DetectedObject]) -> List[DetectedObject]:
        """
        Args:
            objects: Detections of one frame. Not modified.

        Returns:
            One object per merged group, largest radius first.
        """
        ordered = sorted(objects, key=lambda o: o.radius, reverse=True)
        processed = [False] * len(ordered)
        result = []

        for i, current in enumerate(ordered):
            if processed[i]:
                continue
            processed[i] = True

            if current.merged:
                result.append(current)
                continue

            total_x, total_y, count = current.x, current.y, 1

            for j in range(i + 1, len(ordered)):
                other = ordered[j]
                if processed[j] or other.merged:
                    continue

                dist = math.hypot(current.x - other.x, current.y - other.y)
                if dist < self._distance:
                    total_x += other.x
                    total_y += other.y
                    count += 1
                    processed[j] = True

            result.append(replace(
                current,
                x=total_x / count,
                y=total_y / count,
                merged=True,
            ))

        return result
