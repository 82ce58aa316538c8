# PillVision Classifier

"""
Status classification and appearance clustering of detected pills.

Binary mode:     normal if circularity > threshold, else broken.
Clustering mode: greedy single-pass grouping on a weighted feature distance.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Sequence, Tuple

from pill_vision.core.models import (
    Cluster, DetectedObject, FeatureVector, PillStatus,
)
from pill_vision.utils import config
from pill_vision.utils.logging import get_logger

logger = get_logger(__name__)


class StatusClassifier:
    """Normal/broken verdict from circularity alone."""

    def __init__(self, threshold: Optional[float] = None):
        if threshold is None:
            threshold = config.get("circularity_threshold", 0.65)
        self._threshold = float(threshold)

    @property
    def threshold(self) -> float:
        return self._threshold

    def status_of(self, circularity: float) -> PillStatus:
        return PillStatus.NORMAL if circularity > self._threshold else PillStatus.BROKEN

    def classify(self, objects: List[DetectedObject]) -> Tuple[int, int]:
        """
        Set ``status`` on every object.

        Returns:
            (normal_count, broken_count)
        """
        normal = 0
        for obj in objects:
            obj.status = self.status_of(obj.circularity)
            if obj.status is PillStatus.NORMAL:
                normal += 1
        return normal, len(objects) - normal


@dataclass
class DistanceWeights:
    hue: float = 2.0
    hue_gray: float = 0.2
    saturation: float = 1.0
    value: float = 1.0
    circularity: float = 1.0
    area: float = 1.5

    @classmethod
    def from_config(cls, cfg: dict) -> "DistanceWeights":
        return cls(
            hue=float(cfg.get("weight_hue", 2.0)),
            hue_gray=float(cfg.get("weight_hue_gray", 0.2)),
            saturation=float(cfg.get("weight_saturation", 1.0)),
            value=float(cfg.get("weight_value", 1.0)),
            circularity=float(cfg.get("weight_circularity", 1.0)),
            area=float(cfg.get("weight_area", 1.5)),
        )


@dataclass
class Gates:
    """Per-feature limits beyond which a cluster is skipped outright."""
    area_rel: float = 0.25
    circularity_abs: float = 0.15
    saturation_abs: float = 25.0

    @classmethod
    def from_config(cls, cfg: dict) -> "Gates":
        return cls(
            area_rel=float(cfg.get("gate_area_rel", 0.25)),
            circularity_abs=float(cfg.get("gate_circularity_abs", 0.15)),
            saturation_abs=float(cfg.get("gate_saturation_abs", 25.0)),
        )


def hue_distance(h1: float, h2: float) -> float:
    """Circular hue distance in degrees, wrapped so the maximum is 180."""
    d = abs(h1 - h2) % 360.0
    return min(d, 360.0 - d)


def relative_area_difference(a1: float, a2: float) -> float:
    largest = max(a1, a2)
    return abs(a1 - a2) / largest if largest > 0 else 0.0


def passes_gates(a: FeatureVector, b: FeatureVector, gates: Gates) -> bool:
    """Cheap rejection before the weighted metric."""
    if relative_area_difference(a.area, b.area) > gates.area_rel:
        return False
    if abs(a.circularity - b.circularity) > gates.circularity_abs:
        return False
    if abs(a.saturation - b.saturation) > gates.saturation_abs:
        return False
    return True


def weighted_distance(a: FeatureVector, b: FeatureVector,
                      weights: DistanceWeights,
                      gray_saturation: float = 15.0) -> float:
    """
    Weighted mean of per-feature distances, each in [0, 1].

    Hue gets the low ``hue_gray`` weight when either side is near-grayscale,
    so the divisor is the sum of the weights actually used.
    """
    near_gray = min(a.saturation, b.saturation) < gray_saturation
    w_hue = weights.hue_gray if near_gray else weights.hue

    terms = (
        (w_hue, hue_distance(a.hue, b.hue) / 180.0),
        (weights.saturation, abs(a.saturation - b.saturation) / 100.0),
        (weights.value, abs(a.value - b.value) / 100.0),
        (weights.circularity, min(1.0, abs(a.circularity - b.circularity))),
        (weights.area, relative_area_difference(a.area, b.area)),
    )

    total_weight = sum(w for w, _ in terms)
    if total_weight <= 0:
        return 0.0
    return sum(w * d for w, d in terms) / total_weight


def cluster_label(index: int) -> str:
    """A..Z, then A1..Z1, A2.. for very crowded frames."""
    letter = chr(ord("A") + index % 26)
    cycle = index // 26
    return letter if cycle == 0 else f"{letter}{cycle}"


class ClusteringStrategy(ABC):
    """Groups one frame's detected objects into appearance clusters."""

    @abstractmethod
    def assign(self, objects: Sequence[DetectedObject]) -> List[Cluster]:
        """Set ``cluster_label``/``cluster_color`` on each object and return the clusters."""


class GreedyClusterer(ClusteringStrategy):
    """
    Online, order-dependent, single-pass clustering.

    Each object is compared with every existing cluster's representative
    (its first member). It joins the closest cluster when that distance is
    strictly below the threshold; otherwise it starts a new cluster with the
    next palette colour and letter. Representatives are never re-centred.
    """

    def __init__(self, cfg: Optional[Dict[str, Any]] = None,
                 palette: Optional[List[str]] = None):
        self._cfg = cfg or config.CONFIG

        self._threshold = float(self._cfg.get("cluster_threshold", 0.15))
        self._gray_saturation = float(self._cfg.get("gray_saturation", 15.0))
        self._weights = DistanceWeights.from_config(self._cfg)
        self._gates = Gates.from_config(self._cfg)

        if palette is None:
            palette = self._cfg.get("cluster_palette") or config.get("cluster_palette")
        if not palette:
            raise ValueError("Cluster palette must contain at least one colour")
        self._palette = list(palette)

    @property
    def threshold(self) -> float:
        return self._threshold

    def assign(self, objects: Sequence[DetectedObject]) -> List[Cluster]:
        clusters: List[Cluster] = []

        for obj in objects:
            features = FeatureVector.of(obj)
            best = self._best_match(features, clusters)

            if best is None:
                index = len(clusters)
                best = Cluster(
                    label=cluster_label(index),
                    color=self._palette[index % len(self._palette)],
                    representative=features,
                )
                clusters.append(best)

            best.members.append(obj)
            obj.cluster_label = best.label
            obj.cluster_color = best.color

        logger.debug(f"{len(objects)} pills grouped into {len(clusters)} clusters")
        return clusters

    def _best_match(self, features: FeatureVector,
                    clusters: List[Cluster]) -> Optional[Cluster]:
        best_cluster = None
        best_distance = float("inf")

        for cluster in clusters:
            if not passes_gates(features, cluster.representative, self._gates):
                continue

            d = weighted_distance(features, cluster.representative,
                                  self._weights, self._gray_saturation)
            if d < best_distance:
                best_distance = d
                best_cluster = cluster

        if best_cluster is not None and best_distance < self._threshold:
            return best_cluster
        return None
