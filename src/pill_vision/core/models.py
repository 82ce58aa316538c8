import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np


class PillStatus(str, Enum):
    """Binary-mode verdict for a detected pill."""
    NORMAL = "normal"
    BROKEN = "broken"


@dataclass
class Region:
    """Measurements of one watershed label within a single frame."""
    label: int
    contour: np.ndarray = field(repr=False)
    area: float                 # Contour integral (px^2)
    perimeter: float            # Closed arc length (px)
    circularity: float          # 4*pi*area / perimeter^2
    cx: float
    cy: float
    convex_area: float
    hu_log: float               # -sign(hu0) * log10(|hu0|)
    mean_rgb: Tuple[float, float, float]


@dataclass
class DetectedObject:
    """A single detected pill. ``radius`` is always derived from ``area``."""
    id: int                                 # Source watershed label
    x: float                                # Centroid X (pixels)
    y: float                                # Centroid Y (pixels)
    area: float
    perimeter: float
    circularity: float
    convex_area: float
    hu_log: float
    rgb: Tuple[float, float, float]
    hsv: Tuple[float, float, float]         # H degrees, S and V in 0-100
    color_label: str = ""
    status: Optional[PillStatus] = None
    cluster_label: Optional[str] = None
    cluster_color: Optional[str] = None     # "#RRGGBB"
    merged: bool = False                    # Already passed through the merger
    contour: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    @property
    def radius(self) -> float:
        return math.sqrt(self.area / math.pi)

    @property
    def solidity(self) -> float:
        return self.area / self.convex_area if self.convex_area > 0 else 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("contour")
        data["status"] = self.status.value if self.status else None
        data["radius"] = self.radius
        return data

    @classmethod
    def from_dict(cls, data: dict):
        data = dict(data)
        data.pop("radius", None)
        data.pop("contour", None)
        if data.get("status") is not None:
            data["status"] = PillStatus(data["status"])
        data["rgb"] = tuple(data["rgb"])
        data["hsv"] = tuple(data["hsv"])
        return cls(**data)


@dataclass
class FeatureVector:
    """The appearance features compared by the clusterer."""
    hue: float          # Degrees [0, 360)
    saturation: float   # 0-100
    value: float        # 0-100
    circularity: float
    area: float

    @classmethod
    def of(cls, obj: DetectedObject) -> "FeatureVector":
        h, s, v = obj.hsv
        return cls(hue=h, saturation=s, value=v,
                   circularity=obj.circularity, area=obj.area)


@dataclass
class Cluster:
    """
    Appearance group built within one frame.

    ``representative`` is the first admitted member's features; it is never
    re-centred as members join.
    """
    label: str
    color: str
    representative: FeatureVector
    members: List[DetectedObject] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.members)


@dataclass
class ClusterSummary:
    label: str
    count: int
    color_hex: str

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        return cls(**data)


@dataclass
class AnalysisResult:
    """
    Output of one ``process_frame`` call.

    Only the fields of the active mode are set; a failed frame leaves every
    field as ``None`` (see ``is_empty``).
    """
    normal_count: Optional[int] = None
    broken_count: Optional[int] = None
    total_count: Optional[int] = None
    clusters: Optional[List[ClusterSummary]] = None
    processing_time_ms: Optional[float] = None
    objects: List[DetectedObject] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (self.processing_time_ms is None
                and self.normal_count is None
                and self.total_count is None)

    def to_dict(self) -> dict:
        """Partial dict: keys of fields that are unset are omitted."""
        data = {}
        if self.normal_count is not None:
            data["normal_count"] = self.normal_count
        if self.broken_count is not None:
            data["broken_count"] = self.broken_count
        if self.total_count is not None:
            data["total_count"] = self.total_count
        if self.clusters is not None:
            data["clusters"] = [c.to_dict() for c in self.clusters]
        if self.processing_time_ms is not None:
            data["processing_time_ms"] = self.processing_time_ms
        if self.objects:
            data["objects"] = [o.to_dict() for o in self.objects]
        return data

    @classmethod
    def from_dict(cls, data: dict):
        clusters = data.get("clusters")
        return cls(
            normal_count=data.get("normal_count"),
            broken_count=data.get("broken_count"),
            total_count=data.get("total_count"),
            clusters=[ClusterSummary.from_dict(c) for c in clusters] if clusters is not None else None,
            processing_time_ms=data.get("processing_time_ms"),
            objects=[DetectedObject.from_dict(o) for o in data.get("objects", [])],
        )


@dataclass
class FrameAnalysis:
    """Analysis result of one video frame, as stored by the results cache."""
    frame_id: int
    timestamp: float
    result: AnalysisResult

    def to_dict(self):
        return {
            "frame_id": self.frame_id,
            "timestamp": self.timestamp,
            "result": self.result.to_dict()
        }

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            frame_id=data["frame_id"],
            timestamp=data["timestamp"],
            result=AnalysisResult.from_dict(data.get("result", {}))
        )


@dataclass
class VideoMetadata:
    path: str
    width: int
    height: int
    fps: float
    total_frames: int
    duration: float
    rotation: int = 0
