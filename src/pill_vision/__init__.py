"""
PillVision Package

Per-frame pill counting and grouping for live or recorded video.

Pipeline (one frame, strictly forward):
- Enhance: contrast scaling + gamma lookup table
- Mask: edge-filled or saturation-threshold object interiors
- Markers: distance-transform seeds for watershed
- Segment: marker-controlled watershed
- Extract: per-region shape and core-colour features
- Merge: collapse split detections
- Classify: normal/broken status or appearance clusters
"""

__version__ = "1.0.0"
__author__ = "PillVision Team"
