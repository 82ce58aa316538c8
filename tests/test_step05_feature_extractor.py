"""
Unit tests for STEP-05: FeatureExtractor

Tests colour conversion, shape measures and region rejection.
"""

import math

import cv2
import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pill_vision.core.feature_extractor import (
    FeatureExtractor, circularity, log_hu, name_color, rgb_to_hsv,
)
from conftest import draw_pills, YELLOW, BLUE


def make_labels(shapes, size=(200, 300)):
    """
    Label map with background 1 and one label per shape.

    Args:
        shapes: Iterable of (label, draw_fn) where draw_fn paints 255 into a mask.
    """
    labels = np.ones(size, dtype=np.int32)
    for label, draw in shapes:
        mask = np.zeros(size, dtype=np.uint8)
        draw(mask)
        labels[mask > 0] = label
    return labels


def circle(cx, cy, r):
    return lambda m: cv2.circle(m, (cx, cy), r, 255, -1)


def rect(x0, y0, x1, y1):
    return lambda m: cv2.rectangle(m, (x0, y0), (x1, y1), 255, -1)


class TestRgbToHsv:
    """Tests for the analytic colour conversion."""

    def test_primaries(self):
        assert rgb_to_hsv(255, 0, 0) == pytest.approx((0.0, 100.0, 100.0))
        assert rgb_to_hsv(0, 255, 0) == pytest.approx((120.0, 100.0, 100.0))
        assert rgb_to_hsv(0, 0, 255) == pytest.approx((240.0, 100.0, 100.0))

    def test_gray_has_no_saturation(self):
        h, s, v = rgb_to_hsv(128, 128, 128)
        assert h == 0.0
        assert s == 0.0
        assert v == pytest.approx(50.2, abs=0.1)

    def test_black(self):
        assert rgb_to_hsv(0, 0, 0) == (0.0, 0.0, 0.0)

    def test_hue_wraps_for_magenta_reds(self):
        h, _, _ = rgb_to_hsv(255, 0, 40)
        assert 340 < h < 360

    def test_saturation_boost_clamped(self):
        _, s, _ = rgb_to_hsv(200, 100, 100, saturation_boost=1.3)
        assert s == pytest.approx(65.0)
        _, s, _ = rgb_to_hsv(255, 0, 0, saturation_boost=1.3)
        assert s == 100.0

    def test_value_is_max_channel(self):
        _, _, v = rgb_to_hsv(51, 102, 204)
        assert v == pytest.approx(80.0)


class TestNameColor:

    def test_low_saturation_names(self):
        assert name_color(0, 5, 90) == "white"
        assert name_color(0, 5, 50) == "gray"
        assert name_color(0, 5, 10) == "black"

    def test_hue_bands(self):
        assert name_color(5, 80, 80) == "red"
        assert name_color(350, 80, 80) == "red"
        assert name_color(30, 80, 80) == "orange"
        assert name_color(55, 80, 80) == "yellow"
        assert name_color(120, 80, 80) == "green"
        assert name_color(220, 80, 80) == "blue"
        assert name_color(290, 80, 80) == "purple"


class TestShapeMeasures:

    def test_circularity_of_circle(self):
        """Test area 1000 with perimeter 2*sqrt(pi*1000) is a perfect circle."""
        perimeter = 2 * math.sqrt(math.pi * 1000)
        assert circularity(1000, perimeter) == pytest.approx(1.0)

    def test_circularity_near_one(self):
        assert circularity(1000, 112) == pytest.approx(1.0, abs=0.01)

    def test_circularity_zero_perimeter(self):
        assert circularity(100, 0) == 0.0

    def test_log_hu_of_disc(self):
        """Test hu0 of a disc is 1/(2*pi)."""
        assert log_hu(1 / (2 * math.pi)) == pytest.approx(-math.log10(1 / (2 * math.pi)))

    def test_log_hu_zero(self):
        assert log_hu(0.0) == 0.0


class TestExtract:
    """Tests for FeatureExtractor.extract."""

    def test_single_pill(self):
        frame = draw_pills([(100, 100, 20, YELLOW)], size=(200, 300))
        labels = make_labels([(2, circle(100, 100, 20))])

        objects = FeatureExtractor().extract(labels, frame)

        assert len(objects) == 1
        obj = objects[0]
        assert obj.id == 2
        assert obj.x == pytest.approx(100, abs=0.5)
        assert obj.y == pytest.approx(100, abs=0.5)
        assert 1100 < obj.area < 1300
        assert 0.8 < obj.circularity <= 1.05
        assert obj.convex_area >= obj.area
        assert obj.contour is not None

    def test_core_colour_sampled(self):
        frame = draw_pills([(100, 100, 20, BLUE)], size=(200, 300))
        labels = make_labels([(2, circle(100, 100, 20))])

        obj = FeatureExtractor().extract(labels, frame)[0]

        assert obj.rgb == pytest.approx(BLUE)
        assert obj.color_label == "blue"
        h, s, v = obj.hsv
        assert 215 < h < 230
        assert s == pytest.approx(min(100.0, 170 / 230 * 100 * 1.3))
        assert v == pytest.approx(230 / 255 * 100)

    def test_core_ignores_rim(self):
        """Test a differently coloured rim does not leak into the mean."""
        frame = draw_pills([(100, 100, 20, (255, 0, 0)), (100, 100, 17, YELLOW)],
                           size=(200, 300))
        labels = make_labels([(2, circle(100, 100, 20))])

        obj = FeatureExtractor().extract(labels, frame)[0]
        assert obj.rgb == pytest.approx(YELLOW)

    def test_thin_region_falls_back_to_full_mask(self):
        """Test a sliver that erodes away is sampled over its full mask."""
        frame = draw_pills([], size=(200, 300))
        cv2.rectangle(frame, (50, 100), (110, 105), YELLOW, -1)
        labels = make_labels([(2, rect(50, 100, 110, 105))])

        obj = FeatureExtractor().extract(labels, frame)[0]
        assert obj.rgb == pytest.approx(YELLOW)

    def test_radius_derived_from_area(self):
        frame = draw_pills([(100, 100, 20, YELLOW)], size=(200, 300))
        labels = make_labels([(2, circle(100, 100, 20))])
        obj = FeatureExtractor().extract(labels, frame)[0]
        assert obj.radius == pytest.approx(math.sqrt(obj.area / math.pi))

    def test_small_region_excluded(self):
        """Test a speck with area around 50 is filtered out."""
        frame = draw_pills([(100, 100, 4, YELLOW)], size=(200, 300))
        labels = make_labels([(2, circle(100, 100, 4))])
        assert FeatureExtractor().extract(labels, frame) == []

    def test_large_region_excluded(self):
        frame = draw_pills([], size=(200, 300))
        labels = make_labels([(2, rect(10, 10, 150, 150))])
        assert FeatureExtractor().extract(labels, frame) == []

    def test_area_bounds_from_config(self):
        frame = draw_pills([(100, 100, 4, YELLOW)], size=(200, 300))
        labels = make_labels([(2, circle(100, 100, 4))])
        extractor = FeatureExtractor({"min_area": 10.0, "max_area": 8000.0})
        assert len(extractor.extract(labels, frame)) == 1

    def test_missing_labels_skipped(self):
        """Test label numbers with no pixels are skipped silently."""
        frame = draw_pills([(60, 100, 20, YELLOW), (200, 100, 20, YELLOW)], size=(200, 300))
        labels = make_labels([(2, circle(60, 100, 20)), (5, circle(200, 100, 20))])

        objects = FeatureExtractor().extract(labels, frame)
        assert [o.id for o in objects] == [2, 5]

    def test_boundary_pixels_ignored(self):
        frame = draw_pills([(100, 100, 20, YELLOW)], size=(200, 300))
        labels = make_labels([(2, circle(100, 100, 20))])
        labels[0, :] = -1
        assert len(FeatureExtractor().extract(labels, frame)) == 1

    def test_elongated_region_low_circularity(self):
        frame = draw_pills([], size=(200, 300))
        labels = make_labels([(2, lambda m: cv2.ellipse(m, (150, 100), (40, 10), 0, 0, 360, 255, -1))])
        obj = FeatureExtractor().extract(labels, frame)[0]
        assert obj.circularity < 0.65


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
