"""
Pytest configuration and fixtures for PillVision tests.

Frames are synthetic: filled pills drawn with OpenCV on a flat background,
in RGB order like every frame the processor receives.
"""

import pytest
import sys
from pathlib import Path

import cv2
import numpy as np

# Add src to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

FRAME_W = 320
FRAME_H = 240
BACKGROUND = (20, 20, 20)
YELLOW = (230, 200, 40)
BLUE = (60, 110, 230)

# Plain enhancement keeps sampled colours equal to the drawn ones.
NEUTRAL = {"gamma": 1.0, "contrast": 1.0}


def draw_pills(pills, size=(FRAME_H, FRAME_W), background=BACKGROUND) -> np.ndarray:
    """
    Args:
        pills: Iterable of (cx, cy, radius, rgb).

    Returns:
        uint8 RGB frame.
    """
    frame = np.zeros((size[0], size[1], 3), dtype=np.uint8)
    frame[:] = background
    for cx, cy, r, color in pills:
        cv2.circle(frame, (cx, cy), r, color, -1)
    return frame


@pytest.fixture
def three_pill_frame():
    """Three identical, well separated yellow pills."""
    return draw_pills([
        (70, 80, 20, YELLOW),
        (160, 160, 20, YELLOW),
        (250, 80, 20, YELLOW),
    ])


@pytest.fixture
def two_color_frame():
    """Two yellow and two blue pills of the same size."""
    return draw_pills([
        (60, 60, 20, YELLOW),
        (200, 60, 20, BLUE),
        (60, 170, 20, BLUE),
        (200, 170, 20, YELLOW),
    ])


@pytest.fixture
def fragment_frame():
    """A single elongated fragment (ellipse 80 x 20)."""
    frame = draw_pills([])
    cv2.ellipse(frame, (160, 120), (40, 10), 0, 0, 360, YELLOW, -1)
    return frame


@pytest.fixture
def blank_frame():
    return draw_pills([])


@pytest.fixture
def sink():
    return np.zeros((FRAME_H, FRAME_W, 3), dtype=np.uint8)
