#!/usr/bin/env python
# PillVision Single Image Analysis

"""
Analyse one still image and write the annotated result.

Usage:
    python scripts/analyze_image.py --input tray.jpg --output tray_annotated.png
    python scripts/analyze_image.py --input tray.jpg --output out.png --mode clustering --boundary saturation
"""

import sys
import json
import argparse
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import cv2
import numpy as np

from pill_vision.core.vision_processor import PillVisionProcessor
from pill_vision.utils import config
from pill_vision.utils.logging import setup_logging


def main():
    parser = argparse.ArgumentParser(description="PillVision single image analysis")
    parser.add_argument("--input", "-i", required=True, help="Input image")
    parser.add_argument("--output", "-o", required=True, help="Annotated output image")
    parser.add_argument("--config", "-c", default=None, help="YAML config file")
    parser.add_argument("--mode", choices=["binary", "clustering"], default=None)
    parser.add_argument("--boundary", choices=["edge", "saturation"], default=None)
    parser.add_argument("--gamma", type=float, default=None)
    parser.add_argument("--contrast", type=float, default=None)
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    args = parser.parse_args()

    setup_logging()

    frame_bgr = cv2.imread(args.input)
    if frame_bgr is None:
        print(f"Error: Cannot read image: {args.input}")
        return 1
    frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    height, width = frame_rgb.shape[:2]

    cfg = config.load_config(args.config) if args.config else config.get_config()
    overrides = {
        "classifier_mode": args.mode,
        "boundary_mode": args.boundary,
        "gamma": args.gamma,
        "contrast": args.contrast,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    processor = PillVisionProcessor(cfg)
    sink = np.zeros_like(frame_rgb)
    result = processor.process_frame(frame_rgb, sink, width, height, overrides)

    if result.is_empty:
        print("Analysis failed (see log)")
        return 1

    cv2.imwrite(args.output, cv2.cvtColor(sink, cv2.COLOR_RGB2BGR))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.normal_count is not None:
        print(f"Normal: {result.normal_count}  Broken: {result.broken_count}")
    else:
        print(f"Total: {result.total_count}")
        for c in result.clusters:
            print(f"  {c.label}: {c.count} ({c.color_hex})")
    print(f"Processing time: {result.processing_time_ms:.1f} ms")
    return 0


if __name__ == "__main__":
    sys.exit(main())
