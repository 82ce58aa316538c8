#!/usr/bin/env python
# PillVision CLI Analysis Script

"""
Command-line interface for analysing a recorded pill video.

Usage:
    python scripts/run_analysis.py --input tray.mp4 --output results.json
    python scripts/run_analysis.py --input tray.mp4 --output results.json --mode clustering
    python scripts/run_analysis.py --input tray.mp4 --output results.json --config configs/sample.config.yaml
    python scripts/run_analysis.py --input tray.mp4 --output results.json --snapshot-dir snapshots
"""

import sys
import argparse
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import cv2

from pill_vision.core.frame_loader import FrameLoader
from pill_vision.core.orchestrator import AnalysisOrchestrator
from pill_vision.core.results_cache import ResultsCache
from pill_vision.core.vision_processor import PillVisionProcessor
from pill_vision.utils import config
from pill_vision.utils.logging import setup_logging


def progress_bar(current: int, total: int, width: int = 40) -> str:
    """Generate a progress bar string."""
    pct = current / total if total > 0 else 0
    filled = int(width * pct)
    bar = "█" * filled + "░" * (width - filled)
    return f"[{bar}] {current}/{total} ({pct*100:.1f}%)"


def build_config(args: argparse.Namespace) -> dict:
    """Defaults <- YAML file <- explicit CLI flags."""
    cfg = config.load_config(args.config) if args.config else config.get_config()

    overrides = {
        "classifier_mode": args.mode,
        "boundary_mode": args.boundary,
        "gamma": args.gamma,
        "contrast": args.contrast,
        "fps_target": args.fps_target,
    }
    cfg.update({k: v for k, v in overrides.items() if v is not None})
    return cfg


def run_analysis(video_path: str, output_path: str, cfg: dict,
                 limit: int = None, snapshot_dir: str = None) -> bool:
    """
    Run the analysis loop on a video.

    Returns:
        True if at least one frame was analysed.
    """
    print("=" * 60)
    print("PillVision Analysis")
    print("=" * 60)
    print(f"Input:    {video_path}")
    print(f"Output:   {output_path}")
    print(f"Mode:     {cfg['classifier_mode']} / {cfg['boundary_mode']}")
    print(f"Enhance:  contrast={cfg['contrast']} gamma={cfg['gamma']}")
    print(f"Rate:     {cfg['fps_target']} analysed fps")
    if limit:
        print(f"Limit:    {limit} frames")
    print("=" * 60)

    processor = PillVisionProcessor(cfg)
    if not processor.is_ready():
        print("Error: OpenCV engine is not available")
        return False

    snapshots = Path(snapshot_dir) if snapshot_dir else None
    if snapshots:
        snapshots.mkdir(parents=True, exist_ok=True)

    def on_progress(current, total):
        print(f"\r{progress_bar(current, total)}", end="", flush=True)

    def on_frame(frame_idx, annotated_rgb, result):
        if snapshots:
            path = snapshots / f"frame_{frame_idx:06d}.png"
            cv2.imwrite(str(path), cv2.cvtColor(annotated_rgb, cv2.COLOR_RGB2BGR))

    with FrameLoader(video_path) as loader:
        orchestrator = AnalysisOrchestrator(loader, processor, ResultsCache(output_path),
                                            fps_target=cfg["fps_target"])
        summary = orchestrator.run(progress_callback=on_progress,
                                   frame_callback=on_frame, limit=limit)

    print()  # Newline after progress bar

    print(f"\nSummary ({summary.status}):")
    print(f"  Frames read:        {summary.frames_seen}")
    print(f"  Frames analysed:    {summary.frames_analysed}")
    print(f"  Frames failed:      {summary.frames_failed}")
    print(f"  Mean processing:    {summary.mean_processing_ms:.1f} ms")
    print(f"  Analysis rate:      {summary.analysis_fps:.1f} fps")

    cache = ResultsCache(output_path)
    if cache.load() and cache.frame_ids:
        last = cache.get_result(cache.frame_ids[-1])
        if last.normal_count is not None:
            print(f"  Last frame:         {last.normal_count} normal, {last.broken_count} broken")
        elif last.total_count is not None:
            groups = ", ".join(f"{c.label}={c.count}" for c in last.clusters or [])
            print(f"  Last frame:         {last.total_count} pills ({groups})")

    return summary.frames_analysed > 0


def main():
    parser = argparse.ArgumentParser(description="PillVision Analysis CLI")
    parser.add_argument("--input", "-i", required=True, help="Input video file")
    parser.add_argument("--output", "-o", required=True, help="Output results JSON")
    parser.add_argument("--config", "-c", default=None, help="YAML config file")
    parser.add_argument("--mode", choices=["binary", "clustering"], default=None,
                        help="Classifier mode")
    parser.add_argument("--boundary", choices=["edge", "saturation"], default=None,
                        help="Boundary mask strategy")
    parser.add_argument("--gamma", type=float, default=None, help="Gamma exponent")
    parser.add_argument("--contrast", type=float, default=None, help="Contrast multiplier")
    parser.add_argument("--fps-target", type=float, default=None,
                        help="Analysed frames per second of video")
    parser.add_argument("--limit", "-l", type=int, default=None, help="Frame limit")
    parser.add_argument("--snapshot-dir", default=None,
                        help="Save annotated frames to this directory")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", default=None, help="Also log to this file")

    args = parser.parse_args()
    setup_logging(level=args.log_level, log_file=args.log_file)

    if not Path(args.input).exists():
        print(f"Error: Input file not found: {args.input}")
        return 1

    cfg = build_config(args)
    success = run_analysis(args.input, args.output, cfg,
                           limit=args.limit, snapshot_dir=args.snapshot_dir)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
