# PillVision Results Cache

"""
Storage for per-frame analysis results of a video run.

Hybrid approach:
- During a run: append JSONL (crash-tolerant)
- On completion: export structured JSON with a run summary
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional, List

from pill_vision.core.models import AnalysisResult, FrameAnalysis
from pill_vision.utils.logging import get_logger

logger = get_logger(__name__)

CACHE_VERSION = "1.0"


class ResultsCache:
    """
    Hybrid cache: JSONL streaming + JSON export.
    """

    def __init__(self, cache_path: str):
        """
        Args:
            cache_path: Path for the final JSON file. The JSONL stream sits
                        next to it with a .jsonl suffix.
        """
        self._path = Path(cache_path)
        self._jsonl_path = self._path.with_suffix(".jsonl")

        self._frames: Dict[int, FrameAnalysis] = {}
        self._metadata: Dict[str, Any] = {}
        self._config: Dict[str, Any] = {}
        self._summary: Dict[str, Any] = {}
        self._is_ready = False

        self._jsonl_handle = None

    # =========================================================================
    # Writing (during a run)
    # =========================================================================

    def start(self, metadata: Optional[Dict[str, Any]] = None,
              cfg: Optional[Dict[str, Any]] = None) -> None:
        """Begin a run, truncating any previous stream."""
        self._metadata = metadata or {}
        self._config = _jsonable(cfg or {})
        self._frames = {}
        self._summary = {}
        self._is_ready = False

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._jsonl_handle = open(self._jsonl_path, "w", encoding="utf-8")

    def append(self, frame: FrameAnalysis) -> None:
        if self._jsonl_handle is None:
            raise RuntimeError("Call start() first")

        self._frames[frame.frame_id] = frame

        line = json.dumps(frame.to_dict(), separators=(",", ":"))
        self._jsonl_handle.write(line + "\n")
        self._jsonl_handle.flush()

    def finalize(self, summary: Optional[Dict[str, Any]] = None) -> None:
        """Close the stream and export the structured JSON file."""
        if self._jsonl_handle:
            self._jsonl_handle.close()
            self._jsonl_handle = None

        self._summary = summary or {}
        cache_data = {
            "version": CACHE_VERSION,
            "metadata": self._metadata,
            "config": self._config,
            "summary": self._summary,
            "frames": {
                str(fid): fa.to_dict() for fid, fa in sorted(self._frames.items())
            },
        }

        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(cache_data, f, indent=2)

        try:
            self._jsonl_path.unlink()
        except OSError:
            pass

        self._is_ready = True
        logger.info(f"Results written to {self._path} ({len(self._frames)} frames)")

    # =========================================================================
    # Reading
    # =========================================================================

    def load(self) -> bool:
        """Load the JSON export, or a partial JSONL stream if the run died."""
        if self._path.exists():
            return self._load_json()
        if self._jsonl_path.exists():
            return self._load_jsonl()
        return False

    def _load_json(self) -> bool:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)

            self._metadata = data.get("metadata", {})
            self._config = data.get("config", {})
            self._summary = data.get("summary", {})
            self._frames = {
                int(fid): FrameAnalysis.from_dict(fa)
                for fid, fa in data.get("frames", {}).items()
            }
            self._is_ready = True
            return True
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load JSON cache: {e}")
            return False

    def _load_jsonl(self) -> bool:
        try:
            self._frames = {}
            with open(self._jsonl_path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        fa = FrameAnalysis.from_dict(json.loads(line))
                        self._frames[fa.frame_id] = fa

            self._is_ready = len(self._frames) > 0
            return self._is_ready
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load JSONL cache: {e}")
            return False

    def get_frame(self, frame_id: int) -> Optional[FrameAnalysis]:
        return self._frames.get(frame_id)

    def get_result(self, frame_id: int) -> Optional[AnalysisResult]:
        fa = self._frames.get(frame_id)
        return fa.result if fa else None

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    @property
    def frame_ids(self) -> List[int]:
        return sorted(self._frames.keys())

    @property
    def metadata(self) -> Dict[str, Any]:
        return self._metadata

    @property
    def summary(self) -> Dict[str, Any]:
        return self._summary


def _jsonable(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Config copy with tuples turned into lists."""
    return {k: list(v) if isinstance(v, tuple) else v for k, v in cfg.items()}
