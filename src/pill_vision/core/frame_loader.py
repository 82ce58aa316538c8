# PillVision Frame Loader

"""
Recorded-video frame source built on PyAV.

Frames come out as RGB uint8 arrays, rotated according to the stream's
'rotate' metadata (phone recordings), with PTS-based frame indices.
"""

from pathlib import Path
from typing import Iterator, Tuple, Optional

import av
import numpy as np

from pill_vision.core.models import VideoMetadata


class FrameLoader:
    """
    Video decoder yielding RGB frames.

    Usage:
        with FrameLoader("tray.mp4") as loader:
            for frame_idx, frame_rgb in loader.iter_frames():
                processor.process_frame(frame_rgb, sink, loader.width, loader.height)
    """

    def __init__(self, video_path: str):
        """
        Raises:
            FileNotFoundError: If the video file doesn't exist.
        """
        self._path = Path(video_path)
        if not self._path.exists():
            raise FileNotFoundError(f"Video not found: {video_path}")

        self._container = None
        self._stream = None
        self._rotation = 0
        self._fps = 0.0
        self._time_base = 0.0
        self._total_frames = 0
        self._width = 0
        self._height = 0
        self._duration = 0.0

        self._open()

    def _open(self) -> None:
        self._container = av.open(str(self._path))
        self._stream = self._container.streams.video[0]

        self._fps = float(self._stream.average_rate or self._stream.guessed_rate or 30.0)
        self._time_base = float(self._stream.time_base)

        if self._stream.frames > 0:
            self._total_frames = self._stream.frames
        elif self._stream.duration and self._stream.time_base:
            self._total_frames = int(float(self._stream.duration * self._stream.time_base) * self._fps)
        elif self._container.duration:
            self._total_frames = int(self._container.duration / 1_000_000 * self._fps)

        if self._container.duration:
            self._duration = self._container.duration / 1_000_000
        elif self._fps > 0:
            self._duration = self._total_frames / self._fps

        self._rotation = self._read_rotation()

        if self._rotation in (90, 270):
            self._width, self._height = self._stream.height, self._stream.width
        else:
            self._width, self._height = self._stream.width, self._stream.height

    def _read_rotation(self) -> int:
        """Rotation from the stream's 'rotate' tag, snapped to 0/90/180/270."""
        try:
            rotation = int(self._stream.metadata.get("rotate", "0"))
        except (AttributeError, ValueError):
            rotation = 0
        return (round(rotation / 90) * 90) % 360

    def _to_rgb(self, frame) -> np.ndarray:
        rgb = frame.to_ndarray(format="rgb24")
        if self._rotation:
            # np.rot90 turns counter-clockwise; the tag is clockwise.
            rgb = np.rot90(rgb, k=(360 - self._rotation) // 90)
        return np.ascontiguousarray(rgb)

    def _frame_index(self, frame, fallback: int) -> int:
        if frame.pts is None:
            return fallback
        return round(float(frame.pts) * self._time_base * self._fps)

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def total_frames(self) -> int:
        """Total number of frames (may be estimated)."""
        return self._total_frames

    @property
    def width(self) -> int:
        """Frame width after rotation."""
        return self._width

    @property
    def height(self) -> int:
        """Frame height after rotation."""
        return self._height

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def rotation(self) -> int:
        return self._rotation

    @property
    def metadata(self) -> VideoMetadata:
        return VideoMetadata(
            path=str(self._path),
            width=self._width,
            height=self._height,
            fps=self._fps,
            total_frames=self._total_frames,
            duration=self._duration,
            rotation=self._rotation,
        )

    # ========================================================================
    # Decoding
    # ========================================================================

    def _require_open(self) -> None:
        if self._container is None or self._stream is None:
            raise RuntimeError("Video not opened")

    def seek(self, frame_index: int) -> None:
        """Seek to the keyframe at or before ``frame_index``."""
        self._require_open()
        timestamp = int(frame_index / self._fps / self._time_base)
        self._container.seek(timestamp, stream=self._stream, backward=True)

    def iter_frames(self, start_frame: int = 0) -> Iterator[Tuple[int, np.ndarray]]:
        """
        Yields:
            (frame_index, frame_rgb) with frame_rgb shaped (height, width, 3).
        """
        self._require_open()

        if start_frame > 0:
            self.seek(start_frame)
        else:
            self._container.seek(0)

        next_index = start_frame
        for frame in self._container.decode(video=0):
            frame_idx = self._frame_index(frame, next_index)
            if frame_idx < start_frame:
                continue
            yield frame_idx, self._to_rgb(frame)
            next_index = frame_idx + 1

    def get_frame(self, frame_index: int, max_decode: int = 120) -> np.ndarray:
        """
        Decode one frame by index.

        After ``max_decode`` frames past the keyframe the last decoded frame
        is returned.

        Raises:
            IndexError: If frame_index is out of range or cannot be decoded.
        """
        if frame_index < 0 or frame_index >= self._total_frames:
            raise IndexError(f"Frame index {frame_index} out of range [0, {self._total_frames})")

        self.seek(frame_index)

        last_frame: Optional[np.ndarray] = None
        for decoded, frame in enumerate(self._container.decode(video=0), start=1):
            last_frame = self._to_rgb(frame)
            if self._frame_index(frame, frame_index) >= frame_index or decoded >= max_decode:
                return last_frame

        if last_frame is not None:
            return last_frame
        raise IndexError(f"Could not decode frame {frame_index}")

    def close(self) -> None:
        if self._container is not None:
            self._container.close()
            self._container = None
            self._stream = None

    def __enter__(self) -> "FrameLoader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        # __init__ may have raised before the container attribute existed.
        if getattr(self, "_container", None) is not None:
            self.close()
