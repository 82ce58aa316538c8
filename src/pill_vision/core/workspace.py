# PillVision Frame Workspace

"""
Scoped ownership of the intermediate buffers of one frame invocation.

Every mask, marker map and label image created while processing a frame is
registered with ``hold`` as soon as it is assigned. Leaving the ``with`` block
drops all registered references, whether the frame succeeded or raised.

Per-label masks built inside ``FeatureExtractor.extract`` are loop locals and
go out of scope when ``extract`` returns; they are not registered here.
"""

from typing import Any, Dict, List, Optional

from pill_vision.utils.logging import get_logger

logger = get_logger(__name__)


class FrameWorkspace:
    """
    Registry of per-frame buffers with a single release point.

    Usage:
        with FrameWorkspace() as ws:
            mask = ws.hold("mask", builder.build(enhanced))
            ...
    """

    def __init__(self):
        self._buffers: Dict[str, Any] = {}
        self._released = 0

    def hold(self, name: str, buffer: Any) -> Any:
        """Register ``buffer`` under ``name`` and return it unchanged."""
        if buffer is not None:
            self._buffers[name] = buffer
        return buffer

    def get(self, name: str, default: Optional[Any] = None) -> Any:
        return self._buffers.get(name, default)

    def __contains__(self, name: str) -> bool:
        return name in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)

    @property
    def names(self) -> List[str]:
        return list(self._buffers.keys())

    @property
    def released(self) -> int:
        """Number of buffers dropped by the last ``release``."""
        return self._released

    def release(self) -> int:
        """Drop every registered buffer. Safe to call more than once."""
        self._released = len(self._buffers)
        self._buffers.clear()
        return self._released

    def __enter__(self) -> "FrameWorkspace":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        count = self.release()
        if exc_type is not None:
            logger.debug(f"Released {count} buffers after {exc_type.__name__}")
        else:
            logger.debug(f"Released {count} buffers")
