"""
Unit tests for FrameWorkspace

Buffers registered during a frame are released on every exit path.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pill_vision.core.workspace import FrameWorkspace


class TestFrameWorkspace:

    def test_hold_returns_buffer(self):
        ws = FrameWorkspace()
        buf = np.zeros((4, 4), dtype=np.uint8)
        assert ws.hold("mask", buf) is buf
        assert "mask" in ws
        assert ws.get("mask") is buf

    def test_none_not_held(self):
        ws = FrameWorkspace()
        assert ws.hold("nothing", None) is None
        assert len(ws) == 0

    def test_release_on_exit(self):
        with FrameWorkspace() as ws:
            ws.hold("a", np.zeros(3))
            ws.hold("b", np.zeros(3))
            assert ws.names == ["a", "b"]
        assert len(ws) == 0
        assert ws.released == 2

    def test_release_on_error(self):
        """Test buffers are dropped and the error still propagates."""
        with pytest.raises(RuntimeError):
            with FrameWorkspace() as ws:
                ws.hold("a", np.zeros(3))
                raise RuntimeError("stage failed")
        assert len(ws) == 0
        assert ws.released == 1

    def test_release_twice(self):
        ws = FrameWorkspace()
        ws.hold("a", np.zeros(3))
        assert ws.release() == 1
        assert ws.release() == 0

    def test_rehold_replaces(self):
        ws = FrameWorkspace()
        ws.hold("labels", np.zeros(3))
        newer = np.ones(3)
        ws.hold("labels", newer)
        assert len(ws) == 1
        assert ws.get("labels") is newer


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
