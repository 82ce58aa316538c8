"""Vision pipeline stages and the frame processor."""
