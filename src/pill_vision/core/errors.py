# PillVision Errors

"""
Failure kinds reported by the frame processor.

All of these are caught at ``PillVisionProcessor.process_frame`` and turned
into an empty result. Regions rejected during feature extraction are not
errors and never raise.
"""


class PipelineError(Exception):
    """Base class for frame processing failures."""


class EngineNotReadyError(PipelineError):
    """The image-processing engine is not available."""


class CaptureError(PipelineError):
    """No usable source frame or output surface."""
