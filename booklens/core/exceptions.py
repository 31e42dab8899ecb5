"""
Error taxonomy for the OCR core.

Only RecognitionEngineError is recovered locally (a failed pass is skipped by the
multi-pass orchestrator); everything else surfaces to the caller.
"""

class BookLensError(Exception):
    """Base class for all BookLens errors."""

class DecodeError(BookLensError):
    """The image source could not be rasterized."""

class RecognitionEngineError(BookLensError):
    """A single call into the recognition engine failed."""

class EngineNotInitializedError(BookLensError):
    """Recognition was requested before initialization and lazy initialization failed."""

class ScanInProgressError(BookLensError):
    """A scan was requested while another one is still running on the same engine."""

class AllPassesFailedError(BookLensError):
    """
    Every planned pass of a multi-pass recognition failed.

    Attributes:
        failures : (pass label, error) pairs in plan order
    """

    def __init__(self, failures: list[tuple[str, Exception]]):
        self.failures = failures
        details       = '; '.join(f"{label}: {error}" for label, error in failures)
        super().__init__(f"All {len(failures)} recognition passes failed ({details})")
