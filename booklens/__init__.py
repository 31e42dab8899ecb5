"""
BookLens
Multi-pass OCR for photographed book covers and spines.
"""

__version__ = '0.1.0'

from booklens.core.utils              import Utils
from booklens.core.module_logger      import ModuleLogger
from booklens.core.exceptions         import (
    AllPassesFailedError,
    BookLensError,
    DecodeError,
    EngineNotInitializedError,
    RecognitionEngineError,
    ScanInProgressError
)
from booklens.core.image_buffer       import ImageBuffer
from booklens.core.preprocessing      import PreprocessOptions, preprocess
from booklens.core.recognition_engine import (
    BoundingBox,
    EngineStatus,
    ProgressEvent,
    RecognitionEngine,
    RecognitionResult,
    TextRegion
)
from booklens.core.vertical_text      import detect_vertical_text, is_likely_vertical
from booklens.core.multi_pass         import MultiPassOrchestrator, OrchestratorState, recognize_multi_pass

__all__ = [
    'Utils',
    'ModuleLogger',
    'AllPassesFailedError',
    'BookLensError',
    'DecodeError',
    'EngineNotInitializedError',
    'RecognitionEngineError',
    'ScanInProgressError',
    'ImageBuffer',
    'PreprocessOptions',
    'preprocess',
    'BoundingBox',
    'EngineStatus',
    'ProgressEvent',
    'RecognitionEngine',
    'RecognitionResult',
    'TextRegion',
    'detect_vertical_text',
    'is_likely_vertical',
    'MultiPassOrchestrator',
    'OrchestratorState',
    'recognize_multi_pass'
]
