"""
Recognition engine contract and result types.

The EasyOCR-backed engine lives in `booklens.core.recognition_engine.easyocr_engine`
and is imported explicitly so the rest of the core loads without the model stack.
"""

from .engine import ProgressCallback, RecognitionEngine
from .models import BoundingBox, EngineStatus, ProgressEvent, RecognitionResult, TextRegion

__all__ = [
    'BoundingBox',
    'EngineStatus',
    'ProgressCallback',
    'ProgressEvent',
    'RecognitionEngine',
    'RecognitionResult',
    'TextRegion'
]
