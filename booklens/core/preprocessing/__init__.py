"""
Image preprocessing stages: filters, binarization and geometry.
"""

from .binarization import contrast_and_binarize, grayscale, otsu_threshold
from .filters      import denoise, sharpen
from .geometry     import deskew, detect_skew_angle, rotate
from .pipeline     import PreprocessOptions, preprocess

__all__ = [
    'PreprocessOptions',
    'contrast_and_binarize',
    'denoise',
    'deskew',
    'detect_skew_angle',
    'grayscale',
    'otsu_threshold',
    'preprocess',
    'rotate',
    'sharpen'
]
