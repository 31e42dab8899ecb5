"""
Heuristic for spotting vertical (book spine) text in recognition results.
"""

from .detector import detect_vertical_text, is_likely_vertical

__all__ = ['detect_vertical_text', 'is_likely_vertical']
