"""
Headless pixel buffer shared by every preprocessing stage.
"""

from .buffer import ImageBuffer

__all__ = ['ImageBuffer']
