"""
Project-wide helpers: root discovery and configuration loading.
"""

from .utils import Utils

__all__ = ['Utils']
