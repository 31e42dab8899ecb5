"""
Per-module file logging.
"""

from .logger import ModuleLogger

__all__ = ['ModuleLogger']
