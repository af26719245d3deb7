"""
Utility modules for cave generation.
"""

from .logging import configure_logging
from .timing import Stopwatch

__all__ = ['configure_logging', 'Stopwatch']
