"""
Configuration for cave generation.
"""

from .config import Settings, settings
from .map_parameters import MapParameters, TunnelerKind

__all__ = ['Settings', 'settings', 'MapParameters', 'TunnelerKind']
