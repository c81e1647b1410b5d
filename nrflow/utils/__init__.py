"""
Utility modules for 5G NR scenario runs.

This module provides configuration management and visualization utilities.
"""

from .config import ConfigManager
from .visualization import FlowVisualizer

__all__ = ['ConfigManager', 'FlowVisualizer']
