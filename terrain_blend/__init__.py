"""
Slider-driven terrain height blending.
"""

__version__ = "0.1.0"
