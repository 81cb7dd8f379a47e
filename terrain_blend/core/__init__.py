"""
Core terrain blending functionality.
"""

from .terrain_data import GridMapping, GridSource, TerrainData, WeightSource
from .regions import PaintWeighted, RadialMound, radial_falloff, region_mask, smoothstep
from .controls import BlendSlider
from .blend_engine import (
    BlendEngineOptions,
    ConfigurationError,
    EngineState,
    TerrainBlendEngine,
    compose_target,
    move_towards,
)

__all__ = ['GridMapping', 'GridSource', 'TerrainData', 'WeightSource',
           'PaintWeighted', 'RadialMound', 'radial_falloff', 'region_mask', 'smoothstep',
           'BlendSlider',
           'BlendEngineOptions', 'ConfigurationError', 'EngineState', 'TerrainBlendEngine',
           'compose_target', 'move_towards']
