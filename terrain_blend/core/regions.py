"""
Influence regions and their per-cell masks.

A region tells the blend engine where, and how strongly, terrain should be
pulled toward a target height:
- RadialMound: a round plateau with a smoothstep-feathered rim
- PaintWeighted: the weights of a painted terrain layer
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .terrain_data import GridMapping

# Lower bounds for the feather band width
MIN_EDGE_FEATHER = 0.01
MIN_FEATHER_SPAN = 1e-6


def clamp01(value: float) -> float:
    """Clamp a scalar to [0, 1]."""
    return min(1.0, max(0.0, float(value)))


def smoothstep(t: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Hermite smoothstep t²(3 - 2t) on t clamped to [0, 1]."""
    t = np.clip(t, 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


@dataclass(frozen=True)
class RadialMound:
    """Round region raised toward `target_height`."""

    world_center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float = 10.0
    target_height: float = 0.6
    plateau_fraction: float = 0.6
    edge_feather: float = 0.3


@dataclass(frozen=True)
class PaintWeighted:
    """Region whose mask is the weight of a painted terrain layer."""

    layer_index: int = 0
    target_height: float = 0.6


InfluenceRegion = Union[RadialMound, PaintWeighted]


def radial_falloff(
    nd: Union[float, np.ndarray],
    plateau_fraction: float,
    edge_feather: float,
) -> Union[float, np.ndarray]:
    """
    Mask value for a normalized distance from a mound center.

    Args:
        nd: Distance divided by radius (scalar or array)
        plateau_fraction: Inner fraction held at full influence
        edge_feather: Width of the smooth 1 -> 0 band past the plateau

    Returns:
        Mask in [0, 1]; 0 for nd > 1
    """
    plateau = clamp01(plateau_fraction)
    feather = min(1.0, max(MIN_EDGE_FEATHER, float(edge_feather)))
    feather_end = min(1.0, plateau + feather)
    span = max(MIN_FEATHER_SPAN, feather_end - plateau)

    nd = np.asarray(nd, dtype=np.float64)
    t = np.clip((nd - plateau) / span, 0.0, 1.0)
    mask = np.where(nd <= plateau, 1.0, 1.0 - smoothstep(t))
    mask = np.where(nd > 1.0, 0.0, mask)

    if mask.ndim == 0:
        return float(mask)
    return mask


def mound_grid_geometry(mound: RadialMound, mapping: GridMapping) -> Tuple[int, int, float]:
    """
    Center cell and radius of a mound in grid-index space.

    When the two axes have different world-to-grid scales the radius is
    projected onto each axis and averaged. This approximates the true
    ellipse; existing mound placements rely on it.

    Returns:
        (center_col, center_row, radius_in_cells)
    """
    world_x, _, world_z = mound.world_center
    col, row = mapping.world_to_grid(world_x, world_z)
    # Nearest cell, ties to even
    center_col = int(round(col))
    center_row = int(round(row))

    radius_x = mound.radius * mapping.cols_per_world_x
    radius_z = mound.radius * mapping.rows_per_world_z
    return center_col, center_row, (radius_x + radius_z) * 0.5


def mound_bounds(
    center_col: int, center_row: int, radius: float, shape: Tuple[int, int]
) -> Tuple[slice, slice]:
    """Inclusive bounding box of a mound, clamped to the grid, as (rows, cols) slices."""
    rows, cols = shape
    start_col = min(max(math.floor(center_col - radius), 0), cols - 1)
    end_col = min(max(math.ceil(center_col + radius), 0), cols - 1)
    start_row = min(max(math.floor(center_row - radius), 0), rows - 1)
    end_row = min(max(math.ceil(center_row + radius), 0), rows - 1)
    return slice(start_row, end_row + 1), slice(start_col, end_col + 1)


def mound_mask(
    mound: RadialMound, mapping: GridMapping
) -> Tuple[slice, slice, np.ndarray]:
    """
    Mask of a radial mound over its bounding box.

    Returns:
        (row_slice, col_slice, mask) where mask has the window's shape
    """
    center_col, center_row, radius = mound_grid_geometry(mound, mapping)
    row_slice, col_slice = mound_bounds(center_col, center_row, radius, mapping.shape)

    rows = np.arange(row_slice.start, row_slice.stop)[:, np.newaxis]
    cols = np.arange(col_slice.start, col_slice.stop)[np.newaxis, :]
    dist = np.sqrt((cols - center_col) ** 2 + (rows - center_row) ** 2)
    nd = dist / radius

    mask = radial_falloff(nd, mound.plateau_fraction, mound.edge_feather)
    return row_slice, col_slice, np.atleast_2d(mask)


def paint_mask(weights: np.ndarray, mapping: GridMapping) -> np.ndarray:
    """
    Resample a paint layer onto the heightmap grid.

    Each grid cell takes the weight of the paint texel at
    floor(index * paint_resolution / grid_resolution).
    """
    weights = np.asarray(weights, dtype=np.float64)
    row_idx, col_idx = mapping.paint_indices()
    return np.clip(weights[np.ix_(row_idx, col_idx)], 0.0, 1.0)


def region_mask(
    region: InfluenceRegion,
    mapping: GridMapping,
    weights: Optional[np.ndarray] = None,
) -> Tuple[slice, slice, np.ndarray]:
    """
    Mask window for any region variant.

    Args:
        region: RadialMound or PaintWeighted
        mapping: Grid mapping captured at activation
        weights: The region's paint layer (PaintWeighted only)

    Returns:
        (row_slice, col_slice, mask)
    """
    if isinstance(region, RadialMound):
        return mound_mask(region, mapping)
    if isinstance(region, PaintWeighted):
        if weights is None:
            raise ValueError(f"Paint layer {region.layer_index} weights are required")
        return slice(0, mapping.rows), slice(0, mapping.cols), paint_mask(weights, mapping)
    raise TypeError(f"Unsupported region type: {type(region).__name__}")
