"""
Heightmap and paint-weight storage collaborators.

This module defines what the blend engine expects from the terrain system
that owns the heightmap:
- GridSource: read/write access to the live heightmap plus its extents
- WeightSource: per-layer paint weights (alphamaps)
- TerrainData: an in-memory implementation of both, used by tests and demos
- GridMapping: the fixed world-to-grid transform captured at activation
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class GridSource(Protocol):
    """Owner of the live heightmap."""

    @property
    def heightmap_resolution(self) -> Tuple[int, int]: ...

    @property
    def size(self) -> Tuple[float, float, float]: ...

    @property
    def position(self) -> Tuple[float, float, float]: ...

    def get_heights(
        self,
        x_base: int = 0,
        y_base: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> np.ndarray: ...

    def set_heights(self, x_base: int, y_base: int, heights: np.ndarray) -> None: ...


@runtime_checkable
class WeightSource(Protocol):
    """Owner of the paint layers."""

    @property
    def alphamap_resolution(self) -> Tuple[int, int]: ...

    @property
    def alphamap_layers(self) -> int: ...

    def get_weights(self, layer_index: int) -> np.ndarray: ...


class TerrainData:
    """
    In-memory terrain: a square-or-rectangular heightmap plus alphamaps.

    Heights are indexed [row, col] = [z, x] and kept in [0, 1]. Reads hand
    out copies, writes copy in, so callers never alias the storage.
    """

    def __init__(
        self,
        heights: np.ndarray,
        size: Tuple[float, float, float] = (100.0, 1.0, 100.0),
        position: Tuple[float, float, float] = (0.0, 0.0, 0.0),
        alphamaps: Optional[np.ndarray] = None,
    ):
        """
        Initialize terrain storage.

        Args:
            heights: 2D array of normalized heights
            size: World extents (x, y, z); y is the vertical scale
            position: World position of the grid origin (x, y, z)
            alphamaps: Optional (rows, cols, layers) paint weights
        """
        heights = np.asarray(heights, dtype=np.float64)
        if heights.ndim != 2:
            raise ValueError(f"heights must be 2D, got shape {heights.shape}")
        self._heights = np.clip(heights, 0.0, 1.0)
        self.size = tuple(float(v) for v in size)
        self.position = tuple(float(v) for v in position)

        if alphamaps is None:
            # Single fully-painted base layer, like a fresh terrain
            alphamaps = np.ones(heights.shape + (1,), dtype=np.float64)
        alphamaps = np.asarray(alphamaps, dtype=np.float64)
        if alphamaps.ndim != 3:
            raise ValueError(f"alphamaps must be 3D, got shape {alphamaps.shape}")
        self._alphamaps = np.clip(alphamaps, 0.0, 1.0)

    @classmethod
    def flat(
        cls,
        resolution: int,
        height: float = 0.0,
        size: Tuple[float, float, float] = (100.0, 1.0, 100.0),
        position: Tuple[float, float, float] = (0.0, 0.0, 0.0),
        alphamap_resolution: Optional[int] = None,
        layers: int = 1,
    ) -> "TerrainData":
        """Create a flat terrain with `layers` paint layers (first layer full)."""
        if layers < 1:
            raise ValueError(f"layers must be at least 1, got {layers}")
        heights = np.full((resolution, resolution), height, dtype=np.float64)
        a_res = alphamap_resolution or resolution
        alphamaps = np.zeros((a_res, a_res, layers), dtype=np.float64)
        alphamaps[:, :, 0] = 1.0
        return cls(heights, size=size, position=position, alphamaps=alphamaps)

    @property
    def heightmap_resolution(self) -> Tuple[int, int]:
        return self._heights.shape

    @property
    def alphamap_resolution(self) -> Tuple[int, int]:
        return self._alphamaps.shape[:2]

    @property
    def alphamap_layers(self) -> int:
        return self._alphamaps.shape[2]

    def get_heights(
        self,
        x_base: int = 0,
        y_base: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> np.ndarray:
        """Copy out a [height, width] window starting at (x_base, y_base)."""
        rows, cols = self._heights.shape
        width = cols - x_base if width is None else width
        height = rows - y_base if height is None else height
        if x_base < 0 or y_base < 0 or x_base + width > cols or y_base + height > rows:
            raise IndexError(
                f"Window ({x_base}, {y_base}, {width}, {height}) outside {cols}x{rows} heightmap"
            )
        return self._heights[y_base:y_base + height, x_base:x_base + width].copy()

    def set_heights(self, x_base: int, y_base: int, heights: np.ndarray) -> None:
        """Write a window of heights, clamped to [0, 1]."""
        heights = np.asarray(heights, dtype=np.float64)
        rows, cols = self._heights.shape
        h, w = heights.shape
        if x_base < 0 or y_base < 0 or x_base + w > cols or y_base + h > rows:
            raise IndexError(
                f"Window ({x_base}, {y_base}, {w}, {h}) outside {cols}x{rows} heightmap"
            )
        self._heights[y_base:y_base + h, x_base:x_base + w] = np.clip(heights, 0.0, 1.0)

    def get_weights(self, layer_index: int) -> np.ndarray:
        """Copy of one paint layer, shape (alpha_rows, alpha_cols)."""
        if not 0 <= layer_index < self.alphamap_layers:
            raise IndexError(
                f"Layer {layer_index} out of range (terrain has {self.alphamap_layers})"
            )
        return self._alphamaps[:, :, layer_index].copy()

    def paint_layer(self, layer_index: int, weights: np.ndarray) -> None:
        """Overwrite one paint layer with weights in [0, 1]."""
        if not 0 <= layer_index < self.alphamap_layers:
            raise IndexError(
                f"Layer {layer_index} out of range (terrain has {self.alphamap_layers})"
            )
        self._alphamaps[:, :, layer_index] = np.clip(weights, 0.0, 1.0)


@dataclass(frozen=True)
class GridMapping:
    """Fixed affine transform between world space and grid/paint indices."""

    rows: int
    cols: int
    origin_x: float
    origin_z: float
    cols_per_world_x: float
    rows_per_world_z: float
    alpha_rows: int = 0
    alpha_cols: int = 0

    @classmethod
    def from_sources(
        cls, grid: GridSource, weights: Optional[WeightSource] = None
    ) -> "GridMapping":
        """
        Capture the mapping from a grid source's resolution and extents.

        Raises:
            ValueError: If the grid is degenerate or has non-positive extents
        """
        rows, cols = grid.heightmap_resolution
        size_x, _, size_z = grid.size
        if rows < 2 or cols < 2:
            raise ValueError(f"Heightmap needs at least 2x2 cells, got {rows}x{cols}")
        if size_x <= 0 or size_z <= 0:
            raise ValueError(f"Terrain size must be positive, got {size_x}x{size_z}")

        alpha_rows, alpha_cols = weights.alphamap_resolution if weights is not None else (0, 0)
        origin_x, _, origin_z = grid.position
        return cls(
            rows=rows,
            cols=cols,
            origin_x=origin_x,
            origin_z=origin_z,
            cols_per_world_x=(cols - 1) / size_x,
            rows_per_world_z=(rows - 1) / size_z,
            alpha_rows=alpha_rows,
            alpha_cols=alpha_cols,
        )

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def world_to_grid(self, x: float, z: float) -> Tuple[float, float]:
        """Fractional (col, row) for a world-space (x, z) position."""
        col = (x - self.origin_x) * self.cols_per_world_x
        row = (z - self.origin_z) * self.rows_per_world_z
        return col, row

    def paint_indices(self) -> Tuple[np.ndarray, np.ndarray]:
        """Nearest paint-layer row and column index for every grid row/column."""
        ratio_rows = self.alpha_rows / self.rows
        ratio_cols = self.alpha_cols / self.cols
        row_idx = np.floor(np.arange(self.rows) * ratio_rows).astype(int)
        col_idx = np.floor(np.arange(self.cols) * ratio_cols).astype(int)
        return (
            np.clip(row_idx, 0, max(self.alpha_rows - 1, 0)),
            np.clip(col_idx, 0, max(self.alpha_cols - 1, 0)),
        )
