"""Tests for influence regions and mask computation."""

import pytest
import numpy as np
from terrain_blend.core import TerrainData, GridMapping, RadialMound, PaintWeighted
from terrain_blend.core.regions import (
    smoothstep, radial_falloff, mound_grid_geometry, mound_bounds,
    mound_mask, paint_mask, region_mask,
)


class TestSmoothstep:
    """Test the hermite falloff curve."""

    def test_endpoints_and_midpoint(self):
        assert smoothstep(0.0) == 0.0
        assert smoothstep(1.0) == 1.0
        assert smoothstep(0.5) == 0.5

    def test_input_is_clamped(self):
        assert smoothstep(-2.0) == 0.0
        assert smoothstep(3.0) == 1.0

    def test_monotonic(self):
        t = np.linspace(0, 1, 101)
        assert np.all(np.diff(smoothstep(t)) >= 0)


class TestRadialFalloff:
    """Test mask values for normalized distances."""

    def test_center_is_full_strength(self):
        assert radial_falloff(0.0, 0.5, 0.25) == 1.0

    def test_plateau_edge_is_full_strength(self):
        assert radial_falloff(0.5, 0.5, 0.25) == 1.0
        assert radial_falloff(0.6, 0.6, 0.3) == 1.0

    def test_feather_end_is_zero(self):
        assert radial_falloff(0.75, 0.5, 0.25) == 0.0

    def test_feather_midpoint(self):
        assert radial_falloff(0.625, 0.5, 0.25) == pytest.approx(0.5)

    def test_beyond_feather_band_is_zero(self):
        assert radial_falloff(0.9, 0.5, 0.25) == 0.0

    def test_outside_radius_is_zero(self):
        assert radial_falloff(1.5, 0.6, 0.3) == 0.0
        # Even a plateau covering the whole radius stops at nd == 1
        assert radial_falloff(1.01, 1.0, 0.3) == 0.0
        assert radial_falloff(1.0, 1.0, 0.3) == 1.0

    def test_feather_band_decreases(self):
        nd = np.linspace(0.5, 0.75, 26)
        mask = radial_falloff(nd, 0.5, 0.25)
        assert mask.shape == nd.shape
        assert np.all(np.diff(mask) <= 0)
        assert np.all((mask >= 0) & (mask <= 1))

    def test_fractions_are_clamped(self):
        # plateau > 1 behaves as 1
        assert radial_falloff(0.99, 1.7, 0.3) == 1.0
        # negative plateau behaves as 0: only the exact center is full strength
        assert radial_falloff(0.0, -0.5, 0.5) == 1.0
        assert radial_falloff(0.25, -0.5, 0.5) == pytest.approx(0.5)

    def test_zero_feather_uses_minimum_band(self):
        # feather floored at 0.01: just past the plateau we are already falling
        assert radial_falloff(0.5, 0.5, 0.0) == 1.0
        assert radial_falloff(0.52, 0.5, 0.0) == 0.0
        assert 0.0 < radial_falloff(0.505, 0.5, 0.0) < 1.0


class TestMoundGeometry:
    """Test conversion of mounds into grid space."""

    @pytest.fixture
    def mapping(self):
        """11x11 grid over 10x10 world units: one cell per world unit."""
        terrain = TerrainData.flat(11, size=(10.0, 1.0, 10.0))
        return GridMapping.from_sources(terrain)

    def test_center_and_radius(self, mapping):
        mound = RadialMound(world_center=(5.0, 0.0, 5.0), radius=3.0)
        assert mound_grid_geometry(mound, mapping) == (5, 5, 3.0)

    def test_terrain_position_offsets_center(self):
        terrain = TerrainData.flat(11, size=(10.0, 1.0, 10.0), position=(100.0, 0.0, 50.0))
        mapping = GridMapping.from_sources(terrain)
        mound = RadialMound(world_center=(105.0, 7.0, 52.0), radius=2.0)
        assert mound_grid_geometry(mound, mapping) == (5, 2, 2.0)

    def test_center_rounds_to_nearest_cell(self, mapping):
        mound = RadialMound(world_center=(5.4, 0.0, 6.6), radius=1.0)
        col, row, _ = mound_grid_geometry(mound, mapping)
        assert (col, row) == (5, 7)

    def test_non_uniform_scale_averages_radius(self):
        """x has 2 cells per world unit, z has 1: radius 4 becomes (8 + 4) / 2."""
        terrain = TerrainData(np.zeros((11, 21)), size=(10.0, 1.0, 10.0))
        mapping = GridMapping.from_sources(terrain)
        mound = RadialMound(world_center=(5.0, 0.0, 5.0), radius=4.0)
        assert mound_grid_geometry(mound, mapping) == (10, 5, 6.0)

    def test_bounds_inside_grid(self):
        rows, cols = mound_bounds(5, 5, 3.0, (11, 11))
        assert (rows.start, rows.stop) == (2, 9)
        assert (cols.start, cols.stop) == (2, 9)

    def test_bounds_clamped_at_edges(self):
        rows, cols = mound_bounds(0, 10, 3.0, (11, 11))
        assert (rows.start, rows.stop) == (7, 11)
        assert (cols.start, cols.stop) == (0, 4)

    def test_bounds_fractional_radius(self):
        rows, cols = mound_bounds(5, 5, 2.5, (11, 11))
        assert (rows.start, rows.stop) == (2, 9)

    def test_mask_window(self, mapping):
        mound = RadialMound(world_center=(5.0, 0.0, 5.0), radius=3.0,
                            plateau_fraction=0.5, edge_feather=0.25)
        row_slice, col_slice, mask = mound_mask(mound, mapping)

        assert mask.shape == (7, 7)
        # Window origin is (2, 2), so the center cell is at (3, 3)
        assert mask[3, 3] == 1.0
        # Corners of the box are outside the circle
        assert mask[0, 0] == 0.0
        # Distance 3 along an axis: nd == 1, beyond the feather band
        assert mask[0, 3] == 0.0
        assert np.all((mask >= 0) & (mask <= 1))

    def test_mound_far_outside_grid_contributes_nothing(self, mapping):
        mound = RadialMound(world_center=(-50.0, 0.0, -50.0), radius=3.0)
        _, _, mask = mound_mask(mound, mapping)
        assert np.all(mask == 0.0)


class TestPaintMask:
    """Test nearest-neighbour resampling of paint layers."""

    def _mapping(self, rows, cols, alpha_rows, alpha_cols):
        return GridMapping(
            rows=rows, cols=cols, origin_x=0.0, origin_z=0.0,
            cols_per_world_x=1.0, rows_per_world_z=1.0,
            alpha_rows=alpha_rows, alpha_cols=alpha_cols,
        )

    def test_same_resolution_is_identity(self):
        weights = np.random.default_rng(1).random((6, 6))
        mask = paint_mask(weights, self._mapping(6, 6, 6, 6))
        np.testing.assert_array_equal(mask, weights)

    def test_upsampling_repeats_texels(self):
        weights = np.arange(16, dtype=np.float64).reshape(4, 4) / 16.0
        mask = paint_mask(weights, self._mapping(8, 8, 4, 4))
        expected = np.repeat(np.repeat(weights, 2, axis=0), 2, axis=1)
        np.testing.assert_array_equal(mask, expected)

    def test_downsampling_picks_floor_texel(self):
        weights = np.random.default_rng(2).random((16, 16))
        mask = paint_mask(weights, self._mapping(8, 8, 16, 16))
        np.testing.assert_array_equal(mask, weights[::2, ::2])

    def test_weights_clipped(self):
        weights = np.array([[-1.0, 2.0], [0.5, 0.25]])
        mask = paint_mask(weights, self._mapping(2, 2, 2, 2))
        np.testing.assert_array_equal(mask, [[0.0, 1.0], [0.5, 0.25]])


class TestRegionMask:
    """Test dispatch over region variants."""

    @pytest.fixture
    def mapping(self):
        terrain = TerrainData.flat(8, size=(7.0, 1.0, 7.0), layers=2)
        return GridMapping.from_sources(terrain, terrain)

    def test_paint_region_covers_whole_grid(self, mapping):
        weights = np.full((8, 8), 0.5)
        rows, cols, mask = region_mask(PaintWeighted(layer_index=1), mapping, weights)
        assert (rows, cols) == (slice(0, 8), slice(0, 8))
        assert mask.shape == (8, 8)

    def test_paint_region_requires_weights(self, mapping):
        with pytest.raises(ValueError):
            region_mask(PaintWeighted(layer_index=1), mapping)

    def test_unknown_region_type(self, mapping):
        with pytest.raises(TypeError):
            region_mask(object(), mapping)
