"""
Slider-driven terrain height blending.

This module implements the per-frame blending core:
- Baseline capture on activation and verbatim restore on deactivation
- Target-grid composition from influence regions (max overlap policy)
- Rate-limited move-towards interpolation of the live heightmap
"""

import numpy as np
import structlog
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Tuple

from ..config import Settings, settings as default_settings
from .regions import InfluenceRegion, PaintWeighted, RadialMound, clamp01, region_mask
from .terrain_data import GridMapping, GridSource, WeightSource

logger = structlog.get_logger()


class ConfigurationError(ValueError):
    """Raised when the engine cannot be activated with its current setup."""


class EngineState(str, Enum):
    """Lifecycle states of the blend engine."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass
class BlendEngineOptions:
    """Tuning options for a blend engine instance."""

    change_speed: float = 1.5  # max normalized height change per second
    initial_blend_factor: float = 0.0  # used when no slider is bound

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "BlendEngineOptions":
        settings = settings or default_settings
        return cls(
            change_speed=settings.change_speed,
            initial_blend_factor=settings.initial_blend_factor,
        )


def compose_target(
    baseline: np.ndarray,
    regions: Sequence[InfluenceRegion],
    blend_factor: float,
    mapping: GridMapping,
    layer_weights: Optional[Dict[int, np.ndarray]] = None,
) -> np.ndarray:
    """
    Build the target heightmap for one tick.

    The target starts from a fresh copy of the baseline, so region edits take
    effect immediately. Each region pulls its cells toward its target height
    by blend_factor * mask; where regions overlap the highest candidate wins.

    Args:
        baseline: Heights captured at activation
        regions: Snapshot of influence regions
        blend_factor: Global blend in [0, 1]
        mapping: Grid mapping captured at activation
        layer_weights: Paint layer weights keyed by layer index

    Returns:
        New target array; baseline is left untouched
    """
    target = baseline.copy()
    blend_factor = clamp01(blend_factor)
    if blend_factor == 0.0:
        return target

    layer_weights = layer_weights or {}
    for region in regions:
        weights = layer_weights.get(region.layer_index) if isinstance(region, PaintWeighted) else None
        row_slice, col_slice, mask = region_mask(region, mapping, weights)

        blend = blend_factor * mask
        base = baseline[row_slice, col_slice]
        # Convex form stays exact at blend == 0 and blend == 1
        candidate = (1.0 - blend) * base + blend * clamp01(region.target_height)

        window = target[row_slice, col_slice]
        np.maximum(window, candidate, out=window)

    return target


def move_towards(current: np.ndarray, target: np.ndarray, max_delta: float) -> np.ndarray:
    """
    Step every cell toward its target by at most max_delta.

    Cells within max_delta of their target snap to it exactly, so repeated
    calls converge without overshoot.
    """
    max_delta = max(0.0, float(max_delta))
    delta = target - current
    stepped = current + np.sign(delta) * max_delta
    return np.where(np.abs(delta) <= max_delta, target, stepped)


class TerrainBlendEngine:
    """
    Blends a live heightmap toward region targets under a global blend factor.

    Lifecycle is UNINITIALIZED -> ACTIVE -> DISABLED. Blending only runs while
    ACTIVE; deactivation restores the baseline so no deformation is left
    behind.
    """

    def __init__(
        self,
        grid_source: Optional[GridSource] = None,
        regions: Iterable[InfluenceRegion] = (),
        weight_source: Optional[WeightSource] = None,
        options: Optional[BlendEngineOptions] = None,
    ):
        """
        Initialize the engine. Nothing is read from the grid until activate().

        Args:
            grid_source: Owner of the live heightmap
            regions: Initial influence regions
            weight_source: Paint layers, needed for PaintWeighted regions
            options: Engine options, defaults to the package settings
        """
        self.grid_source = grid_source
        self.weight_source = weight_source
        self.options = options or BlendEngineOptions.from_settings()

        self.state = EngineState.UNINITIALIZED
        self.error: Optional[ConfigurationError] = None

        self._regions: Tuple[InfluenceRegion, ...] = tuple(regions)
        self._blend_factor = clamp01(self.options.initial_blend_factor)
        self._baseline: Optional[np.ndarray] = None
        self._mapping: Optional[GridMapping] = None
        self._slider = None
        self._slider_listener = None

    @property
    def blend_factor(self) -> float:
        return self._blend_factor

    @property
    def regions(self) -> Tuple[InfluenceRegion, ...]:
        return self._regions

    @property
    def baseline(self) -> Optional[np.ndarray]:
        """Read-only view of the captured baseline."""
        if self._baseline is None:
            return None
        view = self._baseline.view()
        view.flags.writeable = False
        return view

    @property
    def mapping(self) -> Optional[GridMapping]:
        return self._mapping

    @property
    def is_active(self) -> bool:
        return self.state is EngineState.ACTIVE

    def set_blend_factor(self, value: float) -> None:
        """Set the global blend factor, clamped to [0, 1]."""
        self._blend_factor = clamp01(value)

    def bind_slider(self, slider) -> None:
        """
        Follow a slider: take its current value and subscribe to changes.

        The slider needs `value` and `add_listener`; `remove_listener` is
        used when present. Updates from a slider that is no longer bound are
        ignored either way.
        """
        self._unbind_slider()

        def follow(value: float) -> None:
            if self._slider is slider:
                self.set_blend_factor(value)

        self._slider = slider
        self._slider_listener = follow
        self.set_blend_factor(slider.value)
        slider.add_listener(follow)

    def _unbind_slider(self) -> None:
        slider, listener = self._slider, self._slider_listener
        self._slider = None
        self._slider_listener = None
        remove = getattr(slider, "remove_listener", None)
        if remove is not None:
            remove(listener)

    def set_regions(self, regions: Iterable[InfluenceRegion]) -> None:
        """
        Replace the region list. Takes effect at the next tick.

        Raises:
            ConfigurationError: If the engine is active and a region is invalid
        """
        regions = tuple(regions)
        if self.is_active:
            self._validate_regions(regions)
        self._regions = regions

    def add_region(self, region: InfluenceRegion) -> None:
        """Append one region. Takes effect at the next tick."""
        self.set_regions(self._regions + (region,))

    def _validate_regions(self, regions: Sequence[InfluenceRegion]) -> None:
        for i, region in enumerate(regions):
            if isinstance(region, RadialMound):
                if region.radius <= 0:
                    raise ConfigurationError(
                        f"Region {i}: mound radius must be positive, got {region.radius}"
                    )
            elif isinstance(region, PaintWeighted):
                if self.weight_source is None:
                    raise ConfigurationError(
                        f"Region {i}: paint-weighted region needs a weight source"
                    )
                layers = self.weight_source.alphamap_layers
                if not 0 <= region.layer_index < layers:
                    raise ConfigurationError(
                        f"Region {i}: invalid terrain layer index {region.layer_index} "
                        f"(terrain has {layers} layers)"
                    )
            else:
                raise ConfigurationError(
                    f"Region {i}: unsupported region type {type(region).__name__}"
                )

    def _validate(self) -> None:
        if self.grid_source is None:
            raise ConfigurationError("No terrain assigned")
        if self.options.change_speed <= 0:
            raise ConfigurationError(
                f"change_speed must be positive, got {self.options.change_speed}"
            )
        self._validate_regions(self._regions)

    def _capture(self) -> Tuple[GridMapping, np.ndarray]:
        try:
            mapping = GridMapping.from_sources(self.grid_source, self.weight_source)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        baseline = np.array(self.grid_source.get_heights(), dtype=np.float64)
        if baseline.shape != mapping.shape:
            raise ConfigurationError(
                f"Heightmap shape {baseline.shape} does not match resolution {mapping.shape}"
            )
        return mapping, baseline

    def activate(self) -> bool:
        """
        Capture the baseline and grid mapping and start blending.

        Configuration problems disable the engine instead of raising; the
        cause is kept on `self.error`.

        Returns:
            True if the engine is now active
        """
        if self.state is not EngineState.UNINITIALIZED:
            logger.warning("Activation refused", state=self.state.value)
            return False

        try:
            self._validate()
            mapping, baseline = self._capture()
        except ConfigurationError as e:
            self.error = e
            self.state = EngineState.DISABLED
            logger.error("Activation failed, engine disabled", reason=str(e))
            return False

        self._mapping = mapping
        self._baseline = baseline
        self.state = EngineState.ACTIVE

        logger.info(
            "Engine activated",
            rows=mapping.rows,
            cols=mapping.cols,
            regions=len(self._regions),
            blend_factor=self._blend_factor,
            change_speed=self.options.change_speed,
        )
        return True

    def _collect_layer_weights(
        self, regions: Sequence[InfluenceRegion]
    ) -> Optional[Dict[int, np.ndarray]]:
        """Fetch paint layers; disables the engine and returns None if their resolution changed."""
        expected = (self._mapping.alpha_rows, self._mapping.alpha_cols)
        weights = {}
        for layer in {r.layer_index for r in regions if isinstance(r, PaintWeighted)}:
            layer_weights = np.asarray(self.weight_source.get_weights(layer), dtype=np.float64)
            if layer_weights.shape != expected:
                logger.error(
                    "Paint layer resolution changed, engine disabled",
                    layer=layer,
                    expected=expected,
                    actual=layer_weights.shape,
                )
                self.state = EngineState.DISABLED
                return None
            weights[layer] = layer_weights
        return weights

    def compute_target(self) -> Optional[np.ndarray]:
        """Target heights for the current regions and blend factor (None unless active)."""
        if not self.is_active:
            return None
        regions = self._regions
        layer_weights = self._collect_layer_weights(regions)
        if layer_weights is None:
            return None
        return compose_target(
            self._baseline, regions, self._blend_factor, self._mapping, layer_weights
        )

    def tick(self, delta_time: float) -> Optional[np.ndarray]:
        """
        Advance the live heightmap one frame.

        Args:
            delta_time: Seconds since the previous tick; negative counts as 0

        Returns:
            Heights written to the grid source, or None when inactive
        """
        if not self.is_active:
            return None

        current = self.grid_source.get_heights()
        if current.shape != self._baseline.shape:
            logger.error(
                "Heightmap resolution changed, engine disabled",
                expected=self._baseline.shape,
                actual=current.shape,
            )
            self.state = EngineState.DISABLED
            return None

        target = self.compute_target()
        if target is None:
            return None
        step = self.options.change_speed * max(0.0, float(delta_time))
        heights = move_towards(current, target, step)
        self.grid_source.set_heights(0, 0, heights)

        logger.debug("Tick applied", step=step, blend_factor=self._blend_factor)
        return heights

    def deactivate(self) -> None:
        """Restore the baseline and stop blending for good."""
        # Restore exactly once, on the ACTIVE -> DISABLED transition
        if self.state is EngineState.ACTIVE:
            self.grid_source.set_heights(0, 0, self._baseline.copy())
            logger.info("Baseline restored")
        self.state = EngineState.DISABLED

        if self._slider is not None:
            self._unbind_slider()
