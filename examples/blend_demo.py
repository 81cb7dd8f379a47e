#!/usr/bin/env python3
"""
Demo script showing slider-driven terrain blending.

Runs the two controller styles over a synthetic terrain:
- several overlapping mounds raised by one slider
- a painted layer raised to a fixed height
"""

import numpy as np
from terrain_blend.core import (
    TerrainData, RadialMound, PaintWeighted, BlendSlider,
    TerrainBlendEngine, BlendEngineOptions,
)
from terrain_blend.utils.log_setup import configure_logging


def make_terrain(resolution: int = 129) -> TerrainData:
    """Gently rolling terrain with a painted diagonal band on layer 1."""
    rows, cols = np.mgrid[0:resolution, 0:resolution] / (resolution - 1)
    heights = 0.2 + 0.05 * np.sin(rows * 6.0) * np.cos(cols * 4.0)

    a_res = resolution // 2
    a_rows, a_cols = np.mgrid[0:a_res, 0:a_res]
    band = np.clip(1.0 - np.abs(a_rows - a_cols) / 6.0, 0.0, 1.0)
    alphamaps = np.stack([1.0 - band, band], axis=-1)

    return TerrainData(heights, size=(500.0, 600.0, 500.0), alphamaps=alphamaps)


def report(label: str, terrain: TerrainData, baseline: np.ndarray) -> None:
    heights = terrain.get_heights()
    raised = np.sum(heights > baseline + 1e-6)
    print(f"  {label:<22} max={heights.max():.3f} mean={heights.mean():.3f} "
          f"raised cells={raised}")


def run(engine: TerrainBlendEngine, slider: BlendSlider, terrain: TerrainData) -> None:
    engine.bind_slider(slider)
    if not engine.activate():
        print(f"  activation failed: {engine.error}")
        return
    baseline = np.array(engine.baseline)

    report("start", terrain, baseline)
    for value in (0.5, 1.0):
        slider.set_value(value)
        for _ in range(30):  # half a second at 60 fps
            engine.tick(1.0 / 60.0)
        report(f"slider={value:.1f}, 30 frames", terrain, baseline)

    engine.deactivate()
    restored = np.array_equal(terrain.get_heights(), baseline)
    print(f"  baseline restored: {restored}")


def main():
    """Demonstrate both controller styles."""
    configure_logging(level="WARNING", log_format="console")

    print("Terrain Blend Demo")
    print("=" * 40)

    print("\nMULTI-MOUND:")
    print("-" * 30)
    terrain = make_terrain()
    mounds = [
        RadialMound(world_center=(150.0, 0.0, 150.0), radius=60.0, target_height=0.6),
        RadialMound(world_center=(200.0, 0.0, 180.0), radius=40.0, target_height=0.75,
                    plateau_fraction=0.4, edge_feather=0.5),
        RadialMound(world_center=(380.0, 0.0, 320.0), radius=80.0, target_height=0.45),
    ]
    engine = TerrainBlendEngine(terrain, mounds, options=BlendEngineOptions(change_speed=1.5))
    run(engine, BlendSlider(0.0), terrain)

    print("\nPAINTED LAYER:")
    print("-" * 30)
    terrain = make_terrain()
    engine = TerrainBlendEngine(
        terrain,
        [PaintWeighted(layer_index=1, target_height=0.6)],
        weight_source=terrain,
        options=BlendEngineOptions(change_speed=1.5),
    )
    run(engine, BlendSlider(0.0), terrain)


if __name__ == "__main__":
    main()
