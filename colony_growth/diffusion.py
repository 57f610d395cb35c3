"""
Nutrient diffusion solver.

One synchronous stencil pass per step: each site moves toward the mean of
itself and its (edge-clipped) Moore neighbors,

    new = old + diffusion_rate * (mean - old),   clamped at 0

computed from the previous field only and written into a new grid.
"""

from __future__ import annotations

import numpy as np

from .grid import RESOURCES, Grid, GridCell, NutrientState, ResourceField


def neighborhood_sum(arr: np.ndarray) -> np.ndarray:
    """Sum over each site's 3x3 block; zero padding, so no wraparound."""
    H, W = arr.shape
    padded = np.pad(arr, 1, mode="constant")
    out = np.zeros((H, W), dtype=float)
    for dy in range(3):
        for dx in range(3):
            out += padded[dy:dy + H, dx:dx + W]
    return out


def diffuse_field(levels: np.ndarray, rates: np.ndarray) -> np.ndarray:
    counts = neighborhood_sum(np.ones_like(levels, dtype=float))
    mean = neighborhood_sum(levels) / counts
    return np.maximum(0.0, levels + rates * (mean - levels))


def diffuse(grid: Grid, copy_cells: bool = True) -> Grid:
    """
    Return a new grid with both resources diffused one step.

    With copy_cells=False the cell records are moved over as they are; only
    pass that for a grid nobody else holds.
    """
    new_levels = {
        name: diffuse_field(grid.levels(name), grid.diffusion_rates(name)) for name in RESOURCES
    }
    sites = []
    for row in grid.sites:
        new_row = []
        for site in row:
            nutrient = NutrientState(
                oxygen=ResourceField(
                    float(new_levels["oxygen"][site.y, site.x]), site.nutrient.oxygen.diffusion_rate
                ),
                glucose=ResourceField(
                    float(new_levels["glucose"][site.y, site.x]), site.nutrient.glucose.diffusion_rate
                ),
            )
            cell = site.cell
            if copy_cells and cell is not None:
                cell = cell.copy()
            new_row.append(GridCell(x=site.x, y=site.y, cell=cell, nutrient=nutrient))
        sites.append(new_row)
    return Grid(sites)
