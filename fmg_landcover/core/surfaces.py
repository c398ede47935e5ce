"""
Environmental surfaces derived from heights and climate.

Produces three per-cell float arrays used by terrain classification and
farmland allocation:
- slope: mean absolute height difference to neighbors
- relief: height range among neighbors
- hydric: wetness index from precipitation, rivers and slope
"""

from typing import NamedTuple, Optional

import numpy as np
import structlog

from .mesh import SEA_LEVEL, CellMesh, ClimateGrid

logger = structlog.get_logger()

RIVER_BONUS = 20.0
SLOPE_PENALTY_FACTOR = 0.8
MAX_SLOPE_PENALTY = 25.0


class TerrainSurfaces(NamedTuple):
    """Per-cell surfaces, recomputed on every run."""

    slope: np.ndarray
    relief: np.ndarray
    hydric: np.ndarray


def compute_slope_relief(mesh: CellMesh):
    """
    Calculate slope and relief for every cell.

    Cells without neighbors keep 0 for both values.

    Returns:
        Tuple of (slope, relief) float32 arrays
    """
    n_cells = mesh.n_cells
    slope = np.zeros(n_cells, dtype=np.float32)
    relief = np.zeros(n_cells, dtype=np.float32)
    heights = mesh.heights

    for i in range(n_cells):
        neibs = mesh.cell_neighbors[i]
        if not neibs:
            continue

        neighbor_heights = heights[neibs].astype(np.float64)
        slope[i] = np.abs(float(heights[i]) - neighbor_heights).mean()
        relief[i] = max(0.0, neighbor_heights.max() - neighbor_heights.min())

    return slope, relief


def compute_hydric(
    mesh: CellMesh, slope: np.ndarray, climate: Optional[ClimateGrid] = None
) -> np.ndarray:
    """
    Calculate the hydric (wetness) index for every cell.

    Water cells get 0. Land cells combine precipitation of their climate
    cell, a bonus for rivers and a slope penalty, floored at 0.

    Args:
        mesh: Cell mesh
        slope: Slope surface from compute_slope_relief
        climate: Coarse climate grid, precipitation defaults to 0 without it

    Returns:
        Hydric index float32 array
    """
    climate = climate or ClimateGrid()
    hydric = np.zeros(mesh.n_cells, dtype=np.float32)

    for i in range(mesh.n_cells):
        if mesh.heights[i] < SEA_LEVEL:
            continue

        precipitation = climate.precipitation_at(int(mesh.grid_indices[i]))
        river_bonus = RIVER_BONUS if mesh.has_river(i) else 0.0
        slope_penalty = min(float(slope[i]) * SLOPE_PENALTY_FACTOR, MAX_SLOPE_PENALTY)
        hydric[i] = max(0.0, precipitation + river_bonus - slope_penalty)

    return hydric


def compute_surfaces(
    mesh: CellMesh, climate: Optional[ClimateGrid] = None
) -> TerrainSurfaces:
    """
    Compute slope, relief and hydric surfaces.

    Pure function of the mesh and climate: nothing is written back, and
    identical input always gives identical output.
    """
    logger.debug("Computing terrain surfaces", cells=mesh.n_cells)

    slope, relief = compute_slope_relief(mesh)
    hydric = compute_hydric(mesh, slope, climate)

    return TerrainSurfaces(slope=slope, relief=relief, hydric=hydric)
