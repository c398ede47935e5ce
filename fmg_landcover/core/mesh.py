"""
Cell mesh, climate grid, settlement and region models.

The land-cover pipeline reads these structures and writes its per-cell
results back onto the mesh. Arrays follow the generator's cell layout:
index ``i`` of every per-cell array refers to cell ``i``.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field
from scipy.spatial import Voronoi

logger = structlog.get_logger()

# Cells below this height are water
SEA_LEVEL = 20


@dataclass
class Feature:
    """Geographic feature of the coarse grid (ocean, lake, island)."""

    id: int
    type: str  # "ocean", "lake", "island"


@dataclass
class ClimateGrid:
    """Coarse grid carrying climate and water features.

    Mesh cells reference it through ``CellMesh.grid_indices``.
    """

    temperatures: Optional[np.ndarray] = None  # grid.cells.temp
    precipitation: Optional[np.ndarray] = None  # grid.cells.prec
    feature_ids: Optional[np.ndarray] = None  # grid.cells.f
    features: List[Optional[Feature]] = field(default_factory=list)

    def precipitation_at(self, grid_idx: int) -> float:
        """Precipitation of a grid cell, 0 when unknown."""
        if self.precipitation is None or not 0 <= grid_idx < len(self.precipitation):
            return 0.0
        return float(self.precipitation[grid_idx])

    def temperature_at(self, grid_idx: int) -> Optional[float]:
        if self.temperatures is None or not 0 <= grid_idx < len(self.temperatures):
            return None
        return float(self.temperatures[grid_idx])

    def is_lake(self, grid_idx: int) -> bool:
        """Check if a grid cell belongs to a feature flagged as lake."""
        if self.feature_ids is None or not 0 <= grid_idx < len(self.feature_ids):
            return False
        feature_id = int(self.feature_ids[grid_idx])
        if not 0 <= feature_id < len(self.features):
            return False
        feature = self.features[feature_id]
        return feature is not None and feature.type == "lake"


@dataclass
class CellMesh:
    """Packed cell mesh consumed by the land-cover pipeline.

    Source fields are provided by the mesh generator. The pipeline-owned
    fields (``terrain`` onwards) are written only by the surface computer,
    the terrain classifier and the farmland allocator.
    """

    heights: np.ndarray  # cells.h, 0..100, >= 20 is land
    cell_neighbors: List[List[int]]  # cells.c
    biomes: np.ndarray  # cells.biome
    areas: np.ndarray  # cells.area
    grid_indices: np.ndarray  # cells.g, index into the climate grid
    river_ids: np.ndarray  # cells.r, non-zero when the cell has a river
    cell_regions: np.ndarray  # cells.state

    # Pipeline output
    terrain: Optional[np.ndarray] = field(default=None)
    terrain_base: Optional[np.ndarray] = field(default=None)
    cultivated_intensity: Optional[np.ndarray] = field(default=None)
    cultivated_by: Optional[np.ndarray] = field(default=None)
    surfaces: Optional[object] = field(default=None)  # TerrainSurfaces

    @property
    def n_cells(self) -> int:
        return len(self.heights)

    def is_land(self, cell_id: int) -> bool:
        return self.heights[cell_id] >= SEA_LEVEL

    def has_river(self, cell_id: int) -> bool:
        return bool(self.river_ids[cell_id])


class Settlement(BaseModel):
    """Settlement (burg) that farms the land around its home cell."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: int = Field(description="Unique settlement identifier, 0 is a placeholder")
    cell_id: int = Field(description="Home cell ID")
    population: float = Field(default=0.0, description="Population in thousands")
    removed: bool = Field(default=False, description="Whether settlement has been removed")
    flying: bool = Field(default=False, description="Airborne settlement, owns no land")
    farmland_area: float = Field(default=0.0, description="Cultivated area claimed")


class Region(BaseModel):
    """Political region (state) receiving cultivated-area totals."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: int = Field(description="Unique region identifier")
    population: float = Field(default=0.0, description="Region population")
    removed: bool = Field(default=False, description="Whether region has been removed")
    cultivated_area: float = Field(default=0.0, description="Total cultivated area")
    cultivated_per_capita: float = Field(
        default=0.0, description="Cultivated area per unit of population"
    )


def build_mesh(
    heights: Sequence[float],
    cell_neighbors: Sequence[Sequence[int]],
    biomes: Optional[Sequence[int]] = None,
    areas: Optional[Sequence[float]] = None,
    grid_indices: Optional[Sequence[int]] = None,
    river_ids: Optional[Sequence[int]] = None,
    cell_regions: Optional[Sequence[int]] = None,
) -> CellMesh:
    """
    Build a CellMesh from plain sequences.

    Optional arrays default to neutral values: biome 0, unit area, each
    cell referencing the climate grid cell with the same index, no rivers
    and region 0.

    Args:
        heights: Height per cell
        cell_neighbors: Neighbor cell IDs per cell
        biomes: Biome code per cell
        areas: Area per cell
        grid_indices: Climate grid index per cell
        river_ids: River ID per cell
        cell_regions: Region ID per cell

    Returns:
        CellMesh ready for the land-cover pipeline
    """
    n_cells = len(heights)
    if len(cell_neighbors) != n_cells:
        raise ValueError(
            f"Neighbor lists ({len(cell_neighbors)}) do not match cell count ({n_cells})"
        )

    def _array(values, default, dtype):
        if values is None:
            return np.full(n_cells, default, dtype=dtype)
        return np.asarray(values, dtype=dtype)

    return CellMesh(
        heights=np.asarray(heights, dtype=np.float32),
        cell_neighbors=[list(neibs) for neibs in cell_neighbors],
        biomes=_array(biomes, 0, np.uint8),
        areas=_array(areas, 1.0, np.float32),
        grid_indices=(
            np.arange(n_cells, dtype=np.int32)
            if grid_indices is None
            else np.asarray(grid_indices, dtype=np.int32)
        ),
        river_ids=_array(river_ids, 0, np.uint16),
        cell_regions=_array(cell_regions, 0, np.uint16),
    )


def build_cell_neighbors(points: np.ndarray) -> List[List[int]]:
    """
    Derive cell neighbor lists from a Voronoi diagram of the cell points.

    Two cells are neighbors when their Voronoi regions share a ridge.

    Args:
        points: Array of [x, y] cell centers

    Returns:
        Sorted neighbor IDs per cell
    """
    vor = Voronoi(points)
    cell_neighbors = [set() for _ in range(len(points))]

    for p1, p2 in vor.ridge_points:
        cell_neighbors[p1].add(int(p2))
        cell_neighbors[p2].add(int(p1))

    return [sorted(neibs) for neibs in cell_neighbors]


def mesh_from_points(points: np.ndarray, heights: Sequence[float], **kwargs) -> CellMesh:
    """
    Build a CellMesh whose adjacency comes from the Voronoi diagram of points.

    Extra keyword arguments are passed to build_mesh.
    """
    points = np.asarray(points, dtype=float)
    logger.info("Building mesh from points", cells=len(points))
    return build_mesh(heights, build_cell_neighbors(points), **kwargs)
