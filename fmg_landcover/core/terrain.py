"""
Categorical terrain classification.

This module implements:
- Ordered per-cell rules: water and ice overrides, then orography
- Wetland and dune refinement
- Neighborhood majority smoothing
- Terrain base snapshot followed by farmland allocation
"""

from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field

from .biomes import is_desert
from .exceptions import PipelineOrderError
from .farmland import AllocationResult, FarmlandAllocator, FarmlandOptions
from .mesh import SEA_LEVEL, CellMesh, ClimateGrid, Region, Settlement
from .surfaces import TerrainSurfaces, compute_surfaces
from .terrain_codes import TERRAIN_NAMES, WATER_AND_ICE, TerrainCode

logger = structlog.get_logger()

# Tally size for smoothing, indexed by terrain code
_TALLY_SIZE = max(TerrainCode) + 1


class TerrainOptions(BaseModel):
    """Terrain classification thresholds (height units 0..100)."""

    model_config = ConfigDict(populate_by_name=True)

    mountain_height: float = Field(
        default=75, alias="H1", description="Mountains elevation threshold"
    )
    highland_height: float = Field(
        default=55, alias="H0", description="Highlands elevation threshold"
    )
    mountain_slope: float = Field(default=10, alias="S1", description="Mountains slope")
    hill_slope: float = Field(default=4, alias="S0", description="Hills slope")
    mountain_relief: float = Field(default=20, alias="R1", description="Mountains relief")
    highland_relief: float = Field(
        default=10, alias="R0", description="Highlands relief, halved for hills"
    )
    wetland_hydric: float = Field(
        default=28, alias="W1", description="Hydric index for wetlands"
    )
    ice_temperature: float = Field(
        default=-8, alias="iceTemp", description="Temperature threshold for glacier ice"
    )
    smoothing_rounds: int = Field(
        default=1, ge=0, alias="smoothingRounds", description="Majority filter passes"
    )


class TerrainClassifier:
    """Assigns a terrain code to every cell of a mesh."""

    def __init__(
        self,
        mesh: CellMesh,
        climate: Optional[ClimateGrid] = None,
        options: Optional[TerrainOptions] = None,
    ):
        """
        Initialize terrain classifier.

        Args:
            mesh: CellMesh with heights, neighbors and biomes
            climate: Coarse climate grid for temperature, precipitation and lakes
            options: Terrain classification thresholds
        """
        self.mesh = mesh
        self.climate = climate or ClimateGrid()
        self.options = options or TerrainOptions()
        self.surfaces: Optional[TerrainSurfaces] = None

    def classify(self) -> np.ndarray:
        """
        Run the ordered rules for every cell.

        Surfaces are always recomputed so thresholds never see stale data.

        Returns:
            Terrain code array, also stored on the mesh
        """
        logger.info("Classifying terrain", cells=self.mesh.n_cells)

        self.surfaces = compute_surfaces(self.mesh, self.climate)
        terrain = np.zeros(self.mesh.n_cells, dtype=np.uint8)

        for i in range(self.mesh.n_cells):
            terrain[i] = self._classify_cell(i)

        self.mesh.terrain = terrain
        self.mesh.surfaces = self.surfaces
        return terrain

    def _classify_cell(self, cell_id: int) -> TerrainCode:
        o = self.options
        height = self.mesh.heights[cell_id]
        grid_idx = int(self.mesh.grid_indices[cell_id])

        # Hard overrides
        if height < SEA_LEVEL:
            return TerrainCode.OCEAN
        if self.climate.is_lake(grid_idx):
            return TerrainCode.LAKE
        temperature = self.climate.temperature_at(grid_idx)
        if temperature is not None and temperature <= o.ice_temperature:
            return TerrainCode.GLACIER_ICE

        # Orography
        slope = self.surfaces.slope[cell_id]
        relief = self.surfaces.relief[cell_id]
        if height >= o.mountain_height or (
            slope >= o.mountain_slope and relief >= o.mountain_relief
        ):
            return TerrainCode.MOUNTAINS
        if height >= o.highland_height or relief >= o.highland_relief:
            return TerrainCode.HIGHLANDS
        if slope >= o.hill_slope or relief >= o.highland_relief / 2:
            return TerrainCode.HILLS
        return TerrainCode.PLAINS

    def refine_wetlands(self) -> int:
        """Turn wet plains, hills and highlands into wetland."""
        terrain = self._require_terrain()
        surfaces = self._require_surfaces()
        eligible = np.isin(
            terrain, [TerrainCode.PLAINS, TerrainCode.HILLS, TerrainCode.HIGHLANDS]
        )
        wet = eligible & (surfaces.hydric >= self.options.wetland_hydric)
        terrain[wet] = TerrainCode.WETLAND
        return int(np.count_nonzero(wet))

    def refine_dunes(self) -> int:
        """Turn flat desert plains and highlands into dunes."""
        terrain = self._require_terrain()
        slope = self._require_surfaces().slope
        count = 0
        for i in range(self.mesh.n_cells):
            if terrain[i] not in (TerrainCode.PLAINS, TerrainCode.HIGHLANDS):
                continue
            if is_desert(self.mesh.biomes[i]) and slope[i] < self.options.hill_slope:
                terrain[i] = TerrainCode.DUNES
                count += 1
        return count

    def smooth_terrain(
        self, rounds: Optional[int] = None, exclude: Iterable[int] = WATER_AND_ICE
    ) -> None:
        """
        Apply majority-vote smoothing.

        Each non-excluded cell takes the most common code among itself and
        its non-excluded neighbors. The cell's own code is tallied first and
        only a strictly higher count replaces it, so ties keep the current
        code. Every round reads the previous round's codes.

        Args:
            rounds: Number of passes, defaults to the configured count
            exclude: Codes that are never counted and never changed
        """
        terrain = self._require_terrain()
        rounds = self.options.smoothing_rounds if rounds is None else rounds
        excluded = np.zeros(_TALLY_SIZE, dtype=bool)
        excluded[list(exclude)] = True

        for _ in range(rounds):
            smoothed = terrain.copy()
            for i in range(self.mesh.n_cells):
                current = terrain[i]
                if excluded[current]:
                    continue
                smoothed[i] = self._majority_code(i, terrain, excluded)
            terrain[:] = smoothed

        logger.info("Terrain smoothed", rounds=rounds)

    def _majority_code(self, cell_id: int, terrain: np.ndarray, excluded: np.ndarray) -> int:
        counts = np.zeros(_TALLY_SIZE, dtype=np.int32)
        order = [int(terrain[cell_id])]
        counts[order[0]] = 1

        for neighbor in self.mesh.cell_neighbors[cell_id]:
            code = int(terrain[neighbor])
            if excluded[code]:
                continue
            if counts[code] == 0:
                order.append(code)
            counts[code] += 1

        # First code in tally order wins ties
        best, best_count = order[0], -1
        for code in order:
            if counts[code] > best_count:
                best, best_count = code, counts[code]
        return best

    def snapshot_base(self) -> np.ndarray:
        """Preserve classified terrain before farmland allocation mutates it."""
        terrain = self._require_terrain()
        self.mesh.terrain_base = terrain.copy()
        return self.mesh.terrain_base

    def _require_terrain(self) -> np.ndarray:
        if self.mesh.terrain is None:
            raise PipelineOrderError("Terrain must be classified first")
        return self.mesh.terrain

    def _require_surfaces(self) -> TerrainSurfaces:
        if self.surfaces is None:
            raise PipelineOrderError("Surfaces are computed by classify()")
        return self.surfaces

    def generate(
        self,
        settlements: Sequence[Settlement] = (),
        regions: Sequence[Region] = (),
        farmland_options: Optional[FarmlandOptions] = None,
    ) -> Optional[AllocationResult]:
        """
        Run the full land-cover pipeline.

        This executes all steps in order:
        1. Compute surfaces and classify cells
        2. Refine wetlands and dunes
        3. Smooth
        4. Snapshot terrain base
        5. Allocate farmland

        A failing allocation is logged; the classification stays valid.

        Returns:
            AllocationResult, or None if allocation failed
        """
        self.classify()
        wetlands = self.refine_wetlands()
        dunes = self.refine_dunes()
        self.smooth_terrain()
        self.snapshot_base()

        logger.info("Terrain classified", wetlands=wetlands, dunes=dunes)

        try:
            allocator = FarmlandAllocator(self.mesh, settlements, regions, farmland_options)
            return allocator.allocate()
        except Exception:
            logger.exception("Farmland allocation failed")
            return None

    def get_terrain_statistics(self) -> Dict[str, int]:
        """
        Get statistics about terrain distribution.

        Returns:
            Dictionary with terrain names and cell counts
        """
        if self.mesh.terrain is None:
            return {}

        stats = {}
        codes, counts = np.unique(self.mesh.terrain, return_counts=True)
        for code, count in zip(codes, counts):
            stats[TERRAIN_NAMES[TerrainCode(int(code))]] = int(count)
        return stats
