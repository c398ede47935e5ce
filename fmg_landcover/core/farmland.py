"""
Farmland allocation around settlements.

For each settlement, in ascending id order:
1. Derive a cell quota from population
2. Breadth-first search the neighborhood up to ``max_steps`` hops
3. Score eligible cells by suitability with linear distance decay
4. Greedily claim the best cells not already owned by another settlement

Claimed cells become ``cultivated``. Afterwards cultivated area is summed
per region.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field

from .biomes import base_suitability
from .exceptions import PipelineOrderError
from .mesh import SEA_LEVEL, CellMesh, Region, Settlement
from .terrain_codes import FARMLAND_DISALLOWED, TerrainCode

logger = structlog.get_logger()

UNCLAIMED = 0
DISTANCE_DECAY = 0.4
MIN_INTENSITY = 0.2


class FarmlandOptions(BaseModel):
    """Farmland allocation options."""

    model_config = ConfigDict(populate_by_name=True)

    cells_per_thousand: float = Field(
        default=4.0,
        ge=0,
        alias="cellsPerThousand",
        description="Farmland cells allocated per 1000 population",
    )
    max_steps: int = Field(
        default=45, ge=0, alias="maxSteps", description="BFS search radius in cell steps"
    )
    max_slope: float = Field(
        default=6.0, alias="maxSlope", description="Steepest slope that can be farmed"
    )
    min_suitability: float = Field(
        default=5.0, alias="minFSS", description="Minimal suitability score to consider"
    )


@dataclass
class Candidate:
    """Eligible cell found by the neighborhood search."""

    cell: int
    score: float  # suitability with distance decay
    suitability: float
    distance: int


@dataclass
class SettlementAllocation:
    """Outcome of allocating farmland for one settlement."""

    settlement_id: int
    required: int
    retained: int = 0  # owned from a previous run
    candidates: int = 0
    claimed: List[int] = field(default_factory=list)
    area: float = 0.0

    @property
    def under_supplied(self) -> bool:
        return len(self.claimed) + self.retained < self.required


@dataclass
class AllocationResult:
    """Outcome of a full allocation run."""

    settlements: Dict[int, SettlementAllocation] = field(default_factory=dict)
    failed: List[int] = field(default_factory=list)

    @property
    def claimed_cells(self) -> int:
        return sum(len(a.claimed) for a in self.settlements.values())


class ClaimMap:
    """Ownership of cells by settlements, 0 meaning unclaimed."""

    def __init__(self, n_cells: int):
        self.owners = np.zeros(n_cells, dtype=np.int32)

    def owner(self, cell_id: int) -> int:
        return int(self.owners[cell_id])

    def is_claimed(self, cell_id: int) -> bool:
        return self.owners[cell_id] != UNCLAIMED

    def claim(self, cell_id: int, settlement_id: int) -> None:
        if self.is_claimed(cell_id):
            raise ValueError(
                f"Cell {cell_id} already claimed by settlement {self.owner(cell_id)}"
            )
        self.owners[cell_id] = settlement_id

    def cells_of(self, settlement_id: int) -> List[int]:
        return np.flatnonzero(self.owners == settlement_id).tolist()


def required_cells(population: float, cells_per_thousand: float) -> int:
    """Farmland quota of a settlement, rounded half up."""
    return max(0, math.floor(population * cells_per_thousand + 0.5))


def farmland_suitability(
    biome: int, slope: Optional[float] = None, hydric: Optional[float] = None
) -> float:
    """
    Farmland suitability score of a cell.

    Biome base plus a capped wetness bonus minus a capped slope penalty,
    floored at 0. Missing surfaces contribute nothing.
    """
    score = float(base_suitability(biome))
    if hydric is not None:
        score += min(float(hydric), 20.0)
    if slope is not None:
        score -= min(float(slope) * 2, 20.0)
    return max(0.0, score)


def find_candidates(
    mesh: CellMesh,
    start: int,
    options: FarmlandOptions,
    slope: Optional[np.ndarray] = None,
    hydric: Optional[np.ndarray] = None,
) -> List[Candidate]:
    """
    Collect scored farmland candidates around a home cell.

    Cells are visited breadth-first; a cell further than ``max_steps`` hops
    is neither scored nor expanded. Candidates are returned in discovery
    order.

    Args:
        mesh: Cell mesh with terrain classified
        start: Home cell ID
        options: Farmland options
        slope: Slope surface, slope filtering skipped without it
        hydric: Hydric surface, no wetness bonus without it

    Returns:
        List of Candidate objects
    """
    n_cells = mesh.n_cells
    distance = np.zeros(n_cells, dtype=np.int32)
    visited = np.zeros(n_cells, dtype=bool)
    visited[start] = True
    queue = deque([start])
    candidates = []

    while queue:
        cell = queue.popleft()
        d = int(distance[cell])
        if d > options.max_steps:
            continue

        allowed = (
            int(mesh.terrain[cell]) not in FARMLAND_DISALLOWED
            and (slope is None or slope[cell] <= options.max_slope)
            and mesh.heights[cell] >= SEA_LEVEL
        )
        if allowed:
            suitability = farmland_suitability(
                mesh.biomes[cell],
                None if slope is None else slope[cell],
                None if hydric is None else hydric[cell],
            )
            if suitability >= options.min_suitability:
                candidates.append(
                    Candidate(
                        cell=cell,
                        score=suitability - d * DISTANCE_DECAY,
                        suitability=suitability,
                        distance=d,
                    )
                )

        for neighbor in mesh.cell_neighbors[cell]:
            if visited[neighbor]:
                continue
            visited[neighbor] = True
            distance[neighbor] = d + 1
            queue.append(neighbor)

    return candidates


def cultivated_intensity(candidate: Candidate, max_steps: int) -> float:
    """Blend normalized suitability and proximity, floored at 0.2."""
    suitability_norm = min(candidate.suitability / 30, 1.0)
    proximity_norm = max(0.0, 1 - candidate.distance / max(1, max_steps))
    return max(MIN_INTENSITY, 0.6 * suitability_norm + 0.4 * proximity_norm)


def aggregate_regions(mesh: CellMesh, regions: Sequence[Region]) -> None:
    """
    Recompute cultivated area totals per region.

    Totals are reset first, then the area of every cultivated cell is added
    to its region. Removed or unknown regions are skipped.
    """
    by_id = {}
    for region in regions:
        region.cultivated_area = 0.0
        region.cultivated_per_capita = 0.0
        if not region.removed:
            by_id[region.id] = region

    if mesh.terrain is None:
        return

    for cell in np.flatnonzero(mesh.terrain == TerrainCode.CULTIVATED):
        region = by_id.get(int(mesh.cell_regions[cell]))
        if region is None:
            continue
        region.cultivated_area += float(mesh.areas[cell])

    for region in by_id.values():
        if region.population > 0 and region.cultivated_area:
            region.cultivated_per_capita = region.cultivated_area / region.population


def restore_terrain_base(mesh: CellMesh) -> None:
    """
    Undo a previous allocation by restoring the classified terrain.

    Allows the allocator to run again without re-classifying.
    """
    if mesh.terrain_base is None:
        raise PipelineOrderError("No terrain base snapshot to restore; classify terrain first")

    mesh.terrain = mesh.terrain_base.copy()
    mesh.cultivated_by = np.zeros(mesh.n_cells, dtype=np.int32)
    mesh.cultivated_intensity = np.zeros(mesh.n_cells, dtype=np.float32)


class FarmlandAllocator:
    """Allocates farmland cells to settlements."""

    def __init__(
        self,
        mesh: CellMesh,
        settlements: Sequence[Settlement],
        regions: Optional[Sequence[Region]] = None,
        options: Optional[FarmlandOptions] = None,
    ):
        """
        Initialize farmland allocator.

        Args:
            mesh: CellMesh with terrain classified; surfaces are optional
            settlements: Settlements to supply
            regions: Regions receiving cultivated-area totals
            options: Farmland allocation options
        """
        self.mesh = mesh
        self.settlements = settlements
        self.regions = regions or []
        self.options = options or FarmlandOptions()

        surfaces = mesh.surfaces
        self.slope = getattr(surfaces, "slope", None)
        self.hydric = getattr(surfaces, "hydric", None)

    def _prepare(self) -> ClaimMap:
        """
        Validate the mesh and build the claim map for this run.

        Cells still cultivated by a previous run keep their owner and
        intensity. Cultivated cells without an owner are restored from the
        terrain base.
        """
        mesh = self.mesh
        if mesh.terrain is None:
            raise PipelineOrderError("Terrain must be classified before farmland allocation")

        n_cells = mesh.n_cells
        if mesh.terrain_base is None or len(mesh.terrain_base) != n_cells:
            mesh.terrain_base = mesh.terrain.copy()

        cultivated = mesh.terrain == TerrainCode.CULTIVATED
        claims = ClaimMap(n_cells)
        intensity = np.zeros(n_cells, dtype=np.float32)

        if cultivated.any():
            if mesh.cultivated_by is not None and len(mesh.cultivated_by) == n_cells:
                claims.owners[cultivated] = mesh.cultivated_by[cultivated]

            orphaned = cultivated & (claims.owners == UNCLAIMED)
            if orphaned.any():
                if np.any(mesh.terrain_base[orphaned] == TerrainCode.CULTIVATED):
                    raise PipelineOrderError(
                        "Cultivated cells have no owner and no terrain base to restore"
                    )
                mesh.terrain[orphaned] = mesh.terrain_base[orphaned]

            retained = cultivated & ~orphaned
            previous = mesh.cultivated_intensity
            if previous is not None and len(previous) == n_cells:
                intensity[retained] = previous[retained]
            intensity[retained] = np.clip(intensity[retained], MIN_INTENSITY, 1.0)

            logger.warning(
                "Terrain still holds cultivated cells from a previous run",
                retained=int(np.count_nonzero(retained)),
                restored=int(np.count_nonzero(orphaned)),
            )

        mesh.cultivated_intensity = intensity
        return claims

    def _active_settlements(self) -> List[Settlement]:
        active = [
            s
            for s in self.settlements
            if s.id != UNCLAIMED and not s.removed and not s.flying and s.population > 0
        ]
        return sorted(active, key=lambda s: s.id)

    def allocate(self) -> AllocationResult:
        """
        Run farmland allocation for all settlements.

        Settlements are processed strictly in ascending id order: a cell
        claimed by an earlier settlement is never available to a later one.
        A failure while processing one settlement is logged and does not stop
        the others.

        Returns:
            AllocationResult with per-settlement outcomes
        """
        logger.info("Allocating farmland", settlements=len(self.settlements))

        claims = self._prepare()
        for settlement in self.settlements:
            # Cells kept from a previous run still count as farmland
            owned = claims.owners == settlement.id
            if settlement.id == UNCLAIMED:
                owned[:] = False
            settlement.farmland_area = float(self.mesh.areas[owned].sum())

        self.mesh.cultivated_by = claims.owners
        result = AllocationResult()

        for settlement in self._active_settlements():
            try:
                allocation = self.allocate_settlement(settlement, claims)
            except Exception:
                logger.exception(
                    "Farmland allocation failed for settlement",
                    settlement_id=settlement.id,
                )
                result.failed.append(settlement.id)
                continue

            if allocation is not None:
                result.settlements[settlement.id] = allocation

        aggregate_regions(self.mesh, self.regions)

        under_supplied = sum(1 for a in result.settlements.values() if a.under_supplied)
        logger.info(
            "Farmland allocation completed",
            claimed_cells=result.claimed_cells,
            under_supplied=under_supplied,
            failed=len(result.failed),
        )
        return result

    def allocate_settlement(
        self, settlement: Settlement, claims: ClaimMap
    ) -> Optional[SettlementAllocation]:
        """
        Claim farmland for one settlement.

        Cells the settlement still owns from a previous run count toward
        its quota.

        Args:
            settlement: Settlement to supply
            claims: Claim map shared by all settlements of the run, updated
                in place

        Returns:
            SettlementAllocation, or None when the quota is 0
        """
        required = required_cells(settlement.population, self.options.cells_per_thousand)
        if not required:
            return None

        retained = len(claims.cells_of(settlement.id))
        candidates = find_candidates(
            self.mesh, settlement.cell_id, self.options, self.slope, self.hydric
        )
        candidates.sort(key=lambda c: c.score, reverse=True)

        allocation = SettlementAllocation(
            settlement_id=settlement.id,
            required=required,
            retained=retained,
            candidates=len(candidates),
        )
        terrain = self.mesh.terrain

        for candidate in candidates:
            if len(allocation.claimed) + retained >= required:
                break
            cell = candidate.cell
            if claims.is_claimed(cell):
                continue
            # Wetlands are never cultivated
            if terrain[cell] == TerrainCode.WETLAND:
                continue

            claims.claim(cell, settlement.id)
            terrain[cell] = TerrainCode.CULTIVATED
            self.mesh.cultivated_intensity[cell] = cultivated_intensity(
                candidate, self.options.max_steps
            )
            allocation.claimed.append(cell)
            allocation.area += float(self.mesh.areas[cell])

        settlement.farmland_area += allocation.area

        if allocation.under_supplied:
            logger.debug(
                "Settlement under-supplied",
                settlement_id=settlement.id,
                required=required,
                claimed=len(allocation.claimed),
            )
        return allocation
