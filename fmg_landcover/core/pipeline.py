"""
Land-cover pipeline entry point.

Data flows strictly downstream:
surfaces -> classification -> smoothing -> terrain base -> farmland -> regions
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import structlog

from .farmland import AllocationResult, FarmlandOptions
from .mesh import CellMesh, ClimateGrid, Region, Settlement
from .surfaces import TerrainSurfaces
from .terrain import TerrainClassifier, TerrainOptions

logger = structlog.get_logger()


@dataclass
class LandcoverResult:
    """Summary of one pipeline run."""

    surfaces: TerrainSurfaces
    terrain_counts: Dict[str, int]
    allocation: Optional[AllocationResult]


def generate_landcover(
    mesh: CellMesh,
    climate: Optional[ClimateGrid] = None,
    settlements: Sequence[Settlement] = (),
    regions: Sequence[Region] = (),
    terrain_options: Optional[TerrainOptions] = None,
    farmland_options: Optional[FarmlandOptions] = None,
) -> LandcoverResult:
    """
    Classify terrain and allocate farmland for a mesh.

    Results are written onto the mesh, settlements and regions.

    Args:
        mesh: Cell mesh to classify
        climate: Coarse climate grid
        settlements: Settlements receiving farmland
        regions: Regions receiving cultivated-area totals
        terrain_options: Classification thresholds, from settings if omitted
        farmland_options: Allocation options, from settings if omitted

    Returns:
        LandcoverResult
    """
    logger.info(
        "Starting land-cover generation",
        cells=mesh.n_cells,
        settlements=len(settlements),
        regions=len(regions),
    )

    if terrain_options is None or farmland_options is None:
        from ..config import get_settings

        settings = get_settings()
        terrain_options = terrain_options or settings.terrain
        farmland_options = farmland_options or settings.farmland

    classifier = TerrainClassifier(mesh, climate, terrain_options)
    allocation = classifier.generate(settlements, regions, farmland_options)
    terrain_counts = classifier.get_terrain_statistics()

    logger.info("Land-cover generation completed", terrain=terrain_counts)
    return LandcoverResult(
        surfaces=classifier.surfaces,
        terrain_counts=terrain_counts,
        allocation=allocation,
    )
