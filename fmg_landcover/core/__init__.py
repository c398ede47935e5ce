"""
Core land-cover functionality.
"""

from .mesh import CellMesh, ClimateGrid, Feature, Settlement, Region, build_mesh, mesh_from_points
from .terrain_codes import TerrainCode, TERRAIN_NAMES
from .surfaces import TerrainSurfaces, compute_surfaces
from .terrain import TerrainClassifier, TerrainOptions
from .farmland import FarmlandAllocator, FarmlandOptions, ClaimMap, restore_terrain_base
from .pipeline import LandcoverResult, generate_landcover

__all__ = ['CellMesh', 'ClimateGrid', 'Feature', 'Settlement', 'Region', 'build_mesh',
           'mesh_from_points', 'TerrainCode', 'TERRAIN_NAMES', 'TerrainSurfaces',
           'compute_surfaces', 'TerrainClassifier', 'TerrainOptions', 'FarmlandAllocator',
           'FarmlandOptions', 'ClaimMap', 'restore_terrain_base', 'LandcoverResult',
           'generate_landcover']
