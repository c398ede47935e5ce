"""Categorical land-cover codes shared by the classifier and the allocator."""

from enum import IntEnum


class TerrainCode(IntEnum):
    """Closed set of terrain codes written to ``CellMesh.terrain``."""

    OCEAN = 1
    LAKE = 2
    GLACIER_ICE = 3
    MOUNTAINS = 4
    HIGHLANDS = 5
    HILLS = 6
    PLAINS = 7
    WETLAND = 8
    DUNES = 9
    CULTIVATED = 10


# Names used by downstream exporters
TERRAIN_NAMES = {
    TerrainCode.OCEAN: "ocean",
    TerrainCode.LAKE: "lake",
    TerrainCode.GLACIER_ICE: "glacier_ice",
    TerrainCode.MOUNTAINS: "mountains",
    TerrainCode.HIGHLANDS: "highlands",
    TerrainCode.HILLS: "hills",
    TerrainCode.PLAINS: "plains",
    TerrainCode.WETLAND: "wetland",
    TerrainCode.DUNES: "dunes",
    TerrainCode.CULTIVATED: "cultivated",
}

# Never counted or changed by smoothing
WATER_AND_ICE = frozenset(
    {TerrainCode.OCEAN, TerrainCode.LAKE, TerrainCode.GLACIER_ICE}
)

# Never offered to farmland allocation
FARMLAND_DISALLOWED = frozenset(
    {
        TerrainCode.OCEAN,
        TerrainCode.LAKE,
        TerrainCode.GLACIER_ICE,
        TerrainCode.MOUNTAINS,
        TerrainCode.DUNES,
    }
)
