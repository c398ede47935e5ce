"""
Biome codes used by land-cover classification and farmland scoring.

Codes follow the generator's default biome table, so the ``biomes`` array
of a mesh can be interpreted directly.
"""

from enum import IntEnum
from typing import Dict


class Biome(IntEnum):
    """Default biome set of the map generator."""

    MARINE = 0
    HOT_DESERT = 1
    COLD_DESERT = 2
    SAVANNA = 3
    GRASSLAND = 4
    TROPICAL_SEASONAL_FOREST = 5
    TEMPERATE_DECIDUOUS_FOREST = 6
    TROPICAL_RAINFOREST = 7
    TEMPERATE_RAINFOREST = 8
    TAIGA = 9
    TUNDRA = 10
    GLACIER = 11
    WETLAND = 12


DESERT_BIOMES = frozenset({Biome.HOT_DESERT, Biome.COLD_DESERT})

# Base farmland suitability: open grassland best, forest edges moderate,
# deserts poor
FARMLAND_BASE_SUITABILITY: Dict[Biome, int] = {
    Biome.MARINE: 8,
    Biome.HOT_DESERT: 4,
    Biome.COLD_DESERT: 4,
    Biome.SAVANNA: 18,
    Biome.GRASSLAND: 25,
    Biome.TROPICAL_SEASONAL_FOREST: 12,
    Biome.TEMPERATE_DECIDUOUS_FOREST: 12,
    Biome.TROPICAL_RAINFOREST: 8,
    Biome.TEMPERATE_RAINFOREST: 12,
    Biome.TAIGA: 8,
    Biome.TUNDRA: 8,
    Biome.GLACIER: 8,
    Biome.WETLAND: 8,
}

# Codes outside the biome table score like the unlisted biomes
DEFAULT_BASE_SUITABILITY = 8


def base_suitability(biome_code: int) -> int:
    """Base farmland suitability for a raw biome code."""
    try:
        return FARMLAND_BASE_SUITABILITY[Biome(int(biome_code))]
    except ValueError:
        return DEFAULT_BASE_SUITABILITY


def is_desert(biome_code: int) -> bool:
    return int(biome_code) in DESERT_BIOMES
