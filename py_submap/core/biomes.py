"""
Biome classification based on temperature and precipitation.

Land cells are looked up in a temperature/precipitation matrix; altitude,
cold and river-fed lowlands override the matrix.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np
import structlog

logger = structlog.get_logger()


class BiomeType(IntEnum):
    """Biome types."""

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


# Share of the cell that can be settled, 0 = uninhabitable
BIOME_HABITABILITY = {
    BiomeType.MARINE: 0,
    BiomeType.HOT_DESERT: 4,
    BiomeType.COLD_DESERT: 10,
    BiomeType.SAVANNA: 22,
    BiomeType.GRASSLAND: 30,
    BiomeType.TROPICAL_SEASONAL_FOREST: 50,
    BiomeType.TEMPERATE_DECIDUOUS_FOREST: 100,
    BiomeType.TROPICAL_RAINFOREST: 80,
    BiomeType.TEMPERATE_RAINFOREST: 90,
    BiomeType.TAIGA: 12,
    BiomeType.TUNDRA: 4,
    BiomeType.GLACIER: 0,
    BiomeType.WETLAND: 12,
}


@dataclass
class BiomeOptions:
    """Biome classification options."""

    alpine_height_threshold: int = 70  # Height above which cells count as highland
    glacier_temperature_threshold: int = -5  # Temperature threshold for glaciers
    wetland_moisture_threshold: float = 40.0  # Moisture needed for wetlands
    wetland_max_height: int = 25  # Wetlands only form in lowlands


# Biome matrix [moisture band][temperature band], hottest band first
BIOME_MATRIX = [
    [BiomeType.HOT_DESERT] * 3 + [BiomeType.COLD_DESERT] * 5 + [BiomeType.TUNDRA] * 2,
    [BiomeType.SAVANNA] * 2 + [BiomeType.GRASSLAND] * 4 + [BiomeType.TAIGA] * 2 + [BiomeType.TUNDRA] * 2,
    [BiomeType.TROPICAL_SEASONAL_FOREST] * 2 + [BiomeType.TEMPERATE_DECIDUOUS_FOREST] * 4
    + [BiomeType.TAIGA] * 3 + [BiomeType.TUNDRA],
    [BiomeType.TROPICAL_RAINFOREST] * 2 + [BiomeType.TEMPERATE_RAINFOREST] * 4
    + [BiomeType.TAIGA] * 3 + [BiomeType.TUNDRA],
    [BiomeType.TROPICAL_RAINFOREST] * 2 + [BiomeType.TEMPERATE_RAINFOREST] * 5
    + [BiomeType.TAIGA] * 2 + [BiomeType.TUNDRA],
]


def _moisture(graph, cell_id: int) -> float:
    precipitation = float(graph.precipitation[cell_id]) if graph.precipitation is not None else 10.0
    if graph.flux is not None and graph.river_ids is not None and graph.river_ids[cell_id]:
        precipitation += max(float(graph.flux[cell_id]) / 10, 2)
    neighbors = graph.cell_neighbors[cell_id]
    if graph.precipitation is not None and neighbors:
        land = [n for n in neighbors if graph.heights[n] >= 20]
        if land:
            precipitation = (precipitation + float(np.mean(graph.precipitation[land]))) / 2
    return 4 + precipitation


def get_biome_id(moisture: float, temperature: float, height: int, has_river: bool,
                 options: Optional[BiomeOptions] = None) -> BiomeType:
    """Classify a single land cell."""
    options = options or BiomeOptions()

    if height < 20:
        return BiomeType.MARINE
    if temperature < options.glacier_temperature_threshold:
        return BiomeType.GLACIER
    if temperature >= 25 and not has_river and moisture < 8:
        return BiomeType.HOT_DESERT
    if (moisture > options.wetland_moisture_threshold and height <= options.wetland_max_height
            and temperature > -2):
        return BiomeType.WETLAND

    moisture_band = min(int(moisture / 5), 4)
    temperature_band = min(max(20 - int(temperature), 0) // 5, 9)
    biome = BIOME_MATRIX[moisture_band][temperature_band]

    if height >= options.alpine_height_threshold and biome not in (BiomeType.GLACIER, BiomeType.TUNDRA):
        return BiomeType.TAIGA if temperature > 0 else BiomeType.TUNDRA
    return biome


def define_biomes(graph, options: Optional[BiomeOptions] = None) -> np.ndarray:
    """
    Classify biomes for all cells and store them on the graph.

    Args:
        graph: Packed VoronoiGraph with climate and river data

    Returns:
        Array of biome ids per cell
    """
    options = options or BiomeOptions()
    n_cells = len(graph.points)
    biomes = np.full(n_cells, BiomeType.MARINE, dtype=np.uint8)
    temperatures = (
        graph.temperatures if graph.temperatures is not None
        else np.full(n_cells, 15, dtype=np.int8)
    )

    for cell_id in np.flatnonzero(graph.heights >= 20):
        has_river = bool(graph.river_ids is not None and graph.river_ids[cell_id])
        biomes[cell_id] = get_biome_id(
            _moisture(graph, cell_id), int(temperatures[cell_id]),
            int(graph.heights[cell_id]), has_river, options,
        )

    graph.biomes = biomes
    logger.info("Biomes defined", unique_biomes=len(np.unique(biomes)))
    return biomes
