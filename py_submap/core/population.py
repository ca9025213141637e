"""
Cell ranking: suitability and rural population per cell.
"""

from typing import List, Optional

import numpy as np
import structlog

from .biomes import BIOME_HABITABILITY, BiomeType
from .features import LAND_COAST

logger = structlog.get_logger()


def _normalize(value: float, mean: float, max_val: float) -> float:
    if max_val == 0 or mean == 0:
        return 0
    return min(1, value / mean) * (1 - mean / max_val)


def rank_cells(graph, features: Optional[List] = None) -> None:
    """
    Calculate cell suitability and population.

    Sets ``cell_suitability`` (int16) and ``cell_population`` (float32) on
    the graph. Water and uninhabitable cells score 0.
    """
    n_cells = len(graph.points)
    features = features or []
    suitability = np.zeros(n_cells, dtype=np.int16)
    population = np.zeros(n_cells, dtype=np.float32)

    flux = graph.flux if graph.flux is not None else np.zeros(n_cells)
    confluences = graph.confluences if graph.confluences is not None else np.zeros(n_cells)
    biomes = graph.biomes if graph.biomes is not None else np.full(n_cells, BiomeType.GRASSLAND)
    areas = graph.cell_areas if graph.cell_areas is not None else np.ones(n_cells)

    land_flux = flux[graph.heights >= 20]
    fl_mean = float(np.median(land_flux[land_flux > 0])) if np.any(land_flux > 0) else 0.0
    fl_max = float(np.max(flux) + np.max(confluences)) if n_cells else 0.0
    area_mean = float(np.mean(areas)) or 1.0

    for i in np.flatnonzero(graph.heights >= 20):
        habitability = BIOME_HABITABILITY.get(BiomeType(int(biomes[i])), 0)
        if habitability == 0:
            continue

        s = float(habitability)

        # Rivers and confluences are highly valued
        if fl_mean:
            s += _normalize(float(flux[i]) + float(confluences[i]), fl_mean, fl_max) * 250

        # Low elevation is valued, high is not
        s -= (int(graph.heights[i]) - 50) / 5

        if graph.distance_field is not None and graph.distance_field[i] == LAND_COAST:
            if graph.river_ids is not None and graph.river_ids[i]:
                s += 15  # estuary

            haven = int(graph.haven[i]) if graph.haven is not None else 0
            feature_id = int(graph.feature_ids[haven]) if graph.feature_ids is not None else 0
            feature = features[feature_id] if 0 < feature_id < len(features) else None
            if feature is not None and feature.type == "lake":
                s += 30 if feature.group == "freshwater" else 10
            elif feature is not None and feature.type == "ocean":
                s += 25
        else:
            s -= 5  # non-coastal penalty

        if s <= 0:
            continue

        suitability[i] = min(int(s), 32767)
        population[i] = s * float(areas[i]) / area_mean / 100

    graph.cell_suitability = suitability
    graph.cell_population = population

    logger.info("Cells ranked",
                populated=int(np.sum(population > 0)),
                total_population=round(float(np.sum(population)), 2))
