"""
River generation for the rebuilt cell graph.

Water is drained from the highest land cell to the lowest; every cell passes
its accumulated flux to its lowest neighbour and a river forms once the flux
exceeds ``min_river_flux``.
"""

import math
from dataclasses import dataclass
from typing import Dict, List

import numpy as np
import structlog

from .entities import River

logger = structlog.get_logger()


@dataclass
class HydrologyOptions:
    """Hydrology calculation options."""
    min_river_flux: float = 30.0  # Minimum flux to form a visible river
    min_river_cells: int = 3  # Shorter rivers are dropped
    precipitation_modifier: float = 1.0


def _lowest_neighbor(graph, cell_id: int) -> int:
    neighbors = graph.cell_neighbors[cell_id]
    return min(neighbors, key=lambda n: graph.heights[n])


def generate_rivers(graph, options: HydrologyOptions = None) -> List[River]:
    """
    Drain water over the packed graph and trace rivers.

    Sets ``flux``, ``river_ids`` and ``confluences`` on the graph.

    Args:
        graph: Packed VoronoiGraph with heights and precipitation
        options: Hydrology options

    Returns:
        List of rivers ordered by id (ids start at 1)
    """
    options = options or HydrologyOptions()
    n_cells = len(graph.points)

    flux = np.zeros(n_cells, dtype=np.float32)
    river_ids = np.zeros(n_cells, dtype=np.uint16)
    confluences = np.zeros(n_cells, dtype=np.uint8)
    precipitation = (
        graph.precipitation if graph.precipitation is not None
        else np.zeros(n_cells, dtype=np.uint8)
    )

    river_cells: Dict[int, List[int]] = {}
    river_parents: Dict[int, int] = {}
    next_river_id = 1

    land = np.flatnonzero(graph.heights >= 20)
    land = land[np.argsort(-graph.heights[land].astype(int), kind="stable")]

    for cell_id in land:
        flux[cell_id] += precipitation[cell_id] * options.precipitation_modifier

        if graph.cell_border_flags[cell_id] or not graph.cell_neighbors[cell_id]:
            continue  # water leaves the map

        target = _lowest_neighbor(graph, cell_id)
        if graph.heights[cell_id] <= graph.heights[target]:
            continue  # depression, water evaporates

        if flux[cell_id] < options.min_river_flux:
            if graph.heights[target] >= 20:
                flux[target] += flux[cell_id]
            continue

        if not river_ids[cell_id]:
            river_ids[cell_id] = next_river_id
            river_cells[next_river_id] = [int(cell_id)]
            next_river_id += 1

        river_id = int(river_ids[cell_id])
        river_cells[river_id].append(int(target))

        if graph.heights[target] < 20:
            continue  # river mouth

        if river_ids[target]:
            confluences[target] += 1
            if river_ids[target] != river_id:
                river_parents.setdefault(river_id, int(river_ids[target]))
        else:
            river_ids[target] = river_id

        flux[target] += flux[cell_id]

    # Drop tiny rivers
    rivers = []
    renumber = {}
    for river_id, cells in river_cells.items():
        if len(cells) < options.min_river_cells:
            river_ids[river_ids == river_id] = 0
            continue
        renumber[river_id] = len(rivers) + 1
        rivers.append(River(id=renumber[river_id], cells=cells,
                            source=cells[0], mouth=cells[-1]))

    remap = np.zeros(next_river_id, dtype=np.uint16)
    for old_id, new_id in renumber.items():
        remap[old_id] = new_id
    river_ids = remap[river_ids]

    for old_id, new_id in renumber.items():
        rivers[new_id - 1].parent = renumber.get(river_parents.get(old_id, 0), 0)

    graph.flux = flux
    graph.river_ids = river_ids
    graph.confluences = confluences

    logger.info("Rivers generated", rivers=len(rivers), dropped=len(river_cells) - len(rivers))
    return rivers


def _river_length(graph, cells: List[int]) -> float:
    points = graph.points[cells]
    return float(np.sum(np.hypot(*np.diff(points, axis=0).T))) if len(cells) > 1 else 0.0


def specify_rivers(rivers: List[River], graph) -> None:
    """
    Fill in discharge, length, width, type and basin for every river.
    """
    by_id = {river.id: river for river in rivers}

    for river in rivers:
        river.source = river.cells[0]
        river.mouth = river.cells[-1]
        last_land = next((c for c in reversed(river.cells) if graph.heights[c] >= 20), river.mouth)
        river.discharge = float(graph.flux[last_land]) if graph.flux is not None else 0.0
        river.length = round(_river_length(graph, river.cells), 2)
        river.width = round(0.8 * math.log1p(river.discharge) ** 1.2, 2)
        if river.discharge > 1000:
            river.type = "River"
        elif river.discharge > 200:
            river.type = "Creek"
        else:
            river.type = "Brook"

        basin = river
        seen = {river.id}
        while basin.parent and basin.parent in by_id and basin.parent not in seen:
            seen.add(basin.parent)
            basin = by_id[basin.parent]
        river.basin = basin.id
