"""Pole of inaccessibility for groups of cells."""

from collections import defaultdict
from typing import Callable, Dict, Tuple

import numpy as np
import structlog

from .spatial_index import SpatialIndex

logger = structlog.get_logger()


def get_poles_of_inaccessibility(graph, key_fn: Callable[[int], int]) -> Dict[int, Tuple[float, float]]:
    """
    Find a representative point for every group of cells.

    The pole of a group is the point of the group cell lying farthest from
    any cell of another group and from the map edge.

    Args:
        graph: VoronoiGraph with cell points
        key_fn: Maps a cell id to its group id; group 0 is ignored

    Returns:
        Mapping from group id to (x, y)
    """
    groups = defaultdict(list)
    keys = np.array([int(key_fn(cell_id)) for cell_id in range(len(graph.points))], dtype=np.int64)
    for cell_id, key in enumerate(keys):
        if key:
            groups[int(key)].append(cell_id)

    poles = {}
    for key, cells in groups.items():
        outside = SpatialIndex.for_cells(graph, np.flatnonzero(keys != key))

        best_cell, best_distance = cells[0], -1.0
        for cell_id in cells:
            x, y = graph.points[cell_id]
            edge = min(x, y, graph.graph_width - x, graph.graph_height - y)
            distance = min(outside.distance(x, y), edge)
            if distance > best_distance:
                best_cell, best_distance = cell_id, distance

        x, y = graph.points[best_cell]
        poles[key] = (round(float(x), 2), round(float(y), 2))

    logger.debug("Poles of inaccessibility found", groups=len(poles))
    return poles
