"""
Resampling of the lattice scalar fields from a parent map.
"""

import numpy as np
import structlog

from .spatial_index import SpatialIndex

logger = structlog.get_logger()


def resample_primary_grid_data(parent, grid, inverse, parent_index: SpatialIndex = None) -> None:
    """
    Copy height, temperature and precipitation from the parent map.

    Every new lattice point is inverse-projected into parent space and takes
    the fields of the lattice point behind the nearest parent pack cell.

    Args:
        parent: Parent MapData
        grid: New lattice, fields are written in place
        inverse: New -> parent coordinate transform
        parent_index: Index over all parent pack cells, built if omitted
    """
    parent_index = parent_index or SpatialIndex.for_cells(parent.pack)
    n_points = len(grid.points)

    heights = np.zeros(n_points, dtype=np.uint8)
    temperatures = np.zeros(n_points, dtype=np.int8)
    precipitation = np.zeros(n_points, dtype=np.uint8)

    parent_grid = parent.grid
    parent_temperatures = (
        parent_grid.temperatures if parent_grid.temperatures is not None
        else np.zeros(len(parent_grid.points), dtype=np.int8)
    )
    parent_precipitation = (
        parent_grid.precipitation if parent_grid.precipitation is not None
        else np.zeros(len(parent_grid.points), dtype=np.uint8)
    )

    for new_grid_cell, (x, y) in enumerate(grid.points):
        parent_x, parent_y = inverse(x, y)
        parent_pack_cell = parent_index.find(parent_x, parent_y)
        parent_grid_cell = parent.pack.grid_indices[parent_pack_cell]

        heights[new_grid_cell] = parent_grid.heights[parent_grid_cell]
        temperatures[new_grid_cell] = parent_temperatures[parent_grid_cell]
        precipitation[new_grid_cell] = parent_precipitation[parent_grid_cell]

    grid.heights = heights
    grid.temperatures = temperatures
    grid.precipitation = precipitation

    logger.info("Grid fields resampled",
                points=n_points,
                land=int(np.sum(heights >= 20)))
