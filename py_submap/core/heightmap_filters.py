"""
Post-processing filters for a resampled heightmap.
"""

import numpy as np
import structlog

from .spatial_index import SpatialIndex

logger = structlog.get_logger()


def smooth_heightmap(grid) -> None:
    """
    Smooth heights by averaging each cell with its neighbours.

    Cells are processed in index order and updated in place. Water stays
    water (at most 19) and land stays land (at least 20).
    """
    heights = grid.heights
    changed = 0

    for i in range(len(heights)):
        heights_list = [int(heights[i])] + [int(heights[n]) for n in grid.cell_neighbors[i]]
        mean_height = float(np.mean(heights_list))

        if heights[i] < 20:
            new_height = int(min(mean_height, 19))
        else:
            new_height = int(max(mean_height, 20))

        if new_height != heights[i]:
            changed += 1
        heights[i] = new_height

    logger.info("Heightmap smoothed", changed=changed)


def depress_rivers(parent, grid, inverse, parent_index: SpatialIndex = None) -> None:
    """
    Lower by 1 every land cell that lies on a parent river.

    Cells at 20 are left alone so no land turns into water.
    """
    parent_index = parent_index or SpatialIndex.for_cells(parent.pack)
    river_ids = parent.pack.river_ids
    if river_ids is None:
        logger.info("Parent map has no rivers, nothing to depress")
        return

    depressed = 0
    for new_grid_cell, (x, y) in enumerate(grid.points):
        parent_x, parent_y = inverse(x, y)
        parent_pack_cell = parent_index.find(parent_x, parent_y)
        has_river = bool(river_ids[parent_pack_cell])
        if has_river and grid.heights[new_grid_cell] > 20:
            grid.heights[new_grid_cell] -= 1
            depressed += 1

    logger.info("Riverbeds depressed", cells=depressed)
