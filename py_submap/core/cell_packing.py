"""
Cell packing (reGraph).

Builds the packed cell graph from a marked-up lattice:
1. Filters out deep ocean cells
2. Adds intermediate points along coastlines
3. Creates a new Voronoi graph with fewer, more relevant cells

Every packed cell keeps a back-reference to the lattice point it came from
(``grid_indices``), which is what the resampling pipeline follows when it
copies scalar fields between maps.
"""

import numpy as np
import structlog

from .errors import EmptyMapError
from .features import LAND_COAST, WATER_COAST, DEEP_WATER
from .voronoi_graph import VoronoiGraph, build_graph, polygon_area

logger = structlog.get_logger()


def regraph(grid: VoronoiGraph) -> VoronoiGraph:
    """
    Create the packed cell graph from a lattice.

    Args:
        grid: Lattice with heights and ``distance_field`` populated by
              ``Features.markup_grid()``

    Returns:
        New packed VoronoiGraph with ``grid_indices`` and ``cell_areas``
    """
    logger.info("Starting reGraph operation", original_cells=len(grid.points))

    if grid.distance_field is None:
        raise ValueError("grid.distance_field not found. Call Features.markup_grid() first!")

    cell_types = grid.distance_field
    features = grid.features or []

    new_points = []
    new_grid_indices = []

    spacing_squared = grid.spacing ** 2

    for i in range(len(grid.points)):
        cell_type = cell_types[i]
        height = grid.heights[i]

        if height < 20 and cell_type != WATER_COAST and cell_type != DEEP_WATER:
            continue  # exclude all deep ocean points

        if cell_type == DEEP_WATER:
            feature_id = grid.feature_ids[i] if grid.feature_ids is not None else 0
            in_lake = 0 < feature_id < len(features) and features[feature_id].type == "lake"
            if i % 4 == 0 or in_lake:
                continue  # exclude non-coastal lake points

        x, y = grid.points[i]
        new_points.append([x, y])
        new_grid_indices.append(i)

        # Add additional points for cells along coast
        if cell_type == LAND_COAST or cell_type == WATER_COAST:
            if grid.cell_border_flags[i]:
                continue

            for neighbor_idx in grid.cell_neighbors[i]:
                if i > neighbor_idx:
                    continue
                if cell_types[neighbor_idx] != cell_type:
                    continue

                nx, ny = grid.points[neighbor_idx]
                dist_squared = (y - ny) ** 2 + (x - nx) ** 2
                if dist_squared < spacing_squared:
                    continue  # Too close

                new_points.append([round((x + nx) / 2, 1), round((y + ny) / 2, 1)])
                new_grid_indices.append(i)

    if not new_points:
        raise EmptyMapError("No land or coastal cells left to pack")

    logger.info("Points collected for packing",
                original=len(grid.points),
                packed=len(new_points),
                reduction_pct=round((1 - len(new_points) / len(grid.points)) * 100, 1))

    new_grid_indices = np.array(new_grid_indices, dtype=np.uint32)

    packed = build_graph(np.array(new_points), grid.boundary_points,
                         grid.graph_width, grid.graph_height,
                         grid.spacing, grid.seed + "_packed")

    packed.grid_indices = new_grid_indices
    packed.heights = grid.heights[new_grid_indices].astype(np.uint8)
    if grid.temperatures is not None:
        packed.temperatures = grid.temperatures[new_grid_indices].astype(np.int8)
    if grid.precipitation is not None:
        packed.precipitation = grid.precipitation[new_grid_indices].astype(np.uint8)

    packed.cell_areas = np.array([
        polygon_area(packed.vertex_coordinates[vertices]) if vertices else 0.0
        for vertices in packed.cell_vertices
    ], dtype=np.float32)

    logger.info("reGraph complete",
                packed_cells=len(packed.points),
                mean_area=round(float(np.mean(packed.cell_areas)), 2))

    return packed
