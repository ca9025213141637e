"""
Resampling pipeline: build a new map from an existing one.

The new map can have a different resolution and/or be a projection of the
parent (a zoomed-in region, a shifted or stretched copy). Terrain fields are
resampled, the cell graph is rebuilt, and every overlay collection is
migrated onto the new cells.

Stages run strictly in order; each one only reads what earlier stages
produced:

1. build the new lattice and sample its fields from the parent
2. optional heightmap smoothing and riverbed depression
3. grid features, then climate for the new latitudes
4. packed cell graph, pack features, rivers, biomes, cell ranking
5. cell overlays, cultures, burgs, states, religions, provinces, markers, zones
6. routes and final river/feature metadata
"""

from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..config import settings
from .biomes import define_biomes
from .cell_packing import regraph
from .climate import derive_climate, project_coordinates
from .errors import EmptyMapError
from .features import Features, specify_features
from .field_sampler import resample_primary_grid_data
from .heightmap_filters import depress_rivers, smooth_heightmap
from .hydrology import generate_rivers, specify_rivers
from .map_data import MapBuilder, MapData, map_statistics
from .overlays import (
    restore_burgs,
    restore_cultures,
    restore_markers,
    restore_provinces,
    restore_religions,
    restore_secondary_cell_data,
    restore_states,
    restore_zones,
)
from .poles import get_poles_of_inaccessibility
from .population import rank_cells
from .projection import validate_projection
from .spatial_index import SpatialIndex
from .voronoi_graph import GridConfig, generate_voronoi_graph

logger = structlog.get_logger()


class ResampleOptions(BaseModel):
    """Options for a resample run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    projection: Callable = Field(description="Parent -> new map coordinate transform")
    inverse: Callable = Field(description="New -> parent map coordinate transform")
    smooth_heightmap: bool = Field(default=False, description="Run the smoothing filter on heights")
    depress_rivers: bool = Field(default=False, description="Lower riverbed cells by 1")
    scale: float = Field(default=1.0, gt=0, description="Area/population scale factor")
    width: Optional[float] = Field(default=None, gt=0, description="New map width, parent width if unset")
    height: Optional[float] = Field(default=None, gt=0, description="New map height, parent height if unset")
    cells_desired: Optional[int] = Field(default=None, gt=0, description="New lattice size, parent size if unset")
    seed: Optional[str] = Field(default=None, description="Lattice seed, parent seed if unset")


def markup_grid(grid) -> None:
    features = Features(grid)
    features.markup_grid()
    features.add_lakes_in_deep_depressions()
    features.open_near_sea_lakes()


def markup_pack(pack):
    return Features(pack).markup_pack()


def skip_routes(builder) -> None:
    logger.debug("Route generation is not configured")


def specify(builder) -> None:
    specify_rivers(builder.rivers, builder.pack)
    specify_features(builder.features, builder.pack)


@dataclass
class Collaborators:
    """Steps the pipeline delegates to; any of them can be swapped out."""

    build_grid: Callable = generate_voronoi_graph
    markup_grid: Callable = markup_grid
    derive_climate: Callable = derive_climate
    build_pack: Callable = regraph
    markup_pack: Callable = markup_pack
    generate_rivers: Callable = generate_rivers
    define_biomes: Callable = define_biomes
    rank_cells: Callable = rank_cells
    generate_routes: Callable = skip_routes
    specify: Callable = specify
    poles: Callable = get_poles_of_inaccessibility


def _validate(parent: MapData, options: ResampleOptions) -> None:
    if parent is None or parent.is_empty():
        raise EmptyMapError("Parent map has no cells")
    if parent.pack.grid_indices is None or len(parent.pack.grid_indices) != len(parent.pack.points):
        raise EmptyMapError("Parent pack cells are not linked to grid points")
    validate_projection(options.projection, options.inverse, parent.width, parent.height)


def resample(parent: MapData, options: ResampleOptions,
             collaborators: Optional[Collaborators] = None) -> MapData:
    """
    Generate a new map from an existing one.

    The parent map is left untouched. Entities that cannot be carried over
    are flagged ``removed`` (markers are deleted). Only a malformed projection
    or a degenerate map raises: an empty parent, or a target window with no
    land or coast left to pack (an all-water map).

    Args:
        parent: Map to resample
        options: Projection pair, filters and new map dimensions
        collaborators: Replacement pipeline steps

    Returns:
        The new map

    Raises:
        ProjectionError: if the projection pair is malformed or not invertible
        EmptyMapError: if the parent map has no cells or the new map is all water
    """
    collaborators = collaborators or Collaborators()
    _validate(parent, options)

    projection, inverse = options.projection, options.inverse
    width = options.width or parent.width
    height = options.height or parent.height
    cells_desired = options.cells_desired or parent.grid.cells_desired or settings.default_cells_desired
    seed = options.seed or parent.grid.seed or settings.default_seed

    logger.info("Resampling map",
                width=width, height=height, cells_desired=cells_desired,
                scale=options.scale, smooth=options.smooth_heightmap,
                depress_rivers=options.depress_rivers)

    builder = MapBuilder(width=width, height=height)
    builder.notes = [note.model_copy() for note in parent.notes]

    parent_index = SpatialIndex.for_cells(parent.pack)

    builder.grid = collaborators.build_grid(GridConfig(width, height, cells_desired), seed)
    resample_primary_grid_data(parent, builder.grid, inverse, parent_index)
    if options.smooth_heightmap:
        smooth_heightmap(builder.grid)
    if options.depress_rivers:
        depress_rivers(parent, builder.grid, inverse, parent_index)

    collaborators.markup_grid(builder.grid)
    builder.coordinates = project_coordinates(parent.coordinates, parent.height, inverse, width, height)
    collaborators.derive_climate(builder)

    builder.pack = collaborators.build_pack(builder.grid)
    if len(builder.pack.points) == 0:
        raise EmptyMapError("Resampled map has no cells")
    builder.features = collaborators.markup_pack(builder.pack)
    builder.rivers = collaborators.generate_rivers(builder.pack)
    collaborators.define_biomes(builder.pack)
    collaborators.rank_cells(builder.pack, builder.features)

    restore_secondary_cell_data(parent, builder, inverse)
    restore_cultures(parent, builder, projection, collaborators.poles)
    restore_burgs(parent, builder, projection, options.scale)
    restore_states(parent, builder, projection, collaborators.poles)
    restore_religions(parent, builder, projection, collaborators.poles)
    restore_provinces(parent, builder, collaborators.poles)
    restore_markers(parent, builder, projection)
    restore_zones(parent, builder, projection, options.scale)

    collaborators.generate_routes(builder)
    collaborators.specify(builder)

    new_map = builder.build()
    logger.info("Map resampled", **map_statistics(new_map))
    return new_map
