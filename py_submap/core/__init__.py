"""
Core resampling functionality.
"""

from .voronoi_graph import GridConfig, VoronoiGraph, generate_voronoi_graph
from .cell_packing import regraph
from .climate import ClimateOptions, MapCoordinates
from .map_data import MapData, MapBuilder, map_statistics
from .projection import affine, identity, submap as submap_projection, validate_projection
from .submap import Collaborators, ResampleOptions, resample
from .errors import EmptyMapError, ProjectionError, SubmapError

__all__ = ['GridConfig', 'VoronoiGraph', 'generate_voronoi_graph', 'regraph', 'ClimateOptions', 'MapCoordinates',
           'MapData', 'MapBuilder', 'map_statistics',
           'affine', 'identity', 'submap_projection', 'validate_projection',
           'Collaborators', 'ResampleOptions', 'resample',
           'EmptyMapError', 'ProjectionError', 'SubmapError']
