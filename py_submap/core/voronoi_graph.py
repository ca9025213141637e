"""Voronoi graph generation for the resampling pipeline.

The same ``VoronoiGraph`` structure is used for the point lattice (the grid)
and for the derived polygonal cell graph (the pack).
"""

import zlib
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import Voronoi

logger = structlog.get_logger()

SEA_LEVEL = 20


class GridConfig(NamedTuple):
    """Configuration for grid generation."""
    width: float
    height: float
    cells_desired: int


@dataclass
class VoronoiGraph:
    """Cell graph data structure.

    A mutable dataclass: the pipeline stages annotate it in place while the
    new map is under construction.
    """
    # Grid parameters
    spacing: float
    cells_desired: int
    graph_width: float
    graph_height: float
    seed: str

    # Points data
    boundary_points: np.ndarray
    points: np.ndarray               # cells.p[i] = [x, y]
    cells_x: int
    cells_y: int

    # Cell connectivity data
    cell_neighbors: List[List[int]]  # cells.c[i] = list of neighbor cell IDs
    cell_vertices: List[List[int]]   # cells.v[i] = ordered vertex IDs of the polygon
    cell_border_flags: np.ndarray    # cells.b[i] = 1 if border cell
    heights: np.ndarray              # cells.h[i], >= 20 is land

    # Vertex data
    vertex_coordinates: np.ndarray
    vertex_neighbors: List[List[int]]
    vertex_cells: List[List[int]]

    # Climate
    temperatures: Optional[np.ndarray] = field(default=None)
    precipitation: Optional[np.ndarray] = field(default=None)

    # Pack only: mapping from packed cells to the originating grid point
    grid_indices: Optional[np.ndarray] = field(default=None)
    cell_areas: Optional[np.ndarray] = field(default=None)

    # Feature fields (populated by features module)
    distance_field: Optional[np.ndarray] = field(default=None)  # cells.t
    feature_ids: Optional[np.ndarray] = field(default=None)     # cells.f
    features: Optional[List] = field(default=None)
    haven: Optional[np.ndarray] = field(default=None)
    harbor: Optional[np.ndarray] = field(default=None)

    # Hydrology, biomes and ranking
    flux: Optional[np.ndarray] = field(default=None)
    river_ids: Optional[np.ndarray] = field(default=None)       # cells.r
    confluences: Optional[np.ndarray] = field(default=None)
    biomes: Optional[np.ndarray] = field(default=None)
    cell_suitability: Optional[np.ndarray] = field(default=None)
    cell_population: Optional[np.ndarray] = field(default=None)

    # Overlay assignments, 0 = none
    cell_culture: Optional[np.ndarray] = field(default=None)
    cell_state: Optional[np.ndarray] = field(default=None)
    cell_province: Optional[np.ndarray] = field(default=None)
    cell_religion: Optional[np.ndarray] = field(default=None)
    cell_burg: Optional[np.ndarray] = field(default=None)

    @property
    def n_cells(self) -> int:
        return len(self.points)

    def is_land(self, cell_id: int) -> bool:
        return self.heights[cell_id] >= SEA_LEVEL

    def is_water(self, cell_id: int) -> bool:
        return self.heights[cell_id] < SEA_LEVEL


def _seed_to_int(seed: Optional[str]) -> int:
    return zlib.crc32((seed or "default").encode("utf-8"))


def get_jittered_grid(width: float, height: float, spacing: float, seed: str = None) -> np.ndarray:
    """
    Generate jittered square grid points.

    Creates a regular grid with randomized positions to prevent artificial
    patterns. The same seed always yields the same lattice.

    Args:
        width: Grid width
        height: Grid height
        spacing: Distance between grid points
        seed: Random seed for reproducibility

    Returns:
        Array of [x, y] point coordinates
    """
    rng = np.random.default_rng(_seed_to_int(seed))

    radius = spacing / 2  # square radius
    jittering = radius * 0.9  # max deviation
    double_jittering = jittering * 2

    def jitter():
        return rng.random() * double_jittering - jittering

    points = []
    y = radius
    while y < height:
        x = radius
        while x < width:
            xj = min(round(x + jitter(), 2), width)
            yj = min(round(y + jitter(), 2), height)
            points.append([xj, yj])
            x += spacing
        y += spacing

    return np.array(points, dtype=float)


def get_boundary_points(width: float, height: float, spacing: float) -> np.ndarray:
    """
    Generate boundary points for pseudo-clipping Voronoi cells.

    Adds points around the map edge to prevent infinite Voronoi cells.
    """
    offset = round(-1 * spacing)
    b_spacing = spacing * 2
    w = width - offset * 2
    h = height - offset * 2

    number_x = max(int(np.ceil(w / b_spacing) - 1), 1)
    number_y = max(int(np.ceil(h / b_spacing) - 1), 1)

    points = []
    for i in range(number_x):
        x = int(np.ceil((w * (i + 0.5)) / number_x + offset))
        points.append([x, offset])
        points.append([x, h + offset])

    for i in range(number_y):
        y = int(np.ceil((h * (i + 0.5)) / number_y + offset))
        points.append([offset, y])
        points.append([w + offset, y])

    return np.array(points, dtype=float)


def build_cell_connectivity(vor: Voronoi, n_grid_points: int) -> Tuple[List[List[int]], np.ndarray]:
    """
    Build cell connectivity from scipy Voronoi output.

    Args:
        vor: scipy Voronoi diagram
        n_grid_points: Number of grid points (excluding boundary)

    Returns:
        Tuple of (cell_neighbors, border_flags)
    """
    neighbor_sets = [set() for _ in range(n_grid_points)]
    border_flags = np.zeros(n_grid_points, dtype=np.uint8)

    for p1, p2 in vor.ridge_points:
        if p1 < n_grid_points and p2 < n_grid_points:
            neighbor_sets[p1].add(int(p2))
            neighbor_sets[p2].add(int(p1))
        elif p1 < n_grid_points:
            border_flags[p1] = 1
        elif p2 < n_grid_points:
            border_flags[p2] = 1

    cell_neighbors = [sorted(neighbors) for neighbors in neighbor_sets]
    return cell_neighbors, border_flags


def build_cell_vertices(vor: Voronoi, points: np.ndarray) -> List[List[int]]:
    """
    Build cell polygons from the Voronoi diagram.

    Vertices are ordered counter-clockwise around the cell point so the
    lists can be used directly as polygons.
    """
    cell_vertices = []
    for i in range(len(points)):
        region = vor.regions[vor.point_region[i]]
        vertices = [v for v in region if v != -1]
        if vertices:
            coords = vor.vertices[vertices]
            angles = np.arctan2(coords[:, 1] - points[i][1], coords[:, 0] - points[i][0])
            vertices = [vertices[k] for k in np.argsort(angles)]
        cell_vertices.append(vertices)
    return cell_vertices


def build_vertex_connectivity(vor: Voronoi, cell_vertices: List[List[int]]) -> Tuple[List[List[int]], List[List[int]]]:
    """
    Build vertex connectivity from Voronoi diagram.

    Returns:
        Tuple of (vertex_neighbors, vertex_cells)
    """
    n_vertices = len(vor.vertices)
    vertex_neighbors = [set() for _ in range(n_vertices)]
    vertex_cells = [set() for _ in range(n_vertices)]

    for ridge_vertices in vor.ridge_vertices:
        if -1 in ridge_vertices or len(ridge_vertices) != 2:
            continue
        v1, v2 = ridge_vertices
        vertex_neighbors[v1].add(v2)
        vertex_neighbors[v2].add(v1)

    for cell_idx, vertices in enumerate(cell_vertices):
        for vertex_idx in vertices:
            vertex_cells[vertex_idx].add(cell_idx)

    return [sorted(n) for n in vertex_neighbors], [sorted(c) for c in vertex_cells]


def polygon_area(coords: np.ndarray) -> float:
    """Absolute polygon area using the shoelace formula."""
    if len(coords) < 3:
        return 0.0
    x = coords[:, 0]
    y = coords[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))) / 2)


def build_graph(points: np.ndarray, boundary_points: np.ndarray, width: float,
                height: float, spacing: float, seed: str,
                cells_desired: Optional[int] = None) -> VoronoiGraph:
    """
    Turn a point set into a cell graph.

    This is the graph-construction primitive shared by the lattice and the
    packed graph.

    Args:
        points: Cell points
        boundary_points: Fixed points around the map edge
        width: Map width
        height: Map height
        spacing: Lattice spacing
        seed: Seed the points were generated with

    Returns:
        VoronoiGraph with neighbours, polygons and zeroed heights
    """
    points = np.asarray(points, dtype=float)
    vor = Voronoi(np.vstack([points, boundary_points]))

    n_cells = len(points)
    cell_neighbors, border_flags = build_cell_connectivity(vor, n_cells)
    cell_vertices = build_cell_vertices(vor, points)
    vertex_neighbors, vertex_cells = build_vertex_connectivity(vor, cell_vertices)

    cells_x = int((width + 0.5 * spacing - 1e-10) / spacing)
    cells_y = int((height + 0.5 * spacing - 1e-10) / spacing)

    return VoronoiGraph(
        spacing=spacing,
        cells_desired=cells_desired or n_cells,
        graph_width=width,
        graph_height=height,
        seed=seed or "default",
        boundary_points=boundary_points,
        points=points,
        cells_x=cells_x,
        cells_y=cells_y,
        cell_neighbors=cell_neighbors,
        cell_vertices=cell_vertices,
        cell_border_flags=border_flags,
        heights=np.zeros(n_cells, dtype=np.uint8),
        vertex_coordinates=vor.vertices,
        vertex_neighbors=vertex_neighbors,
        vertex_cells=vertex_cells,
    )


def generate_voronoi_graph(config: GridConfig, seed: str = None) -> VoronoiGraph:
    """
    Generate the point lattice for a new map.

    Args:
        config: Grid configuration
        seed: Random seed for reproducibility

    Returns:
        Complete Voronoi graph data structure with pre-allocated heights
    """
    logger.info("Generating Voronoi graph",
                width=config.width, height=config.height,
                cells_desired=config.cells_desired, seed=seed)

    spacing = round(float(np.sqrt((config.width * config.height) / config.cells_desired)), 2)

    grid_points = get_jittered_grid(config.width, config.height, spacing, seed)
    boundary_points = get_boundary_points(config.width, config.height, spacing)

    graph = build_graph(grid_points, boundary_points, config.width, config.height,
                        spacing, seed, cells_desired=config.cells_desired)

    logger.info("Voronoi graph generated",
                grid_points=len(grid_points),
                boundary_points=len(boundary_points),
                vertices=len(graph.vertex_coordinates))
    return graph
