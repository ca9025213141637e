"""Tests for cell packing (reGraph) functionality."""

import pytest
import numpy as np
from py_submap.core import EmptyMapError, GridConfig, generate_voronoi_graph, regraph
from py_submap.core.features import DEEP_WATER, Features, LAND_COAST, WATER_COAST


def island_grid(width=100, height=100, cells=400, seed="packing"):
    graph = generate_voronoi_graph(GridConfig(width, height, cells), seed)
    for i in range(len(graph.points)):
        x, y = graph.points[i]
        dist_from_center = np.sqrt((x - width / 2) ** 2 + (y - height / 2) ** 2)
        graph.heights[i] = 50 if dist_from_center < 30 else 5
    graph.temperatures = np.full(len(graph.points), 12, dtype=np.int8)
    graph.precipitation = np.full(len(graph.points), 30, dtype=np.uint8)
    return graph


class TestReGraph:
    """Test the full reGraph operation."""

    @pytest.fixture
    def grid(self):
        graph = island_grid()
        Features(graph).markup_grid()
        return graph

    def test_requires_markup(self):
        with pytest.raises(ValueError):
            regraph(island_grid())

    def test_deep_ocean_excluded(self, grid):
        packed = regraph(grid)

        kept = set(packed.grid_indices.tolist())
        for i in range(len(grid.points)):
            if grid.heights[i] >= 20 or grid.distance_field[i] == WATER_COAST:
                assert i in kept
            elif grid.distance_field[i] not in (WATER_COAST, DEEP_WATER):
                assert i not in kept

    def test_fewer_cells_than_grid(self, grid):
        packed = regraph(grid)
        land = np.sum(grid.heights >= 20)
        assert land <= len(packed.points) < len(grid.points)

    def test_grid_indices_link_fields(self, grid):
        packed = regraph(grid)

        assert packed.grid_indices.dtype == np.uint32
        assert len(packed.grid_indices) == len(packed.points)
        np.testing.assert_array_equal(packed.heights, grid.heights[packed.grid_indices])
        np.testing.assert_array_equal(packed.precipitation, grid.precipitation[packed.grid_indices])
        assert packed.temperatures.dtype == np.int8

    def test_coastal_midpoints_added(self, grid):
        packed = regraph(grid)

        midpoints = [
            cell_id for cell_id, source in enumerate(packed.grid_indices)
            if not np.array_equal(packed.points[cell_id], grid.points[source])
        ]
        assert midpoints
        for cell_id in midpoints:
            assert grid.distance_field[packed.grid_indices[cell_id]] in (LAND_COAST, WATER_COAST)

    def test_cell_areas(self, grid):
        packed = regraph(grid)

        assert packed.cell_areas.dtype == np.float32
        assert len(packed.cell_areas) == len(packed.points)
        assert np.all(packed.cell_areas >= 0)
        interior = packed.cell_border_flags == 0
        assert np.all(packed.cell_areas[interior] > 0)

    def test_deterministic(self, grid):
        first = regraph(grid)
        second = regraph(grid)

        np.testing.assert_array_equal(first.points, second.points)
        np.testing.assert_array_equal(first.grid_indices, second.grid_indices)
        assert first.seed == "packing_packed"

    def test_all_water_raises(self):
        graph = generate_voronoi_graph(GridConfig(50, 50, 100), "packing")
        graph.heights[:] = 5
        Features(graph).markup_grid()

        with pytest.raises(EmptyMapError):
            regraph(graph)
