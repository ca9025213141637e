"""Shared fixtures: a small island map carrying every overlay collection."""

import numpy as np
import pytest

from py_submap.core import GridConfig, MapData, generate_voronoi_graph, regraph
from py_submap.core.biomes import define_biomes
from py_submap.core.entities import (
    Burg, Culture, Marker, Note, Province, Regiment, Religion, State, Zone
)
from py_submap.core.hydrology import generate_rivers
from py_submap.core.population import rank_cells
from py_submap.core.spatial_index import land_and_water_index
from py_submap.core.submap import markup_grid, markup_pack

WIDTH = 100
HEIGHT = 100
CELLS = 400
SEED = "parent"


def island_heights(points, width, height):
    """Dome centred on the map: 60 at the centre, sea level at 35% of the short side."""
    radius = 0.35 * min(width, height)
    distance = np.hypot(points[:, 0] - width / 2, points[:, 1] - height / 2)
    return np.clip(60 - 40 * distance / radius, 0, 100).astype(np.uint8)


def _burg(burg_id, name, land, x, y, **kwargs):
    cell = land.find(x, y)
    return Burg(id=burg_id, name=name, cell=cell, **kwargs)


def build_parent_map(width=WIDTH, height=HEIGHT, cells_desired=CELLS, seed=SEED):
    """
    Island map split into a western (1) and an eastern (2) state.

    Religion 1 holds the northern half of the island, religion 2 the
    southern half. Burgs 1 and 2 are the state capitals, burg 3 a town in
    the north.
    """
    grid = generate_voronoi_graph(GridConfig(width, height, cells_desired), seed)
    grid.heights = island_heights(grid.points, width, height)
    grid.temperatures = np.full(len(grid.points), 15, dtype=np.int8)
    grid.precipitation = np.full(len(grid.points), 20, dtype=np.uint8)
    markup_grid(grid)

    pack = regraph(grid)
    features = markup_pack(pack)
    rivers = generate_rivers(pack)
    define_biomes(pack)
    rank_cells(pack, features)

    land = pack.heights >= 20
    east = pack.points[:, 0] >= width / 2
    south = pack.points[:, 1] >= height / 2
    pack.cell_culture = np.where(land, 1, 0).astype(np.uint16)
    pack.cell_state = np.where(land, np.where(east, 2, 1), 0).astype(np.uint16)
    pack.cell_province = pack.cell_state.copy()
    pack.cell_religion = np.where(land, np.where(south, 2, 1), 0).astype(np.uint16)
    pack.cell_burg = np.zeros(len(pack.points), dtype=np.uint16)

    land_index, _ = land_and_water_index(pack)
    cx, cy, r = width / 2, height / 2, 0.35 * min(width, height)

    burgs = [Burg(id=0, name="")]
    for burg_id, name, (x, y), capital in [
        (1, "Westhold", (cx - r / 2, cy), True),
        (2, "Eastmarch", (cx + r / 2, cy), True),
        (3, "Northwick", (cx, cy - r / 2), False),
    ]:
        burg = _burg(burg_id, name, land_index, x, y, capital=capital,
                     population=10.0, state=1 if burg_id != 2 else 2, culture=1)
        px, py = pack.points[burg.cell]
        burgs.append(burg.model_copy(update={"x": round(float(px), 2), "y": round(float(py), 2)}))
        pack.cell_burg[burg.cell] = burg_id

    west_capital, east_capital = burgs[1], burgs[2]
    regiment = Regiment(
        id=0, name="1st Guard", state=1, total=120,
        cell=west_capital.cell, x=west_capital.x, y=west_capital.y,
        base_cell=west_capital.cell, bx=west_capital.x, by=west_capital.y,
    )

    center = land_index.find(cx, cy)
    north = land_index.find(cx, cy - r / 2)
    south_cell = land_index.find(cx, cy + r / 2)

    cultures = [
        Culture(id=0, name="Wildlands"),
        Culture(id=1, name="Islanders", center=center, color="#aa8844"),
    ]
    states = [
        State(id=0, name="Neutrals"),
        State(id=1, name="West", full_name="Kingdom of West", capital=1, culture=1,
              center=west_capital.cell, neighbors=[2], military=[regiment]),
        State(id=2, name="East", full_name="Duchy of East", capital=2, culture=1,
              center=east_capital.cell, neighbors=[1]),
    ]
    provinces = [
        Province(id=0, name=""),
        Province(id=1, name="Westshire", state=1, burg=1, center=west_capital.cell),
        Province(id=2, name="Eastshire", state=2, burg=2, center=east_capital.cell),
    ]
    religions = [
        Religion(id=0, name="No religion"),
        Religion(id=1, name="Northern Way", culture=1, center=north),
        Religion(id=2, name="Southern Way", culture=1, center=south_cell),
    ]

    x0, y0 = pack.points[center]
    markers = [
        Marker(id=0, type="volcanoes", icon="volcano", x=round(float(x0), 2), y=round(float(y0), 2), cell=center),
        Marker(id=1, type="ruins", icon="ruins", x=round(east_capital.x + 5, 2), y=east_capital.y, cell=east_capital.cell),
    ]
    notes = [
        Note(id="marker0", name="Fire Mountain", legend="Smokes every spring"),
        Note(id="marker1", name="Old Keep", legend="Nobody goes there"),
        Note(id="state1", name="West", legend="Founded long ago"),
    ]

    zone_cells = [int(c) for c in pack.cell_neighbors[center] if land[c]] + [center]
    zones = [
        Zone(id=0, name="Plague", type="Disease", color="#55aa55", cells=zone_cells),
        Zone(id=1, name="Border Watch", type="Military",
             cells=[int(c) for c in np.flatnonzero(land & (np.abs(pack.points[:, 0] - cx) < 5))]),
    ]

    return MapData(
        grid=grid, pack=pack, width=width, height=height,
        cultures=cultures, states=states, provinces=provinces, religions=religions,
        burgs=burgs, rivers=rivers, markers=markers, zones=zones,
        features=features, notes=notes,
    )


@pytest.fixture
def parent_map():
    """Fresh island map for each test."""
    return build_parent_map()


@pytest.fixture
def make_parent_map():
    """Factory for island maps of other sizes."""
    return build_parent_map
