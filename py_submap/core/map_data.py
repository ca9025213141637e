"""Complete map: lattice, packed graph and overlay collections."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from .climate import MapCoordinates
from .entities import Burg, Culture, Marker, Note, Province, Religion, River, State, Zone
from .features import Feature
from .spatial_index import SpatialIndex
from .voronoi_graph import VoronoiGraph


@dataclass
class MapData:
    """A map as consumed and produced by the resampling pipeline.

    ``cultures``, ``states``, ``religions``, ``provinces`` and ``burgs`` are
    addressed by id and start with a sentinel row (id 0). ``rivers``,
    ``markers`` and ``zones`` are plain ordered lists. ``coordinates`` holds
    the latitudes of the top and bottom map edges.
    """

    grid: VoronoiGraph
    pack: VoronoiGraph
    width: float
    height: float
    cultures: List[Culture] = field(default_factory=list)
    states: List[State] = field(default_factory=list)
    provinces: List[Province] = field(default_factory=list)
    religions: List[Religion] = field(default_factory=list)
    burgs: List[Burg] = field(default_factory=list)
    rivers: List[River] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)
    zones: List[Zone] = field(default_factory=list)
    features: List[Optional[Feature]] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    coordinates: MapCoordinates = field(default_factory=MapCoordinates)

    def is_in_map(self, x: float, y: float) -> bool:
        return 0 <= x <= self.width and 0 <= y <= self.height

    def is_empty(self) -> bool:
        return (
            self.grid is None or self.pack is None
            or len(self.grid.points) == 0 or len(self.pack.points) == 0
        )


def _entity_counts(collection) -> Dict[str, int]:
    entities = [e for e in collection if e.id]
    removed = sum(1 for e in entities if getattr(e, "removed", False))
    return {"active": len(entities) - removed, "removed": removed}


def map_statistics(map_data: MapData) -> Dict:
    """Summarize cell counts and per-collection active/removed counts."""
    pack = map_data.pack
    return {
        "grid_cells": len(map_data.grid.points),
        "pack_cells": len(pack.points),
        "land_cells": int(np.sum(pack.heights >= 20)),
        "features": len([f for f in map_data.features if f]),
        "cultures": _entity_counts(map_data.cultures),
        "states": _entity_counts(map_data.states),
        "provinces": _entity_counts(map_data.provinces),
        "religions": _entity_counts(map_data.religions),
        "burgs": _entity_counts(map_data.burgs),
        "rivers": len(map_data.rivers),
        "markers": len(map_data.markers),
        "zones": len(map_data.zones),
        "notes": len(map_data.notes),
    }


@dataclass
class MapBuilder:
    """The map under construction, owned by the pipeline until it returns.

    ``find_cell`` and ``find_all`` query an index over the current pack; the
    index is built on first use and rebuilt only if the pack is replaced.
    """

    width: float
    height: float
    grid: Optional[VoronoiGraph] = None
    pack: Optional[VoronoiGraph] = None
    cultures: List[Culture] = field(default_factory=list)
    states: List[State] = field(default_factory=list)
    provinces: List[Province] = field(default_factory=list)
    religions: List[Religion] = field(default_factory=list)
    burgs: List[Burg] = field(default_factory=list)
    rivers: List[River] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)
    zones: List[Zone] = field(default_factory=list)
    features: List[Optional[Feature]] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    coordinates: MapCoordinates = field(default_factory=MapCoordinates)
    _index: Optional[SpatialIndex] = field(default=None, repr=False)
    _indexed_pack: Optional[VoronoiGraph] = field(default=None, repr=False)

    def is_in_map(self, x: float, y: float) -> bool:
        return 0 <= x <= self.width and 0 <= y <= self.height

    @property
    def index(self) -> SpatialIndex:
        if self._index is None or self._indexed_pack is not self.pack:
            self._index = SpatialIndex.for_cells(self.pack)
            self._indexed_pack = self.pack
        return self._index

    def find_cell(self, x: float, y: float) -> int:
        """Nearest pack cell to a point."""
        return self.index.find(x, y)

    def find_all(self, x: float, y: float, radius: float) -> List[int]:
        """Pack cells within ``radius`` of a point."""
        return self.index.find_all(x, y, radius)

    def build(self) -> MapData:
        return MapData(
            grid=self.grid,
            pack=self.pack,
            width=self.width,
            height=self.height,
            cultures=self.cultures,
            states=self.states,
            provinces=self.provinces,
            religions=self.religions,
            burgs=self.burgs,
            rivers=self.rivers,
            markers=self.markers,
            zones=self.zones,
            features=self.features,
            notes=self.notes,
            coordinates=self.coordinates,
        )
