"""
Geographic features detection and markup.

This module handles:
- Ocean/land classification based on height
- Lake detection in deep depressions
- Coastline detection and distance fields
- Island identification on the packed graph
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import structlog

logger = structlog.get_logger()

# Feature type constants
DEEPER_LAND = 3
LANDLOCKED = 2
LAND_COAST = 1
UNMARKED = 0
WATER_COAST = -1
DEEP_WATER = -2


@dataclass
class Feature:
    """Represents a geographic feature (ocean, lake, island)."""

    id: int
    type: str  # "ocean", "lake", "island"
    land: bool
    border: bool  # touches map edge
    cells: int  # total cells in feature
    first_cell: int
    area: float = 0.0
    group: Optional[str] = None  # set by specify_features
    shoreline: Optional[List[int]] = None  # for lakes


class Features:
    """Handles geographic feature detection and markup."""

    def __init__(self, graph):
        """
        Initialize Features with a VoronoiGraph.

        Args:
            graph: VoronoiGraph instance with populated heights
        """
        self.graph = graph
        self.n_cells = len(graph.points)
        self.border_cells = graph.cell_border_flags

    def is_land(self, cell_id: int) -> bool:
        """Check if a cell is land (height >= 20)."""
        return self.graph.heights[cell_id] >= 20

    def _flood_features(self, distance_field: np.ndarray, feature_ids: np.ndarray,
                        on_coast=None) -> List[Optional[Feature]]:
        """Split cells into connected land and water features."""
        features = [None]  # index 0 is reserved
        feature_id = 1

        for first_cell in range(self.n_cells):
            if feature_ids[first_cell] != UNMARKED:
                continue

            feature_ids[first_cell] = feature_id
            land = self.is_land(first_cell)
            border = False
            cell_count = 0
            queue = [first_cell]

            while queue:
                cell_id = queue.pop()
                cell_count += 1

                if not border and self.border_cells[cell_id]:
                    border = True

                for neighbor_id in self.graph.cell_neighbors[cell_id]:
                    is_neib_land = self.is_land(neighbor_id)

                    if land == is_neib_land and feature_ids[neighbor_id] == UNMARKED:
                        feature_ids[neighbor_id] = feature_id
                        queue.append(neighbor_id)
                    elif land and not is_neib_land:
                        distance_field[cell_id] = LAND_COAST
                        distance_field[neighbor_id] = WATER_COAST
                        if on_coast is not None:
                            on_coast(cell_id)

            if land:
                feature_type = "island"
            elif border:
                feature_type = "ocean"
            else:
                feature_type = "lake"

            features.append(Feature(
                id=feature_id,
                type=feature_type,
                land=land,
                border=border,
                cells=cell_count,
                first_cell=first_cell,
            ))
            feature_id += 1

        return features

    def markup_grid(self):
        """
        Mark grid features (ocean, lakes, islands) and calculate distance field.
        """
        self.distance_field = np.zeros(self.n_cells, dtype=np.int8)
        self.feature_ids = np.zeros(self.n_cells, dtype=np.uint16)

        self.features = self._flood_features(self.distance_field, self.feature_ids)

        # Markup deep ocean cells
        markup_distance_field(self.distance_field, self.graph.cell_neighbors,
                              start=DEEP_WATER, increment=-1, limit=-10)

        self.graph.distance_field = self.distance_field
        self.graph.feature_ids = self.feature_ids
        self.graph.features = self.features

        logger.info("Grid features marked", features=len(self.features) - 1)

    def add_lakes_in_deep_depressions(self, elevation_limit: float = 20):
        """
        Add lakes in closed depressions that cannot drain to the ocean.

        Args:
            elevation_limit: Maximum climb water may take to leave a depression;
                80 disables the check
        """
        if elevation_limit == 80:
            return

        heights = self.graph.heights
        processed = set()
        added = 0

        for i in range(self.n_cells):
            if self.border_cells[i] or heights[i] < 20 or i in processed:
                continue

            neighbor_heights = [heights[n] for n in self.graph.cell_neighbors[i]]
            if not neighbor_heights or heights[i] > min(neighbor_heights):
                continue  # not a local minimum

            threshold = int(heights[i]) + elevation_limit
            queue = [i]
            checked = {i}
            deep = True

            while deep and queue:
                q = queue.pop()
                for n in self.graph.cell_neighbors[q]:
                    if n in checked or heights[n] >= threshold:
                        continue
                    if heights[n] < 20 or self.border_cells[n]:
                        deep = False
                        break
                    checked.add(n)
                    queue.append(n)

            if deep:
                lake_cells = sorted(checked)
                processed.update(lake_cells)
                self._add_lake(lake_cells)
                added += 1

        if added:
            logger.info("Lakes added in deep depressions", lakes=added)

    def _add_lake(self, lake_cells: List[int]):
        """Add a lake feature from given cells."""
        feature_id = len(self.features)
        lake_set = set(lake_cells)

        for cell_id in lake_cells:
            self.graph.heights[cell_id] = 19
            self.distance_field[cell_id] = WATER_COAST
            self.feature_ids[cell_id] = feature_id

            for n in self.graph.cell_neighbors[cell_id]:
                if n not in lake_set and self.graph.heights[n] >= 20:
                    self.distance_field[n] = LAND_COAST

        self.features.append(Feature(
            id=feature_id,
            type="lake",
            land=False,
            border=False,
            cells=len(lake_cells),
            first_cell=lake_cells[0],
        ))

    def open_near_sea_lakes(self, breach_limit: float = 22):
        """
        Open lakes separated from the ocean by a single low coastal cell.

        Breaches are collected first and applied afterwards so the feature
        list is not modified while being iterated.
        """
        ocean_ids = {f.id for f in self.features if f and f.type == "ocean"}
        if not ocean_ids:
            return

        breach_actions = []

        for lake in [f for f in self.features if f and f.type == "lake"]:
            lake_cells = np.flatnonzero(self.feature_ids == lake.id)
            breach = self._find_breach(lake_cells, ocean_ids, breach_limit)
            if breach is not None:
                breach_actions.append((breach[0], lake.id, breach[1]))

        for breach_cell, lake_id, ocean_id in breach_actions:
            self._remove_lake(breach_cell, lake_id, ocean_id)

    def _find_breach(self, lake_cells, ocean_ids, breach_limit):
        for lake_cell in lake_cells:
            for coast_candidate in self.graph.cell_neighbors[lake_cell]:
                if self.distance_field[coast_candidate] != LAND_COAST:
                    continue
                if self.graph.heights[coast_candidate] > breach_limit:
                    continue
                for ocean_neighbor in self.graph.cell_neighbors[coast_candidate]:
                    if self.feature_ids[ocean_neighbor] in ocean_ids:
                        return coast_candidate, int(self.feature_ids[ocean_neighbor])
        return None

    def _remove_lake(self, threshold_cell: int, lake_id: int, ocean_id: int):
        """Convert a lake to ocean by breaching at threshold cell."""
        self.graph.heights[threshold_cell] = 19
        self.distance_field[threshold_cell] = WATER_COAST
        self.feature_ids[threshold_cell] = ocean_id

        for c in self.graph.cell_neighbors[threshold_cell]:
            if self.graph.heights[c] >= 20:
                self.distance_field[c] = LAND_COAST

        self.feature_ids[self.feature_ids == lake_id] = ocean_id
        if self.features[lake_id]:
            self.features[lake_id].type = "ocean"

        logger.info("Lake opened to the sea", lake=lake_id, ocean=ocean_id)

    def markup_pack(self) -> List[Optional[Feature]]:
        """
        Mark packed features and calculate coastal properties.

        Sets ``distance_field``, ``feature_ids``, ``haven`` and ``harbor`` on the
        packed graph and returns the feature list.
        """
        packed = self.graph
        distance_field = np.zeros(self.n_cells, dtype=np.int8)
        feature_ids = np.zeros(self.n_cells, dtype=np.uint16)
        haven = np.zeros(self.n_cells, dtype=np.uint32)  # closest water cell for coastal land
        harbor = np.zeros(self.n_cells, dtype=np.uint8)  # number of adjacent water cells

        def define_haven(cell_id):
            if harbor[cell_id]:
                return
            water_cells = [n for n in packed.cell_neighbors[cell_id] if not self.is_land(n)]
            distances = [np.sum((packed.points[cell_id] - packed.points[w]) ** 2) for w in water_cells]
            haven[cell_id] = water_cells[int(np.argmin(distances))]
            harbor[cell_id] = len(water_cells)

        features = self._flood_features(distance_field, feature_ids, on_coast=define_haven)

        # Landlocked ring, then deeper land and deep water rings
        for cell_id in range(self.n_cells):
            if distance_field[cell_id] != LAND_COAST:
                continue
            for n in packed.cell_neighbors[cell_id]:
                if distance_field[n] == UNMARKED and self.is_land(n):
                    distance_field[n] = LANDLOCKED

        markup_distance_field(distance_field, packed.cell_neighbors, start=DEEPER_LAND, increment=1)
        markup_distance_field(distance_field, packed.cell_neighbors,
                              start=DEEP_WATER, increment=-1, limit=-10)

        if packed.cell_areas is not None:
            for feature in features[1:]:
                feature.area = float(np.sum(packed.cell_areas[feature_ids == feature.id]))

        for feature in features[1:]:
            if feature.type == "lake":
                lake_cells = np.flatnonzero(feature_ids == feature.id)
                feature.shoreline = sorted({
                    n for c in lake_cells for n in packed.cell_neighbors[c] if self.is_land(n)
                })

        packed.distance_field = distance_field
        packed.feature_ids = feature_ids
        packed.haven = haven
        packed.harbor = harbor
        packed.features = features

        logger.info("Pack features marked", features=len(features) - 1)
        return features


def markup_distance_field(distance_field: np.ndarray, neighbors: List[List[int]],
                          start: int, increment: int, limit: int = 127):
    """
    Grow a distance field ring by ring from cells already marked.

    Args:
        distance_field: Per-cell distance values, updated in place
        neighbors: Cell neighbour lists
        start: Distance value of the first new ring
        increment: Distance increment per ring
        limit: Last distance value to assign
    """
    distance = start

    while True:
        marked = 0
        prev_distance = distance - increment

        for cell_id in np.flatnonzero(distance_field == prev_distance):
            for neighbor_id in neighbors[cell_id]:
                if distance_field[neighbor_id] == UNMARKED:
                    distance_field[neighbor_id] = distance
                    marked += 1

        if marked == 0 or distance == limit:
            break

        distance += increment


def specify_features(features: List[Optional[Feature]], graph) -> None:
    """
    Assign a descriptive group to every feature.

    Oceans split into ocean/sea/gulf by size, land into continent/island/isle,
    lakes into freshwater/frozen/salt by the climate of their cells.
    """
    land_cells = int(np.sum(graph.heights >= 20)) or 1
    total_cells = len(graph.points) or 1

    for feature in features:
        if not feature:
            continue

        if feature.type == "ocean":
            share = feature.cells / total_cells
            feature.group = "ocean" if share > 0.3 else "sea" if share > 0.05 else "gulf"
        elif feature.type == "island":
            share = feature.cells / land_cells
            if share > 0.3:
                feature.group = "continent"
            elif feature.cells > 10:
                feature.group = "island"
            else:
                feature.group = "isle"
        else:
            cells = np.flatnonzero(graph.feature_ids == feature.id)
            temperature = (
                float(np.mean(graph.temperatures[cells]))
                if graph.temperatures is not None and len(cells)
                else 10.0
            )
            precipitation = (
                float(np.mean(graph.precipitation[cells]))
                if graph.precipitation is not None and len(cells)
                else 10.0
            )
            if temperature < -3:
                feature.group = "frozen"
            elif precipitation < 3 and feature.cells < 10:
                feature.group = "salt"
            else:
                feature.group = "freshwater"
