"""
Nearest-neighbour index over an arbitrary point set.

Built once per pipeline phase and treated as read-only afterwards.
"""

from typing import Any, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.neighbors import KDTree


class SpatialIndex:
    """2D nearest-point lookup carrying a payload per point."""

    def __init__(self, points: np.ndarray, payloads: Optional[Sequence[Any]] = None):
        """
        Args:
            points: Array of [x, y] coordinates
            payloads: Value returned for each point, defaults to its position
        """
        self.points = np.asarray(points, dtype=float).reshape(-1, 2)
        if payloads is None:
            payloads = range(len(self.points))
        self.payloads = list(payloads)
        if len(self.payloads) != len(self.points):
            raise ValueError("points and payloads must have the same length")

        self._tree = KDTree(self.points) if len(self.points) else None

    def __len__(self) -> int:
        return len(self.points)

    @classmethod
    def for_cells(cls, graph, cells: Optional[Iterable[int]] = None) -> "SpatialIndex":
        """Index cell points with the cell id as payload."""
        if cells is None:
            return cls(graph.points, range(len(graph.points)))
        cells = [int(c) for c in cells]
        return cls(graph.points[cells] if cells else np.empty((0, 2)), cells)

    def find(self, x: float, y: float) -> Optional[Any]:
        """Payload of the nearest point, or None if the index is empty."""
        if self._tree is None:
            return None
        _, indices = self._tree.query([[x, y]], k=1)
        return self.payloads[indices[0][0]]

    def distance(self, x: float, y: float) -> float:
        """Distance to the nearest point."""
        if self._tree is None:
            return float("inf")
        distances, _ = self._tree.query([[x, y]], k=1)
        return float(distances[0][0])

    def find_all(self, x: float, y: float, radius: float) -> List[Any]:
        """Payloads of all points within ``radius``, nearest first."""
        if self._tree is None or radius < 0:
            return []
        indices, distances = self._tree.query_radius(
            [[x, y]], r=radius, return_distance=True, sort_results=True
        )
        return [self.payloads[i] for i in indices[0]]


def land_and_water_index(graph) -> Tuple[SpatialIndex, SpatialIndex]:
    """Build separate indices over the land and the water cells of a graph."""
    is_water = np.asarray(graph.heights) < 20
    land = SpatialIndex.for_cells(graph, np.flatnonzero(~is_water))
    water = SpatialIndex.for_cells(graph, np.flatnonzero(is_water))
    return land, water
