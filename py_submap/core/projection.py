"""
Coordinate transforms between the parent map and the new map.

A projection pair is two plain callables ``(x, y) -> (x', y')``; ``inverse``
must undo ``projection`` to two decimal places.
"""

import math
from typing import Callable, Tuple

from .errors import ProjectionError

Transform = Callable[[float, float], Tuple[float, float]]

PRECISION = 2


def identity() -> Tuple[Transform, Transform]:
    """Projection pair that leaves coordinates unchanged."""
    def same(x, y):
        return x, y
    return same, same


def affine(scale_x: float = 1.0, scale_y: float = 1.0,
           dx: float = 0.0, dy: float = 0.0) -> Tuple[Transform, Transform]:
    """
    Scale-then-translate projection pair.

    ``projection(x, y) = (x * scale_x + dx, y * scale_y + dy)``

    Raises:
        ProjectionError: if either scale is zero
    """
    if not scale_x or not scale_y:
        raise ProjectionError("Affine projection with a zero scale has no inverse")

    def projection(x, y):
        return x * scale_x + dx, y * scale_y + dy

    def inverse(x, y):
        return (x - dx) / scale_x, (y - dy) / scale_y

    return projection, inverse


def submap(x0: float, y0: float, w: float, h: float,
           width: float, height: float) -> Tuple[Transform, Transform]:
    """
    Projection pair that zooms the parent rectangle ``(x0, y0, w, h)`` to fill
    a new map of ``width`` x ``height``.
    """
    if w <= 0 or h <= 0:
        raise ProjectionError("Submap window must have a positive size")
    scale_x = width / w
    scale_y = height / h
    return affine(scale_x, scale_y, -x0 * scale_x, -y0 * scale_y)


def _as_point(value, name: str) -> Tuple[float, float]:
    try:
        x, y = value
        x, y = float(x), float(y)
    except (TypeError, ValueError) as e:
        raise ProjectionError(f"{name} must return an (x, y) pair, got {value!r}") from e
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ProjectionError(f"{name} returned a non-finite point {value!r}")
    return x, y


def validate_projection(projection: Transform, inverse: Transform,
                        width: float, height: float, samples: int = 3) -> None:
    """
    Check that ``inverse`` undoes ``projection`` on a lattice of sample points.

    Args:
        projection: Parent -> new map transform
        inverse: New -> parent map transform
        width: Parent map width
        height: Parent map height
        samples: Number of sample points per axis

    Raises:
        ProjectionError: if a transform is missing, malformed or not invertible
    """
    if not callable(projection) or not callable(inverse):
        raise ProjectionError("projection and inverse must both be callables")

    tolerance = 10 ** -PRECISION
    steps = max(samples - 1, 1)
    for i in range(samples):
        for j in range(samples):
            x = width * i / steps
            y = height * j / steps
            px, py = _as_point(projection(x, y), "projection")
            rx, ry = _as_point(inverse(px, py), "inverse")
            if abs(round(rx, PRECISION) - round(x, PRECISION)) > tolerance or \
                    abs(round(ry, PRECISION) - round(y, PRECISION)) > tolerance:
                raise ProjectionError(
                    f"inverse does not undo projection at ({x}, {y}): got ({rx}, {ry})"
                )
