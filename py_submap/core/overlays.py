"""
Migration of overlay data from a parent map onto a freshly built map.

Each ``restore_*`` function reads the parent map, never mutates it, and
writes copies of the parent entities into the map builder. Entities keep
their ids: an entity whose region is gone is flagged ``removed``, only
markers are ever dropped from their collection.
"""

import math
from typing import Callable, Dict, List, Optional, Set, Tuple

import numpy as np
import structlog

from .spatial_index import land_and_water_index

logger = structlog.get_logger()

OVERLAY_FIELDS = ("cell_culture", "cell_state", "cell_religion", "cell_province")

PolesFn = Callable[..., Dict[int, Tuple[float, float]]]


def _rn(value: float, decimals: int = 2) -> float:
    return round(float(value), decimals)


def _project(projection, x: float, y: float) -> Tuple[float, float]:
    xp, yp = projection(x, y)
    return _rn(xp), _rn(yp)


def _cell_values(graph, name: str) -> np.ndarray:
    values = getattr(graph, name)
    if values is None:
        return np.zeros(len(graph.points), dtype=np.uint16)
    return values


def _valid_ids(values: np.ndarray) -> Set[int]:
    return {int(v) for v in np.unique(values)}


def _by_id(entities) -> Dict[int, object]:
    return {entity.id: entity for entity in entities}


def _mark_removed(entity, kind: str):
    logger.info("Region vanished after resampling, entity removed",
                kind=kind, id=entity.id, name=entity.name)
    return entity.model_copy(deep=True, update={"removed": True, "lock": False})


def restore_secondary_cell_data(parent, builder, inverse) -> None:
    """
    Copy culture, state, religion and province ids onto the new land cells.

    Each new land cell takes the ids of the nearest parent land cell; water
    cells stay neutral.
    """
    pack = builder.pack
    n_cells = len(pack.points)

    for name in OVERLAY_FIELDS + ("cell_burg",):
        setattr(pack, name, np.zeros(n_cells, dtype=np.uint16))

    parent_values = {name: _cell_values(parent.pack, name) for name in OVERLAY_FIELDS}
    parent_land, _ = land_and_water_index(parent.pack)

    migrated = 0
    for new_cell in range(n_cells):
        if pack.is_water(new_cell):
            continue

        x, y = inverse(*pack.points[new_cell])
        parent_cell = parent_land.find(x, y)
        if parent_cell is None:
            continue  # parent map has no land at all

        for name in OVERLAY_FIELDS:
            getattr(pack, name)[new_cell] = parent_values[name][parent_cell]
        migrated += 1

    logger.info("Cell overlays migrated", land_cells=migrated)


def _restore_centered(parent, builder, entities, values: np.ndarray, projection,
                      poles_fn: PolesFn, kind: str) -> List:
    """Validity filter plus projected-center-or-pole recentering."""
    pack = builder.pack
    valid = _valid_ids(values)
    poles = poles_fn(pack, lambda cell_id: values[cell_id])

    restored = []
    for entity in entities:
        if not entity.id or entity.removed:
            restored.append(entity.model_copy(deep=True))
            continue
        if entity.id not in valid:
            restored.append(_mark_removed(entity, kind))
            continue

        x, y = _project(projection, *parent.pack.points[entity.center])
        center_coords = (x, y) if builder.is_in_map(x, y) else poles[entity.id]
        center = builder.find_cell(*center_coords)
        restored.append(entity.model_copy(deep=True, update={"center": center}))

    return restored


def restore_cultures(parent, builder, projection, poles_fn: PolesFn) -> None:
    """Validate cultures against the new cells and recenter the survivors."""
    builder.cultures = _restore_centered(
        parent, builder, parent.cultures, builder.pack.cell_culture,
        projection, poles_fn, "culture",
    )


def restore_religions(parent, builder, projection, poles_fn: PolesFn) -> None:
    """Validate religions against the new cells and recenter the survivors."""
    builder.religions = _restore_centered(
        parent, builder, parent.religions, builder.pack.cell_religion,
        projection, poles_fn, "religion",
    )


def restore_burgs(parent, builder, projection, scale: float) -> None:
    """
    Move burgs onto the new land cells.

    A burg is removed when its projected position leaves the map, when no
    land cell can take it, or when its cell is already taken by a burg seen
    earlier. Populations are scaled by ``scale``.
    """
    pack = builder.pack
    land_index, _ = land_and_water_index(pack)

    burgs = []
    for burg in parent.burgs:
        if not burg.id or burg.removed:
            burgs.append(burg.model_copy(deep=True))
            continue

        population = burg.population * scale
        x, y = _project(projection, burg.x, burg.y)

        if not builder.is_in_map(x, y):
            logger.info("Burg is outside the new map, removed", id=burg.id, name=burg.name, x=x, y=y)
            burgs.append(burg.model_copy(update={"population": population, "removed": True, "lock": False}))
            continue

        cell = land_index.find(x, y)
        if cell is None:
            logger.error("Could not find cell for burg, removed", id=burg.id, name=burg.name)
            burgs.append(burg.model_copy(update={"population": population, "removed": True, "lock": False}))
            continue

        if pack.cell_burg[cell]:
            logger.warning("Cell already has a burg, removed",
                           cell=cell, id=burg.id, name=burg.name, occupant=int(pack.cell_burg[cell]))
            burgs.append(burg.model_copy(update={"population": population, "removed": True, "lock": False}))
            continue

        pack.cell_burg[cell] = burg.id
        update = {"population": population, "x": x, "y": y, "cell": cell}
        if pack.feature_ids is not None:
            update["feature"] = int(pack.feature_ids[cell])
        burgs.append(burg.model_copy(update=update))

    builder.burgs = burgs
    logger.info("Burgs migrated",
                placed=int(np.count_nonzero(pack.cell_burg)),
                removed=sum(1 for b in burgs if b.id and b.removed))


def _restore_regiment(regiment, builder, projection):
    x, y = _project(projection, regiment.x, regiment.y)
    bx, by = _project(projection, regiment.bx, regiment.by)
    return regiment.model_copy(update={
        "x": x, "y": y, "cell": builder.find_cell(x, y),
        "bx": bx, "by": by, "base_cell": builder.find_cell(bx, by),
    })


def _capital_or_pole(builder, burg_id: int, pole: Optional[Tuple[float, float]], fallback: int) -> int:
    capital = _by_id(builder.burgs).get(burg_id)
    if capital is not None and capital.id and not capital.removed:
        return capital.cell
    if pole is not None:
        return builder.find_cell(*pole)
    return fallback


def restore_states(parent, builder, projection, poles_fn: PolesFn) -> None:
    """
    Validate states, move their regiments and recenter them.

    Burgs must already be restored: a state is centered on its capital when
    the capital survived, otherwise on its pole of inaccessibility.
    """
    pack = builder.pack
    valid = _valid_ids(pack.cell_state)

    states = []
    for state in parent.states:
        if not state.id or state.removed:
            states.append(state.model_copy(deep=True))
            continue
        if state.id not in valid:
            states.append(_mark_removed(state, "state"))
            continue

        military = [_restore_regiment(regiment, builder, projection) for regiment in state.military]
        neighbors = [state_id for state_id in state.neighbors if state_id in valid]
        states.append(state.model_copy(deep=True, update={"neighbors": neighbors, "military": military}))

    poles = poles_fn(pack, lambda cell_id: pack.cell_state[cell_id])
    for state in states:
        if not state.id or state.removed:
            continue
        state.pole = poles.get(state.id)
        state.center = _capital_or_pole(builder, state.capital, state.pole, state.center)

    builder.states = states


def restore_provinces(parent, builder, poles_fn: PolesFn) -> None:
    """Validate provinces and recenter them on their capital or pole."""
    pack = builder.pack
    valid = _valid_ids(pack.cell_province)

    provinces = []
    for province in parent.provinces:
        if not province.id or province.removed:
            provinces.append(province.model_copy(deep=True))
        elif province.id not in valid:
            provinces.append(_mark_removed(province, "province"))
        else:
            provinces.append(province.model_copy(deep=True))

    poles = poles_fn(pack, lambda cell_id: pack.cell_province[cell_id])
    for province in provinces:
        if not province.id or province.removed:
            continue
        province.pole = poles.get(province.id)
        province.center = _capital_or_pole(builder, province.burg, province.pole, province.center)

    builder.provinces = provinces


def restore_markers(parent, builder, projection) -> None:
    """
    Move markers onto the new map.

    Markers projected outside the map are deleted together with their notes.
    """
    markers = []
    deleted_notes = set()

    for marker in parent.markers:
        x, y = projection(marker.x, marker.y)
        if not builder.is_in_map(x, y):
            logger.info("Marker is outside the new map, deleted", id=marker.id, type=marker.type)
            deleted_notes.add(f"marker{marker.id}")
            continue

        x, y = _rn(x), _rn(y)
        markers.append(marker.model_copy(update={"x": x, "y": y, "cell": builder.find_cell(x, y)}))

    builder.markers = markers
    builder.notes = [note for note in builder.notes if note.id not in deleted_notes]


def restore_zones(parent, builder, projection, scale: float) -> None:
    """
    Rebuild zone membership on the new cells.

    Every parent member cell claims the new cells within a radius matching its
    own size; the union keeps first-seen order without duplicates.
    """
    areas = parent.pack.cell_areas
    if areas is None:
        areas = np.zeros(len(parent.pack.points), dtype=np.float32)

    def search_radius(cell_id: int) -> float:
        return math.sqrt(float(areas[cell_id]) / math.pi) * scale

    zones = []
    for zone in parent.zones:
        cells = []
        for cell_id in zone.cells:
            x, y = projection(*parent.pack.points[cell_id])
            if not builder.is_in_map(x, y):
                continue
            cells.extend(builder.find_all(x, y, search_radius(cell_id)))

        zones.append(zone.model_copy(deep=True, update={"cells": list(dict.fromkeys(cells))}))

    builder.zones = zones
