"""Tests for migrating overlay collections onto a rebuilt map."""

import copy

import numpy as np
import pytest

from py_submap.core import MapBuilder, affine, identity
from py_submap.core.overlays import (
    restore_burgs,
    restore_cultures,
    restore_markers,
    restore_provinces,
    restore_religions,
    restore_secondary_cell_data,
    restore_states,
    restore_zones,
)
from py_submap.core.poles import get_poles_of_inaccessibility


def make_builder(parent, inverse, submerge=None, width=None, height=None):
    """Builder whose pack is a copy of the parent pack, optionally partly flooded."""
    pack = copy.deepcopy(parent.pack)
    if submerge is not None:
        pack.heights[submerge(pack.points)] = 5
    builder = MapBuilder(width=width or parent.width, height=height or parent.height, pack=pack)
    builder.notes = [note.model_copy() for note in parent.notes]
    restore_secondary_cell_data(parent, builder, inverse)
    return builder


def fixed_poles(points):
    def poles(graph, key_fn):
        return dict(points)
    return poles


def south_of(limit):
    return lambda points: points[:, 1] >= limit


def east_of(limit):
    return lambda points: points[:, 0] >= limit


class TestRestoreSecondaryCellData:
    """Test per-cell overlay migration."""

    def test_identity_copies_overlays(self, parent_map):
        builder = make_builder(parent_map, identity()[1])

        for name in ("cell_culture", "cell_state", "cell_religion", "cell_province"):
            np.testing.assert_array_equal(getattr(builder.pack, name), getattr(parent_map.pack, name))

    def test_water_cells_are_neutral(self, parent_map):
        builder = make_builder(parent_map, identity()[1], submerge=south_of(50))

        water = builder.pack.heights < 20
        assert not np.any(builder.pack.cell_state[water])
        assert not np.any(builder.pack.cell_religion[water])

    def test_burg_field_is_reset(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        assert not np.any(builder.pack.cell_burg)

    def test_parent_untouched(self, parent_map):
        before = parent_map.pack.cell_state.copy()
        make_builder(parent_map, identity()[1], submerge=east_of(0))
        np.testing.assert_array_equal(parent_map.pack.cell_state, before)


class TestRestoreBurgs:
    """Test burg migration."""

    def test_identity_keeps_burgs_in_place(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_burgs(parent_map, builder, identity()[0], 1.0)

        for old, new in zip(parent_map.burgs[1:], builder.burgs[1:]):
            assert not new.removed
            assert (new.x, new.y, new.cell) == (old.x, old.y, old.cell)
            assert builder.pack.cell_burg[new.cell] == new.id

    def test_population_scaled(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_burgs(parent_map, builder, identity()[0], 2.0)

        assert [b.population for b in builder.burgs[1:]] == [20.0, 20.0, 20.0]

    def test_out_of_bounds_burg_removed(self, parent_map):
        parent_map.burgs[1] = parent_map.burgs[1].model_copy(update={"x": 10.0, "y": 10.0, "lock": True})
        projection, inverse = affine(1, 1, 15, 0)
        builder = make_builder(parent_map, inverse, width=20, height=20)

        restore_burgs(parent_map, builder, projection, 1.0)

        burg = builder.burgs[1]
        assert burg.removed
        assert not burg.lock
        assert burg.id == 1

    def test_first_burg_wins_shared_cell(self, parent_map):
        first = parent_map.burgs[1]
        parent_map.burgs[3] = parent_map.burgs[3].model_copy(update={"x": first.x + 0.01, "y": first.y})
        builder = make_builder(parent_map, identity()[1])

        restore_burgs(parent_map, builder, identity()[0], 1.0)

        assert not builder.burgs[1].removed
        assert builder.burgs[3].removed
        assert builder.pack.cell_burg[first.cell] == 1
        assert np.count_nonzero(builder.pack.cell_burg) == 2

    def test_no_land_removes_all_burgs(self, parent_map):
        builder = make_builder(parent_map, identity()[1], submerge=east_of(0))
        restore_burgs(parent_map, builder, identity()[0], 1.0)

        assert all(burg.removed for burg in builder.burgs[1:])
        assert not np.any(builder.pack.cell_burg)

    def test_burg_snaps_to_land(self, parent_map):
        builder = make_builder(parent_map, identity()[1], submerge=east_of(55))
        restore_burgs(parent_map, builder, identity()[0], 1.0)

        east_capital = builder.burgs[2]
        assert not east_capital.removed
        assert builder.pack.heights[east_capital.cell] >= 20
        assert east_capital.feature == builder.pack.feature_ids[east_capital.cell]

    def test_sentinel_and_removed_burgs_copied(self, parent_map):
        parent_map.burgs[2] = parent_map.burgs[2].model_copy(update={"removed": True})
        builder = make_builder(parent_map, identity()[1])

        restore_burgs(parent_map, builder, identity()[0], 3.0)

        assert builder.burgs[0].id == 0
        assert builder.burgs[2].removed
        assert builder.burgs[2].population == parent_map.burgs[2].population
        assert len(builder.burgs) == len(parent_map.burgs)


class TestRestoreCulturesAndReligions:
    """Test culture and religion validation and recentering."""

    def test_identity_keeps_centers(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_cultures(parent_map, builder, identity()[0], get_poles_of_inaccessibility)
        restore_religions(parent_map, builder, identity()[0], get_poles_of_inaccessibility)

        assert builder.cultures[1].center == parent_map.cultures[1].center
        assert [r.center for r in builder.religions] == [r.center for r in parent_map.religions]
        assert not any(r.removed for r in builder.religions)

    def test_submerged_religion_removed(self, parent_map):
        parent_map.religions[2] = parent_map.religions[2].model_copy(update={"lock": True})
        builder = make_builder(parent_map, identity()[1], submerge=south_of(40))

        restore_religions(parent_map, builder, identity()[0], get_poles_of_inaccessibility)

        assert builder.religions[2].removed
        assert not builder.religions[2].lock
        assert not builder.religions[1].removed
        assert 2 not in set(builder.pack.cell_religion.tolist())

    def test_center_outside_map_uses_pole(self, parent_map):
        projection, inverse = affine(1, 1, 60, 0)
        builder = make_builder(parent_map, inverse)

        restore_cultures(parent_map, builder, projection, fixed_poles({1: (80.0, 50.0)}))

        assert not builder.cultures[1].removed
        assert builder.cultures[1].center == builder.find_cell(80.0, 50.0)

    def test_sentinel_row_kept(self, parent_map):
        builder = make_builder(parent_map, identity()[1], submerge=east_of(0))
        restore_cultures(parent_map, builder, identity()[0], get_poles_of_inaccessibility)

        assert builder.cultures[0].id == 0
        assert not builder.cultures[0].removed
        assert builder.cultures[1].removed


class TestRestoreStates:
    """Test state validation, regiments and recentering."""

    def restore(self, parent, builder, projection, poles=get_poles_of_inaccessibility):
        restore_burgs(parent, builder, projection, 1.0)
        restore_states(parent, builder, projection, poles)

    def test_identity_keeps_states(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        self.restore(parent_map, builder, identity()[0])

        west, east = builder.states[1], builder.states[2]
        assert not west.removed and not east.removed
        assert west.center == parent_map.burgs[1].cell
        assert east.center == parent_map.burgs[2].cell
        assert west.neighbors == [2]
        assert west.pole is not None

    def test_regiments_moved(self, parent_map):
        projection, inverse = affine(1, 1, 10, 0)
        builder = make_builder(parent_map, inverse)
        self.restore(parent_map, builder, projection)

        old, new = parent_map.states[1].military[0], builder.states[1].military[0]
        assert new.x == round(old.x + 10, 2)
        assert new.bx == round(old.bx + 10, 2)
        assert new.cell == builder.find_cell(new.x, new.y)
        assert new.total == old.total

    def test_vanished_state_removed_and_dropped_from_neighbors(self, parent_map):
        builder = make_builder(parent_map, identity()[1], submerge=east_of(45))
        self.restore(parent_map, builder, identity()[0])

        assert builder.states[2].removed
        assert not builder.states[1].removed
        assert builder.states[1].neighbors == []

    def test_removed_capital_falls_back_to_pole(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_burgs(parent_map, builder, identity()[0], 1.0)
        builder.burgs[1] = builder.burgs[1].model_copy(update={"removed": True})

        restore_states(parent_map, builder, identity()[0], fixed_poles({1: (30.0, 45.0), 2: (70.0, 50.0)}))

        assert builder.states[1].pole == (30.0, 45.0)
        assert builder.states[1].center == builder.find_cell(30.0, 45.0)
        assert builder.states[2].center == builder.burgs[2].cell

    def test_parent_states_not_mutated(self, parent_map):
        before = [state.model_dump() for state in parent_map.states]
        projection, inverse = affine(1, 1, 5, 5)
        builder = make_builder(parent_map, inverse)
        self.restore(parent_map, builder, projection)

        assert [state.model_dump() for state in parent_map.states] == before


class TestRestoreProvinces:
    """Test province validation and recentering."""

    def test_capital_center(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_burgs(parent_map, builder, identity()[0], 1.0)
        restore_provinces(parent_map, builder, get_poles_of_inaccessibility)

        assert builder.provinces[1].center == builder.burgs[1].cell
        assert builder.provinces[2].center == builder.burgs[2].cell

    def test_missing_capital_uses_pole(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_burgs(parent_map, builder, identity()[0], 1.0)
        builder.burgs[2] = builder.burgs[2].model_copy(update={"removed": True})

        restore_provinces(parent_map, builder, fixed_poles({1: (30.0, 50.0), 2: (65.0, 40.0)}))

        assert builder.provinces[2].center == builder.find_cell(65.0, 40.0)

    def test_vanished_province_removed(self, parent_map):
        builder = make_builder(parent_map, identity()[1], submerge=east_of(45))
        restore_burgs(parent_map, builder, identity()[0], 1.0)
        restore_provinces(parent_map, builder, get_poles_of_inaccessibility)

        assert builder.provinces[2].removed
        assert not builder.provinces[1].removed


class TestRestoreMarkers:
    """Test marker migration."""

    def test_markers_moved(self, parent_map):
        projection, inverse = affine(1, 1, 10, -5)
        builder = make_builder(parent_map, inverse)
        restore_markers(parent_map, builder, projection)

        old, new = parent_map.markers[0], builder.markers[0]
        assert (new.x, new.y) == (round(old.x + 10, 2), round(old.y - 5, 2))
        assert new.cell == builder.find_cell(new.x, new.y)

    def test_out_of_bounds_marker_deleted_with_note(self, parent_map):
        projection, inverse = affine(1, 1, 40, 0)
        builder = make_builder(parent_map, inverse)
        restore_markers(parent_map, builder, projection)

        assert [marker.id for marker in builder.markers] == [0]
        assert [note.id for note in builder.notes] == ["marker0", "state1"]
        assert len(parent_map.markers) == 2
        assert len(parent_map.notes) == 3


class TestRestoreZones:
    """Test zone membership rebuild."""

    def test_identity_covers_parent_cells(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_zones(parent_map, builder, identity()[0], 1.0)

        for old, new in zip(parent_map.zones, builder.zones):
            assert set(old.cells) <= set(new.cells)

    def test_no_duplicate_cells(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_zones(parent_map, builder, identity()[0], 3.0)

        for zone in builder.zones:
            assert len(zone.cells) == len(set(zone.cells))

    def test_radius_grows_with_scale(self, parent_map):
        builder = make_builder(parent_map, identity()[1])
        restore_zones(parent_map, builder, identity()[0], 1.0)
        small = [len(zone.cells) for zone in builder.zones]

        restore_zones(parent_map, builder, identity()[0], 4.0)
        large = [len(zone.cells) for zone in builder.zones]

        assert all(l >= s for s, l in zip(small, large))
        assert sum(large) > sum(small)

    def test_zone_outside_map_kept_empty(self, parent_map):
        projection, inverse = affine(1, 1, 500, 0)
        builder = make_builder(parent_map, inverse)
        restore_zones(parent_map, builder, projection, 1.0)

        assert [zone.id for zone in builder.zones] == [0, 1]
        assert all(zone.cells == [] for zone in builder.zones)

    @pytest.mark.parametrize("scale", [0.5, 1.0, 2.0])
    def test_cells_are_valid_ids(self, parent_map, scale):
        builder = make_builder(parent_map, identity()[1])
        restore_zones(parent_map, builder, identity()[0], scale)

        n_cells = len(builder.pack.points)
        assert all(0 <= cell < n_cells for zone in builder.zones for cell in zone.cells)
