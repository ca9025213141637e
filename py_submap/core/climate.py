"""
Temperature and precipitation for a resampled lattice.

This module implements:
- Map latitude bounds carried over from the parent through the inverse projection
- Latitude temperature bands with an altitude drop
- Wind passes across lattice rows and columns depositing precipitation
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np
import structlog

from .voronoi_graph import _seed_to_int

logger = structlog.get_logger()


@dataclass
class ClimateOptions:
    """Climate parameters."""

    # Temperature
    temperature_equator: float = 25.0
    temperature_north_pole: float = -30.0
    temperature_south_pole: float = -30.0
    height_exponent: float = 1.5
    temperature_lapse_rate: float = 6.5  # degrees per km
    tropic_north: int = 16
    tropic_south: int = -20
    tropical_gradient: float = 0.15

    # Precipitation
    precipitation_modifier: float = 1.0
    base_precipitation_west: float = 120.0
    base_precipitation_vertical: float = 60.0
    water_humidity_gain: float = 5.0
    water_precipitation: float = 5.0
    max_passable_elevation: int = 85
    terrain_mod_threshold: float = 70.0
    precipitation_base_divisor: float = 10.0
    coastal_precip_range: Tuple[int, int] = (10, 21)
    evaporation_threshold: float = 1.5
    permafrost_threshold: float = -5.0

    # Wind angle per 30 degree tier, north to south
    winds: List[int] = field(default_factory=lambda: [225, 135, 225, 225, 135, 225])
    wind_tier_span: int = 30

    # Precipitation modifier per 5 degree band from the equator
    latitude_precipitation_modifiers: List[float] = field(default_factory=lambda: [
        4.0, 2.0, 2.0, 1.0, 1.0, 2.0, 2.0, 2.0, 2.0,
        3.0, 3.0, 2.0, 2.0, 1.0, 1.0, 1.0, 0.5,
    ])


@dataclass
class MapCoordinates:
    """Latitude of the top and bottom map edges."""

    lat_n: float = 90
    lat_s: float = -90

    @property
    def lat_t(self):
        return self.lat_n - self.lat_s

    def latitude(self, y: float, height: float) -> float:
        return self.lat_n - (y / height) * self.lat_t


def project_coordinates(parent: MapCoordinates, parent_height: float,
                        inverse: Callable, width: float, height: float) -> MapCoordinates:
    """
    Latitude bounds of a new map whose points map back to the parent through
    ``inverse``.

    The top and bottom edge midpoints are inverse-projected and read off the
    parent's latitude scale; the result is clamped to the poles.
    """
    _, top = inverse(width / 2, 0)
    _, bottom = inverse(width / 2, height)
    lat_n = float(np.clip(parent.latitude(top, parent_height), -90, 90))
    lat_s = float(np.clip(parent.latitude(bottom, parent_height), -90, 90))
    return MapCoordinates(lat_n=round(lat_n, 2), lat_s=round(lat_s, 2))


def sea_level_temperature(latitude: float, options: ClimateOptions) -> float:
    """Temperature at sea level for a latitude."""
    gradient = options.tropical_gradient
    if options.tropic_south <= latitude <= options.tropic_north:
        return options.temperature_equator - abs(latitude) * gradient

    if latitude > 0:
        at_tropic = options.temperature_equator - options.tropic_north * gradient
        slope = (at_tropic - options.temperature_north_pole) / (90 - options.tropic_north)
        return at_tropic - (latitude - options.tropic_north) * slope

    at_tropic = options.temperature_equator + options.tropic_south * gradient
    slope = (at_tropic - options.temperature_south_pole) / (90 + options.tropic_south)
    return at_tropic + (latitude - options.tropic_south) * slope


def altitude_temperature_drop(height: int, options: ClimateOptions) -> float:
    if height < 20:
        return 0
    height_km = ((int(height) - 18) ** options.height_exponent) / 1000
    return round(height_km * options.temperature_lapse_rate, 1)


class Climate:
    """Derives temperature and precipitation on a row-major lattice."""

    def __init__(self, grid, options: Optional[ClimateOptions] = None,
                 map_coords: Optional[MapCoordinates] = None):
        """
        Args:
            grid: Lattice VoronoiGraph with heights
            options: Climate parameters
            map_coords: Latitude bounds of the map
        """
        self.grid = grid
        self.options = options or ClimateOptions()
        self.map_coords = map_coords or MapCoordinates()
        self.rng = np.random.default_rng(_seed_to_int(grid.seed))

    def calculate_temperatures(self) -> np.ndarray:
        """Sea level temperature per lattice row minus the altitude drop per cell."""
        logger.info("Calculating temperatures",
                    lat_n=self.map_coords.lat_n, lat_s=self.map_coords.lat_s)

        grid = self.grid
        n_cells = len(grid.points)
        temperatures = np.zeros(n_cells, dtype=np.int8)

        for row_start in range(0, n_cells, grid.cells_x):
            latitude = self.map_coords.latitude(grid.points[row_start][1], grid.graph_height)
            sea_level = sea_level_temperature(latitude, self.options)
            for cell_id in range(row_start, min(row_start + grid.cells_x, n_cells)):
                drop = altitude_temperature_drop(grid.heights[cell_id], self.options)
                temperatures[cell_id] = int(np.clip(sea_level - drop, -128, 127))

        grid.temperatures = temperatures
        return temperatures

    def generate_precipitation(self) -> np.ndarray:
        """
        Pass prevailing winds along lattice rows and the vertical winds down
        or up lattice columns, dropping humidity as precipitation.

        Requires temperatures: cells below the permafrost threshold get none.
        """
        logger.info("Generating precipitation")

        grid = self.grid
        options = self.options
        coords = self.map_coords
        n_cells = len(grid.points)
        cells_x, cells_y = grid.cells_x, grid.cells_y
        modifiers = options.latitude_precipitation_modifiers

        self.precipitation = np.zeros(n_cells, dtype=np.uint8)
        modifier = (n_cells / 10000) ** 0.25 * options.precipitation_modifier

        westerly, easterly = [], []
        northerly = southerly = 0
        for row_start in range(0, n_cells, cells_x):
            latitude = coords.lat_n - (row_start // cells_x / cells_y) * coords.lat_t
            band = min(int((abs(latitude) - 1) / 5), len(modifiers) - 1)
            tier = min(int(abs(latitude - 89) / options.wind_tier_span), len(options.winds) - 1)
            angle = options.winds[tier]

            if 40 < angle < 140:
                westerly.append((row_start, modifiers[band]))
            if 220 < angle < 320:
                easterly.append((min(row_start + cells_x - 1, n_cells - 1), modifiers[band]))
            if 100 < angle < 260:
                northerly += 1
            if angle > 280 or angle < 80:
                southerly += 1

        base = options.base_precipitation_west * modifier
        for first, lat_mod in westerly:
            self._pass_wind(first, min(base * lat_mod, 255), 1, cells_x)
        for first, lat_mod in easterly:
            self._pass_wind(first, min(base * lat_mod, 255), -1, cells_x)

        vertical = northerly + southerly
        if northerly:
            max_prec = (northerly / vertical) * options.base_precipitation_vertical \
                * modifier * self._edge_modifier(coords.lat_n)
            for first in range(min(cells_x, n_cells)):
                self._pass_wind(first, max_prec, cells_x, cells_y)
        if southerly:
            max_prec = (southerly / vertical) * options.base_precipitation_vertical \
                * modifier * self._edge_modifier(coords.lat_s)
            for first in range(max(0, n_cells - cells_x), n_cells):
                self._pass_wind(first, max_prec, -cells_x, cells_y)

        grid.precipitation = self.precipitation
        return self.precipitation

    def _edge_modifier(self, latitude: float) -> float:
        modifiers = self.options.latitude_precipitation_modifiers
        if self.map_coords.lat_t > 60:
            return float(np.mean(modifiers))
        return modifiers[min(int((abs(latitude) - 1) / 5), len(modifiers) - 1)]

    def _deposit(self, cell: int, amount: float) -> None:
        current = int(self.precipitation[cell])
        self.precipitation[cell] = current + int(min(max(amount, 0), 255 - current))

    def _pass_wind(self, first: int, max_prec: float, next_step: int, steps: int) -> None:
        options = self.options
        heights = self.grid.heights
        temperatures = self.grid.temperatures
        n_cells = len(heights)

        humidity = max_prec - int(heights[first])
        if humidity <= 0:
            return

        current = first
        for _ in range(steps):
            if current < 0 or current >= n_cells:
                break
            next_cell = current + next_step
            has_next = 0 <= next_cell < n_cells

            if temperatures is not None and temperatures[current] < options.permafrost_threshold:
                current = next_cell
                continue

            if heights[current] < 20:
                if has_next and heights[next_cell] >= 20:
                    self._deposit(next_cell, max(humidity / self.rng.integers(*options.coastal_precip_range), 1))
                elif has_next:
                    humidity = min(humidity + options.water_humidity_gain * options.precipitation_modifier, max_prec)
                    self._deposit(current, options.water_precipitation * options.precipitation_modifier)
                current = next_cell
                continue

            if not has_next:
                self._deposit(current, humidity)
                humidity = 0
                current = next_cell
                continue

            if heights[next_cell] <= options.max_passable_elevation:
                precipitation = self._precipitation(humidity, current, next_cell)
                evaporation = 1 if precipitation > options.evaporation_threshold else 0
                self._deposit(current, precipitation)
                humidity = max(0, humidity - precipitation + evaporation)
            else:
                self._deposit(current, humidity)
                humidity = 0
            current = next_cell

    def _precipitation(self, humidity: float, cell: int, next_cell: int) -> float:
        """Humidity loss on a land cell, raised on windward slopes."""
        options = self.options
        heights = self.grid.heights
        normal_loss = max(humidity / (options.precipitation_base_divisor * options.precipitation_modifier), 1)
        rise = max(int(heights[next_cell]) - int(heights[cell]), 0)
        orographic = rise * (int(heights[next_cell]) / options.terrain_mod_threshold) ** 2
        return min(normal_loss + orographic, humidity)


def derive_climate(builder, options: Optional[ClimateOptions] = None) -> None:
    """Recompute lattice temperature and precipitation for the builder's latitudes."""
    climate = Climate(builder.grid, options, builder.coordinates)
    climate.calculate_temperatures()
    climate.generate_precipitation()


def keep_sampled_climate(builder) -> None:
    """Leave the temperature and precipitation sampled from the parent."""
    logger.debug("Keeping resampled temperature and precipitation")
