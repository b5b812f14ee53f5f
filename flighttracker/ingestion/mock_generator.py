"""
Synthetic flight source for running without a live upstream.

The generator owns a fleet of simulated tracks. Each call to `advance()`
moves every track one step along its heading and returns canonical
Flight snapshots. The kinematics are pure functions of a track so they
can be tested on their own.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional

import numpy as np

from flighttracker.config import Bounds
from flighttracker.ingestion.normalizer import normalize_heading, round_half_up
from flighttracker.records import Clock, Flight, now_ms

logger = logging.getLogger(__name__)

MOCK_SOURCE = 'mock'

# Generation envelope for the continental US
MOCK_BOUNDS = Bounds(min_lat=24.5, max_lat=49.0, min_lon=-124.0, max_lon=-67.0)

KNOTS_TO_KMH = 1.852
KM_PER_DEGREE = 111.0


@dataclass(frozen=True)
class MockTrack:
    """Kinematic state of one simulated aircraft (float precision)."""
    id: str
    callsign: str
    latitude: float
    longitude: float
    altitude: float  # feet
    heading: float  # degrees
    speed: float  # knots
    vertical_rate: float  # feet per minute
    squawk: str


def _reflect(value: float, low: float, high: float) -> float:
    """Mirror an out-of-range value back across the violated edge."""
    if value < low:
        value = low + (low - value)
    elif value > high:
        value = high - (value - high)
    return min(max(value, low), high)


def advance_track(track: MockTrack, dt: float, bounds: Bounds = MOCK_BOUNDS) -> MockTrack:
    """
    Move `track` forward by `dt` seconds.

    Leaving the box through a latitude edge mirrors the north/south
    component of the heading; through a longitude edge, the east/west
    component. The position is reflected back inside the box.
    """
    heading_rad = math.radians(track.heading)
    distance_km = track.speed * KNOTS_TO_KMH * dt / 3600.0

    lat_change = (distance_km / KM_PER_DEGREE) * math.cos(heading_rad)
    lon_scale = KM_PER_DEGREE * max(math.cos(math.radians(track.latitude)), 0.01)
    lon_change = (distance_km / lon_scale) * math.sin(heading_rad)

    latitude = track.latitude + lat_change
    longitude = track.longitude + lon_change
    heading = track.heading

    if not bounds.contains(latitude, longitude):
        if not bounds.min_lat <= latitude <= bounds.max_lat:
            heading = 180.0 - heading
            latitude = _reflect(latitude, bounds.min_lat, bounds.max_lat)
        if not bounds.min_lon <= longitude <= bounds.max_lon:
            heading = 360.0 - heading
            longitude = _reflect(longitude, bounds.min_lon, bounds.max_lon)

    altitude = max(track.altitude + track.vertical_rate * dt / 60.0, 0.0)

    return replace(
        track,
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        heading=normalize_heading(heading),
    )


def track_to_flight(track: MockTrack, timestamp: int) -> Flight:
    """Snapshot a track as a canonical Flight record."""
    return Flight(
        id=track.id,
        callsign=track.callsign,
        latitude=track.latitude,
        longitude=track.longitude,
        altitude=round_half_up(track.altitude),
        heading=track.heading,
        speed=round_half_up(track.speed),
        vertical_rate=round_half_up(track.vertical_rate),
        on_ground=track.altitude <= 0,
        squawk=track.squawk,
        timestamp=timestamp,
        source=MOCK_SOURCE,
    )


class MockFlightGenerator:
    """
    Fleet of simulated aircraft moving inside a bounding box.

    Synthetic records are already canonical, so `source_tag` is None and
    the ingestion pipeline skips normalization for this source.
    """

    source_tag = None

    def __init__(
        self,
        num_flights: int = 100,
        step_seconds: float = 10.0,
        bounds: Bounds = MOCK_BOUNDS,
        seed: Optional[int] = None,
        clock: Clock = now_ms,
    ):
        self.step_seconds = step_seconds
        self.bounds = bounds
        self._clock = clock
        self.tracks: List[MockTrack] = self._spawn_fleet(num_flights, np.random.default_rng(seed))
        logger.info(f'Mock generator created with {num_flights} flights')

    def _spawn_fleet(self, count: int, rng: np.random.Generator) -> List[MockTrack]:
        b = self.bounds
        latitudes = rng.uniform(b.min_lat, b.max_lat, count)
        longitudes = rng.uniform(b.min_lon, b.max_lon, count)
        altitudes = rng.uniform(5000, 40000, count)
        headings = rng.uniform(0, 360, count)
        speeds = rng.uniform(200, 600, count)
        vertical_rates = rng.uniform(-1000, 1000, count)
        callsign_numbers = rng.integers(0, 10000, count)
        squawks = rng.integers(1000, 8000, count)

        return [
            MockTrack(
                id=f'MOCK{i:04d}',
                callsign=f'TST{int(callsign_numbers[i])}',
                latitude=float(latitudes[i]),
                longitude=float(longitudes[i]),
                altitude=float(altitudes[i]),
                heading=float(headings[i]),
                speed=float(speeds[i]),
                vertical_rate=float(vertical_rates[i]),
                squawk=str(int(squawks[i])),
            )
            for i in range(count)
        ]

    def advance(self) -> List[Flight]:
        """Move every track one step and return the fleet snapshot."""
        self.tracks = [
            advance_track(track, self.step_seconds, self.bounds) for track in self.tracks
        ]
        timestamp = self._clock()
        return [track_to_flight(track, timestamp) for track in self.tracks]

    def fetch(self) -> List[Flight]:
        """Source interface used by the ingestion pipeline."""
        return self.advance()
