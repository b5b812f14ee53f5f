"""
Storage layer for the flight tracker.

Operations over the flights / flight_trails tables, all bound to an
explicit `Database` handle from `init_store()`.
"""

from flighttracker.storage.flight_store import FlightStore
from flighttracker.storage.trail_store import TrailStore
from flighttracker.storage.retention import RetentionPolicy, SweepResult

__all__ = ['FlightStore', 'TrailStore', 'RetentionPolicy', 'SweepResult']
