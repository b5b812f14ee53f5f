"""
Database models for the flight tracker.

Two related tables:
1. flights        - current state, one row per aircraft id
2. flight_trails  - bounded position history, foreign-keyed to flights
"""

from flighttracker.models.base import Base, Database, init_store, close_store
from flighttracker.models.flight_state import FlightState, flight_to_row
from flighttracker.models.flight_trail import FlightTrail

__all__ = [
    'Base',
    'Database',
    'init_store',
    'close_store',
    'FlightState',
    'FlightTrail',
    'flight_to_row',
]
