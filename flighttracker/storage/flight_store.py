"""
Flight store - current-state table keyed by aircraft id.

Every upsert replaces the flight's row and appends one trail point in
the same transaction, so a flight never exists without its first point.

Staleness is a read-time filter: a flight that stops being reported stays
in the table (avoiding flicker on brief upstream gaps) until the retention
sweep physically deletes it.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from flighttracker.models import Database, FlightState, FlightTrail, flight_to_row
from flighttracker.records import Clock, Flight, now_ms
from flighttracker.storage.trail_store import TrailStore

logger = logging.getLogger(__name__)

# Every column except the primary key is replaced on conflict
_UPDATABLE_COLUMNS = (
    'callsign',
    'latitude',
    'longitude',
    'altitude',
    'heading',
    'speed',
    'vertical_rate',
    'on_ground',
    'squawk',
    'timestamp',
    'source',
    'updated_at',
)


class FlightStore:
    """
    Current flight state with staleness-aware read views.

    Writes go through `Database.transaction()`, so a failed batch leaves
    no trace for readers.
    """

    def __init__(
        self,
        db: Database,
        trail_store: Optional[TrailStore] = None,
        clock: Clock = now_ms,
    ):
        self.db = db
        self.trail_store = trail_store or TrailStore(db, clock=clock)
        self._clock = clock

    def _upsert(self, session: Session, flight: Flight, updated_at: int) -> None:
        """Upsert one flight and append its trail point."""
        stmt = sqlite_insert(FlightState).values(**flight_to_row(flight, updated_at))
        stmt = stmt.on_conflict_do_update(
            index_elements=['id'],
            set_={column: stmt.excluded[column] for column in _UPDATABLE_COLUMNS},
        )
        session.execute(stmt)

        self.trail_store.add_point(
            session,
            flight.id,
            flight.latitude,
            flight.longitude,
            flight.altitude,
            flight.timestamp,
        )

    def upsert_one(self, flight: Flight) -> None:
        """Insert or fully replace one flight, extending its trail."""
        with self.db.transaction() as session:
            self._upsert(session, flight, self._clock())

    def upsert_batch(self, flights: Iterable[Flight]) -> int:
        """
        Upsert all flights as a single all-or-nothing transaction.

        Returns the number of flights applied. An empty batch is a no-op.
        """
        flights = list(flights)
        if not flights:
            return 0

        with self.db.transaction() as session:
            updated_at = self._clock()
            for flight in flights:
                self._upsert(session, flight, updated_at)

        logger.debug(f'Upserted batch of {len(flights)} flights')
        return len(flights)

    def get_all(self, max_age_ms: int) -> List[Flight]:
        """Flights upserted within the last `max_age_ms`, ordered by id."""
        cutoff = self._clock() - max_age_ms
        with self.db.session() as session:
            rows = session.scalars(
                select(FlightState)
                .where(FlightState.updated_at > cutoff)
                .order_by(FlightState.id)
            ).all()
            return [row.to_record() for row in rows]

    def get_since(self, timestamp: int, max_age_ms: int) -> List[Flight]:
        """
        Active flights whose upstream report time is after `timestamp`.

        Used for incremental polling: clients pass the server time of
        their previous response.
        """
        cutoff = self._clock() - max_age_ms
        with self.db.session() as session:
            rows = session.scalars(
                select(FlightState)
                .where(
                    FlightState.timestamp > timestamp,
                    FlightState.updated_at > cutoff,
                )
                .order_by(FlightState.id)
            ).all()
            return [row.to_record() for row in rows]

    def get_by_id(self, flight_id: str) -> Optional[Flight]:
        """Look up one flight regardless of staleness; None if absent."""
        with self.db.session() as session:
            row = session.get(FlightState, flight_id)
            return row.to_record() if row else None

    def stats(self) -> dict:
        """Raw row counts, ignoring staleness."""
        with self.db.session() as session:
            flight_count = session.scalar(select(func.count()).select_from(FlightState))
            trail_point_count = session.scalar(select(func.count()).select_from(FlightTrail))

        return {
            'flight_count': flight_count or 0,
            'trail_point_count': trail_point_count or 0,
        }
