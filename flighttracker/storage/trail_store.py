"""
Trail store - bounded per-flight position history.

Appends are unconditional; the point cap is enforced by the retention
sweep rather than on every insert, which would cost a per-write scan.
Reads always return points in ascending chronological order.
"""

import logging
from typing import Dict, List

from sqlalchemy import select, insert, func
from sqlalchemy.orm import Session

from flighttracker.models import Database, FlightState, FlightTrail
from flighttracker.records import Clock, TrailPoint, now_ms

logger = logging.getLogger(__name__)


class TrailStore:
    """Read/append access to the flight_trails table."""

    def __init__(self, db: Database, clock: Clock = now_ms):
        self.db = db
        self._clock = clock

    def add_point(
        self,
        session: Session,
        flight_id: str,
        latitude: float,
        longitude: float,
        altitude: int,
        timestamp: int,
    ) -> None:
        """Append a point inside the caller's transaction."""
        session.execute(
            insert(FlightTrail).values(
                flight_id=flight_id,
                latitude=latitude,
                longitude=longitude,
                altitude=altitude,
                timestamp=timestamp,
            )
        )

    def append_point(
        self,
        flight_id: str,
        latitude: float,
        longitude: float,
        altitude: int,
        timestamp: int,
    ) -> None:
        """
        Append one point to a flight's trail.

        The flight must exist; trail rows reference flights.id.
        """
        with self.db.transaction() as session:
            self.add_point(session, flight_id, latitude, longitude, altitude, timestamp)

    def get_trail(self, flight_id: str, limit: int) -> List[TrailPoint]:
        """Return at most `limit` most recent points, oldest first."""
        if limit <= 0:
            return []

        with self.db.session() as session:
            rows = session.scalars(
                select(FlightTrail)
                .where(FlightTrail.flight_id == flight_id)
                .order_by(FlightTrail.timestamp.desc(), FlightTrail.id.desc())
                .limit(limit)
            ).all()
            points = [row.to_record() for row in rows]

        # Fetched newest first so LIMIT keeps the most recent
        points.reverse()
        return points

    def get_all_trails(self, max_age_ms: int, max_points: int) -> Dict[str, List[TrailPoint]]:
        """
        Trails of all active flights, each capped to `max_points`.

        Flights without any trail point are omitted from the mapping.
        Runs as a single statement so the result is one consistent snapshot.
        """
        if max_points <= 0:
            return {}

        cutoff = self._clock() - max_age_ms
        active_ids = select(FlightState.id).where(FlightState.updated_at > cutoff)

        ranked = (
            select(
                FlightTrail.id,
                FlightTrail.flight_id,
                FlightTrail.latitude,
                FlightTrail.longitude,
                FlightTrail.altitude,
                FlightTrail.timestamp,
                func.row_number().over(
                    partition_by=FlightTrail.flight_id,
                    order_by=(FlightTrail.timestamp.desc(), FlightTrail.id.desc()),
                ).label('rn'),
            )
            .where(FlightTrail.flight_id.in_(active_ids))
            .subquery()
        )

        stmt = (
            select(ranked)
            .where(ranked.c.rn <= max_points)
            .order_by(ranked.c.flight_id, ranked.c.timestamp, ranked.c.id)
        )

        trails: Dict[str, List[TrailPoint]] = {}
        with self.db.session() as session:
            for row in session.execute(stmt):
                trails.setdefault(row.flight_id, []).append(
                    TrailPoint(
                        flight_id=row.flight_id,
                        latitude=row.latitude,
                        longitude=row.longitude,
                        altitude=row.altitude,
                        timestamp=row.timestamp,
                    )
                )

        logger.debug(f'Loaded trails for {len(trails)} active flights')
        return trails
