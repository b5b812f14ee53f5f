"""
Retention policy - periodic sweep of stale flights and oversized trails.

A sweep runs as one transaction, in order:
1. Delete flights whose updated_at is older than now - max_age_ms
2. Delete trail points whose flight no longer exists
3. Keep only the newest max_trail_points points of every remaining flight

Writers are serialized, so an upsert racing a sweep either lands before
it (and is trimmed/cascaded by it) or after it (and is trimmed by the
next sweep). Failures propagate to the caller; nothing is retried here.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select, delete, func

from flighttracker.models import Database, FlightState, FlightTrail
from flighttracker.records import Clock, now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Row counts removed by one sweep."""
    pruned_flights: int
    orphaned_points: int
    trimmed_points: int


class RetentionPolicy:
    """Coordinates eviction across the flights and flight_trails tables."""

    def __init__(self, db: Database, clock: Clock = now_ms):
        self.db = db
        self._clock = clock

    def sweep(self, max_age_ms: int, max_trail_points: int) -> SweepResult:
        """Run one retention pass. Raises StorageError on failure."""
        if max_trail_points < 0:
            raise ValueError('max_trail_points must be >= 0')

        no_sync = {'synchronize_session': False}

        with self.db.transaction() as session:
            cutoff = self._clock() - max_age_ms

            # Stage 1: stale flights (cascade removes most of their points)
            flights_result = session.execute(
                delete(FlightState).where(FlightState.updated_at < cutoff),
                execution_options=no_sync,
            )

            # Stage 2: points left without a flight
            orphan_result = session.execute(
                delete(FlightTrail).where(
                    FlightTrail.flight_id.not_in(select(FlightState.id))
                ),
                execution_options=no_sync,
            )

            # Stage 3: cap every trail to its newest points
            ranked = select(
                FlightTrail.id,
                func.row_number().over(
                    partition_by=FlightTrail.flight_id,
                    order_by=(FlightTrail.timestamp.desc(), FlightTrail.id.desc()),
                ).label('rn'),
            ).subquery()
            keep_ids = select(ranked.c.id).where(ranked.c.rn <= max_trail_points)

            trim_result = session.execute(
                delete(FlightTrail).where(FlightTrail.id.not_in(keep_ids)),
                execution_options=no_sync,
            )

        result = SweepResult(
            pruned_flights=max(flights_result.rowcount, 0),
            orphaned_points=max(orphan_result.rowcount, 0),
            trimmed_points=max(trim_result.rowcount, 0),
        )

        if result.pruned_flights:
            logger.info(f'Sweep: pruned {result.pruned_flights} stale flights')
        if result.orphaned_points or result.trimmed_points:
            logger.debug(
                f'Sweep: removed {result.orphaned_points} orphaned and '
                f'{result.trimmed_points} excess trail points'
            )

        return result
