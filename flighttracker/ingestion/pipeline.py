"""
Ingestion pipeline - orchestrates data flow from a source to the store.

Pipeline stages per tick:
1. Fetch: pull raw records from the configured source
2. Normalize: convert to canonical flights, discarding malformed records
3. Upsert: batch-upsert survivors in one transaction (extends trails)
4. Sweep: prune stale flights and cap trails per retention policy

A failed tick contributes nothing and leaves stored state untouched;
the next tick retries independently. Ticks never overlap: a tick
requested while another is still running is skipped.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from flighttracker.config import AppConfig
from flighttracker.errors import (
    FlightTrackerError,
    StorageError,
    UnsupportedSourceError,
    UpstreamFetchError,
)
from flighttracker.ingestion.faa_client import FaaClient
from flighttracker.ingestion.mock_generator import MockFlightGenerator
from flighttracker.ingestion.normalizer import SourceTag, normalize, resolve_source
from flighttracker.ingestion.opensky_client import OpenSkyClient
from flighttracker.records import Flight
from flighttracker.storage import FlightStore, RetentionPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickReport:
    """Outcome of one ingestion tick."""
    fetched: int = 0
    upserted: int = 0
    pruned_flights: int = 0
    duration_ms: float = 0.0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def source_from_config(app_config: AppConfig):
    """Build the flight source selected by configuration."""
    ingestion = app_config.ingestion
    if ingestion.use_mock_data or ingestion.data_source == 'mock':
        logger.info('Using mock flight data')
        return MockFlightGenerator(
            num_flights=ingestion.mock_flight_count,
            step_seconds=ingestion.fetch_interval_seconds,
        )

    tag = resolve_source(ingestion.data_source)
    if tag is SourceTag.OPENSKY:
        return OpenSkyClient.from_config(app_config.opensky, timeout=ingestion.request_timeout_seconds)
    return FaaClient.from_config(app_config.faa, timeout=ingestion.request_timeout_seconds)


class IngestionPipeline:
    """
    Manages the data ingestion lifecycle.

    Coordinates fetching, normalization, storage and retention.
    Can run as a background thread for continuous polling.

    `source` is any object with a `fetch()` method and a `source_tag`
    attribute; a `source_tag` of None means `fetch()` already yields
    canonical Flight records.
    """

    def __init__(
        self,
        source: Any,
        flight_store: FlightStore,
        retention: RetentionPolicy,
        max_flight_age_ms: int = 5 * 60 * 1000,
        max_trail_points: int = 256,
        interval: float = 10.0,
    ):
        self.source = source
        self.flight_store = flight_store
        self.retention = retention
        self.max_flight_age_ms = max_flight_age_ms
        self.max_trail_points = max_trail_points
        self.interval = interval

        # State tracking
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._tick_lock = threading.Lock()
        self._last_tick_time: float = 0
        self._tick_count: int = 0
        self._error_count: int = 0
        self._skipped_count: int = 0

        # Callbacks for external integration
        self._on_update_callbacks: List[Callable[[int], None]] = []

    def add_update_callback(self, callback: Callable[[int], None]) -> None:
        """
        Register callback to be invoked after each successful tick.

        Callback receives the count of flights upserted.
        """
        self._on_update_callbacks.append(callback)

    def _normalize_all(self, raw_records: List[Any]) -> List[Flight]:
        tag = self.source.source_tag
        if tag is None:
            return list(raw_records)

        flights = []
        for raw in raw_records:
            flight = normalize(raw, tag)
            if flight is not None:
                flights.append(flight)

        discarded = len(raw_records) - len(flights)
        if discarded:
            logger.debug(f'Discarded {discarded} malformed or positionless records')
        return flights

    def tick(self) -> Optional[TickReport]:
        """
        Execute one ingestion tick.

        Returns the tick report, or None if a previous tick is still running.
        """
        if not self._tick_lock.acquire(blocking=False):
            self._skipped_count += 1
            logger.warning('Previous tick still running, skipping this one')
            return None

        try:
            return self._run_tick()
        finally:
            self._tick_lock.release()

    def _run_tick(self) -> TickReport:
        start_time = time.perf_counter()
        self._tick_count += 1
        fetched = upserted = 0

        try:
            # Stage 1: Fetch
            raw_records = self.source.fetch()
            fetched = len(raw_records)
            fetch_ms = (time.perf_counter() - start_time) * 1000

            # Stage 2: Normalize
            flights = self._normalize_all(raw_records)

            # Stage 3: Upsert (single transaction)
            if flights:
                upserted = self.flight_store.upsert_batch(flights)
                logger.info(f'Fetched {fetched} records, upserted {upserted} flights in {fetch_ms:.0f}ms')
            else:
                logger.info('No flights returned from source')

            # Stage 4: Retention sweep
            sweep = self.retention.sweep(self.max_flight_age_ms, self.max_trail_points)

            stats = self.flight_store.stats()
            logger.debug(
                f'DB stats: {stats["flight_count"]} flights, '
                f'{stats["trail_point_count"]} trail points'
            )

        except UpstreamFetchError as e:
            if e.rate_limited:
                logger.warning('Rate limited - will retry on next tick')
            return self._failed(start_time, fetched, e)
        except UnsupportedSourceError as e:
            logger.error(f'Source misconfigured: {e}')
            return self._failed(start_time, fetched, e)
        except StorageError as e:
            return self._failed(start_time, fetched, e)

        self._last_tick_time = time.time()

        # Notify callbacks
        for callback in self._on_update_callbacks:
            try:
                callback(upserted)
            except Exception as e:
                logger.error(f'Update callback error: {e}')

        return TickReport(
            fetched=fetched,
            upserted=upserted,
            pruned_flights=sweep.pruned_flights,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

    def _failed(self, start_time: float, fetched: int, error: FlightTrackerError) -> TickReport:
        self._error_count += 1
        logger.error(f'Ingestion tick failed: {error}')
        return TickReport(
            fetched=fetched,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            error=str(error),
        )

    def run_continuous(self, interval: Optional[float] = None) -> None:
        """
        Run ingestion loop continuously.

        This method blocks - use start_background() for non-blocking.
        """
        interval = interval or self.interval
        self._running = True

        logger.info(f'Starting continuous ingestion (interval={interval}s)')

        try:
            while not self._stop_event.is_set():
                try:
                    self.tick()
                except Exception:
                    # Keep the schedule alive; the next tick retries
                    self._error_count += 1
                    logger.exception('Unexpected ingestion error')
                if self._stop_event.wait(interval):
                    break
        finally:
            self._running = False
        logger.info('Ingestion stopped')

    def start_background(self, interval: Optional[float] = None) -> None:
        """Start ingestion in background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Ingestion already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            args=(interval,),
            daemon=True,
        )
        self._thread.start()
        logger.info('Background ingestion started')

    def stop(self) -> None:
        """Stop background ingestion."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        """Get ingestion statistics."""
        return {
            'tick_count': self._tick_count,
            'error_count': self._error_count,
            'skipped_count': self._skipped_count,
            'last_tick_time': self._last_tick_time,
            'running': self._running,
        }
