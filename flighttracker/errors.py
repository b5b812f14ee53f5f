"""Exception hierarchy for the flight tracker."""

from typing import Optional


class FlightTrackerError(Exception):
    """Base exception for all flight tracker errors."""


class UnsupportedSourceError(FlightTrackerError, ValueError):
    """Source tag does not name a registered adapter."""

    def __init__(self, source):
        self.source = source
        super().__init__(f'Unknown data source: {source}')


class StorageError(FlightTrackerError):
    """Opening, writing to or querying persistent storage failed."""


class UpstreamFetchError(FlightTrackerError):
    """Network or API failure while fetching raw flight data."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429
