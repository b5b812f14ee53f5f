"""
Canonical flight records.

Every source adapter produces `Flight` instances in these units:
- latitude / longitude: decimal degrees (WGS84)
- altitude: feet, integer
- heading: degrees in [0, 360)
- speed: knots, integer
- vertical_rate: feet per minute, integer
- timestamp / updated_at: epoch milliseconds

Records are plain dataclasses, detached from any database session, so
they can be passed freely between the ingestion thread and API handlers.
"""

import time
from dataclasses import dataclass, asdict
from typing import Callable, Optional

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Flight:
    """Current state of one tracked aircraft."""
    id: str
    callsign: str
    latitude: float
    longitude: float
    altitude: int
    heading: float
    speed: int
    vertical_rate: int
    on_ground: bool
    squawk: Optional[str]
    timestamp: int
    source: str
    # Set by the store on upsert; None until the record has been stored
    updated_at: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'id': self.id,
            'callsign': self.callsign,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude': self.altitude,
            'heading': self.heading,
            'speed': self.speed,
            'verticalRate': self.vertical_rate,
            'onGround': self.on_ground,
            'squawk': self.squawk,
            'timestamp': self.timestamp,
            'source': self.source,
            'updatedAt': self.updated_at,
        }


@dataclass(frozen=True)
class TrailPoint:
    """One historical position sample of a flight."""
    flight_id: str
    latitude: float
    longitude: float
    altitude: int
    timestamp: int

    def to_dict(self) -> dict:
        data = asdict(self)
        del data['flight_id']
        return data
