"""
FlightState model - current state of tracked aircraft.

This table represents the latest known state of each aircraft we're tracking.
It's a "hot" table that gets upserted on every ingestion tick and queried
constantly by the API layer.

Design notes:
- One row per aircraft id (upsert pattern)
- Values are stored in canonical display units (feet, knots, ft/min)
- `timestamp` is the upstream report time, `updated_at` the local upsert time
"""

from typing import Optional

from sqlalchemy import String, Float, Integer, BigInteger, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from flighttracker.models.base import Base
from flighttracker.records import Flight


class FlightState(Base):
    """
    Current state of a tracked aircraft.

    Updated via upsert on each ingestion tick. Rows are only deleted
    by the retention sweep; staleness is otherwise a read-time filter.
    """

    __tablename__ = 'flights'

    # Primary key - stable identifier (ICAO24 for OpenSky)
    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        comment='Stable aircraft identifier'
    )

    callsign: Mapped[str] = mapped_column(
        String,
        nullable=False,
        comment='Display callsign, falls back to id'
    )

    # Position (WGS84)
    latitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Latitude in decimal degrees'
    )

    longitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Longitude in decimal degrees'
    )

    altitude: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Altitude in feet'
    )

    heading: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Track in degrees [0, 360)'
    )

    speed: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Ground speed in knots'
    )

    vertical_rate: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment='Vertical rate in feet per minute'
    )

    on_ground: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment='Aircraft is on ground'
    )

    squawk: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True,
        comment='Transponder squawk code'
    )

    timestamp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment='Upstream report time (epoch ms)'
    )

    source: Mapped[str] = mapped_column(
        String,
        nullable=False,
        comment='Producing source adapter'
    )

    updated_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True,  # Staleness filter and sweep
        comment='Last local upsert time (epoch ms)'
    )

    def __repr__(self) -> str:
        return f'<FlightState {self.id} {self.callsign} @ {self.altitude}ft>'

    def to_record(self) -> Flight:
        """Detach into a canonical Flight record."""
        return Flight(
            id=self.id,
            callsign=self.callsign,
            latitude=self.latitude,
            longitude=self.longitude,
            altitude=self.altitude,
            heading=self.heading,
            speed=self.speed,
            vertical_rate=self.vertical_rate,
            on_ground=bool(self.on_ground),
            squawk=self.squawk,
            timestamp=self.timestamp,
            source=self.source,
            updated_at=self.updated_at,
        )


def flight_to_row(flight: Flight, updated_at: int) -> dict:
    """Column values for upserting `flight` at local time `updated_at`."""
    return {
        'id': flight.id,
        'callsign': flight.callsign,
        'latitude': flight.latitude,
        'longitude': flight.longitude,
        'altitude': flight.altitude,
        'heading': flight.heading,
        'speed': flight.speed,
        'vertical_rate': flight.vertical_rate or 0,
        'on_ground': bool(flight.on_ground),
        'squawk': flight.squawk or None,
        'timestamp': flight.timestamp,
        'source': flight.source,
        'updated_at': updated_at,
    }
