"""
FlightTrail model - bounded position history per aircraft.

Every upsert of a flight appends one row here. The table is append-only;
rows disappear only when their flight is deleted (cascade) or when the
retention sweep trims a trail down to its point cap.

Schema optimized for:
- Fast appends inside the upsert transaction
- "Most recent N points for one flight" queries
- Ranking points per flight during the retention sweep
"""

from sqlalchemy import String, Float, Integer, BigInteger, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from flighttracker.models.base import Base
from flighttracker.records import TrailPoint


class FlightTrail(Base):
    """One historical position sample for a flight."""

    __tablename__ = 'flight_trails'

    # Surrogate key; insertion order
    # Using Integer for SQLite compatibility (autoincrement only works with INTEGER)
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment='Surrogate key'
    )

    flight_id: Mapped[str] = mapped_column(
        String,
        ForeignKey('flights.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
        comment='Owning flight id'
    )

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

    timestamp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True,
        comment='Upstream report time (epoch ms)'
    )

    __table_args__ = (
        # Most-recent-N per flight, and ranking during the sweep
        Index('ix_flight_trails_flight_time', 'flight_id', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f'<FlightTrail {self.flight_id} @ {self.timestamp}>'

    def to_record(self) -> TrailPoint:
        return TrailPoint(
            flight_id=self.flight_id,
            latitude=self.latitude,
            longitude=self.longitude,
            altitude=self.altitude,
            timestamp=self.timestamp,
        )
