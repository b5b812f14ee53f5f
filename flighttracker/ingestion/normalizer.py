"""
Source adapters - convert raw upstream records into canonical Flights.

Dispatch is a closed table keyed by `SourceTag`. Each adapter declares
the units of its source:

- OpenSky reports SI units (meters, m/s) and is converted.
- FAA SWIM payloads are assumed to be in feet / knots / ft-min already.

OpenSky state vector format (array indices):
0: icao24          - ICAO24 hex address
1: callsign        - Callsign (8 chars max, space padded)
2: origin_country  - Country of registration
3: time_position   - Unix timestamp of last position update
4: last_contact    - Unix timestamp of last message
5: longitude       - WGS84 longitude
6: latitude        - WGS84 latitude
7: baro_altitude   - Barometric altitude (meters)
8: on_ground       - Boolean
9: velocity        - Ground speed (m/s)
10: true_track     - Track angle (degrees, 0=north)
11: vertical_rate  - Vertical rate (m/s)
12: sensors        - Sensor IDs (array)
13: geo_altitude   - Geometric altitude (meters)
14: squawk         - Transponder code
15: spi            - Special position indicator
16: position_source - 0=ADS-B, 1=ASTERIX, 2=MLAT, 3=FLARM
"""

import logging
import math
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from flighttracker.errors import UnsupportedSourceError
from flighttracker.records import Clock, Flight, now_ms

logger = logging.getLogger(__name__)

# Unit conversion factors
METERS_TO_FEET = 3.28084
MPS_TO_KNOTS = 1.944
MPS_TO_FPM = 196.85


class SourceTag(str, Enum):
    """Registered upstream sources."""
    OPENSKY = 'opensky'
    FAA = 'faa'


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up."""
    return int(math.floor(value + 0.5))


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _scaled(value: Any, factor: float) -> int:
    """Convert with `factor` and round; absent readings become 0."""
    number = _to_float(value)
    if number is None:
        return 0
    return round_half_up(number * factor)


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def normalize_heading(degrees: float) -> float:
    """Wrap a heading into [0, 360)."""
    heading = degrees % 360.0
    # Tiny negative inputs round up to exactly 360.0
    return 0.0 if heading >= 360.0 else heading


def _heading(value: Any) -> float:
    number = _to_float(value)
    if number is None:
        return 0.0
    return normalize_heading(number)


def _callsign(raw_callsign: Any, flight_id: str) -> str:
    callsign = str(raw_callsign).strip() if raw_callsign is not None else ''
    return callsign or flight_id


def _epoch_ms(seconds: Any) -> Optional[int]:
    number = _to_float(seconds)
    if number is None:
        return None
    return int(number * 1000)


def _normalize_opensky(state: Sequence[Any], clock: Clock) -> Optional[Flight]:
    if not state or not isinstance(state, (list, tuple)):
        return None

    # Pad short vectors so missing trailing fields read as absent
    state = list(state) + [None] * (17 - len(state))

    icao24 = state[0]
    if not icao24:
        return None

    longitude = _to_float(state[5])
    latitude = _to_float(state[6])
    if latitude is None or longitude is None:
        return None

    flight_id = str(icao24)
    squawk = state[14]

    return Flight(
        id=flight_id,
        callsign=_callsign(state[1], flight_id),
        latitude=latitude,
        longitude=longitude,
        # Barometric first, geometric as fallback
        altitude=_scaled(_first_present(state[7], state[13]), METERS_TO_FEET),
        heading=_heading(state[10]),
        speed=_scaled(state[9], MPS_TO_KNOTS),
        vertical_rate=_scaled(state[11], MPS_TO_FPM),
        on_ground=bool(state[8]),
        squawk=str(squawk) if squawk else None,
        timestamp=_first_present(_epoch_ms(state[3]), _epoch_ms(state[4])) or clock(),
        source=SourceTag.OPENSKY.value,
    )


def _normalize_faa(data: Dict[str, Any], clock: Clock) -> Optional[Flight]:
    if not data or not isinstance(data, dict):
        return None

    flight_id = data.get('aircraftId') or data.get('icaoId')
    if not flight_id:
        return None

    position = data.get('position') or {}
    latitude = _to_float(_first_present(data.get('latitude'), position.get('lat')))
    longitude = _to_float(_first_present(data.get('longitude'), position.get('lon')))
    if latitude is None or longitude is None:
        return None

    flight_id = str(flight_id)
    squawk = data.get('squawk')
    timestamp = _to_float(data.get('timestamp'))

    return Flight(
        id=flight_id,
        callsign=_callsign(data.get('callsign') or data.get('flightId'), flight_id),
        latitude=latitude,
        longitude=longitude,
        # Already in feet / knots / ft-min
        altitude=_scaled(_first_present(data.get('altitude'), data.get('geoAltitude')), 1.0),
        heading=_heading(_first_present(data.get('heading'), data.get('track'))),
        speed=_scaled(data.get('groundSpeed'), 1.0),
        vertical_rate=_scaled(data.get('verticalSpeed'), 1.0),
        on_ground=bool(data.get('onGround', False)),
        squawk=str(squawk) if squawk else None,
        timestamp=int(timestamp) if timestamp is not None else clock(),
        source=SourceTag.FAA.value,
    )


_ADAPTERS: Dict[SourceTag, Callable[[Any, Clock], Optional[Flight]]] = {
    SourceTag.OPENSKY: _normalize_opensky,
    SourceTag.FAA: _normalize_faa,
}


def resolve_source(source: Any) -> SourceTag:
    """Map a tag string to its SourceTag, rejecting unregistered tags."""
    try:
        return SourceTag(source)
    except ValueError:
        raise UnsupportedSourceError(source) from None


def normalize(raw: Any, source: Any, clock: Clock = now_ms) -> Optional[Flight]:
    """
    Convert one raw upstream record into a canonical Flight.

    Returns None for absent, malformed or positionless input.
    Raises UnsupportedSourceError if `source` is not a registered adapter.
    """
    adapter = _ADAPTERS[resolve_source(source)]
    try:
        return adapter(raw, clock)
    except (TypeError, ValueError, AttributeError, OverflowError) as e:
        logger.debug(f'Discarding malformed {source} record: {e}')
        return None
