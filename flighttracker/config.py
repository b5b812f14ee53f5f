"""
Configuration management for the flight tracker.

Loads settings from environment variables with sensible defaults.
Core components take their parameters explicitly; these values are
only consulted when the application is wired together in app.py.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


@dataclass(frozen=True)
class Bounds:
    """Geographic bounding box in decimal degrees."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


# Continental US
US_BOUNDS = Bounds(min_lat=24.396308, max_lat=49.384358, min_lon=-125.0, max_lon=-66.93457)


@dataclass(frozen=True)
class OpenSkyConfig:
    """OpenSky API configuration."""
    username: Optional[str] = os.getenv('OPENSKY_USERNAME') or None
    password: Optional[str] = os.getenv('OPENSKY_PASSWORD') or None
    base_url: str = 'https://opensky-network.org/api'
    bounds: Bounds = US_BOUNDS

    @property
    def is_authenticated(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class FaaConfig:
    """FAA SWIM feed configuration."""
    endpoint: Optional[str] = os.getenv('FAA_ENDPOINT') or None
    api_key: Optional[str] = os.getenv('FAA_API_KEY') or None

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.api_key)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    path: str = os.getenv('DB_PATH', './data/flights.db')


@dataclass(frozen=True)
class IngestionConfig:
    """Data ingestion settings."""
    fetch_interval_seconds: int = int(os.getenv('FETCH_INTERVAL', '10'))
    # 'opensky', 'faa' or 'mock'
    data_source: str = os.getenv('DATA_SOURCE', 'opensky')
    enable_server_fetch: bool = _env_flag('ENABLE_SERVER_FETCH')
    use_mock_data: bool = _env_flag('USE_MOCK_DATA')
    mock_flight_count: int = 150
    request_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class RetentionConfig:
    """Data retention policy."""
    max_flight_age_ms: int = 5 * 60 * 1000  # Drop flights not seen in 5 minutes
    max_trail_points: int = 256


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    opensky: OpenSkyConfig
    faa: FaaConfig
    database: DatabaseConfig
    ingestion: IngestionConfig
    retention: RetentionConfig

    # Flask settings
    port: int = 3000
    debug: bool = False
    cors_origins: str = '*'


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        opensky=OpenSkyConfig(),
        faa=FaaConfig(),
        database=DatabaseConfig(),
        ingestion=IngestionConfig(),
        retention=RetentionConfig(),
        port=int(os.getenv('PORT', '3000')),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
