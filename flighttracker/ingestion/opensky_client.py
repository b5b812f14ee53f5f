"""
OpenSky Network API client.

Handles communication with the OpenSky REST API, including:
- Authentication (optional but recommended for higher rate limits)
- Bounding box queries for geographic filtering
- Rate limiting compliance
- Request timeouts

Returns raw state vector arrays; conversion into canonical flights is
the normalizer's job (see ingestion/normalizer.py for the array layout).
"""

import logging
import time
from typing import Any, List, Optional

import requests
from requests.auth import HTTPBasicAuth

from flighttracker.config import Bounds, OpenSkyConfig, US_BOUNDS
from flighttracker.errors import UpstreamFetchError
from flighttracker.ingestion.normalizer import SourceTag

logger = logging.getLogger(__name__)


def bounds_to_params(bounds: Bounds) -> dict:
    """Convert to OpenSky API query parameters."""
    return {
        'lamin': bounds.min_lat,
        'lamax': bounds.max_lat,
        'lomin': bounds.min_lon,
        'lomax': bounds.max_lon,
    }


class OpenSkyClient:
    """
    Client for OpenSky Network API.

    Handles:
    - GET requests to /states/all endpoint
    - Optional authentication for higher rate limits
    - Bounding box filtering
    - Rate limiting (internal tracking)
    """

    source_tag = SourceTag.OPENSKY

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        base_url: str = 'https://opensky-network.org/api',
        bounds: Optional[Bounds] = US_BOUNDS,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.bounds = bounds
        self.timeout = timeout
        self.auth = None
        if username and password:
            self.auth = HTTPBasicAuth(username, password)
            logger.info('OpenSky client initialized with authentication')
        else:
            logger.warning('OpenSky client running without authentication (lower rate limits)')

        self.session = session or requests.Session()
        self.last_request_time: float = 0
        self._min_interval = 5.0 if self.auth else 10.0

    @classmethod
    def from_config(cls, opensky: OpenSkyConfig, timeout: float = 30.0) -> 'OpenSkyClient':
        """Create client from application configuration."""
        return cls(
            username=opensky.username,
            password=opensky.password,
            base_url=opensky.base_url,
            bounds=opensky.bounds,
            timeout=timeout,
        )

    def _wait_for_rate_limit(self) -> None:
        """
        Enforce minimum interval between requests.

        OpenSky rate limits:
        - Anonymous: ~10 seconds between requests
        - Authenticated: ~5 seconds between requests
        """
        elapsed = time.time() - self.last_request_time
        if elapsed < self._min_interval:
            sleep_time = self._min_interval - elapsed
            logger.debug(f'Rate limiting: sleeping {sleep_time:.1f}s')
            time.sleep(sleep_time)

    def fetch(self) -> List[List[Any]]:
        """
        Fetch current state vectors from OpenSky.

        Returns the raw `states` arrays ([] when the area is empty).

        Raises:
            UpstreamFetchError on network, HTTP or payload errors
        """
        self._wait_for_rate_limit()

        url = f'{self.base_url}/states/all'
        params = bounds_to_params(self.bounds) if self.bounds else {}

        logger.debug(f'Fetching states: {url} params={params}')

        try:
            response = self.session.get(
                url,
                params=params,
                auth=self.auth,
                timeout=self.timeout,
            )
            self.last_request_time = time.time()

            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout as e:
            logger.error('OpenSky API timeout')
            raise UpstreamFetchError(f'OpenSky API timeout: {e}') from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                logger.warning('OpenSky rate limit exceeded')
            else:
                logger.error(f'OpenSky API error: {status}')
            raise UpstreamFetchError(f'OpenSky API error: {status}', status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f'OpenSky request failed: {e}')
            raise UpstreamFetchError(f'OpenSky request failed: {e}') from e
        except ValueError as e:
            raise UpstreamFetchError(f'OpenSky returned invalid JSON: {e}') from e

        states = data.get('states') if isinstance(data, dict) else None
        if not isinstance(states, list):
            return []

        logger.info(f'Received {len(states)} state vectors from OpenSky')
        return states
