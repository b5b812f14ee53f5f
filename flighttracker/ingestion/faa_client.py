"""
FAA SWIM feed client.

Fetches flight positions from an FAA SWIM (TFMS/STDDS) bridge endpoint
that serves JSON `{"flights": [...]}`. Requires an endpoint and API key.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from flighttracker.config import FaaConfig
from flighttracker.errors import UpstreamFetchError
from flighttracker.ingestion.normalizer import SourceTag

logger = logging.getLogger(__name__)


class FaaClient:
    """Bearer-token client for the FAA flight feed."""

    source_tag = SourceTag.FAA

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, faa: FaaConfig, timeout: float = 30.0) -> 'FaaClient':
        return cls(endpoint=faa.endpoint, api_key=faa.api_key, timeout=timeout)

    def fetch(self) -> List[Dict[str, Any]]:
        """Return the raw flight dicts of the current feed snapshot."""
        if not self.endpoint or not self.api_key:
            raise UpstreamFetchError('FAA credentials not configured')

        try:
            response = self.session.get(
                self.endpoint,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Accept': 'application/json',
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f'FAA API error: {status}')
            raise UpstreamFetchError(f'FAA API error: {status}', status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f'FAA request failed: {e}')
            raise UpstreamFetchError(f'FAA request failed: {e}') from e
        except ValueError as e:
            raise UpstreamFetchError(f'FAA returned invalid JSON: {e}') from e

        flights = data.get('flights') if isinstance(data, dict) else None
        if not isinstance(flights, list):
            return []

        logger.info(f'Received {len(flights)} flights from FAA feed')
        return flights
