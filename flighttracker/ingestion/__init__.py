"""
Data ingestion module for the flight tracker.

Handles fetching from upstream sources (OpenSky, FAA, synthetic),
normalizing records into canonical flights, and loading them into
the store on a fixed interval.
"""

from flighttracker.ingestion.normalizer import SourceTag, normalize
from flighttracker.ingestion.opensky_client import OpenSkyClient
from flighttracker.ingestion.faa_client import FaaClient
from flighttracker.ingestion.mock_generator import MockFlightGenerator
from flighttracker.ingestion.pipeline import IngestionPipeline, TickReport, source_from_config

__all__ = [
    'SourceTag',
    'normalize',
    'OpenSkyClient',
    'FaaClient',
    'MockFlightGenerator',
    'IngestionPipeline',
    'TickReport',
    'source_from_config',
]
