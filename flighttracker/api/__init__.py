"""
API module for the flight tracker.

Provides REST endpoints for:
- Flight data (active flights, individual flights, trails)
- Store statistics and client configuration
"""

from flighttracker.api.flights import flights_bp
from flighttracker.api.metrics import metrics_bp

__all__ = ['flights_bp', 'metrics_bp']
