"""
Flight Tracker Package.

Live aircraft ingestion and trail-retention service built with Flask and SQLAlchemy.

Modules:
    models/      SQLAlchemy ORM tables (FlightState, FlightTrail) and the storage handle
    storage/     Flight store, trail store and retention sweep
    ingestion/   Source adapters, fetch clients, mock generator, ingestion pipeline
    api/         REST endpoints for flights, trails and statistics
    records.py   Canonical Flight / TrailPoint records
    errors.py    Error taxonomy shared by all layers
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
