"""
Flight Tracker Flask Application.

Main entry point for the web application. Initializes:
- Flight store (SQLite)
- Ingestion pipeline (when server-side fetching is enabled)
- API routes

Usage:
    python -m flighttracker.app

Or with gunicorn:
    gunicorn 'flighttracker.app:create_app()'
"""

import logging
from typing import Any, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from flighttracker.api import flights_bp, metrics_bp
from flighttracker.config import AppConfig, config
from flighttracker.errors import StorageError
from flighttracker.ingestion import IngestionPipeline, source_from_config
from flighttracker.models import close_store, init_store
from flighttracker.records import now_ms
from flighttracker.storage import FlightStore, RetentionPolicy, TrailStore

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[AppConfig] = None,
    db_path: Optional[str] = None,
    start_ingestion: Optional[bool] = None,
    source: Any = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        settings: Configuration (module config if None)
        db_path: Store location, overrides settings.database.path
        start_ingestion: Start the background pipeline. Defaults to the
                         ENABLE_SERVER_FETCH setting; pass False for testing.
        source: Flight source for the pipeline (built from settings if None)

    Returns:
        Configured Flask application instance.
    """
    settings = settings or config
    if start_ingestion is None:
        start_ingestion = settings.ingestion.enable_server_fetch

    app = Flask(__name__)

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': settings.cors_origins}})

    # Initialize store
    logger.info('Initializing database...')
    db = init_store(db_path or settings.database.path)
    flight_store = FlightStore(db)
    trail_store = flight_store.trail_store

    app.config['APP_SETTINGS'] = settings
    app.config['DATABASE'] = db
    app.config['FLIGHT_STORE'] = flight_store
    app.config['TRAIL_STORE'] = trail_store
    app.config['INGESTION_PIPELINE'] = None

    # Register API blueprints
    app.register_blueprint(flights_bp)
    app.register_blueprint(metrics_bp)

    if start_ingestion:
        pipeline = IngestionPipeline(
            source=source or source_from_config(settings),
            flight_store=flight_store,
            retention=RetentionPolicy(db),
            max_flight_age_ms=settings.retention.max_flight_age_ms,
            max_trail_points=settings.retention.max_trail_points,
            interval=settings.ingestion.fetch_interval_seconds,
        )
        pipeline.start_background()
        app.config['INGESTION_PIPELINE'] = pipeline
        logger.info(
            f'Server-side fetching enabled: source={settings.ingestion.data_source}, '
            f'interval={settings.ingestion.fetch_interval_seconds}s'
        )
    else:
        logger.info('Server-side fetching disabled (set ENABLE_SERVER_FETCH=true to enable)')

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok', 'timestamp': now_ms()}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(StorageError)
    def storage_error(e):
        logger.error(f'Storage error: {e}')
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    return app


def shutdown_app(app: Flask) -> None:
    """Stop ingestion and release the store."""
    pipeline = app.config.get('INGESTION_PIPELINE')
    if pipeline:
        pipeline.stop()
    close_store(app.config['DATABASE'])


def run_development_server():
    """Run the development server."""
    app = create_app()

    logger.info(f'Flight Tracker running on http://localhost:{config.port}')
    try:
        app.run(
            host='0.0.0.0',
            port=config.port,
            debug=config.debug,
            use_reloader=False,  # Disable reloader to prevent duplicate pipeline threads
        )
    finally:
        shutdown_app(app)


if __name__ == '__main__':
    run_development_server()
