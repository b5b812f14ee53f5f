"""
Statistics and configuration API endpoints.

Provides endpoints for:
- GET /api/stats - Store row counts and ingestion status
- GET /api/config - Client-relevant configuration
"""

from flask import Blueprint, current_app, jsonify

from flighttracker.records import now_ms

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api')


@metrics_bp.route('/stats', methods=['GET'])
def get_stats():
    """Get store statistics (raw counts, ignoring staleness)."""
    settings = current_app.config['APP_SETTINGS']
    counts = current_app.config['FLIGHT_STORE'].stats()

    result = {
        'success': True,
        'timestamp': now_ms(),
        'stats': {
            'flightCount': counts['flight_count'],
            'trailPointCount': counts['trail_point_count'],
            'dataSource': settings.ingestion.data_source,
            'fetchInterval': settings.ingestion.fetch_interval_seconds,
            'maxTrailPoints': settings.retention.max_trail_points,
        },
    }

    pipeline = current_app.config.get('INGESTION_PIPELINE')
    if pipeline:
        result['ingestion'] = pipeline.stats

    return jsonify(result)


@metrics_bp.route('/config', methods=['GET'])
def get_client_config():
    """Get configuration the map client needs to poll sensibly."""
    settings = current_app.config['APP_SETTINGS']

    return jsonify({
        'success': True,
        'config': {
            'recommendedPollInterval': settings.ingestion.fetch_interval_seconds * 1000,
            'maxTrailPoints': settings.retention.max_trail_points,
            'dataSource': settings.ingestion.data_source,
        },
    })
