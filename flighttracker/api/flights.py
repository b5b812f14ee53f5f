"""
Flight data API endpoints.

Provides endpoints for:
- GET /api/flights - List active flights (optionally only those reported since a time)
- GET /api/flights/<flight_id> - Get single flight
- GET /api/flights/<flight_id>/trail - Get trail history for a flight
- GET /api/trails - Get trails for all active flights
"""

from flask import Blueprint, current_app, jsonify, request

from flighttracker.records import now_ms

flights_bp = Blueprint('flights', __name__, url_prefix='/api')


def _retention():
    return current_app.config['APP_SETTINGS'].retention


def _trail_limit() -> int:
    """Requested points per trail, clamped to the retention cap."""
    max_points = _retention().max_trail_points
    limit = request.args.get('limit', type=int) or max_points
    return max(1, min(limit, max_points))


@flights_bp.route('/flights', methods=['GET'])
def list_flights():
    """
    List active flights.

    Query parameters:
    - since: epoch ms; only flights reported after it (incremental polling)

    The response `timestamp` is the value to pass as `since` next time.
    """
    store = current_app.config['FLIGHT_STORE']
    max_age_ms = _retention().max_flight_age_ms
    since = request.args.get('since', type=int)

    server_time = now_ms()
    if since:
        flights = store.get_since(since, max_age_ms)
    else:
        flights = store.get_all(max_age_ms)

    return jsonify({
        'success': True,
        'timestamp': server_time,
        'count': len(flights),
        'flights': [f.to_dict() for f in flights],
    })


@flights_bp.route('/flights/<flight_id>', methods=['GET'])
def get_flight(flight_id: str):
    """Get a single flight by id."""
    flight = current_app.config['FLIGHT_STORE'].get_by_id(flight_id)

    if flight is None:
        return jsonify({'success': False, 'error': 'Flight not found'}), 404

    return jsonify({'success': True, 'flight': flight.to_dict()})


@flights_bp.route('/flights/<flight_id>/trail', methods=['GET'])
def get_flight_trail(flight_id: str):
    """
    Get trail history for one flight, oldest point first.

    Query parameters:
    - limit: max number of points (default and cap: max trail points)
    """
    trail = current_app.config['TRAIL_STORE'].get_trail(flight_id, _trail_limit())

    return jsonify({
        'success': True,
        'flightId': flight_id,
        'count': len(trail),
        'trail': [p.to_dict() for p in trail],
    })


@flights_bp.route('/trails', methods=['GET'])
def get_all_trails():
    """
    Get trails for all active flights, keyed by flight id.

    Query parameters:
    - limit: max points per flight (default and cap: max trail points)
    """
    trails = current_app.config['TRAIL_STORE'].get_all_trails(
        _retention().max_flight_age_ms,
        _trail_limit(),
    )

    return jsonify({
        'success': True,
        'timestamp': now_ms(),
        'count': len(trails),
        'trails': {
            flight_id: [p.to_dict() for p in points]
            for flight_id, points in trails.items()
        },
    })
