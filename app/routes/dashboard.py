"""
Dashboard routes — health checks, circuit breaker status, interaction ledger.
"""
import logging
from datetime import datetime

from flask import Blueprint, request, jsonify

from app.config import INTERACTION_TYPES
from app.errors import PersistenceError
from app.pipeline.manager import list_interactions
from app.services.circuit_breaker import get_all_breakers

logger = logging.getLogger('routes.dashboard')

bp = Blueprint('dashboard', __name__)

MAX_INTERACTIONS = 1000


def _parse_time(value):
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def api_health():
    """Circuit breaker state for each external provider."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    return jsonify({'services': services})


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    breaker = get_all_breakers().get(service)
    if breaker is None:
        return jsonify({'error': f'Unknown service: {service}'}), 404
    breaker.reset()
    return jsonify({'ok': True, 'service': service, 'state': breaker.state})


@bp.route('/api/interactions')
def interactions():
    """Interaction ledger read: ?type=&start=&end=&limit= (ISO-8601 times)."""
    interaction_type = request.args.get('type') or None
    if interaction_type and interaction_type not in INTERACTION_TYPES:
        return jsonify({'error': f'Unknown interaction type: {interaction_type}'}), 400

    try:
        start = _parse_time(request.args.get('start'))
        end = _parse_time(request.args.get('end'))
    except ValueError:
        return jsonify({'error': 'start and end must be ISO-8601 timestamps'}), 400

    limit = min(request.args.get('limit', 500, type=int) or 500, MAX_INTERACTIONS)

    try:
        rows = list_interactions(start, end, interaction_type, limit)
    except PersistenceError as e:
        return jsonify({'error': str(e)}), 500

    total_cost = sum(row.get('total_cost_usd') or 0 for row in rows)
    return jsonify({
        'interactions': rows,
        'count': len(rows),
        'totalCostUsd': round(total_cost, 6),
    })
