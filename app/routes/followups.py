"""
Follow-up routes — trigger one executor pass (called by cron or manually).
"""
import logging
from flask import Blueprint, request, jsonify

from app.config import FOLLOWUP_BATCH_LIMIT
from app.errors import ConfigError, PersistenceError
from app.pipeline.manager import process_due_followups

logger = logging.getLogger('routes.followups')

bp = Blueprint('followups', __name__)

MAX_LIMIT = 100


@bp.route('/api/followups/process', methods=['POST'])
def process_followups():
    limit = request.args.get('limit', FOLLOWUP_BATCH_LIMIT, type=int)
    if not limit or limit < 1:
        return jsonify({'error': 'limit must be a positive integer'}), 400
    limit = min(limit, MAX_LIMIT)

    try:
        summary = process_due_followups(limit)
    except ConfigError as e:
        logger.error("Follow-up run aborted: %s", e)
        return jsonify({'error': str(e)}), 500
    except PersistenceError as e:
        logger.error("Follow-up run failed: %s", e)
        return jsonify({'error': 'Failed to fetch pending followups'}), 500

    return jsonify(summary)
