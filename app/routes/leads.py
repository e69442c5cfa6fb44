"""
Lead routes — contact-form intake, scoring trigger, lead detail, unsubscribe.
"""
import logging
from flask import Blueprint, request, jsonify

from app.errors import ConfigError, PersistenceError
from app.pipeline.lead_scorer import SubmissionNotFound
from app.pipeline.manager import process_lead, submit_lead, get_lead_detail, cancel_followups

logger = logging.getLogger('routes.leads')

bp = Blueprint('leads', __name__)


def _lead_fields(data):
    return dict(
        full_name=data.get('fullName') or '',
        email=data.get('email'),
        phone=data.get('phone') or '',
        business_name=data.get('businessName') or '',
        website=data.get('website') or None,
        message=data.get('message') or None,
    )


@bp.route('/api/leads/process', methods=['POST'])
def process_lead_route():
    """Score an already-stored submission and schedule its follow-ups."""
    data = request.get_json(silent=True) or {}
    submission_id = data.get('submissionId')
    fields = _lead_fields(data)

    if not submission_id or not fields['email']:
        return jsonify({'error': 'Missing required fields: submissionId and email'}), 400

    try:
        result = process_lead(submission_id, **fields)
    except SubmissionNotFound:
        return jsonify({'error': f'Submission not found: {submission_id}'}), 404
    except ConfigError as e:
        logger.error("Process lead error: %s", e)
        return jsonify({'error': str(e)}), 500
    except Exception:
        logger.exception("Process lead error for %s", submission_id)
        return jsonify({'error': 'Failed to process lead'}), 500

    return jsonify(result.to_dict()), 200 if result.success else 500


@bp.route('/api/leads', methods=['POST'])
def create_lead():
    """Contact-form intake: store the submission, then score it."""
    data = request.get_json(silent=True) or {}
    fields = _lead_fields(data)
    if not fields['email']:
        return jsonify({'error': 'Missing required field: email'}), 400

    try:
        submission, result = submit_lead(**fields)
    except ConfigError as e:
        logger.error("Lead intake error: %s", e)
        return jsonify({'error': str(e)}), 500
    except PersistenceError as e:
        return jsonify({'error': str(e)}), 500

    body = result.to_dict()
    body['submissionId'] = submission['id']
    return jsonify(body), 201


@bp.route('/api/leads/<submission_id>')
def get_lead(submission_id):
    detail = get_lead_detail(submission_id)
    if detail is None:
        return jsonify({'error': 'Lead not found'}), 404
    return jsonify(detail)


@bp.route('/api/leads/<submission_id>/unsubscribe', methods=['POST'])
def unsubscribe(submission_id):
    """Stop the remaining follow-ups for a lead."""
    try:
        cancelled = cancel_followups(submission_id)
    except PersistenceError as e:
        return jsonify({'error': str(e)}), 500
    return jsonify({'submissionId': submission_id, 'cancelled': cancelled})
