"""
Chat route — website assistant.
"""
import logging
from flask import Blueprint, request, jsonify

from app.errors import ConfigError, ModelGatewayError
from app.pipeline.manager import send_chat_message

logger = logging.getLogger('routes.chat')

bp = Blueprint('chat', __name__)


@bp.route('/api/chat', methods=['POST'])
def chat():
    data = request.get_json(silent=True) or {}
    message = (data.get('message') or '').strip()
    session_id = data.get('sessionId')

    if not message or not session_id:
        return jsonify({'error': 'Missing required fields: message and sessionId'}), 400

    try:
        reply = send_chat_message(message, data.get('history'), session_id)
    except ConfigError as e:
        return jsonify({'error': str(e)}), 500
    except ModelGatewayError as e:
        return jsonify({'error': str(e)}), 502

    return jsonify({
        'response': reply['text'],
        'model': reply['model'],
        'tokens': reply['tokens'],
        'sessionId': reply['sessionId'],
    })
