"""Health, model listing and request log endpoints for nim-proxy."""

import time
from flask import Blueprint, request, jsonify, current_app

service_bp = Blueprint('service', __name__)

SERVICE_NAME = 'OpenAI to NVIDIA NIM Proxy'
MODEL_OWNER = 'nvidia-nim-proxy'


def get_config():
    """Get config from Flask app context."""
    return current_app.config['NIM_CONFIG']


def get_request_log():
    """Get the request log from Flask app context."""
    return current_app.config['REQUEST_LOG']


@service_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({'status': 'ok', 'service': SERVICE_NAME})


@service_bp.route('/v1/models', methods=['GET'])
def list_models():
    """List client-facing model names (OpenAI compatible)."""
    config = get_config()
    created = int(time.time() * 1000)

    return jsonify({
        'object': 'list',
        'data': [
            {
                'id': model,
                'object': 'model',
                'created': created,
                'owned_by': MODEL_OWNER,
            }
            for model in config.model_mapping
        ],
    })


@service_bp.route('/api/logs', methods=['GET', 'DELETE'])
def request_log_entries():
    """Recent completions and proxy events, newest first. DELETE empties both."""
    request_log = get_request_log()

    if request.method == 'DELETE':
        request_log.clear()
        return jsonify({'success': True, 'message': 'Request log cleared'})

    limit = request.args.get('limit', 50, type=int)
    return jsonify({
        'completions': request_log.recent_completions(limit),
        'events': request_log.recent_events(limit),
    })


@service_bp.route('/api/usage', methods=['GET'])
def usage_counters():
    return jsonify(get_request_log().usage())


@service_bp.route('/api/usage/reset', methods=['POST'])
def reset_usage_counters():
    get_request_log().reset_usage()
    return jsonify({'success': True, 'message': 'Usage counters reset'})
