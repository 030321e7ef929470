"""
API Authentication Module

Optional bearer token protection for the JSON API. When API_TOKEN is not
configured the service runs open, as a single-user backend behind a
trusted network.
"""

import logging
import secrets
from functools import wraps

from flask import request, jsonify, current_app

logger = logging.getLogger(__name__)


def validate_api_token(token: str) -> bool:
    """Check a presented token against the configured API_TOKEN."""
    expected = current_app.config.get('API_TOKEN')
    if not expected or not token:
        return False
    return secrets.compare_digest(token.encode(), str(expected).encode())


def _unauthorized(message: str):
    return jsonify({'status': 'error', 'code': 'unauthorized', 'message': message}), 401


def api_token_required(f):
    """
    Decorator for API endpoints that require token authentication when an
    API_TOKEN is configured.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_app.config.get('API_TOKEN'):
            return f(*args, **kwargs)

        auth_header = request.headers.get('Authorization')
        if not auth_header or not auth_header.startswith('Bearer '):
            logger.info(f"Rejected API request to {request.path} without bearer token")
            return _unauthorized('API token required')

        token = auth_header.split(' ', 1)[1].strip()
        if not validate_api_token(token):
            logger.info(f"Rejected API request to {request.path} with invalid token")
            return _unauthorized('Invalid API token')
        return f(*args, **kwargs)

    return decorated_function
