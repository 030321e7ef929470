"""
JSON API blueprints.

Every endpoint answers with {"status": "success", "data": ...} or
{"status": "error", "code": ..., "message": ...}.
"""

import traceback
from typing import Any, Dict

from flask import jsonify, request, current_app

from ..domain.errors import KetchupError


def success(data: Any, status: int = 200, **extra):
    payload = {'status': 'success', 'data': data}
    payload.update(extra)
    return jsonify(payload), status


def handle_error(e: Exception, message: str):
    """Map domain errors to their envelope; log anything else and answer 500."""
    if isinstance(e, KetchupError):
        return jsonify(e.to_dict()), e.status_code
    current_app.logger.error(f"{message}: {e}")
    current_app.logger.error(traceback.format_exc())
    return jsonify({
        'status': 'error',
        'code': 'internal_error',
        'message': message,
        'error': str(e),
    }), 500


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise KetchupError('JSON data required', code='json_required')
    return data


def register_blueprints(app) -> None:
    from .friends import friends_api
    from .tags import tags_api
    from .hangouts import hangouts_api, ketchups_api
    from .reminders import reminders_api
    from .events import events_api, legacy_events_api
    from .health import health_bp

    for blueprint in (friends_api, tags_api, hangouts_api, ketchups_api, reminders_api,
                      events_api, legacy_events_api, health_bp):
        app.register_blueprint(blueprint)
