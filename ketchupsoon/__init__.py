"""
Flask application factory for KetchupSoon.

Kuzu is the sole data store. The factory points the shared Kuzu manager at
the configured database, drops cached services, seeds the predefined tags and
registers the JSON API blueprints.
"""

import os
import logging
from typing import Any, Mapping, Optional

from flask import Flask, jsonify, request

from config import Config

logger = logging.getLogger(__name__)


def _configure_logging(app: Flask) -> None:
    log_level_name = str(app.config.get('LOG_LEVEL') or 'INFO').upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(format='%(asctime)s %(levelname)s [%(name)s] %(message)s')
    logging.getLogger().setLevel(log_level)
    app.logger.setLevel(log_level)
    # Keep request logs from drowning out application logs
    logging.getLogger('urllib3').setLevel(max(log_level, logging.WARNING))


def create_app(config_object: Optional[Any] = None, overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, static_folder=None, static_url_path=None)
    app.config.from_object(config_object or Config)
    if overrides:
        app.config.update(overrides)

    _configure_logging(app)

    if not app.config.get('SECRET_KEY'):
        raise RuntimeError("SECRET_KEY must be set in environment or config")
    app.secret_key = app.config['SECRET_KEY']

    os.makedirs(app.config['DATA_DIR'], exist_ok=True)
    os.makedirs(app.config['KUZU_DB_PATH'], exist_ok=True)

    from .utils.kuzu_manager import reset_kuzu_manager, DATABASE_FILENAME
    from .utils.simple_cache import cache_clear
    from .services import reset_services, get_tag_service

    database_path = os.path.join(app.config['KUZU_DB_PATH'], DATABASE_FILENAME)
    reset_kuzu_manager(database_path)
    reset_services()
    cache_clear()

    with app.app_context():
        get_tag_service().ensure_predefined_tags()

    from .api import register_blueprints
    register_blueprints(app)

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith('/api/'):
            return jsonify({'status': 'error', 'code': 'not_found', 'message': 'Resource not found'}), 404
        return e

    @app.errorhandler(405)
    def method_not_allowed(e):
        if request.path.startswith('/api/'):
            response = jsonify({'status': 'error', 'code': 'method_not_allowed',
                                'message': f"Method {request.method} Not Allowed"})
            response.status_code = 405
            if getattr(e, 'valid_methods', None):
                response.headers['Allow'] = ', '.join(e.valid_methods)
            return response
        return e

    app.logger.info(f"{app.config.get('SITE_NAME')} ready (Kuzu at {database_path})")
    return app
