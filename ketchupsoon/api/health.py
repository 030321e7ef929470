"""Health check endpoint for monitoring and testing."""

from flask import Blueprint, current_app, jsonify

from ..services import get_operation_coordinator
from ..utils.kuzu_manager import get_kuzu_manager

health_bp = Blueprint('health', __name__)


@health_bp.route('/health')
def health_check():
    manager = get_kuzu_manager()
    status, code = 'healthy', 200
    try:
        manager.query_value("RETURN 1 AS ok", operation="health_check")
    except Exception as e:
        current_app.logger.error(f"Kuzu health check failed: {e}")
        status, code = 'unhealthy', 503
    return jsonify({
        'status': status,
        'site': current_app.config.get('SITE_NAME'),
        'database': manager.get_health_status(),
        'operations': get_operation_coordinator().stats(),
    }), code
