"""Reminder API Endpoints"""

from flask import Blueprint, request

from . import success, handle_error, json_body
from ..api_auth import api_token_required
from ..domain.models import parse_datetime
from ..domain.errors import KetchupError
from ..services import get_reminder_service
from ..utils.app_settings import load_app_settings

reminders_api = Blueprint('reminders_api', __name__, url_prefix='/api/v1/reminders')


def serialize_reminder(reminder):
    return {
        'id': reminder.id,
        'kind': reminder.kind.value,
        'friend_id': reminder.friend_id,
        'title': reminder.title,
        'body': reminder.body,
        'fire_at': reminder.fire_at.isoformat() if reminder.fire_at else None,
        'created_at': reminder.created_at.isoformat() if reminder.created_at else None,
    }


@reminders_api.route('', methods=['GET'])
@api_token_required
def list_reminders():
    try:
        data = [serialize_reminder(r) for r in get_reminder_service().pending()]
        return success(data, count=len(data))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve reminders')


@reminders_api.route('/due', methods=['GET'])
@api_token_required
def due_reminders():
    """Reminders whose fire time has passed. ?consume=1 removes them once read."""
    try:
        try:
            now = parse_datetime(request.args.get('now'))
        except ValueError:
            raise KetchupError(f"Invalid now: {request.args.get('now')}", code='invalid_date')
        service = get_reminder_service()
        consume = request.args.get('consume', '').lower() in ('1', 'true', 'yes')
        reminders = service.pop_due(now) if consume else service.due(now)
        data = [serialize_reminder(r) for r in reminders]
        return success(data, count=len(data))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve due reminders')


@reminders_api.route('/settings', methods=['GET'])
@api_token_required
def get_settings():
    try:
        return success(load_app_settings())
    except Exception as e:
        return handle_error(e, 'Failed to load settings')


@reminders_api.route('/settings', methods=['PUT'])
@api_token_required
def update_settings():
    try:
        return success(get_reminder_service().update_settings(json_body()))
    except Exception as e:
        return handle_error(e, 'Failed to update settings')
