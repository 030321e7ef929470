"""
Hangout API Endpoints

Scheduling, completion, rescheduling, calendar export and the ketchups
board.
"""

from flask import Blueprint, Response, request

from . import success, handle_error, json_body
from ..api_auth import api_token_required
from ..services import get_hangout_service
from ..services.friend_service import friend_to_dict
from ..services.hangout_service import hangout_to_dict
from ..utils.app_settings import load_app_settings

hangouts_api = Blueprint('hangouts_api', __name__, url_prefix='/api/v1/hangouts')
ketchups_api = Blueprint('ketchups_api', __name__, url_prefix='/api/v1/ketchups')


@hangouts_api.route('', methods=['GET'])
@api_token_required
def list_hangouts():
    try:
        friend_id = request.args.get('friend_id')
        service = get_hangout_service()
        hangouts = service.hangouts_for_friend(friend_id) if friend_id else service.list_hangouts()
        data = [hangout_to_dict(h) for h in hangouts]
        return success(data, count=len(data))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve hangouts')


@hangouts_api.route('', methods=['POST'])
@api_token_required
def create_hangout():
    try:
        hangout = get_hangout_service().create_hangout(json_body())
        return success(hangout_to_dict(hangout), 201)
    except Exception as e:
        return handle_error(e, 'Failed to create hangout')


@hangouts_api.route('/<hangout_id>', methods=['GET'])
@api_token_required
def get_hangout(hangout_id):
    try:
        return success(hangout_to_dict(get_hangout_service().get_hangout(hangout_id)))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve hangout')


@hangouts_api.route('/<hangout_id>', methods=['DELETE'])
@api_token_required
def delete_hangout(hangout_id):
    try:
        get_hangout_service().delete_hangout(hangout_id)
        return success({'id': hangout_id, 'deleted': True})
    except Exception as e:
        return handle_error(e, 'Failed to delete hangout')


@hangouts_api.route('/<hangout_id>/complete', methods=['POST'])
@api_token_required
def complete_hangout(hangout_id):
    """Confirm the hangout happened."""
    try:
        return success(hangout_to_dict(get_hangout_service().mark_completed(hangout_id)))
    except Exception as e:
        return handle_error(e, 'Failed to complete hangout')


@hangouts_api.route('/<hangout_id>/needs-reschedule', methods=['POST'])
@api_token_required
def needs_reschedule(hangout_id):
    try:
        return success(hangout_to_dict(get_hangout_service().mark_needs_reschedule(hangout_id)))
    except Exception as e:
        return handle_error(e, 'Failed to flag hangout for rescheduling')


@hangouts_api.route('/<hangout_id>/missed', methods=['POST'])
@api_token_required
def missed_hangout(hangout_id):
    """Body: {"outcome": "reschedule" | "to_connect" | "hold_off"}."""
    try:
        outcome = json_body().get('outcome')
        hangout = get_hangout_service().resolve_missed(hangout_id, outcome)
        if hangout is None:
            return success({'id': hangout_id, 'deleted': True, 'outcome': outcome})
        return success(hangout_to_dict(hangout))
    except Exception as e:
        return handle_error(e, 'Failed to resolve missed hangout')


@hangouts_api.route('/<hangout_id>/reschedule', methods=['POST'])
@api_token_required
def reschedule_hangout(hangout_id):
    """Body: {"date": ISO-8601, "duration": seconds (optional)}."""
    try:
        data = json_body()
        hangout = get_hangout_service().reschedule(hangout_id, data.get('date'), data.get('duration'))
        return success(hangout_to_dict(hangout), 201)
    except Exception as e:
        return handle_error(e, 'Failed to reschedule hangout')


@hangouts_api.route('/<hangout_id>/calendar.ics', methods=['GET'])
@api_token_required
def hangout_calendar(hangout_id):
    try:
        content = get_hangout_service().calendar_ics(hangout_id)
        return Response(
            content,
            mimetype='text/calendar',
            headers={'Content-Disposition': f'attachment; filename=hangout-{hangout_id}.ics'},
        )
    except Exception as e:
        return handle_error(e, 'Failed to export hangout')


@ketchups_api.route('', methods=['GET'])
@api_token_required
def ketchups_board():
    """Upcoming, awaiting-confirmation and completed hangouts plus due check-ins."""
    try:
        horizon = request.args.get('horizon_days', type=int)
        if horizon is None:
            horizon = load_app_settings().get('check_in_horizon_days', 21)
        board = get_hangout_service().ketchups_board(horizon_days=horizon)
        return success({
            'upcoming': [hangout_to_dict(h) for h in board['upcoming']],
            'past': [hangout_to_dict(h) for h in board['past']],
            'completed': [hangout_to_dict(h) for h in board['completed']],
            'check_ins': [friend_to_dict(f) for f in board['check_ins']],
        })
    except Exception as e:
        return handle_error(e, 'Failed to build ketchups board')
