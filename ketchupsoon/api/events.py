"""
Event API Endpoints

`/api/events` keeps the public create-event contract used by the web
client: POST only, answering with the bare event object. The versioned
`/api/v1/events` endpoints add reads, updates, attendees and RSVPs.
"""

import traceback

from flask import Blueprint, current_app, jsonify, make_response, request

from . import success, handle_error, json_body
from ..api_auth import api_token_required
from ..domain.errors import EventError, KetchupError
from ..services import get_event_service
from ..services.event_service import attendee_to_dict, event_to_dict

events_api = Blueprint('events_api', __name__, url_prefix='/api/v1/events')
legacy_events_api = Blueprint('legacy_events_api', __name__, url_prefix='/api/events')


@legacy_events_api.route('', methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'])
@api_token_required
def events_handler():
    if request.method != 'POST':
        response = make_response(f"Method {request.method} Not Allowed", 405)
        response.headers['Allow'] = 'POST'
        return response

    try:
        event = get_event_service().create_event(json_body())
        return jsonify(event_to_dict(event)), 200
    except KetchupError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error creating event: {e}")
        current_app.logger.error(traceback.format_exc())
        return jsonify({'error': 'Error creating event'}), 500


@events_api.route('', methods=['GET'])
@api_token_required
def list_events():
    try:
        events = get_event_service().list_events(request.args.get('creator_id'))
        data = [event_to_dict(e) for e in events]
        return success(data, count=len(data))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve events')


@events_api.route('', methods=['POST'])
@api_token_required
def create_event():
    try:
        event = get_event_service().create_event(json_body())
        return success(event_to_dict(event), 201)
    except Exception as e:
        return handle_error(e, 'Failed to create event')


@events_api.route('/<event_id>', methods=['GET'])
@api_token_required
def get_event(event_id):
    try:
        return success(event_to_dict(get_event_service().get_event(event_id)))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve event')


@events_api.route('/<event_id>', methods=['PATCH', 'PUT'])
@api_token_required
def update_event(event_id):
    try:
        event = get_event_service().update_event(event_id, json_body())
        return success(event_to_dict(event))
    except Exception as e:
        return handle_error(e, 'Failed to update event')


@events_api.route('/<event_id>', methods=['DELETE'])
@api_token_required
def delete_event(event_id):
    try:
        get_event_service().delete_event(event_id)
        return success({'id': event_id, 'deleted': True})
    except Exception as e:
        return handle_error(e, 'Failed to delete event')


@events_api.route('/<event_id>/attendees', methods=['POST'])
@api_token_required
def add_attendees(event_id):
    """Body: a single attendee object or {"attendees": [...]}."""
    try:
        data = json_body()
        payloads = data.get('attendees') if 'attendees' in data else [data]
        if not isinstance(payloads, list):
            raise EventError('attendees must be a list', code='invalid_attendees')
        attendees = get_event_service().add_attendees(event_id, payloads)
        return success([attendee_to_dict(a) for a in attendees], 201)
    except Exception as e:
        return handle_error(e, 'Failed to add attendees')


@events_api.route('/<event_id>/attendees/<attendee_id>', methods=['DELETE'])
@api_token_required
def remove_attendee(event_id, attendee_id):
    try:
        get_event_service().remove_attendee(event_id, attendee_id)
        return success({'id': attendee_id, 'deleted': True})
    except Exception as e:
        return handle_error(e, 'Failed to remove attendee')


@events_api.route('/<event_id>/attendees/<attendee_id>/rsvp', methods=['PUT'])
@api_token_required
def update_rsvp(event_id, attendee_id):
    try:
        attendee = get_event_service().update_rsvp(event_id, attendee_id, json_body().get('status'))
        return success(attendee_to_dict(attendee))
    except Exception as e:
        return handle_error(e, 'Failed to update RSVP')


@events_api.route('/<event_id>/rsvps', methods=['GET'])
@api_token_required
def rsvp_summary(event_id):
    try:
        return success(get_event_service().rsvp_summary(event_id))
    except Exception as e:
        return handle_error(e, 'Failed to summarize RSVPs')
