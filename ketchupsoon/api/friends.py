"""
Friend API Endpoints

CRUD for friends plus wishlist, mark-as-seen and CSV contact import.
"""

from flask import Blueprint, request

from . import success, handle_error, json_body
from ..api_auth import api_token_required
from ..domain.models import parse_datetime
from ..domain.errors import FriendError
from ..services import get_friend_service, get_hangout_service
from ..services.friend_service import friend_to_dict
from ..services.hangout_service import hangout_to_dict

friends_api = Blueprint('friends_api', __name__, url_prefix='/api/v1/friends')


@friends_api.route('', methods=['GET'])
@api_token_required
def list_friends():
    """List friends with optional search, tag filter and sort."""
    try:
        friends = get_friend_service().list_friends(
            search_text=request.args.get('q'),
            tags=request.args.getlist('tag'),
            sort=request.args.get('sort'),
            direction=request.args.get('direction'),
        )
        data = [friend_to_dict(f) for f in friends]
        return success(data, count=len(data))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve friends')


@friends_api.route('', methods=['POST'])
@api_token_required
def create_friend():
    try:
        friend = get_friend_service().create_friend(json_body())
        return success(friend_to_dict(friend), 201)
    except Exception as e:
        return handle_error(e, 'Failed to create friend')


@friends_api.route('/wishlist', methods=['GET'])
@api_token_required
def get_wishlist():
    """Friends flagged to reconnect soon."""
    try:
        data = [friend_to_dict(f) for f in get_friend_service().wishlist()]
        return success(data, count=len(data))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve wishlist')


@friends_api.route('/import', methods=['POST'])
@api_token_required
def import_contacts():
    """Import contacts from a CSV body (or an uploaded 'file')."""
    try:
        upload = request.files.get('file')
        text = upload.read().decode('utf-8-sig') if upload else request.get_data(as_text=True)
        if not text or not text.strip():
            raise FriendError('CSV content required', code='csv_required')
        return success(get_friend_service().import_contacts(text))
    except Exception as e:
        return handle_error(e, 'Failed to import contacts')


@friends_api.route('/<friend_id>', methods=['GET'])
@api_token_required
def get_friend(friend_id):
    try:
        friend = get_friend_service().get_friend(friend_id)
        data = friend_to_dict(friend)
        data['hangouts'] = [hangout_to_dict(h) for h in get_hangout_service().hangouts_for_friend(friend_id)]
        return success(data)
    except Exception as e:
        return handle_error(e, 'Failed to retrieve friend')


@friends_api.route('/<friend_id>', methods=['PATCH', 'PUT'])
@api_token_required
def update_friend(friend_id):
    try:
        friend = get_friend_service().update_friend(friend_id, json_body())
        return success(friend_to_dict(friend))
    except Exception as e:
        return handle_error(e, 'Failed to update friend')


@friends_api.route('/<friend_id>', methods=['DELETE'])
@api_token_required
def delete_friend(friend_id):
    try:
        get_friend_service().delete_friend(friend_id)
        return success({'id': friend_id, 'deleted': True})
    except Exception as e:
        return handle_error(e, 'Failed to delete friend')


@friends_api.route('/<friend_id>/seen', methods=['POST'])
@api_token_required
def mark_seen(friend_id):
    """Record that the user saw this friend (defaults to now)."""
    try:
        data = request.get_json(silent=True) or {}
        try:
            date = parse_datetime(data.get('date'))
        except ValueError:
            raise FriendError(f"Invalid date: {data.get('date')}", code='invalid_date')
        friend = get_friend_service().mark_seen(friend_id, date)
        return success(friend_to_dict(friend))
    except Exception as e:
        return handle_error(e, 'Failed to mark friend as seen')


@friends_api.route('/<friend_id>/wishlist', methods=['POST'])
@api_token_required
def toggle_wishlist(friend_id):
    """Toggle the wishlist flag, or set it explicitly with {"value": bool}."""
    try:
        data = request.get_json(silent=True) or {}
        friend = get_friend_service().toggle_wishlist(friend_id, data.get('value'))
        return success(friend_to_dict(friend))
    except Exception as e:
        return handle_error(e, 'Failed to update wishlist')
