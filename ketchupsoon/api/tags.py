"""Tag API Endpoints"""

from flask import Blueprint

from . import success, handle_error, json_body
from ..api_auth import api_token_required
from ..domain.errors import KetchupError
from ..services import get_tag_service

tags_api = Blueprint('tags_api', __name__, url_prefix='/api/v1/tags')


def serialize_tag(tag):
    return {
        'id': tag.id,
        'name': tag.name,
        'is_predefined': tag.is_predefined,
        'friend_count': tag.friend_count,
    }


@tags_api.route('', methods=['GET'])
@api_token_required
def list_tags():
    try:
        data = [serialize_tag(t) for t in get_tag_service().list_tags()]
        return success(data, count=len(data))
    except Exception as e:
        return handle_error(e, 'Failed to retrieve tags')


@tags_api.route('', methods=['POST'])
@api_token_required
def create_tag():
    """Create (or reuse) a tag, optionally attaching it to a friend."""
    try:
        data = json_body()
        tag = get_tag_service().create_tag(data.get('name'), data.get('friend_id'))
        return success(serialize_tag(tag), 201)
    except Exception as e:
        return handle_error(e, 'Failed to create tag')


@tags_api.route('/<tag_id>', methods=['DELETE'])
@api_token_required
def delete_tag(tag_id):
    try:
        get_tag_service().delete_tag(tag_id)
        return success({'id': tag_id, 'deleted': True})
    except Exception as e:
        return handle_error(e, 'Failed to delete tag')


@tags_api.route('/<tag_id>/toggle', methods=['POST'])
@api_token_required
def toggle_tag(tag_id):
    try:
        friend_id = json_body().get('friend_id')
        if not friend_id:
            raise KetchupError('friend_id is required', code='missing_fields')
        attached = get_tag_service().toggle_tag(tag_id, friend_id)
        return success({'tag_id': tag_id, 'friend_id': friend_id, 'attached': attached})
    except Exception as e:
        return handle_error(e, 'Failed to toggle tag')
