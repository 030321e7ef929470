"""
Domain errors surfaced to API clients.

Each error carries a machine readable code, a user facing message and the
HTTP status the API layer should answer with.
"""

from typing import Any, Dict


class KetchupError(Exception):
    status_code = 400
    code = "ketchup_error"

    def __init__(self, message: str, code: str = None, status_code: int = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {'status': 'error', 'code': self.code, 'message': self.message}

    @classmethod
    def not_found(cls, kind: str, identifier: str) -> 'KetchupError':
        return cls(f"{kind} not found: {identifier}", code=f"{kind.lower()}_not_found", status_code=404)


class FriendError(KetchupError):
    code = "friend_error"

    @classmethod
    def invalid_name(cls) -> 'FriendError':
        return cls("Friend name is required", code="invalid_friend_name")


class TagError(KetchupError):
    code = "tag_error"

    @classmethod
    def empty_name(cls) -> 'TagError':
        return cls("Tag name cannot be empty", code="empty_tag_name")

    @classmethod
    def predefined(cls, name: str) -> 'TagError':
        return cls(f"Predefined tag '{name}' cannot be deleted", code="predefined_tag", status_code=409)


class HangoutError(KetchupError):
    code = "hangout_error"

    @classmethod
    def invalid_dates(cls) -> 'HangoutError':
        return cls("Hangout must end after it starts", code="invalid_hangout_dates")


class CalendarError(KetchupError):
    status_code = 500
    code = "calendar_error"


class EventError(KetchupError):
    code = "event_error"

    @classmethod
    def missing_fields(cls, fields) -> 'EventError':
        return cls(f"Missing required fields: {', '.join(fields)}", code="missing_fields")

    @classmethod
    def invalid_rsvp(cls, status: str) -> 'EventError':
        return cls(f"Invalid RSVP status: {status}", code="invalid_rsvp")


class RemoteBackendError(KetchupError):
    status_code = 502
    code = "remote_backend_error"
