"""
Supabase REST client for shared events.

Mirrors local events and their attendees into the hosted `events` and
`event_attendees` tables through the PostgREST endpoints.

Notes:
- Uses requests with short timeouts
- No retries; failures raise RemoteBackendError and are reported by the
  operation coordinator's error handler
"""

import logging
from typing import Any, Dict, List, Optional

import requests  # type: ignore
from flask import current_app

from ..domain.errors import RemoteBackendError
from ..domain.models import Event, EventAttendee, format_datetime

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def event_row(event: Event) -> Dict[str, Any]:
    return {
        'id': event.id,
        'title': event.title,
        'date': format_datetime(event.date),
        'location': event.location,
        'description': event.description,
        'duration': event.duration,
        'creator_id': event.creator_id,
        'is_private': bool(event.is_private),
    }


def attendee_row(attendee: EventAttendee) -> Dict[str, Any]:
    return {
        'id': attendee.id,
        'event_id': attendee.event_id,
        'name': attendee.name,
        'email': attendee.email,
        'phone': attendee.phone_number,
        'rsvp_status': attendee.rsvp_status.value,
    }


class SupabaseClient:
    def __init__(self, base_url: str, api_key: str, timeout: int = DEFAULT_TIMEOUT):
        self.base_url = (base_url or '').rstrip('/')
        self.api_key = api_key or ''
        self.timeout = timeout

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _request(self, method: str, table: str, *, params: Optional[Dict[str, str]] = None,
                 json: Any = None, prefer: Optional[str] = None) -> Any:
        try:
            resp = requests.request(
                method, self._url(table), headers=self._headers(prefer),
                params=params, json=json, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteBackendError(f"Remote backend unreachable: {e}", code="remote_unreachable") from e
        if resp.status_code >= 400:
            detail = resp.text[:200] if resp.text else resp.reason
            logger.warning(f"Supabase {method} {table} failed with {resp.status_code}: {detail}")
            raise RemoteBackendError(
                f"Remote backend returned {resp.status_code} for {method} {table}",
                code="remote_request_failed",
            )
        if not resp.content:
            return None
        return resp.json()

    def insert_event(self, event: Event) -> Dict[str, Any]:
        data = self._request("POST", "events", json=[event_row(event)], prefer="return=representation")
        rows = data if isinstance(data, list) else [data] if data else []
        if not rows:
            raise RemoteBackendError("Remote backend returned no event row", code="remote_empty_response")
        return rows[0]

    def insert_attendees(self, attendees: List[EventAttendee]) -> List[Dict[str, Any]]:
        if not attendees:
            return []
        data = self._request("POST", "event_attendees", json=[attendee_row(a) for a in attendees],
                             prefer="return=representation")
        return data if isinstance(data, list) else []

    def update_event(self, event: Event) -> Optional[Dict[str, Any]]:
        row = event_row(event)
        row.pop('id', None)
        data = self._request("PATCH", "events", params={"id": f"eq.{event.id}"}, json=row,
                             prefer="return=representation")
        if isinstance(data, list):
            return data[0] if data else None
        return data

    def replace_attendees(self, event_id: str, attendees: List[EventAttendee]) -> List[Dict[str, Any]]:
        """Drop the event's remote attendee rows and insert the current ones."""
        self._request("DELETE", "event_attendees", params={"event_id": f"eq.{event_id}"})
        return self.insert_attendees(attendees)

    def delete_event(self, event_id: str) -> None:
        self._request("DELETE", "event_attendees", params={"event_id": f"eq.{event_id}"})
        self._request("DELETE", "events", params={"id": f"eq.{event_id}"})

    def fetch_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        data = self._request("GET", "events", params={"id": f"eq.{event_id}", "select": "*,event_attendees(*)"})
        if isinstance(data, list):
            return data[0] if data else None
        return data


def get_remote_backend() -> Optional[SupabaseClient]:
    """Client built from the app config, or None when Supabase is not configured."""
    try:
        config = current_app.config
    except RuntimeError:
        return None
    url = config.get('SUPABASE_URL')
    key = config.get('SUPABASE_KEY')
    if not url or not key:
        return None
    return SupabaseClient(url, key, timeout=int(config.get('SUPABASE_TIMEOUT') or DEFAULT_TIMEOUT))
