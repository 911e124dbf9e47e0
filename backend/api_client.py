"""
HTTP client for the calendar persistence API
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import requests

from errors import ConflictError, NotFoundError, TransportError, ValidationError
from models import Event

logger = logging.getLogger(__name__)

STATUS_ERRORS = {
    400: ValidationError,
    404: NotFoundError,
    409: ConflictError,
}


class EventsApiClient:
    """Thin wrapper over the ``/events`` REST endpoints"""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, json_body: Any = None) -> Dict[str, Any]:
        """
        Send one request and unwrap the ``{success, data, error}`` envelope

        Returns:
            The decoded response body

        Raises:
            ValidationError, NotFoundError, ConflictError: for 400/404/409
            TransportError: for other failures, including ``success: false``
        """
        url = self._url(path)
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(method, url, json=json_body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise TransportError(
                f"Invalid JSON from {method} {url}: {resp.text[:200]}", resp.status_code
            ) from exc
        if not isinstance(body, dict):
            raise TransportError(f"Unexpected body from {method} {url}", resp.status_code)

        if resp.status_code >= 400 or not body.get('success'):
            message = body.get('error') or f"{resp.status_code} from {method} {url}"
            error_class = STATUS_ERRORS.get(resp.status_code)
            if error_class is not None:
                raise error_class(message)
            raise TransportError(message, resp.status_code)
        return body

    def _event(self, body: Dict[str, Any]) -> Event:
        data = body.get('data')
        if not isinstance(data, dict):
            raise TransportError("Response carried no event data")
        return Event.from_dict(data)

    def health(self) -> Dict[str, Any]:
        return self._request('GET', 'health')

    def list_events(self) -> List[Event]:
        body = self._request('GET', 'events')
        data = body.get('data')
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise TransportError("Response carried no event list")
        return [Event.from_dict(item) for item in data]

    def get_event(self, event_id: str) -> Event:
        body = self._request('GET', f'events/{event_id}')
        return self._event(body)

    def create_event(self, event: Event) -> Event:
        body = self._request('POST', 'events', event.to_dict())
        return self._event(body)

    def update_event(self, event_id: str, changes: Union[Event, Dict[str, Any]]) -> Event:
        payload = changes.to_dict() if isinstance(changes, Event) else dict(changes)
        payload.pop('id', None)
        body = self._request('PUT', f'events/{event_id}', payload)
        return self._event(body)

    def delete_event(self, event_id: str) -> Event:
        body = self._request('DELETE', f'events/{event_id}')
        return self._event(body)

    def migrate(self, events: Iterable[Event]) -> Dict[str, Any]:
        """
        Bulk-import events, skipping ids the store already has

        Returns:
            Dictionary with ``migrated`` and ``skipped`` counts (and ``error``
            when only part of the batch was stored)
        """
        body = self._request('POST', 'migrate', {'events': [e.to_dict() for e in events]})
        result = {
            'migrated': body.get('migrated', 0),
            'skipped': body.get('skipped', 0),
            'message': body.get('message', ''),
        }
        if body.get('error'):
            result['error'] = body['error']
        return result

