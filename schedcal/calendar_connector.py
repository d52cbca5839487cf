"""
Calendar Connector for inserting recurring course events into Google Calendar.
Talks to the Calendar v3 REST API with a bearer token obtained by the caller's
OAuth flow (scope https://www.googleapis.com/auth/calendar.events).
"""

from typing import Optional
from urllib.parse import quote

import requests

from schedcal.errors import AuthFailure, RemoteInsertFailure
from schedcal.logging_helper import Log

CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar.events"

# 403 reasons that mean the token lacks the right grant, not that the request was bad
_AUTH_REASONS = ("insufficientPermissions", "authError", "forbidden")


def _error_reason(response: requests.Response) -> str:
    """Pull the first error reason out of a Google API error body."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    error = body.get("error")
    if not isinstance(error, dict):
        return ""
    errors = error.get("errors") or []
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return str(errors[0].get("reason") or "")
    return str(error.get("status") or "")


class GoogleCalendarClient:
    """
    Minimal Calendar API client: only events.insert is needed.
    """

    def __init__(self, access_token: Optional[str], timeout: float = 30.0):
        """
        Args:
            access_token: OAuth access token; credential refresh is the caller's job
            timeout: Seconds before an insert counts as failed
        """
        self.access_token = access_token
        self.timeout = timeout

    def ensure_authorized(self):
        if not self.access_token:
            Log.kv({"stage": "calendar", "result": "failed", "reason": "missing_token"})
            raise AuthFailure("No calendar access token available", reason="missing_token")

    def insert_event(self, payload: dict, calendar_id: str = "primary") -> str:
        """
        Insert one event.

        Args:
            payload: events.insert request body
            calendar_id: Target calendar ("primary" for the user's main calendar)

        Returns:
            The event id assigned by Google

        Raises:
            AuthFailure: token missing, expired or lacking the events scope
            RemoteInsertFailure: rejection, timeout or unexpected response
        """
        self.ensure_authorized()
        url = f"{CALENDAR_API_URL}/calendars/{quote(calendar_id, safe='')}/events"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        summary = payload.get("summary", "")

        try:
            response = requests.post(url, headers=headers, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            Log.kv({"stage": "calendar", "result": "failed", "reason": "timeout", "event_title": summary})
            raise RemoteInsertFailure(f"Calendar insert timed out after {self.timeout}s: {e}", reason="timeout")
        except requests.exceptions.RequestException as e:
            Log.kv({"stage": "calendar", "result": "failed", "reason": "request_error", "event_title": summary})
            raise RemoteInsertFailure(f"Calendar insert request failed: {e}", reason="request_error")

        status = response.status_code
        if status == 401 or (status == 403 and _error_reason(response) in _AUTH_REASONS):
            Log.error(f"Calendar API rejected credential ({status})")
            Log.kv({"stage": "calendar", "result": "failed", "reason": "unauthorized", "status": status})
            raise AuthFailure(
                f"Calendar API rejected the access token ({status}); {CALENDAR_SCOPE} access is required",
                reason="unauthorized",
            )

        if not 200 <= status < 300:
            reason = _error_reason(response) or "http_error"
            Log.error(f"Calendar API error {status}: {response.text[:500]}")
            Log.kv({"stage": "calendar", "result": "failed", "reason": reason, "status": status})
            raise RemoteInsertFailure(f"Calendar API error {status}: {reason}", reason=reason, status=status)

        try:
            event_id = response.json()["id"]
        except (ValueError, KeyError, TypeError):
            Log.kv({"stage": "calendar", "result": "failed", "reason": "missing_event_id"})
            raise RemoteInsertFailure("Calendar API response has no event id", reason="missing_event_id", status=status)

        Log.info(f"Created calendar event {event_id}: {summary}")
        Log.kv({"stage": "calendar", "result": "success", "event_id": event_id, "event_title": summary})
        return str(event_id)
