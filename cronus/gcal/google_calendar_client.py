"""Read-only Google Calendar API client with graceful in-memory fallback."""
from __future__ import annotations

import asyncio
import os
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from cronus.config.loader import AppConfig
from cronus.gcal.models import CalendarEvent
from cronus.util.date_utils import start_instant
from cronus.util.logging_utils import get_logger

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
_TOKEN_URI = "https://oauth2.googleapis.com/token"
_FETCH_ERRORS = (HttpError, GoogleAuthError, OSError, asyncio.TimeoutError)


class GoogleCalendarClient:
    """Talks to Google Calendar when credentials exist, otherwise serves events from memory.

    Every call degrades to an empty result instead of raising, so one broken
    calendar never takes the digest down with it.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        service: Any = None,
        credentials: Any = None,
        use_in_memory: bool = False,
    ) -> None:
        self._config = config
        self._credentials = credentials
        self._timeout = config.calendar.request_timeout_sec
        self._logger = get_logger(__name__)
        self._memory_events: Dict[str, Dict[str, CalendarEvent]] = {}
        if service is not None or use_in_memory:
            self._service = service
        else:
            self._service = self._build_service_if_possible()

    @property
    def is_online(self) -> bool:
        return self._service is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def list_events(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> List[CalendarEvent]:
        if not self._service:
            return self._list_from_memory(calendar_id, time_min, time_max)
        try:
            items = await asyncio.wait_for(
                asyncio.to_thread(self._list_items, calendar_id, time_min, time_max),
                timeout=self._timeout,
            )
        except _FETCH_ERRORS as exc:
            self._logger.error("Error fetching events for calendar %s: %s", calendar_id, _describe(exc))
            return []
        return [CalendarEvent.from_api_item(item, calendar_id) for item in items]

    async def get_event_details(self, calendar_id: str, event_id: str) -> Optional[CalendarEvent]:
        if not self._service:
            return self._memory_events.get(calendar_id, {}).get(event_id)
        try:
            item = await asyncio.wait_for(
                asyncio.to_thread(self._get_item, calendar_id, event_id),
                timeout=self._timeout,
            )
        except _FETCH_ERRORS as exc:
            self._logger.warning(
                "Error fetching details for event %s in calendar %s: %s",
                event_id,
                calendar_id,
                _describe(exc),
            )
            return None
        if not isinstance(item, Mapping):
            return None
        return CalendarEvent.from_api_item(item, calendar_id)

    def add_event(self, calendar_id: str, event: CalendarEvent | Mapping[str, Any]) -> CalendarEvent:
        """Store an event in the in-memory calendar (offline mode and tests)."""

        if isinstance(event, Mapping):
            event = CalendarEvent.from_api_item(event, calendar_id)
        self._memory_events.setdefault(calendar_id, {})[event.event_id] = event
        self._logger.debug("Stored event '%s' in memory calendar %s", event.summary, calendar_id)
        return event

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _list_items(self, calendar_id: str, time_min: datetime, time_max: datetime) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page_token: Optional[str] = None
        while True:
            request = self._service.events().list(
                calendarId=calendar_id,
                timeMin=time_min.isoformat(),
                timeMax=time_max.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                maxResults=self._config.calendar.max_results,
                pageToken=page_token,
            )
            response = self._execute(request)
            items.extend(response.get("items", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return items

    def _get_item(self, calendar_id: str, event_id: str) -> Dict[str, Any]:
        return self._execute(self._service.events().get(calendarId=calendar_id, eventId=event_id))

    def _execute(self, request: Any) -> Dict[str, Any]:
        # httplib2.Http is not thread-safe: each worker-thread call gets its own connection.
        if self._credentials is None:
            return request.execute()
        http = AuthorizedHttp(self._credentials, http=httplib2.Http(timeout=self._timeout))
        return request.execute(http=http)

    def _list_from_memory(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> List[CalendarEvent]:
        tz = time_min.tzinfo or self._config.zone()
        selected = []
        for event in self._memory_events.get(calendar_id, {}).values():
            start = start_instant(event, tz)
            if start is None or time_min <= start <= time_max:
                selected.append(event.with_source(calendar_id))
        return selected

    def _build_service_if_possible(self):
        creds = self._load_credentials()
        if creds is None:
            self._logger.warning(
                "Google credentials not provided. Using an empty in-memory calendar; no events will be fetched"
            )
            return None
        try:
            service = build("calendar", "v3", credentials=creds, cache_discovery=False)
            self._credentials = creds
            self._logger.info("Google Calendar API client initialized")
            return service
        except Exception as exc:
            self._logger.warning("Failed to build Google Calendar service: %s", exc)
            return None

    def _load_credentials(self):  # pragma: no cover - depends on env
        key_path = self._config.resolve_path(self._config.calendar.service_account_file)
        if key_path.exists():
            try:
                return service_account.Credentials.from_service_account_file(str(key_path), scopes=SCOPES)
            except (ValueError, OSError) as exc:
                self._logger.warning("Service account key %s is unusable: %s", key_path, exc)

        client_id = os.getenv("GOOGLE_CLIENT_ID")
        client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
        refresh_token = os.getenv("GOOGLE_REFRESH_TOKEN")
        if not (client_id and client_secret and refresh_token):
            return None
        return Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            token_uri=_TOKEN_URI,
            scopes=SCOPES,
        )


def _describe(exc: BaseException) -> str:
    if isinstance(exc, HttpError):
        return f"HTTP {exc.resp.status}: {exc.reason}"
    if isinstance(exc, asyncio.TimeoutError):
        return "request timed out"
    return str(exc)


__all__ = ["GoogleCalendarClient", "SCOPES"]
