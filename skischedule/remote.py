"""
Remote event backend (Supabase / PostgREST style REST service).

Remote record shape: one row per event in the `events` table, owned by a
user id, with snake_case columns:

    id, user_id, type, date, time_slot, start_time, end_time, duration,
    title, venue, fee, notes, created_at, updated_at

Rules:
- every read is filtered by user_id (row-level ownership)
- every update/delete is filtered by id AND user_id
- date ranges translate to inclusive gte/lte comparisons
- inserts never send id/created_at/updated_at; the service assigns them
- any HTTP or transport failure is raised as RemoteStoreError, no retries
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from skischedule.errors import RemoteStoreError
from skischedule.model import Event, EventType, TimeSlot, opt_number, opt_text
from skischedule.settings import Settings

log = logging.getLogger(__name__)

EVENTS_TABLE = "events"

# Event attribute -> remote column
_COLUMNS = {
    "type": "type",
    "date": "date",
    "time_slot": "time_slot",
    "start_time": "start_time",
    "end_time": "end_time",
    "duration": "duration",
    "title": "title",
    "venue": "venue",
    "fee": "fee",
    "notes": "notes",
    "updated_at": "updated_at",
}

Params = Sequence[Tuple[str, str]]


def _plain(value: Any) -> Any:
    # enums travel as their string value
    return getattr(value, "value", value)


def row_to_event(row: Dict[str, Any]) -> Event:
    """Convert one remote row into an Event. Raises ValueError for unknown type/slot."""
    return Event(
        id=str(row["id"]),
        type=EventType(row.get("type")),
        date=str(row.get("date", "")),
        time_slot=TimeSlot(row.get("time_slot")),
        start_time=str(row.get("start_time", "")),
        end_time=str(row.get("end_time", "")),
        duration=float(row.get("duration") or 0),
        title=str(row.get("title", "") or ""),
        venue=opt_text(row.get("venue")),
        fee=opt_number(row.get("fee")),
        notes=opt_text(row.get("notes")),
        created_at=str(row.get("created_at", "") or ""),
        updated_at=str(row.get("updated_at", "") or ""),
    )


def event_to_row(event: Event, user_id: str) -> Dict[str, Any]:
    """Insert payload for an event: owner added, id and timestamps left to the service."""
    return {
        "user_id": user_id,
        "type": event.type.value,
        "date": event.date,
        "time_slot": event.time_slot.value,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "duration": event.duration,
        "title": event.title,
        "venue": event.venue,
        "fee": event.fee,
        "notes": event.notes,
    }


class RemoteSession:
    """
    Connection details for the remote service plus the signed-in token.

    The identity is resolved on every call to resolve_user_id(); nothing is
    cached, so signing out between two calls is picked up immediately.
    """

    def __init__(self, settings: Settings, http: Optional[requests.Session] = None) -> None:
        self.base_url = (settings.supabase_url or "").rstrip("/")
        self.anon_key = settings.supabase_anon_key or ""
        self.access_token = settings.supabase_access_token or ""
        self.timeout = settings.http_timeout
        self.http = http if http is not None else requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.anon_key)

    def headers(self) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Content-Type": "application/json",
        }

    def resolve_user_id(self) -> Optional[str]:
        """
        Return the signed-in user's id, or None if there is no usable session.

        None covers: service not configured, no token, token rejected,
        service unreachable. Callers fall back to the local store.
        """
        if not self.configured or not self.access_token:
            return None
        try:
            resp = self.http.request(
                "GET", f"{self.base_url}/auth/v1/user", headers=self.headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            log.debug("identity lookup failed: %s", e)
            return None
        if resp.status_code != 200:
            log.debug("identity lookup rejected: HTTP %s", resp.status_code)
            return None
        try:
            user_id = resp.json().get("id")
        except (ValueError, AttributeError):
            return None
        return str(user_id) if user_id else None

    def backend(self, user_id: str) -> "RemoteEventBackend":
        return RemoteEventBackend(self, user_id)


class RemoteEventBackend:
    """EventBackend implementation scoped to one owner."""

    def __init__(self, session: RemoteSession, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    @property
    def url(self) -> str:
        return f"{self.session.base_url}/rest/v1/{EVENTS_TABLE}"

    def _owner(self) -> Tuple[str, str]:
        return ("user_id", f"eq.{self.user_id}")

    def _request(
        self,
        method: str,
        params: Params,
        payload: Optional[Dict[str, Any]] = None,
        prefer: Optional[str] = None,
    ) -> requests.Response:
        headers = self.session.headers()
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = self.session.http.request(
                method,
                self.url,
                params=list(params),
                json=payload,
                headers=headers,
                timeout=self.session.timeout,
            )
        except requests.RequestException as e:
            raise RemoteStoreError(f"{method} {EVENTS_TABLE} failed: {e}") from e
        if resp.status_code >= 400:
            raise RemoteStoreError(
                f"{method} {EVENTS_TABLE} failed: HTTP {resp.status_code} {resp.text[:200]}",
                status=resp.status_code,
            )
        return resp

    def _rows(self, params: Params) -> List[Event]:
        resp = self._request("GET", [("select", "*"), self._owner(), *params])
        try:
            rows = resp.json()
        except ValueError as e:
            raise RemoteStoreError(f"GET {EVENTS_TABLE} returned invalid JSON") from e
        if not isinstance(rows, list):
            raise RemoteStoreError(f"GET {EVENTS_TABLE} returned {type(rows).__name__}, expected a list")
        try:
            return [row_to_event(r) for r in rows]
        except (KeyError, ValueError) as e:
            raise RemoteStoreError(f"GET {EVENTS_TABLE} returned a malformed row: {e}") from e

    # -- EventBackend contract ---------------------------------------------

    def insert(self, event: Event) -> Event:
        resp = self._request("POST", [], payload=event_to_row(event, self.user_id), prefer="return=representation")
        try:
            rows = resp.json()
            created = row_to_event(rows[0])
        except (ValueError, KeyError, IndexError, TypeError):
            # accepted without echo: the service-assigned id is unknown
            log.warning("remote insert for %s %s returned no row; id unknown", event.date, event.title)
            return event.copy(id="", created_at="", updated_at="")
        log.debug("remote insert %s (%s)", created.id, created.date)
        return created

    def get(self, event_id: str) -> Optional[Event]:
        found = self._rows([("id", f"eq.{event_id}")])
        return found[0] if found else None

    def by_date(self, date: str) -> List[Event]:
        return self._rows([("date", f"eq.{date}"), ("order", "start_time.asc")])

    def by_range(self, start: str, end: str) -> List[Event]:
        return self._rows([("date", f"gte.{start}"), ("date", f"lte.{end}"), ("order", "date.asc,start_time.asc")])

    def update(self, event_id: str, fields: Dict[str, Any]) -> None:
        row = {_COLUMNS[k]: _plain(v) for k, v in fields.items() if k in _COLUMNS}
        if not row:
            return
        self._request("PATCH", [("id", f"eq.{event_id}"), self._owner()], payload=row)
        log.debug("remote update %s: %s", event_id, sorted(row))

    def delete(self, event_id: str) -> None:
        self._request("DELETE", [("id", f"eq.{event_id}"), self._owner()])
        log.debug("remote delete %s", event_id)

    def list_all(self) -> List[Event]:
        return self._rows([("order", "date.asc,start_time.asc")])
