"""
Unit tests for the remote (REST) backend, against a recording fake HTTP client.
"""

import unittest
from pathlib import Path
from typing import Any, List, Optional

import requests

from skischedule.errors import RemoteStoreError
from skischedule.model import Event, EventType, TimeSlot
from skischedule.remote import RemoteSession, event_to_row, row_to_event
from skischedule.settings import Settings

ROW = {
    "id": "r1",
    "user_id": "u1",
    "type": "Course",
    "date": "2025-01-20",
    "time_slot": "Morning",
    "start_time": "08:30",
    "end_time": "12:00",
    "duration": 3,
    "title": "Li",
    "venue": "万龙",
    "fee": 1500,
    "notes": None,
    "created_at": "2025-01-01T00:00:00+00:00",
    "updated_at": "2025-01-01T00:00:00+00:00",
}


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None) -> None:
        self.status_code = status_code
        self._body = body
        self.text = "" if body is None else str(body)

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeHttp:
    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.calls: List[dict] = []
        self.responses = list(responses or [])

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        nxt = self.responses.pop(0) if self.responses else FakeResponse(200, [])
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def make_settings(token: Optional[str] = "tok") -> Settings:
    return Settings(
        data_dir=Path("."),
        supabase_url="https://demo.supabase.co/",
        supabase_anon_key="anon",
        supabase_access_token=token,
        http_timeout=5.0,
    )


def make_event() -> Event:
    return Event(
        id="local-1",
        type=EventType.PRACTICE,
        date="2025-01-21",
        time_slot=TimeSlot.AFTERNOON,
        start_time="13:00",
        end_time="16:30",
        duration=3,
        title="park",
        created_at="2025-01-01T00:00:00",
        updated_at="2025-01-01T00:00:00",
    )


class TestRowMapping(unittest.TestCase):
    def test_row_to_event(self) -> None:
        ev = row_to_event(ROW)
        self.assertEqual(ev.id, "r1")
        self.assertEqual(ev.type, EventType.COURSE)
        self.assertEqual(ev.time_slot, TimeSlot.MORNING)
        self.assertEqual(ev.fee, 1500)
        self.assertIsNone(ev.notes)

    def test_event_to_row_leaves_identity_to_service(self) -> None:
        row = event_to_row(make_event(), "u1")
        self.assertEqual(row["user_id"], "u1")
        self.assertEqual(row["type"], "Practice")
        self.assertEqual(row["time_slot"], "Afternoon")
        for key in ("id", "created_at", "updated_at"):
            self.assertNotIn(key, row)


class TestRemoteSession(unittest.TestCase):
    def test_resolve_user_id(self) -> None:
        http = FakeHttp([FakeResponse(200, {"id": "u1"})])
        session = RemoteSession(make_settings(), http=http)
        self.assertEqual(session.resolve_user_id(), "u1")
        self.assertEqual(http.calls[0]["url"], "https://demo.supabase.co/auth/v1/user")
        self.assertEqual(http.calls[0]["headers"]["Authorization"], "Bearer tok")

    def test_resolve_user_id_rejected_token(self) -> None:
        session = RemoteSession(make_settings(), http=FakeHttp([FakeResponse(401, {"msg": "bad jwt"})]))
        self.assertIsNone(session.resolve_user_id())

    def test_resolve_user_id_unreachable(self) -> None:
        session = RemoteSession(make_settings(), http=FakeHttp([requests.ConnectionError("down")]))
        self.assertIsNone(session.resolve_user_id())

    def test_resolve_user_id_without_token_makes_no_call(self) -> None:
        http = FakeHttp()
        session = RemoteSession(make_settings(token=None), http=http)
        self.assertIsNone(session.resolve_user_id())
        self.assertEqual(http.calls, [])


class TestRemoteEventBackend(unittest.TestCase):
    def setUp(self) -> None:
        self.http = FakeHttp()
        self.backend = RemoteSession(make_settings(), http=self.http).backend("u1")

    def test_reads_are_scoped_to_owner(self) -> None:
        self.http.responses = [FakeResponse(200, [ROW])]
        events = self.backend.by_range("2025-01-20", "2025-01-26")

        self.assertEqual([e.id for e in events], ["r1"])
        call = self.http.calls[0]
        self.assertEqual(call["method"], "GET")
        self.assertEqual(call["url"], "https://demo.supabase.co/rest/v1/events")
        self.assertIn(("user_id", "eq.u1"), call["params"])
        self.assertIn(("date", "gte.2025-01-20"), call["params"])
        self.assertIn(("date", "lte.2025-01-26"), call["params"])
        self.assertEqual(call["timeout"], 5.0)

    def test_get_missing_returns_none(self) -> None:
        self.assertIsNone(self.backend.get("nope"))

    def test_insert_returns_service_row(self) -> None:
        self.http.responses = [FakeResponse(201, [ROW])]
        created = self.backend.insert(make_event())

        call = self.http.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["headers"]["Prefer"], "return=representation")
        self.assertNotIn("id", call["json"])
        self.assertEqual(created.id, "r1")

    def test_insert_without_echo_has_no_id(self) -> None:
        self.http.responses = [FakeResponse(201, None)]
        with self.assertLogs("skischedule.remote", level="WARNING"):
            created = self.backend.insert(make_event())
        self.assertEqual(created.id, "")
        self.assertEqual(created.title, "park")

    def test_update_and_delete_filter_on_id_and_owner(self) -> None:
        self.backend.update("r1", {"title": "Wang", "type": EventType.COURSE})
        self.backend.delete("r1")

        patch, delete = self.http.calls
        self.assertEqual(patch["method"], "PATCH")
        self.assertEqual(patch["json"], {"title": "Wang", "type": "Course"})
        for call in (patch, delete):
            self.assertIn(("id", "eq.r1"), call["params"])
            self.assertIn(("user_id", "eq.u1"), call["params"])
        self.assertEqual(delete["method"], "DELETE")

    def test_http_error_raises(self) -> None:
        self.http.responses = [FakeResponse(500, {"message": "boom"})]
        with self.assertRaises(RemoteStoreError) as ctx:
            self.backend.list_all()
        self.assertEqual(ctx.exception.status, 500)

    def test_transport_error_raises(self) -> None:
        self.http.responses = [requests.Timeout("slow")]
        with self.assertRaises(RemoteStoreError):
            self.backend.delete("r1")


if __name__ == "__main__":
    unittest.main()
