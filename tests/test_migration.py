"""
Unit tests for the one-time local -> remote migration.
"""

import tempfile
import unittest
from pathlib import Path
from typing import List, Optional

from skischedule.errors import LocalStoreError, RemoteStoreError
from skischedule.migration import MIGRATION_FLAG, migrate_local_to_remote
from skischedule.model import Event, EventType, TimeSlot
from skischedule.storage import FlagStore, LocalEventBackend


def make_event(event_id: str, title: str) -> Event:
    return Event(
        id=event_id,
        type=EventType.COURSE,
        date="2025-01-20",
        time_slot=TimeSlot.MORNING,
        start_time="08:30",
        end_time="12:00",
        duration=3,
        title=title,
        fee=1500,
    )


class RecordingRemote:
    def __init__(self, fail_titles: Optional[set] = None) -> None:
        self.inserted: List[Event] = []
        self.fail_titles = fail_titles or set()

    def insert(self, event: Event) -> Event:
        if event.title in self.fail_titles:
            raise RemoteStoreError("HTTP 500", status=500)
        self.inserted.append(event)
        return event


class TestMigration(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.local = LocalEventBackend(self._tmp.name)
        self.flags = FlagStore(self._tmp.name)
        for i, title in enumerate(["A", "B", "C"]):
            self.local.insert(make_event(f"e{i}", title))

    def test_runs_only_once(self) -> None:
        remote = RecordingRemote()
        first = migrate_local_to_remote(self.local, remote, self.flags)
        second = migrate_local_to_remote(self.local, remote, self.flags)

        self.assertEqual((first.succeeded, first.failed), (3, 0))
        self.assertEqual((second.succeeded, second.failed), (0, 0))
        self.assertEqual(len(remote.inserted), 3)
        self.assertTrue(self.flags.is_set(MIGRATION_FLAG))

    def test_partial_failure_still_sets_flag(self) -> None:
        remote = RecordingRemote(fail_titles={"B"})
        result = migrate_local_to_remote(self.local, remote, self.flags)
        self.assertEqual((result.succeeded, result.failed), (2, 1))
        self.assertEqual([e.title for e in remote.inserted], ["A", "C"])
        self.assertTrue(self.flags.is_set(MIGRATION_FLAG))

    def test_broken_flags_file_stops_a_second_run(self) -> None:
        remote = RecordingRemote()
        migrate_local_to_remote(self.local, remote, self.flags)
        (Path(self._tmp.name) / "flags.json").write_text("{not json", encoding="utf-8")

        with self.assertRaises(LocalStoreError):
            migrate_local_to_remote(self.local, remote, self.flags)
        self.assertEqual(len(remote.inserted), 3)

    def test_no_remote_is_noop_and_keeps_flag_unset(self) -> None:
        result = migrate_local_to_remote(self.local, None, self.flags)
        self.assertEqual((result.succeeded, result.failed), (0, 0))
        self.assertFalse(self.flags.is_set(MIGRATION_FLAG))


if __name__ == "__main__":
    unittest.main()
