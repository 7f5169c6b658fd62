"""
Unit tests for JSON backup and restore.
"""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from skischedule.backup import backup_filename, build_backup, parse_backup, read_backup, restore_backup, write_backup
from skischedule.config_store import ConfigStore, with_price
from skischedule.errors import BackupFormatError
from skischedule.model import Event, EventType, TimeSlot, default_config
from skischedule.storage import LocalConfigBackend, LocalEventBackend


def make_event(event_id: str, day: str, title: str) -> Event:
    return Event(
        id=event_id,
        type=EventType.COURSE,
        date=day,
        time_slot=TimeSlot.MORNING,
        start_time="08:30",
        end_time="12:00",
        duration=3,
        title=title,
        fee=1500,
        created_at="2025-01-01T00:00:00",
        updated_at="2025-01-01T00:00:00",
    )


class TestBackup(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.data_dir = Path(self._tmp.name)
        self.local = LocalEventBackend(self.data_dir)
        self.config_store = ConfigStore(LocalConfigBackend(self.data_dir))

    def test_filename(self) -> None:
        self.assertEqual(backup_filename(date(2025, 1, 20)), "课表备份_2025-01-20.json")

    def test_write_read_restore(self) -> None:
        config = with_price(default_config(), "standard3h", 1800)
        events = [make_event("a", "2025-01-20", "Li"), make_event("b", "2025-01-21", "王")]
        out = write_backup(build_backup(events, config, "2025-02-01T10:00:00"), self.data_dir / "bk.json")

        raw = json.loads(out.read_text(encoding="utf-8"))
        self.assertEqual(raw["exportedAt"], "2025-02-01T10:00:00")
        self.assertIn("王", out.read_text(encoding="utf-8"))

        self.local.insert(make_event("old", "2024-12-01", "gone"))
        count = restore_backup(read_backup(out), self.local, self.config_store)

        self.assertEqual(count, 2)
        self.assertEqual([e.id for e in self.local.list_all()], ["a", "b"])
        self.assertEqual(self.config_store.get().pricing.standard_3h, 1800)

    def test_missing_config_rejected_without_writing(self) -> None:
        self.local.insert(make_event("keep", "2025-01-20", "Li"))
        with self.assertRaises(BackupFormatError):
            restore_backup({"events": []}, self.local, self.config_store)
        self.assertEqual([e.id for e in self.local.list_all()], ["keep"])

    def test_events_must_be_a_list(self) -> None:
        with self.assertRaises(BackupFormatError):
            parse_backup({"events": {}, "config": default_config().to_dict()})

    def test_bad_event_record_rejected(self) -> None:
        payload = {"events": [{"id": "x", "date": "2025-01-20", "type": "Lesson"}], "config": default_config().to_dict()}
        with self.assertRaises(BackupFormatError):
            parse_backup(payload)

    def test_unreadable_file(self) -> None:
        path = self.data_dir / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(BackupFormatError):
            read_backup(path)


if __name__ == "__main__":
    unittest.main()
