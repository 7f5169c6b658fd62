"""
Unit tests for the configuration store.

- get() creates the defaults once and then returns the stored record
- save() replaces the whole record
- with_slot / with_price validate and return modified copies
"""

import json
import tempfile
import unittest
from pathlib import Path

from skischedule.config_store import ConfigStore, time_to_minutes, with_price, with_slot
from skischedule.errors import ConfigError
from skischedule.model import Configuration, TimeSlot, default_config
from skischedule.storage import LocalConfigBackend


class TestConfigStore(unittest.TestCase):
    def test_get_creates_defaults_on_first_access(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            path = Path(d) / "config.json"
            self.assertFalse(path.exists())

            config = ConfigStore(LocalConfigBackend(d)).get()
            self.assertEqual(config.slot(TimeSlot.MORNING).start, "08:30")
            self.assertEqual(config.slot(TimeSlot.FULL_DAY).hours, 5)
            self.assertEqual(config.pricing.standard_3h, 1500)
            self.assertTrue(path.exists())

            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(data["default"]["pricing"]["fullDay5h"], 2500)

    def test_get_is_idempotent(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = ConfigStore(LocalConfigBackend(d))
            first = store.get()
            second = ConfigStore(LocalConfigBackend(d)).get()
            self.assertEqual(first.to_dict(), second.to_dict())

    def test_save_replaces_record(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = ConfigStore(LocalConfigBackend(d))
            changed = with_slot(store.get(), TimeSlot.MORNING, "09:00", "12:30", 3.5)
            changed = with_price(changed, "standard3h", 1800)
            store.save(changed)

            reloaded = ConfigStore(LocalConfigBackend(d)).get()
            self.assertEqual(reloaded.slot(TimeSlot.MORNING).start, "09:00")
            self.assertEqual(reloaded.slot(TimeSlot.MORNING).hours, 3.5)
            self.assertEqual(reloaded.pricing.standard_3h, 1800)
            # untouched parts survive because the whole record was written
            self.assertEqual(reloaded.slot(TimeSlot.EVENING).start, "18:30")

    def test_with_slot_does_not_mutate_original(self) -> None:
        config = default_config()
        with_slot(config, TimeSlot.EVENING, "19:00", "22:00", 3)
        self.assertEqual(config.slot(TimeSlot.EVENING).start, "18:30")

    def test_invalid_values_raise(self) -> None:
        config = default_config()
        with self.assertRaises(ConfigError):
            with_slot(config, TimeSlot.MORNING, "12:00", "08:00", 3)
        with self.assertRaises(ConfigError):
            with_slot(config, TimeSlot.MORNING, "8h30", "12:00", 3)
        with self.assertRaises(ConfigError):
            with_slot(config, TimeSlot.MORNING, "08:30", "12:00", 0)
        with self.assertRaises(ConfigError):
            with_price(config, "weekendRate", 100)
        with self.assertRaises(ConfigError):
            with_price(config, "trialClass", -1)

    def test_time_to_minutes(self) -> None:
        self.assertEqual(time_to_minutes("08:30"), 510)
        with self.assertRaises(ConfigError):
            time_to_minutes("24:00")

    def test_from_dict_requires_all_slots(self) -> None:
        data = default_config().to_dict()
        del data["timeSlots"]["Evening"]
        with self.assertRaises(ValueError):
            Configuration.from_dict(data)


if __name__ == "__main__":
    unittest.main()
