"""
Configuration store: slot definitions and pricing.

There is exactly one configuration record per installation.
- get()  returns it, creating it with the built-in defaults on first access
- save() replaces it completely (no partial merge)

Callers that change one value read the whole record, modify a copy
(with_slot / with_price) and save the whole record back.
"""

from __future__ import annotations

import copy
import logging

from skischedule.errors import ConfigError, LocalStoreError
from skischedule.model import PRICING_KEYS, Configuration, SlotDefinition, TimeSlot, default_config
from skischedule.storage import LocalConfigBackend

log = logging.getLogger(__name__)


def time_to_minutes(hhmm: str) -> int:
    """
    Convert 'HH:MM' to minutes since midnight.
    Raises ConfigError for invalid formats.
    """
    parts = hhmm.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ConfigError(f"Invalid time format: {hhmm!r}")
    h = int(parts[0])
    m = int(parts[1])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ConfigError(f"Invalid time value: {hhmm!r}")
    return h * 60 + m


class ConfigStore:
    def __init__(self, backend: LocalConfigBackend) -> None:
        self.backend = backend

    def get(self) -> Configuration:
        """
        Return the configuration, writing the defaults first if none is stored.

        Calling this repeatedly is safe: after the first call the stored
        record is returned unchanged.
        """
        record = self.backend.get()
        if record is None:
            config = default_config()
            self.backend.put(config.to_dict())
            log.debug("configuration created with defaults")
            return config
        try:
            return Configuration.from_dict(record)
        except ValueError as e:
            raise LocalStoreError(str(e)) from e

    def save(self, config: Configuration) -> None:
        self.backend.put(config.to_dict())
        log.debug("configuration saved")


def with_slot(config: Configuration, slot: TimeSlot, start: str, end: str, hours: float) -> Configuration:
    """
    Return a copy of config with one slot definition replaced.

    Existing events keep their derived fields; only later writes see the change.
    """
    start_min = time_to_minutes(start)
    end_min = time_to_minutes(end)
    if end_min <= start_min:
        raise ConfigError(f"Slot end {end} must be after start {start}")
    if hours <= 0:
        raise ConfigError(f"Slot hours must be positive, got {hours}")

    updated = copy.deepcopy(config)
    updated.time_slots[TimeSlot(slot)] = SlotDefinition(start=start.strip(), end=end.strip(), hours=float(hours))
    return updated


def with_price(config: Configuration, key: str, value: float) -> Configuration:
    """
    Return a copy of config with one pricing value replaced.

    key is either the persisted name (standard3h) or the attribute name (standard_3h).
    """
    attr = PRICING_KEYS.get(key, key)
    if attr not in PRICING_KEYS.values():
        raise ConfigError(f"Unknown pricing key {key!r}, expected one of: {', '.join(PRICING_KEYS)}")
    if value < 0:
        raise ConfigError(f"Price must not be negative, got {value}")

    updated = copy.deepcopy(config)
    setattr(updated.pricing, attr, float(value))
    return updated
