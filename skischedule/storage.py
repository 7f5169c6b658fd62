"""
Local persistent storage (JSON documents in one data directory).

This module manages three files:

    <data_dir>/events.json   {"events": {<id>: <event record>, ...}}
    <data_dir>/config.json   {"default": <configuration record>}
    <data_dir>/flags.json    {"<flag name>": true, ...}

Design rationale:
- events and configuration are independently addressable records
- the migration flag lives outside both stores, so restoring a backup
  never resets it
- every write goes to a temp file first and is moved into place with
  os.replace, so a crash never leaves a half-written document

A missing file is an empty document. A corrupt events, config or flags
file raises LocalStoreError: local faults are hard failures.
"""

from __future__ import annotations

import json
import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from skischedule.errors import LocalStoreError
from skischedule.model import Event

log = logging.getLogger(__name__)

EVENTS_FILE = "events.json"
CONFIG_FILE = "config.json"
FLAGS_FILE = "flags.json"

CONFIG_ID = "default"


def sort_key(event: Event) -> tuple[str, str]:
    """Canonical ordering: date ascending, start time as tie-break."""
    return (event.date, event.start_time)


def _read_document(path: Path) -> Dict[str, Any]:
    """
    Load one JSON document. A missing file is an empty document.
    Raises LocalStoreError if the file exists but cannot be used.
    """
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise LocalStoreError(f"Cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise LocalStoreError(f"Cannot read {path}: expected a JSON object")
    return data


def _write_document(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, path)
    except OSError as e:
        raise LocalStoreError(f"Cannot write {path}: {e}") from e


class LocalEventBackend:
    """
    Event records keyed by id, with secondary lookups by date, type and slot.

    The whole document is re-read on every call; the single-operator
    dataset is small and this keeps the file the only source of truth.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self.path = Path(data_dir) / EVENTS_FILE

    # -- internal ----------------------------------------------------------

    def _load(self) -> Dict[str, Event]:
        raw = _read_document(self.path).get("events", {})
        if not isinstance(raw, dict):
            raise LocalStoreError(f"Cannot read {self.path}: 'events' must be an object")
        out: Dict[str, Event] = {}
        for event_id, record in raw.items():
            try:
                out[event_id] = Event.from_dict(record)
            except (ValueError, TypeError, AttributeError) as e:
                raise LocalStoreError(f"Corrupt event record {event_id!r} in {self.path}: {e}") from e
        return out

    def _save(self, events: Dict[str, Event]) -> None:
        _write_document(self.path, {"events": {eid: ev.to_dict() for eid, ev in events.items()}})

    def _index(self, events: Dict[str, Event], attr: str) -> Dict[str, List[Event]]:
        index: Dict[str, List[Event]] = defaultdict(list)
        for ev in events.values():
            value = getattr(ev, attr)
            index[getattr(value, "value", value)].append(ev)
        return index

    # -- EventBackend contract ---------------------------------------------

    def insert(self, event: Event) -> Event:
        events = self._load()
        if event.id in events:
            raise LocalStoreError(f"Event id already exists: {event.id}")
        events[event.id] = event
        self._save(events)
        log.debug("local insert %s (%s %s)", event.id, event.date, event.time_slot.value)
        return event

    def get(self, event_id: str) -> Optional[Event]:
        return self._load().get(event_id)

    def by_date(self, date: str) -> List[Event]:
        found = self._index(self._load(), "date").get(date, [])
        return sorted(found, key=lambda ev: ev.start_time)

    def by_range(self, start: str, end: str) -> List[Event]:
        found = [ev for ev in self._load().values() if start <= ev.date <= end]
        return sorted(found, key=sort_key)

    def by_type(self, type_value: str) -> List[Event]:
        return sorted(self._index(self._load(), "type").get(type_value, []), key=sort_key)

    def by_time_slot(self, slot_value: str) -> List[Event]:
        return sorted(self._index(self._load(), "time_slot").get(slot_value, []), key=sort_key)

    def update(self, event_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite attributes of an existing record; a missing id is a no-op."""
        events = self._load()
        existing = events.get(event_id)
        if existing is None:
            return
        events[event_id] = existing.copy(**fields)
        self._save(events)
        log.debug("local update %s: %s", event_id, sorted(fields))

    def delete(self, event_id: str) -> None:
        events = self._load()
        if events.pop(event_id, None) is None:
            return
        self._save(events)
        log.debug("local delete %s", event_id)

    def list_all(self) -> List[Event]:
        return sorted(self._load().values(), key=sort_key)

    # -- local only --------------------------------------------------------

    def replace_all(self, events: Iterable[Event]) -> int:
        """Clear the store and write the given events in one atomic document write."""
        by_id = {ev.id: ev for ev in events}
        self._save(by_id)
        log.debug("local replace_all: %d events", len(by_id))
        return len(by_id)


class LocalConfigBackend:
    """Holds the single configuration record under the fixed id CONFIG_ID."""

    def __init__(self, data_dir: str | Path) -> None:
        self.path = Path(data_dir) / CONFIG_FILE

    def get(self) -> Optional[Dict[str, Any]]:
        record = _read_document(self.path).get(CONFIG_ID)
        if record is None:
            return None
        if not isinstance(record, dict):
            raise LocalStoreError(f"Cannot read {self.path}: configuration must be an object")
        return record

    def put(self, record: Dict[str, Any]) -> None:
        _write_document(self.path, {CONFIG_ID: record})


class FlagStore:
    """
    Persisted booleans under fixed keys (e.g. the migration flag).

    A missing file means "no flag set". A broken file raises LocalStoreError
    like the other local documents.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self.path = Path(data_dir) / FLAGS_FILE

    def is_set(self, name: str) -> bool:
        return _read_document(self.path).get(name) is True

    def set(self, name: str, value: bool = True) -> None:
        flags = _read_document(self.path)
        flags[name] = bool(value)
        _write_document(self.path, flags)
