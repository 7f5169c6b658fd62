"""
Backup and restore of the local data (JSON).

Backup file shape:

    {"events": [<event record>, ...], "config": <configuration record>, "exportedAt": "<ISO timestamp>"}

Restore replaces ALL local events and the configuration. The payload is
fully validated before anything is written, so a bad file leaves the
store untouched.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from skischedule.config_store import ConfigStore
from skischedule.errors import BackupFormatError
from skischedule.model import Configuration, Event
from skischedule.season import to_date_string
from skischedule.storage import LocalEventBackend


def backup_filename(today: date) -> str:
    return f"课表备份_{to_date_string(today)}.json"


def build_backup(events: Iterable[Event], config: Configuration, exported_at: str) -> Dict[str, Any]:
    return {
        "events": [ev.to_dict() for ev in events],
        "config": config.to_dict(),
        "exportedAt": exported_at,
    }


def write_backup(payload: Dict[str, Any], out_path: str | Path) -> Path:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return out


def read_backup(path: str | Path) -> Any:
    """Load a backup file. Raises BackupFormatError if it is not valid JSON."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BackupFormatError(f"Cannot read backup {path}: {e}") from e


def parse_backup(payload: Any) -> Tuple[List[Event], Configuration]:
    """
    Validate a decoded backup payload.
    Raises BackupFormatError if events is not a list or config is missing/invalid.
    """
    if not isinstance(payload, dict):
        raise BackupFormatError("Invalid backup format: expected a JSON object")
    raw_events = payload.get("events")
    raw_config = payload.get("config")
    if not isinstance(raw_events, list) or not raw_config:
        raise BackupFormatError("Invalid backup format: 'events' (list) and 'config' are required")

    events: List[Event] = []
    for i, record in enumerate(raw_events, start=1):
        if not isinstance(record, dict):
            raise BackupFormatError(f"Invalid backup format: event #{i} is not an object")
        try:
            events.append(Event.from_dict(record))
        except (ValueError, TypeError) as e:
            raise BackupFormatError(f"Invalid backup format: event #{i}: {e}") from e

    if not isinstance(raw_config, dict):
        raise BackupFormatError("Invalid backup format: 'config' must be an object")
    try:
        config = Configuration.from_dict(raw_config)
    except ValueError as e:
        raise BackupFormatError(f"Invalid backup format: {e}") from e

    return events, config


def restore_backup(payload: Any, local: LocalEventBackend, config_store: ConfigStore) -> int:
    """Replace local events and configuration with the backup contents. Returns the event count."""
    events, config = parse_backup(payload)
    count = local.replace_all(events)
    config_store.save(config)
    return count
