"""
Event store: create / query / update / delete events.

The derivation rules are plain functions of (input, configuration):
- build_event()  copies start/end/hours of the chosen slot into the event
- resolve_fee()  applies the per-type fee rule
- apply_update() overwrites supplied fields and re-derives the slot fields

These are snapshots: editing the configuration later does NOT touch
existing events.

EventStore wires those rules to a backend. Which backend is decided on
every call: if the identity resolver returns a user id, the remote backend
for that user is used, otherwise the local one.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from skischedule.config_store import ConfigStore
from skischedule.csv_codec import decode_csv
from skischedule.errors import StoreError
from skischedule.model import Configuration, CsvRow, Event, EventInput, EventType, Pricing, TimeSlot
from skischedule.season import (
    day_range,
    month_range,
    season_range,
    span_range,
    to_date_string,
    week_range,
)

log = logging.getLogger(__name__)

# Fields a caller may change through update(); start/end/duration are derived.
UPDATABLE_FIELDS = ("type", "title", "venue", "notes", "date", "time_slot", "fee")

FULL_DAY_HOURS = 5

IMPORT_SLOT = TimeSlot.MORNING


class EventBackend(Protocol):
    def insert(self, event: Event) -> Event: ...

    def get(self, event_id: str) -> Optional[Event]: ...

    def by_date(self, date: str) -> List[Event]: ...

    def by_range(self, start: str, end: str) -> List[Event]: ...

    def update(self, event_id: str, fields: Dict[str, Any]) -> None: ...

    def delete(self, event_id: str) -> None: ...

    def list_all(self) -> List[Event]: ...


@dataclass
class ImportResult:
    succeeded: int = 0
    failed: int = 0


@dataclass
class CsvImportReport:
    """Outcome of import_csv: parse errors block the commit entirely."""

    errors: List[str] = field(default_factory=list)
    result: Optional[ImportResult] = None

    @property
    def committed(self) -> bool:
        return self.result is not None


def new_id() -> str:
    return str(uuid.uuid4())


def resolve_fee(event_type: EventType, fee: Optional[float], hours: float, pricing: Pricing) -> Optional[float]:
    """
    Fee rule per type:
    - Course: explicit fee wins, else full-day price for >= 5h, else 3h price
    - Practice: never billable, always None
    - Training: whatever the caller gave (a cost), or None
    - TrialCourse (legacy): whatever the caller gave
    """
    if event_type == EventType.COURSE:
        if fee is not None:
            return fee
        return pricing.full_day_5h if hours >= FULL_DAY_HOURS else pricing.standard_3h
    if event_type == EventType.PRACTICE:
        return None
    return fee


def build_event(event_type: EventType, data: EventInput, config: Configuration, now: str, event_id: str) -> Event:
    slot = TimeSlot(data.time_slot)
    definition = config.slot(slot)
    return Event(
        id=event_id,
        type=EventType(event_type),
        date=data.date,
        time_slot=slot,
        start_time=definition.start,
        end_time=definition.end,
        duration=definition.hours,
        title=data.title,
        venue=data.venue,
        fee=resolve_fee(EventType(event_type), data.fee, definition.hours, config.pricing),
        notes=data.notes,
        created_at=now,
        updated_at=now,
    )


def apply_update(existing: Event, fields: Dict[str, Any], config: Configuration, now: str) -> Event:
    """
    Return existing with the supplied fields overwritten.

    Slot-derived fields are re-read from the CURRENT configuration for the
    resulting slot, and the edit path never produces TrialCourse.
    """
    changes = dict(fields)
    if "type" in changes:
        changes["type"] = EventType(changes["type"])
    if "time_slot" in changes:
        changes["time_slot"] = TimeSlot(changes["time_slot"])

    updated = existing.copy(**changes)
    if updated.type == EventType.TRIAL_COURSE:
        updated.type = EventType.COURSE

    definition = config.slot(updated.time_slot)
    updated.start_time = definition.start
    updated.end_time = definition.end
    updated.duration = definition.hours
    updated.updated_at = now
    return updated


def _changed_fields(before: Event, after: Event) -> Dict[str, Any]:
    names = (*UPDATABLE_FIELDS, "start_time", "end_time", "duration", "updated_at")
    return {name: getattr(after, name) for name in names if getattr(after, name) != getattr(before, name)}


class EventStore:
    """
    Single entry point for event operations, regardless of backend.

    local           the local backend (always available)
    config_store    source of slot definitions and pricing
    remote_factory  user_id -> remote backend, or None when remote is not set up
    identity        () -> current remote user id or None; asked on every call
    """

    def __init__(
        self,
        local: EventBackend,
        config_store: ConfigStore,
        remote_factory: Optional[Callable[[str], EventBackend]] = None,
        identity: Optional[Callable[[], Optional[str]]] = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.local = local
        self.config_store = config_store
        self.remote_factory = remote_factory
        self.identity = identity
        self.clock = clock
        self.id_factory = id_factory

    def _now(self) -> str:
        return self.clock().isoformat()

    def backend(self) -> EventBackend:
        if self.remote_factory is not None and self.identity is not None:
            user_id = self.identity()
            if user_id:
                return self.remote_factory(user_id)
        return self.local

    # -- create ------------------------------------------------------------

    def create(self, event_type: EventType, data: EventInput) -> Event:
        config = self.config_store.get()
        event = build_event(event_type, data, config, self._now(), self.id_factory())
        created = self.backend().insert(event)
        log.debug("created %s %s on %s", created.type.value, created.id, created.date)
        return created

    def add_course(self, data: EventInput) -> Event:
        return self.create(EventType.COURSE, data)

    def add_practice(self, data: EventInput) -> Event:
        return self.create(EventType.PRACTICE, data)

    def add_training(self, data: EventInput) -> Event:
        return self.create(EventType.TRAINING, data)

    # -- read --------------------------------------------------------------

    def get(self, event_id: str) -> Optional[Event]:
        return self.backend().get(event_id)

    def list_by_date(self, day: str) -> List[Event]:
        return self.backend().by_date(day)

    def list_range(self, start: date, end: date) -> List[Event]:
        """All events with start <= date <= end, sorted by (date, start_time)."""
        return self.backend().by_range(to_date_string(start), to_date_string(end))

    def list_span(self, start: date, days: int) -> List[Event]:
        return self.list_range(*span_range(start, days))

    def today(self, ref: Optional[date] = None) -> List[Event]:
        start, _ = day_range(ref or self.clock().date())
        return self.list_by_date(to_date_string(start))

    def week(self, ref: Optional[date] = None) -> List[Event]:
        return self.list_range(*week_range(ref or self.clock().date()))

    def month(self, ref: Optional[date] = None) -> List[Event]:
        return self.list_range(*month_range(ref or self.clock().date()))

    def season(self, ref: Optional[date] = None) -> List[Event]:
        return self.list_range(*season_range(ref or self.clock().date()))

    def list_all(self) -> List[Event]:
        return self.backend().list_all()

    # -- update / delete ---------------------------------------------------

    def update(self, event_id: str, **fields: Any) -> Optional[Event]:
        """
        Overwrite the supplied fields of one event.

        - no fields: nothing is written, updated_at stays as it was
        - unknown id: silent no-op, returns None
        - venue/fee/notes=None clears the value
        Raises TypeError for fields that cannot be edited.
        """
        unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
        if unknown:
            raise TypeError(f"Cannot update field(s): {', '.join(unknown)}")

        backend = self.backend()
        existing = backend.get(event_id)
        if existing is None:
            return None
        if not fields:
            return existing

        updated = apply_update(existing, fields, self.config_store.get(), self._now())
        backend.update(event_id, _changed_fields(existing, updated))
        return updated

    def delete(self, event_id: str) -> None:
        """Remove one event; deleting an unknown id is not an error."""
        self.backend().delete(event_id)

    # -- import ------------------------------------------------------------

    def import_rows(self, rows: List[CsvRow]) -> ImportResult:
        """
        Insert decoded CSV rows as new events.

        Every row gets the Morning slot's start/end; an explicit duration on
        the row replaces the configured hours. Failures are counted per row.
        """
        config = self.config_store.get()
        definition = config.slot(IMPORT_SLOT)
        backend = self.backend()
        result = ImportResult()

        for row in rows:
            now = self._now()
            event = Event(
                id=self.id_factory(),
                type=row.type,
                date=row.date,
                time_slot=IMPORT_SLOT,
                start_time=definition.start,
                end_time=definition.end,
                duration=row.duration if row.duration is not None else definition.hours,
                title=row.title,
                venue=row.venue,
                fee=row.fee,
                notes=None,
                created_at=now,
                updated_at=now,
            )
            try:
                backend.insert(event)
                result.succeeded += 1
            except StoreError as e:
                log.warning("import of row %s (%s) failed: %s", row.date, row.title, e)
                result.failed += 1

        return result

    def import_csv(self, text: str, season_start_year: int) -> CsvImportReport:
        """Decode and import; any row-level parse error blocks the whole import."""
        parsed = decode_csv(text, season_start_year)
        if parsed.errors:
            return CsvImportReport(errors=parsed.errors)
        return CsvImportReport(result=self.import_rows(parsed.rows))
