"""
Central data model definitions used across the project.

This module defines the canonical structure of events and of the
configuration record so that:
- the stores, the CSV codec, the stats and the CLI share the same field names
- the persisted record shape (camelCase, see to_dict/from_dict) stays in one place
- derived fields (start_time/end_time/duration) are plain values on the event,
  snapshotted at write time and never looked up live
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class EventType(str, Enum):
    COURSE = "Course"
    TRIAL_COURSE = "TrialCourse"
    PRACTICE = "Practice"
    TRAINING = "Training"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


class TimeSlot(str, Enum):
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"
    FULL_DAY = "FullDay"

    @property
    def label(self) -> str:
        return _SLOT_LABELS[self]

    @classmethod
    def ordered(cls) -> List["TimeSlot"]:
        """Display order used by the availability grid and the share text."""
        return [cls.MORNING, cls.AFTERNOON, cls.EVENING, cls.FULL_DAY]


_TYPE_LABELS = {
    EventType.COURSE: "课程",
    EventType.TRIAL_COURSE: "试课",
    EventType.PRACTICE: "练活",
    EventType.TRAINING: "培训",
}

_SLOT_LABELS = {
    TimeSlot.MORNING: "上午",
    TimeSlot.AFTERNOON: "下午",
    TimeSlot.EVENING: "夜场",
    TimeSlot.FULL_DAY: "全天",
}


def format_number(value: Optional[float]) -> str:
    """
    Render a plain number the way it should appear in CSV cells and summaries:
    1500.0 -> "1500", 2.5 -> "2.5", None -> "".
    """
    if value is None:
        return ""
    num = float(value)
    if num.is_integer():
        return str(int(num))
    return repr(num)


def opt_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def opt_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class Event:
    """
    One scheduled occurrence (teaching session, practice or training).

    title is the student name for Course/TrialCourse and an activity
    description for Practice/Training. fee is income for billable types and
    cost for Training; None means "no amount recorded", which is not 0.
    """

    id: str
    type: EventType
    date: str
    time_slot: TimeSlot
    start_time: str
    end_time: str
    duration: float
    title: str
    venue: Optional[str] = None
    fee: Optional[float] = None
    notes: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Persisted record shape (local store and backup file)."""
        return {
            "id": self.id,
            "type": self.type.value,
            "date": self.date,
            "timeSlot": self.time_slot.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "title": self.title,
            "venue": self.venue,
            "fee": self.fee,
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """
        Build an Event from a persisted record.

        Raises ValueError for unknown type/slot values or a missing id/date.
        """
        event_id = str(data.get("id", "") or "").strip()
        date = str(data.get("date", "") or "").strip()
        if not event_id or not date:
            raise ValueError(f"Event record needs id and date: {data!r}")

        return cls(
            id=event_id,
            type=EventType(data.get("type")),
            date=date,
            time_slot=TimeSlot(data.get("timeSlot")),
            start_time=str(data.get("startTime", "")),
            end_time=str(data.get("endTime", "")),
            duration=float(data.get("duration") or 0),
            title=str(data.get("title", "") or ""),
            venue=opt_text(data.get("venue")),
            fee=opt_number(data.get("fee")),
            notes=opt_text(data.get("notes")),
            created_at=str(data.get("createdAt", "") or ""),
            updated_at=str(data.get("updatedAt", "") or ""),
        )

    def copy(self, **changes: Any) -> "Event":
        return replace(self, **changes)


@dataclass
class EventInput:
    """What a caller supplies when creating an event; derived fields are not settable."""

    date: str
    time_slot: TimeSlot
    title: str
    venue: Optional[str] = None
    fee: Optional[float] = None
    notes: Optional[str] = None


@dataclass
class CsvRow:
    """Transient result of decoding one CSV line. Never persisted as such."""

    date: str
    type: EventType
    title: str
    venue: Optional[str] = None
    fee: Optional[float] = None
    duration: Optional[float] = None


@dataclass
class SlotDefinition:
    start: str
    end: str
    hours: float


@dataclass
class Pricing:
    hourly_rate: float
    standard_3h: float
    full_day_5h: float
    trial_class: float


@dataclass
class EventTypeSetting:
    billable: bool
    color: str


# camelCase keys used in the persisted pricing record
PRICING_KEYS = {
    "hourlyRate": "hourly_rate",
    "standard3h": "standard_3h",
    "fullDay5h": "full_day_5h",
    "trialClass": "trial_class",
}


@dataclass
class Configuration:
    """
    Singleton per installation: slot definitions, pricing, per-type flags.

    Events do not reference it; they copy what they need at write time.
    """

    time_slots: Dict[TimeSlot, SlotDefinition]
    pricing: Pricing
    event_types: Dict[EventType, EventTypeSetting] = field(default_factory=dict)

    def slot(self, slot: TimeSlot) -> SlotDefinition:
        return self.time_slots[TimeSlot(slot)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeSlots": {
                s.value: {"start": d.start, "end": d.end, "hours": d.hours} for s, d in self.time_slots.items()
            },
            "pricing": {key: getattr(self.pricing, attr) for key, attr in PRICING_KEYS.items()},
            "eventTypes": {
                t.value: {"billable": s.billable, "color": s.color} for t, s in self.event_types.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Configuration":
        """
        Build a Configuration from its persisted shape.

        All four slots and all pricing keys are required; eventTypes falls back
        to the defaults when absent (it is presentational only).
        Raises ValueError on any missing or malformed part.
        """
        try:
            raw_slots = data["timeSlots"]
            time_slots = {}
            for slot in TimeSlot.ordered():
                item = raw_slots[slot.value]
                time_slots[slot] = SlotDefinition(
                    start=str(item["start"]), end=str(item["end"]), hours=float(item["hours"])
                )

            raw_pricing = data["pricing"]
            pricing = Pricing(**{attr: float(raw_pricing[key]) for key, attr in PRICING_KEYS.items()})

            raw_types = data.get("eventTypes") or {}
            event_types = dict(default_config().event_types)
            for key, item in raw_types.items():
                event_types[EventType(key)] = EventTypeSetting(
                    billable=bool(item.get("billable", False)), color=str(item.get("color", ""))
                )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Invalid configuration record: missing or malformed {e}") from e

        return cls(time_slots=time_slots, pricing=pricing, event_types=event_types)


def default_config() -> Configuration:
    """Built-in defaults, used when no configuration has been stored yet."""
    return Configuration(
        time_slots={
            TimeSlot.MORNING: SlotDefinition(start="08:30", end="12:00", hours=3),
            TimeSlot.AFTERNOON: SlotDefinition(start="13:00", end="16:30", hours=3),
            TimeSlot.EVENING: SlotDefinition(start="18:30", end="21:30", hours=3),
            TimeSlot.FULL_DAY: SlotDefinition(start="08:30", end="16:30", hours=5),
        },
        pricing=Pricing(hourly_rate=500, standard_3h=1500, full_day_5h=2500, trial_class=1000),
        event_types={
            EventType.COURSE: EventTypeSetting(billable=True, color="#4CAF50"),
            EventType.TRIAL_COURSE: EventTypeSetting(billable=True, color="#FFC107"),
            EventType.PRACTICE: EventTypeSetting(billable=False, color="#2196F3"),
            EventType.TRAINING: EventTypeSetting(billable=False, color="#9C27B0"),
        },
    )
