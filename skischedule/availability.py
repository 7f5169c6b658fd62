"""
Availability grid (busy/free per day and slot) and its share text.

Given a start date and N days, every day in [start, start + N - 1] gets all
four slots. A slot is busy when at least one event on that date uses it;
the venue shown for a busy slot is the venue of its earliest event.

The grid is derived only: nothing here writes to a store.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from skischedule.model import Event, TimeSlot
from skischedule.season import format_date_zh, format_weekday_zh, span_range, to_date_string

if TYPE_CHECKING:
    from skischedule.events import EventStore

SHARE_TITLE = "📅 近期可约时间"
BUSY_MARK = "❌"
FREE_MARK = "✅"


@dataclass
class SlotAvailability:
    events: List[Event] = field(default_factory=list)

    @property
    def busy(self) -> bool:
        return bool(self.events)

    @property
    def venue(self) -> Optional[str]:
        return self.events[0].venue if self.events else None


@dataclass
class DayAvailability:
    day: date
    slots: Dict[TimeSlot, SlotAvailability]

    @property
    def date(self) -> str:
        return to_date_string(self.day)


def build_grid(events: Iterable[Event], start: date, days: int) -> List[DayAvailability]:
    """Project events onto a days x slots matrix. Events outside the range are ignored."""
    span_range(start, days)  # validates days >= 1

    by_date: Dict[str, List[Event]] = defaultdict(list)
    for ev in events:
        by_date[ev.date].append(ev)

    grid: List[DayAvailability] = []
    for i in range(days):
        day = start + timedelta(days=i)
        slots = {slot: SlotAvailability() for slot in TimeSlot.ordered()}
        for ev in sorted(by_date.get(to_date_string(day), []), key=lambda e: e.start_time):
            slots[ev.time_slot].events.append(ev)
        grid.append(DayAvailability(day=day, slots=slots))
    return grid


def load_grid(store: "EventStore", start: date, days: int) -> List[DayAvailability]:
    return build_grid(store.list_span(start, days), start, days)


def slot_line(slot: TimeSlot, info: SlotAvailability) -> str:
    if info.busy:
        if info.venue:
            return f"{BUSY_MARK} {slot.label} 已约（{info.venue}）"
        return f"{BUSY_MARK} {slot.label} 已约"
    return f"{FREE_MARK} {slot.label}"


def render_share_text(grid: Iterable[DayAvailability]) -> str:
    """
    Plain text for pasting into a chat, e.g.:

        📅 近期可约时间

        11月1日（周六）
        ❌ 上午 已约（万龙）
        ✅ 下午
        ...
    """
    lines = [SHARE_TITLE, ""]
    for day in grid:
        lines.append(f"{format_date_zh(day.day)}（{format_weekday_zh(day.day)}）")
        for slot in TimeSlot.ordered():
            lines.append(slot_line(slot, day.slots[slot]))
        lines.append("")
    return "\n".join(lines).rstrip()
