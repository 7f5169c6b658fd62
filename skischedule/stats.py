"""
Statistics over a collection of events.

One pass over the events produces counts, hours, income, per-venue tallies
and a student ranking:
- students are the titles of billable events (Course, legacy TrialCourse)
- teaching hours / income sum duration / fee of billable events
- training hours / cost sum duration / fee of Training events
- Practice only counts
- venue_days adds 1 for EVERY event with a venue (two events at the same
  venue on the same day count twice)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from skischedule.model import Event, EventType, format_number

BILLABLE_TYPES = (EventType.COURSE, EventType.TRIAL_COURSE)


@dataclass
class StudentRankItem:
    name: str
    count: int


@dataclass
class StatsResult:
    total_days: int = 0
    course_count: int = 0
    trial_count: int = 0
    practice_count: int = 0
    training_count: int = 0
    total_teaching_hours: float = 0
    training_hours: float = 0
    training_cost: float = 0
    total_income: float = 0
    student_names: List[str] = field(default_factory=list)
    student_ranking: List[StudentRankItem] = field(default_factory=list)
    venue_days: Dict[str, int] = field(default_factory=dict)


def compute_stats(events: Iterable[Event]) -> StatsResult:
    stats = StatsResult()
    dates = set()
    student_counts: Dict[str, int] = {}

    for ev in events:
        dates.add(ev.date)

        if ev.type in BILLABLE_TYPES:
            student_counts[ev.title] = student_counts.get(ev.title, 0) + 1
            stats.course_count += 1
            stats.total_teaching_hours += ev.duration or 0
            stats.total_income += ev.fee or 0
            if ev.type == EventType.TRIAL_COURSE:
                stats.trial_count += 1
        elif ev.type == EventType.PRACTICE:
            stats.practice_count += 1
        elif ev.type == EventType.TRAINING:
            stats.training_count += 1
            stats.training_hours += ev.duration or 0
            stats.training_cost += ev.fee or 0

        if ev.venue:
            stats.venue_days[ev.venue] = stats.venue_days.get(ev.venue, 0) + 1

    stats.total_days = len(dates)
    stats.student_names = list(student_counts)
    # sorted() is stable: equal counts keep first-seen order
    stats.student_ranking = [
        StudentRankItem(name=name, count=count)
        for name, count in sorted(student_counts.items(), key=lambda item: item[1], reverse=True)
    ]
    return stats


def format_summary(stats: StatsResult) -> str:
    return (
        f"有安排 {stats.total_days} 天 · 教学课时 {stats.total_teaching_hours:.1f} 小时 · "
        f"总收入 {format_number(stats.total_income)} 元 · 累计学员 {len(stats.student_names)} 名"
    )
