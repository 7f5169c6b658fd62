"""
CSV exchange format (semicolon separated, UTF-8 with BOM).

Header and columns:

    NO.;日期;雪场;内容;备注;收入;时长
    seq;date;venue;content type;title;fee;duration

- dates are written as 'M月D日' (no year, no zero padding)
- the year is restored on import from the season the file belongs to:
  months 11-12 -> season start year, months 1-10 -> the year after
- content type uses Chinese names; 试课 (TrialCourse) is exported but can
  NOT be imported
- cells containing ';', '"' or a line break are quoted, quotes doubled

Decoding never raises for bad rows: problems are collected as messages
and the caller decides what to do with them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from skischedule.model import CsvRow, Event, EventType, format_number
from skischedule.season import SEASON_START_MONTH, format_date_zh, parse_date_string, to_date_string

BOM = "\ufeff"
DELIMITER = ";"
HEADER = ["NO.", "日期", "雪场", "内容", "备注", "收入", "时长"]

TYPE_TO_CSV = {
    EventType.COURSE: "教学",
    EventType.TRIAL_COURSE: "试课",
    EventType.PRACTICE: "练活",
    EventType.TRAINING: "培训",
}

# Import only: trial courses are intentionally not accepted.
CSV_TO_TYPE = {
    "教学": EventType.COURSE,
    "练活": EventType.PRACTICE,
    "培训": EventType.TRAINING,
}

_HEADER_FIRST_CELLS = {"NO.", "序号"}
_CONTENT_HEADER = "内容"

_DATE_RE = re.compile(r"^(\d{1,2})月(\d{1,2})日$")
_NEEDS_QUOTES = re.compile(r'[;"\r\n]')


@dataclass
class CsvParseResult:
    rows: List[CsvRow] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def escape_cell(text: str) -> str:
    if _NEEDS_QUOTES.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def _csv_date(value: str) -> str:
    return format_date_zh(parse_date_string(value))


def encode_events(events: Iterable[Event]) -> str:
    """
    Render events as CSV text, BOM included.
    Rows are numbered from 1 in the order given.
    """
    lines = [DELIMITER.join(HEADER)]
    for no, ev in enumerate(events, start=1):
        cells = [
            str(no),
            _csv_date(ev.date),
            ev.venue or "",
            TYPE_TO_CSV[ev.type],
            ev.title,
            format_number(ev.fee),
            format_number(ev.duration),
        ]
        lines.append(DELIMITER.join(escape_cell(c) for c in cells))
    return BOM + "\n".join(lines)


def csv_filename(today: date) -> str:
    return f"教学数据_{to_date_string(today)}.csv"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def split_line(line: str) -> List[str]:
    """
    Split one line on ';' outside quotes. Inside quotes, '""' is a literal quote.
    Cells are stripped.
    """
    cells: List[str] = []
    cur: List[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        c = line[i]
        if c == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                cur.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif c == DELIMITER and not in_quotes:
            cells.append("".join(cur).strip())
            cur = []
        else:
            cur.append(c)
        i += 1
    cells.append("".join(cur).strip())
    return cells


def parse_csv_date(raw: str, season_start_year: int) -> Optional[str]:
    """
    'M月D日' -> 'YYYY-MM-DD' within the season starting in season_start_year.

    Day overflow rolls into the next month (2月30日 -> March 1st or 2nd),
    the way a plain calendar-date construction would. Returns None if the
    text does not match, month/day are out of 1-12 / 1-31, or the
    resolved date is past year 9999.
    """
    match = _DATE_RE.match(raw.strip())
    if not match:
        return None
    month = int(match.group(1))
    day = int(match.group(2))
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    year = season_start_year if month >= SEASON_START_MONTH else season_start_year + 1
    try:
        resolved = date(year, month, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError):
        # outside the representable calendar (year 10000)
        return None
    return to_date_string(resolved)


def _parse_number(raw: str) -> Optional[float]:
    """Empty -> None. Raises ValueError for non-numeric text."""
    if not raw:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(raw) from e
    if not value.is_finite():
        raise ValueError(raw)
    return float(value)


def _is_header(cells: List[str]) -> bool:
    first = cells[0].lstrip(BOM).strip() if cells else ""
    content = cells[3] if len(cells) > 3 else ""
    return first in _HEADER_FIRST_CELLS or content == _CONTENT_HEADER or content == ""


def decode_csv(text: str, season_start_year: int) -> CsvParseResult:
    """
    Parse CSV text into rows plus row-level error messages.

    Row numbers in messages count non-blank lines from 1, header included.
    """
    result = CsvParseResult()
    if text.startswith(BOM):
        text = text[len(BOM):]
    lines = [line for line in re.split(r"\r?\n", text) if line.strip()]

    for n, line in enumerate(lines, start=1):
        cells = split_line(line)
        cells += [""] * (len(HEADER) - len(cells))
        if _is_header(cells):
            continue

        raw_date, venue, content, title, fee_raw, duration_raw = cells[1:7]

        event_type = CSV_TO_TYPE.get(content)
        if event_type is None:
            result.errors.append(f"row {n}: unknown content '{content}', expected 教学/练活/培训")
            continue

        iso = parse_csv_date(raw_date, season_start_year)
        if iso is None:
            result.errors.append(f"row {n}: invalid date '{raw_date}', expected M月D日")
            continue

        try:
            fee = _parse_number(fee_raw)
            duration = _parse_number(duration_raw)
        except ValueError as e:
            result.errors.append(f"row {n}: invalid number '{e}'")
            continue

        result.rows.append(
            CsvRow(date=iso, type=event_type, title=title, venue=venue or None, fee=fee, duration=duration)
        )

    return result
