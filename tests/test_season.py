"""
Unit tests for the season calendar.

A season runs Nov 1 (year Y) .. Apr 30 (year Y+1); weeks start on Monday.
"""

import unittest
from datetime import date

from skischedule.season import (
    format_date_zh,
    format_date_zh_long,
    format_weekday_zh,
    month_range,
    parse_date_string,
    season_range,
    season_start_year,
    span_range,
    week_range,
)


class TestSeason(unittest.TestCase):
    def test_season_start_year_switches_in_november(self) -> None:
        self.assertEqual(season_start_year(date(2024, 11, 1)), 2024)
        self.assertEqual(season_start_year(date(2024, 12, 31)), 2024)
        self.assertEqual(season_start_year(date(2025, 1, 1)), 2024)
        self.assertEqual(season_start_year(date(2025, 10, 31)), 2024)

    def test_season_range(self) -> None:
        self.assertEqual(season_range(date(2025, 2, 14)), (date(2024, 11, 1), date(2025, 4, 30)))
        self.assertEqual(season_range(date(2025, 11, 20)), (date(2025, 11, 1), date(2026, 4, 30)))

    def test_week_starts_monday(self) -> None:
        # 2025-01-05 is a Sunday: it belongs to the week starting Monday 2024-12-30
        self.assertEqual(week_range(date(2025, 1, 5)), (date(2024, 12, 30), date(2025, 1, 5)))
        self.assertEqual(week_range(date(2025, 1, 6)), (date(2025, 1, 6), date(2025, 1, 12)))

    def test_month_range(self) -> None:
        self.assertEqual(month_range(date(2024, 2, 10)), (date(2024, 2, 1), date(2024, 2, 29)))
        self.assertEqual(month_range(date(2025, 12, 31)), (date(2025, 12, 1), date(2025, 12, 31)))

    def test_span_range_is_inclusive(self) -> None:
        self.assertEqual(span_range(date(2025, 1, 30), 7), (date(2025, 1, 30), date(2025, 2, 5)))
        self.assertEqual(span_range(date(2025, 1, 30), 1), (date(2025, 1, 30), date(2025, 1, 30)))
        with self.assertRaises(ValueError):
            span_range(date(2025, 1, 30), 0)

    def test_chinese_formatting(self) -> None:
        d = date(2025, 3, 2)
        self.assertEqual(format_date_zh(d), "3月2日")
        self.assertEqual(format_date_zh_long(d), "2025年3月2日")
        self.assertEqual(format_weekday_zh(d), "周日")
        self.assertEqual(format_weekday_zh(date(2025, 3, 3)), "周一")

    def test_parse_date_string_rejects_other_formats(self) -> None:
        self.assertEqual(parse_date_string("2025-03-02"), date(2025, 3, 2))
        with self.assertRaises(ValueError):
            parse_date_string("02.03.2025")


if __name__ == "__main__":
    unittest.main()
