# forgetbot - Discord Reminder Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""Tests for time expression parsing and formatting."""

import sys
from datetime import datetime
from pathlib import Path

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.time_parser import (
    DAY_MS,
    HOUR_MS,
    MINUTE_MS,
    SECOND_MS,
    WEEK_MS,
    format_distance,
    format_interval,
    format_relative,
    parse_duration,
    parse_preset,
    validate_timezone,
)

LA = pytz.timezone("America/Los_Angeles")


def la_ms(year, month, day, hour=0, minute=0):
    """Epoch milliseconds for a Los Angeles wall-clock time."""
    return int(LA.localize(datetime(year, month, day, hour, minute)).timestamp() * 1000)


# Tuesday, June 10 2025, noon in Los Angeles (well away from DST changes)
NOON = la_ms(2025, 6, 10, 12, 0)


class TestRelativeDurations:
    """Test "<number> <unit>" expressions."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("5 minutes", 5 * MINUTE_MS),
            ("30 seconds", 30 * SECOND_MS),
            ("2h", 2 * HOUR_MS),
            ("1.5 hours", 90 * MINUTE_MS),
            ("2 Days", 2 * DAY_MS),
            ("1w", WEEK_MS),
            ("10 mins", 10 * MINUTE_MS),
            ("3 hrs", 3 * HOUR_MS),
            ("  45   sec ", 45 * SECOND_MS),
        ],
    )
    def test_parses_duration(self, text, expected):
        assert parse_duration(text, NOON) == expected

    def test_zero_duration_fails(self):
        assert parse_duration("0 minutes", NOON) is None

    def test_negative_duration_fails(self):
        assert parse_duration("-5m", NOON) is None

    def test_duration_ignores_reference(self):
        other = la_ms(2025, 12, 25, 8, 0)
        assert parse_duration("5 minutes", other) == parse_duration("5 minutes", NOON)

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_input(self, text):
        assert parse_duration(text, NOON) is None


class TestClockTimes:
    """Test bare clock times in the reference timezone."""

    def test_later_today(self):
        assert parse_duration("3pm", NOON) == 3 * HOUR_MS

    def test_24_hour_clock(self):
        assert parse_duration("14:30", NOON) == 150 * MINUTE_MS

    def test_with_minutes_and_meridiem(self):
        assert parse_duration("2:30 pm", NOON) == 150 * MINUTE_MS

    def test_earlier_time_rolls_to_tomorrow(self):
        assert parse_duration("11am", NOON) == 23 * HOUR_MS

    def test_exact_reference_time_rolls_to_tomorrow(self):
        assert parse_duration("12pm", NOON) == 24 * HOUR_MS

    def test_midnight(self):
        assert parse_duration("12am", NOON) == 12 * HOUR_MS

    def test_leading_at(self):
        assert parse_duration("at 3pm", NOON) == 3 * HOUR_MS
        assert parse_duration("at 14:30", NOON) == 150 * MINUTE_MS

    def test_named_times(self):
        assert parse_duration("noon", NOON) == 24 * HOUR_MS
        assert parse_duration("midnight", NOON) == 12 * HOUR_MS
        assert parse_duration("at midnight", NOON) == 12 * HOUR_MS
        assert parse_duration("tomorrow at noon", NOON) == 24 * HOUR_MS

    @pytest.mark.parametrize("text", ["13pm", "9:75", "25:00"])
    def test_out_of_range(self, text):
        assert parse_duration(text, NOON) is None


class TestTomorrow:
    """Test "tomorrow at <time>" expressions."""

    def test_tomorrow_at(self):
        assert parse_duration("tomorrow at 9am", NOON) == 21 * HOUR_MS

    def test_tomorrow_without_at(self):
        assert parse_duration("tomorrow 3:30pm", NOON) == 27 * HOUR_MS + 30 * MINUTE_MS

    def test_tomorrow_across_dst_start(self):
        # March 9 2025 loses an hour in Los Angeles
        reference = la_ms(2025, 3, 8, 12, 0)
        assert parse_duration("tomorrow at 9am", reference) == 20 * HOUR_MS

    def test_result_lands_on_wall_clock(self):
        duration = parse_duration("tomorrow at 9am", NOON)
        fired = datetime.fromtimestamp((NOON + duration) / 1000, LA)
        assert (fired.day, fired.hour, fired.minute) == (11, 9, 0)


class TestNaturalLanguage:
    """Test the dateparser fallback."""

    def test_in_three_days(self):
        duration = parse_duration("in 3 days", NOON)
        assert duration is not None
        assert abs(duration - 3 * DAY_MS) <= MINUTE_MS

    def test_past_expression_fails(self):
        assert parse_duration("yesterday", NOON) is None

    def test_garbage_fails(self):
        assert parse_duration("qwzx blorp", NOON) is None

    @pytest.mark.parametrize(
        "reference, target",
        [
            # Evening before DST starts
            (la_ms(2026, 3, 7, 16, 0), la_ms(2026, 3, 8, 15, 0)),
            # Evening before DST ends
            (la_ms(2026, 10, 31, 16, 0), la_ms(2026, 11, 1, 15, 0)),
        ],
    )
    def test_wall_clock_across_dst_change(self, reference, target):
        assert parse_duration("3pm tomorrow", reference) == target - reference

    def test_result_is_always_positive(self):
        for text in ["5 minutes", "3pm", "tomorrow at 9am", "in 2 hours"]:
            duration = parse_duration(text, NOON)
            assert duration is None or duration > 0


class TestPresets:
    """Test context menu quick picks."""

    def test_fixed_presets(self):
        assert parse_preset("30m", NOON) == 30 * MINUTE_MS
        assert parse_preset("1h", NOON) == HOUR_MS
        assert parse_preset("2h", NOON) == 2 * HOUR_MS
        assert parse_preset("6h", NOON) == 6 * HOUR_MS

    def test_tomorrow_preset_is_9am(self):
        assert parse_preset("tomorrow", NOON) == 21 * HOUR_MS

    def test_unknown_preset(self):
        assert parse_preset("custom", NOON) is None
        assert parse_preset("3d", NOON) is None


class TestFormatRelative:
    """Test confirmation time formatting."""

    def test_today(self):
        assert format_relative(la_ms(2025, 6, 10, 15, 5), NOON) == "Today at 3:05 PM"

    def test_tomorrow(self):
        assert format_relative(la_ms(2025, 6, 11, 9, 0), NOON) == "Tomorrow at 9:00 AM"

    def test_this_week(self):
        assert format_relative(la_ms(2025, 6, 13, 14, 30), NOON) == "Friday at 2:30 PM"

    def test_far_future(self):
        assert (
            format_relative(la_ms(2025, 6, 20, 12, 0), NOON)
            == "Friday, June 20, 2025 at 12:00 PM"
        )


class TestFormatDistance:
    """Test time-remaining formatting in reminder lists."""

    @pytest.mark.parametrize(
        "duration,expected",
        [
            (10 * SECOND_MS, "less than a minute"),
            (60 * SECOND_MS, "1 minute"),
            (5 * MINUTE_MS, "5 minutes"),
            (60 * MINUTE_MS, "about 1 hour"),
            (2 * HOUR_MS, "about 2 hours"),
            (3 * DAY_MS, "3 days"),
            (-5 * MINUTE_MS, "less than a minute"),
        ],
    )
    def test_distance(self, duration, expected):
        assert format_distance(duration) == expected


class TestMisc:
    def test_format_interval(self):
        assert format_interval(HOUR_MS) == "1 hour"
        assert format_interval(4 * HOUR_MS) == "4 hours"
        assert format_interval(90 * MINUTE_MS) == "1.5 hours"

    def test_validate_timezone(self):
        assert validate_timezone("America/Los_Angeles") is True
        assert validate_timezone("Mars/Olympus_Mons") is False

    def test_invalid_timezone_falls_back(self):
        assert parse_duration("3pm", NOON, "Mars/Olympus_Mons") == 3 * HOUR_MS
