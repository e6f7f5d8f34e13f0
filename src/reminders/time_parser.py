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

"""
Time Parser Module

Parses human time expressions into a delay in milliseconds, relative to a
reference instant. Supports, in this order:

1. Durations: "5 minutes", "2h", "1.5 hours", "30s", "1w"
2. Clock times: "3pm", "at 14:30", "2:30 pm", "noon" (next occurrence)
3. "tomorrow [at] <clock time>"
4. Anything dateparser understands: "in 3 days", "next friday at noon"

Clock times are always interpreted in one fixed civil timezone, never the
host's local timezone.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Optional

import dateparser
import pytz

logger = logging.getLogger("forgetbot.reminders.time_parser")

REFERENCE_TIMEZONE = "America/Los_Angeles"

PARSE_ERROR_MESSAGE = (
    "Could not parse time. Please use formats like '5 minutes', "
    "'tomorrow at 3pm', '2 hours', '30 seconds', etc."
)

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS

# Keyed by the first letter of the unit; the regex below only admits
# s/sec/secs/second/seconds, m/min/mins/minute/minutes, and so on.
UNIT_MULTIPLIERS = {
    "s": SECOND_MS,
    "m": MINUTE_MS,
    "h": HOUR_MS,
    "d": DAY_MS,
    "w": WEEK_MS,
}

_DURATION_RE = re.compile(
    r"^([-+]?(?:\d+(?:\.\d*)?|\.\d+))\s*"
    r"(seconds?|secs?|s|minutes?|mins?|m|hours?|hrs?|h|days?|d|weeks?|w)$",
    re.IGNORECASE,
)

_CLOCK = r"(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)?"
_CLOCK_RE = re.compile(rf"^(?:at\s+)?{_CLOCK}$", re.IGNORECASE)
_TOMORROW_RE = re.compile(rf"^tomorrow(?:\s+at)?\s+{_CLOCK}$", re.IGNORECASE)

# Named times are rewritten to clock times before matching
_NAMED_TIMES = {"noon": "12pm", "midnight": "12am"}
_NAMED_TIME_RE = re.compile(r"\b(noon|midnight)\b")

# Context menu quick picks
PRESET_DURATIONS = {
    "30m": 30 * MINUTE_MS,
    "1h": 1 * HOUR_MS,
    "2h": 2 * HOUR_MS,
    "6h": 6 * HOUR_MS,
}
TOMORROW_PRESET_EXPRESSION = "tomorrow at 9am"


def validate_timezone(tz_name: str) -> bool:
    """
    Validate that a timezone name is valid.

    Args:
        tz_name: IANA timezone name (e.g., "America/Los_Angeles")

    Returns:
        True if valid, False otherwise
    """
    try:
        pytz.timezone(tz_name)
        return True
    except pytz.UnknownTimeZoneError:
        return False


def _get_timezone(tz_name: str) -> pytz.BaseTzInfo:
    if not validate_timezone(tz_name):
        logger.warning(f"Invalid timezone '{tz_name}', falling back to {REFERENCE_TIMEZONE}")
        tz_name = REFERENCE_TIMEZONE
    return pytz.timezone(tz_name)


def _to_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def _clock_components(match: re.Match) -> Optional[tuple[int, int]]:
    """
    Convert a clock-time match to (hour, minute) on a 24-hour clock.

    Returns None for out-of-range values like "13pm" or "9:75".
    """
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").replace(".", "").lower()

    if minute > 59:
        return None

    if meridiem:
        if not 1 <= hour <= 12:
            return None
        if meridiem == "pm" and hour != 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    elif hour > 23:
        return None

    return hour, minute


def _is_clock_time(match: Optional[re.Match]) -> bool:
    # A bare number ("5") is not a clock time; it needs a colon or am/pm.
    return bool(match and (match.group(2) or match.group(3)))


def _at_civil_time(day: date, hour: int, minute: int, tz: pytz.BaseTzInfo) -> datetime:
    return tz.localize(datetime(day.year, day.month, day.day, hour, minute))


def _duration_until(target: datetime, reference_ms: int) -> Optional[int]:
    duration = _to_ms(target) - reference_ms
    return duration if duration > 0 else None


def _parse_relative_duration(match: re.Match) -> Optional[int]:
    amount = float(match.group(1))
    if not math.isfinite(amount) or amount <= 0:
        return None

    multiplier = UNIT_MULTIPLIERS[match.group(2)[0].lower()]
    duration = int(round(amount * multiplier))
    return duration if duration > 0 else None


def _parse_natural(text: str, reference: datetime, tz: pytz.BaseTzInfo) -> Optional[datetime]:
    settings = {
        "TIMEZONE": tz.zone,
        "RETURN_AS_TIMEZONE_AWARE": False,
        "PREFER_DATES_FROM": "future",
        "RELATIVE_BASE": reference.replace(tzinfo=None),
    }

    try:
        parsed = dateparser.parse(text, settings=settings)
    except (ValueError, OverflowError) as e:
        logger.debug(f"dateparser rejected '{text}': {e}")
        return None

    if parsed is None:
        return None
    # Naive wall-clock result; localizing applies the target date's own UTC offset
    if parsed.tzinfo is None:
        parsed = tz.localize(parsed)
    return parsed


def parse_duration(
    text: str,
    reference_ms: int,
    timezone: str = REFERENCE_TIMEZONE,
) -> Optional[int]:
    """
    Parse a time expression into a delay from the reference instant.

    The first matching form wins; once a form matches, its result is final
    even if it is a failure ("0 minutes" never falls through to dateparser).

    Args:
        text: The time expression to parse
        reference_ms: Reference instant (epoch milliseconds), usually the
            moment the command was sent
        timezone: Civil timezone for clock times

    Returns:
        Delay in milliseconds (always > 0), or None if the expression could
        not be parsed or does not land in the future
    """
    if not text or not text.strip():
        return None

    normalized = re.sub(r"\s+", " ", text.strip().lower())

    match = _DURATION_RE.match(normalized)
    if match:
        return _parse_relative_duration(match)

    clock_text = _NAMED_TIME_RE.sub(lambda m: _NAMED_TIMES[m.group(1)], normalized)

    tz = _get_timezone(timezone)
    reference = datetime.fromtimestamp(reference_ms / 1000, tz)

    match = _CLOCK_RE.match(clock_text)
    if _is_clock_time(match):
        components = _clock_components(match)
        if components is None:
            return None
        target = _at_civil_time(reference.date(), *components, tz)
        if target <= reference:
            target = _at_civil_time(reference.date() + timedelta(days=1), *components, tz)
        return _duration_until(target, reference_ms)

    match = _TOMORROW_RE.match(clock_text)
    if _is_clock_time(match):
        components = _clock_components(match)
        if components is None:
            return None
        target = _at_civil_time(reference.date() + timedelta(days=1), *components, tz)
        return _duration_until(target, reference_ms)

    parsed = _parse_natural(normalized, reference, tz)
    if parsed is None:
        logger.debug(f"Could not parse time expression: '{text}'")
        return None
    return _duration_until(parsed, reference_ms)


def parse_preset(
    preset: str,
    reference_ms: int,
    timezone: str = REFERENCE_TIMEZONE,
) -> Optional[int]:
    """Resolve a quick-pick preset ("30m", "1h", "2h", "6h", "tomorrow")."""
    if preset in PRESET_DURATIONS:
        return PRESET_DURATIONS[preset]
    if preset == "tomorrow":
        return parse_duration(TOMORROW_PRESET_EXPRESSION, reference_ms, timezone)
    return None


def format_relative(
    scheduled_for_ms: int,
    now_ms: int,
    timezone: str = REFERENCE_TIMEZONE,
) -> str:
    """
    Format a fire time relative to now, in the reference timezone.

    Examples:
        "Today at 3:05 PM", "Tomorrow at 9:00 AM", "Monday at 2:30 PM",
        "Monday, January 5, 2026 at 4:10 PM"
    """
    tz = _get_timezone(timezone)
    now = datetime.fromtimestamp(now_ms / 1000, tz)
    scheduled = datetime.fromtimestamp(scheduled_for_ms / 1000, tz)

    time_str = scheduled.strftime("%I:%M %p").lstrip("0")
    days_ahead = (scheduled.date() - now.date()).days

    if days_ahead == 0:
        return f"Today at {time_str}"
    if days_ahead == 1:
        return f"Tomorrow at {time_str}"
    if 2 <= days_ahead <= 6:
        return f"{scheduled.strftime('%A')} at {time_str}"
    return f"{scheduled.strftime('%A, %B')} {scheduled.day}, {scheduled.year} at {time_str}"


def format_distance(duration_ms: int) -> str:
    """
    Format a delay as a coarse human distance ("5 minutes", "about 2 hours").

    Negative delays are treated as zero.
    """
    seconds = max(duration_ms, 0) / 1000
    minutes = seconds / 60
    hours = minutes / 60
    days = hours / 24

    if seconds < 30:
        return "less than a minute"
    if seconds < 90:
        return "1 minute"
    if minutes < 45:
        return f"{round(minutes)} minutes"
    if minutes < 90:
        return "about 1 hour"
    if hours < 24:
        return f"about {round(hours)} hours"
    if hours < 42:
        return "1 day"
    if days < 30:
        return f"{round(days)} days"
    if days < 45:
        return "about 1 month"
    if days < 365:
        return f"{round(days / 30)} months"

    years = round(days / 365)
    return "about 1 year" if years == 1 else f"about {years} years"


def format_interval(duration_ms: int) -> str:
    """Format a follow-up interval in hours ("1 hour", "4 hours", "1.5 hours")."""
    hours = duration_ms / HOUR_MS
    if hours == 1:
        return "1 hour"
    if hours == int(hours):
        return f"{int(hours)} hours"
    return f"{hours:g} hours"
