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
Reminder Configuration

Configurable parameters for reminder parsing, delivery and follow-ups.
Values can be overridden via environment variables.
"""

import os
from dataclasses import dataclass, field

from .time_parser import REFERENCE_TIMEZONE

HOUR_MS = 60 * 60 * 1000

# 1h, 2h, 4h, 8h, 12h
DEFAULT_FOLLOW_UP_INTERVALS_MS = (
    1 * HOUR_MS,
    2 * HOUR_MS,
    4 * HOUR_MS,
    8 * HOUR_MS,
    12 * HOUR_MS,
)


def _parse_hours_list(raw: str) -> tuple[int, ...]:
    hours = [float(part) for part in raw.split(",") if part.strip()]
    if not hours or any(h <= 0 for h in hours):
        raise ValueError(f"Invalid FOLLOW_UP_INTERVALS_HOURS: {raw!r}")
    return tuple(int(h * HOUR_MS) for h in hours)


@dataclass
class ReminderConfig:
    """Configuration for the reminder system."""

    # Fixed civil timezone for clock times ("3pm", "tomorrow at 9am")
    timezone: str = REFERENCE_TIMEZONE

    # Follow-up escalation
    follow_up_enabled: bool = True
    follow_up_intervals_ms: tuple[int, ...] = field(
        default_factory=lambda: DEFAULT_FOLLOW_UP_INTERVALS_MS
    )
    ack_emoji: str = "✅"

    # Listing
    list_display_limit: int = 10

    # Registry expiry
    metadata_ttl_seconds: int = 365 * 24 * 60 * 60
    message_cache_ttl_seconds: int = 300

    # "development" or "production", used to tag delivery logs
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "ReminderConfig":
        """Create config from environment variables with defaults."""
        environment = os.getenv("BOT_ENV", "development").lower()
        if environment not in ("development", "production"):
            environment = "development"

        return cls(
            timezone=os.getenv("REMINDER_TIMEZONE", REFERENCE_TIMEZONE),
            follow_up_enabled=os.getenv("FOLLOW_UP_ENABLED", "true").lower() == "true",
            follow_up_intervals_ms=_parse_hours_list(
                os.getenv("FOLLOW_UP_INTERVALS_HOURS", "1,2,4,8,12")
            ),
            ack_emoji=os.getenv("ACK_EMOJI", "✅"),
            list_display_limit=int(os.getenv("REMINDER_LIST_LIMIT", "10")),
            metadata_ttl_seconds=int(os.getenv("REMINDER_METADATA_TTL_DAYS", "365"))
            * 24
            * 60
            * 60,
            message_cache_ttl_seconds=int(os.getenv("MESSAGE_CACHE_TTL_SECONDS", "300")),
            environment=environment,
        )
