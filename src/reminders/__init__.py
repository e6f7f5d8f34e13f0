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
Reminders Package

Provides one-shot reminders with durable delivery and follow-up escalation.
"""

from .config import ReminderConfig
from .follow_up import FOLLOW_UP_WORKFLOW, FollowUpWorkflow
from .manager import ReminderManager
from .models import (
    CancelResult,
    InvalidRequestError,
    OriginMessage,
    Reminder,
    ReminderListEntry,
    ReminderListing,
    ReminderRequest,
)
from .notifier import DiscordNotifier
from .registry import ReminderRegistry
from .time_parser import (
    PARSE_ERROR_MESSAGE,
    REFERENCE_TIMEZONE,
    format_distance,
    format_relative,
    parse_duration,
    parse_preset,
    validate_timezone,
)
from .workflow import REMINDER_WORKFLOW, ReminderValidationError, ReminderWorkflow

__all__ = [
    "ReminderConfig",
    "FOLLOW_UP_WORKFLOW",
    "FollowUpWorkflow",
    "ReminderManager",
    "CancelResult",
    "InvalidRequestError",
    "OriginMessage",
    "Reminder",
    "ReminderListEntry",
    "ReminderListing",
    "ReminderRequest",
    "DiscordNotifier",
    "ReminderRegistry",
    "PARSE_ERROR_MESSAGE",
    "REFERENCE_TIMEZONE",
    "format_distance",
    "format_relative",
    "parse_duration",
    "parse_preset",
    "validate_timezone",
    "REMINDER_WORKFLOW",
    "ReminderValidationError",
    "ReminderWorkflow",
]
