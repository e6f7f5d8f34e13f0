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

"""Reminder data types shared by the registry, workflows and commands."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

NO_TEXT_PREVIEW = "[No text content]"


@dataclass
class Reminder:
    """A scheduled reminder, keyed by the workflow run that delivers it."""

    run_id: str
    user_id: int
    message: str
    scheduled_for_ms: int
    created_at_ms: int
    ephemeral: bool = True
    message_link: Optional[str] = None
    message_preview: Optional[str] = None

    @property
    def is_message_linked(self) -> bool:
        return bool(self.message_link and self.message_preview)

    def to_hash(self) -> dict[str, str]:
        """Flatten to string fields for a Redis hash."""
        fields = {
            "message": self.message,
            "userId": str(self.user_id),
            "scheduledForMs": str(self.scheduled_for_ms),
            "createdAt": str(self.created_at_ms),
            "ephemeral": "1" if self.ephemeral else "0",
        }
        if self.message_link:
            fields["messageLink"] = self.message_link
        if self.message_preview:
            fields["messagePreview"] = self.message_preview
        return fields

    @classmethod
    def from_hash(cls, run_id: str, fields: dict[str, str]) -> Optional["Reminder"]:
        """Rebuild from a Redis hash. Returns None for empty or partial records."""
        if not fields or not fields.get("message"):
            return None
        try:
            return cls(
                run_id=run_id,
                user_id=int(fields["userId"]),
                message=fields["message"],
                scheduled_for_ms=int(fields["scheduledForMs"]),
                created_at_ms=int(fields.get("createdAt") or 0),
                ephemeral=fields.get("ephemeral", "1") == "1",
                message_link=fields.get("messageLink") or None,
                message_preview=fields.get("messagePreview") or None,
            )
        except (KeyError, ValueError):
            return None


@dataclass
class OriginMessage:
    """The message a context-menu reminder points back to."""

    message_id: int
    channel_id: int
    content: str
    guild_id: Optional[int] = None

    @property
    def link(self) -> str:
        guild = self.guild_id if self.guild_id else "@me"
        return f"https://discord.com/channels/{guild}/{self.channel_id}/{self.message_id}"

    def preview(self, max_length: int = 100) -> str:
        trimmed = (self.content or "").strip()
        if not trimmed:
            return NO_TEXT_PREVIEW
        if len(trimmed) <= max_length:
            return trimmed
        return trimmed[:max_length] + "..."


class InvalidRequestError(ValueError):
    """Raised when an inbound reminder request is malformed."""

    pass


MAX_MESSAGE_LENGTH = 1500
MAX_TIME_EXPRESSION_LENGTH = 100


@dataclass(frozen=True)
class ReminderRequest:
    """
    Canonical reminder request.

    Every inbound surface (slash command, context menu modal) is adapted
    into this shape before reaching the manager. Construction fails with
    InvalidRequestError instead of letting a malformed request through.
    """

    user_id: int
    time_expression: str
    message: str
    created_at_ms: int
    ephemeral: bool = True
    origin: Optional[OriginMessage] = None

    def __post_init__(self):
        if not isinstance(self.user_id, int) or self.user_id <= 0:
            raise InvalidRequestError(f"Invalid user ID: {self.user_id!r}")
        if not self.time_expression or not self.time_expression.strip():
            raise InvalidRequestError("Please provide a time AND message.")
        if len(self.time_expression) > MAX_TIME_EXPRESSION_LENGTH:
            raise InvalidRequestError("That time expression is too long.")
        if not self.message or not self.message.strip():
            raise InvalidRequestError("Please provide a time AND message.")
        if len(self.message) > MAX_MESSAGE_LENGTH:
            raise InvalidRequestError(
                f"Reminder messages are limited to {MAX_MESSAGE_LENGTH} characters."
            )
        if self.created_at_ms <= 0:
            raise InvalidRequestError(f"Invalid creation time: {self.created_at_ms!r}")


@dataclass
class ReminderListEntry:
    """One line of a user's reminder list."""

    run_id: str
    message: str
    scheduled_for_ms: int
    time_remaining: str
    message_link: Optional[str] = None
    message_preview: Optional[str] = None


@dataclass
class ReminderListing:
    """Result of listing a user's active reminders."""

    entries: list[ReminderListEntry]
    total: int

    @property
    def truncated(self) -> bool:
        return self.total > len(self.entries)


class CancelResult(Enum):
    """Outcome of a cancellation request."""

    OK = "ok"
    DENIED = "denied"
    NOT_FOUND = "not_found"
    ALREADY_FIRED = "already_fired"
