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
Follow-up Escalation Workflow

After a reminder fires, keeps nudging the user at escalating intervals until
they react with the acknowledgment emoji or the interval list runs out.

Each round sleeps, then checks the most recently sent notification for the
user's reaction. Every follow-up gets its own reaction and becomes the message
checked in the next round.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from analytics import track
from workflows import Complete, Continue, RunContext, Sleep, Workflow

from .config import ReminderConfig
from .notifier import DiscordNotifier
from .time_parser import format_interval

logger = logging.getLogger("forgetbot.reminders.follow_up")

FOLLOW_UP_WORKFLOW = "follow_up"


@dataclass
class FollowUpArgs:
    """Arguments of a follow-up run."""

    message_id: int
    channel_id: int
    user_id: int
    message: str
    environment: str
    intervals_ms: list[int] = field(default_factory=list)
    message_link: Optional[str] = None
    message_preview: Optional[str] = None

    def to_args(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> "FollowUpArgs":
        return cls(
            message_id=int(args["message_id"]),
            channel_id=int(args["channel_id"]),
            user_id=int(args["user_id"]),
            message=args["message"],
            environment=args.get("environment", "development"),
            intervals_ms=[int(ms) for ms in args.get("intervals_ms") or []],
            message_link=args.get("message_link"),
            message_preview=args.get("message_preview"),
        )


def build_follow_up_content(
    message: str,
    remaining: int,
    next_interval_ms: Optional[int],
    ack_emoji: str = "✅",
    message_link: Optional[str] = None,
    message_preview: Optional[str] = None,
) -> str:
    """Notification body for a follow-up, including the next-round footer."""
    if message_link and message_preview:
        content = (
            f"🔔 **Follow-up reminder about this message:**\n\n"
            f"> {message_preview}\n\n"
            f"[Jump to message]({message_link})"
        )
    else:
        content = f"🔔 **Follow-up reminder:** {message}"

    if remaining > 0 and next_interval_ms:
        content += (
            f"\n\n_React with {ack_emoji} to acknowledge. "
            f"Next reminder in {format_interval(next_interval_ms)} ({remaining} remaining)._"
        )
    else:
        content += f"\n\n_React with {ack_emoji} to acknowledge. This is the final reminder._"

    return content


class FollowUpWorkflow(Workflow):
    """
    Bounded escalation loop.

    State:
        current_message_id: notification polled for the acknowledgment
        round: number of follow-ups already sent
    """

    name = FOLLOW_UP_WORKFLOW

    def __init__(self, notifier: DiscordNotifier, config: ReminderConfig):
        self.notifier = notifier
        self.config = config

    def _intervals(self, follow_up: FollowUpArgs) -> list[int]:
        # Runs carry their own schedule so a config change never shifts a live sequence
        return follow_up.intervals_ms or list(self.config.follow_up_intervals_ms)

    async def phase_start(self, ctx: RunContext, args: dict, state: dict):
        follow_up = FollowUpArgs.from_args(args)
        intervals = self._intervals(follow_up)
        if not intervals:
            return Complete({"acknowledged": False, "follow_ups_sent": 0})

        state = {"current_message_id": follow_up.message_id, "round": 0}
        return Sleep(intervals[0], "check", state)

    async def phase_check(self, ctx: RunContext, args: dict, state: dict):
        follow_up = FollowUpArgs.from_args(args)
        intervals = self._intervals(follow_up)
        round_index = int(state["round"])
        current_message_id = int(state["current_message_id"])

        if await self._is_acknowledged(follow_up, current_message_id):
            logger.info(
                f"[{follow_up.environment.upper()}] User {follow_up.user_id} acknowledged "
                f"reminder, stopping follow-ups"
            )
            track(
                "reminder_acknowledged",
                "follow_up",
                user_id=follow_up.user_id,
                properties={"run_id": ctx.run_id, "follow_ups_sent": round_index},
            )
            return Complete({"acknowledged": True, "follow_ups_sent": round_index})

        remaining = len(intervals) - round_index - 1
        next_interval_ms = intervals[round_index + 1] if remaining > 0 else None
        content = build_follow_up_content(
            follow_up.message,
            remaining,
            next_interval_ms,
            ack_emoji=self.config.ack_emoji,
            message_link=follow_up.message_link,
            message_preview=follow_up.message_preview,
        )

        delivered = await self.notifier.post_message(follow_up.channel_id, content)
        logger.info(
            f"[{follow_up.environment.upper()}] Follow-up reminder sent to user "
            f"{follow_up.user_id} ({remaining} remaining)"
        )
        track(
            "follow_up_sent",
            "follow_up",
            user_id=follow_up.user_id,
            properties={"run_id": ctx.run_id, "round": round_index, "remaining": remaining},
        )

        return Continue("acknowledge", {**state, "current_message_id": delivered.message_id})

    async def phase_acknowledge(self, ctx: RunContext, args: dict, state: dict):
        follow_up = FollowUpArgs.from_args(args)
        intervals = self._intervals(follow_up)

        await self.notifier.add_reaction(
            follow_up.channel_id, int(state["current_message_id"]), self.config.ack_emoji
        )

        sent = int(state["round"]) + 1
        if sent >= len(intervals):
            return Complete({"acknowledged": False, "follow_ups_sent": sent})

        return Sleep(intervals[sent], "check", {**state, "round": sent})

    async def _is_acknowledged(self, follow_up: FollowUpArgs, message_id: int) -> bool:
        """Reaction check; an API failure counts as not acknowledged."""
        try:
            return await self.notifier.has_reacted(
                follow_up.channel_id, message_id, follow_up.user_id, self.config.ack_emoji
            )
        except Exception as e:
            logger.warning(f"Failed to check reactions for message {message_id}: {e}")
            return False
