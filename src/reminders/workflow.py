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
Reminder Workflow

Waits until a reminder is due, delivers it to the user's DMs, removes it from
the registry and hands off to the follow-up workflow.

Phases:
    start        validate the delay, then sleep until the scheduled time
    deliver      send the DM
    acknowledge  add the acknowledgment reaction to the DM
    reconcile    drop the reminder from the registry
    follow_up    start the follow-up escalation run
    finish       return {content, ephemeral}
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

from analytics import track
from workflows import (
    Complete,
    Continue,
    FatalWorkflowError,
    RunContext,
    Sleep,
    Transition,
    Workflow,
)

from .config import ReminderConfig
from .follow_up import FOLLOW_UP_WORKFLOW, FollowUpArgs
from .notifier import DiscordNotifier
from .registry import ReminderRegistry
from .time_parser import PARSE_ERROR_MESSAGE

logger = logging.getLogger("forgetbot.reminders.workflow")

REMINDER_WORKFLOW = "remind"


def now_ms() -> int:
    return int(time.time() * 1000)


class ReminderValidationError(FatalWorkflowError):
    """Raised when a reminder run has no usable delay."""

    pass


@dataclass
class ReminderArgs:
    """Arguments of a reminder run."""

    duration_ms: int
    scheduled_for_ms: int
    message: str
    ephemeral: bool
    user_id: int
    environment: str
    message_link: Optional[str] = None
    message_preview: Optional[str] = None

    def to_args(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> "ReminderArgs":
        return cls(
            duration_ms=int(args.get("duration_ms") or 0),
            scheduled_for_ms=int(args["scheduled_for_ms"]),
            message=args["message"],
            ephemeral=bool(args.get("ephemeral", True)),
            user_id=int(args["user_id"]),
            environment=args.get("environment", "development"),
            message_link=args.get("message_link"),
            message_preview=args.get("message_preview"),
        )

    @property
    def is_message_linked(self) -> bool:
        return bool(self.message_link and self.message_preview)


def build_reminder_content(
    message: str,
    message_link: Optional[str] = None,
    message_preview: Optional[str] = None,
) -> str:
    """Notification body for a reminder that just fired."""
    if message_link and message_preview:
        return (
            f"⏰ **Reminder about this message:**\n\n"
            f"> {message_preview}\n\n"
            f"[Jump to message]({message_link})"
        )
    return f"⏰ **Reminder:** {message}"


class ReminderWorkflow(Workflow):
    """Delay-and-fire workflow for a single reminder."""

    name = REMINDER_WORKFLOW

    def __init__(
        self,
        notifier: DiscordNotifier,
        registry: ReminderRegistry,
        config: ReminderConfig,
    ):
        self.notifier = notifier
        self.registry = registry
        self.config = config

    async def phase_start(self, ctx: RunContext, args: dict, state: dict) -> Transition:
        reminder = ReminderArgs.from_args(args)
        if reminder.duration_ms <= 0:
            raise ReminderValidationError(PARSE_ERROR_MESSAGE)

        # Time already spent queued counts against the delay
        remaining_ms = reminder.scheduled_for_ms - now_ms()
        if remaining_ms <= 0:
            return Continue("deliver", state)
        return Sleep(remaining_ms, "deliver", state)

    async def phase_deliver(self, ctx: RunContext, args: dict, state: dict) -> Continue:
        reminder = ReminderArgs.from_args(args)
        content = build_reminder_content(
            reminder.message, reminder.message_link, reminder.message_preview
        )

        delivered = await self.notifier.send_direct_message(reminder.user_id, content)
        logger.info(
            f"[{reminder.environment.upper()}] Reminder sent to user {reminder.user_id}: "
            f"{reminder.message[:80]}"
        )

        track(
            "reminder_delivered",
            "reminder",
            user_id=reminder.user_id,
            properties={
                "run_id": ctx.run_id,
                "message_linked": reminder.is_message_linked,
                "attempt": ctx.attempt,
            },
        )

        return Continue(
            "acknowledge",
            {
                **state,
                "channel_id": delivered.channel_id,
                "message_id": delivered.message_id,
            },
        )

    async def phase_acknowledge(self, ctx: RunContext, args: dict, state: dict) -> Continue:
        await self.notifier.add_reaction(
            state["channel_id"], state["message_id"], self.config.ack_emoji
        )
        return Continue("reconcile", state)

    async def phase_reconcile(self, ctx: RunContext, args: dict, state: dict) -> Continue:
        reminder = ReminderArgs.from_args(args)
        removed = await self.registry.reap_fired(
            reminder.user_id, reminder.message, reminder.scheduled_for_ms
        )
        if removed is None:
            logger.debug(f"No registry entry matched fired run {ctx.run_id}")
        return Continue("follow_up", state)

    async def phase_follow_up(self, ctx: RunContext, args: dict, state: dict) -> Continue:
        if not self.config.follow_up_enabled:
            return Continue("finish", state)

        reminder = ReminderArgs.from_args(args)
        follow_up = FollowUpArgs(
            message_id=state["message_id"],
            channel_id=state["channel_id"],
            user_id=reminder.user_id,
            message=reminder.message,
            environment=reminder.environment,
            intervals_ms=list(self.config.follow_up_intervals_ms),
            message_link=reminder.message_link,
            message_preview=reminder.message_preview,
        )
        follow_up_run_id = await ctx.start(FOLLOW_UP_WORKFLOW, follow_up.to_args())
        logger.info(f"Started follow-up run {follow_up_run_id} for reminder run {ctx.run_id}")

        return Continue("finish", {**state, "follow_up_run_id": follow_up_run_id})

    async def phase_finish(self, ctx: RunContext, args: dict, state: dict) -> Complete:
        reminder = ReminderArgs.from_args(args)
        return Complete({"content": reminder.message, "ephemeral": reminder.ephemeral})
