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
Reminder Manager Module

Entry points used by the command layer: create, list and cancel reminders.
Combines the time parser, the workflow engine and the registry.
"""

import logging
from typing import Optional

from analytics import track
from workflows import RunNotCancellableError, WorkflowEngine, is_valid_run_id

from .config import ReminderConfig
from .models import (
    CancelResult,
    OriginMessage,
    Reminder,
    ReminderListEntry,
    ReminderListing,
    ReminderRequest,
)
from .registry import ReminderRegistry
from .time_parser import format_distance, parse_duration
from .workflow import REMINDER_WORKFLOW, ReminderArgs, now_ms

logger = logging.getLogger("forgetbot.reminders.manager")


class ReminderManager:
    """
    Manages the lifecycle of reminders.

    The workflow engine decides whether a reminder is still pending; the
    registry only remembers which runs belong to whom and what they say.
    """

    def __init__(
        self,
        engine: WorkflowEngine,
        registry: ReminderRegistry,
        config: ReminderConfig,
    ):
        """
        Initialize the reminder manager.

        Args:
            engine: Workflow engine that runs reminder workflows
            registry: Redis-backed reminder registry
            config: Reminder configuration
        """
        self.engine = engine
        self.registry = registry
        self.config = config

    async def create_reminder(self, request: ReminderRequest) -> Optional[Reminder]:
        """
        Parse the request's time expression and schedule the reminder.

        Args:
            request: Canonical reminder request

        Returns:
            The scheduled reminder, or None if the time could not be parsed
        """
        duration_ms = parse_duration(
            request.time_expression, request.created_at_ms, self.config.timezone
        )
        if duration_ms is None:
            logger.info(
                f"Could not parse time '{request.time_expression}' for user {request.user_id}"
            )
            return None

        return await self.schedule_reminder(
            user_id=request.user_id,
            duration_ms=duration_ms,
            message=request.message,
            created_at_ms=request.created_at_ms,
            ephemeral=request.ephemeral,
            origin=request.origin,
        )

    async def schedule_reminder(
        self,
        user_id: int,
        duration_ms: int,
        message: str,
        created_at_ms: int,
        ephemeral: bool = True,
        origin: Optional[OriginMessage] = None,
    ) -> Reminder:
        """
        Start a reminder run for a known delay and register it.

        Args:
            user_id: Discord user ID
            duration_ms: Delay before firing (must be > 0)
            message: Reminder text (for message-linked reminders, the origin content)
            created_at_ms: When the request was made (epoch ms)
            ephemeral: Whether replies about this reminder should be private
            origin: Message the reminder points back to, if any

        Returns:
            The scheduled reminder
        """
        if duration_ms <= 0:
            raise ValueError("duration_ms must be positive")

        scheduled_for_ms = created_at_ms + duration_ms
        message_link = origin.link if origin else None
        message_preview = origin.preview() if origin else None

        args = ReminderArgs(
            duration_ms=duration_ms,
            scheduled_for_ms=scheduled_for_ms,
            message=message,
            ephemeral=ephemeral,
            user_id=user_id,
            environment=self.config.environment,
            message_link=message_link,
            message_preview=message_preview,
        )
        run_id = await self.engine.start(REMINDER_WORKFLOW, args.to_args())

        reminder = Reminder(
            run_id=run_id,
            user_id=user_id,
            message=message,
            scheduled_for_ms=scheduled_for_ms,
            created_at_ms=created_at_ms,
            ephemeral=ephemeral,
            message_link=message_link,
            message_preview=message_preview,
        )
        try:
            await self.registry.track(reminder)
        except Exception:
            # An untracked run could never be listed or cancelled
            logger.error(f"Failed to register reminder {run_id}, cancelling run", exc_info=True)
            try:
                await self.engine.cancel(run_id)
            except Exception as cancel_error:
                logger.error(f"Could not cancel unregistered run {run_id}: {cancel_error}")
            raise

        logger.info(
            f"Created reminder {run_id} for user {user_id}: "
            f"fires in {duration_ms}ms, linked={origin is not None}"
        )
        track(
            "reminder_created",
            "reminder",
            user_id=user_id,
            properties={
                "run_id": run_id,
                "duration_ms": duration_ms,
                "message_linked": origin is not None,
            },
        )
        return reminder

    async def list_reminders(
        self,
        user_id: int,
        current_ms: Optional[int] = None,
    ) -> ReminderListing:
        """
        List a user's pending reminders, soonest first.

        Runs that are no longer pending or running are reaped from the
        registry on the way. Entries whose metadata is gone are skipped.

        Args:
            user_id: Discord user ID
            current_ms: "Now" for time-remaining calculation (epoch ms)

        Returns:
            Up to list_display_limit entries plus the total count
        """
        current_ms = now_ms() if current_ms is None else current_ms
        entries: list[ReminderListEntry] = []

        for run_id in await self.registry.run_ids(user_id):
            try:
                run = await self.engine.get_run(run_id)
            except Exception as e:
                logger.error(f"Error getting run {run_id}: {e}")
                continue

            if run is None or not run.is_active:
                status = run.status if run else "unknown"
                logger.info(f"Reaping reminder {run_id} for user {user_id} (status={status})")
                await self.registry.untrack(user_id, run_id)
                continue

            reminder = await self.registry.get(run_id)
            if reminder is None:
                continue

            entries.append(
                ReminderListEntry(
                    run_id=run_id,
                    message=reminder.message,
                    scheduled_for_ms=reminder.scheduled_for_ms,
                    time_remaining=format_distance(reminder.scheduled_for_ms - current_ms),
                    message_link=reminder.message_link,
                    message_preview=reminder.message_preview,
                )
            )

        entries.sort(key=lambda entry: entry.scheduled_for_ms)
        return ReminderListing(
            entries=entries[: self.config.list_display_limit],
            total=len(entries),
        )

    async def cancel_reminder(
        self,
        run_id: Optional[str],
        owner_id: int,
        requesting_user_id: int,
    ) -> CancelResult:
        """
        Cancel a reminder on behalf of a user.

        Args:
            run_id: Run ID of the reminder
            owner_id: User who created the reminder (from the originating interaction)
            requesting_user_id: User asking for the cancellation

        Returns:
            CancelResult describing the outcome
        """
        if requesting_user_id != owner_id:
            logger.warning(
                f"User {requesting_user_id} tried to cancel reminder {run_id} owned by {owner_id}"
            )
            return CancelResult.DENIED

        if not is_valid_run_id(run_id):
            return CancelResult.NOT_FOUND

        try:
            await self.engine.cancel(run_id)
        except RunNotCancellableError as e:
            logger.info(f"Could not cancel reminder {run_id}: {e}")
            return CancelResult.NOT_FOUND if e.status is None else CancelResult.ALREADY_FIRED

        await self.registry.untrack(owner_id, run_id)
        logger.info(f"Cancelled reminder {run_id} for user {owner_id}")
        track("reminder_cancelled", "reminder", user_id=owner_id, properties={"run_id": run_id})
        return CancelResult.OK
