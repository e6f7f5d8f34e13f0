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
Discord UI Components for Reminder Commands

Buttons and modals whose state lives entirely in their custom_id, so they keep
working after a bot restart:

- cancel_reminder:<run_id>:<user_id>            Cancel button on confirmations
- remind_<preset>:<message_id>:<channel_id>      Quick picks for the context menu
"""

import logging
import re
import time
from typing import Optional

import discord

from reminders import (
    PARSE_ERROR_MESSAGE,
    CancelResult,
    InvalidRequestError,
    OriginMessage,
    ReminderRequest,
    format_relative,
    parse_preset,
)
from reminders.models import MAX_MESSAGE_LENGTH, NO_TEXT_PREVIEW

from .policy import NOT_ALLOWED_MESSAGE

logger = logging.getLogger("forgetbot.commands.views")

CANCEL_MESSAGES = {
    CancelResult.OK: "✅ Reminder cancelled successfully.",
    CancelResult.DENIED: "❌ You can only cancel your own reminders.",
    CancelResult.NOT_FOUND: "❌ Reminder not found. It may have already been sent or cancelled.",
    CancelResult.ALREADY_FIRED: "❌ Failed to cancel reminder. It may have already been sent or cancelled.",
}

PRESET_LABELS = {
    "30m": "30 minutes",
    "1h": "1 hour",
    "2h": "2 hours",
    "6h": "6 hours",
    "tomorrow": "Tomorrow",
    "custom": "Custom...",
}

TIMED_OUT_MESSAGE = (
    "❌ This reminder request has timed out. "
    "Please right-click the message again to create a new reminder."
)
FAILED_MESSAGE = "❌ Failed to set reminder. Please try again."


def interaction_ms(interaction: discord.Interaction) -> int:
    """When the interaction was created, in epoch milliseconds."""
    created_at = getattr(interaction, "created_at", None)
    if created_at is None:
        return int(time.time() * 1000)
    return int(created_at.timestamp() * 1000)


def _is_allowed(interaction: discord.Interaction) -> bool:
    return interaction.client.command_policy.is_allowed(interaction.user.id)


class CancelReminderButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=r"cancel_reminder:(?P<run_id>[^:]*):(?P<user_id>\d+)",
):
    """
    Cancel button attached to reminder confirmations.

    The owner's ID is baked into the custom_id when the reminder is created
    and compared against whoever clicks.
    """

    def __init__(self, run_id: str, user_id: int):
        super().__init__(
            discord.ui.Button(
                label="Cancel Reminder",
                style=discord.ButtonStyle.danger,
                custom_id=f"cancel_reminder:{run_id}:{user_id}",
            )
        )
        self.run_id = run_id
        self.user_id = user_id

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match: re.Match[str],
    ) -> "CancelReminderButton":
        return cls(match["run_id"], int(match["user_id"]))

    async def callback(self, interaction: discord.Interaction) -> None:
        manager = interaction.client.reminder_manager
        result = await manager.cancel_reminder(self.run_id, self.user_id, interaction.user.id)
        await interaction.response.send_message(CANCEL_MESSAGES[result], ephemeral=True)


def cancel_view(run_id: str, user_id: int) -> discord.ui.View:
    """View holding a single cancel button for a freshly created reminder."""
    view = discord.ui.View(timeout=None)
    view.add_item(CancelReminderButton(run_id, user_id))
    return view


async def _load_origin(
    interaction: discord.Interaction,
    message_id: int,
    channel_id: int,
) -> Optional[OriginMessage]:
    """Rebuild the origin message from the context-menu cache."""
    registry = interaction.client.reminder_manager.registry
    content, cached_guild_id = await registry.get_cached_origin(message_id)
    if content is None:
        return None

    guild_id = interaction.guild_id or cached_guild_id
    return OriginMessage(
        message_id=message_id,
        channel_id=channel_id,
        content=content,
        guild_id=guild_id,
    )


def _origin_message_text(origin: OriginMessage) -> str:
    text = origin.content.strip() or NO_TEXT_PREVIEW
    return text[:MAX_MESSAGE_LENGTH]


class CustomTimeModal(discord.ui.Modal, title="Custom Reminder Time"):
    """Free-form time entry for a message-linked reminder."""

    time_input = discord.ui.TextInput(
        label="When?",
        style=discord.TextStyle.short,
        placeholder="e.g., 5 minutes, 2 hours, tomorrow at 3pm",
        required=True,
        max_length=100,
    )

    def __init__(self, message_id: int, channel_id: int):
        super().__init__(custom_id=f"remind_custom_modal:{message_id}:{channel_id}")
        self.message_id = message_id
        self.channel_id = channel_id

    async def on_submit(self, interaction: discord.Interaction) -> None:
        origin = await _load_origin(interaction, self.message_id, self.channel_id)
        if origin is None:
            await interaction.response.send_message(TIMED_OUT_MESSAGE, ephemeral=True)
            return

        try:
            request = ReminderRequest(
                user_id=interaction.user.id,
                time_expression=self.time_input.value,
                message=_origin_message_text(origin),
                created_at_ms=interaction_ms(interaction),
                ephemeral=True,
                origin=origin,
            )
        except InvalidRequestError as e:
            await interaction.response.send_message(f"❌ {e}", ephemeral=True)
            return

        manager = interaction.client.reminder_manager
        try:
            reminder = await manager.create_reminder(request)
        except Exception as e:
            logger.error(f"Error setting message reminder: {e}", exc_info=True)
            await interaction.response.send_message(FAILED_MESSAGE, ephemeral=True)
            return

        if reminder is None:
            await interaction.response.send_message(f"❌ {PARSE_ERROR_MESSAGE}", ephemeral=True)
            return

        relative = format_relative(
            reminder.scheduled_for_ms, request.created_at_ms, manager.config.timezone
        )
        await interaction.response.send_message(
            f"✅ Reminder set! I'll remind you about this message {relative}",
            view=cancel_view(reminder.run_id, reminder.user_id),
            ephemeral=True,
        )


class RemindPresetButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=r"remind_(?P<preset>30m|1h|2h|6h|tomorrow|custom):(?P<message_id>\d+):(?P<channel_id>\d+)",
):
    """Quick-pick button offered by the "Remind Me" message context menu."""

    def __init__(self, preset: str, message_id: int, channel_id: int):
        super().__init__(
            discord.ui.Button(
                label=PRESET_LABELS[preset],
                style=discord.ButtonStyle.secondary if preset == "custom" else discord.ButtonStyle.primary,
                custom_id=f"remind_{preset}:{message_id}:{channel_id}",
            )
        )
        self.preset = preset
        self.message_id = message_id
        self.channel_id = channel_id

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match: re.Match[str],
    ) -> "RemindPresetButton":
        return cls(match["preset"], int(match["message_id"]), int(match["channel_id"]))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if not _is_allowed(interaction):
            await interaction.response.send_message(NOT_ALLOWED_MESSAGE, ephemeral=True)
            return False
        return True

    async def callback(self, interaction: discord.Interaction) -> None:
        if self.preset == "custom":
            await interaction.response.send_modal(CustomTimeModal(self.message_id, self.channel_id))
            return

        manager = interaction.client.reminder_manager
        sent_at = interaction_ms(interaction)
        duration_ms = parse_preset(self.preset, sent_at, manager.config.timezone)
        if not duration_ms:
            await interaction.response.send_message(
                f"❌ Invalid time preset: {self.preset}", ephemeral=True
            )
            return

        origin = await _load_origin(interaction, self.message_id, self.channel_id)
        if origin is None:
            await interaction.response.send_message(TIMED_OUT_MESSAGE, ephemeral=True)
            return

        try:
            reminder = await manager.schedule_reminder(
                user_id=interaction.user.id,
                duration_ms=duration_ms,
                message=_origin_message_text(origin),
                created_at_ms=sent_at,
                ephemeral=True,
                origin=origin,
            )
        except Exception as e:
            logger.error(f"Error handling button interaction: {e}", exc_info=True)
            await interaction.response.send_message(FAILED_MESSAGE, ephemeral=True)
            return

        relative = format_relative(reminder.scheduled_for_ms, sent_at, manager.config.timezone)
        await interaction.response.send_message(
            f"✅ Reminder set! I'll remind you about this message {relative}",
            view=cancel_view(reminder.run_id, reminder.user_id),
            ephemeral=True,
        )


def preset_view(message_id: int, channel_id: int) -> discord.ui.View:
    """Quick-pick buttons for a message-linked reminder."""
    view = discord.ui.View(timeout=None)
    for preset in PRESET_LABELS:
        view.add_item(RemindPresetButton(preset, message_id, channel_id))
    return view
