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
Reminder Slash Commands

Discord slash commands and the message context menu for reminders.
"""

import logging

import discord
from discord import app_commands
from discord.ext import commands

from analytics import track
from reminders import (
    PARSE_ERROR_MESSAGE,
    InvalidRequestError,
    ReminderListing,
    ReminderManager,
    ReminderRequest,
    format_relative,
)

from .policy import NOT_ALLOWED_MESSAGE, CommandPolicy
from .views import FAILED_MESSAGE, cancel_view, interaction_ms, preset_view

logger = logging.getLogger("forgetbot.commands.reminder")

EMBED_COLOR = 0x5865F2
LIST_MESSAGE_MAX_LENGTH = 200
NO_REMINDERS_MESSAGE = "You have no active reminders."


def format_list_header(listing: ReminderListing) -> str:
    """Header line shown above the reminder embeds."""
    if listing.truncated:
        return (
            f"📋 **Your Active Reminders** "
            f"(showing {len(listing.entries)} of {listing.total})"
        )
    return f"📋 **Your Active Reminders** ({listing.total} total)"


def build_list_embeds(listing: ReminderListing) -> list[discord.Embed]:
    """One embed per reminder; linked reminders become clickable."""
    embeds = []
    for entry in listing.entries:
        if entry.message_preview:
            description = entry.message_preview
        elif len(entry.message) > LIST_MESSAGE_MAX_LENGTH:
            description = entry.message[:LIST_MESSAGE_MAX_LENGTH] + "..."
        else:
            description = entry.message

        embed = discord.Embed(description=description, color=EMBED_COLOR)
        embed.add_field(name="⏳ Time Remaining", value=f"In **{entry.time_remaining}**", inline=True)
        embed.add_field(
            name="📅 Scheduled For",
            value=f"<t:{entry.scheduled_for_ms // 1000}:F>",
            inline=True,
        )
        if entry.message_link:
            embed.title = "Jump to Message 🔗"
            embed.url = entry.message_link
        embeds.append(embed)
    return embeds


class ReminderCommands(commands.Cog):
    """
    Slash commands for reminder management.

    Commands:
    - /remind-me - Create a reminder
    - /list-reminders - List your pending reminders
    - Remind Me (message context menu) - Reminder that links back to a message
    """

    def __init__(
        self,
        bot: commands.Bot,
        reminder_manager: ReminderManager,
        policy: CommandPolicy,
    ):
        self.bot = bot
        self.manager = reminder_manager
        self.policy = policy

        # Context menus can't be declared inside a cog, so register by hand
        self.remind_menu = app_commands.ContextMenu(
            name="Remind Me",
            callback=self.remind_me_menu,
        )
        self.remind_menu.allowed_installs = app_commands.AppInstallationType(guild=True, user=True)
        self.remind_menu.allowed_contexts = app_commands.AppCommandContext(
            guild=True, dm_channel=True, private_channel=True
        )
        self.bot.tree.add_command(self.remind_menu)

    async def cog_unload(self) -> None:
        self.bot.tree.remove_command(self.remind_menu.name, type=self.remind_menu.type)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if not self.policy.is_allowed(interaction.user.id):
            logger.info(f"Rejected command from user {interaction.user.id}")
            await interaction.response.send_message(NOT_ALLOWED_MESSAGE, ephemeral=True)
            return False
        return True

    # =========================================================================
    # /remind-me
    # =========================================================================

    @app_commands.command(name="remind-me", description="Set a reminder")
    @app_commands.allowed_installs(guilds=True, users=True)
    @app_commands.allowed_contexts(guilds=True, dms=True, private_channels=True)
    @app_commands.describe(
        time="When to remind you",
        message="What to remind you about",
        ephemeral="Whether to send the reminder as an ephemeral message (only visible to you). Defaults to true.",
    )
    async def remind_me(
        self,
        interaction: discord.Interaction,
        time: str,
        message: str,
        ephemeral: bool = True,
    ):
        """Create a new reminder."""
        await interaction.response.defer(ephemeral=ephemeral)

        track(
            "command_used",
            "command",
            user_id=interaction.user.id,
            properties={"command_name": "remind-me"},
        )

        try:
            request = ReminderRequest(
                user_id=interaction.user.id,
                time_expression=time,
                message=message,
                created_at_ms=interaction_ms(interaction),
                ephemeral=ephemeral,
            )
        except InvalidRequestError as e:
            await interaction.followup.send(f"❌ {e}", ephemeral=True)
            return

        try:
            reminder = await self.manager.create_reminder(request)
        except Exception as e:
            logger.error(f"Error setting reminder: {e}", exc_info=True)
            await interaction.followup.send(FAILED_MESSAGE, ephemeral=True)
            return

        if reminder is None:
            await interaction.followup.send(f"❌ {PARSE_ERROR_MESSAGE}", ephemeral=True)
            return

        relative = format_relative(
            reminder.scheduled_for_ms, request.created_at_ms, self.manager.config.timezone
        )
        await interaction.followup.send(
            f'✅ Reminder set! I\'ll remind you about "{message}" {relative}',
            view=cancel_view(reminder.run_id, reminder.user_id),
            ephemeral=ephemeral,
        )

    # =========================================================================
    # /list-reminders
    # =========================================================================

    @app_commands.command(name="list-reminders", description="List your active reminders")
    @app_commands.allowed_installs(guilds=True, users=True)
    @app_commands.allowed_contexts(guilds=True, dms=True, private_channels=True)
    async def list_reminders(self, interaction: discord.Interaction):
        """Show the caller's pending reminders, soonest first."""
        await interaction.response.defer(ephemeral=True)

        track(
            "command_used",
            "command",
            user_id=interaction.user.id,
            properties={"command_name": "list-reminders"},
        )

        try:
            listing = await self.manager.list_reminders(interaction.user.id)
        except Exception as e:
            logger.error(f"Error listing reminders: {e}", exc_info=True)
            await interaction.followup.send(
                "❌ Failed to list reminders. Please try again.", ephemeral=True
            )
            return

        if not listing.entries:
            await interaction.followup.send(NO_REMINDERS_MESSAGE, ephemeral=True)
            return

        await interaction.followup.send(
            format_list_header(listing),
            embeds=build_list_embeds(listing),
            ephemeral=True,
        )

    # =========================================================================
    # Remind Me (message context menu)
    # =========================================================================

    async def remind_me_menu(self, interaction: discord.Interaction, message: discord.Message):
        """Offer quick-pick times for a reminder about the target message."""
        if not self.policy.is_allowed(interaction.user.id):
            await interaction.response.send_message(NOT_ALLOWED_MESSAGE, ephemeral=True)
            return

        track(
            "command_used",
            "command",
            user_id=interaction.user.id,
            properties={"command_name": "Remind Me"},
        )

        await self.manager.registry.cache_origin_message(
            message.id,
            message.content,
            message.guild.id if message.guild else None,
        )

        await interaction.response.send_message(
            "⏰ When would you like to be reminded about this message?",
            view=preset_view(message.id, message.channel.id),
            ephemeral=True,
        )
