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
Discord Notifier

Thin wrapper over the Discord client used by reminder workflows to send
notifications and read acknowledgment reactions. Every method is a remote
call; failures (discord.HTTPException and friends) propagate to the caller.
"""

import logging
from dataclasses import dataclass

import discord

logger = logging.getLogger("forgetbot.reminders.notifier")


@dataclass
class DeliveredMessage:
    """Where a notification ended up."""

    channel_id: int
    message_id: int


class DiscordNotifier:
    """Sends reminder notifications through a discord.py client."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def send_direct_message(self, user_id: int, content: str) -> DeliveredMessage:
        """Open (or reuse) the DM channel with a user and post a message."""
        user = self.client.get_user(user_id)
        if user is None:
            user = await self.client.fetch_user(user_id)

        dm_channel = user.dm_channel or await user.create_dm()
        message = await dm_channel.send(content)
        return DeliveredMessage(channel_id=dm_channel.id, message_id=message.id)

    async def post_message(self, channel_id: int, content: str) -> DeliveredMessage:
        """Post a message to a channel by ID."""
        channel = self.client.get_partial_messageable(channel_id)
        message = await channel.send(content)
        return DeliveredMessage(channel_id=channel_id, message_id=message.id)

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        """React to a message as the bot."""
        channel = self.client.get_partial_messageable(channel_id)
        await channel.get_partial_message(message_id).add_reaction(emoji)

    async def reacted_user_ids(self, channel_id: int, message_id: int, emoji: str) -> set[int]:
        """IDs of every user who reacted to a message with the given emoji."""
        channel = self.client.get_partial_messageable(channel_id)
        message = await channel.fetch_message(message_id)

        for reaction in message.reactions:
            if str(reaction.emoji) == emoji:
                return {user.id async for user in reaction.users()}
        return set()

    async def has_reacted(self, channel_id: int, message_id: int, user_id: int, emoji: str) -> bool:
        """Whether a specific user reacted to a message with the given emoji."""
        return user_id in await self.reacted_user_ids(channel_id, message_id, emoji)
