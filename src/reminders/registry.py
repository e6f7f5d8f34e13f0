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
Reminder Registry Module

Tracks which workflow runs belong to which user, plus per-run reminder
metadata, in Redis:

    user:<user_id>:reminders  -> set of run IDs
    reminder:<run_id>         -> hash of reminder fields (long expiry)
    msg_cache:<message_id>    -> origin message content (short expiry)
    msg_guild:<message_id>    -> origin guild ID (short expiry)

The workflow engine is the source of truth for whether a reminder is still
pending; this registry is a cache of that fact. Every mutation is
delete-if-present so concurrent writers never need a lock.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from .models import Reminder

logger = logging.getLogger("forgetbot.reminders.registry")

DEFAULT_METADATA_TTL_SECONDS = 365 * 24 * 60 * 60
DEFAULT_CACHE_TTL_SECONDS = 300


def user_index_key(user_id: int) -> str:
    return f"user:{user_id}:reminders"


def metadata_key(run_id: str) -> str:
    return f"reminder:{run_id}"


class ReminderRegistry:
    """
    Redis-backed index of reminders.

    The client must be created with decode_responses=True.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        metadata_ttl_seconds: int = DEFAULT_METADATA_TTL_SECONDS,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        """
        Initialize the registry.

        Args:
            redis_client: redis.asyncio client (decode_responses=True)
            metadata_ttl_seconds: Expiry for reminder metadata hashes
            cache_ttl_seconds: Expiry for cached origin message data
        """
        self.redis = redis_client
        self.metadata_ttl_seconds = metadata_ttl_seconds
        self.cache_ttl_seconds = cache_ttl_seconds

    async def track(self, reminder: Reminder) -> None:
        """Add a reminder to its owner's index and store its metadata."""
        key = metadata_key(reminder.run_id)
        await self.redis.sadd(user_index_key(reminder.user_id), reminder.run_id)
        await self.redis.hset(key, mapping=reminder.to_hash())
        await self.redis.expire(key, self.metadata_ttl_seconds)
        logger.info(f"Tracking reminder {reminder.run_id} for user {reminder.user_id}")

    async def untrack(self, user_id: int, run_id: str) -> None:
        """Remove a reminder from the index and delete its metadata. Idempotent."""
        await self.redis.srem(user_index_key(user_id), run_id)
        await self.redis.delete(metadata_key(run_id))

    async def run_ids(self, user_id: int) -> list[str]:
        """All run IDs tracked for a user."""
        members = await self.redis.smembers(user_index_key(user_id))
        return sorted(members)

    async def get(self, run_id: str) -> Optional[Reminder]:
        """Get a reminder's metadata, or None if missing or expired."""
        fields = await self.redis.hgetall(metadata_key(run_id))
        return Reminder.from_hash(run_id, fields)

    async def reap_fired(
        self,
        user_id: int,
        message: str,
        scheduled_for_ms: int,
    ) -> Optional[str]:
        """
        Remove the entry for a reminder that just fired.

        Matches on message text and fire time, since the delivering workflow
        only knows the reminder's content.

        Returns:
            The removed run ID, or None if nothing matched
        """
        for run_id in await self.run_ids(user_id):
            reminder = await self.get(run_id)
            if (
                reminder
                and reminder.message == message
                and reminder.scheduled_for_ms == scheduled_for_ms
            ):
                await self.untrack(user_id, run_id)
                logger.info(f"Removed fired reminder {run_id} for user {user_id}")
                return run_id
        return None

    # =========================================================================
    # Origin message cache (context menu -> preset button round trip)
    # =========================================================================

    async def cache_origin_message(
        self,
        message_id: int,
        content: str,
        guild_id: Optional[int] = None,
    ) -> None:
        """Cache a message's content (and guild) until the user picks a time."""
        await self.redis.setex(f"msg_cache:{message_id}", self.cache_ttl_seconds, content)
        if guild_id:
            await self.redis.setex(
                f"msg_guild:{message_id}", self.cache_ttl_seconds, str(guild_id)
            )

    async def get_cached_origin(self, message_id: int) -> tuple[Optional[str], Optional[int]]:
        """
        Get cached content and guild ID for a message.

        Returns:
            (content, guild_id); content is None once the cache expired
        """
        content = await self.redis.get(f"msg_cache:{message_id}")
        guild_id = await self.redis.get(f"msg_guild:{message_id}")
        return content, int(guild_id) if guild_id else None
