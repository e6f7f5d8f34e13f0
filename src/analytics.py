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
Lightweight analytics tracking for forgetbot.

Usage:
    from analytics import track

    # At startup, share the bot's pool
    await analytics.init(db_pool)

    # Fire-and-forget from anywhere with a running loop
    track("reminder_created", "reminder", user_id=123, properties={"kind": "text"})

Tracking never raises; a missing pool or a failed insert is logged at debug
level and dropped.
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("forgetbot.analytics")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS analytics_events (
    id BIGSERIAL PRIMARY KEY,
    event_name TEXT NOT NULL,
    event_category TEXT NOT NULL,
    user_id BIGINT,
    properties JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_pool: Optional[asyncpg.Pool] = None
_enabled: bool = os.getenv("ANALYTICS_ENABLED", "true").lower() == "true"

# Strong references so pending inserts are not garbage collected mid-flight
_pending: set[asyncio.Task] = set()


async def init(pool: asyncpg.Pool) -> None:
    """Attach the shared connection pool and create the events table."""
    global _pool
    if not _enabled:
        logger.info("Analytics disabled")
        return
    _pool = pool
    await _pool.execute(SCHEMA_SQL)


async def track_async(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Record an event and wait for the insert.

    Args:
        event_name: Specific event identifier (e.g., "reminder_delivered")
        event_category: One of: command, reminder, follow_up, error
        user_id: Discord user ID (optional)
        properties: Additional event data as key-value pairs

    Returns:
        True if event was recorded, False otherwise
    """
    if not _enabled or _pool is None:
        return False

    try:
        await _pool.execute(
            """
            INSERT INTO analytics_events (event_name, event_category, user_id, properties)
            VALUES ($1, $2, $3, $4::jsonb)
            """,
            event_name,
            event_category,
            user_id,
            json.dumps(properties or {}),
        )
        return True
    except Exception as e:
        logger.debug(f"Analytics tracking failed: {e}")
        return False


def track(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> None:
    """Record an event in the background (fire-and-forget)."""
    if not _enabled or _pool is None:
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return

    task = loop.create_task(track_async(event_name, event_category, user_id, properties))
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def shutdown() -> None:
    """Wait for in-flight events and detach the pool."""
    global _pool
    if _pending:
        await asyncio.gather(*_pending, return_exceptions=True)
    _pool = None
