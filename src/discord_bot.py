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

import asyncio
import os
from typing import Optional

import asyncpg
import discord
import redis.asyncio as redis
from discord.ext import commands
from dotenv import load_dotenv

import analytics
from commands.policy import CommandPolicy
from commands.reminder_commands import ReminderCommands
from commands.views import CancelReminderButton, RemindPresetButton
from reminders import (
    DiscordNotifier,
    FollowUpWorkflow,
    ReminderConfig,
    ReminderManager,
    ReminderRegistry,
    ReminderWorkflow,
)
from workflows import EngineConfig, RunStore, WorkflowEngine

load_dotenv()

import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("forgetbot")


class ForgetBot(commands.Bot):
    """Discord bot that delivers reminders through durable workflows."""

    def __init__(self):
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(command_prefix="!", intents=intents)

        self.db_pool: Optional[asyncpg.Pool] = None
        self.redis: Optional[redis.Redis] = None
        self.engine: Optional[WorkflowEngine] = None
        self.reminder_manager: Optional[ReminderManager] = None
        self.reminder_config = ReminderConfig.from_env()
        self.command_policy = CommandPolicy.from_env()

    async def setup_hook(self):
        """Called when the bot is starting up."""
        database_url = os.getenv("DATABASE_URL")
        redis_url = os.getenv("REDIS_URL")
        sync_commands = os.getenv("SYNC_COMMANDS", "false").lower() == "true"

        logger.info(f"Setup: DATABASE_URL={'set' if database_url else 'missing'}")
        logger.info(f"Setup: REDIS_URL={'set' if redis_url else 'missing'}")
        logger.info(f"Setup: BOT_ENV={self.reminder_config.environment}")
        logger.info(f"Setup: FOLLOW_UP_ENABLED={self.reminder_config.follow_up_enabled}")
        logger.info(
            f"Setup: ALLOWED_USER_IDS="
            f"{len(self.command_policy.allowed_user_ids) or 'unrestricted'}"
        )

        if not database_url or not redis_url:
            raise RuntimeError("DATABASE_URL and REDIS_URL must both be set")

        self.db_pool = await asyncpg.create_pool(database_url)
        self.redis = redis.from_url(redis_url, decode_responses=True)

        store = RunStore(self.db_pool)
        await store.ensure_schema()
        await analytics.init(self.db_pool)

        registry = ReminderRegistry(
            self.redis,
            metadata_ttl_seconds=self.reminder_config.metadata_ttl_seconds,
            cache_ttl_seconds=self.reminder_config.message_cache_ttl_seconds,
        )
        notifier = DiscordNotifier(self)

        self.engine = WorkflowEngine(store, EngineConfig.from_env())
        self.engine.register(ReminderWorkflow(notifier, registry, self.reminder_config))
        self.engine.register(FollowUpWorkflow(notifier, self.reminder_config))

        self.reminder_manager = ReminderManager(self.engine, registry, self.reminder_config)

        await self.add_cog(ReminderCommands(self, self.reminder_manager, self.command_policy))
        self.add_dynamic_items(CancelReminderButton, RemindPresetButton)
        logger.info("Reminder system initialized successfully")

        if sync_commands:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} application command(s)")

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")
        if self.engine:
            self.engine.start_polling()

    async def close(self):
        """Clean up resources on shutdown."""
        if self.engine:
            self.engine.stop_polling()
        await analytics.shutdown()
        if self.redis:
            await self.redis.aclose()
        if self.db_pool:
            await self.db_pool.close()
        await super().close()


async def main():
    """Run the bot."""
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        print("Error: DISCORD_BOT_TOKEN environment variable not set")
        print("Please set it in your .env file")
        return

    bot = ForgetBot()
    async with bot:
        await bot.start(token)


def run():
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
