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

"""Tests for reminder creation, listing and cancellation."""

import sys
import uuid
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.config import ReminderConfig
from reminders.manager import ReminderManager
from reminders.models import CancelResult, OriginMessage, ReminderRequest
from reminders.registry import ReminderRegistry
from reminders.time_parser import HOUR_MS, MINUTE_MS
from reminders.workflow import REMINDER_WORKFLOW
from workflows import RunNotCancellableError

CREATED_AT = 1_750_000_000_000


def active_run():
    return SimpleNamespace(status="running", is_active=True)


def finished_run(status="completed"):
    return SimpleNamespace(status=status, is_active=False)


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.start = AsyncMock(side_effect=lambda workflow, args: str(uuid.uuid4()))
    engine.get_run = AsyncMock(return_value=active_run())
    engine.cancel = AsyncMock()
    return engine


@pytest.fixture
def registry(fake_redis):
    return ReminderRegistry(fake_redis)


@pytest.fixture
def manager(engine, registry):
    return ReminderManager(engine, registry, ReminderConfig())


def request(time_expression="5 minutes", message="stretch", **kwargs):
    return ReminderRequest(
        user_id=42,
        time_expression=time_expression,
        message=message,
        created_at_ms=CREATED_AT,
        **kwargs,
    )


class TestCreateReminder:
    """Test reminder creation."""

    @pytest.mark.asyncio
    async def test_creates_and_registers(self, manager, engine, registry):
        reminder = await manager.create_reminder(request())

        assert reminder.scheduled_for_ms == CREATED_AT + 5 * MINUTE_MS
        workflow, args = engine.start.await_args.args
        assert workflow == REMINDER_WORKFLOW
        assert args["duration_ms"] == 5 * MINUTE_MS
        assert args["scheduled_for_ms"] == CREATED_AT + 5 * MINUTE_MS
        assert args["user_id"] == 42
        assert args["message_link"] is None
        assert await registry.run_ids(42) == [reminder.run_id]

    @pytest.mark.asyncio
    async def test_unparseable_time(self, manager, engine, registry):
        assert await manager.create_reminder(request("qwzx blorp")) is None
        engine.start.assert_not_awaited()
        assert await registry.run_ids(42) == []

    @pytest.mark.asyncio
    async def test_message_linked(self, manager, engine, registry):
        origin = OriginMessage(message_id=3, channel_id=2, content="read this later", guild_id=1)

        reminder = await manager.schedule_reminder(
            user_id=42,
            duration_ms=HOUR_MS,
            message=origin.content,
            created_at_ms=CREATED_AT,
            origin=origin,
        )

        _, args = engine.start.await_args.args
        assert args["message_link"] == "https://discord.com/channels/1/2/3"
        assert args["message_preview"] == "read this later"
        stored = await registry.get(reminder.run_id)
        assert stored.message_link == "https://discord.com/channels/1/2/3"
        assert stored.is_message_linked

    @pytest.mark.asyncio
    async def test_registry_failure_cancels_run(self, manager, engine, registry):
        registry.track = AsyncMock(side_effect=ConnectionError("redis unavailable"))

        with pytest.raises(ConnectionError):
            await manager.create_reminder(request())

        [tracked] = registry.track.await_args.args
        engine.cancel.assert_awaited_once_with(tracked.run_id)

    @pytest.mark.asyncio
    async def test_rejects_non_positive_delay(self, manager, engine):
        with pytest.raises(ValueError):
            await manager.schedule_reminder(42, 0, "stretch", CREATED_AT)
        engine.start.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_failure_leaves_registry_untouched(self, manager, engine, registry):
        engine.start = AsyncMock(side_effect=ConnectionError("database unavailable"))
        with pytest.raises(ConnectionError):
            await manager.create_reminder(request())
        assert await registry.run_ids(42) == []


class TestListReminders:
    """Test listing and reaping."""

    @pytest.mark.asyncio
    async def test_lists_pending_reminder(self, manager):
        reminder = await manager.create_reminder(request("2 hours", "call mom"))

        listing = await manager.list_reminders(42, current_ms=CREATED_AT)

        assert listing.total == 1
        entry = listing.entries[0]
        assert entry.run_id == reminder.run_id
        assert entry.message == "call mom"
        assert entry.scheduled_for_ms == CREATED_AT + 2 * HOUR_MS
        assert entry.time_remaining == "about 2 hours"

    @pytest.mark.asyncio
    async def test_sorted_by_fire_time(self, manager):
        await manager.create_reminder(request("3 hours", "third"))
        await manager.create_reminder(request("1 hour", "first"))
        await manager.create_reminder(request("2 hours", "second"))

        listing = await manager.list_reminders(42, current_ms=CREATED_AT)

        assert [e.message for e in listing.entries] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_reaps_finished_runs(self, manager, engine, registry):
        reminder = await manager.create_reminder(request())
        engine.get_run = AsyncMock(return_value=finished_run())

        first = await manager.list_reminders(42, current_ms=CREATED_AT)
        second = await manager.list_reminders(42, current_ms=CREATED_AT)

        assert first.total == 0
        assert second.total == 0
        assert await registry.run_ids(42) == []
        assert await registry.get(reminder.run_id) is None

    @pytest.mark.asyncio
    async def test_reaps_unknown_runs(self, manager, engine, registry):
        await manager.create_reminder(request())
        engine.get_run = AsyncMock(return_value=None)

        assert (await manager.list_reminders(42)).total == 0
        assert await registry.run_ids(42) == []

    @pytest.mark.asyncio
    async def test_status_lookup_failure_skips_without_reaping(self, manager, engine, registry):
        reminder = await manager.create_reminder(request())
        engine.get_run = AsyncMock(side_effect=ConnectionError("timeout"))

        listing = await manager.list_reminders(42)

        assert listing.total == 0
        assert await registry.run_ids(42) == [reminder.run_id]

    @pytest.mark.asyncio
    async def test_missing_metadata_is_skipped(self, manager, registry, fake_redis):
        reminder = await manager.create_reminder(request())
        await fake_redis.delete(f"reminder:{reminder.run_id}")

        listing = await manager.list_reminders(42)

        assert listing.entries == []
        assert await registry.run_ids(42) == [reminder.run_id]

    @pytest.mark.asyncio
    async def test_display_limit(self, manager):
        for minutes in range(1, 13):
            await manager.create_reminder(request(f"{minutes} minutes", f"reminder {minutes}"))

        listing = await manager.list_reminders(42, current_ms=CREATED_AT)

        assert listing.total == 12
        assert len(listing.entries) == 10
        assert listing.truncated
        assert listing.entries[0].message == "reminder 1"

    @pytest.mark.asyncio
    async def test_other_users_are_not_listed(self, manager):
        await manager.create_reminder(request())
        assert (await manager.list_reminders(43)).total == 0


class TestCancelReminder:
    """Test cancellation outcomes."""

    @pytest.mark.asyncio
    async def test_owner_cancels(self, manager, engine, registry):
        reminder = await manager.create_reminder(request())

        result = await manager.cancel_reminder(reminder.run_id, 42, 42)

        assert result == CancelResult.OK
        engine.cancel.assert_awaited_once_with(reminder.run_id)
        assert await registry.run_ids(42) == []

    @pytest.mark.asyncio
    async def test_other_user_is_denied(self, manager, engine, registry):
        reminder = await manager.create_reminder(request())

        result = await manager.cancel_reminder(reminder.run_id, 42, 99)

        assert result == CancelResult.DENIED
        engine.cancel.assert_not_awaited()
        assert await registry.run_ids(42) == [reminder.run_id]

    @pytest.mark.asyncio
    async def test_second_cancel_reports_already_gone(self, manager, engine):
        reminder = await manager.create_reminder(request())
        assert await manager.cancel_reminder(reminder.run_id, 42, 42) == CancelResult.OK

        engine.cancel = AsyncMock(side_effect=RunNotCancellableError(reminder.run_id, "cancelled"))
        assert await manager.cancel_reminder(reminder.run_id, 42, 42) == CancelResult.ALREADY_FIRED

    @pytest.mark.asyncio
    async def test_unknown_run(self, manager, engine):
        run_id = str(uuid.uuid4())
        engine.cancel = AsyncMock(side_effect=RunNotCancellableError(run_id))

        assert await manager.cancel_reminder(run_id, 42, 42) == CancelResult.NOT_FOUND

    @pytest.mark.asyncio
    async def test_malformed_run_id(self, manager, engine):
        assert await manager.cancel_reminder("", 42, 42) == CancelResult.NOT_FOUND
        assert await manager.cancel_reminder("abc", 42, 42) == CancelResult.NOT_FOUND
        engine.cancel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fired_reminder_keeps_registry_until_reaped(self, manager, engine, registry):
        reminder = await manager.create_reminder(request())
        engine.cancel = AsyncMock(side_effect=RunNotCancellableError(reminder.run_id, "completed"))

        assert await manager.cancel_reminder(reminder.run_id, 42, 42) == CancelResult.ALREADY_FIRED
        assert await registry.run_ids(42) == [reminder.run_id]
