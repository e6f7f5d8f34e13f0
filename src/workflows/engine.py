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
Workflow Engine Module

Background task loop that resumes durable workflow runs when they are due.
Uses discord.ext.tasks for reliable scheduling.

A run never waits in memory: sleeping means writing a wake-up time to the
run store and returning. Each tick claims due runs, advances them through as
many phases as they can complete without sleeping, and persists the outcome.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

import pytz
from discord.ext import tasks

from .base import Complete, Continue, RunContext, Sleep, Workflow
from .config import EngineConfig
from .errors import FatalWorkflowError, RunNotCancellableError, UnknownWorkflowError
from .store import RunRecord, RunStore

logger = logging.getLogger("forgetbot.workflows.engine")


def _utcnow() -> datetime:
    return datetime.now(pytz.UTC)


def is_valid_run_id(run_id: Optional[str]) -> bool:
    """Check that a run ID is a well-formed UUID string."""
    if not run_id:
        return False
    try:
        uuid.UUID(str(run_id))
        return True
    except ValueError:
        return False


class Run:
    """Handle on a workflow run, as returned by WorkflowEngine.get_run()."""

    def __init__(self, engine: "WorkflowEngine", record: RunRecord):
        self._engine = engine
        self.run_id = record.run_id
        self.workflow = record.workflow
        self.status = record.status
        self.result = record.result
        self.last_error = record.last_error

    @property
    def is_active(self) -> bool:
        return self.status in ("pending", "running")

    async def cancel(self) -> None:
        """
        Cancel the run.

        Raises:
            RunNotCancellableError: If the run already finished, was cancelled,
                or is being advanced at this moment
        """
        await self._engine.cancel(self.run_id)


class WorkflowEngine:
    """
    Durable workflow scheduler.

    Workflows are registered by name; `start()` records a new run that the
    polling loop picks up on its next tick.
    """

    def __init__(self, store: RunStore, config: Optional[EngineConfig] = None):
        """
        Initialize the workflow engine.

        Args:
            store: Run persistence
            config: Engine configuration (defaults from environment)
        """
        self.store = store
        self.config = config or EngineConfig.from_env()
        self._workflows: dict[str, Workflow] = {}
        self._started = False

    def register(self, workflow: Workflow) -> None:
        """Register a workflow definition under its name."""
        if not workflow.name:
            raise ValueError("Workflow must define a name")
        self._workflows[workflow.name] = workflow
        logger.info(f"Registered workflow '{workflow.name}'")

    # =========================================================================
    # Run API
    # =========================================================================

    async def start(self, workflow: str, args: dict[str, Any]) -> str:
        """
        Start a new run of a registered workflow.

        Args:
            workflow: Registered workflow name
            args: JSON-serializable run arguments

        Returns:
            The run ID
        """
        definition = self._workflows.get(workflow)
        if definition is None:
            raise UnknownWorkflowError(f"Unknown workflow '{workflow}'")

        run_id = await self.store.insert(
            workflow, args, definition.initial_phase, wake_at=_utcnow()
        )
        logger.info(f"Started run {run_id} of workflow '{workflow}'")
        return run_id

    async def get_run(self, run_id: str) -> Optional[Run]:
        """Look up a run. Returns None for unknown or malformed IDs."""
        if not is_valid_run_id(run_id):
            return None
        record = await self.store.fetch(run_id)
        return Run(self, record) if record else None

    async def cancel(self, run_id: str) -> None:
        """
        Cancel a run.

        Cancellation and advancement are mutually exclusive: a run that is
        leased by a poller cannot be cancelled until the lease is released.

        Raises:
            RunNotCancellableError: If the run cannot be cancelled
        """
        if not is_valid_run_id(run_id):
            raise RunNotCancellableError(run_id)

        if await self.store.cancel(run_id, _utcnow()):
            return

        record = await self.store.fetch(run_id)
        raise RunNotCancellableError(run_id, record.status if record else None)

    # =========================================================================
    # Polling loop
    # =========================================================================

    def start_polling(self) -> None:
        """Start the polling loop."""
        if not self._started:
            self._poll.change_interval(seconds=self.config.poll_seconds)
            self._poll.start()
            self._started = True
            logger.info("Workflow engine started")

    def stop_polling(self) -> None:
        """Stop the polling loop."""
        if self._started:
            self._poll.cancel()
            self._started = False
            logger.info("Workflow engine stopped")

    @tasks.loop(seconds=5)
    async def _poll(self) -> None:
        """Advance due runs."""
        try:
            await self.run_due()
        except Exception as e:
            logger.error(f"Error in workflow engine loop: {e}", exc_info=True)

    async def run_due(self) -> int:
        """
        Claim and advance every due run once.

        Returns:
            Number of runs advanced
        """
        now = _utcnow()
        lease_until = now + timedelta(seconds=self.config.lease_seconds)
        records = await self.store.claim_due(now, lease_until, self.config.batch_size)

        if records:
            logger.info(f"Advancing {len(records)} due run(s)")
            await asyncio.gather(*(self.advance(record) for record in records))

        return len(records)

    async def advance(self, record: RunRecord) -> None:
        """Run phases of a claimed run until it sleeps, completes or fails."""
        run_id = record.run_id
        definition = self._workflows.get(record.workflow)
        if definition is None:
            logger.error(f"Run {run_id} references unknown workflow '{record.workflow}'")
            await self.store.fail(run_id, record.attempts + 1, f"Unknown workflow '{record.workflow}'")
            return

        ctx = RunContext(
            run_id=run_id,
            workflow=record.workflow,
            attempt=record.attempts + 1,
            start_run=self.start,
        )
        phase = record.phase
        state = dict(record.state)

        try:
            while True:
                transition = await definition.step(ctx, phase, record.args, state)

                if isinstance(transition, Continue):
                    phase, state = transition.phase, transition.state
                    await self.store.checkpoint(run_id, phase, state)
                    continue

                if isinstance(transition, Sleep):
                    wake_at = _utcnow() + timedelta(milliseconds=transition.duration_ms)
                    await self.store.suspend(run_id, transition.phase, transition.state, wake_at)
                    logger.debug(f"Run {run_id} sleeping until {wake_at} (phase={transition.phase})")
                    return

                if isinstance(transition, Complete):
                    await self.store.complete(run_id, transition.result)
                    logger.info(f"Run {run_id} of '{record.workflow}' completed")
                    return

                raise FatalWorkflowError(f"Phase '{phase}' returned {transition!r}")

        except FatalWorkflowError as e:
            logger.warning(f"Run {run_id} failed permanently in phase '{phase}': {e}")
            await self.store.fail(run_id, record.attempts + 1, str(e)[:500])

        except Exception as e:
            attempts = record.attempts + 1
            max_attempts = self.config.max_attempts

            if attempts >= max_attempts:
                logger.error(
                    f"Run {run_id} marked as failed after {max_attempts} attempts: {e}",
                    exc_info=True,
                )
                await self.store.fail(run_id, attempts, str(e)[:500])
            else:
                delay = self.config.retry_delay_seconds(attempts)
                logger.warning(
                    f"Run {run_id} failed in phase '{phase}' ({attempts}/{max_attempts}), "
                    f"retrying in {delay}s: {e}"
                )
                await self.store.schedule_retry(
                    run_id, attempts, str(e)[:500], _utcnow() + timedelta(seconds=delay)
                )
