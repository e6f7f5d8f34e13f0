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
Workflow Run Store

Handles database operations for durable workflow runs. Every run is a row
holding its current phase, state and wake-up time, so a suspended run survives
process restarts and can be resumed by any bot process.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("forgetbot.workflows.store")

ACTIVE_STATUSES = ("pending", "running")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS workflow_runs (
    run_id UUID PRIMARY KEY,
    workflow TEXT NOT NULL,
    args JSONB NOT NULL,
    phase TEXT NOT NULL,
    state JSONB NOT NULL DEFAULT '{}'::jsonb,
    status TEXT NOT NULL DEFAULT 'pending',
    wake_at TIMESTAMPTZ NOT NULL,
    locked_until TIMESTAMPTZ,
    attempts INTEGER NOT NULL DEFAULT 0,
    result JSONB,
    last_error TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS workflow_runs_due_idx
    ON workflow_runs (wake_at)
    WHERE status IN ('pending', 'running');
"""


@dataclass
class RunRecord:
    """A workflow run as stored in the database."""

    run_id: str
    workflow: str
    args: dict[str, Any]
    phase: str
    state: dict[str, Any]
    status: str
    wake_at: datetime
    attempts: int
    result: Optional[dict[str, Any]] = None
    last_error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @classmethod
    def from_row(cls, row: asyncpg.Record) -> "RunRecord":
        result = row.get("result")
        return cls(
            run_id=str(row["run_id"]),
            workflow=row["workflow"],
            args=_load_json(row["args"]),
            phase=row["phase"],
            state=_load_json(row["state"]),
            status=row["status"],
            wake_at=row["wake_at"],
            attempts=row["attempts"],
            result=_load_json(result) if result is not None else None,
            last_error=row.get("last_error"),
        )


def _load_json(value: Any) -> dict[str, Any]:
    # asyncpg hands back JSONB as text unless a codec is registered
    if isinstance(value, str):
        return json.loads(value)
    return dict(value or {})


class RunStore:
    """
    Persistence for workflow runs.

    All mutations of a claimed run are guarded by `status = 'running'` so a
    run that was cancelled between claims is never resurrected.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        """
        Initialize the run store.

        Args:
            db_pool: asyncpg connection pool
        """
        self.db = db_pool

    async def ensure_schema(self) -> None:
        """Create the workflow_runs table if it does not exist."""
        await self.db.execute(SCHEMA_SQL)

    async def insert(
        self,
        workflow: str,
        args: dict[str, Any],
        phase: str,
        wake_at: datetime,
    ) -> str:
        """
        Insert a new pending run.

        Returns:
            The new run ID
        """
        run_id = str(uuid.uuid4())
        await self.db.execute(
            """
            INSERT INTO workflow_runs (run_id, workflow, args, phase, wake_at)
            VALUES ($1, $2, $3::jsonb, $4, $5)
            """,
            run_id,
            workflow,
            json.dumps(args),
            phase,
            wake_at,
        )
        return run_id

    async def fetch(self, run_id: str) -> Optional[RunRecord]:
        """Get a run by ID, or None if it does not exist."""
        row = await self.db.fetchrow(
            """
            SELECT run_id, workflow, args, phase, state, status, wake_at,
                   attempts, result, last_error
            FROM workflow_runs
            WHERE run_id = $1
            """,
            run_id,
        )
        return RunRecord.from_row(row) if row else None

    async def claim_due(
        self,
        now: datetime,
        lease_until: datetime,
        limit: int,
    ) -> list[RunRecord]:
        """
        Claim active runs whose wake-up time has passed.

        Uses SKIP LOCKED so several pollers can share one table without
        claiming the same run twice.
        """
        rows = await self.db.fetch(
            """
            UPDATE workflow_runs
            SET status = 'running', locked_until = $2, updated_at = NOW()
            WHERE run_id IN (
                SELECT run_id FROM workflow_runs
                WHERE status IN ('pending', 'running')
                  AND wake_at <= $1
                  AND (locked_until IS NULL OR locked_until < $1)
                ORDER BY wake_at ASC
                LIMIT $3
                FOR UPDATE SKIP LOCKED
            )
            RETURNING run_id, workflow, args, phase, state, status, wake_at,
                      attempts, result, last_error
            """,
            now,
            lease_until,
            limit,
        )
        return [RunRecord.from_row(row) for row in rows]

    async def checkpoint(self, run_id: str, phase: str, state: dict[str, Any]) -> None:
        """Persist progress without releasing the lease."""
        await self.db.execute(
            """
            UPDATE workflow_runs
            SET phase = $2, state = $3::jsonb, updated_at = NOW()
            WHERE run_id = $1 AND status = 'running'
            """,
            run_id,
            phase,
            json.dumps(state),
        )

    async def suspend(
        self,
        run_id: str,
        phase: str,
        state: dict[str, Any],
        wake_at: datetime,
    ) -> None:
        """Persist progress, release the lease and set the next wake-up time."""
        await self.db.execute(
            """
            UPDATE workflow_runs
            SET phase = $2, state = $3::jsonb, wake_at = $4,
                locked_until = NULL, attempts = 0, last_error = NULL,
                updated_at = NOW()
            WHERE run_id = $1 AND status = 'running'
            """,
            run_id,
            phase,
            json.dumps(state),
            wake_at,
        )

    async def complete(self, run_id: str, result: dict[str, Any]) -> None:
        """Mark a run completed and store its result."""
        await self.db.execute(
            """
            UPDATE workflow_runs
            SET status = 'completed', result = $2::jsonb,
                locked_until = NULL, updated_at = NOW()
            WHERE run_id = $1 AND status = 'running'
            """,
            run_id,
            json.dumps(result),
        )

    async def schedule_retry(
        self,
        run_id: str,
        attempts: int,
        error_message: str,
        wake_at: datetime,
    ) -> None:
        """Record a failed attempt and release the run for a later retry."""
        await self.db.execute(
            """
            UPDATE workflow_runs
            SET attempts = $2, last_error = $3, wake_at = $4,
                locked_until = NULL, updated_at = NOW()
            WHERE run_id = $1 AND status = 'running'
            """,
            run_id,
            attempts,
            error_message,
            wake_at,
        )

    async def fail(self, run_id: str, attempts: int, error_message: str) -> None:
        """Mark a run permanently failed."""
        await self.db.execute(
            """
            UPDATE workflow_runs
            SET status = 'failed', attempts = $2, last_error = $3,
                locked_until = NULL, updated_at = NOW()
            WHERE run_id = $1 AND status = 'running'
            """,
            run_id,
            attempts,
            error_message,
        )

    async def cancel(self, run_id: str, now: datetime) -> bool:
        """
        Cancel an active run that is not currently being advanced.

        Returns:
            True if the run was cancelled, False if it is unknown, finished,
            or leased by a poller right now
        """
        result = await self.db.execute(
            """
            UPDATE workflow_runs
            SET status = 'cancelled', locked_until = NULL, updated_at = NOW()
            WHERE run_id = $1
              AND status IN ('pending', 'running')
              AND (locked_until IS NULL OR locked_until < $2)
            """,
            run_id,
            now,
        )

        cancelled = result == "UPDATE 1"
        if cancelled:
            logger.info(f"Cancelled run {run_id}")
        return cancelled
