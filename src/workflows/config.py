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
Workflow Engine Configuration

Polling, leasing and retry parameters for the durable workflow engine.
Values can be overridden via environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class EngineConfig:
    """Configuration for the workflow engine."""

    # How often the engine looks for due runs
    poll_seconds: float = 5.0
    batch_size: int = 25

    # A claimed run is invisible to other pollers (and to cancel) until this expires
    lease_seconds: int = 300

    # Retry policy for phases that raise
    max_attempts: int = 5
    retry_base_seconds: int = 30
    retry_max_seconds: int = 3600

    def retry_delay_seconds(self, attempts: int) -> int:
        """Exponential backoff for the given (1-based) attempt count."""
        delay = self.retry_base_seconds * 2 ** max(attempts - 1, 0)
        return min(delay, self.retry_max_seconds)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables with defaults."""
        return cls(
            poll_seconds=float(os.getenv("WORKFLOW_POLL_SECONDS", "5")),
            batch_size=int(os.getenv("WORKFLOW_BATCH_SIZE", "25")),
            lease_seconds=int(os.getenv("WORKFLOW_LEASE_SECONDS", "300")),
            max_attempts=int(os.getenv("WORKFLOW_MAX_ATTEMPTS", "5")),
            retry_base_seconds=int(os.getenv("WORKFLOW_RETRY_BASE_SECONDS", "30")),
        )
