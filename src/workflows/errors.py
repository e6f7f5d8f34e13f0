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
Workflow Error Types

Exceptions raised by workflow bodies and the workflow engine.
"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for workflow engine errors."""

    pass


class FatalWorkflowError(WorkflowError):
    """
    Raised by a workflow phase when retrying cannot help.

    The engine marks the run as failed immediately instead of scheduling
    another attempt.
    """

    pass


class UnknownWorkflowError(FatalWorkflowError):
    """Raised when a run references a workflow name that is not registered."""

    pass


class RunNotCancellableError(WorkflowError):
    """Raised when a run is finished, unknown, or currently executing a phase."""

    def __init__(self, run_id: str, status: Optional[str] = None):
        self.run_id = run_id
        self.status = status
        super().__init__(f"Run {run_id} cannot be cancelled (status={status})")
