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
Workflow Definitions

A workflow is a set of named phases. Each phase receives the run's immutable
arguments and its mutable state, and returns a transition telling the engine
what to do next:

- Continue: checkpoint the state and run the next phase right away
- Sleep: checkpoint the state and wake the run again after a delay
- Complete: store the result and finish the run

Phases must only depend on args, state and the injected collaborators, since a
run may be resumed by a different process than the one that started it.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from .errors import FatalWorkflowError


@dataclass
class Continue:
    """Run another phase immediately, under the same lease."""

    phase: str
    state: dict[str, Any] = field(default_factory=dict)


@dataclass
class Sleep:
    """Suspend the run durably for duration_ms, then resume at phase."""

    duration_ms: int
    phase: str
    state: dict[str, Any] = field(default_factory=dict)


@dataclass
class Complete:
    """Finish the run with a JSON-serializable result."""

    result: dict[str, Any] = field(default_factory=dict)


Transition = Union[Continue, Sleep, Complete]


@dataclass
class RunContext:
    """Per-advance context handed to workflow phases."""

    run_id: str
    workflow: str
    attempt: int
    start_run: Callable[[str, dict[str, Any]], Awaitable[str]]

    async def start(self, workflow: str, args: dict[str, Any]) -> str:
        """Start another workflow as an independent run."""
        return await self.start_run(workflow, args)


class Workflow:
    """
    Base class for workflows.

    Subclasses set `name` and implement one `phase_<name>` coroutine per phase.
    Execution begins at `initial_phase`.
    """

    name: str = ""
    initial_phase: str = "start"

    async def step(
        self,
        ctx: RunContext,
        phase: str,
        args: dict[str, Any],
        state: dict[str, Any],
    ) -> Transition:
        handler = getattr(self, f"phase_{phase}", None)
        if handler is None:
            raise FatalWorkflowError(f"Workflow '{self.name}' has no phase '{phase}'")
        return await handler(ctx, args, state)
