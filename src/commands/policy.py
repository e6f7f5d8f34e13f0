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

"""Who may use the bot's commands and components."""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger("forgetbot.commands.policy")

NOT_ALLOWED_MESSAGE = "❌ You are not allowed to use this bot."


@dataclass(frozen=True)
class CommandPolicy:
    """
    Allow-list for command execution.

    An empty allow-list lets everyone in.
    """

    allowed_user_ids: frozenset[int] = field(default_factory=frozenset)

    def is_allowed(self, user_id: int) -> bool:
        return not self.allowed_user_ids or user_id in self.allowed_user_ids

    @classmethod
    def from_env(cls) -> "CommandPolicy":
        """Read ALLOWED_USER_IDS (comma separated Discord user IDs)."""
        raw = os.getenv("ALLOWED_USER_IDS", "")
        ids = set()
        for part in raw.split(","):
            part = part.strip()
            if not part:
                continue
            if part.isdigit():
                ids.add(int(part))
            else:
                logger.warning(f"Ignoring invalid user ID in ALLOWED_USER_IDS: {part!r}")
        return cls(allowed_user_ids=frozenset(ids))
