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

"""Shared fixtures for forgetbot tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class FakeRedis:
    """In-memory stand-in for the handful of redis.asyncio calls the registry makes."""

    def __init__(self):
        self.sets: dict[str, set[str]] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.strings: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def sadd(self, key, *members):
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(str(m) for m in members)
        return len(bucket) - before

    async def srem(self, key, *members):
        bucket = self.sets.get(key, set())
        removed = 0
        for member in members:
            if str(member) in bucket:
                bucket.discard(str(member))
                removed += 1
        return removed

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def hset(self, key, mapping=None):
        self.hashes.setdefault(key, {}).update({k: str(v) for k, v in (mapping or {}).items()})
        return len(mapping or {})

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            for store in (self.sets, self.hashes, self.strings):
                if key in store:
                    del store[key]
                    removed += 1
            self.ttls.pop(key, None)
        return removed

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    async def setex(self, key, seconds, value):
        self.strings[key] = str(value)
        self.ttls[key] = seconds
        return True

    async def get(self, key):
        return self.strings.get(key)


@pytest.fixture
def fake_redis():
    return FakeRedis()
