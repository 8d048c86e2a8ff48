from datetime import datetime, timedelta
from typing import Dict, List

import fakeredis
import pytest

from clipbuddy.clipboard.memory import MemoryPasteboard
from clipbuddy.database.base import HistoryPersistence
from clipbuddy.database.redis_manager import RedisManager
from clipbuddy.errors import PersistenceWriteError
from clipbuddy.models.clipboarditem import ClipboardItem
from clipbuddy.models.tags import split_tags
from clipbuddy.services.history_store import HistoryStore
from clipbuddy.services.redis_service import RedisService


class TickingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime = datetime(2024, 8, 20, 9, 0, 0), step: float = 1.0):
        self.now = start
        self.step = timedelta(seconds=step)

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


class InMemoryPersistence(HistoryPersistence):
    """Dictionary-backed persistence that can be told to fail writes."""

    def __init__(self) -> None:
        self.records: Dict[str, ClipboardItem] = {}
        self.calls: List[str] = []
        self.fail_writes = False

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_writes:
            raise PersistenceWriteError(f"{name} failed")

    def load_all(self) -> List[ClipboardItem]:
        return sorted(self.records.values(), key=lambda item: item.created_at, reverse=True)

    def upsert(self, item: ClipboardItem) -> None:
        self._check("upsert")
        self.records[item.item_id] = item

    def update_pin(self, item_id: str, is_pinned: bool) -> None:
        self._check("update_pin")
        if item_id in self.records:
            self.records[item_id] = self.records[item_id].with_pinned(is_pinned)

    def update_tags(self, item_id: str, tag_string: str) -> None:
        self._check("update_tags")
        if item_id in self.records:
            self.records[item_id] = self.records[item_id].with_tags(split_tags(tag_string))

    def delete(self, item_id: str) -> None:
        self._check("delete")
        self.records.pop(item_id, None)

    def delete_all(self) -> None:
        self._check("delete_all")
        self.records.clear()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def pasteboard():
    return MemoryPasteboard()


@pytest.fixture
def persistence():
    return InMemoryPersistence()


@pytest.fixture
def store(pasteboard, persistence, clock):
    return HistoryStore(pasteboard=pasteboard, persistence=persistence, clock=clock)


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.close()


@pytest.fixture
def redis_manager(redis_client):
    return RedisManager(client=redis_client, key_prefix="test")


@pytest.fixture
def redis_service(redis_manager):
    return RedisService(manager=redis_manager)
