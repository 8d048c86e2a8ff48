"""Ordered, capacity-bounded clipboard history.

The store is owned by a single thread (the clipboard service's worker).
Nothing here is locked: callers on other threads go through
:meth:`clipbuddy.services.clipboard_service.ClipboardService.call_soon`.
"""

import itertools
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from clipbuddy.clipboard.base import Pasteboard
from clipbuddy.config import DEFAULT_MAX_ITEMS
from clipbuddy.database.base import HistoryPersistence
from clipbuddy.errors import PersistenceWriteError
from clipbuddy.models.clipboarditem import ClipboardItem
from clipbuddy.models.content import ContentPayload, preview
from clipbuddy.models.tags import collect_tags, join_tags, normalize_tag

logger = logging.getLogger(__name__)


class StoreEvent(Enum):
    ITEMS_CHANGED = "items_changed"
    TAGS_CHANGED = "tags_changed"


Observer = Callable[[StoreEvent], None]


class HistoryStore:
    """Clipboard history with pin-aware retention and a derived tag index.

    Ordering: pinned items first, then newest first by ``created_at``; equal
    timestamps keep the later insertion in front. At most ``max_unpinned``
    unpinned items are retained, the oldest unpinned item is evicted first
    and pinned items are never evicted.

    Mutations addressed to an unknown item id are ignored.
    """

    def __init__(
        self,
        pasteboard: Optional[Pasteboard] = None,
        persistence: Optional[HistoryPersistence] = None,
        max_unpinned: int = DEFAULT_MAX_ITEMS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if max_unpinned < 1:
            raise ValueError("max_unpinned must be at least 1")
        self.pasteboard = pasteboard
        self.persistence = persistence
        self.max_unpinned = max_unpinned
        self._clock = clock
        self._items: Dict[str, ClipboardItem] = {}
        self._sequence: Dict[str, int] = {}
        self._order: List[str] = []
        self._tags: FrozenSet[str] = frozenset()
        self._counter = itertools.count()
        self._observers: List[Observer] = []
        # Called after the store itself wrote to the pasteboard.
        self.on_pasteboard_write: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def items(self) -> List[ClipboardItem]:
        return [self._items[item_id] for item_id in self._order]

    @property
    def tags(self) -> FrozenSet[str]:
        return self._tags

    def get(self, item_id: str) -> Optional[ClipboardItem]:
        return self._items.get(item_id)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def query(self, search_text: str = "", tag_filter: Iterable[str] = ()) -> List[ClipboardItem]:
        """Items matching ``search_text`` and any tag of ``tag_filter``, in store order.

        The search is a case-insensitive substring match against each item's
        searchable text. Empty search text and an empty filter match everything.
        """
        needle = search_text.lower()
        wanted = frozenset(tag_filter)
        return [
            item for item in self.items
            if (not needle or needle in item.searchable_text.lower())
            and (not wanted or not wanted.isdisjoint(item.tags))
        ]

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, callback: Observer) -> Callable[[], None]:
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self, *events: StoreEvent) -> None:
        for event in events:
            for callback in list(self._observers):
                try:
                    callback(event)
                except Exception:
                    logger.exception("Observer failed while handling %s", event.value)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def load(self) -> int:
        """Replace the in-memory history with the persisted one."""
        if self.persistence is None:
            return 0

        loaded = self.persistence.load_all()
        self._items.clear()
        self._sequence.clear()
        # oldest first so later timestamps get the higher sequence number
        for item in reversed(loaded):
            self._put(item)
        self._sort()

        evicted = self._enforce_capacity()
        for item in evicted:
            self._persist("delete", item.item_id)
        self._tags = collect_tags(self._items.values())

        logger.info("Loaded %d clipboard items (%d over capacity dropped)",
                    len(self._order), len(evicted))
        self._notify(StoreEvent.ITEMS_CHANGED, StoreEvent.TAGS_CHANGED)
        return len(self._order)

    def insert(self, content: ContentPayload) -> ClipboardItem:
        item = ClipboardItem.create(content, created_at=self._clock())
        self._put(item)
        self._sort()
        evicted = self._enforce_capacity()

        self._persist("upsert", item)
        for old in evicted:
            self._persist("delete", old.item_id)

        logger.info("Clipboard copied: %s %r", content.type_tag, preview(content))
        self._notify(StoreEvent.ITEMS_CHANGED, *self._refresh_tags())
        return item

    def toggle_pin(self, item_id: str) -> None:
        item = self._items.get(item_id)
        if item is None:
            logger.debug("toggle_pin: unknown item %s", item_id)
            return

        updated = item.with_pinned(not item.is_pinned)
        self._items[item_id] = updated
        self._sort()
        self._persist("update_pin", item_id, updated.is_pinned)

        # unpinning can push the unpinned partition over capacity
        for old in self._enforce_capacity():
            self._persist("delete", old.item_id)

        self._notify(StoreEvent.ITEMS_CHANGED, *self._refresh_tags())

    def add_tag(self, item_id: str, tag: str) -> None:
        tag = normalize_tag(tag)
        item = self._items.get(item_id)
        if item is None:
            logger.debug("add_tag: unknown item %s", item_id)
            return
        if tag in item.tags:
            return
        self._replace_tags(item, item.tags | {tag})

    def remove_tag(self, item_id: str, tag: str) -> None:
        tag = normalize_tag(tag)
        item = self._items.get(item_id)
        if item is None:
            logger.debug("remove_tag: unknown item %s", item_id)
            return
        if tag not in item.tags:
            return
        self._replace_tags(item, item.tags - {tag})

    def clear_all(self) -> None:
        """Forget every item, pinned ones included, and clear the pasteboard."""
        self._items.clear()
        self._sequence.clear()
        self._order = []
        self._persist("delete_all")

        if self.pasteboard is not None and self.pasteboard.clear():
            self._after_pasteboard_write()

        self._tags = frozenset()
        self._notify(StoreEvent.ITEMS_CHANGED, StoreEvent.TAGS_CHANGED)

    def copy_out(self, item_id: str) -> None:
        item = self._items.get(item_id)
        if item is None:
            logger.debug("copy_out: unknown item %s", item_id)
            return
        if self.pasteboard is None:
            logger.warning("No pasteboard attached, cannot copy %s", item_id)
            return

        if self.pasteboard.write(item.content):
            self._after_pasteboard_write()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _put(self, item: ClipboardItem) -> None:
        self._items[item.item_id] = item
        self._sequence[item.item_id] = next(self._counter)

    def _sort(self) -> None:
        def sort_key(item_id: str):
            item = self._items[item_id]
            return (item.is_pinned, item.created_at, self._sequence[item_id])

        self._order = sorted(self._items, key=sort_key, reverse=True)

    def _enforce_capacity(self) -> List[ClipboardItem]:
        unpinned = [item_id for item_id in self._order if not self._items[item_id].is_pinned]
        overflow = len(unpinned) - self.max_unpinned
        if overflow <= 0:
            return []

        evicted = []
        for item_id in unpinned[-overflow:]:
            evicted.append(self._items.pop(item_id))
            del self._sequence[item_id]
        self._order = [item_id for item_id in self._order if item_id in self._items]
        logger.debug("Evicted %d clipboard items over capacity", len(evicted))
        return evicted

    def _replace_tags(self, item: ClipboardItem, tags: FrozenSet[str]) -> None:
        updated = item.with_tags(tags)
        self._items[item.item_id] = updated
        self._persist("update_tags", item.item_id, join_tags(updated.tags))
        self._refresh_tags()
        self._notify(StoreEvent.ITEMS_CHANGED, StoreEvent.TAGS_CHANGED)

    def _refresh_tags(self) -> List[StoreEvent]:
        tags = collect_tags(self._items.values())
        if tags == self._tags:
            return []
        self._tags = tags
        return [StoreEvent.TAGS_CHANGED]

    def _persist(self, operation: str, *args) -> None:
        if self.persistence is None:
            return
        try:
            getattr(self.persistence, operation)(*args)
        except PersistenceWriteError as e:
            logger.error(f"Persistence {operation} failed, keeping in-memory state: {e}")

    def _after_pasteboard_write(self) -> None:
        if self.on_pasteboard_write is not None:
            self.on_pasteboard_write()
