from abc import ABC, abstractmethod
from typing import List

from clipbuddy.models.clipboarditem import ClipboardItem


class HistoryPersistence(ABC):
    """Durable record of the clipboard history.

    Every write is independently durable. Writes raise
    :class:`~clipbuddy.errors.PersistenceWriteError` on failure; ``load_all``
    never raises and returns an empty list when the store is unreadable.
    """

    @abstractmethod
    def load_all(self) -> List[ClipboardItem]:
        """All decodable items, newest first."""

    @abstractmethod
    def upsert(self, item: ClipboardItem) -> None:
        pass

    @abstractmethod
    def update_pin(self, item_id: str, is_pinned: bool) -> None:
        pass

    @abstractmethod
    def update_tags(self, item_id: str, tag_string: str) -> None:
        pass

    @abstractmethod
    def delete(self, item_id: str) -> None:
        pass

    @abstractmethod
    def delete_all(self) -> None:
        pass
