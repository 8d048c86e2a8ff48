from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import redis
from pydantic import ValidationError

from clipbuddy.config import DEFAULT_KEY_PREFIX, RedisConfig
from clipbuddy.database.base import HistoryPersistence
from clipbuddy.database.redis_manager import RedisManager
from clipbuddy.database.schema import ClipboardRecord
from clipbuddy.errors import DecodeError, PersistenceWriteError
from clipbuddy.models.clipboarditem import ClipboardItem

logger = logging.getLogger(__name__)


def create_manager(config: RedisConfig, key_prefix: str = DEFAULT_KEY_PREFIX) -> RedisManager:
    return RedisManager(
        host=config.host,
        port=config.port,
        db=config.db,
        password=config.password,
        decode_responses=config.decode_responses,
        key_prefix=key_prefix,
        socket_timeout=config.socket_timeout,
    )


class RedisService(HistoryPersistence):
    def __init__(
        self,
        manager: Optional[RedisManager] = None,
        config: Optional[RedisConfig] = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        if manager is None:
            manager = create_manager(config or RedisConfig.from_env(), key_prefix)
        self.manager = manager

    def load_all(self) -> List[ClipboardItem]:
        try:
            item_ids = self.manager.get_clipboard_ids()
        except redis.RedisError as e:
            logger.error(f"Could not load clipboard history, starting empty: {e}")
            return []

        items: List[ClipboardItem] = []
        for item_id in item_ids:
            try:
                raw = self.manager.get_clipboard_record(item_id)
            except redis.ResponseError as e:
                # e.g. WRONGTYPE: only this key is bad
                logger.warning(f"Skipping unreadable record {item_id}: {e}")
                continue
            except redis.RedisError as e:
                logger.error(f"Could not load clipboard history, starting empty: {e}")
                return []

            if raw is None:
                logger.warning(f"Index entry {item_id} has no record, skipping")
                continue
            try:
                items.append(ClipboardRecord.model_validate(raw).to_item())
            except (ValidationError, DecodeError) as e:
                logger.warning(f"Skipping unreadable record {item_id}: {e}")

        items.sort(key=lambda item: item.created_at, reverse=True)
        return items

    def upsert(self, item: ClipboardItem) -> None:
        record = ClipboardRecord.from_item(item)
        self._write(
            "save",
            item.item_id,
            lambda: self.manager.save_clipboard_record(
                item.item_id, record.to_hash(), item.created_at.timestamp()),
        )

    def update_pin(self, item_id: str, is_pinned: bool) -> None:
        self._write(
            "update pin for",
            item_id,
            lambda: self.manager.update_clipboard_record(
                item_id, isPinned="1" if is_pinned else "0"),
        )

    def update_tags(self, item_id: str, tag_string: str) -> None:
        self._write(
            "update tags for",
            item_id,
            lambda: self.manager.update_clipboard_record(item_id, tags=tag_string),
        )

    def delete(self, item_id: str) -> None:
        self._write(
            "delete",
            item_id,
            lambda: self.manager.delete_clipboard_record(item_id),
        )

    def delete_all(self) -> None:
        try:
            removed = self.manager.clear_clipboard_records()
        except redis.RedisError as e:
            raise PersistenceWriteError("Could not clear clipboard history", e)
        logger.info(f"Cleared {removed} persisted clipboard items")

    def _write(self, action: str, item_id: str, operation) -> None:
        try:
            operation()
        except redis.RedisError as e:
            raise PersistenceWriteError(f"Could not {action} item {item_id}", e)

    def health_check(self) -> Dict[str, Any]:
        return self.manager.health_check()

    def close(self) -> None:
        self.manager.close()

    def __enter__(self) -> "RedisService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
