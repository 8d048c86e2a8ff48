"""Service layer for ClipBuddy."""

from clipbuddy.services.clipboard_service import ClipboardService, classify_snapshot
from clipbuddy.services.history_store import HistoryStore, StoreEvent
from clipbuddy.services.redis_service import RedisService

__all__ = ["ClipboardService", "HistoryStore", "RedisService", "StoreEvent", "classify_snapshot"]
