"""
Persistence package for ClipBuddy.

Provides the history persistence contract and its Redis backend.
"""

from clipbuddy.database.base import HistoryPersistence
from clipbuddy.database.redis_manager import RedisManager
from clipbuddy.database.schema import ClipboardRecord

__all__ = [
    'ClipboardRecord',
    'HistoryPersistence',
    'RedisManager',
]
