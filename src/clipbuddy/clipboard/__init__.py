from clipbuddy.clipboard.base import Pasteboard
from clipbuddy.clipboard.factory import get_pasteboard, get_pasteboard_class
from clipbuddy.clipboard.memory import MemoryPasteboard

__all__ = [
    'MemoryPasteboard',
    'Pasteboard',
    'get_pasteboard',
    'get_pasteboard_class',
]
