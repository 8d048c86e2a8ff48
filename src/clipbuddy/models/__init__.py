from clipbuddy.models.clipboarditem import ClipboardItem, new_item_id
from clipbuddy.models.content import (
    ContentPayload,
    FileContent,
    ImageContent,
    TextContent,
    decode_content,
    to_record,
)
from clipbuddy.models.tags import collect_tags, join_tags, normalize_tag, split_tags

__all__ = [
    'ClipboardItem',
    'ContentPayload',
    'FileContent',
    'ImageContent',
    'TextContent',
    'collect_tags',
    'decode_content',
    'join_tags',
    'new_item_id',
    'normalize_tag',
    'split_tags',
    'to_record',
]
