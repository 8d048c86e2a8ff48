"""Persisted record schema.

Each history item is a Redis hash at ``<prefix>:item:<itemId>``; the sorted
set ``<prefix>:items`` indexes item ids by creation timestamp::

    {
        "itemId": "i_01J9Z...",
        "type": "text" | "image" | "file",
        "content": "<base64 payload>",
        "createdAt": "2025-10-06T12:45:00.123456",
        "isPinned": "0" | "1",
        "tags": "home,work"
    }
"""

import base64
import binascii
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from clipbuddy.errors import DecodeError
from clipbuddy.models.clipboarditem import ClipboardItem
from clipbuddy.models.content import decode_content, to_record
from clipbuddy.models.tags import join_tags, split_tags


class ClipboardRecord(BaseModel):
    itemId: str = Field(min_length=1)
    type: str
    content: str
    createdAt: datetime
    isPinned: bool = False
    tags: str = ""

    @field_validator("createdAt")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        # items hold naive local time; epoch seconds and "Z" values arrive aware
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @classmethod
    def from_item(cls, item: ClipboardItem) -> "ClipboardRecord":
        type_tag, data = to_record(item.content)
        return cls(
            itemId=item.item_id,
            type=type_tag,
            content=base64.b64encode(data).decode("ascii"),
            createdAt=item.created_at,
            isPinned=item.is_pinned,
            tags=join_tags(item.tags),
        )

    def to_hash(self) -> dict:
        return {
            "itemId": self.itemId,
            "type": self.type,
            "content": self.content,
            "createdAt": self.createdAt.isoformat(),
            "isPinned": "1" if self.isPinned else "0",
            "tags": self.tags,
        }

    def to_item(self) -> ClipboardItem:
        try:
            data = base64.b64decode(self.content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Record {self.itemId} has a corrupt payload", exc)

        return ClipboardItem(
            item_id=self.itemId,
            content=decode_content(self.type, data),
            created_at=self.createdAt,
            is_pinned=self.isPinned,
            tags=split_tags(self.tags),
        )
