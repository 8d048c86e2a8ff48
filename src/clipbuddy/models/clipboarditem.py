import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional

import ulid

from clipbuddy.models.content import ContentPayload


def new_item_id() -> str:
	return f"i_{ulid.new()}"


@dataclass(frozen=True)
class ClipboardItem:
	"""Immutable history entry. Pin and tag edits produce a replaced copy."""
	item_id: str
	content: ContentPayload
	created_at: datetime
	is_pinned: bool = False
	tags: FrozenSet[str] = field(default_factory=frozenset)

	@classmethod
	def create(cls, content: ContentPayload, created_at: Optional[datetime] = None) -> "ClipboardItem":
		return cls(
			item_id=new_item_id(),
			content=content,
			created_at=created_at or datetime.now(),
		)

	def with_pinned(self, is_pinned: bool) -> "ClipboardItem":
		return dataclasses.replace(self, is_pinned=is_pinned)

	def with_tags(self, tags: FrozenSet[str]) -> "ClipboardItem":
		return dataclasses.replace(self, tags=frozenset(tags))

	@property
	def searchable_text(self) -> str:
		return self.content.searchable_text
