"""Tag helpers and the derived tag index."""

from typing import FrozenSet, Iterable

from clipbuddy.errors import InvalidTagError

TAG_SEPARATOR = ","


def normalize_tag(tag: str) -> str:
    cleaned = tag.strip()
    if not cleaned:
        raise InvalidTagError("Tag must not be empty")
    if TAG_SEPARATOR in cleaned:
        raise InvalidTagError(f"Tag {cleaned!r} must not contain {TAG_SEPARATOR!r}")
    return cleaned


def join_tags(tags: Iterable[str]) -> str:
    # sorted so the stored string is stable across runs
    return TAG_SEPARATOR.join(sorted(tags))


def split_tags(tag_string: str) -> FrozenSet[str]:
    if not tag_string:
        return frozenset()
    return frozenset(part for part in tag_string.split(TAG_SEPARATOR) if part)


def collect_tags(items: Iterable) -> FrozenSet[str]:
    """Tag index: the union of the tag sets of ``items``."""
    tags = set()
    for item in items:
        tags.update(item.tags)
    return frozenset(tags)
