"""Clipboard content payloads.

A payload is exactly one of :class:`TextContent`, :class:`ImageContent` or
:class:`FileContent`. Each variant knows its persisted type tag, its raw bytes
and the text used for display and search.
"""

from dataclasses import dataclass
from pathlib import PurePath
from typing import Tuple, Union

from clipbuddy.errors import DecodeError

TEXT = "text"
IMAGE = "image"
FILE = "file"


@dataclass(frozen=True)
class TextContent:
    text: str

    @property
    def type_tag(self) -> str:
        return TEXT

    @property
    def data(self) -> bytes:
        return self.text.encode("utf-8")

    @property
    def searchable_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class ImageContent:
    data: bytes

    @property
    def type_tag(self) -> str:
        return IMAGE

    @property
    def searchable_text(self) -> str:
        return "Image"

    def __repr__(self) -> str:
        return f"ImageContent(<{len(self.data)} bytes>)"


@dataclass(frozen=True)
class FileContent:
    path: str

    @property
    def type_tag(self) -> str:
        return FILE

    @property
    def data(self) -> bytes:
        return self.path.encode("utf-8")

    @property
    def searchable_text(self) -> str:
        return PurePath(self.path).name


ContentPayload = Union[TextContent, ImageContent, FileContent]


def to_record(content: ContentPayload) -> Tuple[str, bytes]:
    return content.type_tag, content.data


def decode_content(type_tag: str, data: bytes) -> ContentPayload:
    """Rebuild a payload from its persisted ``(type_tag, bytes)`` pair.

    Raises:
        DecodeError: unknown type tag, or bytes that are not UTF-8 for the
            text and file variants.
    """
    if type_tag == IMAGE:
        return ImageContent(bytes(data))

    if type_tag in (TEXT, FILE):
        try:
            decoded = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"{type_tag} payload is not valid UTF-8", exc)
        if type_tag == TEXT:
            return TextContent(decoded)
        return FileContent(decoded)

    raise DecodeError(f"Unknown content type {type_tag!r}")


def preview(content: ContentPayload, limit: int = 60) -> str:
    text = content.searchable_text.replace("\n", " ")
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
