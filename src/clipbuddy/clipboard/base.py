import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from clipbuddy.models.content import ContentPayload, FileContent, ImageContent, TextContent

logger = logging.getLogger(__name__)


class Pasteboard(ABC):
    """Platform clipboard as seen by the history engine.

    Readers return ``None`` when the representation is not present. Writers
    replace the whole clipboard contents and report success as a bool.
    """

    @abstractmethod
    def change_count(self) -> int:
        """Counter that changes every time the clipboard contents change."""

    @abstractmethod
    def read_string(self) -> Optional[str]:
        pass

    @abstractmethod
    def read_image_bytes(self) -> Optional[bytes]:
        """Image on the clipboard, encoded as PNG."""

    @abstractmethod
    def read_file_urls(self) -> Optional[List[str]]:
        """Absolute paths of the files on the clipboard."""

    @abstractmethod
    def _clear(self) -> None:
        pass

    @abstractmethod
    def _write_text(self, text: str) -> None:
        pass

    @abstractmethod
    def _write_image(self, png_bytes: bytes) -> None:
        pass

    @abstractmethod
    def _write_file_urls(self, paths: List[str]) -> None:
        pass

    def write(self, content: ContentPayload) -> bool:
        if isinstance(content, TextContent):
            writer, value = self._write_text, content.text
        elif isinstance(content, ImageContent):
            writer, value = self._write_image, content.data
        elif isinstance(content, FileContent):
            writer, value = self._write_file_urls, [content.path]
        else:
            raise TypeError(f"Unsupported clipboard content: {type(content).__name__}")

        try:
            writer(value)
            return True
        except Exception:
            logger.exception("Failed to write %s to the clipboard", content.type_tag)
            return False

    def clear(self) -> bool:
        try:
            self._clear()
            return True
        except Exception:
            logger.exception("Failed to clear the clipboard")
            return False
