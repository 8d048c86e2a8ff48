import threading
from typing import List, Optional

from clipbuddy.clipboard.base import Pasteboard


class MemoryPasteboard(Pasteboard):
    """Process-local pasteboard for headless runs and tests.

    Several representations may be present at once, the way a real pasteboard
    can hold a string and an image from the same copy.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._text: Optional[str] = None
        self._image: Optional[bytes] = None
        self._files: Optional[List[str]] = None

    def change_count(self) -> int:
        return self._count

    def read_string(self) -> Optional[str]:
        return self._text

    def read_image_bytes(self) -> Optional[bytes]:
        return self._image

    def read_file_urls(self) -> Optional[List[str]]:
        return list(self._files) if self._files is not None else None

    def set_contents(
        self,
        text: Optional[str] = None,
        image: Optional[bytes] = None,
        files: Optional[List[str]] = None,
    ) -> None:
        with self._lock:
            self._text = text
            self._image = image
            self._files = list(files) if files is not None else None
            self._count += 1

    def _clear(self) -> None:
        self.set_contents()

    def _write_text(self, text: str) -> None:
        self.set_contents(text=text)

    def _write_image(self, png_bytes: bytes) -> None:
        self.set_contents(image=png_bytes)

    def _write_file_urls(self, paths: List[str]) -> None:
        self.set_contents(files=paths)
