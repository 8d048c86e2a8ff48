import logging
import struct
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional

import win32clipboard as wc
import win32con
from PIL import Image, ImageGrab

from clipbuddy.clipboard.base import Pasteboard
from clipbuddy.clipboard.imaging import image_to_png, png_to_dib

logger = logging.getLogger(__name__)

# DROPFILES header: pFiles offset, pt.x, pt.y, fNC, fWide
_DROPFILES = struct.pack("<IiiII", 20, 0, 0, 0, 1)


class WindowsPasteboard(Pasteboard):

    def change_count(self) -> int:
        return wc.GetClipboardSequenceNumber()

    @contextmanager
    def _opened(self) -> Iterator[None]:
        # another process may hold the clipboard for a moment
        for attempt in range(3):
            try:
                wc.OpenClipboard()
                break
            except Exception:
                if attempt == 2:
                    raise
                time.sleep(0.05)
        try:
            yield
        finally:
            wc.CloseClipboard()

    def read_string(self) -> Optional[str]:
        with self._opened():
            if not wc.IsClipboardFormatAvailable(wc.CF_UNICODETEXT):
                return None
            return wc.GetClipboardData(wc.CF_UNICODETEXT)

    def read_image_bytes(self) -> Optional[bytes]:
        clipboard_data = ImageGrab.grabclipboard()
        if isinstance(clipboard_data, Image.Image):
            return image_to_png(clipboard_data)
        return None

    def read_file_urls(self) -> Optional[List[str]]:
        with self._opened():
            if not wc.IsClipboardFormatAvailable(win32con.CF_HDROP):
                return None
            files = wc.GetClipboardData(win32con.CF_HDROP)

        if isinstance(files, str):
            files = [files]
        return [str(path) for path in files] or None

    def _clear(self) -> None:
        with self._opened():
            wc.EmptyClipboard()

    def _write_text(self, text: str) -> None:
        with self._opened():
            wc.EmptyClipboard()
            wc.SetClipboardData(wc.CF_UNICODETEXT, text)

    def _write_image(self, png_bytes: bytes) -> None:
        dib_data = png_to_dib(png_bytes)
        with self._opened():
            wc.EmptyClipboard()
            wc.SetClipboardData(win32con.CF_DIB, dib_data)

    def _write_file_urls(self, paths: List[str]) -> None:
        file_list = ("\0".join(paths) + "\0\0").encode("utf-16-le")
        with self._opened():
            wc.EmptyClipboard()
            wc.SetClipboardData(win32con.CF_HDROP, _DROPFILES + file_list)
