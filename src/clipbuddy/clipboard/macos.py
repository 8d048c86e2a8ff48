from typing import List, Optional

from AppKit import (
    NSPasteboard,
    NSPasteboardTypePNG,
    NSPasteboardTypeString,
    NSPasteboardTypeTIFF,
)
from Foundation import NSURL

from clipbuddy.clipboard.base import Pasteboard
from clipbuddy.clipboard.imaging import to_png


class MacOSPasteboard(Pasteboard):

    def __init__(self) -> None:
        self._pasteboard = NSPasteboard.generalPasteboard()

    def change_count(self) -> int:
        return int(self._pasteboard.changeCount())

    def read_string(self) -> Optional[str]:
        text = self._pasteboard.stringForType_(NSPasteboardTypeString)
        if text is None:
            return None
        return str(text)

    def read_image_bytes(self) -> Optional[bytes]:
        data = self._pasteboard.dataForType_(NSPasteboardTypePNG)
        if data:
            return bytes(data)

        data = self._pasteboard.dataForType_(NSPasteboardTypeTIFF)
        if data:
            return to_png(bytes(data))
        return None

    def read_file_urls(self) -> Optional[List[str]]:
        urls = self._pasteboard.readObjectsForClasses_options_([NSURL], None)
        if not urls:
            return None
        paths = [str(url.path()) for url in urls if url.isFileURL()]
        return paths or None

    def _clear(self) -> None:
        self._pasteboard.clearContents()

    def _write_text(self, text: str) -> None:
        self._pasteboard.clearContents()
        self._pasteboard.setString_forType_(text, NSPasteboardTypeString)

    def _write_image(self, png_bytes: bytes) -> None:
        from Foundation import NSData

        self._pasteboard.clearContents()
        data = NSData.dataWithBytes_length_(png_bytes, len(png_bytes))
        self._pasteboard.setData_forType_(data, NSPasteboardTypePNG)

    def _write_file_urls(self, paths: List[str]) -> None:
        self._pasteboard.clearContents()
        self._pasteboard.writeObjects_(
            [NSURL.fileURLWithPath_(path) for path in paths])
