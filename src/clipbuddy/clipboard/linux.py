import hashlib
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import unquote, urlparse

from clipbuddy.clipboard.base import Pasteboard
from clipbuddy.clipboard.imaging import to_png

logger = logging.getLogger(__name__)

READ_TIMEOUT = 1.5
WRITE_TIMEOUT = 2.0


def parse_type_list(data: Optional[bytes]) -> List[str]:
    if not data:
        return []
    text = data.decode("utf-8", errors="ignore")
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_paths(data: bytes) -> List[str]:
    """Paths from a ``text/uri-list`` or ``x-special/gnome-copied-files`` body."""
    text = data.decode("utf-8", errors="ignore")
    lines = [line.strip() for line in text.replace(
        "\r", "\n").split("\n") if line.strip()]
    if lines and lines[0].lower() in {"copy", "cut"}:
        lines = lines[1:]

    paths: List[str] = []
    for entry in lines:
        if entry.startswith("#"):
            continue
        parsed = urlparse(entry)
        if parsed.scheme == "file":
            candidate = Path(unquote(parsed.path))
        elif parsed.scheme:
            continue
        else:
            candidate = Path(unquote(entry))
        if candidate.is_absolute():
            paths.append(str(candidate))

    return paths


class LinuxPasteboard(Pasteboard):
    """Clipboard through wl-clipboard on Wayland, xclip on X11.

    Neither tool exposes a change counter, so one is derived: every call to
    :meth:`change_count` snapshots the offered representations and bumps the
    counter when their fingerprint differs from the previous snapshot.
    """

    _FILE_TARGETS = ("x-special/gnome-copied-files", "text/uri-list")
    _IMAGE_TARGETS = (
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/pjpeg",
        "image/bmp",
        "image/x-ms-bmp",
        "image/webp",
    )
    _TEXT_TARGETS = (
        "text/plain;charset=utf-8",
        "text/plain;charset=utf8",
        "utf8_string",
        "text/plain",
        "string",
    )

    def __init__(self) -> None:
        if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-paste"):
            self._wayland = True
        elif shutil.which("xclip"):
            self._wayland = False
        else:
            raise RuntimeError(
                "No clipboard tool found; install wl-clipboard or xclip")
        self._count = 0
        self._fingerprint: Optional[str] = None
        self._snapshot: Optional[Dict[str, bytes]] = None

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def change_count(self) -> int:
        snapshot = self._take_snapshot()
        digest = hashlib.md5()
        for key in sorted(snapshot):
            digest.update(key.encode("utf-8"))
            digest.update(snapshot[key])
        fingerprint = digest.hexdigest()

        if fingerprint != self._fingerprint:
            self._fingerprint = fingerprint
            self._count += 1
        self._snapshot = snapshot
        return self._count

    def read_string(self) -> Optional[str]:
        data = self._current().get("text")
        if data is None:
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Clipboard text is not valid UTF-8, ignoring it: {e}")
            return None

    def read_image_bytes(self) -> Optional[bytes]:
        data = self._current().get("image")
        if data is None:
            return None
        return to_png(data)

    def read_file_urls(self) -> Optional[List[str]]:
        data = self._current().get("files")
        if data is None:
            return None
        return parse_paths(data) or None

    def _current(self) -> Dict[str, bytes]:
        if self._snapshot is None:
            self._snapshot = self._take_snapshot()
        return self._snapshot

    def _take_snapshot(self) -> Dict[str, bytes]:
        # target names are matched case-insensitively but requested verbatim
        offered = {target.lower(): target for target in parse_type_list(self._list_types())}
        snapshot: Dict[str, bytes] = {}

        for key, targets in (
            ("text", self._TEXT_TARGETS),
            ("image", self._IMAGE_TARGETS),
            ("files", self._FILE_TARGETS),
        ):
            for target in targets:
                if target not in offered:
                    continue
                data = self._read_target(offered[target])
                if data:
                    snapshot[key] = data
                    break

        return snapshot

    def _list_types(self) -> Optional[bytes]:
        if self._wayland:
            return self._run_command(["wl-paste", "--list-types"])
        return self._run_command(
            ["xclip", "-selection", "clipboard", "-t", "TARGETS", "-o"])

    def _read_target(self, target: str) -> Optional[bytes]:
        if self._wayland:
            command = ["wl-paste", "--type", target]
            if target.startswith("text/"):
                command.append("--no-newline")
            return self._run_command(command)
        return self._run_command(
            ["xclip", "-selection", "clipboard", "-t", target, "-o"])

    def _run_command(self, command: List[str]) -> Optional[bytes]:
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=READ_TIMEOUT,
            )
            return result.stdout
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def _clear(self) -> None:
        if self._wayland:
            self._write(["wl-copy", "--clear"], b"")
        else:
            self._write(["xclip", "-selection", "clipboard"], b"")

    def _write_text(self, text: str) -> None:
        self._write(self._copy_command("text/plain;charset=utf-8"), text.encode("utf-8"))

    def _write_image(self, png_bytes: bytes) -> None:
        self._write(self._copy_command("image/png"), png_bytes)

    def _write_file_urls(self, paths: List[str]) -> None:
        uri_list = "\n".join(Path(path).as_uri() for path in paths)
        self._write(self._copy_command("text/uri-list"), uri_list.encode("utf-8"))

    def _copy_command(self, mime: str) -> List[str]:
        if self._wayland:
            return ["wl-copy", "--type", mime]
        return ["xclip", "-selection", "clipboard", "-t", mime]

    def _write(self, command: List[str], payload: bytes) -> None:
        # xclip keeps serving the selection from a forked child; leaving
        # stdout attached to a pipe would block until the timeout.
        subprocess.run(
            command,
            input=payload,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
            timeout=WRITE_TIMEOUT,
        )
        self._snapshot = None
