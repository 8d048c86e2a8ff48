"""Clipboard change detection for ClipBuddy.

:class:`ClipboardService` polls the pasteboard change counter on a fixed
interval and records new content in a :class:`HistoryStore`. Its worker
thread is the store's owner: polling ticks and every call marshalled through
:meth:`ClipboardService.call_soon` run there, one at a time.
"""

import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from clipbuddy.clipboard.base import Pasteboard
from clipbuddy.config import DEFAULT_POLL_INTERVAL
from clipbuddy.models.clipboarditem import ClipboardItem
from clipbuddy.models.content import ContentPayload, FileContent, ImageContent, TextContent
from clipbuddy.services.history_store import HistoryStore

logger = logging.getLogger(__name__)


class DetectorState(Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"


@dataclass(frozen=True)
class PasteboardSnapshot:
    """What the pasteboard offered for one change, highest priority first."""

    change_count: int
    text: Optional[str] = None
    image: Optional[bytes] = None
    file_urls: Optional[Tuple[str, ...]] = None


def read_snapshot(pasteboard: Pasteboard, change_count: int) -> PasteboardSnapshot:
    """Read representations in priority order, stopping at the first one present."""
    text = pasteboard.read_string()
    if text:
        return PasteboardSnapshot(change_count, text=text)

    image = pasteboard.read_image_bytes()
    if image:
        return PasteboardSnapshot(change_count, image=image)

    files = pasteboard.read_file_urls()
    if files:
        return PasteboardSnapshot(change_count, file_urls=tuple(files))

    return PasteboardSnapshot(change_count)


def classify_snapshot(snapshot: PasteboardSnapshot) -> Optional[ContentPayload]:
    """Text first, then image, then the first file URL. ``None`` if nothing usable."""
    if snapshot.text:
        return TextContent(snapshot.text)
    if snapshot.image:
        return ImageContent(snapshot.image)
    if snapshot.file_urls:
        return FileContent(snapshot.file_urls[0])
    return None


_STOP = object()


class ClipboardService:
    """Polls the pasteboard and feeds new content into the history store."""

    def __init__(
        self,
        store: HistoryStore,
        pasteboard: Optional[Pasteboard] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        ignore_own_writes: bool = True,
        on_capture: Optional[Callable[[ClipboardItem], None]] = None,
        auto_register: bool = False,
        stop_timeout: float = 2.0,
    ) -> None:
        """Initialise the service.

        Args:
            store: History store owned by this service's worker thread.
            pasteboard: Pasteboard to poll. Defaults to the store's pasteboard.
            poll_interval: Seconds between two change-counter checks.
            ignore_own_writes: When ``True`` content the store writes back to
                the pasteboard (copy-out, clear) is not recorded again.
            on_capture: Optional callback that receives each recorded item.
            auto_register: When ``True`` polling starts immediately.
            stop_timeout: Seconds :meth:`stop` waits for the worker to finish
                its current task.
        """
        pasteboard = pasteboard or store.pasteboard
        if pasteboard is None:
            raise ValueError("ClipboardService needs a pasteboard to poll")

        self.store = store
        self.pasteboard = pasteboard
        self.poll_interval = poll_interval
        self.stop_timeout = stop_timeout
        self.state = DetectorState.IDLE
        self._on_capture = on_capture or self._default_handler
        self._last_change_count: Optional[int] = None
        self._tasks: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None
        self._is_running = False

        if ignore_own_writes:
            store.on_pasteboard_write = self.acknowledge_pasteboard

        if auto_register:
            self.start()

    @property
    def is_running(self) -> bool:
        return self._is_running

    # ---------------------------------------------------------------------
    # Lifecycle management
    # ---------------------------------------------------------------------
    def start(self) -> None:
        previous = self._poll_thread
        if previous is not None and not self._is_running:
            if previous is threading.current_thread():
                raise RuntimeError("ClipboardService cannot be restarted from its own worker")
            # a worker that outlived stop() must finish before a new one starts
            previous.join()
            self._poll_thread = None

        with self._lock:
            if self._is_running:
                logger.debug("ClipboardService already running")
                return

            logger.info("Starting ClipboardService polling (interval=%ss)", self.poll_interval)
            self._stop_event.clear()
            self._is_running = True
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="clipbuddy-owner", daemon=True)
            self._poll_thread.start()

    def stop(self) -> None:
        """Stop polling. Safe to call when already stopped."""
        with self._lock:
            if not self._is_running:
                return

            logger.info("Stopping ClipboardService polling")
            self._is_running = False
            self._stop_event.set()
            self._tasks.put(_STOP)

        # join thread outside the lock
        thread = self._poll_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.stop_timeout)
            if thread.is_alive():
                logger.warning("ClipboardService worker still busy after %ss", self.stop_timeout)
            else:
                self._poll_thread = None
        self._cancel_pending()

    def run_forever(self) -> None:
        """Run the service in the foreground until stopped or Ctrl+C."""
        try:
            if not self._is_running:
                self.start()

            while not self._stop_event.wait(timeout=self.poll_interval):
                continue
        except KeyboardInterrupt:
            logger.info("ClipboardService interrupted by user")
        finally:
            self.stop()

    # ---------------------------------------------------------------------
    # Owner context
    # ---------------------------------------------------------------------
    def call_soon(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Run ``fn`` on the owner thread between two polling ticks.

        When the service is not running, or the caller already is the owner
        thread, ``fn`` runs inline. Either way the returned future carries
        the result or the exception.
        """
        future: Future = Future()
        with self._lock:
            inline = (not self._is_running
                      or threading.current_thread() is self._poll_thread)
            if not inline:
                self._tasks.put((future, fn, args, kwargs))
                return future

        self._run_task((future, fn, args, kwargs))
        return future

    def _run_task(self, task) -> None:
        future, fn, args, kwargs = task
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def _cancel_pending(self) -> None:
        while True:
            try:
                task = self._tasks.get_nowait()
            except queue.Empty:
                return
            if task is not _STOP:
                task[0].cancel()

    def _poll_loop(self) -> None:
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            timeout = next_tick - time.monotonic()
            if timeout <= 0:
                self.poll_once()
                # the next tick is armed only once this one has finished
                next_tick = time.monotonic() + self.poll_interval
                continue

            try:
                task = self._tasks.get(timeout=timeout)
            except queue.Empty:
                continue
            if task is _STOP:
                break
            self._run_task(task)

    # ---------------------------------------------------------------------
    # Change detection
    # ---------------------------------------------------------------------
    def poll_once(self) -> Optional[ClipboardItem]:
        """One polling tick. Returns the recorded item, if any.

        The first tick only records the current change counter as baseline,
        so content copied before the service started is not captured.
        """
        try:
            change_count = self.pasteboard.change_count()
        except Exception:
            logger.exception("Could not read the clipboard change counter")
            return None

        if self._last_change_count is None:
            self._last_change_count = change_count
            return None
        if change_count == self._last_change_count:
            return None
        self._last_change_count = change_count

        self.state = DetectorState.CLASSIFYING
        try:
            try:
                content = classify_snapshot(read_snapshot(self.pasteboard, change_count))
            except Exception:
                logger.exception("Could not read clipboard contents")
                return None
            if content is None:
                logger.debug("Clipboard change %s had no usable content", change_count)
                return None

            item = self.store.insert(content)
            try:
                self._on_capture(item)
            except Exception:
                logger.exception("Error while calling on_capture")
            return item
        finally:
            self.state = DetectorState.IDLE

    def acknowledge_pasteboard(self) -> None:
        """Treat the pasteboard's current contents as already seen."""
        try:
            self._last_change_count = self.pasteboard.change_count()
        except Exception:
            logger.exception("Could not read the clipboard change counter")

    @staticmethod
    def _default_handler(item: ClipboardItem) -> None:
        pass

    # ---------------------------------------------------------------------
    # Context manager helpers
    # ---------------------------------------------------------------------
    def __enter__(self) -> "ClipboardService":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
