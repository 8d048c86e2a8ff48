#!/usr/bin/env python3

import argparse
import dataclasses
import logging
import signal
import sys
import time
from typing import Optional

from clipbuddy.clipboard import Pasteboard, get_pasteboard
from clipbuddy.config import EngineConfig
from clipbuddy.models.clipboarditem import ClipboardItem
from clipbuddy.models.content import preview
from clipbuddy.services.clipboard_service import ClipboardService
from clipbuddy.services.history_store import HistoryStore
from clipbuddy.services.redis_service import RedisService

logger = logging.getLogger(__name__)


class ClipBuddyApp:

    def __init__(
        self,
        config: EngineConfig,
        use_redis: bool = True,
        pasteboard: Optional[Pasteboard] = None,
    ):
        self.config = config
        self.use_redis = use_redis
        self.pasteboard = pasteboard
        self.redis_service: Optional[RedisService] = None
        self.store: Optional[HistoryStore] = None
        self.clipboard_service: Optional[ClipboardService] = None
        self.running = False

    def _on_capture(self, item: ClipboardItem):
        logger.debug(f"Recorded {item.item_id}: {preview(item.content)}")

    def start(self):
        if self.running:
            return

        self.running = True

        if self.use_redis:
            try:
                self.redis_service = RedisService(
                    config=self.config.redis, key_prefix=self.config.key_prefix)
                health = self.redis_service.health_check()
                logger.info(
                    f"Redis connected - {self.config.redis.host}:{self.config.redis.port}/{self.config.redis.db}, "
                    f"{health['clipboard_items']} items stored, {health['total_keys']} keys total")
            except Exception as e:
                logger.warning(
                    f"Redis unavailable, continuing without persistence: {e}")
                if self.redis_service is not None:
                    self.redis_service.close()
                    self.redis_service = None
                self.use_redis = False

        if self.pasteboard is None:
            self.pasteboard = get_pasteboard()

        self.store = HistoryStore(
            pasteboard=self.pasteboard,
            persistence=self.redis_service,
            max_unpinned=self.config.max_unpinned,
        )
        self.clipboard_service = ClipboardService(
            self.store,
            poll_interval=self.config.poll_interval,
            ignore_own_writes=self.config.ignore_own_writes,
            on_capture=self._on_capture,
        )
        # runs inline: the owner thread does not exist yet
        self.clipboard_service.call_soon(self.store.load).result()
        self.clipboard_service.start()

        print(f"ClipBuddy running with {len(self.store)} items. Press Ctrl+C to stop")

    def stop(self):
        if not self.running:
            return

        self.running = False

        if self.clipboard_service:
            self.clipboard_service.stop()

        if self.redis_service:
            self.redis_service.close()

        print("ClipBuddy stopped")

    def run_forever(self):
        self.start()

        try:
            while self.running:
                time.sleep(1.0)
        except KeyboardInterrupt:
            print("\nStopping...")
        finally:
            self.stop()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="ClipBuddy - clipboard history with pins and tags"
    )

    parser.add_argument(
        "-i", "--poll-interval",
        type=float,
        default=None,
        help="Clipboard polling interval in seconds (default: 0.5)"
    )

    parser.add_argument(
        "-m", "--max-items",
        type=int,
        default=None,
        help="Maximum number of unpinned items kept (default: 50)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--no-redis",
        action="store_true",
        help="Disable Redis history persistence"
    )

    return parser.parse_args(argv)


def build_config(args) -> EngineConfig:
    config = EngineConfig.from_env()
    overrides = {}
    if args.poll_interval is not None:
        overrides["poll_interval"] = args.poll_interval
    if args.max_items is not None:
        overrides["max_unpinned"] = args.max_items
    return dataclasses.replace(config, **overrides)


def main():
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s')

    try:
        config = build_config(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    app = ClipBuddyApp(config, use_redis=not args.no_redis)

    def signal_handler(signum, frame):
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app.run_forever()
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
