#!/usr/bin/env python3
"""
Announce feeds.

The DHT component itself lives outside this package. It delivers metadata
through an AnnounceFeed and receives "announce_peer" notifications back as
metadata requests, unchanged.
"""

import base64
import binascii
import importlib
import json
import logging
import queue
import sys
import threading
from typing import Callable, IO, Optional

from ..catalog.models import AnnounceEvent
from ..core.errors import FatalSetupError

logger = logging.getLogger(__name__)

MetadataRequester = Callable[[bytes, str, int], None]


class AnnounceFeed:
    """Base feed: a source of AnnounceEvents plus the announce_peer pass-through"""

    def __init__(self, metadata_requester: Optional[MetadataRequester] = None):
        self.metadata_requester = metadata_requester
        self._closed = threading.Event()

    def next_event(self, timeout: float) -> Optional[AnnounceEvent]:
        """Return the next event, or None if nothing arrived within ``timeout``."""
        raise NotImplementedError

    def on_announce_peer(self, info_hash: bytes, ip: str, port: int):
        """A peer announced ``info_hash``: ask the DHT side for its metadata."""
        if self.metadata_requester is not None:
            self.metadata_requester(info_hash, ip, port)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self):
        self._closed.set()


class QueueFeed(AnnounceFeed):
    """In-process bridge: the DHT component calls ``publish`` from its own thread"""

    def __init__(self, metadata_requester: Optional[MetadataRequester] = None, maxsize: int = 1024):
        super().__init__(metadata_requester)
        self._queue: "queue.Queue[AnnounceEvent]" = queue.Queue(maxsize=maxsize)

    def publish(self, info_hash: bytes, raw_metadata: bytes):
        if self.closed:
            return
        self._queue.put(AnnounceEvent(info_hash=info_hash, raw_metadata=raw_metadata))

    def next_event(self, timeout: float) -> Optional[AnnounceEvent]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class ReplayFeed(AnnounceFeed):
    """
    Replays recorded announcements, one JSON object per line:

        {"info_hash": "<40 hex chars>", "metadata": "<base64 bencoded info dict>"}

    Lines that cannot be parsed are logged and skipped. The feed closes at EOF.
    """

    def __init__(self, stream: IO[str], metadata_requester: Optional[MetadataRequester] = None):
        super().__init__(metadata_requester)
        self._stream = stream
        self._line_number = 0

    @classmethod
    def open(cls, path: str) -> 'ReplayFeed':
        if path == "-":
            return cls(sys.stdin)
        try:
            return cls(open(path, "r", encoding="utf-8"))
        except OSError as e:
            raise FatalSetupError(f"Cannot open replay file {path}: {e}", e)

    def next_event(self, timeout: float) -> Optional[AnnounceEvent]:
        while not self.closed:
            line = self._stream.readline()
            if not line:
                self.close()
                return None
            self._line_number += 1
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
                return AnnounceEvent(
                    info_hash=bytes.fromhex(record["info_hash"]),
                    raw_metadata=base64.b64decode(record["metadata"], validate=True),
                )
            except (ValueError, KeyError, TypeError, binascii.Error) as e:
                logger.warning(f"Skipping replay line {self._line_number}: {e}")
        return None

    def close(self):
        super().close()
        if self._stream is not sys.stdin:
            self._stream.close()


def load_feed_factory(spec: str) -> Callable:
    """Resolve ``module:callable`` to the factory that builds a production feed."""
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise FatalSetupError(f"Feed factory must look like 'module:callable', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise FatalSetupError(f"Cannot load feed factory {spec!r}: {e}", e)


def build_feed(spider_config) -> AnnounceFeed:
    """Build the feed named by the spider configuration."""
    if spider_config.replay_path:
        logger.info(f"Replaying announcements from {spider_config.replay_path}")
        return ReplayFeed.open(spider_config.replay_path)
    if spider_config.feed_factory:
        factory = load_feed_factory(spider_config.feed_factory)
        try:
            feed = factory(spider_config)
        except OSError as e:
            raise FatalSetupError(
                f"Feed factory {spider_config.feed_factory!r} failed on port {spider_config.port}: {e}", e
            ) from e
        if not isinstance(feed, AnnounceFeed):
            raise FatalSetupError(f"Feed factory {spider_config.feed_factory!r} did not return an AnnounceFeed")
        logger.info(f"Announce feed ready on port {spider_config.port}")
        return feed
    raise FatalSetupError("No announce feed configured (use --replay or --feed-factory)")
