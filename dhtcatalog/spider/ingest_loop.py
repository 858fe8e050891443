#!/usr/bin/env python3
"""
Ingest loop - drives every announcement through decode, normalize, index
and persist, one event at a time.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from ..catalog.models import AnnounceEvent
from ..core.errors import ExhaustedRetryError, ValidationError
from ..indexing.normalizer import decode_metadata, normalize
from .feed import AnnounceFeed

logger = logging.getLogger(__name__)


class LoopState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    RESTARTING = "restarting"
    STOPPED = "stopped"


class EventOutcome(Enum):
    NEW = "new"
    UPDATED = "updated"
    DROPPED = "dropped"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class IngestStats:
    """Per-session outcome counters"""
    started_at: datetime = field(default_factory=datetime.now)
    received: int = 0
    outcomes: Dict[EventOutcome, int] = field(
        default_factory=lambda: {outcome: 0 for outcome in EventOutcome}
    )

    def record(self, outcome: EventOutcome):
        self.received += 1
        self.outcomes[outcome] += 1

    @property
    def observed(self) -> int:
        """Events that reached the catalog"""
        return self.outcomes[EventOutcome.NEW] + self.outcomes[EventOutcome.UPDATED]

    def summary(self) -> Dict[str, object]:
        return {
            'duration': str(datetime.now() - self.started_at),
            'received': self.received,
            **{outcome.value: count for outcome, count in self.outcomes.items()},
        }


class IngestLoop:
    """Single consumer of an AnnounceFeed"""

    def __init__(self, context, feed: AnnounceFeed,
                 restart_after: Optional[int] = None, supervisor=None):
        self.context = context
        self.feed = feed
        self.restart_after = restart_after
        self.supervisor = supervisor
        self.poll_timeout = context.config.spider.poll_timeout

        self.state = LoopState.RUNNING
        self.stats = IngestStats()
        self._stop_requested = threading.Event()
        self._observed_since_restart = 0
        self._shut_down = False

    def request_stop(self):
        """Stop after the in-flight event; safe to call from a signal handler."""
        self._stop_requested.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def process_event(self, event: AnnounceEvent) -> EventOutcome:
        """Run one announcement through the pipeline and record its outcome."""
        outcome = self._process(event)
        self.stats.record(outcome)
        return outcome

    def _process(self, event: AnnounceEvent) -> EventOutcome:
        try:
            metadata = decode_metadata(event.raw_metadata)
            record = normalize(event.info_hash, metadata)
        except ValidationError as e:
            logger.warning(f"Rejected announcement {event.info_hash.hex()}: {e}")
            return EventOutcome.REJECTED

        if record is None:
            return EventOutcome.DROPPED

        try:
            is_new = self.context.retry.persist(self.context.store, record)
        except ExhaustedRetryError as e:
            logger.error(f"Failed to store torrent {record.info_hash}: {e.last_error}")
            return EventOutcome.FAILED

        return EventOutcome.NEW if is_new else EventOutcome.UPDATED

    def _should_restart(self) -> bool:
        return (self.restart_after is not None
                and self.supervisor is not None
                and self._observed_since_restart >= self.restart_after)

    def _hand_over(self) -> bool:
        self.state = LoopState.RESTARTING
        logger.info(f"Processed {self._observed_since_restart} announcements, handing over to a new process")
        if self.supervisor.spawn_successor():
            return True
        logger.error("Successor failed to start, continuing in this process")
        self.state = LoopState.RUNNING
        self._observed_since_restart = 0
        return False

    def run(self) -> IngestStats:
        """Consume events until a stop is requested, the feed closes, or a handover completes."""
        logger.info(f"Ingest loop started (state={self.state.value})")
        try:
            while not self.stop_requested:
                event = self.feed.next_event(self.poll_timeout)
                if event is None:
                    if self.feed.closed:
                        logger.info("Announce feed closed")
                        break
                    continue

                outcome = self.process_event(event)
                if outcome in (EventOutcome.NEW, EventOutcome.UPDATED):
                    self._observed_since_restart += 1

                if self._should_restart() and self._hand_over():
                    break

            if self.state is LoopState.RUNNING:
                self.state = LoopState.DRAINING
        finally:
            self.shutdown()
        return self.stats

    def shutdown(self):
        """Close the store before releasing the feed; runs once."""
        if self._shut_down:
            return
        self._shut_down = True
        try:
            self.context.store.close()
        finally:
            self.feed.close()
            self.state = LoopState.STOPPED

        logger.info("=== SESSION SUMMARY ===")
        for key, value in self.stats.summary().items():
            logger.info(f"{key}: {value}")
