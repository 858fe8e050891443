"""
Spider runtime.

- Announce feeds (the boundary with the DHT component)
- The ingest loop
- Lifecycle handling (signals, self-restart)
"""

from .feed import AnnounceFeed, QueueFeed, ReplayFeed, build_feed
from .ingest_loop import EventOutcome, IngestLoop, IngestStats, LoopState
from .lifecycle import SelfRestartSupervisor, install_signal_handlers

__all__ = [
    'AnnounceFeed',
    'QueueFeed',
    'ReplayFeed',
    'build_feed',
    'EventOutcome',
    'IngestLoop',
    'IngestStats',
    'LoopState',
    'SelfRestartSupervisor',
    'install_signal_handlers',
]
