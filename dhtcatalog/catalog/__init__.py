"""Catalog records, persistence and retry."""

from .models import AnnounceEvent, CatalogEntry, FileEntry, TorrentRecord
from .retry import RetryController
from .store import CatalogStore

__all__ = [
    'AnnounceEvent',
    'CatalogEntry',
    'FileEntry',
    'TorrentRecord',
    'RetryController',
    'CatalogStore',
]
