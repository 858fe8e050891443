"""Catalog data model: announcements, files and canonical torrent records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

INFO_HASH_LENGTH = 20


@dataclass(frozen=True)
class AnnounceEvent:
    """Metadata for one info hash as delivered by the discovery network."""
    info_hash: bytes
    raw_metadata: bytes

    @property
    def info_hash_hex(self) -> str:
        return self.info_hash.hex()


@dataclass(frozen=True)
class FileEntry:
    path: Tuple[str, ...]
    length: int

    @property
    def relative_path(self) -> str:
        return "/".join(self.path)


@dataclass
class TorrentRecord:
    """Canonical torrent record.

    ``search_index`` stays ``None`` until the store inserts the record for
    the first time; timestamps and ``announce_count`` come back from storage.
    """
    info_hash: str
    name: str
    total_length: int
    files: Tuple[FileEntry, ...] = ()
    search_index: Optional[str] = None
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    announce_count: int = 0

    @property
    def has_files(self) -> bool:
        return len(self.files) > 0


@dataclass
class CatalogEntry:
    """A persisted torrent row."""
    id: int
    info_hash: str
    name: str
    has_files: bool
    total_length: int
    first_seen: datetime
    last_seen: datetime
    announce_count: int
    search_index: str
    files: Tuple[FileEntry, ...] = field(default_factory=tuple)
