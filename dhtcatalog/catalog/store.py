"""
Catalog store: deduplicating upsert of torrent records into PostgreSQL.

Each call to ``upsert`` runs in its own transaction. A new entry and all of
its file rows are committed together or not at all; a repeated announcement
only bumps ``announce_count`` and ``last_seen``.
"""

import logging
from typing import Callable, List, Optional

import psycopg
from psycopg import errors as pg_errors

from ..core.errors import StoreError, TransientStoreError
from ..indexing.text_indexer import generate_search_index, index_text_for
from .models import CatalogEntry, FileEntry, TorrentRecord

logger = logging.getLogger(__name__)

SELECT_FOR_UPDATE_SQL = "SELECT id FROM torrents WHERE info_hash = %s FOR UPDATE"

INSERT_TORRENT_SQL = """
    INSERT INTO torrents
        (info_hash, name, has_files, total_length, search_index,
         first_seen, last_seen, announce_count)
    VALUES (%s, %s, %s, %s, %s, NOW(), NOW(), 1)
    RETURNING id
"""

INSERT_FILE_SQL = """
    INSERT INTO torrent_files (torrent_id, position, path, length)
    VALUES (%s, %s, %s, %s)
"""

UPDATE_BY_ID_SQL = """
    UPDATE torrents
    SET last_seen = NOW(), announce_count = announce_count + 1
    WHERE id = %s
"""

UPDATE_BY_HASH_SQL = """
    UPDATE torrents
    SET last_seen = NOW(), announce_count = announce_count + 1
    WHERE info_hash = %s
"""

SELECT_ENTRY_SQL = """
    SELECT id, info_hash, name, has_files, total_length,
           first_seen, last_seen, announce_count, search_index
    FROM torrents
    WHERE info_hash = %s
"""

SELECT_FILES_SQL = """
    SELECT path, length FROM torrent_files
    WHERE torrent_id = %s
    ORDER BY position
"""

COUNT_ENTRIES_SQL = "SELECT COUNT(*) FROM torrents"

Indexer = Callable[[TorrentRecord], str]


def default_indexer(record: TorrentRecord) -> str:
    return generate_search_index(index_text_for(record.name, record.files))


class CatalogStore:
    """Transactional insert-or-update of catalog entries keyed by info hash"""

    def __init__(self, database, indexer: Optional[Indexer] = None):
        self.database = database
        self.indexer = indexer or default_indexer

    def upsert(self, record: TorrentRecord) -> bool:
        """
        Insert ``record`` if its info hash is unknown, otherwise count one
        more announcement for the existing entry.

        Returns:
            True when a new entry was created

        Raises:
            TransientStoreError: the database rejected or dropped the transaction
        """
        try:
            try:
                return self._insert_or_update(record)
            except pg_errors.UniqueViolation:
                # a concurrent delivery inserted the same info hash first
                logger.info(f"Concurrent insert for {record.info_hash}, retrying as update")
                self._update_existing(record)
                return False
        except StoreError:
            raise
        except psycopg.Error as e:
            raise TransientStoreError(f"upsert of {record.info_hash} failed: {e}") from e

    def _insert_or_update(self, record: TorrentRecord) -> bool:
        with self.database.transaction() as conn:
            row = conn.execute(SELECT_FOR_UPDATE_SQL, (record.info_hash,)).fetchone()

            if row is not None:
                conn.execute(UPDATE_BY_ID_SQL, (row[0],))
                logger.info(f"Updated torrent: {record.info_hash}")
                return False

            if record.search_index is None:
                record.search_index = self.indexer(record)

            torrent_id = conn.execute(
                INSERT_TORRENT_SQL,
                (record.info_hash, record.name, record.has_files,
                 record.total_length, record.search_index),
            ).fetchone()[0]

            if record.has_files:
                with conn.cursor() as cursor:
                    cursor.executemany(
                        INSERT_FILE_SQL,
                        [(torrent_id, position, entry.relative_path, entry.length)
                         for position, entry in enumerate(record.files)],
                    )

        logger.info(f"New torrent: {record.info_hash}, files: {len(record.files)}")
        return True

    def _update_existing(self, record: TorrentRecord):
        with self.database.transaction() as conn:
            cursor = conn.execute(UPDATE_BY_HASH_SQL, (record.info_hash,))
            if cursor.rowcount != 1:
                raise TransientStoreError(
                    f"entry for {record.info_hash} vanished after a unique violation"
                )
        logger.info(f"Updated torrent: {record.info_hash}")

    # Read helpers ---------------------------------------------------------
    def get_entry(self, info_hash: str) -> Optional[CatalogEntry]:
        with self.database.transaction() as conn:
            row = conn.execute(SELECT_ENTRY_SQL, (info_hash,)).fetchone()
            if row is None:
                return None
            files = conn.execute(SELECT_FILES_SQL, (row[0],)).fetchall()

        return CatalogEntry(
            id=row[0],
            info_hash=row[1].strip(),
            name=row[2],
            has_files=row[3],
            total_length=row[4],
            first_seen=row[5],
            last_seen=row[6],
            announce_count=row[7],
            search_index=row[8],
            files=tuple(FileEntry(path=tuple(path.split("/")), length=length) for path, length in files),
        )

    def get_files(self, torrent_id: int) -> List[FileEntry]:
        with self.database.transaction() as conn:
            rows = conn.execute(SELECT_FILES_SQL, (torrent_id,)).fetchall()
        return [FileEntry(path=tuple(path.split("/")), length=length) for path, length in rows]

    def count_entries(self) -> int:
        with self.database.transaction() as conn:
            row = conn.execute(COUNT_ENTRIES_SQL).fetchone()
        return row[0] if row else 0

    def close(self):
        self.database.close()
