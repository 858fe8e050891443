"""Shared fixtures: an in-memory stand-in for the pooled PostgreSQL database."""

from contextlib import contextmanager
from datetime import datetime, timezone

import psycopg
import pytest
from psycopg import errors as pg_errors

from dhtcatalog.catalog import store as store_sql
from dhtcatalog.catalog.retry import RetryController
from dhtcatalog.catalog.store import CatalogStore
from dhtcatalog.core.config import CatalogConfig, SpiderConfig
from dhtcatalog.core.context import RuntimeContext
from dhtcatalog.core.secure_config import DatabaseConfig


class FakeCursor:
    def __init__(self, connection, rows=None, rowcount=-1):
        self.connection = connection
        self._rows = list(rows or [])
        self.rowcount = rowcount

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)

    def execute(self, query, params=None):
        result = self.connection.execute(query, params)
        self._rows, self.rowcount = result._rows, result.rowcount
        return self

    def executemany(self, query, params_seq):
        for params in params_seq:
            self.connection.execute(query, params)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeConnection:
    """One transaction; writes are staged and applied on commit."""

    def __init__(self, database):
        self.db = database
        self.pending_torrents = {}
        self.pending_files = []
        self.pending_bumps = []

    def _all_torrents(self):
        merged = dict(self.db.torrents)
        merged.update(self.pending_torrents)
        return merged

    def _find_id(self, info_hash):
        for torrent_id, row in self._all_torrents().items():
            if row['info_hash'] == info_hash:
                return torrent_id
        return None

    def cursor(self, **kwargs):
        return FakeCursor(self)

    def execute(self, query, params=None):
        self.db.statements.append(query)
        failures = self.db.failures.get(query)
        if failures:
            raise failures.pop(0)

        if query == "SELECT 1":
            return FakeCursor(self, [(1,)])

        if query is store_sql.SELECT_FOR_UPDATE_SQL:
            torrent_id = self._find_id(params[0])
            return FakeCursor(self, [] if torrent_id is None else [(torrent_id,)])

        if query is store_sql.INSERT_TORRENT_SQL:
            info_hash, name, has_files, total_length, search_index = params
            if self.db.before_insert is not None:
                hook, self.db.before_insert = self.db.before_insert, None
                hook(self.db)
            if self._find_id(info_hash) is not None:
                raise pg_errors.UniqueViolation("duplicate key value violates unique constraint")
            torrent_id = self.db.allocate_id()
            now = self.db.now()
            self.pending_torrents[torrent_id] = {
                'info_hash': info_hash, 'name': name, 'has_files': has_files,
                'total_length': total_length, 'search_index': search_index,
                'first_seen': now, 'last_seen': now, 'announce_count': 1,
            }
            return FakeCursor(self, [(torrent_id,)], 1)

        if query is store_sql.INSERT_FILE_SQL:
            torrent_id, position, path, length = params
            self.pending_files.append({'torrent_id': torrent_id, 'position': position,
                                       'path': path, 'length': length})
            return FakeCursor(self, [], 1)

        if query is store_sql.UPDATE_BY_ID_SQL:
            self.pending_bumps.append(params[0])
            return FakeCursor(self, [], 1)

        if query is store_sql.UPDATE_BY_HASH_SQL:
            torrent_id = self._find_id(params[0])
            if torrent_id is None:
                return FakeCursor(self, [], 0)
            self.pending_bumps.append(torrent_id)
            return FakeCursor(self, [], 1)

        if query is store_sql.SELECT_ENTRY_SQL:
            torrent_id = self._find_id(params[0])
            if torrent_id is None:
                return FakeCursor(self, [])
            row = self._all_torrents()[torrent_id]
            return FakeCursor(self, [(
                torrent_id, row['info_hash'], row['name'], row['has_files'], row['total_length'],
                row['first_seen'], row['last_seen'], row['announce_count'], row['search_index'],
            )])

        if query is store_sql.SELECT_FILES_SQL:
            rows = sorted((f for f in self.db.files + self.pending_files if f['torrent_id'] == params[0]),
                          key=lambda f: f['position'])
            return FakeCursor(self, [(f['path'], f['length']) for f in rows])

        if query is store_sql.COUNT_ENTRIES_SQL:
            return FakeCursor(self, [(len(self._all_torrents()),)])

        raise AssertionError(f"unexpected statement: {query}")

    def commit(self):
        self.db.torrents.update(self.pending_torrents)
        self.db.files.extend(self.pending_files)
        now = self.db.now()
        for torrent_id in self.pending_bumps:
            row = self.db.torrents[torrent_id]
            row['announce_count'] += 1
            row['last_seen'] = now
        self.db.commits += 1


class FakeDatabase:
    """Quacks like DatabaseManager for the store and the ingest loop."""

    def __init__(self):
        self.torrents = {}
        self.files = []
        self.statements = []
        self.failures = {}
        self.before_insert = None
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self._next_id = 1

    def allocate_id(self):
        torrent_id = self._next_id
        self._next_id += 1
        return torrent_id

    @staticmethod
    def now():
        return datetime.now(timezone.utc)

    def fail(self, query, *errors):
        """Raise ``errors`` (one per call) the next times ``query`` runs."""
        self.failures.setdefault(query, []).extend(errors)

    def insert_committed(self, info_hash, name="concurrent"):
        """Simulate another process committing an entry."""
        torrent_id = self.allocate_id()
        now = self.now()
        self.torrents[torrent_id] = {
            'info_hash': info_hash, 'name': name, 'has_files': False, 'total_length': 0,
            'search_index': name, 'first_seen': now, 'last_seen': now, 'announce_count': 1,
        }
        return torrent_id

    @contextmanager
    def transaction(self):
        if self.closed:
            raise psycopg.OperationalError("the pool is already closed")
        connection = FakeConnection(self)
        try:
            yield connection
        except Exception:
            self.rollbacks += 1
            raise
        connection.commit()

    def close(self):
        self.closed = True


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def store(fake_db):
    return CatalogStore(fake_db)


@pytest.fixture
def no_sleep_retry():
    return RetryController(attempts=3, delay=2.0, sleep=lambda seconds: None)


@pytest.fixture
def catalog_config():
    return CatalogConfig(
        database=DatabaseConfig(host="localhost", database="catalog", user="spider"),
        spider=SpiderConfig(poll_timeout=0.01, startup_grace=0.0),
    )


@pytest.fixture
def context(catalog_config, fake_db, store, no_sleep_retry):
    return RuntimeContext(config=catalog_config, database=fake_db, store=store, retry=no_sleep_retry)
