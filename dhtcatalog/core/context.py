"""Runtime context assembled once at startup and passed to every component."""

from dataclasses import dataclass

from ..catalog.retry import RetryController
from ..catalog.store import CatalogStore
from .config import CatalogConfig
from .database_manager import DatabaseManager


@dataclass
class RuntimeContext:
    config: CatalogConfig
    database: DatabaseManager
    store: CatalogStore
    retry: RetryController

    @classmethod
    def build(cls, config: CatalogConfig, database: DatabaseManager) -> 'RuntimeContext':
        spider = config.spider
        return cls(
            config=config,
            database=database,
            store=CatalogStore(database),
            retry=RetryController(attempts=spider.retry_attempts, delay=spider.retry_delay),
        )

    def close(self):
        self.database.close()
