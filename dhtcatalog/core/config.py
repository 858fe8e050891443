#!/usr/bin/env python3
"""
Centralized Configuration Management for the catalog spider
Combines database settings, spider settings and command-line overrides
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import FatalSetupError
from .secure_config import DatabaseConfig, SecureConfigManager

logger = logging.getLogger(__name__)


class LifecyclePolicy(Enum):
    """How a spider process ends its life"""
    GRACEFUL = "graceful"
    SELF_RESTART = "self-restart"


DEFAULT_PORTS = {
    LifecyclePolicy.GRACEFUL: 6881,
    LifecyclePolicy.SELF_RESTART: 6882,
}


@dataclass
class SpiderConfig:
    """Settings for the ingest loop and the announce feed"""
    port: int = 6881
    policy: LifecyclePolicy = LifecyclePolicy.GRACEFUL
    restart_after: int = 100
    prime_nodes: List[str] = field(default_factory=lambda: ["router.bitcomet.com:6881"])
    feed_factory: Optional[str] = None
    replay_path: Optional[str] = None
    poll_timeout: float = 1.0
    startup_grace: float = 2.0
    retry_attempts: int = 3
    retry_delay: float = 2.0

    def __post_init__(self):
        if not (0 < self.port <= 65535):
            raise ValueError("Spider port must be between 1 and 65535")
        if self.restart_after < 1:
            raise ValueError("restart_after must be at least 1")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")


@dataclass
class CatalogConfig:
    """Everything a spider process needs, built once at startup"""
    database: DatabaseConfig
    spider: SpiderConfig
    config_file: Optional[Path] = None
    log_file: Path = Path("logger.log")
    log_level: str = "INFO"

    @classmethod
    def load(cls,
             config_file: Optional[Path] = None,
             port: Optional[int] = None,
             policy: LifecyclePolicy = LifecyclePolicy.GRACEFUL,
             restart_after: Optional[int] = None,
             feed_factory: Optional[str] = None,
             replay_path: Optional[str] = None,
             log_file: Optional[Path] = None,
             log_level: str = "INFO",
             environ=None) -> 'CatalogConfig':
        """
        Load configuration: command-line values win over environment
        variables, which win over config.json, which wins over defaults.

        Raises:
            FatalSetupError: configuration is missing, unreadable or invalid
        """
        manager = SecureConfigManager(config_file, environ=environ)
        database = manager.get_database_config()
        section = manager.load_file().get('spider') or {}

        if port is None:
            env_port = manager.env('SPIDER_PORT')
            port = env_port if env_port is not None else section.get('port')
        if port in (None, ''):
            port = DEFAULT_PORTS[policy]

        try:
            spider = SpiderConfig(
                port=int(port),
                policy=policy,
                restart_after=int(restart_after if restart_after is not None
                                  else section.get('restart_after', 100)),
                prime_nodes=list(section.get('prime_nodes') or ["router.bitcomet.com:6881"]),
                feed_factory=feed_factory or section.get('feed_factory'),
                replay_path=replay_path,
                startup_grace=float(section.get('startup_grace', 2.0)),
            )
        except (TypeError, ValueError) as e:
            raise FatalSetupError(f"Invalid spider configuration: {e}", e)

        return cls(
            database=database,
            spider=spider,
            config_file=Path(config_file) if config_file else None,
            log_file=Path(log_file) if log_file else Path("logger.log"),
            log_level=log_level,
        )

    def to_argv(self) -> List[str]:
        """Command-line arguments that rebuild an equivalent configuration"""
        argv = [
            "--port", str(self.spider.port),
            "--policy", self.spider.policy.value,
            "--restart-after", str(self.spider.restart_after),
            "--log-file", str(self.log_file),
            "--log-level", self.log_level,
        ]
        if self.config_file:
            argv += ["--config", str(self.config_file)]
        if self.spider.feed_factory:
            argv += ["--feed-factory", self.spider.feed_factory]
        return argv
