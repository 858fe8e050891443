#!/usr/bin/env python3
"""
Secure Configuration Management for the catalog spider
Supports environment variables, a config.json file, and secure credential handling
"""

import os
import json
import logging
from typing import Dict, Optional, Any
from pathlib import Path
from dataclasses import dataclass

from .errors import FatalSetupError

logger = logging.getLogger(__name__)

ENV_PREFIX = 'DHTCATALOG_'
DEFAULT_CONFIG_FILE = Path('config.json')


@dataclass
class DatabaseConfig:
    """Database configuration with validation"""
    host: str
    database: str
    user: str
    password: str = ''
    port: int = 5432
    schema: Optional[str] = None
    pool_size: int = 100
    min_pool_size: int = 10
    max_lifetime: float = 3600.0
    timeout: int = 30

    def __post_init__(self):
        """Validate configuration after initialization"""
        if not self.host:
            raise ValueError("Database host is required")
        if not self.database:
            raise ValueError("Database name is required")
        if not self.user:
            raise ValueError("Database user is required")
        if not (1 <= self.port <= 65535):
            raise ValueError("Database port must be between 1 and 65535")
        if self.pool_size < 1:
            raise ValueError("Database pool_size must be at least 1")
        self.min_pool_size = min(self.min_pool_size, self.pool_size)

    def get_connection_string(self, hide_password: bool = True) -> str:
        """Get connection string representation"""
        password = "***" if hide_password else self.password
        conninfo = (
            f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.database}"
        )
        if self.schema:
            conninfo += f"?options=-c%20search_path%3D{self.schema}"
        return conninfo


class SecureConfigManager:
    """Loads the raw configuration tree from the environment and config.json"""

    def __init__(self, config_file: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        self._config_file = Path(config_file) if config_file else DEFAULT_CONFIG_FILE
        self._environ = os.environ if environ is None else environ
        self._file_data: Optional[Dict[str, Any]] = None

    @property
    def config_file(self) -> Path:
        return self._config_file

    def load_file(self) -> Dict[str, Any]:
        """Read config.json once; a missing file is an empty tree."""
        if self._file_data is None:
            if self._config_file.exists():
                logger.info(f"Loading configuration from {self._config_file}")
                try:
                    with open(self._config_file, 'r', encoding='utf-8') as f:
                        self._file_data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise FatalSetupError(f"Cannot read configuration file {self._config_file}: {e}", e)
                if not isinstance(self._file_data, dict):
                    raise FatalSetupError(f"Configuration file {self._config_file} must hold a JSON object")
            else:
                self._file_data = {}
        return self._file_data

    def env(self, name: str) -> Optional[str]:
        value = self._environ.get(ENV_PREFIX + name)
        return value if value else None

    def get_database_config(self) -> DatabaseConfig:
        """
        Get database configuration, environment variables taking priority over
        the ``database`` section of config.json.

        Raises:
            FatalSetupError: when required settings are missing or invalid
        """
        section = dict(self.load_file().get('database') or {})

        overrides = {
            'host': self.env('DB_HOST'),
            'port': self.env('DB_PORT'),
            'name': self.env('DB_NAME'),
            'user': self.env('DB_USER'),
            'password': self.env('DB_PASSWORD'),
            'schema': self.env('DB_SCHEMA'),
            'pool_size': self.env('DB_POOL_SIZE'),
            'timeout': self.env('DB_TIMEOUT'),
        }
        for key, value in overrides.items():
            if value is not None:
                section[key] = value

        missing = [key for key in ('host', 'name', 'user') if not section.get(key)]
        if missing:
            raise FatalSetupError(f"Incomplete database configuration, missing: {', '.join(missing)}")

        try:
            config = DatabaseConfig(
                host=str(section['host']),
                database=str(section['name']),
                user=str(section['user']),
                password=str(section.get('password') or ''),
                port=int(section.get('port', 5432)),
                schema=section.get('schema') or None,
                pool_size=int(section.get('pool_size', 100)),
                min_pool_size=int(section.get('min_pool_size', 10)),
                max_lifetime=float(section.get('max_lifetime', 3600.0)),
                timeout=int(section.get('timeout', 30)),
            )
        except (TypeError, ValueError) as e:
            raise FatalSetupError(f"Invalid database configuration: {e}", e)

        logger.info(f"Database: {config.get_connection_string(hide_password=True)}")
        return config

    def get_config_info(self) -> Dict[str, Any]:
        """Get configuration information (without sensitive data)"""
        config = self.get_database_config()
        return {
            'database': {
                'host': config.host,
                'port': config.port,
                'database': config.database,
                'user': config.user,
                'connection_string': config.get_connection_string(hide_password=True),
                'pool_size': config.pool_size,
                'timeout': config.timeout
            },
            'config_sources': {
                'env_variables': any(k.startswith(ENV_PREFIX) for k in self._environ),
                'config_file': self._config_file.exists(),
            }
        }
