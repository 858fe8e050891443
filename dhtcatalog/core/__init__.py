"""
Core catalog spider components.

This package contains the building blocks shared by every component:
- Configuration and database management
- Error taxonomy
- Logging setup
"""

from .config import CatalogConfig, LifecyclePolicy, SpiderConfig
from .database_manager import DatabaseManager
from .errors import (
    CatalogError,
    ExhaustedRetryError,
    FatalSetupError,
    StoreError,
    TransientStoreError,
    ValidationError,
)
from .secure_config import DatabaseConfig, SecureConfigManager

__all__ = [
    'CatalogConfig',
    'LifecyclePolicy',
    'SpiderConfig',
    'DatabaseManager',
    'DatabaseConfig',
    'SecureConfigManager',
    'CatalogError',
    'ExhaustedRetryError',
    'FatalSetupError',
    'StoreError',
    'TransientStoreError',
    'ValidationError',
]
