"""
Application infrastructure for the page tree index.

- ConfigManager: settings with persistence
- setup_logging: loguru configuration
- ServiceLocator / BaseSystem: system registry and lifecycle
- DatabaseManager: MongoDB connection used by the ORM
"""
from .exceptions import PageTreeError, ValidationError, StorageError, NodeNotFoundError
from .config import ConfigManager, AppConfig, MongoSettings, GeneralSettings, TreeSettings
from .logging import setup_logging
from .base_system import BaseSystem
from .locator import ServiceLocator
from .database import DatabaseManager
