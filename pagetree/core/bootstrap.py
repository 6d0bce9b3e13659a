"""
Bootstrap helpers.

Builds the configured logger, the service locator and the default systems in
one call:
    locator = await start_page_tree("config.json")
    tree = locator.get_system(PageTreeService)
    nodes = await tree.fetch_tree({"path": "docs/install"})
"""
from typing import Optional

from pymongo import AsyncMongoClient

from .config import ConfigManager
from .database.manager import DatabaseManager
from .locator import ServiceLocator
from .logging import setup_logging


async def start_page_tree(config_path: str = "config.json",
                          client: Optional[AsyncMongoClient] = None,
                          configure_logging: bool = True) -> ServiceLocator:
    """
    Load config, set up logging once, register and start the page tree systems.

    Args:
        config_path: JSON or TOML config file (created with defaults if missing)
        client: Optional pre-built Mongo client, used instead of the configured one
        configure_logging: Set False when the host application owns loguru setup
    """
    from pagetree.tree.service import PageTreeService

    config = ConfigManager(config_path)
    log = None
    if configure_logging:
        general = config.data.general
        log = setup_logging(debug_mode=general.debug_mode, log_dir=general.log_dir)

    locator = ServiceLocator(config, log)
    locator.add_system(DatabaseManager(locator, config, client=client))
    locator.register_system(PageTreeService)
    await locator.start_all()
    return locator
