"""
Page Tree - Service

Entry points for the content-management layer: subtree fetches and index
maintenance as pages and folders change.
"""
from typing import Any, List, Mapping, Optional, Union
from bson import ObjectId
from loguru import logger

from pagetree.core.base_system import BaseSystem
from pagetree.core.database.manager import DatabaseManager
from pagetree.tree.models import PageTreeNode
from pagetree.tree.resolver import SubtreeResolver, TreeOptions
from pagetree.tree.store import PageTreeStore


class PageTreeService(BaseSystem):
    """
    Wires the tree index store and the subtree resolver to the database.
    """

    # Dependency declarations for topological startup order
    depends_on = [DatabaseManager]

    def __init__(self, locator, config):
        super().__init__(locator, config)
        self.store: Optional[PageTreeStore] = None
        self.resolver: Optional[SubtreeResolver] = None

    async def initialize(self) -> None:
        """Create indexes and build the store and resolver."""
        logger.info("PageTreeService initializing")
        await PageTreeNode.ensure_indexes()
        self.store = PageTreeStore(default_locale=self.config.data.tree.default_locale)
        self.resolver = SubtreeResolver(logger=getattr(self.locator, "logger", None))
        await super().initialize()
        logger.info("PageTreeService ready")

    async def shutdown(self) -> None:
        logger.info("PageTreeService shutting down")
        await super().shutdown()

    # ==================== Entry Points API ====================

    async def fetch_tree(self, opts: TreeOptions) -> List[PageTreeNode]:
        return await self.resolver.fetch_tree(opts)

    async def create_node(self, fields: Mapping[str, Any]) -> PageTreeNode:
        return await self.store.create_node(fields)

    async def update_node(self, node_or_fields: Union[PageTreeNode, Mapping[str, Any]]) -> PageTreeNode:
        return await self.store.update_node(node_or_fields)

    async def delete_node(self, node_id: Union[str, ObjectId]) -> bool:
        return await self.store.delete_node(node_id)

    async def get_node(self, node_id: Union[str, ObjectId]) -> Optional[PageTreeNode]:
        return await self.store.get_node(node_id)

    async def get_by_path(self, path: str, locale_code: Optional[str] = None) -> Optional[PageTreeNode]:
        return await self.store.get_by_path(path, locale_code)
