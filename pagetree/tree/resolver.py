"""
Page Tree - Subtree Resolver

Answers "what is the subtree under path P?" with one prefix query. The
subtree is always the whole top-level branch containing P: the root segment
node plus every node below it, ordered by path.
"""
from typing import Any, Dict, List, Mapping, Union

from loguru import logger as default_logger
from pymongo import ASCENDING

from pagetree.core.exceptions import StorageError
from pagetree.tree import paths
from pagetree.tree.models import PageTreeNode, TreeQuery

TreeOptions = Union[TreeQuery, Mapping[str, Any]]


class SubtreeResolver:
    """
    Read-only subtree queries over the page tree index.

    Args:
        logger: Logger to report queries and storage failures to; the
            process-wide loguru logger when omitted
    """

    def __init__(self, logger=None):
        self.logger = logger or default_logger

    async def fetch_tree(self, opts: TreeOptions) -> List[PageTreeNode]:
        """
        Fetch the branch containing `opts["path"]`.

        Cache lookups belong here; there is no cache yet, so this always
        goes to storage.
        """
        return await self.fetch_tree_from_db(opts)

    async def fetch_tree_from_db(self, opts: TreeOptions) -> List[PageTreeNode]:
        """
        Fetch the branch containing `opts["path"]` from storage.

        Returns:
            Nodes ordered by path ascending, carrying only the tree columns

        Raises:
            ValidationError: `opts` has no usable path
            StorageError: the query failed (logged, then re-raised as is)
        """
        query = TreeQuery.coerce(opts)
        root = paths.root_path(query.path)
        self.logger.info(f"querying {root}, {query.path}")

        try:
            return await PageTreeNode.find(
                self.build_filter(query, root),
                sort=[("path", ASCENDING), ("locale_code", ASCENDING)],
                projection=PageTreeNode.TREE_COLUMNS,
            )
        except StorageError as e:
            self.logger.warning(
                f"Tree query failed for root '{root}' "
                f"(path '{query.path}', re-derived root '{paths.root_path(query.path)}'): {e}"
            )
            raise

    @staticmethod
    def build_filter(query: TreeQuery, root: str) -> Dict[str, Any]:
        """Root node OR any node under `root/`, narrowed by the optional scopes."""
        mongo_filter: Dict[str, Any] = {
            "$or": [
                {"path": root},
                {"path": {"$regex": paths.subtree_pattern(root)}},
            ]
        }
        if query.locale_code is not None:
            mongo_filter["locale_code"] = query.locale_code
        if query.private_ns is not None:
            mongo_filter["private_ns"] = query.private_ns
        return mongo_filter
