"""
Page Tree - Store

Durable CRUD surface for PageTreeNode documents with timestamp maintenance.
Parent consistency and rename cascades are left to the caller.
"""
from typing import Any, Mapping, Optional, Union
from bson import ObjectId
from bson.errors import InvalidId
from loguru import logger

from pagetree.core.exceptions import NodeNotFoundError, ValidationError
from pagetree.tree.models import PageTreeNode

# Set by the record hooks, never by callers
_STAMPED = ("created_at", "updated_at")


class PageTreeStore:
    """
    Inserts, updates, looks up and deletes tree index nodes.
    """

    def __init__(self, default_locale: str = "en"):
        self.default_locale = default_locale

    def _check_fields(self, fields: Mapping[str, Any]) -> dict:
        unknown = [k for k in fields if k not in PageTreeNode._fields and k not in ("id", "_id")]
        if unknown:
            raise ValidationError(unknown[0], "unknown field")
        return {k: v for k, v in fields.items() if k not in _STAMPED}

    async def create_node(self, fields: Mapping[str, Any]) -> PageTreeNode:
        """
        Create and persist a node.

        Args:
            fields: Node fields; `path`, `title` and `depth` are required

        Returns:
            The stored node, with its assigned id

        Raises:
            ValidationError: a required field is missing or malformed (nothing is written)
            StorageError: the write failed, e.g. the (locale, path) pair is taken
        """
        data = self._check_fields(fields)
        data.pop("id", None)
        data.pop("_id", None)
        data.setdefault("locale_code", self.default_locale)

        node = PageTreeNode(**data)
        await node.insert()
        logger.info(f"Created tree node: {node.locale_code}:{node.path}")
        return node

    async def update_node(self, node_or_fields: Union[PageTreeNode, Mapping[str, Any]]) -> PageTreeNode:
        """
        Persist changes to an existing node. Only `updated_at` is re-stamped.

        Args:
            node_or_fields: A loaded node, or a mapping with `id` plus the changed fields

        Raises:
            NodeNotFoundError: no node with that id exists
            ValidationError: the resulting node is malformed
        """
        if isinstance(node_or_fields, PageTreeNode):
            node = node_or_fields
        else:
            changes = self._check_fields(node_or_fields)
            node_id = changes.pop("id", None)
            alias = changes.pop("_id", None)
            if node_id is None:
                node_id = alias
            elif alias is not None and str(alias) != str(node_id):
                raise ValidationError("id", f"'id' ({node_id}) and '_id' ({alias}) name different nodes")
            if node_id is None:
                raise ValidationError("id", "field is required")
            node = await self.get_node(node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            for name, value in changes.items():
                setattr(node, name, value)

        if not await node.update():
            raise NodeNotFoundError(node.id)
        logger.debug(f"Updated tree node: {node.locale_code}:{node.path}")
        return node

    async def get_node(self, node_id: Union[str, ObjectId]) -> Optional[PageTreeNode]:
        try:
            oid = ObjectId(node_id)
        except (InvalidId, TypeError):
            raise ValidationError("id", f"not a valid node id: {node_id!r}")
        return await PageTreeNode.get(oid)

    async def get_by_path(self, path: str, locale_code: Optional[str] = None) -> Optional[PageTreeNode]:
        return await PageTreeNode.find_one({
            "path": path,
            "locale_code": locale_code or self.default_locale,
        })

    async def delete_node(self, node_id: Union[str, ObjectId]) -> bool:
        """
        Delete exactly one node. Descendants are not touched.

        Returns:
            True if a node was removed
        """
        node = await self.get_node(node_id)
        if node is None:
            return False
        deleted = await node.delete()
        if deleted:
            logger.info(f"Deleted tree node: {node.locale_code}:{node.path}")
        return deleted
