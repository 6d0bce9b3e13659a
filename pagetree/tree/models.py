"""
Page Tree - Models

PageTreeNode is one row of the materialized-path index: a page or a folder,
keyed by (locale_code, path). TreeQuery holds the options of a subtree fetch.
"""
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING

from pagetree.core.database.orm import (
    CollectionRecord, Field, StringField, IntField, BoolField,
    DateTimeField, ObjectIdField, utcnow,
)
from pagetree.core.exceptions import ValidationError
from pagetree.tree import paths


class PageTreeNode(CollectionRecord, table="page_tree",
                   indexes=[([("locale_code", ASCENDING), ("path", ASCENDING)], {"unique": True})]):
    """
    A page or folder in the hierarchy.

    `page_id` and `locale_code` are opaque references owned by other stores;
    see pagetree.tree.relations for resolving them.
    """
    path = StringField(required=True)
    depth = IntField(required=True)
    title = StringField(required=True)
    is_folder = BoolField(default=False)
    is_private = BoolField(default=False)
    private_ns = StringField(default=None)

    # Hierarchy
    parent = ObjectIdField(default=None, index=True)

    # External references
    page_id = Field(default=None)
    locale_code = StringField(default="en")

    created_at = DateTimeField(default=None)
    _write_once = ("created_at",)
    updated_at = DateTimeField(default=None)

    # Columns returned by subtree queries
    TREE_COLUMNS = (
        "path", "depth", "title", "is_private", "is_folder",
        "private_ns", "parent", "page_id", "locale_code",
    )

    @classmethod
    def for_path(cls, path: str, title: str, **fields) -> 'PageTreeNode':
        """Builds a node whose depth is derived from its path."""
        return cls(path=path, title=title, depth=paths.path_depth(path), **fields)

    def clean(self) -> None:
        problem = paths.path_problem(self.path)
        if problem:
            raise ValidationError("path", problem)
        if not self.title:
            raise ValidationError("title", "title must not be empty")
        expected = paths.path_depth(self.path)
        if self.depth != expected:
            raise ValidationError("depth", f"depth {self.depth} does not match path '{self.path}' (expected {expected})")

    def before_insert(self) -> None:
        now = utcnow()
        self.created_at = now
        self.updated_at = now

    def before_update(self) -> None:
        self.updated_at = utcnow()

    @property
    def root_path(self) -> str:
        return paths.root_path(self.path)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def __repr__(self) -> str:
        return f"<PageTreeNode {self.locale_code}:{self.path} id={self.id}>"


class TreeQuery(BaseModel):
    """Options of a subtree fetch. Unset filters match every node."""
    model_config = ConfigDict(frozen=True)

    path: str
    locale_code: Optional[str] = None
    private_ns: Optional[str] = None

    @classmethod
    def coerce(cls, opts: Union['TreeQuery', Mapping[str, Any]]) -> 'TreeQuery':
        """Accepts a TreeQuery or a plain mapping such as {"path": "docs"}."""
        if isinstance(opts, cls):
            query = opts
        else:
            try:
                query = cls.model_validate(dict(opts or {}))
            except PydanticValidationError as e:
                error = e.errors()[0]
                field = ".".join(str(p) for p in error["loc"]) or "opts"
                raise ValidationError(field, error["msg"]) from e
        problem = paths.path_problem(query.path)
        if problem:
            raise ValidationError("path", problem)
        return query
