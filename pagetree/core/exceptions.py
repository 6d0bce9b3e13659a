"""
Error taxonomy for the page tree index.

Every error raised on purpose by this package derives from PageTreeError, so
callers can catch the whole family with a single except clause.
"""
from typing import Optional


class PageTreeError(Exception):
    """Base exception for all page tree errors."""
    pass


class ValidationError(PageTreeError):
    """Raised when a node or query is missing a required field or is malformed."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid value for '{field}': {reason}")
        self.field = field
        self.reason = reason


class StorageError(PageTreeError):
    """Raised when the storage layer fails during a read or a write."""

    def __init__(self, operation: str, collection: str, cause: Optional[BaseException] = None):
        message = f"Storage operation '{operation}' failed on '{collection}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.operation = operation
        self.collection = collection
        self.cause = cause


class NodeNotFoundError(PageTreeError):
    """Raised when an update targets a node id that does not exist."""

    def __init__(self, node_id):
        super().__init__(f"Page tree node not found: {node_id}")
        self.node_id = node_id
