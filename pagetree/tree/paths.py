"""
Materialized path helpers.

Paths are slash-delimited and relative to the locale root, e.g.
"docs/install/linux". The first segment is the root segment and names the
top-level branch a node lives in.
"""
import re
from typing import List, Optional

SEPARATOR = "/"

# Everything up to (not including) the first separator
_ROOT_SEGMENT = re.compile(r"^(.*?)/")


def root_path(path: str) -> str:
    """
    Top-level segment of a path.

    >>> root_path("docs/install/linux")
    'docs'
    >>> root_path("docs")
    'docs'
    """
    match = _ROOT_SEGMENT.match(path)
    return match.group(1) if match else path


def segments(path: str) -> List[str]:
    return path.split(SEPARATOR)


def path_depth(path: str) -> int:
    """Nesting level: number of segments minus one."""
    return len(segments(path)) - 1


def parent_path(path: str) -> Optional[str]:
    """Path of the owning node, or None for a root segment."""
    head, sep, _ = path.rpartition(SEPARATOR)
    return head if sep else None


def path_problem(path: str) -> Optional[str]:
    """Describes why `path` is malformed, or returns None when it is well formed."""
    if not path:
        return "path must not be empty"
    if path.startswith(SEPARATOR) or path.endswith(SEPARATOR):
        return "path must not start or end with a separator"
    if "" in segments(path):
        return "path must not contain empty segments"
    return None


def subtree_pattern(root: str) -> str:
    """Anchored regex matching every strict descendant of `root`."""
    return f"^{re.escape(root + SEPARATOR)}"
