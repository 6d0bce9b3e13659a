"""
Materialized-path page tree: nodes keyed by (locale, path), subtree fetches
by root segment.
"""
from .paths import root_path, path_depth, parent_path
from .models import PageTreeNode, TreeQuery
from .store import PageTreeStore
from .resolver import SubtreeResolver
from .relations import resolve_page, resolve_locale
from .service import PageTreeService
