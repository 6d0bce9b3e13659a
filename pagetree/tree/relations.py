"""
Page Tree - Relations

A node only stores the identifiers of its content record (`page_id`) and
locale (`locale_code`). The records themselves live in other stores and are
fetched through lookup callables supplied by the caller. A lookup may be a
plain function or a coroutine function.
"""
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from pagetree.tree.models import PageTreeNode

Lookup = Callable[[Any], Union[Any, Awaitable[Any]]]


async def _call(lookup: Lookup, key: Any) -> Any:
    result = lookup(key)
    if inspect.isawaitable(result):
        result = await result
    return result


async def resolve_page(node: PageTreeNode, lookup: Lookup) -> Optional[Any]:
    """Content record behind `node`; None for folders and nodes without a page."""
    if node.is_folder or node.page_id is None:
        return None
    return await _call(lookup, node.page_id)


async def resolve_locale(node: PageTreeNode, lookup: Lookup) -> Any:
    """Locale record of `node`. Existence is assumed; whatever the lookup returns is passed back."""
    return await _call(lookup, node.locale_code)
