"""
Bounded walks up the block and namespace hierarchies.
"""

from __future__ import annotations

import logging
from typing import Iterator

from .graph import Block, DocumentGraph, Page

__all__ = [
    "MAX_WALK_DEPTH",
    "walk_blocks",
    "walk_namespaces",
]

MAX_WALK_DEPTH = 1000
"""
Cap on the number of ancestors visited, since the graph may be modified
concurrently and contain cycles.
"""

_logger = logging.getLogger(__name__)


def walk_blocks(graph: DocumentGraph, start: int | str | None) -> Iterator[Block]:
    """
    Yield the block identified by `start` followed by its ancestors, up to
    the top-level block.
    """
    current: int | str | None = start
    seen: set[int] = set()

    while current is not None and len(seen) < MAX_WALK_DEPTH:
        block = graph.get_block(current)
        if block is None or block.id in seen:
            break

        seen.add(block.id)
        yield block

        current = block.parent_id

    if current is not None and len(seen) >= MAX_WALK_DEPTH:
        _logger.warning(f"Block walk from {start} exceeded {MAX_WALK_DEPTH}")


def walk_namespaces(graph: DocumentGraph, page_id: int | None) -> Iterator[Page]:
    """
    Yield the page with the given id followed by its namespace ancestors.
    """
    current = page_id
    seen: set[int] = set()

    while current is not None and len(seen) < MAX_WALK_DEPTH:
        if current in seen:
            break

        page = graph.get_page(current)
        if page is None:
            break

        seen.add(current)
        yield page

        current = page.namespace_id
