"""
Interface to the outliner's document graph.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

__all__ = [
    "Block",
    "Page",
    "DocumentGraph",
]


class Page(BaseModel):
    """
    A page in the document graph. Pages may be nested in namespaces, e.g.
    page `Lang/Spanish` has namespace page `Lang`.
    """

    id: int
    name: str
    """
    Normalized (lower-case) name.
    """

    original_name: str = ""
    """
    Name as entered by the user.
    """

    properties: dict[str, Any] = Field(default_factory=dict)

    namespace_id: int | None = None
    """
    Id of the containing namespace page, if any.
    """

    @property
    def title(self) -> str:
        return self.original_name or self.name


class Block(BaseModel):
    """
    A block in the document graph.
    """

    id: int
    """
    Numeric id; ascending ids follow document order.
    """

    uuid: str
    content: str = ""
    format: str = "markdown"
    properties: dict[str, Any] = Field(default_factory=dict)

    parent_id: int | None = None
    """
    Id of the parent block, or `None` for a top-level block.
    """

    page_id: int

    refs: list[str] = Field(default_factory=list)
    """
    Names of pages referenced by this block (including its tags).
    """


@runtime_checkable
class DocumentGraph(Protocol):
    """
    Point lookups into the document graph, plus the single write the sync
    performs: persisting a block's identity.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def path(self) -> Path:
        ...

    def get_block(self, key: int | str) -> Block | None:
        """
        Get block by numeric id or uuid.
        """
        ...

    def get_page(self, page_id: int) -> Page | None:
        ...

    def upsert_block_property(self, uuid: str, key: str, value: Any):
        ...
