"""
Document graph backed by a .yaml snapshot of a graph's pages and blocks.

A snapshot looks like:

```yaml
name: My Graph
pages:
  - id: 1
    name: lang/spanish
    original_name: Lang/Spanish
    properties:
      deck: Spanish
    namespace_id: 2
blocks:
  - id: 10
    uuid: 6530c1c4-0000-4000-8000-000000000001
    content: "El {{c1::perro}} es grande"
    page_id: 1
```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from pydantic import Field

from ..core.graph import Block, Page
from .yaml_model import BaseYamlModel

__all__ = [
    "GraphSnapshot",
    "SnapshotGraph",
]


class GraphSnapshot(BaseYamlModel):
    """
    Serialized pages and blocks of a graph.
    """

    name: str
    pages: list[Page] = Field(default_factory=list)
    blocks: list[Block] = Field(default_factory=list)


class SnapshotGraph:
    """
    Implements {obj}`DocumentGraph` over a {obj}`GraphSnapshot`. Assets are
    resolved relative to `path`, the graph's root folder.
    """

    snapshot: GraphSnapshot

    _path: Path
    _blocks_by_id: dict[int, Block]
    _blocks_by_uuid: dict[str, Block]
    _pages: dict[int, Page]
    _dirty: bool

    def __init__(self, snapshot: GraphSnapshot, path: Path):
        self.snapshot = snapshot
        self._path = path
        self._blocks_by_id = {b.id: b for b in snapshot.blocks}
        self._blocks_by_uuid = {b.uuid: b for b in snapshot.blocks}
        self._pages = {p.id: p for p in snapshot.pages}
        self._dirty = False

    @classmethod
    def load(cls, file: Path) -> SnapshotGraph:
        """
        Load snapshot from .yaml file. The file's folder is taken as the
        graph's root.
        """
        return cls(GraphSnapshot.load_yaml(file), file.parent)

    @property
    def name(self) -> str:
        return self.snapshot.name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        """
        Whether a block was modified since loading.
        """
        return self._dirty

    def get_block(self, key: int | str) -> Block | None:
        if isinstance(key, int):
            return self._blocks_by_id.get(key)
        return self._blocks_by_uuid.get(key)

    def get_page(self, page_id: int) -> Page | None:
        return self._pages.get(page_id)

    def iter_blocks(self) -> Iterator[Block]:
        """
        Iterate over blocks in document order.
        """
        return iter(sorted(self._blocks_by_id.values(), key=lambda b: b.id))

    def upsert_block_property(self, uuid: str, key: str, value: Any):
        block = self._blocks_by_uuid.get(uuid)
        if block is None:
            raise KeyError(f"Block not found: {uuid}")

        if block.properties.get(key) != value:
            block.properties[key] = value
            self._dirty = True

    def save(self, file: Path):
        self.snapshot.dump_yaml(file)
        self._dirty = False
