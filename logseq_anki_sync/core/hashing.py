"""
Dependency hash calculation and the config persisted alongside each
remote note.
"""

from __future__ import annotations

import json
import logging
import threading
from logging import Logger
from typing import Any, Iterable, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .graph import DocumentGraph
from .note import SourceNote
from .settings import SyncSettings
from .utils import base_n_hash
from .walk import walk_blocks, walk_namespaces

__all__ = [
    "DEPENDENCY_VERSION",
    "Payload",
    "EMPTY_PAYLOAD",
    "DependencyConfig",
    "NoteHashCalculator",
]

DEPENDENCY_VERSION = "1"
"""
Version of the hash inputs; bumping it invalidates every stored hash so all
notes are re-rendered on the next sync.
"""


class Payload(NamedTuple):
    """
    Rendered values of a note which are written to the remote store.
    """

    html: str
    assets: Iterable[str] | None
    deck: str
    breadcrumb: str
    tags: Iterable[str] | None
    extra: str

    def canonical(self) -> list[Any]:
        """
        Order-independent form of this payload: Anki may reorder tags, and
        assets are a set.
        """
        return [
            self.html,
            sorted(self.assets or []),
            self.deck,
            self.breadcrumb,
            sorted(self.tags or []),
            self.extra,
        ]


EMPTY_PAYLOAD = Payload("", [], "", "", [], "")


class DependencyConfig(BaseModel):
    """
    Structured data stored in a remote note's `Config` field.
    """

    model_config = ConfigDict(populate_by_name=True)

    dependency_hash: str | None = Field(default=None, alias="dependencyHash")
    assets: list[str] = Field(default_factory=list)

    @classmethod
    def from_field(cls, value: str | None) -> DependencyConfig:
        """
        Decode config from field value, treating anything malformed as an
        empty config.
        """
        if not value:
            return cls()

        try:
            return cls.model_validate_json(value)
        except ValidationError:
            return cls()

    def to_field(self) -> str:
        return self.model_dump_json(by_alias=True)


class NoteHashCalculator:
    """
    Computes a fingerprint over a note's source dependencies and its rendered
    payload.

    The source dependencies (the note's block, its ancestors, its page and
    namespace pages, and the settings affecting rendering) are gathered once
    per note instance and cached. This is the expensive part, and can be
    warmed in the background by {obj}`HashPrewarmer`.
    """

    _graph: DocumentGraph
    _settings: SyncSettings
    _seeds: dict[SourceNote, str]
    _lock: threading.Lock
    _logger: Logger

    def __init__(
        self,
        graph: DocumentGraph,
        settings: SyncSettings,
        *,
        logger: Logger | None = None,
    ):
        self._graph = graph
        self._settings = settings
        self._seeds = {}
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger()

    def get_hash(self, note: SourceNote, payload: Payload) -> str:
        """
        Get the dependency hash of the note with the given payload. Equal
        notes and payloads always produce equal hashes.
        """
        data = [self.get_seed(note), Payload(*payload).canonical()]
        return base_n_hash(_dumps(data).encode())

    def get_seed(self, note: SourceNote) -> str:
        """
        Get the stable seed of this note, computing it if not cached.
        """
        with self._lock:
            seed = self._seeds.get(note)

        if seed is None:
            seed = self._compute_seed(note)
            with self._lock:
                seed = self._seeds.setdefault(note, seed)

        return seed

    def is_cached(self, note: SourceNote) -> bool:
        with self._lock:
            return note in self._seeds

    def _compute_seed(self, note: SourceNote) -> str:
        blocks = [
            [block.content, block.properties, block.refs, block.format]
            for block in walk_blocks(self._graph, note.uuid)
        ]
        pages = [
            [page.title, page.properties]
            for page in walk_namespaces(self._graph, note.page.id)
        ]
        settings = self._settings.model_dump(
            mode="json", exclude={"prewarm_delay"}
        )

        data = [
            DEPENDENCY_VERSION,
            note.uuid_type,
            note.content,
            note.format,
            note.properties,
            sorted(note.tags),
            blocks,
            pages,
            settings,
        ]

        seed = base_n_hash(_dumps(data).encode())
        self._logger.debug(f"Computed dependency seed of {note}: {seed}")
        return seed


def _dumps(data: Any) -> str:
    return json.dumps(data, sort_keys=True, ensure_ascii=False, default=str)
