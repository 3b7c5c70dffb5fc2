"""
Extraction of cloze notes from a snapshot graph.
"""

from __future__ import annotations

import logging
import re
from logging import Logger

from ..core.note import SourceNote
from ..core.utils import ANKI_CLOZE_REGEXP, get_prop
from .snapshot import SnapshotGraph

__all__ = [
    "CLOZE_NOTE_TYPE",
    "DISABLE_SYNC_PROPERTY",
    "ClozeNoteSource",
]

CLOZE_NOTE_TYPE = "cloze"

DISABLE_SYNC_PROPERTY = "disable-anki-sync"

_TAG_REGEXP = re.compile(r"(?:^|\s)#(?:\[\[([^\]]+)\]\]|([^\s#,\[\]]+))")


class ClozeNoteSource:
    """
    Each block containing an Anki cloze, e.g. `{{c1::answer}}`, becomes a
    note of type `cloze`.
    """

    _graph: SnapshotGraph
    _logger: Logger

    def __init__(self, graph: SnapshotGraph, *, logger: Logger | None = None):
        self._graph = graph
        self._logger = logger or logging.getLogger()

    def get_notes_from_source_blocks(
        self, existing_notes: list[SourceNote] | None = None
    ) -> list[SourceNote]:
        existing = {note.uuid_type for note in existing_notes or []}
        notes: list[SourceNote] = []

        for block in self._graph.iter_blocks():
            if not ANKI_CLOZE_REGEXP.search(block.content):
                continue

            if get_prop(block.properties, DISABLE_SYNC_PROPERTY) in (
                True,
                "true",
            ):
                continue

            page = self._graph.get_page(block.page_id)
            if page is None:
                self._logger.warning(
                    f"Page {block.page_id} of block {block.uuid} not found"
                )
                continue

            note = SourceNote(
                block.uuid,
                CLOZE_NOTE_TYPE,
                page,
                content=block.content,
                format=block.format,
                properties=dict(block.properties),
                tags=_find_tags(block.content),
            )

            if note.uuid_type in existing:
                continue

            notes.append(note)

        self._logger.debug(f"Found {len(notes)} cloze notes")
        return notes


def _find_tags(content: str) -> list[str]:
    """
    Get tags written inline, e.g. `#verbs` or `#[[irregular verbs]]`.
    """
    return [
        m.group(1) or m.group(2) for m in _TAG_REGEXP.finditer(content)
    ]
