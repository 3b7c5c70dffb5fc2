"""
Source notes and the collaborators which produce and render them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from .graph import Page
from .utils import get_prop

__all__ = [
    "NOTE_TYPE_PROPERTIES",
    "SourceNote",
    "NoteSource",
    "RenderResult",
    "Renderer",
]

NOTE_TYPE_PROPERTIES = ["ankiNoteType", "anki-note-type"]
"""
Properties selecting a custom destination model for a note.
"""


@dataclass(eq=False)
class SourceNote:
    """
    A unit of content extracted from the document graph, destined to become
    one remote flashcard. Identified by `(uuid, type)`.

    Compared by identity so it can key per-instance caches.
    """

    uuid: str
    type: str
    page: Page
    content: str = ""
    format: str = "markdown"
    properties: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    """
    Tags found by the extractor in the note's own content.
    """

    remote_id: int | None = None
    """
    Remote id once resolved, cached by the engine.
    """

    def __str__(self) -> str:
        return f"SourceNote({self.uuid_type})"

    @property
    def uuid_type(self) -> str:
        """
        Identity composite, stored in remote field `uuid-type`.
        """
        return f"{self.uuid}-{self.type}"

    @property
    def model_override(self) -> str | None:
        """
        Custom model name requested by this note, if any.
        """
        for name in NOTE_TYPE_PROPERTIES:
            value = get_prop(self.properties, name)
            if isinstance(value, list):
                value = value[0] if value else None
            if value:
                return str(value)
        return None


class NoteSource(Protocol):
    """
    Extracts notes of one kind from the document graph.
    """

    def get_notes_from_source_blocks(
        self, existing_notes: list[SourceNote] | None = None
    ) -> list[SourceNote]:
        ...


@dataclass
class RenderResult:
    """
    Destination-ready markup and the local assets it references.
    """

    html: str
    assets: set[str] = field(default_factory=set)


class Renderer(Protocol):
    """
    Converts source markup to destination markup.
    """

    def render(self, raw_text: str, format: str) -> RenderResult:
        ...
