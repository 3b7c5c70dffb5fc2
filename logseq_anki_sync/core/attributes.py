"""
Resolution of a note's rendering attributes by inheritance through the
block hierarchy and page namespaces.

Deck resolution order:

1. `deck` property of the note's block or its nearest ancestor block
2. `deck` property of the note's page or its nearest namespace ancestor
3. Page namespace (without the leaf segment), if the namespace-as-deck
flag resolves true
4. Configured default deck
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from logging import Logger
from typing import Any
from urllib.parse import quote

from .graph import Block, DocumentGraph
from .note import Renderer, RenderResult, SourceNote
from .settings import BreadcrumbDisplay, SyncSettings
from .utils import (
    DECK_SEPARATOR,
    NAMESPACE_SEPARATOR,
    as_list,
    get_prop,
    split_namespace,
    strip_clozes,
    strip_properties,
)
from .walk import walk_blocks, walk_namespaces

__all__ = [
    "HIDE_PARENT_TAG",
    "HIDE_ALL_PARENTS_TAG",
    "NAMESPACE_DECK_PROPERTY",
    "AttributeResolver",
    "normalize_deck",
    "normalize_tags",
]

HIDE_PARENT_TAG = "hide-when-card-parent"
"""
Tag on an ancestor block which collapses it when inlined as parent content.
"""

HIDE_ALL_PARENTS_TAG = "hide-all-card-parent"
"""
Tag on a note which collapses every inlined ancestor.
"""

NAMESPACE_DECK_PROPERTY = "use-namespace-as-default-deck"

FALLBACK_DECK = "Default"

BREADCRUMB_SEPARATOR = " > "

_WHITESPACE_REGEXP = re.compile(r"\s")


class AttributeResolver:
    """
    Walks a note's ancestor chain to resolve deck, tags, breadcrumb, extra
    and inlined parent content.
    """

    _graph: DocumentGraph
    _renderer: Renderer
    _settings: SyncSettings
    _logger: Logger

    def __init__(
        self,
        graph: DocumentGraph,
        renderer: Renderer,
        settings: SyncSettings,
        *,
        logger: Logger | None = None,
    ):
        self._graph = graph
        self._renderer = renderer
        self._settings = settings
        self._logger = logger or logging.getLogger()

    def use_namespace_as_default_deck(self, note: SourceNote) -> bool:
        """
        Resolve the namespace-as-deck flag: the nearest page in the namespace
        chain with an explicit value wins, else the configured value.
        """
        for page in walk_namespaces(self._graph, note.page.id):
            value = get_prop(page.properties, NAMESPACE_DECK_PROPERTY)
            if isinstance(value, list):
                value = value[0] if value else None

            if value in (True, "true"):
                return True
            if value in (False, "false"):
                return False

        return self._settings.use_namespace_as_default_deck

    def resolve_deck(self, note: SourceNote) -> str:
        deck: Any = None

        for block in walk_blocks(self._graph, note.uuid):
            deck = get_prop(block.properties, "deck")
            if deck is not None:
                break

        if deck is None:
            for page in walk_namespaces(self._graph, note.page.id):
                deck = get_prop(page.properties, "deck")
                if deck is not None:
                    break

        if deck is None and self.use_namespace_as_default_deck(note):
            deck = NAMESPACE_SEPARATOR.join(
                split_namespace(note.page.title)[:-1]
            )

        return normalize_deck(
            deck or self._settings.default_deck or FALLBACK_DECK
        )

    def resolve_tags(self, note: SourceNote) -> list[str]:
        """
        Union of the note's own tags and those of its ancestor blocks,
        page and namespace pages, normalized for Anki.
        """
        tags: list[str] = [str(t) for t in note.tags]

        for block in walk_blocks(self._graph, note.uuid):
            tags += [str(t) for t in as_list(get_prop(block.properties, "tags"))]

        for page in walk_namespaces(self._graph, note.page.id):
            tags += [str(t) for t in as_list(get_prop(page.properties, "tags"))]

        return normalize_tags(tags)

    def resolve_breadcrumb(self, note: SourceNote) -> str:
        page_title = note.page.title
        page_url = self._graph_url(page=page_title)
        page_title_esc = html_lib.escape(page_title)

        match self._settings.breadcrumb_display:
            case BreadcrumbDisplay.HIDDEN:
                return (
                    f'<a href="{page_url}" class="hidden">{page_title_esc}</a>'
                )
            case BreadcrumbDisplay.PAGE:
                return f'<a href="{page_url}" title="{page_title_esc}">{page_title_esc}</a>'

        breadcrumb = [
            f'<a href="{page_url}" title="{page_title_esc}">{page_title_esc}</a>'
        ]

        # root-first
        for block in reversed(self._get_ancestors(note)):
            content = strip_clozes(strip_properties(block.content))
            first_line = content.split("\n")[0]
            block_url = self._graph_url(block_id=block.uuid)

            breadcrumb.append(
                f'<a href="{block_url}" title="{html_lib.escape(content)}">{html_lib.escape(first_line)}</a>'
            )

        return BREADCRUMB_SEPARATOR.join(breadcrumb)

    def resolve_extra(self, note: SourceNote) -> RenderResult:
        extra = (
            get_prop(note.properties, "extra")
            or get_prop(note.page.properties, "extra")
            or ""
        )
        if isinstance(extra, list):
            extra = " ".join(str(e) for e in extra)

        block = self._graph.get_block(note.uuid)
        fmt = block.format if block is not None else note.format

        return self._renderer.render(str(extra), fmt)

    def include_parent_content(
        self,
        note: SourceNote,
        rendered: RenderResult,
    ) -> RenderResult:
        """
        Wrap rendered note content in nested lists mirroring its ancestors,
        outermost first. Ancestor assets are merged into the result.

        Only the note's own tags can hide all of its parents; inherited
        tags are not considered.
        """
        own_tags = list(note.tags) + as_list(get_prop(note.properties, "tags"))
        hide_all = HIDE_ALL_PARENTS_TAG in {str(t) for t in own_tags}
        assets = set(rendered.assets)
        parents = list(reversed(self._get_ancestors(note)))

        result = ""
        for parent in parents:
            parent_rendered = self._renderer.render(
                strip_clozes(parent.content), parent.format
            )
            assets |= parent_rendered.assets

            parent_html = parent_rendered.html
            if hide_all or _is_hidden_parent(parent):
                parent_html = f'<span class="hidden-parent">{parent_html}</span>'

            result += f'<ul class="children-list"><li class="{_list_class(parent.properties)}">{parent_html}'

        result += f'<ul class="children-list"><li class="{_list_class(note.properties)}">{rendered.html}</li></ul>'
        result += "</li></ul>" * len(parents)

        return RenderResult(html=result, assets=assets)

    def _get_ancestors(self, note: SourceNote) -> list[Block]:
        """
        Get ancestor blocks of note, innermost first, excluding the note's
        own block.
        """
        block = self._graph.get_block(note.uuid)
        if block is None:
            return []
        return list(walk_blocks(self._graph, block.parent_id))

    def _graph_url(
        self, *, page: str | None = None, block_id: str | None = None
    ) -> str:
        base = f"logseq://graph/{quote(self._graph.name, safe='')}"
        if page is not None:
            return f"{base}?page={quote(page, safe='')}"
        assert block_id is not None
        return f"{base}?block-id={quote(block_id, safe='')}"


def normalize_deck(deck: Any) -> str:
    """
    Take first value of a list-valued deck and convert namespace separators
    to deck separators.
    """
    if isinstance(deck, (list, tuple)):
        deck = deck[0] if deck else ""
    return DECK_SEPARATOR.join(split_namespace(str(deck)))


def normalize_tags(tags: list[str]) -> list[str]:
    """
    Convert tags to Anki's conventions and prune redundant parents: if both
    `A` and `A::B` are present, `A` is dropped.
    """
    normalized = [
        _WHITESPACE_REGEXP.sub("_", tag.replace(NAMESPACE_SEPARATOR, DECK_SEPARATOR))
        for tag in tags
    ]

    # dedupe preserving order
    unique = list(dict.fromkeys(t for t in normalized if t))

    return [
        tag
        for tag in unique
        if not any(
            other != tag and other.startswith(tag + DECK_SEPARATOR)
            for other in unique
        )
    ]


def _is_hidden_parent(block: Block) -> bool:
    refs = [r.lower() for r in block.refs]
    tags = [str(t).lower() for t in as_list(get_prop(block.properties, "tags"))]
    return HIDE_PARENT_TAG in refs or HIDE_PARENT_TAG in tags


def _list_class(properties: dict[str, Any]) -> str:
    numbered = get_prop(properties, "logseq.orderListType") == "number"
    return "children numbered" if numbered else "children"
