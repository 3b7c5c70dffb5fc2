"""
Settings which affect how notes are rendered and synced.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

__all__ = [
    "BreadcrumbDisplay",
    "SyncSettings",
]


class BreadcrumbDisplay(str, Enum):
    """
    How the breadcrumb is shown on cards.
    """

    HIDDEN = "hidden"
    """Page link is present but hidden"""

    PAGE = "page"
    """Show page name"""

    PAGE_AND_BLOCKS = "page_and_blocks"
    """Show page name and parent blocks context"""


class SyncSettings(BaseModel):
    """
    Encapsulates settings used during a sync run.
    """

    default_deck: str = "Default"
    """
    Deck used when none is found in the note's hierarchy.
    """

    use_namespace_as_default_deck: bool = False
    """
    Derive deck from page namespace when not overridden by any namespace page.
    """

    breadcrumb_display: BreadcrumbDisplay = BreadcrumbDisplay.PAGE
    include_parent_content: bool = False
    skip_on_dependency_hash_match: bool = True

    prewarm_delay: float = 4.0
    """
    Seconds to wait before warming dependency hashes while the user reviews
    the sync selection.
    """
