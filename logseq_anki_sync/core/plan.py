"""
Partitioning of notes into the operations of a sync run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from .note import SourceNote

__all__ = [
    "MASS_DELETE_THRESHOLD",
    "MASS_DELETE_MESSAGE",
    "SyncSelection",
    "SyncPlan",
    "SyncSelector",
    "needs_mass_delete_confirmation",
]

MASS_DELETE_THRESHOLD = 10
"""
Number of deletions, with nothing created or updated, above which the user
is asked for additional confirmation. Guards against a broken identity match
deleting everything.
"""

MASS_DELETE_MESSAGE = (
    "This will delete all your notes in Anki that are generated from this "
    "graph. Are you sure you want to continue?"
)


@dataclass
class SyncSelection:
    """
    Notes selected for each operation.
    """

    to_create: list[SourceNote] = field(default_factory=list)
    to_update: list[SourceNote] = field(default_factory=list)
    to_delete: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.to_create) + len(self.to_update) + len(self.to_delete)


@dataclass
class SyncPlan(SyncSelection):
    """
    Selected operations along with failures accumulated while executing
    them.
    """

    failed_created: dict[str, str] = field(default_factory=dict)
    """
    Mapping of identity composite to error.
    """

    failed_updated: dict[str, str] = field(default_factory=dict)
    """
    Mapping of identity composite to error.
    """

    failed_deleted: dict[int, str] = field(default_factory=dict)
    """
    Mapping of remote id to error.
    """

    @classmethod
    def from_selection(cls, selection: SyncSelection) -> SyncPlan:
        return cls(
            to_create=list(selection.to_create),
            to_update=list(selection.to_update),
            to_delete=list(selection.to_delete),
        )


class SyncSelector(Protocol):
    """
    Lets the user review and narrow the operations of a sync run.
    """

    def select(
        self,
        to_create: list[SourceNote],
        to_update: list[SourceNote],
        to_delete: list[int],
    ) -> SyncSelection | None:
        """
        Return selected operations, or `None` to abort.
        """
        ...

    def confirm(self, message: str) -> bool:
        ...


def needs_mass_delete_confirmation(selection: SyncSelection) -> bool:
    """
    Check whether the selection only deletes, and deletes many notes.
    """
    return (
        len(selection.to_create) == 0
        and len(selection.to_update) == 0
        and len(selection.to_delete) >= MASS_DELETE_THRESHOLD
    )
