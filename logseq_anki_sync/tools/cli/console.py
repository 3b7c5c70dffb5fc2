"""
Console implementations of the sync run's user interactions.
"""

from __future__ import annotations

import typer
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
)
from rich.table import Table

from ...core.note import SourceNote
from ...core.plan import SyncSelection
from ...core.reporting import SyncResult
from ._utils import console, logger

__all__ = [
    "ConsoleSelector",
    "ConsoleNotifier",
    "RichProgress",
]

MAX_LISTED = 20
"""
Max number of items listed per operation when reviewing a selection.
"""


class ConsoleSelector:
    """
    Shows pending operations in a table and asks the user to proceed.
    With `yes`, proceeds without asking; with `dry_run`, never proceeds.

    Confirmations such as the mass delete gate are only answered without
    asking if `force_delete` is set; `yes` alone declines them.
    """

    yes: bool
    dry_run: bool
    force_delete: bool

    def __init__(
        self,
        *,
        yes: bool = False,
        dry_run: bool = False,
        force_delete: bool = False,
    ):
        self.yes = yes
        self.dry_run = dry_run
        self.force_delete = force_delete

    def select(
        self,
        to_create: list[SourceNote],
        to_update: list[SourceNote],
        to_delete: list[int],
    ) -> SyncSelection | None:
        table = Table(title="Pending operations")
        table.add_column("Operation")
        table.add_column("Count", justify="right")
        table.add_column("Notes")

        table.add_row("Create", str(len(to_create)), _list(to_create))
        table.add_row("Update", str(len(to_update)), _list(to_update))
        table.add_row("Delete", str(len(to_delete)), _list(to_delete))

        console.print(table)

        if self.dry_run:
            logger.info("Dry run, not syncing")
            return None

        if not (self.yes or typer.confirm("Proceed with sync?")):
            return None

        return SyncSelection(
            to_create=list(to_create),
            to_update=list(to_update),
            to_delete=list(to_delete),
        )

    def confirm(self, message: str) -> bool:
        if self.force_delete:
            logger.warning(message)
            return True

        if self.yes:
            logger.error(f"{message} Declined, pass --force-delete to proceed")
            return False

        return typer.confirm(message)


class ConsoleNotifier:
    """
    Prints the summary of a sync run, and failures if `details` is set.
    """

    details: bool

    def __init__(self, *, details: bool = False):
        self.details = details

    def notify(self, result: SyncResult):
        style = "yellow" if result.has_failures else "green"
        console.print(Panel(result.summary, border_style=style))

        if not (result.has_failures and self.details):
            return

        table = Table(title="Failures")
        table.add_column("Operation")
        table.add_column("Note")
        table.add_column("Error")

        for key, error in result.failed_created.items():
            table.add_row("Create", key, error)
        for key, error in result.failed_updated.items():
            table.add_row("Update", key, error)
        for remote_id, error in result.failed_deleted.items():
            table.add_row("Delete", str(remote_id), error)

        console.print(table)


class RichProgress:
    """
    Progress bar on the console.
    """

    _progress: Progress | None = None
    _task: TaskID | None = None

    def start(self, message: str, total: int):
        self.close()

        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        )
        self._progress.start()
        self._task = self._progress.add_task(message, total=total)

    def increment(self, count: int = 1):
        if self._progress is not None and self._task is not None:
            self._progress.advance(self._task, count)

    def update_message(self, message: str):
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, description=message)

    def close(self):
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None


def _list(items: list[SourceNote] | list[int]) -> str:
    listed = [
        item.uuid_type if isinstance(item, SourceNote) else str(item)
        for item in items[:MAX_LISTED]
    ]
    if len(items) > MAX_LISTED:
        listed.append(f"... {len(items) - MAX_LISTED} more")
    return "\n".join(listed)
