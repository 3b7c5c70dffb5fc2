"""
Progress and result reporting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .plan import SyncPlan

__all__ = [
    "ProgressReporter",
    "NullProgress",
    "SyncResult",
    "Notifier",
]


class ProgressReporter(Protocol):
    """
    Receives progress of a sync run.
    """

    def start(self, message: str, total: int):
        ...

    def increment(self, count: int = 1):
        ...

    def update_message(self, message: str):
        ...

    def close(self):
        """
        Remove any in-progress indication.
        """
        ...


class NullProgress:
    """
    Progress reporter which discards progress.
    """

    def start(self, message: str, total: int):
        pass

    def increment(self, count: int = 1):
        pass

    def update_message(self, message: str):
        pass

    def close(self):
        pass


@dataclass
class SyncResult:
    """
    Outcome of a completed sync run.
    """

    plan: SyncPlan
    elapsed: float = 0.0
    """
    Seconds taken by the sync phase.
    """

    @property
    def created_count(self) -> int:
        return len(self.plan.to_create) - len(self.plan.failed_created)

    @property
    def updated_count(self) -> int:
        return len(self.plan.to_update) - len(self.plan.failed_updated)

    @property
    def deleted_count(self) -> int:
        return len(self.plan.to_delete) - len(self.plan.failed_deleted)

    @property
    def failed_created(self) -> dict[str, str]:
        return self.plan.failed_created

    @property
    def failed_updated(self) -> dict[str, str]:
        return self.plan.failed_updated

    @property
    def failed_deleted(self) -> dict[int, str]:
        return self.plan.failed_deleted

    @property
    def has_failures(self) -> bool:
        return bool(
            self.plan.failed_created
            or self.plan.failed_updated
            or self.plan.failed_deleted
        )

    @property
    def summary(self) -> str:
        lines = [
            "Sync Completed!",
            f"Created Blocks: {self.created_count}",
            f"Updated Blocks: {self.updated_count}",
            f"Deleted Blocks: {self.deleted_count}",
        ]

        if self.plan.failed_created:
            lines.append(f"Failed Created: {len(self.plan.failed_created)}")
        if self.plan.failed_updated:
            lines.append(f"Failed Updated: {len(self.plan.failed_updated)}")
        if self.plan.failed_deleted:
            lines.append(f"Failed Deleted: {len(self.plan.failed_deleted)}")

        return "\n".join(lines)


class Notifier(Protocol):
    """
    Presents the result of a sync run to the user.
    """

    def notify(self, result: SyncResult):
        ...
