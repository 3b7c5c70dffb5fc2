"""
Registry of note managers, one per destination model.
"""

from __future__ import annotations

import logging
from logging import Logger
from typing import TYPE_CHECKING, Iterable, Iterator

from .exceptions import ManagerInitError
from .manager import NoteManager
from .note import SourceNote

if TYPE_CHECKING:
    from ..connect.client import AnkiConnect

__all__ = [
    "ManagerRouter",
]


class ManagerRouter:
    """
    Owns the managers of all models targeted in a sync run and routes each
    note to its manager.

    A note targets the model named by its `ankiNoteType` property, or the
    default model otherwise.
    """

    default_model_name: str

    _managers: dict[str, NoteManager]
    _logger: Logger

    def __init__(self, default_model_name: str, *, logger: Logger | None = None):
        self.default_model_name = default_model_name
        self._managers = {}
        self._logger = logger or logging.getLogger()

    def __iter__(self) -> Iterator[NoteManager]:
        return iter(self._managers.values())

    def __contains__(self, model_name: str) -> bool:
        return model_name in self._managers

    def __len__(self) -> int:
        return len(self._managers)

    @classmethod
    def create(
        cls,
        connector: AnkiConnect,
        default_model_name: str,
        notes: Iterable[SourceNote],
        *,
        logger: Logger | None = None,
    ) -> ManagerRouter:
        """
        Create and initialize a manager for the default model and each model
        requested by a note. Models which fail to initialize are logged and
        omitted.
        """
        router = cls(default_model_name, logger=logger)

        model_names: dict[str, None] = {default_model_name: None}
        for note in notes:
            if (model_name := note.model_override) is not None:
                model_names[model_name] = None

        for model_name in model_names:
            manager = NoteManager(model_name, connector, logger=router._logger)
            try:
                manager.init()
            except ManagerInitError as e:
                router._logger.warning(str(e))
                continue

            router.register(manager)

        return router

    def register(self, manager: NoteManager):
        assert manager.model_name not in self._managers
        self._managers[manager.model_name] = manager

    def get(self, model_name: str) -> NoteManager | None:
        return self._managers.get(model_name)

    @property
    def default_manager(self) -> NoteManager | None:
        return self._managers.get(self.default_model_name)

    def get_model_name(self, note: SourceNote) -> str:
        """
        Get name of the model targeted by note.
        """
        return note.model_override or self.default_model_name

    def resolve_manager_for(self, note: SourceNote) -> NoteManager | None:
        """
        Get manager of the note's override model if initialized, else the
        default manager, else `None`.
        """
        model_name = note.model_override
        if model_name is not None and model_name in self._managers:
            return self._managers[model_name]

        return self.default_manager

    def find_remote_id(self, note: SourceNote) -> int | None:
        """
        Lookup remote id of note in its manager. `None` means the note needs
        to be created.
        """
        manager = self.resolve_manager_for(note)
        if manager is None:
            self._logger.warning(
                f"No manager found for model: {self.get_model_name(note)}"
            )
            return None

        return manager.find_remote_id(note.uuid_type)

    def find_manager_by_remote_id(self, remote_id: int) -> NoteManager | None:
        """
        Get manager whose records contain the remote id.
        """
        for manager in self._managers.values():
            if remote_id in manager.records:
                return manager
        return None

    def all_remote_ids(self) -> set[int]:
        return {
            remote_id
            for manager in self._managers.values()
            for remote_id in manager.records
        }
