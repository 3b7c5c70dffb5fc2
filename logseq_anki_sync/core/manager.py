"""
Per-model interface to remote notes, and a unit of work collecting batched
operations on them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from logging import Logger
from typing import TYPE_CHECKING, Any

import requests
from pydantic import AliasChoices, BaseModel, Field, field_validator

from .exceptions import AnkiConnectError, ManagerInitError

if TYPE_CHECKING:
    from ..connect.client import Action, AnkiConnect

__all__ = [
    "RemoteNoteRecord",
    "OperationKind",
    "OperationResult",
    "NoteManager",
]


class RemoteNoteRecord(BaseModel):
    """
    State of a note in Anki, as loaded from `notesInfo`.
    """

    remote_id: int = Field(validation_alias=AliasChoices("remote_id", "noteId"))
    model_name: str = Field(
        default="", validation_alias=AliasChoices("model_name", "modelName")
    )
    fields: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    cards: list[int] = Field(default_factory=list)
    deck: str | None = None

    @field_validator("fields", mode="before")
    @classmethod
    def flatten_fields(cls, value: Any) -> Any:
        """
        Flatten `{"Text": {"value": "...", "order": 0}}` to
        `{"Text": "..."}`.
        """
        if not isinstance(value, dict):
            return value
        return {
            name: (v.get("value", "") if isinstance(v, dict) else v)
            for name, v in value.items()
        }

    @property
    def uuid_type(self) -> str | None:
        return self.fields.get("uuid-type")


class OperationKind(Enum):
    """
    Kind of batched operation.
    """

    ADD = auto()
    UPDATE = auto()
    DELETE = auto()
    STORE_ASSETS = auto()


@dataclass
class OperationResult:
    """
    Outcome of a single item of a batched operation.
    """

    key: str
    """
    Identity composite for add/update, remote id for delete, or filename for
    asset storage.
    """

    remote_id: int | None = None
    error: str | None = None


@dataclass
class _NoteOp:
    key: str
    deck: str
    fields: dict[str, str]
    tags: list[str]
    remote_id: int | None = None


class NoteManager:
    """
    Owns the remote state of one model for the duration of a sync run:
    its notes, the media known to Anki, and queues of pending operations.

    Operations are queued with {obj}`add_note`, {obj}`update_note`,
    {obj}`delete_note` and {obj}`store_asset`, and submitted in a single
    request per kind by {obj}`execute`.
    """

    model_name: str

    records: dict[int, RemoteNoteRecord]
    """
    Mapping of remote id to record, in ascending id order.
    """

    media: set[str]
    """
    Filenames of media known to Anki.
    """

    _connector: AnkiConnect
    _logger: Logger

    _adds: list[_NoteOp]
    _updates: list[_NoteOp]
    _deletes: list[int]
    _assets: dict[str, str]

    _uuid_type_index: dict[str, int] | None = None

    def __init__(
        self,
        model_name: str,
        connector: AnkiConnect,
        *,
        logger: Logger | None = None,
    ):
        self.model_name = model_name
        self.records = {}
        self.media = set()

        self._connector = connector
        self._logger = logger or logging.getLogger()

        self._adds = []
        self._updates = []
        self._deletes = []
        self._assets = {}

    def __str__(self) -> str:
        return f"NoteManager(model_name='{self.model_name}', records={len(self.records)})"

    def init(self):
        """
        Load notes of this model and known media from Anki.

        :raises ManagerInitError: If the model doesn't exist or its notes
        couldn't be loaded
        """
        try:
            if self.model_name not in self._connector.invoke("modelNames"):
                raise ManagerInitError(self.model_name, "model does not exist")

            note_ids = self._connector.invoke(
                "findNotes", query=f'"note:{self.model_name}"'
            )
            infos = (
                self._connector.invoke("notesInfo", notes=note_ids)
                if note_ids
                else []
            )

            records = [
                RemoteNoteRecord.model_validate(info)
                for info in infos
                if info and "noteId" in info
            ]
            self._load_decks(records)

            self.media = set(
                self._connector.invoke("getMediaFilesNames", pattern="*")
            )
        except (AnkiConnectError, requests.RequestException) as e:
            raise ManagerInitError(self.model_name, str(e)) from e

        self.records = {r.remote_id: r for r in sorted(records, key=lambda r: r.remote_id)}
        self._uuid_type_index = None

        self._logger.debug(f"Initialized {self}")

    def find_remote_id(self, uuid_type: str) -> int | None:
        """
        Get the id of the first record (in ascending id order) whose
        `uuid-type` field equals the given composite.
        """
        if self._uuid_type_index is None:
            index: dict[str, int] = {}
            for remote_id, record in self.records.items():
                if record.uuid_type is not None:
                    index.setdefault(record.uuid_type, remote_id)
            self._uuid_type_index = index

        return self._uuid_type_index.get(uuid_type)

    def add_note(
        self, key: str, deck: str, fields: dict[str, str], tags: list[str]
    ):
        self._adds.append(_NoteOp(key=key, deck=deck, fields=fields, tags=tags))

    def update_note(
        self,
        remote_id: int,
        key: str,
        deck: str,
        fields: dict[str, str],
        tags: list[str],
    ):
        self._updates.append(
            _NoteOp(
                key=key, deck=deck, fields=fields, tags=tags, remote_id=remote_id
            )
        )

    def delete_note(self, remote_id: int):
        self._deletes.append(remote_id)

    def store_asset(self, filename: str, path: str):
        """
        Queue a local file for storage in Anki's media folder.
        """
        self._assets[filename] = path

    def has_asset(self, filename: str) -> bool:
        """
        Check whether a media file is known to Anki or already queued.
        """
        return filename in self.media or filename in self._assets

    @property
    def pending_count(self) -> int:
        return (
            len(self._adds)
            + len(self._updates)
            + len(self._deletes)
            + len(self._assets)
        )

    def execute(self, kind: OperationKind) -> list[OperationResult]:
        """
        Submit all queued operations of the given kind in one request and
        clear them from the queue. Failures are reported per item.
        """
        match kind:
            case OperationKind.ADD:
                ops, self._adds = self._adds, []
                return self._execute_adds(ops)
            case OperationKind.UPDATE:
                ops, self._updates = self._updates, []
                return self._execute_updates(ops)
            case OperationKind.DELETE:
                remote_ids, self._deletes = self._deletes, []
                return self._execute_deletes(remote_ids)
            case OperationKind.STORE_ASSETS:
                assets, self._assets = self._assets, {}
                return self._execute_store_assets(assets)

        raise ValueError(f"Unknown operation kind: {kind}")

    def _execute_adds(self, ops: list[_NoteOp]) -> list[OperationResult]:
        if not ops:
            return []

        self._create_decks({op.deck for op in ops})

        actions: list[Action] = [
            _action(
                "addNote",
                note={
                    "deckName": op.deck,
                    "modelName": self.model_name,
                    "fields": op.fields,
                    "tags": op.tags,
                    "options": {"allowDuplicate": True},
                },
            )
            for op in ops
        ]

        groups = self._submit([op.key for op in ops], [[a] for a in actions])

        results: list[OperationResult] = []
        for op, (values, error) in zip(ops, groups):
            remote_id = values[0] if error is None and values else None
            results.append(
                OperationResult(key=op.key, remote_id=remote_id, error=error)
            )

        self._logger.debug(f"Added {len(ops)} notes to {self}")
        return results

    def _execute_updates(self, ops: list[_NoteOp]) -> list[OperationResult]:
        if not ops:
            return []

        self._create_decks({op.deck for op in ops})

        action_groups: list[list[Action]] = []
        for op in ops:
            assert op.remote_id is not None

            group = [
                _action(
                    "updateNoteFields",
                    note={"id": op.remote_id, "fields": op.fields},
                ),
                _action("updateNoteTags", note=op.remote_id, tags=op.tags),
            ]

            record = self.records.get(op.remote_id)
            if record is not None and record.cards and record.deck != op.deck:
                group.append(
                    _action("changeDeck", cards=record.cards, deck=op.deck)
                )

            action_groups.append(group)

        groups = self._submit([op.key for op in ops], action_groups)

        self._logger.debug(f"Updated {len(ops)} notes of {self}")
        return [
            OperationResult(key=op.key, remote_id=op.remote_id, error=error)
            for op, (_, error) in zip(ops, groups)
        ]

    def _execute_deletes(self, remote_ids: list[int]) -> list[OperationResult]:
        if not remote_ids:
            return []

        groups = self._submit(
            [str(i) for i in remote_ids],
            [[_action("deleteNotes", notes=[i])] for i in remote_ids],
        )

        results: list[OperationResult] = []
        for remote_id, (_, error) in zip(remote_ids, groups):
            if error is None:
                self.records.pop(remote_id, None)
                self._uuid_type_index = None
            results.append(
                OperationResult(key=str(remote_id), remote_id=remote_id, error=error)
            )

        self._logger.debug(f"Deleted {len(remote_ids)} notes of {self}")
        return results

    def _execute_store_assets(
        self, assets: dict[str, str]
    ) -> list[OperationResult]:
        if not assets:
            return []

        filenames = list(assets.keys())
        groups = self._submit(
            filenames,
            [
                [_action("storeMediaFile", filename=filename, path=assets[filename])]
                for filename in filenames
            ],
        )

        results: list[OperationResult] = []
        for filename, (_, error) in zip(filenames, groups):
            if error is None:
                self.media.add(filename)
            results.append(OperationResult(key=filename, error=error))

        return results

    def _create_decks(self, decks: set[str]):
        """
        Ensure decks exist. Failures surface later when adding notes to them.
        """
        actions = [_action("createDeck", deck=deck) for deck in sorted(decks)]
        try:
            for (_, error), action in zip(self._connector.multi(actions), actions):
                if error is not None:
                    self._logger.warning(
                        f"Failed to create deck '{action['params']['deck']}': {error}"
                    )
        except (AnkiConnectError, requests.RequestException) as e:
            self._logger.warning(f"Failed to create decks {sorted(decks)}: {e}")

    def _submit(
        self, keys: list[str], action_groups: list[list[Action]]
    ) -> list[tuple[list[Any], str | None]]:
        """
        Submit groups of actions in a single `multi` request. Returns for
        each group its results and its first error, if any. If the request
        itself fails, every group fails with that error.
        """
        flat = [action for group in action_groups for action in group]

        try:
            pairs = self._connector.multi(flat)
        except (AnkiConnectError, requests.RequestException) as e:
            self._logger.error(
                f"Batch of {len(keys)} operations failed for {self}: {e}"
            )
            return [([], str(e)) for _ in action_groups]

        results: list[tuple[list[Any], str | None]] = []
        index = 0
        for group in action_groups:
            group_pairs = pairs[index : index + len(group)]
            index += len(group)

            values = [value for value, _ in group_pairs]
            error = next((e for _, e in group_pairs if e is not None), None)
            results.append((values, error))

        return results

    def _load_decks(self, records: list[RemoteNoteRecord]):
        """
        Populate each record's deck from its first card.
        """
        first_cards = {r.cards[0]: r for r in records if r.cards}
        if not first_cards:
            return

        infos = self._connector.invoke("cardsInfo", cards=list(first_cards.keys()))
        for info in infos:
            record = first_cards.get(info.get("cardId"))
            if record is not None:
                record.deck = info.get("deckName")


def _action(name: str, **params: Any) -> Action:
    return {"action": name, "params": params}
