import logging
from pathlib import Path
from typing import Any, Callable

from pytest import Config, fixture

from logseq_anki_sync import (
    AnkiConnectError,
    Block,
    Page,
    RenderResult,
    SourceNote,
    SyncResult,
    SyncSelection,
)
from logseq_anki_sync.connect.client import AnkiConnect
from logseq_anki_sync.tools.render import BasicRenderer
from logseq_anki_sync.tools.snapshot import GraphSnapshot, SnapshotGraph

logging.basicConfig(level=logging.WARNING)

GRAPH_NAME = "Test Graph"
MODEL_NAME = "Test_GraphModel"

MARKERS = [
    "engine",
    "cli",
]


def pytest_configure(config: Config) -> None:
    for marker in MARKERS:
        config.addinivalue_line("markers", marker)


class FakeAnkiConnect(AnkiConnect):
    """
    AnkiConnect backed by an in-memory collection. Only `invoke` is
    replaced, so batching and model creation run as they would against
    Anki.
    """

    models: dict[str, list[str]]
    notes: dict[int, dict[str, Any]]
    cards: dict[int, str]
    decks: set[str]
    media: dict[str, str]

    calls: list[tuple[str, dict[str, Any]]]
    """
    Every action invoked, including `multi` and the actions within it.
    """

    failures: dict[str, Callable[[dict[str, Any]], str | None]]
    """
    Mapping of action name to callable returning an error for the given
    params, or `None` to succeed.
    """

    permission: str = "granted"
    offline: bool = False

    _next_id: int = 1000

    def __init__(self):
        super().__init__("http://fake-anki:8765")
        self.models = {}
        self.notes = {}
        self.cards = {}
        self.decks = {"Default"}
        self.media = {}
        self.calls = []
        self.failures = {}

    def invoke(self, action: str, **params: Any) -> Any:
        if self.offline:
            raise AnkiConnectError("Connection refused", action)

        if action == "multi":
            self.calls.append((action, params))
            results = []
            for sub in params["actions"]:
                try:
                    result = self._dispatch(sub["action"], sub.get("params", {}))
                except AnkiConnectError as e:
                    results.append({"result": None, "error": e.error})
                else:
                    results.append({"result": result, "error": None})
            return results

        return self._dispatch(action, params)

    def fail(self, action: str, when: Callable[[dict[str, Any]], bool], error: str):
        """
        Fail the given action whenever its params satisfy `when`.
        """
        self.failures[action] = lambda params: error if when(params) else None

    def called(self, action: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == action]

    def add_remote_note(
        self,
        model_name: str,
        fields: dict[str, str],
        *,
        deck: str = "Default",
        tags: list[str] | None = None,
    ) -> int:
        """
        Seed the collection with a note, as if previously synced.
        """
        return self._add_note(
            {
                "modelName": model_name,
                "deckName": deck,
                "fields": fields,
                "tags": tags or [],
            }
        )

    def _dispatch(self, action: str, params: dict[str, Any]) -> Any:
        self.calls.append((action, params))

        if (check := self.failures.get(action)) is not None:
            if (error := check(params)) is not None:
                raise AnkiConnectError(error, action)

        match action:
            case "requestPermission":
                return {"permission": self.permission, "version": 6}
            case "version":
                return 6
            case "modelNames":
                return list(self.models.keys())
            case "createModel":
                self.models[params["modelName"]] = list(params["inOrderFields"])
                return {}
            case "modelFieldNames":
                return list(self.models[params["modelName"]])
            case "modelFieldAdd":
                self.models[params["modelName"]].append(params["fieldName"])
                return None
            case "modelTemplates":
                return {"Card 1": {"Front": "", "Back": ""}}
            case "updateModelTemplates" | "updateModelStyling":
                return None
            case "storeMediaFile":
                filename = params["filename"]
                self.media[filename] = params.get("path") or params.get("data")
                return filename
            case "getMediaFilesNames":
                return list(self.media.keys())
            case "findNotes":
                model_name = params["query"].strip('"').removeprefix("note:")
                return [
                    i
                    for i, n in self.notes.items()
                    if n["modelName"] == model_name
                ]
            case "notesInfo":
                return [self._note_info(i) for i in params["notes"]]
            case "cardsInfo":
                return [
                    {"cardId": c, "deckName": self.cards[c]}
                    for c in params["cards"]
                    if c in self.cards
                ]
            case "createDeck":
                self.decks.add(params["deck"])
                return 1
            case "addNote":
                return self._add_note(params["note"])
            case "updateNoteFields":
                note = self._get_note(params["note"]["id"])
                for name, value in params["note"]["fields"].items():
                    if name in note["fields"]:
                        note["fields"][name] = value
                return None
            case "updateNoteTags":
                self._get_note(params["note"])["tags"] = list(params["tags"])
                return None
            case "changeDeck":
                for card in params["cards"]:
                    self.cards[card] = params["deck"]
                return None
            case "deleteNotes":
                for note_id in params["notes"]:
                    note = self.notes.pop(note_id, None)
                    if note is not None:
                        for card in note["cards"]:
                            self.cards.pop(card, None)
                return None
            case "reloadCollection":
                return None

        raise AnkiConnectError("unsupported action", action)

    def _add_note(self, note: dict[str, Any]) -> int:
        model_name = note["modelName"]
        if model_name not in self.models:
            raise AnkiConnectError("model was not found: " + model_name)
        if note["deckName"] not in self.decks:
            raise AnkiConnectError("deck was not found: " + note["deckName"])

        note_id = self._next_id
        card_id = note_id + 1
        self._next_id += 2

        self.cards[card_id] = note["deckName"]
        self.notes[note_id] = {
            "modelName": model_name,
            "fields": {
                name: note["fields"].get(name, "")
                for name in self.models[model_name]
            },
            "tags": list(note.get("tags", [])),
            "cards": [card_id],
        }
        return note_id

    def _get_note(self, note_id: int) -> dict[str, Any]:
        if note_id not in self.notes:
            raise AnkiConnectError(f"Note was not found: {note_id}")
        return self.notes[note_id]

    def _note_info(self, note_id: int) -> dict[str, Any]:
        note = self.notes.get(note_id)
        if note is None:
            return {}
        return {
            "noteId": note_id,
            "modelName": note["modelName"],
            "tags": list(note["tags"]),
            "fields": {
                name: {"value": value, "order": order}
                for order, (name, value) in enumerate(note["fields"].items())
            },
            "cards": list(note["cards"]),
        }


class RecordingSelector:
    """
    Selects every candidate operation, optionally narrowed by `narrow`.
    """

    confirm_result: bool
    selections: list[tuple[list, list, list]]
    confirmations: list[str]
    abort: bool

    def __init__(
        self,
        *,
        confirm_result: bool = True,
        abort: bool = False,
        narrow: Callable[[SyncSelection], SyncSelection] | None = None,
        on_select: Callable[[], None] | None = None,
    ):
        self.confirm_result = confirm_result
        self.abort = abort
        self.selections = []
        self.confirmations = []
        self._narrow = narrow
        self._on_select = on_select

    def select(self, to_create, to_update, to_delete) -> SyncSelection | None:
        self.selections.append((list(to_create), list(to_update), list(to_delete)))

        if self._on_select is not None:
            self._on_select()

        if self.abort:
            return None

        selection = SyncSelection(
            to_create=list(to_create),
            to_update=list(to_update),
            to_delete=list(to_delete),
        )
        return self._narrow(selection) if self._narrow else selection

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        return self.confirm_result


class RecordingNotifier:
    results: list[SyncResult]

    def __init__(self):
        self.results = []

    def notify(self, result: SyncResult):
        self.results.append(result)


class FailingRenderer(BasicRenderer):
    """
    Fails to render any content containing `FAIL`.
    """

    def render(self, raw_text: str, format: str) -> RenderResult:
        if "FAIL" in raw_text:
            raise RuntimeError("render failed")
        return super().render(raw_text, format)


def make_graph(
    path: Path,
    pages: list[dict[str, Any]],
    blocks: list[dict[str, Any]],
    name: str = GRAPH_NAME,
) -> SnapshotGraph:
    snapshot = GraphSnapshot(
        name=name,
        pages=[Page(**p) for p in pages],
        blocks=[Block(**b) for b in blocks],
    )
    return SnapshotGraph(snapshot, path)


def make_note(graph: SnapshotGraph, uuid: str, note_type: str = "cloze") -> SourceNote:
    """
    Create note from block in graph.
    """
    block = graph.get_block(uuid)
    assert block is not None

    page = graph.get_page(block.page_id)
    assert page is not None

    return SourceNote(
        block.uuid,
        note_type,
        page,
        content=block.content,
        format=block.format,
        properties=dict(block.properties),
    )


def cloze_blocks(count: int, page_id: int = 1, start: int = 1) -> list[dict[str, Any]]:
    return [
        {
            "id": start + i,
            "uuid": f"00000000-0000-4000-8000-{start + i:012d}",
            "content": f"Fact {start + i} is {{{{c1::answer {start + i}}}}}",
            "page_id": page_id,
        }
        for i in range(count)
    ]


@fixture
def anki() -> FakeAnkiConnect:
    return FakeAnkiConnect()


@fixture
def page() -> dict[str, Any]:
    return {"id": 1, "name": "facts", "original_name": "Facts"}


@fixture
def namespaced_graph(tmp_path: Path) -> SnapshotGraph:
    """
    Graph with page `Lang/Spanish/Verbs` and a note nested two levels deep.
    """
    pages = [
        {"id": 1, "name": "lang", "original_name": "Lang"},
        {
            "id": 2,
            "name": "lang/spanish",
            "original_name": "Lang/Spanish",
            "namespace_id": 1,
        },
        {
            "id": 3,
            "name": "lang/spanish/verbs",
            "original_name": "Lang/Spanish/Verbs",
            "namespace_id": 2,
        },
    ]
    blocks = [
        {
            "id": 1,
            "uuid": "root-block",
            "content": "Irregular {{c1::verbs}}\nsecond line",
            "page_id": 3,
        },
        {
            "id": 2,
            "uuid": "parent-block",
            "content": "Present tense",
            "page_id": 3,
            "parent_id": 1,
        },
        {
            "id": 3,
            "uuid": "note-block",
            "content": "Yo {{c1::tengo}}",
            "page_id": 3,
            "parent_id": 2,
        },
    ]
    return make_graph(tmp_path, pages, blocks)
