from typing import Any

import requests
from pytest import MonkeyPatch, fixture, raises

from logseq_anki_sync import *

from .conftest import FakeAnkiConnect


class FakeResponse:
    def __init__(self, body: Any, status_code: int = 200):
        self._body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self) -> Any:
        return self._body


class FakePost:
    """
    Replaces `requests.post`, recording requests and returning queued
    responses.
    """

    requests: list[dict[str, Any]]
    responses: list[FakeResponse]

    def __init__(self):
        self.requests = []
        self.responses = []

    def __call__(self, url: str, *, json: dict[str, Any], timeout: float):
        self.requests.append({"url": url, "json": json, "timeout": timeout})
        return self.responses.pop(0)

    def respond(self, body: Any, status_code: int = 200):
        self.responses.append(FakeResponse(body, status_code))


@fixture
def post(monkeypatch: MonkeyPatch) -> FakePost:
    fake = FakePost()
    monkeypatch.setattr(requests, "post", fake)
    return fake


def test_invoke(post: FakePost):
    connector = AnkiConnect("http://anki:8765", key="secret", timeout=5.0)
    post.respond({"result": ["Basic", "Cloze"], "error": None})

    assert connector.invoke("modelNames") == ["Basic", "Cloze"]

    request = post.requests[0]
    assert request["url"] == "http://anki:8765"
    assert request["timeout"] == 5.0
    assert request["json"] == {
        "action": "modelNames",
        "version": API_VERSION,
        "params": {},
        "key": "secret",
    }


def test_invoke_error(post: FakePost):
    connector = AnkiConnect()

    post.respond({"result": None, "error": "model was not found: X"})
    with raises(AnkiConnectError) as e:
        connector.invoke("modelFieldNames", modelName="X")

    assert e.value.action == "modelFieldNames"
    assert e.value.error == "model was not found: X"
    assert "key" not in post.requests[0]["json"]

    # malformed response
    post.respond({"result": 1})
    with raises(AnkiConnectError, match="Unexpected response"):
        connector.invoke("version")

    post.respond(None, status_code=500)
    with raises(requests.HTTPError):
        connector.invoke("version")


def test_multi(post: FakePost):
    connector = AnkiConnect()
    post.respond(
        {
            "result": [
                {"result": 1001, "error": None},
                {"result": None, "error": "cannot create note"},
            ],
            "error": None,
        }
    )

    pairs = connector.multi(
        [
            {"action": "addNote", "params": {}},
            {"action": "addNote", "params": {}},
        ]
    )

    assert pairs == [(1001, None), (None, "cannot create note")]

    # no request for empty batch
    assert connector.multi([]) == []
    assert len(post.requests) == 1


def test_multi_count_mismatch(post: FakePost):
    connector = AnkiConnect()
    post.respond({"result": [], "error": None})

    with raises(AnkiConnectError, match="Expected 1 results"):
        connector.multi([{"action": "version", "params": {}}])


def test_request_permission(post: FakePost):
    connector = AnkiConnect()

    post.respond({"result": {"permission": "granted"}, "error": None})
    assert connector.request_permission()["permission"] == "granted"

    post.respond({"result": {"permission": "denied"}, "error": None})
    with raises(AnkiConnectError, match="denied"):
        connector.request_permission()


def test_create_model(anki: FakeAnkiConnect):
    media = get_template_media_files()

    anki.create_model(
        "Model",
        ["a", "b"],
        get_template_front(),
        get_template_back(),
        media,
        css=get_template_css(),
    )

    assert anki.models["Model"] == ["a", "b"]
    assert set(media.keys()) <= set(anki.media.keys())

    created = anki.called("createModel")[0]
    assert created["isCloze"] is True
    assert created["cardTemplates"][0]["Name"] == "Card 1"


def test_update_model(anki: FakeAnkiConnect):
    anki.models["Model"] = ["a"]

    anki.create_model("Model", ["a", "b"], "front", "back", css="css")

    # missing field appended, templates and styling refreshed
    assert anki.models["Model"] == ["a", "b"]
    assert not anki.called("createModel")
    assert anki.called("updateModelTemplates")[0]["model"] == {
        "name": "Model",
        "templates": {"Card 1": {"Front": "front", "Back": "back"}},
    }
    assert anki.called("updateModelStyling")[0]["model"] == {
        "name": "Model",
        "css": "css",
    }
