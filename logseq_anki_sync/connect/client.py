"""
Client for the AnkiConnect add-on's HTTP interface.
"""

from __future__ import annotations

import logging
from logging import Logger
from typing import Any

import requests

from ..core.exceptions import AnkiConnectError

__all__ = [
    "DEFAULT_URL",
    "API_VERSION",
    "Action",
    "AnkiConnect",
]

DEFAULT_URL = "http://127.0.0.1:8765"

API_VERSION = 6

REQUEST_TIMEOUT = 60.0
"""
Timeout for a single request. Batched requests on large collections can be
slow.
"""

Action = dict[str, Any]
"""
An action as submitted within a `multi` request.
"""


class AnkiConnect:
    """
    Interface to AnkiConnect. Each request is a JSON object with an action
    name and its params; each response carries either a result or an error.
    """

    _url: str
    _key: str | None
    _timeout: float
    _logger: Logger

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        key: str | None = None,
        timeout: float = REQUEST_TIMEOUT,
        logger: Logger | None = None,
    ):
        """
        :param url: AnkiConnect URL
        :param key: API key, if AnkiConnect is configured to require one
        :param timeout: Request timeout in seconds
        :param logger: Logger to use, or `None` to use default logger
        """
        self._url = url
        self._key = key
        self._timeout = timeout
        self._logger = logger or logging.getLogger()

    @property
    def url(self) -> str:
        return self._url

    def invoke(self, action: str, **params: Any) -> Any:
        """
        Invoke an action and return its result.

        :raises AnkiConnectError: If AnkiConnect returned an error
        """
        request: dict[str, Any] = {
            "action": action,
            "version": API_VERSION,
            "params": params,
        }
        if self._key is not None:
            request["key"] = self._key

        response = requests.post(self._url, json=request, timeout=self._timeout)
        response.raise_for_status()

        body = response.json()

        if not isinstance(body, dict) or set(body.keys()) != {"result", "error"}:
            raise AnkiConnectError(f"Unexpected response: {body}", action)

        if body["error"] is not None:
            raise AnkiConnectError(str(body["error"]), action)

        return body["result"]

    def multi(self, actions: list[Action]) -> list[tuple[Any, str | None]]:
        """
        Invoke several actions in one request. Returns `(result, error)` for
        each action in order; a failed action doesn't affect the others.
        """
        if not actions:
            return []

        results = self.invoke("multi", actions=actions)
        assert isinstance(results, list)

        if len(results) != len(actions):
            raise AnkiConnectError(
                f"Expected {len(actions)} results, got {len(results)}", "multi"
            )

        pairs: list[tuple[Any, str | None]] = []
        for result in results:
            # with version >= 6 each result is wrapped like a response
            if isinstance(result, dict) and set(result.keys()) == {
                "result",
                "error",
            }:
                error = result["error"]
                pairs.append(
                    (result["result"], str(error) if error is not None else None)
                )
            else:
                pairs.append((result, None))

        return pairs

    def request_permission(self) -> dict[str, Any]:
        """
        Request permission to use the API. Must be granted in Anki the first
        time a client connects.

        :raises AnkiConnectError: If permission was denied
        """
        result = self.invoke("requestPermission")

        if result.get("permission") != "granted":
            raise AnkiConnectError("Permission to access Anki was denied")

        return result

    def version(self) -> int:
        return self.invoke("version")

    def create_model(
        self,
        name: str,
        field_names: list[str],
        front: str,
        back: str,
        media_files: dict[str, str] | None = None,
        css: str = "",
    ):
        """
        Create model if it doesn't exist, else bring its fields and templates
        up to date. Media files required by the templates are stored as well.

        :param name: Model name
        :param field_names: Field names in order
        :param front: Front template
        :param back: Back template
        :param media_files: Mapping of media filename to file content
        :param css: Model styling
        """
        for filename, data in (media_files or {}).items():
            self.invoke("storeMediaFile", filename=filename, data=data)

        template_name = "Card 1"

        if name not in self.invoke("modelNames"):
            self._logger.info(f"Creating model '{name}'")
            self.invoke(
                "createModel",
                modelName=name,
                inOrderFields=field_names,
                css=css,
                isCloze=True,
                cardTemplates=[
                    {"Name": template_name, "Front": front, "Back": back}
                ],
            )
            return

        existing = self.invoke("modelFieldNames", modelName=name)
        for field_name in field_names:
            if field_name not in existing:
                self._logger.info(f"Adding field '{field_name}' to model '{name}'")
                self.invoke(
                    "modelFieldAdd",
                    modelName=name,
                    fieldName=field_name,
                    index=len(existing),
                )
                existing.append(field_name)

        templates = self.invoke("modelTemplates", modelName=name)
        template_name = next(iter(templates), template_name)

        self.invoke(
            "updateModelTemplates",
            model={
                "name": name,
                "templates": {
                    template_name: {"Front": front, "Back": back}
                },
            },
        )
        self.invoke("updateModelStyling", model={"name": name, "css": css})
