"""
Mapping of a note onto the fields of its destination model.

Notes use one of two field schemas:

- Legacy: the fixed fields of the default model
- Custom: source properties mapped onto fields of a user-selected model,
  layered under the legacy fields
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from logging import Logger
from typing import Any

from .note import SourceNote

__all__ = [
    "LEGACY_FIELD_NAMES",
    "CONTENT_PLACEHOLDER",
    "RESERVED_PROPERTIES",
    "FIELD_NAME_MAPPINGS",
    "CommonFields",
    "LegacyFields",
    "CustomFields",
    "FieldSchema",
    "get_field_schema",
    "build_fields",
    "convert_to_field_name",
]

LEGACY_FIELD_NAMES = ["uuid-type", "uuid", "Text", "Extra", "Breadcrumb", "Config"]
"""
Fields of the default model, in order.
"""

CONTENT_PLACEHOLDER = "{{content}}"
"""
Property value replaced by the note's rendered content.
"""

RESERVED_PROPERTIES = frozenset(
    [
        "anki-note-type",
        "ankinotetype",
        "id",
        "deck",
        "tags",
        "extra",
        "template",
        "disable-anki-sync",
        "disableankisync",
        "use-namespace-as-default-deck",
        "usenamespaceasdefaultdeck",
    ]
)
"""
Properties which control syncing and are never mapped to fields.
"""

FIELD_NAME_MAPPINGS = {
    "archivedate": "archiveDate",
    "testvalue": "testValue",
    "createddate": "createdDate",
    "modifieddate": "modifiedDate",
    "sourcepage": "sourcePage",
    "extrainfo": "extraInfo",
}
"""
Known field names whose capitalization was lost when the outliner
lower-cased property names.
"""

_SUFFIX_PATTERNS = [
    ("date", re.compile(r"date$"), "Date"),
    ("value", re.compile(r"value$"), "Value"),
]


@dataclass(kw_only=True)
class CommonFields:
    """
    Fields written for every note regardless of schema.
    """

    uuid_type: str
    uuid: str
    text: str
    extra: str
    breadcrumb: str
    config: str

    def to_dict(self) -> dict[str, str]:
        return dict(
            zip(
                LEGACY_FIELD_NAMES,
                [
                    self.uuid_type,
                    self.uuid,
                    self.text,
                    self.extra,
                    self.breadcrumb,
                    self.config,
                ],
            )
        )


@dataclass
class LegacyFields:
    """
    Fixed field set of the default model.
    """

    def build(self, common: CommonFields) -> dict[str, str]:
        return common.to_dict()


@dataclass
class CustomFields:
    """
    Property-driven fields of a custom model.
    """

    model_name: str
    fields: dict[str, str] = field(default_factory=dict)

    def build(self, common: CommonFields) -> dict[str, str]:
        # common fields take precedence over user-named fields
        return {**self.fields, **common.to_dict()}


FieldSchema = LegacyFields | CustomFields


def get_field_schema(
    note: SourceNote, html: str, *, logger: Logger | None = None
) -> FieldSchema:
    """
    Select the note's field schema, mapping its properties to fields if it
    requests a custom model.
    """
    model_name = note.model_override
    if model_name is None:
        return LegacyFields()

    logger = logger or logging.getLogger()
    fields: dict[str, str] = {}

    for key, value in note.properties.items():
        if key.lower() in RESERVED_PROPERTIES:
            continue

        field_name = convert_to_field_name(key)
        raw = _join_value(value)

        fields[field_name] = html if raw == CONTENT_PLACEHOLDER else raw

        logger.debug(f"Mapped property '{key}' -> field '{field_name}'")

    return CustomFields(model_name=model_name, fields=fields)


def build_fields(schema: FieldSchema, common: CommonFields) -> dict[str, str]:
    """
    Build the remote field mapping for a note.
    """
    return schema.build(common)


def convert_to_field_name(prop: str) -> str:
    """
    Best-effort recovery of a field name from a lower-cased property name,
    e.g. `archivedate` -> `archiveDate`. Not guaranteed to reproduce the
    original name.
    """
    if prop in FIELD_NAME_MAPPINGS:
        return FIELD_NAME_MAPPINGS[prop]

    for word, pattern, replacement in _SUFFIX_PATTERNS:
        if len(prop) > 6 and word in prop:
            return pattern.sub(replacement, prop)

    return prop


def _join_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(_to_str(v) for v in value)
    return _to_str(value)


def _to_str(value: Any) -> str:
    # booleans as written in the graph
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
