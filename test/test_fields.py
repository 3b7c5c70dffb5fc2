from logseq_anki_sync import *

COMMON = CommonFields(
    uuid_type="u1-cloze",
    uuid="u1",
    text="<b>rendered</b>",
    extra="",
    breadcrumb="crumb",
    config="{}",
)


def note(properties: dict) -> SourceNote:
    return SourceNote(
        "u1",
        "cloze",
        Page(id=1, name="facts"),
        content="front",
        properties=properties,
    )


def test_convert_field_name():
    assert convert_to_field_name("archivedate") == "archiveDate"
    assert convert_to_field_name("sourcepage") == "sourcePage"
    assert convert_to_field_name("releasedate") == "releaseDate"
    assert convert_to_field_name("startvalue") == "startValue"

    # too short or no known suffix
    assert convert_to_field_name("date") == "date"
    assert convert_to_field_name("front") == "front"


def test_legacy():
    schema = get_field_schema(note({"deck": "X"}), "<b>rendered</b>")
    assert isinstance(schema, LegacyFields)

    fields = build_fields(schema, COMMON)
    assert list(fields.keys()) == LEGACY_FIELD_NAMES
    assert fields["Text"] == "<b>rendered</b>"
    assert fields["uuid-type"] == "u1-cloze"


def test_custom():
    schema = get_field_schema(
        note(
            {
                "ankiNoteType": "Basic",
                "front": CONTENT_PLACEHOLDER,
                "back": "answer",
                "sources": ["a", "b"],
                "archivedate": "2024-01-01",
                "deck": "Reserved",
                "tags": ["reserved"],
                "id": "u1",
            }
        ),
        "<b>rendered</b>",
    )

    assert isinstance(schema, CustomFields)
    assert schema.model_name == "Basic"
    assert schema.fields == {
        "front": "<b>rendered</b>",
        "back": "answer",
        "sources": "a, b",
        "archiveDate": "2024-01-01",
    }


def test_custom_precedence():
    schema = get_field_schema(
        note({"anki-note-type": "Basic", "Text": "mine", "back": "answer"}),
        "<b>rendered</b>",
    )

    fields = build_fields(schema, COMMON)

    # common fields override properties of the same name
    assert fields["Text"] == "<b>rendered</b>"
    assert fields["back"] == "answer"
    assert fields["Breadcrumb"] == "crumb"


def test_model_override():
    assert note({}).model_override is None
    assert note({"AnkiNoteType": "Basic"}).model_override == "Basic"
    assert note({"anki-note-type": ["Cloze+", "x"]}).model_override == "Cloze+"
    assert note({"ankiNoteType": ""}).model_override is None


def test_custom_bool_values():
    schema = get_field_schema(
        note({"anki-note-type": "Basic", "done": True, "flags": [False, 1]}),
        "",
    )

    assert isinstance(schema, CustomFields)
    assert schema.fields == {"done": "true", "flags": "false, 1"}
