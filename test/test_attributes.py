from logseq_anki_sync import *
from logseq_anki_sync.tools.render import BasicRenderer

from .conftest import make_note


def resolver(graph, **settings) -> AttributeResolver:
    return AttributeResolver(graph, BasicRenderer(), SyncSettings(**settings))


def set_block_props(graph, uuid: str, **props):
    block = graph.get_block(uuid)
    assert block is not None
    block.properties.update(props)


def set_page_props(graph, page_id: int, props: dict):
    page = graph.get_page(page_id)
    assert page is not None
    page.properties.update(props)


def test_deck_block(namespaced_graph):
    set_block_props(namespaced_graph, "root-block", deck="Root")
    set_block_props(namespaced_graph, "parent-block", deck="Spanish/Present")
    set_page_props(namespaced_graph, 3, {"deck": "Page deck"})

    note = make_note(namespaced_graph, "note-block")

    # nearest ancestor block wins over page
    assert resolver(namespaced_graph).resolve_deck(note) == "Spanish::Present"

    # note's own block wins over ancestors
    set_block_props(namespaced_graph, "note-block", deck="Own")
    assert resolver(namespaced_graph).resolve_deck(note) == "Own"


def test_deck_page(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")

    # namespace ancestor page
    set_page_props(namespaced_graph, 1, {"deck": "Languages"})
    assert resolver(namespaced_graph).resolve_deck(note) == "Languages"

    # note's page wins over namespace ancestor, list takes first value
    set_page_props(namespaced_graph, 3, {"deck": ["Verbs", "Other"]})
    assert resolver(namespaced_graph).resolve_deck(note) == "Verbs"


def test_deck_namespace(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")

    assert (
        resolver(
            namespaced_graph, use_namespace_as_default_deck=True
        ).resolve_deck(note)
        == "Lang::Spanish"
    )

    # explicit deck still wins
    set_page_props(namespaced_graph, 2, {"deck": "Español"})
    assert (
        resolver(
            namespaced_graph, use_namespace_as_default_deck=True
        ).resolve_deck(note)
        == "Español"
    )


def test_deck_namespace_flag(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")

    # enabled by namespace ancestor page
    set_page_props(namespaced_graph, 1, {"use-namespace-as-default-deck": True})
    assert resolver(namespaced_graph).use_namespace_as_default_deck(note)
    assert resolver(namespaced_graph).resolve_deck(note) == "Lang::Spanish"

    # disabled by nearer page, overriding ancestor and settings
    set_page_props(
        namespaced_graph, 3, {"use-namespace-as-default-deck": "false"}
    )
    r = resolver(namespaced_graph, use_namespace_as_default_deck=True)
    assert not r.use_namespace_as_default_deck(note)
    assert r.resolve_deck(note) == "Default"


def test_deck_default(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")

    assert resolver(namespaced_graph).resolve_deck(note) == "Default"
    assert (
        resolver(namespaced_graph, default_deck="Inbox/New").resolve_deck(note)
        == "Inbox::New"
    )


def test_tags(namespaced_graph):
    set_block_props(namespaced_graph, "parent-block", tags=["grammar/tenses"])
    set_page_props(namespaced_graph, 3, {"tags": "spanish, grammar"})

    note = make_note(namespaced_graph, "note-block")
    note.tags = ["verbs"]

    assert resolver(namespaced_graph).resolve_tags(note) == [
        "verbs",
        "grammar::tenses",
        "spanish",
    ]


def test_normalize_tags():
    assert normalize_tags(["A", "A::B", "C"]) == ["A::B", "C"]
    assert normalize_tags(["my tag", "x/y", "my tag"]) == ["my_tag", "x::y"]
    assert normalize_tags(["AB", "A::B"]) == ["AB", "A::B"]


def test_normalize_deck():
    assert normalize_deck("Lang/ Spanish /Verbs") == "Lang::Spanish::Verbs"
    assert normalize_deck(["First", "Second"]) == "First"
    assert normalize_deck([]) == ""


def test_breadcrumb_hidden(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")
    breadcrumb = resolver(
        namespaced_graph, breadcrumb_display=BreadcrumbDisplay.HIDDEN
    ).resolve_breadcrumb(note)

    assert breadcrumb == (
        '<a href="logseq://graph/Test%20Graph?page=Lang%2FSpanish%2FVerbs" '
        'class="hidden">Lang/Spanish/Verbs</a>'
    )


def test_breadcrumb_page(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")
    breadcrumb = resolver(namespaced_graph).resolve_breadcrumb(note)

    assert breadcrumb == (
        '<a href="logseq://graph/Test%20Graph?page=Lang%2FSpanish%2FVerbs" '
        'title="Lang/Spanish/Verbs">Lang/Spanish/Verbs</a>'
    )


def test_breadcrumb_blocks(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")
    breadcrumb = resolver(
        namespaced_graph, breadcrumb_display="page_and_blocks"
    ).resolve_breadcrumb(note)

    links = breadcrumb.split(" > ")
    assert len(links) == 3

    # root first, clozes replaced by answers, first line only
    assert "?block-id=root-block" in links[1]
    assert links[1].endswith(">Irregular verbs</a>")
    assert 'title="Irregular verbs\nsecond line"' in links[1]

    assert "?block-id=parent-block" in links[2]
    assert links[2].endswith(">Present tense</a>")


def test_parent_content(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")
    r = resolver(namespaced_graph)

    rendered = r.include_parent_content(
        note, RenderResult(html="Yo {{c1::tengo}}")
    )

    assert rendered.html == (
        '<ul class="children-list"><li class="children">Irregular verbs<br>second line'
        '<ul class="children-list"><li class="children">Present tense'
        '<ul class="children-list"><li class="children">Yo {{c1::tengo}}</li></ul>'
        "</li></ul></li></ul>"
    )


def test_parent_content_hidden(namespaced_graph):
    parent = namespaced_graph.get_block("parent-block")
    assert parent is not None
    parent.refs = ["hide-when-card-parent"]
    parent.properties["logseq.orderListType"] = "number"
    parent.content = "Present ![tense](../assets/tense.png)"

    note = make_note(namespaced_graph, "note-block")
    r = resolver(namespaced_graph)

    rendered = r.include_parent_content(
        note, RenderResult(html="x", assets={"../assets/x.png"})
    )

    assert (
        '<li class="children numbered"><span class="hidden-parent">Present '
        in rendered.html
    )
    assert '<li class="children">Irregular verbs' in rendered.html
    assert rendered.assets == {"../assets/x.png", "../assets/tense.png"}

    # hide all parents via tag of note
    note.tags = ["hide-all-card-parent"]
    rendered = r.include_parent_content(note, RenderResult(html="x"))
    assert rendered.html.count('<span class="hidden-parent">') == 2


def test_parent_content_hide_all_inherited(namespaced_graph):
    set_page_props(namespaced_graph, 3, {"tags": ["hide-all-card-parent"]})
    set_block_props(namespaced_graph, "root-block", tags=["hide-all-card-parent"])

    note = make_note(namespaced_graph, "note-block")
    r = resolver(namespaced_graph)

    # inherited tag is synced but doesn't hide parents
    assert "hide-all-card-parent" in r.resolve_tags(note)

    rendered = r.include_parent_content(note, RenderResult(html="x"))
    assert "hidden-parent" not in rendered.html

    # tag in note's own properties does
    note.properties["tags"] = ["hide-all-card-parent", "hide-all-card-parent::x"]
    rendered = r.include_parent_content(note, RenderResult(html="x"))
    assert rendered.html.count('<span class="hidden-parent">') == 2


def test_extra(namespaced_graph):
    note = make_note(namespaced_graph, "note-block")
    r = resolver(namespaced_graph)

    assert r.resolve_extra(note).html == ""

    set_page_props(namespaced_graph, 3, {"extra": "From page"})
    assert r.resolve_extra(note).html == "From page"

    note.properties["extra"] = "From **note**"
    assert r.resolve_extra(note).html == "From <b>note</b>"
