"""
Card templates of the default model.
"""

import base64

__all__ = [
    "get_template_front",
    "get_template_back",
    "get_template_css",
    "get_template_media_files",
]

_SCRIPT_NAME = "_logseq_anki_sync.js"

_FRONT = """\
<div class="breadcrumb">{{Breadcrumb}}</div>
<div class="text">{{cloze:Text}}</div>
<script src="%(script)s"></script>
""" % {
    "script": _SCRIPT_NAME
}

_BACK = """\
<div class="breadcrumb">{{Breadcrumb}}</div>
<div class="text">{{cloze:Text}}</div>
{{#Extra}}
<hr id="answer">
<div class="extra">{{Extra}}</div>
{{/Extra}}
<script src="%(script)s"></script>
""" % {
    "script": _SCRIPT_NAME
}

_CSS = """\
.card { font-family: sans-serif; font-size: 18px; text-align: left; }
.breadcrumb { font-size: 12px; opacity: 0.7; margin-bottom: 8px; }
.breadcrumb a.hidden { display: none; }
.hidden-parent { display: none; }
ul.children-list { padding-left: 1.2em; }
li.children.numbered { list-style-type: decimal; }
"""

_SCRIPT = """\
document.querySelectorAll(".hidden-parent").forEach(function (el) {
    el.parentElement.addEventListener("click", function () {
        el.style.display = el.style.display === "inline" ? "none" : "inline";
    });
});
"""


def get_template_front() -> str:
    return _FRONT


def get_template_back() -> str:
    return _BACK


def get_template_css() -> str:
    return _CSS


def get_template_media_files() -> dict[str, str]:
    """
    Mapping of media filename to base64-encoded content.
    """
    return {_SCRIPT_NAME: base64.b64encode(_SCRIPT.encode()).decode()}
