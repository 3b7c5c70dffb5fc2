"""
Minimal conversion of block markup to card HTML.
"""

from __future__ import annotations

import html
import re

from ..core.note import RenderResult
from ..core.utils import strip_properties

__all__ = [
    "BasicRenderer",
]

_MD_IMAGE_REGEXP = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)\)")
_ORG_IMAGE_REGEXP = re.compile(
    r"\[\[(?:file:)?([^\]]+\.(?:png|jpe?g|gif|svg|webp))\]\]", re.IGNORECASE
)
_BOLD_REGEXP = re.compile(r"\*\*(.+?)\*\*")

ASSETS_PREFIX = "../assets/"


class BasicRenderer:
    """
    Renders markdown or org content: property lines are removed, text is
    escaped, bold and local images are converted and line breaks kept.
    Clozes pass through unchanged for Anki to process.
    """

    def render(self, raw_text: str, format: str) -> RenderResult:
        assets: set[str] = set()

        def image(src: str, alt: str) -> str:
            if src.startswith(ASSETS_PREFIX):
                assets.add(src)
                src = src.rsplit("/", 1)[-1]
            return f'<img src="{src}" alt="{alt.replace(chr(34), "&quot;")}">'

        text = html.escape(strip_properties(raw_text).strip(), quote=False)

        if format == "org":
            text = _ORG_IMAGE_REGEXP.sub(lambda m: image(m.group(1), ""), text)
        else:
            text = _MD_IMAGE_REGEXP.sub(
                lambda m: image(m.group(2), m.group(1)), text
            )
            text = _BOLD_REGEXP.sub(r"<b>\1</b>", text)

        return RenderResult(html=text.replace("\n", "<br>"), assets=assets)
