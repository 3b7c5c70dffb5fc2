"""
LogseqAnkiSync: sync flashcards from a Logseq graph to Anki.
"""

from pyrollup import rollup

from . import connect, core
from .connect import *  # noqa
from .core import *  # noqa

__all__ = rollup(core, connect)

__canonical_children__ = [
    "core",
    "connect",
]
