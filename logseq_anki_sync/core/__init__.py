"""
This module implements reconciliation of notes extracted from a Logseq graph
with notes in Anki.
"""

from pyrollup import rollup

from . import (
    attributes,
    engine,
    exceptions,
    fields,
    graph,
    hashing,
    manager,
    note,
    plan,
    prewarm,
    reporting,
    router,
    settings,
)
from .attributes import *  # noqa
from .engine import *  # noqa
from .exceptions import *  # noqa
from .fields import *  # noqa
from .graph import *  # noqa
from .hashing import *  # noqa
from .manager import *  # noqa
from .note import *  # noqa
from .plan import *  # noqa
from .prewarm import *  # noqa
from .reporting import *  # noqa
from .router import *  # noqa
from .settings import *  # noqa

__all__ = rollup(
    engine,
    router,
    manager,
    plan,
    reporting,
    note,
    graph,
    attributes,
    fields,
    hashing,
    prewarm,
    settings,
    exceptions,
)

__canonical_children__ = [
    "engine",
    "router",
    "manager",
    "plan",
    "reporting",
    "note",
    "graph",
    "attributes",
    "fields",
    "hashing",
    "prewarm",
    "settings",
    "exceptions",
]
