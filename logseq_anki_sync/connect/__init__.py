"""
Interface to Anki via the AnkiConnect add-on.
"""

from pyrollup import rollup

from . import client, templates
from .client import *  # noqa
from .templates import *  # noqa

__all__ = rollup(client, templates)
