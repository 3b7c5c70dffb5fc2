"""
Utilities specific to CLI functionality.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from typer import BadParameter, Context, Typer

from ..snapshot import SnapshotGraph

if TYPE_CHECKING:
    from click import Parameter

    from .main import RootContext


console = Console()

rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    show_level=True,
    show_time=True,
    show_path=False,
)
rich_handler.setFormatter(logging.Formatter("%(message)s"))

logger = logging.getLogger("logseq-anki-sync")
logger.setLevel(logging.INFO)
logger.addHandler(rich_handler)
logger.propagate = False


class MainTyper(Typer):
    """
    Typer app with preconfigured settings.
    """

    def __init__(self, name: str, *, help: str):
        return super().__init__(
            name=name,
            help=help,
            rich_markup_mode="markdown",
            no_args_is_help=True,
            add_completion=False,
        )


def get_root_context(ctx: Context) -> RootContext:
    from .main import RootContext

    root_context = ctx.obj
    assert isinstance(root_context, RootContext)
    return root_context


def lookup_param(ctx: Context, name: str) -> Parameter:
    """
    Lookup param by name.
    """
    param = next((p for p in ctx.command.params if p.name == name), None)
    assert param, f"Could not find param with name: {name}"
    return param


def load_graph(ctx: Context, graph_file: Path) -> SnapshotGraph:
    """
    Load graph snapshot given as argument, converting load errors to a
    parameter error.
    """
    try:
        return SnapshotGraph.load(graph_file)
    except (ValueError, ValidationError) as e:
        raise BadParameter(
            f"failed to load graph '{graph_file}': {e}",
            ctx=ctx,
            param=lookup_param(ctx, "graph_file"),
        )
