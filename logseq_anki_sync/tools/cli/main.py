"""
Entry point of `logseq-anki-sync` CLI.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import dotenv
import requests
from pydantic import ValidationError
from typer import Argument, BadParameter, Context, Exit, Option

from ...connect.client import AnkiConnect
from ...core.engine import SyncEngine
from ...core.exceptions import AnkiConnectError
from ..config import Config, ConnectConfig
from ..extract import ClozeNoteSource
from ..render import BasicRenderer
from ._utils import (
    MainTyper,
    get_root_context,
    load_graph,
    logger,
    lookup_param,
)
from .console import ConsoleNotifier, ConsoleSelector, RichProgress

DEFAULT_CONFIG_FILE = "logseq-anki-sync.yaml"

dotenv.load_dotenv()

app = MainTyper(
    "logseq-anki-sync",
    help="Sync flashcards from a Logseq graph to Anki",
)


@app.callback()
def main(
    ctx: Context,
    url: str
    | None = Option(
        None,
        help="AnkiConnect URL, e.g. http://127.0.0.1:8765",
        envvar="ANKI_CONNECT_URL",
    ),
    key: str
    | None = Option(
        None,
        help="AnkiConnect API key",
        envvar="ANKI_CONNECT_KEY",
    ),
    config_file: Path
    | None = Option(
        None,
        help=f".yaml file containing connection info and sync settings [default: {DEFAULT_CONFIG_FILE}, if present]",
        envvar="LOGSEQ_ANKI_SYNC_CONFIG_FILE",
        dir_okay=False,
    ),
    verbose: bool = Option(False, "--verbose", "-v", help="Log debug info"),
):
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    root_context = RootContext.from_config(ctx=ctx, config_file=config_file)

    # options take precedence over config file
    overrides = {
        k: v for k, v in (("url", url), ("key", key)) if v is not None
    }
    try:
        root_context.config.anki_connect = ConnectConfig.model_validate(
            root_context.config.anki_connect.model_dump() | overrides
        )
    except ValidationError as e:
        raise BadParameter(str(e), ctx=ctx, param=lookup_param(ctx, "url"))

    ctx.obj = root_context


@app.command()
def check(ctx: Context):
    """
    Check AnkiConnect connection
    """
    root_context = get_root_context(ctx)
    connector = root_context.create_connector()

    try:
        connector.request_permission()
        version = connector.version()
    except (AnkiConnectError, requests.RequestException) as e:
        logger.error(f"Failed to connect to '{connector.url}': {e}")
        raise Exit(code=1)

    logger.info(
        f"Connected to AnkiConnect at '{connector.url}', version {version}"
    )


@app.command()
def sync(
    ctx: Context,
    graph_file: Path = Argument(
        ...,
        help=".yaml snapshot of the graph; assets are resolved relative to its folder",
        exists=True,
        dir_okay=False,
    ),
    yes: bool = Option(
        False, "--yes", "-y", help="Don't prompt for confirmation"
    ),
    dry_run: bool = Option(
        False, "--dry-run", help="Show pending operations without syncing"
    ),
    details: bool = Option(
        False, "--details", help="List failures after syncing"
    ),
    force_delete: bool = Option(
        False,
        "--force-delete",
        help="Delete all notes of the graph from Anki without confirmation if none are left",
    ),
):
    """
    Sync cloze notes of a graph snapshot to Anki
    """
    root_context = get_root_context(ctx)
    graph = load_graph(ctx, graph_file)

    engine = SyncEngine(
        root_context.create_connector(),
        graph,
        BasicRenderer(),
        [ClozeNoteSource(graph, logger=logger)],
        ConsoleSelector(yes=yes, dry_run=dry_run, force_delete=force_delete),
        settings=root_context.config.settings,
        notifier=ConsoleNotifier(details=details),
        progress=RichProgress(),
        logger=logger,
    )

    try:
        result = engine.sync()
    except Exception:
        # would have already logged error
        raise Exit(code=1)
    finally:
        if graph.dirty and not dry_run:
            graph.save(graph_file)
            logger.info(
                f"Wrote ids of {len(engine.identities_written)} blocks to '{graph_file}'"
            )

    if result is None:
        logger.info("Nothing synced")


def run():
    app()


@dataclass(kw_only=True)
class RootContext:
    ctx: Context
    config: Config

    @classmethod
    def from_config(
        cls, *, ctx: Context, config_file: Path | None
    ) -> RootContext:
        if config_file is None:
            # default file is optional
            config_file = Path(DEFAULT_CONFIG_FILE)
            if not config_file.is_file():
                return RootContext(ctx=ctx, config=Config())

        elif not config_file.is_file():
            raise BadParameter(
                message=f"file does not exist: {config_file}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        try:
            config = Config.load_yaml(config_file)
        except (ValueError, ValidationError) as e:
            raise BadParameter(
                f"failed to load config file '{config_file}': {e}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        return RootContext(ctx=ctx, config=config)

    def create_connector(self) -> AnkiConnect:
        return self.config.anki_connect.create_connector(logger=logger)


if __name__ == "__main__":
    app()
