"""
Reconciliation of source notes with notes in Anki.
"""

from __future__ import annotations

import logging
import math
import posixpath
import re
import time
from dataclasses import dataclass
from logging import Logger
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, ClassVar, Iterable

from ..connect.templates import (
    get_template_back,
    get_template_css,
    get_template_front,
    get_template_media_files,
)
from .attributes import AttributeResolver
from .exceptions import MissingManagerError
from .fields import (
    LEGACY_FIELD_NAMES,
    CommonFields,
    FieldSchema,
    build_fields,
    get_field_schema,
)
from .graph import DocumentGraph
from .hashing import DependencyConfig, NoteHashCalculator, Payload
from .manager import NoteManager, OperationKind
from .note import NoteSource, Renderer, SourceNote
from .plan import (
    MASS_DELETE_MESSAGE,
    SyncPlan,
    SyncSelection,
    SyncSelector,
    needs_mass_delete_confirmation,
)
from .prewarm import HashPrewarmer
from .reporting import Notifier, NullProgress, ProgressReporter, SyncResult
from .router import ManagerRouter
from .settings import SyncSettings
from .utils import get_prop

if TYPE_CHECKING:
    from ..connect.client import AnkiConnect

__all__ = [
    "ParsedNote",
    "SyncEngine",
]


@dataclass(kw_only=True)
class ParsedNote:
    """
    A note rendered and resolved for its destination.
    """

    html: str
    assets: set[str]
    deck: str
    breadcrumb: str
    tags: list[str]
    extra: str
    model_name: str
    schema: FieldSchema

    @property
    def payload(self) -> Payload:
        return Payload(
            self.html,
            sorted(self.assets),
            self.deck,
            self.breadcrumb,
            self.tags,
            self.extra,
        )


class SyncEngine:
    """
    Synchronizes notes extracted from the document graph to Anki.

    A sync run proceeds as follows:

    - Extract notes from the graph and persist their identities
    - Partition notes into creates and updates by matching them to remote
    notes; remote notes without a match are deleted
    - Let the user review and narrow the operations
    - Render each note and queue its operation with the manager of its model,
    skipping updates whose dependency hash is unchanged
    - Submit queued operations per manager

    Failures are isolated per note and reported in the {obj}`SyncResult`.

    Only one sync run may be active per process.
    """

    _is_syncing: ClassVar[bool] = False
    """
    Set while a sync run is active.
    """

    _connector: AnkiConnect
    _graph: DocumentGraph
    _renderer: Renderer
    _sources: list[NoteSource]
    _selector: SyncSelector
    _settings: SyncSettings
    _notifier: Notifier | None
    _progress: ProgressReporter
    _logger: Logger

    _resolver: AttributeResolver
    _calculator: NoteHashCalculator | None = None

    identities_written: list[str]
    """
    Uuids of blocks which were given an `id` property during the last run.
    """

    def __init__(
        self,
        connector: AnkiConnect,
        graph: DocumentGraph,
        renderer: Renderer,
        sources: Iterable[NoteSource],
        selector: SyncSelector,
        *,
        settings: SyncSettings | None = None,
        notifier: Notifier | None = None,
        progress: ProgressReporter | None = None,
        logger: Logger | None = None,
    ):
        """
        :param connector: AnkiConnect client
        :param graph: Document graph accessor
        :param renderer: Converts block content to HTML
        :param sources: Extractors, one per note kind
        :param selector: Lets the user review operations
        :param settings: Sync settings, or `None` to use defaults
        :param notifier: Receives the result of each run
        :param progress: Receives progress of each run
        :param logger: Logger to use, or `None` to use default logger
        """
        self._connector = connector
        self._graph = graph
        self._renderer = renderer
        self._sources = list(sources)
        self._selector = selector
        self._settings = settings or SyncSettings()
        self._notifier = notifier
        self._progress = progress or NullProgress()
        self._logger = logger or logging.getLogger()

        self._resolver = AttributeResolver(
            graph, renderer, self._settings, logger=self._logger
        )
        self.identities_written = []

    @classmethod
    def is_syncing(cls) -> bool:
        return cls._is_syncing

    @property
    def model_name(self) -> str:
        """
        Name of the default model for this graph.
        """
        return re.sub(r"\s", "_", f"{self._graph.name}Model")

    @property
    def calculator(self) -> NoteHashCalculator:
        """
        Hash calculator of the current or last run.
        """
        if self._calculator is None:
            self._calculator = NoteHashCalculator(
                self._graph, self._settings, logger=self._logger
            )
        return self._calculator

    def sync(self) -> SyncResult | None:
        """
        Perform a sync run. Returns `None` if a run is already active or the
        user aborted.
        """
        if SyncEngine._is_syncing:
            self._logger.warning("Syncing already in process...")
            return None

        SyncEngine._is_syncing = True
        try:
            return self._perform_sync()
        except Exception:
            self._progress.close()
            self._logger.exception("Sync failed")
            raise
        finally:
            SyncEngine._is_syncing = False

    def scan(self) -> list[SourceNote]:
        """
        Get notes from all sources. Notes repeating an identity already seen
        are dropped.
        """
        notes: list[SourceNote] = []
        seen: set[str] = set()

        for source in self._sources:
            for note in source.get_notes_from_source_blocks(list(notes)):
                if note.uuid_type in seen:
                    self._logger.warning(f"Ignoring duplicate note {note}")
                    continue

                seen.add(note.uuid_type)
                notes.append(note)

        self._logger.debug(f"Scanned {len(notes)} notes")
        return notes

    def persist_identities(self, notes: Iterable[SourceNote]):
        """
        Write an `id` property to each note's block which doesn't have one, so
        its uuid persists across re-indexing of the graph. The note's own
        properties are kept in sync with its block.
        """
        for note in notes:
            if get_prop(note.properties, "id"):
                continue

            try:
                self._graph.upsert_block_property(note.uuid, "id", note.uuid)
            except Exception:
                self._logger.exception(f"Failed to persist identity of {note}")
            else:
                note.properties["id"] = note.uuid
                self.identities_written.append(note.uuid)

    def sort_notes(self, notes: list[SourceNote]) -> list[SourceNote]:
        """
        Sort notes in document order.
        """

        def position(note: SourceNote) -> int:
            block = self._graph.get_block(note.uuid)
            return block.id if block is not None else 0

        return sorted(notes, key=position)

    def partition(
        self, notes: list[SourceNote], router: ManagerRouter
    ) -> SyncSelection:
        """
        Split notes into those to create and update, and collect remote notes
        without a source note for deletion. Caches remote ids on matched
        notes.
        """
        selection = SyncSelection()
        matched: set[int] = set()

        for note in notes:
            remote_id = router.find_remote_id(note)
            if remote_id is None:
                selection.to_create.append(note)
            else:
                note.remote_id = remote_id
                selection.to_update.append(note)
                matched.add(remote_id)

        selection.to_delete = sorted(router.all_remote_ids() - matched)
        return selection

    def parse_note(self, note: SourceNote, router: ManagerRouter) -> ParsedNote:
        """
        Render note and resolve its attributes.
        """
        rendered = self._renderer.render(note.content, note.format)
        model_name = router.get_model_name(note)

        # custom fields map the note's own content, without parents
        schema = get_field_schema(note, rendered.html, logger=self._logger)

        tags = self._resolver.resolve_tags(note)

        if self._settings.include_parent_content:
            rendered = self._resolver.include_parent_content(note, rendered)

        extra = self._resolver.resolve_extra(note)

        return ParsedNote(
            html=rendered.html,
            assets=rendered.assets | extra.assets,
            deck=self._resolver.resolve_deck(note),
            breadcrumb=self._resolver.resolve_breadcrumb(note),
            tags=tags,
            extra=extra.html,
            model_name=model_name,
            schema=schema,
        )

    def create_notes(self, plan: SyncPlan, router: ManagerRouter):
        for note in plan.to_create:
            try:
                parsed = self.parse_note(note, router)

                manager = router.get(parsed.model_name)
                if manager is None:
                    raise MissingManagerError(parsed.model_name)

                dependency_hash = self.calculator.get_hash(note, parsed.payload)

                self._store_assets(manager, parsed.assets)
                manager.add_note(
                    note.uuid_type,
                    parsed.deck,
                    self._build_fields(note, parsed, dependency_hash),
                    parsed.tags,
                )
            except Exception as e:
                self._logger.exception(f"Failed to create {note}")
                plan.failed_created[note.uuid_type] = str(e)

            self._progress.increment()

        notes = {note.uuid_type: note for note in plan.to_create}

        for manager in router:
            for result in manager.execute(OperationKind.ADD):
                if result.error is not None:
                    self._logger.error(f"Failed to add {result.key}: {result.error}")
                    plan.failed_created[result.key] = result.error
                elif (note := notes.get(result.key)) is not None:
                    note.remote_id = result.remote_id

    def update_notes(self, plan: SyncPlan, router: ManagerRouter):
        for note in plan.to_update:
            try:
                self._update_note(note, router)
            except Exception as e:
                self._logger.exception(f"Failed to update {note}")
                plan.failed_updated[note.uuid_type] = str(e)

            self._progress.increment()

        for manager in router:
            for result in manager.execute(OperationKind.UPDATE):
                if result.error is not None:
                    self._logger.error(
                        f"Failed to update {result.key}: {result.error}"
                    )
                    plan.failed_updated[result.key] = result.error

    def delete_notes(self, plan: SyncPlan, router: ManagerRouter):
        for remote_id in plan.to_delete:
            manager = router.find_manager_by_remote_id(remote_id)
            if manager is not None:
                manager.delete_note(remote_id)
            else:
                self._logger.debug(f"Remote note {remote_id} already deleted")

            self._progress.increment()

        for manager in router:
            for result in manager.execute(OperationKind.DELETE):
                if result.error is not None:
                    self._logger.error(
                        f"Failed to delete {result.key}: {result.error}"
                    )
                    assert result.remote_id is not None
                    plan.failed_deleted[result.remote_id] = result.error

    def store_assets(self, router: ManagerRouter):
        for manager in router:
            for result in manager.execute(OperationKind.STORE_ASSETS):
                if result.error is not None:
                    self._logger.error(
                        f"Failed to store asset '{result.key}': {result.error}"
                    )

    def _perform_sync(self) -> SyncResult | None:
        self._calculator = None
        self.identities_written = []

        self._logger.info(f"Starting sync for graph '{self._graph.name}'")

        self._connector.request_permission()
        self._connector.create_model(
            self.model_name,
            LEGACY_FIELD_NAMES,
            get_template_front(),
            get_template_back(),
            get_template_media_files(),
            css=get_template_css(),
        )

        notes = self.scan()

        router = ManagerRouter.create(
            self._connector, self.model_name, notes, logger=self._logger
        )

        self.persist_identities(notes)
        notes = self.sort_notes(notes)

        candidates = self.partition(notes, router)

        # warm hashes while the user reviews the selection
        with HashPrewarmer(
            self.calculator,
            notes,
            delay=self._settings.prewarm_delay,
            logger=self._logger,
        ):
            selection = self._selector.select(
                candidates.to_create, candidates.to_update, candidates.to_delete
            )

            if selection is not None and needs_mass_delete_confirmation(
                selection
            ):
                if not self._selector.confirm(MASS_DELETE_MESSAGE):
                    selection = None

        if selection is None:
            self._logger.info("Sync aborted by user")
            return None

        plan = SyncPlan.from_selection(selection)
        self._logger.debug(
            f"Selected (create/update/delete) {len(plan.to_create)}/{len(plan.to_update)}/{len(plan.to_delete)}"
        )

        start_time = time.perf_counter()
        assets_weight = math.ceil(plan.total / 20)

        self._progress.start(
            "Syncing notes to Anki...", plan.total + assets_weight + 1
        )

        self.create_notes(plan, router)
        self.update_notes(plan, router)
        self.delete_notes(plan, router)

        self._progress.update_message("Syncing assets to Anki...")
        self.store_assets(router)
        self._progress.increment(assets_weight)

        self._connector.invoke("reloadCollection")
        self._progress.increment()
        self._progress.close()

        result = SyncResult(plan=plan, elapsed=time.perf_counter() - start_time)

        self._logger.info(result.summary.replace("\n", ", "))
        self._logger.debug(f"Sync took {result.elapsed:.2f}s")

        if self._notifier is not None:
            self._notifier.notify(result)

        return result

    def _update_note(self, note: SourceNote, router: ManagerRouter):
        model_name = router.get_model_name(note)
        manager = router.get(model_name)
        remote_id = (
            manager.find_remote_id(note.uuid_type) if manager is not None else None
        )

        if manager is None or remote_id is None:
            self._logger.warning(
                f"No remote id found for {note} in model '{model_name}', skipping update"
            )
            return

        record = manager.records[remote_id]
        old_config = DependencyConfig.from_field(record.fields.get("Config"))

        old_payload = Payload(
            record.fields.get("Text") or record.fields.get("front") or "",
            old_config.assets,
            record.deck or "",
            record.fields.get("Breadcrumb", ""),
            record.tags,
            record.fields.get("Extra", ""),
        )
        old_hash = self.calculator.get_hash(note, old_payload)

        if (
            self._settings.skip_on_dependency_hash_match
            and old_config.dependency_hash == old_hash
        ):
            # unchanged: only make sure assets are still present
            self._store_assets(manager, old_config.assets, only_missing=True)
            return

        self._logger.debug(f"Dependency hash mismatch for {note}")

        parsed = self.parse_note(note, router)
        dependency_hash = self.calculator.get_hash(note, parsed.payload)

        self._store_assets(manager, parsed.assets)
        manager.update_note(
            remote_id,
            note.uuid_type,
            parsed.deck,
            self._build_fields(note, parsed, dependency_hash),
            parsed.tags,
        )

    def _build_fields(
        self, note: SourceNote, parsed: ParsedNote, dependency_hash: str
    ) -> dict[str, str]:
        config = DependencyConfig(
            dependency_hash=dependency_hash, assets=sorted(parsed.assets)
        )
        common = CommonFields(
            uuid_type=note.uuid_type,
            uuid=note.uuid,
            text=parsed.html,
            extra=parsed.extra,
            breadcrumb=parsed.breadcrumb,
            config=config.to_field(),
        )
        return build_fields(parsed.schema, common)

    def _store_assets(
        self,
        manager: NoteManager,
        assets: Iterable[str],
        *,
        only_missing: bool = False,
    ):
        for asset in assets:
            filename = PurePosixPath(asset).name
            if only_missing and manager.has_asset(filename):
                continue
            manager.store_asset(filename, self._asset_path(asset))

    def _asset_path(self, asset: str) -> str:
        """
        Resolve an asset reference like `../assets/image.png` against the
        graph root.
        """
        relative = posixpath.normpath(posixpath.join("/", asset)).lstrip("/")
        return str(self._graph.path / relative)
