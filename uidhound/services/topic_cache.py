"""Topic metadata cache for a DocFX project.

The cache is the only component editor adapters talk to. It owns:

- the open project handle (``open_project`` / ``close_project``)
- first population, from the persisted snapshot or a full scan
  (``ensure_populated``, single-flight across concurrent callers)
- incremental updates from the change feed (``on_topic_change``)
- the persisted snapshot

Concurrency model:
- All mutations (population, change handling) run under one asyncio lock and
  only suspend at I/O (directory walks, file parsing, snapshot writes).
- Concurrent ``ensure_populated`` calls share one population task.
- No operation is cancelled mid-flight and population has no timeout.

No exception crosses the public methods: failures are logged, recorded in
``last_error`` and reported as ``False`` / ``None``.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from uidhound.core.config.project_config import DocfxProject
from uidhound.core.config.settings import UidHoundSettings
from uidhound.core.exceptions import (
    ProjectNotFoundError,
    SnapshotCorruptError,
    TopicCacheError,
)
from uidhound.core.models.topic import Topic, TopicType
from uidhound.core.utils.path_utils import normalize_source_file
from uidhound.docfx.content_files import enumerate_content_files, find_project_file
from uidhound.index.topic_index import TopicIndex
from uidhound.interfaces.progress_reporter import LoggingProgressReporter, ProgressReporter
from uidhound.parsers.topic_parser import TopicParser, extract_topics
from uidhound.services.change_watcher import ChangeType, TopicChange, TopicChangeWatcher
from uidhound.services.snapshot_store import SnapshotStore


class TopicCache:
    """Cache of topic metadata for the open DocFX project."""

    def __init__(
        self,
        workspace_root: Path | str | None = None,
        settings: UidHoundSettings | None = None,
        parser: TopicParser | None = None,
        state_dir: Path | str | None = None,
    ) -> None:
        """Create a topic cache.

        Args:
            workspace_root: Directory searched for a project file when
                population starts without an open project
            settings: Runtime settings (environment / defaults if omitted)
            parser: Topic parser shared by scans and the change watcher
            state_dir: Directory for the snapshot; defaults to
                ``<project dir>/<settings.state_dir_name>``
        """
        self.settings = settings or UidHoundSettings()
        self._workspace_root = Path(workspace_root) if workspace_root else None
        self._state_dir = Path(state_dir) if state_dir else None
        self._parser = parser or TopicParser(self.settings.max_front_matter_lines)

        self._project_file: Path | None = None
        self._project: DocfxProject | None = None
        self._snapshot_store: SnapshotStore | None = None
        self._index: TopicIndex | None = None

        # Bumped by flush so an in-flight population never publishes stale results
        self._generation = 0
        self._populating: asyncio.Task[bool] | None = None
        self._mutation_lock = asyncio.Lock()

        self._subscription: asyncio.Task | None = None
        self._watcher: TopicChangeWatcher | None = None

        self.last_error: TopicCacheError | None = None

    # ------------------------------------------------------------------#
    # Query API
    # ------------------------------------------------------------------#
    @property
    def is_populated(self) -> bool:
        return self._project_file is not None and self._index is not None

    @property
    def topic_count(self) -> int:
        return len(self._index) if self._index is not None else 0

    @property
    def project_file(self) -> Path | None:
        return self._project_file

    @property
    def project_dir(self) -> Path | None:
        return self._project_file.parent if self._project_file else None

    @property
    def has_open_project(self) -> bool:
        return self._project_file is not None

    @property
    def is_watching(self) -> bool:
        return self._subscription is not None and not self._subscription.done()

    @property
    def snapshot_file(self) -> Path | None:
        return self._snapshot_store.snapshot_file if self._snapshot_store else None

    def lookup(self, uid: str) -> Topic | None:
        """Get a copy of the topic with the given UID (None if unknown or not populated)."""
        if self._index is None:
            return None
        return self._index.lookup(uid)

    def list_topics(self, detailed_type: TopicType | None = None) -> list[Topic]:
        """Get all topics ordered by UID, optionally of one detailed type."""
        if self._index is None:
            return []
        return self._index.list_topics(detailed_type)

    async def resolve_uid(self, uid: str) -> Topic | None:
        """Populate the cache if needed, then look up a UID."""
        if not await self.ensure_populated(ignore_missing_project=True):
            return None
        return self.lookup(uid)

    # ------------------------------------------------------------------#
    # Project lifecycle
    # ------------------------------------------------------------------#
    async def open_project(self, project_file: Path | str) -> bool:
        """Open a DocFX project.

        Opening the project that is already open does nothing; opening a
        different one closes the current project first. The index stays empty
        until ``ensure_populated`` runs.

        Returns:
            True if the project configuration was loaded
        """
        path = Path(project_file).resolve()
        if self._project_file == path:
            return True
        if self._project_file is not None:
            logger.info(f"Closing DocFX project {self._project_file} to open {path}")
            await self.close_project()

        self._project_file = path
        state_dir = self._state_dir or path.parent / self.settings.state_dir_name
        self._snapshot_store = SnapshotStore(state_dir, self.settings.snapshot_file_name)

        try:
            self._project = await self._load_project(path)
        except TopicCacheError as e:
            self._record_error(e)
            return False
        logger.info(f"Opened DocFX project {path}")
        return True

    async def close_project(self) -> None:
        """Stop watching, discard the index and forget the project."""
        await self.unwatch()
        await self.flush()
        self._project_file = None
        self._project = None
        self._snapshot_store = None

    async def flush(self, clear_persisted: bool = False) -> None:
        """Discard the in-memory index (the project stays open).

        Args:
            clear_persisted: Also delete the persisted snapshot
        """
        self._generation += 1
        self._index = None
        if clear_persisted and self._snapshot_store is not None:
            try:
                self._snapshot_store.clear()
            except OSError as e:
                logger.warning(f"Failed to delete topic snapshot {self._snapshot_store.snapshot_file}: {e}")

    async def __aenter__(self) -> TopicCache:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close_project()

    # ------------------------------------------------------------------#
    # Population
    # ------------------------------------------------------------------#
    async def ensure_populated(
        self,
        progress: ProgressReporter | None = None,
        ignore_missing_project: bool = False,
    ) -> bool:
        """Ensure that the cache is populated.

        Callers arriving while a population is in flight share its result
        instead of starting another scan.

        Args:
            progress: Receives status messages (logged when omitted; ignored
                when joining an in-flight population)
            ignore_missing_project: Do not report a missing project file as a
                warning (background startup scans)

        Returns:
            True if the cache is populated
        """
        if self.is_populated:
            return True

        if self._populating is None:
            task = asyncio.create_task(
                self._populate(progress or LoggingProgressReporter(), ignore_missing_project)
            )
            self._populating = task
            task.add_done_callback(self._on_population_done)

        return await asyncio.shield(self._populating)

    def _on_population_done(self, task: asyncio.Task) -> None:
        if self._populating is task:
            self._populating = None

    async def _populate(self, progress: ProgressReporter, ignore_missing_project: bool) -> bool:
        generation = self._generation
        async with self._mutation_lock:
            try:
                project = await self._resolve_project(progress, ignore_missing_project)
                if project is None:
                    return False

                topics = await self._load_snapshot()
                if topics is None:
                    progress.report(f'Scanning DocFX project "{project.project_file}"...')
                    topics = await self._scan_project(project, progress)

                index = TopicIndex.from_topics(self._normalize(topics, project.project_dir))

                if generation != self._generation:
                    logger.info("Topic cache was flushed during population; discarding scan results")
                    return False

                self._index = index
                self.last_error = None
                await self._persist()

                progress.report(f"Found {len(index)} topics in DocFX project.")
                logger.info(f"Topic cache now contains {len(index)} topics from {project.project_file}")
                return True
            except Exception as e:
                self._record_error(e)
                return False

    async def _resolve_project(
        self, progress: ProgressReporter, ignore_missing_project: bool
    ) -> DocfxProject | None:
        if self._project is not None:
            return self._project

        if self._project_file is None and self._workspace_root is not None:
            progress.report("Scanning workspace for DocFX project file(s)...")
            loop = asyncio.get_running_loop()
            found = await loop.run_in_executor(
                None,
                find_project_file,
                self._workspace_root,
                self.settings.project_file_name,
                self.settings.discovery_exclude_dirs,
            )
            if found is not None:
                progress.report(f'Found project file "{found}".')
                if not await self.open_project(found):
                    # open_project recorded the configuration error
                    return None
                return self._project

        if self._project_file is None:
            if ignore_missing_project:
                progress.report("No DocFX project files found in current workspace.")
                logger.info("No DocFX project file found; topic cache not populated")
                return None
            raise ProjectNotFoundError(
                f"Cannot find {self.settings.project_file_name} in the current workspace."
            )

        # A previous open failed on the configuration; retry now.
        self._project = await self._load_project(self._project_file)
        return self._project

    async def _load_project(self, project_file: Path) -> DocfxProject:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, DocfxProject.load, project_file)

    async def _load_snapshot(self) -> list[Topic] | None:
        if self._snapshot_store is None:
            return None
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._snapshot_store.load)
        except SnapshotCorruptError as e:
            logger.warning(f"{e.message}; falling back to a full scan")
            return None

    async def _scan_project(self, project: DocfxProject, progress: ProgressReporter) -> list[Topic]:
        """Enumerate and parse every content file of the project."""
        loop = asyncio.get_running_loop()

        progress.report("Scanning for content files...")
        content_files = await loop.run_in_executor(None, enumerate_content_files, project)
        total = len(content_files)
        logger.debug(f"Found {total} content files in {project.project_dir}")

        last_percent = -1

        def on_file_processed(processed: int) -> None:
            nonlocal last_percent
            percent = math.ceil(processed / total * 100)
            if percent != last_percent:
                last_percent = percent
                loop.call_soon_threadsafe(
                    progress.report, f"Processing ({percent}% complete)..."
                )

        report = await loop.run_in_executor(
            None, extract_topics, content_files, self._parser, on_file_processed
        )
        if report.failure_count:
            logger.warning(
                f"{report.failure_count} of {report.files_scanned} content files could not be parsed"
            )
        progress.report("Scan complete.")
        return report.topics

    @staticmethod
    def _normalize(topics: Iterable[Topic], project_dir: Path) -> list[Topic]:
        normalized: list[Topic] = []
        for topic in topics:
            topic.source_file = normalize_source_file(topic.source_file, project_dir)
            normalized.append(topic)
        return normalized

    async def _persist(self) -> None:
        if not self.settings.persist_snapshot:
            return
        if self._snapshot_store is None or self._index is None:
            return
        topics = list(self._index.all_topics())
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._snapshot_store.save, topics)
        except OSError as e:
            logger.warning(f"Failed to persist topic snapshot {self._snapshot_store.snapshot_file}: {e}")

    def _record_error(self, error: Exception) -> None:
        if isinstance(error, TopicCacheError):
            cache_error = error
        else:
            cache_error = TopicCacheError(f"Topic cache population failed: {type(error).__name__}: {error}")
        self.last_error = cache_error
        if cache_error.is_warning:
            logger.warning(cache_error.message)
        else:
            logger.error(cache_error.message)

    # ------------------------------------------------------------------#
    # Incremental updates
    # ------------------------------------------------------------------#
    async def on_topic_change(self, change: TopicChange) -> bool:
        """Apply a change notification to the index and re-persist.

        Changes that arrive before the cache is populated are ignored; the
        population that follows reads the current state of every file.

        Returns:
            True if the change was applied
        """
        async with self._mutation_lock:
            index = self._index
            project_dir = self.project_dir
            if index is None or project_dir is None:
                logger.debug(
                    f"Ignoring {change.change_type.value} for {change.content_file}: "
                    "topic cache not populated"
                )
                return False

            try:
                content_file = normalize_source_file(change.content_file, project_dir)
                if change.change_type in (ChangeType.ADDED, ChangeType.CHANGED):
                    index.upsert_file(content_file, change.topics or [])
                elif change.change_type is ChangeType.REMOVED:
                    index.remove_file(content_file)
                else:
                    logger.warning(f"Unexpected topic change notification: {change!r}")
                    return False
            except Exception as e:
                logger.warning(f"Error processing topic change for {change.content_file}: {e}")
                return False

            logger.debug(
                f"Applied {change.change_type.value} for {content_file}; "
                f"{len(index)} topics cached"
            )
            await self._persist()
            return True

    def subscribe(self, changes: asyncio.Queue) -> bool:
        """Consume TopicChange notifications from a queue until unsubscribed.

        Returns:
            False if the cache is already subscribed to a change feed
        """
        if self.is_watching:
            logger.warning("Topic cache is already subscribed to a change feed")
            return False
        self._subscription = asyncio.create_task(self._consume_changes(changes))
        return True

    async def unsubscribe(self) -> None:
        task, self._subscription = self._subscription, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _consume_changes(self, changes: asyncio.Queue) -> None:
        while True:
            change = await changes.get()
            try:
                await self.on_topic_change(change)
            except Exception as e:
                logger.error(f"Error consuming topic change: {e}")
            finally:
                changes.task_done()

    async def watch(self) -> bool:
        """Watch the open project's directory and feed changes into the cache.

        Returns:
            True if the watcher is running
        """
        if self._watcher is not None:
            return True
        if self._project_file is None:
            logger.warning("Cannot watch for topic changes: no DocFX project is open")
            return False

        project = self._project
        watcher = TopicChangeWatcher(
            self._project_file.parent,
            parser=self._parser,
            should_watch=project.is_content_file if project is not None else None,
            queue_maxsize=self.settings.event_queue_maxsize,
        )
        try:
            await watcher.start()
        except Exception as e:
            logger.error(f"Failed to start topic change watcher: {e}")
            return False

        self._watcher = watcher
        self.subscribe(watcher.changes)
        logger.info(f"Observing topic changes in {watcher.project_dir}")
        return True

    async def unwatch(self) -> None:
        """Stop the change watcher and the change subscription."""
        await self.unsubscribe()
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            await watcher.stop()
