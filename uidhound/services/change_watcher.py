"""Filesystem change feed for DocFX content files.

Architecture:
- watchdog observer thread -> ContentEventHandler -> raw event queue
  (hopped onto the asyncio loop with call_soon_threadsafe)
- a single consumer task re-extracts topics for each event and publishes a
  TopicChange on ``changes``

A single consumer keeps events for the same file in arrival order. Events
for different files carry no ordering guarantee beyond that.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from uidhound.core.exceptions import TopicParseError
from uidhound.core.models.topic import Topic
from uidhound.core.utils.path_utils import normalize_source_file
from uidhound.parsers.topic_parser import TopicParser, is_content_candidate, is_toc_file


class ChangeType(str, Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass
class TopicChange:
    """A change to the topics defined by one content file.

    ``topics`` holds the freshly extracted topics for ADDED / CHANGED and is
    None for REMOVED.
    """

    content_file: str
    change_type: ChangeType
    topics: list[Topic] | None = None


_EVENT_CHANGE_TYPES = {
    "created": ChangeType.ADDED,
    "modified": ChangeType.CHANGED,
    "deleted": ChangeType.REMOVED,
}


class ContentEventHandler(FileSystemEventHandler):
    """Sync watchdog handler that forwards content file events to the loop."""

    def __init__(
        self,
        event_queue: asyncio.Queue,
        loop: asyncio.AbstractEventLoop,
        should_watch: Callable[[Path], bool] | None = None,
    ) -> None:
        self.event_queue = event_queue
        self.loop = loop
        self._should_watch = should_watch

    def _is_watched(self, file_path: Path) -> bool:
        if not is_content_candidate(file_path):
            return False
        if self._should_watch is None:
            return True
        try:
            return self._should_watch(file_path)
        except Exception as e:
            logger.debug(f"Content filter failed for {file_path}: {e}")
            return False

    def on_any_event(self, event: Any) -> None:
        if event.is_directory:
            return

        if event.event_type == "moved":
            self._handle_move_event(event.src_path, event.dest_path)
            return

        change_type = _EVENT_CHANGE_TYPES.get(event.event_type)
        if change_type is None:
            return

        file_path = Path(event.src_path)
        if not self._is_watched(file_path):
            return
        self._queue_event(change_type, file_path)

    def _handle_move_event(self, src_path: str, dest_path: str) -> None:
        """Handle renames and atomic writes (temp file -> content file)."""
        src_file = Path(src_path)
        dest_file = Path(dest_path)
        src_watched = self._is_watched(src_file)
        dest_watched = self._is_watched(dest_file)

        if src_watched:
            self._queue_event(ChangeType.REMOVED, src_file)
        if dest_watched:
            if not src_watched:
                logger.debug(f"Atomic write detected: {src_path} -> {dest_path}")
            self._queue_event(ChangeType.ADDED, dest_file)

    def _queue_event(self, change_type: ChangeType, file_path: Path) -> None:
        if self.loop.is_closed():
            return

        def _enqueue() -> None:
            try:
                self.event_queue.put_nowait((change_type, file_path))
            except asyncio.QueueFull:
                logger.warning(f"Event queue full; dropping {change_type.value} for {file_path}")

        try:
            self.loop.call_soon_threadsafe(_enqueue)
        except RuntimeError as e:
            logger.warning(f"Failed to schedule {change_type.value} event for {file_path}: {e}")


class TopicChangeWatcher:
    """Watches a DocFX project directory and publishes topic changes."""

    def __init__(
        self,
        project_dir: Path | str,
        parser: TopicParser | None = None,
        should_watch: Callable[[Path], bool] | None = None,
        queue_maxsize: int = 1000,
    ) -> None:
        self.project_dir = Path(project_dir).resolve()
        self.parser = parser or TopicParser()
        self._should_watch = should_watch
        self._raw_events: asyncio.Queue[tuple[ChangeType, Path]] = asyncio.Queue(
            maxsize=queue_maxsize
        )
        self.changes: asyncio.Queue[TopicChange] = asyncio.Queue(maxsize=queue_maxsize)

        self.observer: Any | None = None
        self.event_handler: ContentEventHandler | None = None
        self._consumer_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._consumer_task is not None and not self._consumer_task.done()

    async def start(self) -> None:
        """Start watching the project directory."""
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        logger.debug(f"Starting topic change watcher for {self.project_dir}")

        self._consumer_task = asyncio.create_task(self._consume_events())
        try:
            await loop.run_in_executor(None, self._start_observer, loop)
        except BaseException:
            await self.stop()
            raise

    def _start_observer(self, loop: asyncio.AbstractEventLoop) -> None:
        self.event_handler = ContentEventHandler(self._raw_events, loop, self._should_watch)
        self.observer = Observer()
        self.observer.schedule(self.event_handler, str(self.project_dir), recursive=True)
        self.observer.start()
        logger.debug(f"Started recursive filesystem monitoring for {self.project_dir}")

    async def stop(self) -> None:
        """Stop watching and release the observer thread."""
        logger.debug(f"Stopping topic change watcher for {self.project_dir}")
        observer, self.observer = self.observer, None
        if observer is not None and observer.is_alive():
            observer.stop()
            try:
                loop = asyncio.get_running_loop()
                await asyncio.wait_for(loop.run_in_executor(None, observer.join), timeout=1.0)
            except asyncio.TimeoutError:
                logger.warning("Observer thread did not exit within timeout")

        task, self._consumer_task = self._consumer_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> TopicChangeWatcher:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _consume_events(self) -> None:
        while True:
            change_type, file_path = await self._raw_events.get()
            try:
                await self.emit(file_path, change_type)
            except Exception as e:
                logger.error(f"Error handling {change_type.value} event for {file_path}: {e}")
            finally:
                self._raw_events.task_done()

    async def build_change(
        self, file_path: Path | str, change_type: ChangeType
    ) -> TopicChange | None:
        """Build the TopicChange for an event, extracting topics when needed.

        Returns None when an added or changed file cannot be parsed; the topics
        it last defined stay as they are until it parses again.
        """
        path = Path(file_path)
        if not path.is_absolute():
            path = self.project_dir / path
        content_file = normalize_source_file(path, self.project_dir)

        if change_type is ChangeType.REMOVED:
            return TopicChange(content_file=content_file, change_type=change_type)

        loop = asyncio.get_running_loop()
        try:
            topics = await loop.run_in_executor(None, self.parser.parse_file, path)
        except TopicParseError as e:
            logger.warning(f"Ignoring {change_type.value} for {content_file}: {e}")
            return None

        for topic in topics:
            topic.source_file = content_file
        return TopicChange(content_file=content_file, change_type=change_type, topics=topics)

    async def emit(self, file_path: Path | str, change_type: ChangeType) -> TopicChange | None:
        """Publish the change for a content file on ``changes``.

        Table-of-contents files are navigation, not topic sources, and files
        that fail to parse keep their last-known topics; nothing is published
        for either and None is returned.
        """
        if is_toc_file(file_path):
            return None
        change = await self.build_change(file_path, change_type)
        if change is None:
            return None
        logger.debug(
            f"Topic change: {change.change_type.value} {change.content_file} "
            f"({len(change.topics or [])} topics)"
        )
        await self.changes.put(change)
        return change
