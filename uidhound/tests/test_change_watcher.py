import asyncio
import tempfile
import unittest
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from uidhound.core.models.topic import TopicType
from uidhound.services.change_watcher import ChangeType, ContentEventHandler, TopicChangeWatcher


class ContentEventHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.handler = ContentEventHandler(self.queue, asyncio.get_running_loop())

    async def _drain(self) -> list:
        # call_soon_threadsafe callbacks run on the next loop iteration
        await asyncio.sleep(0)
        items = []
        while not self.queue.empty():
            items.append(self.queue.get_nowait())
        return items

    async def test_maps_event_types(self) -> None:
        self.handler.on_any_event(FileCreatedEvent("/docs/a.md"))
        self.handler.on_any_event(FileModifiedEvent("/docs/b.yml"))
        self.handler.on_any_event(FileDeletedEvent("/docs/c.markdown"))

        self.assertEqual(
            await self._drain(),
            [
                (ChangeType.ADDED, Path("/docs/a.md")),
                (ChangeType.CHANGED, Path("/docs/b.yml")),
                (ChangeType.REMOVED, Path("/docs/c.markdown")),
            ],
        )

    async def test_ignores_directories_and_non_content_files(self) -> None:
        self.handler.on_any_event(DirCreatedEvent("/docs/articles.md"))
        self.handler.on_any_event(FileCreatedEvent("/docs/docfx.json"))
        self.handler.on_any_event(FileModifiedEvent("/docs/toc.yml"))
        self.handler.on_any_event(FileClosedEvent("/docs/a.md"))

        self.assertEqual(await self._drain(), [])

    async def test_rename_between_content_files(self) -> None:
        self.handler.on_any_event(FileMovedEvent("/docs/old.md", "/docs/new.md"))

        self.assertEqual(
            await self._drain(),
            [
                (ChangeType.REMOVED, Path("/docs/old.md")),
                (ChangeType.ADDED, Path("/docs/new.md")),
            ],
        )

    async def test_atomic_write_is_an_add(self) -> None:
        self.handler.on_any_event(FileMovedEvent("/docs/.a.md.swp", "/docs/a.md"))
        self.assertEqual(await self._drain(), [(ChangeType.ADDED, Path("/docs/a.md"))])

    async def test_move_out_of_content_is_a_remove(self) -> None:
        self.handler.on_any_event(FileMovedEvent("/docs/a.md", "/docs/a.md.bak"))
        self.assertEqual(await self._drain(), [(ChangeType.REMOVED, Path("/docs/a.md"))])

    async def test_custom_filter(self) -> None:
        handler = ContentEventHandler(
            self.queue,
            asyncio.get_running_loop(),
            should_watch=lambda path: "obj" not in path.parts,
        )
        handler.on_any_event(FileCreatedEvent("/docs/obj/a.md"))
        handler.on_any_event(FileCreatedEvent("/docs/a.md"))

        self.assertEqual(await self._drain(), [(ChangeType.ADDED, Path("/docs/a.md"))])

    async def test_failing_filter_skips_event(self) -> None:
        def broken(path: Path) -> bool:
            raise ValueError("boom")

        handler = ContentEventHandler(self.queue, asyncio.get_running_loop(), should_watch=broken)
        handler.on_any_event(FileCreatedEvent("/docs/a.md"))

        self.assertEqual(await self._drain(), [])


class TopicChangeWatcherTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.watcher = TopicChangeWatcher(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, rel: str, text: str) -> Path:
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    async def test_emit_added_extracts_topics(self) -> None:
        path = self._write("articles/intro.md", "---\nuid: intro\n---\n")

        change = await self.watcher.emit(path, ChangeType.ADDED)

        self.assertEqual(change.content_file, "articles/intro.md")
        self.assertEqual(change.change_type, ChangeType.ADDED)
        self.assertEqual([t.uid for t in change.topics], ["intro"])
        self.assertEqual(change.topics[0].source_file, "articles/intro.md")
        self.assertIs(self.watcher.changes.get_nowait(), change)

    async def test_emit_changed_accepts_relative_paths(self) -> None:
        self._write(
            "api/Foo.Bar.yml",
            "### YamlMime:ManagedReference\nitems:\n- uid: Foo.Bar\n  type: Method\n",
        )

        change = await self.watcher.emit("api/Foo.Bar.yml", ChangeType.CHANGED)

        self.assertEqual(change.content_file, "api/Foo.Bar.yml")
        self.assertEqual(change.topics[0].detailed_type, TopicType.METHOD)

    async def test_emit_removed_has_no_topics(self) -> None:
        change = await self.watcher.emit(self.root / "gone.md", ChangeType.REMOVED)

        self.assertEqual(change.content_file, "gone.md")
        self.assertIsNone(change.topics)

    async def test_emit_skips_toc_files(self) -> None:
        path = self._write("api/toc.yml", "- name: Foo\n")

        self.assertIsNone(await self.watcher.emit(path, ChangeType.CHANGED))
        self.assertTrue(self.watcher.changes.empty())

    async def test_unparseable_file_publishes_nothing(self) -> None:
        path = self._write("broken.md", "---\nuid: [oops\n---\n")

        self.assertIsNone(await self.watcher.emit(path, ChangeType.CHANGED))
        self.assertIsNone(await self.watcher.emit(path, ChangeType.ADDED))
        self.assertTrue(self.watcher.changes.empty())

    async def test_unparseable_file_can_still_be_removed(self) -> None:
        path = self._write("broken.md", "---\nuid: [oops\n---\n")

        change = await self.watcher.emit(path, ChangeType.REMOVED)

        self.assertEqual(change.content_file, "broken.md")
        self.assertIsNone(change.topics)

    async def test_file_outside_project_keeps_absolute_path(self) -> None:
        with tempfile.TemporaryDirectory() as other:
            outside = Path(other).resolve() / "a.md"
            outside.write_text("---\nuid: outside\n---\n", encoding="utf-8")

            change = await self.watcher.emit(outside, ChangeType.ADDED)

        self.assertEqual(change.content_file, outside.as_posix())

    async def test_start_and_stop(self) -> None:
        self.assertFalse(self.watcher.is_running)

        async with self.watcher:
            self.assertTrue(self.watcher.is_running)
            self.assertIsNotNone(self.watcher.observer)

        self.assertFalse(self.watcher.is_running)
        self.assertIsNone(self.watcher.observer)

    async def test_stop_without_start(self) -> None:
        await self.watcher.stop()
        self.assertFalse(self.watcher.is_running)
