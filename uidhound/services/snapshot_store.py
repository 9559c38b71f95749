"""Persisted topic snapshot.

The snapshot is a UTF-8 JSON array of topic records. It only exists to skip a
full scan on warm start, so it is always safe to delete.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from uidhound.core.exceptions import SnapshotCorruptError
from uidhound.core.models.topic import Topic

DEFAULT_SNAPSHOT_FILE_NAME = "topic-cache.json"


class SnapshotStore:
    """Reads and writes the topic snapshot file."""

    def __init__(self, state_dir: Path | str, file_name: str = DEFAULT_SNAPSHOT_FILE_NAME) -> None:
        self.state_dir = Path(state_dir)
        self.snapshot_file = self.state_dir / file_name

    def exists(self) -> bool:
        return self.snapshot_file.is_file()

    def load(self) -> list[Topic] | None:
        """Load the snapshot.

        Returns:
            The persisted topics, or None if there is no snapshot

        Raises:
            SnapshotCorruptError: If the snapshot exists but cannot be used
        """
        if not self.exists():
            return None

        try:
            raw = self.snapshot_file.read_text(encoding="utf-8")
            data = json.loads(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotCorruptError(self.snapshot_file, str(e)) from e

        if not isinstance(data, list):
            raise SnapshotCorruptError(self.snapshot_file, "expected a JSON array of topics")

        try:
            topics = [Topic.from_dict(record) for record in data]
        except ValueError as e:
            raise SnapshotCorruptError(self.snapshot_file, str(e)) from e

        logger.debug(f"Loaded {len(topics)} topics from snapshot {self.snapshot_file}")
        return topics

    def save(self, topics: Iterable[Topic]) -> None:
        """Write the snapshot, replacing any previous one atomically."""
        payload = json.dumps([topic.to_dict() for topic in topics], indent=4, ensure_ascii=False)
        self.state_dir.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.snapshot_file.name}.", suffix=".tmp", dir=self.state_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.snapshot_file)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def clear(self) -> bool:
        """Delete the snapshot.

        Returns:
            True if a snapshot file was removed
        """
        try:
            self.snapshot_file.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted topic snapshot {self.snapshot_file}")
        return True
