"""In-memory topic index.

Two maps are kept in step:

- ``uid -> Topic`` (authoritative)
- ``source file -> set of UIDs`` (derived)

Every UID in a file's set belongs to a topic whose ``source_file`` is that
file, and every topic's UID is in the set of its ``source_file``. Each
mutating method restores this before returning; the index itself is not
thread-safe and relies on its owner to serialize mutations.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from uidhound.core.exceptions import IndexConsistencyError
from uidhound.core.models.topic import Topic, TopicType


class TopicIndex:
    """Topics keyed by UID and by content file."""

    def __init__(self) -> None:
        self._by_uid: dict[str, Topic] = {}
        self._by_content_file: dict[str, set[str]] = {}

    @classmethod
    def from_topics(cls, topics: Iterable[Topic]) -> TopicIndex:
        """Bulk-load an index, one ``upsert_file`` per source file.

        Files keep the order in which they first appear; within the input a
        later topic with an already-seen UID replaces the earlier one.
        """
        grouped: dict[str, list[Topic]] = {}
        for topic in topics:
            grouped.setdefault(topic.source_file, []).append(topic)

        index = cls()
        for source_file, file_topics in grouped.items():
            index.upsert_file(source_file, file_topics)
        return index

    def __len__(self) -> int:
        return len(self._by_uid)

    def __contains__(self, uid: object) -> bool:
        return uid in self._by_uid

    def _detach_uid(self, uid: str) -> None:
        existing = self._by_uid.pop(uid, None)
        if existing is None:
            return
        owners = self._by_content_file.get(existing.source_file)
        if owners is None:
            return
        owners.discard(uid)
        if not owners:
            del self._by_content_file[existing.source_file]

    def upsert_file(self, source_file: str, topics: Iterable[Topic]) -> None:
        """Replace every topic defined by ``source_file``.

        A UID currently owned by another file moves to ``source_file`` (the
        later write wins). An empty topic list leaves the file tracked with
        no UIDs.
        """
        new_topics: dict[str, Topic] = {}
        for topic in topics:
            topic = topic.copy()
            topic.source_file = source_file
            new_topics[topic.uid] = topic

        for uid in self._by_content_file.pop(source_file, set()):
            self._by_uid.pop(uid, None)
        for uid in new_topics:
            self._detach_uid(uid)

        self._by_content_file[source_file] = set(new_topics)
        self._by_uid.update(new_topics)

    def remove_file(self, source_file: str) -> set[str]:
        """Remove every topic defined by ``source_file``.

        Returns:
            The UIDs that were removed
        """
        removed = self._by_content_file.pop(source_file, set())
        for uid in removed:
            self._by_uid.pop(uid, None)
        return removed

    def lookup(self, uid: str) -> Topic | None:
        """Get a copy of the topic with the given UID."""
        topic = self._by_uid.get(uid)
        if topic is None:
            return None
        return topic.copy()

    def list_topics(self, detailed_type: TopicType | None = None) -> list[Topic]:
        """Get copies of all topics, ordered by UID.

        Args:
            detailed_type: Only return topics of this detailed type

        Returns:
            Topics sorted by UID (code point order)
        """
        topics = (
            topic
            for topic in self._by_uid.values()
            if detailed_type is None or topic.detailed_type == detailed_type
        )
        return [topic.copy() for topic in sorted(topics, key=lambda t: t.uid)]

    def uids_for_file(self, source_file: str) -> frozenset[str]:
        return frozenset(self._by_content_file.get(source_file, ()))

    def content_files(self) -> list[str]:
        return sorted(self._by_content_file)

    def all_topics(self) -> Iterator[Topic]:
        """Iterate over copies of every topic in insertion order."""
        for topic in self._by_uid.values():
            yield topic.copy()

    def check_consistency(self) -> None:
        """Verify that the UID map and the content-file map agree.

        Raises:
            IndexConsistencyError: On the first disagreement found
        """
        for uid, topic in self._by_uid.items():
            if topic.uid != uid:
                raise IndexConsistencyError(f"Topic {topic.uid!r} stored under {uid!r}")
            if uid not in self._by_content_file.get(topic.source_file, ()):
                raise IndexConsistencyError(
                    f"UID {uid!r} missing from content file {topic.source_file!r}"
                )
        for source_file, uids in self._by_content_file.items():
            for uid in uids:
                topic = self._by_uid.get(uid)
                if topic is None:
                    raise IndexConsistencyError(
                        f"Content file {source_file!r} lists unknown UID {uid!r}"
                    )
                if topic.source_file != source_file:
                    raise IndexConsistencyError(
                        f"UID {uid!r} listed under {source_file!r} but defined in "
                        f"{topic.source_file!r}"
                    )
