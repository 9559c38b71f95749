import pytest

from uidhound.core.exceptions import IndexConsistencyError
from uidhound.core.models.topic import CoarseType, Topic, TopicType
from uidhound.index.topic_index import TopicIndex


def _topic(uid: str, source_file: str, detailed_type: TopicType = TopicType.CONCEPTUAL) -> Topic:
    coarse = CoarseType.CONCEPTUAL if detailed_type is TopicType.CONCEPTUAL else CoarseType.MANAGED_REFERENCE
    return Topic(uid=uid, coarse_type=coarse, detailed_type=detailed_type, source_file=source_file)


class TestTopicIndex:
    def test_from_topics_groups_by_source_file(self) -> None:
        index = TopicIndex.from_topics(
            [_topic("a", "a.md"), _topic("b", "api/b.yml"), _topic("c", "api/b.yml")]
        )

        assert len(index) == 3
        assert index.uids_for_file("api/b.yml") == {"b", "c"}
        assert index.content_files() == ["a.md", "api/b.yml"]
        index.check_consistency()

    def test_duplicate_uid_last_write_wins(self) -> None:
        index = TopicIndex()
        index.upsert_file("one.md", [_topic("dup", "one.md")])
        index.upsert_file("two.md", [_topic("dup", "two.md")])

        assert len(index) == 1
        assert index.lookup("dup").source_file == "two.md"
        assert index.uids_for_file("one.md") == frozenset()
        assert index.uids_for_file("two.md") == {"dup"}
        index.check_consistency()

    def test_upsert_replaces_previous_topics_of_file(self) -> None:
        index = TopicIndex()
        index.upsert_file("a.md", [_topic("old", "a.md")])
        index.upsert_file("a.md", [_topic("new", "a.md")])

        assert "old" not in index
        assert "new" in index
        assert index.uids_for_file("a.md") == {"new"}

    def test_upsert_with_no_topics_keeps_file_tracked(self) -> None:
        index = TopicIndex()
        index.upsert_file("a.md", [_topic("a", "a.md")])
        index.upsert_file("a.md", [])

        assert len(index) == 0
        assert index.content_files() == ["a.md"]
        index.check_consistency()

    def test_upsert_sets_source_file(self) -> None:
        index = TopicIndex()
        index.upsert_file("docs/a.md", [_topic("a", "/elsewhere/a.md")])
        assert index.lookup("a").source_file == "docs/a.md"

    def test_remove_file_leaves_other_files_intact(self) -> None:
        index = TopicIndex.from_topics(
            [
                _topic("x.1", "x.yml", TopicType.TYPE),
                _topic("x.2", "x.yml", TopicType.METHOD),
                _topic("x.3", "x.yml", TopicType.PROPERTY),
                _topic("y", "y.md"),
            ]
        )

        removed = index.remove_file("x.yml")

        assert removed == {"x.1", "x.2", "x.3"}
        assert [t.uid for t in index.list_topics()] == ["y"]
        assert index.content_files() == ["y.md"]
        index.check_consistency()

    def test_remove_unknown_file_is_a_no_op(self) -> None:
        index = TopicIndex.from_topics([_topic("a", "a.md")])
        assert index.remove_file("missing.md") == set()
        assert len(index) == 1

    def test_list_topics_ordered_by_uid(self) -> None:
        index = TopicIndex.from_topics(
            [
                _topic("b.Type", "b.yml", TopicType.TYPE),
                _topic("a.Type", "a.yml", TopicType.TYPE),
                _topic("a.Method", "a.yml", TopicType.METHOD),
            ]
        )
        assert [t.uid for t in index.list_topics()] == ["a.Method", "a.Type", "b.Type"]

    def test_list_topics_filters_by_detailed_type(self) -> None:
        index = TopicIndex.from_topics(
            [
                _topic("b.Type", "b.yml", TopicType.TYPE),
                _topic("a.Type", "a.yml", TopicType.TYPE),
                _topic("a.Method", "a.yml", TopicType.METHOD),
                _topic("intro", "intro.md"),
            ]
        )

        assert [t.uid for t in index.list_topics(TopicType.TYPE)] == ["a.Type", "b.Type"]
        assert [t.uid for t in index.list_topics(TopicType.CONCEPTUAL)] == ["intro"]
        assert index.list_topics(TopicType.POWERSHELL_CMDLET) == []

    def test_lookup_returns_copies(self) -> None:
        index = TopicIndex.from_topics([_topic("a", "a.md")])

        found = index.lookup("a")
        found.title = "changed"
        listed = index.list_topics()[0]
        listed.source_file = "moved.md"

        assert index.lookup("a").title == "a"
        assert index.lookup("a").source_file == "a.md"
        assert index.lookup("missing") is None

    def test_caller_topics_are_not_aliased(self) -> None:
        topic = _topic("a", "a.md")
        index = TopicIndex()
        index.upsert_file("a.md", [topic])

        topic.uid = "mutated"

        assert "a" in index
        index.check_consistency()

    def test_check_consistency_detects_drift(self) -> None:
        index = TopicIndex.from_topics([_topic("a", "a.md")])
        index._by_content_file["a.md"].add("ghost")

        with pytest.raises(IndexConsistencyError):
            index.check_consistency()
