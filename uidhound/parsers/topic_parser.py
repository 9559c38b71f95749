"""Topic extraction for DocFX content files.

Two content formats define topics:

- Conceptual markdown, identified by a ``uid`` in its YAML front matter
  (one topic per file).
- Generated managed reference YAML (``### YamlMime:ManagedReference``),
  one topic per entry of its ``items`` list.

Table-of-contents files, JSON files and anything else define no topics.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from uidhound.core.exceptions import TopicParseError
from uidhound.core.models.topic import CoarseType, Topic, TopicType
from uidhound.parsers.front_matter import (
    DEFAULT_MAX_FRONT_MATTER_LINES,
    read_front_matter,
    read_yaml_mime,
)

MANAGED_REFERENCE_MIME_TYPE = "ManagedReference"

MARKDOWN_EXTENSIONS = frozenset({".md", ".markdown"})
YAML_EXTENSIONS = frozenset({".yml", ".yaml"})
CONTENT_EXTENSIONS = MARKDOWN_EXTENSIONS | YAML_EXTENSIONS

_MEMBER_TYPE_CATEGORIES: dict[str, TopicType] = {
    "Namespace": TopicType.NAMESPACE,
    "Class": TopicType.TYPE,
    "Struct": TopicType.TYPE,
    "Interface": TopicType.TYPE,
    "Delegate": TopicType.TYPE,
    "Enum": TopicType.TYPE,
    "Property": TopicType.PROPERTY,
    "Method": TopicType.METHOD,
    "Constructor": TopicType.METHOD,
    "Operator": TopicType.METHOD,
    "Cmdlet": TopicType.POWERSHELL_CMDLET,
}


def is_toc_file(path: Path | str) -> bool:
    """Table-of-contents files describe navigation, not topics."""
    return Path(path).name.lower() in {"toc.yml", "toc.yaml", "toc.md"}


def is_content_candidate(path: Path | str) -> bool:
    """Check whether a file could define topics at all (by name only)."""
    path = Path(path)
    return path.suffix.lower() in CONTENT_EXTENSIONS and not is_toc_file(path)


def categorize_topic(coarse_type: CoarseType, member_type: str | None = None) -> TopicType:
    """Determine the detailed topic type.

    Conceptual topics are always ``Conceptual``; managed references are
    classified by member type, with unknown member types mapped to ``Other``.
    """
    if coarse_type is CoarseType.CONCEPTUAL:
        return TopicType.CONCEPTUAL
    if not member_type:
        return TopicType.OTHER
    return _MEMBER_TYPE_CATEGORIES.get(member_type, TopicType.OTHER)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class TopicParser:
    """Parses content files into topic metadata."""

    def __init__(self, max_front_matter_lines: int = DEFAULT_MAX_FRONT_MATTER_LINES) -> None:
        self.max_front_matter_lines = max_front_matter_lines

    def parse_file(self, file_path: Path | str) -> list[Topic]:
        """Get the topics defined in a content file.

        ``source_file`` of each topic is the path exactly as given; the topic
        cache makes it project-relative.

        Raises:
            TopicParseError: If the file cannot be read or its YAML is malformed
        """
        path = Path(file_path)
        if not is_content_candidate(path):
            return []

        suffix = path.suffix.lower()
        if suffix in MARKDOWN_EXTENSIONS:
            topic = self._parse_conceptual(path)
            return [topic] if topic else []
        return self._parse_managed_reference(path)

    def _parse_conceptual(self, path: Path) -> Topic | None:
        metadata = read_front_matter(path, self.max_front_matter_lines)
        if not metadata:
            return None
        uid = _as_text(metadata.get("uid"))
        if not uid:
            return None

        return Topic(
            uid=uid,
            coarse_type=CoarseType.CONCEPTUAL,
            detailed_type=categorize_topic(CoarseType.CONCEPTUAL),
            source_file=str(path),
            name=_as_text(metadata.get("name")),
            title=_as_text(metadata.get("title")),
        )

    def _parse_managed_reference(self, path: Path) -> list[Topic]:
        document = read_yaml_mime(path, MANAGED_REFERENCE_MIME_TYPE)
        if not isinstance(document, dict):
            return []
        items = document.get("items")
        if not isinstance(items, list):
            return []

        topics: list[Topic] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            uid = _as_text(item.get("uid"))
            if not uid:
                continue
            member_type = _as_text(item.get("type")) or None
            name = _as_text(item.get("fullName")) or _as_text(item.get("name"))
            topics.append(
                Topic(
                    uid=uid,
                    coarse_type=CoarseType.MANAGED_REFERENCE,
                    detailed_type=categorize_topic(CoarseType.MANAGED_REFERENCE, member_type),
                    source_file=str(path),
                    name=name,
                    title=_as_text(item.get("nameWithType")),
                    member_type=member_type,
                )
            )
        return topics


@dataclass
class ParseFailure:
    """A content file that could not be parsed during a scan."""

    path: str
    reason: str


@dataclass
class ScanReport:
    """Topics extracted by a scan, plus the files that failed to parse."""

    topics: list[Topic] = field(default_factory=list)
    files_scanned: int = 0
    failures: list[ParseFailure] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


def extract_topics(
    paths: Iterable[Path],
    parser: TopicParser | None = None,
    on_file_processed: Callable[[int], None] | None = None,
) -> ScanReport:
    """Parse many content files, skipping (and recording) the ones that fail.

    Args:
        paths: Content files to parse
        parser: Parser to use (default settings if omitted)
        on_file_processed: Called with the running count after each file

    Returns:
        ScanReport with every topic found
    """
    parser = parser or TopicParser()
    report = ScanReport()
    for path in paths:
        try:
            report.topics.extend(parser.parse_file(path))
        except TopicParseError as e:
            logger.warning(f"Skipping content file: {e}")
            report.failures.append(ParseFailure(path=str(path), reason=e.reason))
        report.files_scanned += 1
        if on_file_processed is not None:
            on_file_processed(report.files_scanned)
    return report
