"""YAML front-matter and YAML MIME readers."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from uidhound.core.exceptions import TopicParseError

FRONT_MATTER_FENCE = "---"
DEFAULT_MAX_FRONT_MATTER_LINES = 50
YAML_MIME_PREFIX = "### YamlMime:"


def _is_fence(line: str) -> bool:
    return line.rstrip() == FRONT_MATTER_FENCE


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise TopicParseError(path, f"cannot read file ({e})") from e


def split_front_matter(
    content: str, max_lines: int = DEFAULT_MAX_FRONT_MATTER_LINES
) -> str | None:
    """Return the raw front-matter block of a markdown document.

    The document must open with a ``---`` fence and the block must be closed
    by another fence within ``max_lines`` lines.
    """
    lines = content.splitlines()
    if not lines or not _is_fence(lines[0]):
        return None

    for idx, line in enumerate(lines[1 : max_lines + 1], start=1):
        if _is_fence(line):
            return "\n".join(lines[1:idx])
    return None


def read_front_matter(
    path: Path | str, max_lines: int = DEFAULT_MAX_FRONT_MATTER_LINES
) -> dict[str, Any] | None:
    """Read the YAML front matter of a markdown file.

    Args:
        path: Markdown file
        max_lines: Maximum number of front-matter lines to scan for the
            closing fence

    Returns:
        The front matter as a mapping, or None if the file has none

    Raises:
        TopicParseError: If the file cannot be read or the front matter is
            not valid YAML
    """
    path = Path(path)
    block = split_front_matter(_read_text(path), max_lines)
    if block is None:
        return None
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise TopicParseError(path, f"malformed front matter ({e})") from e
    if not isinstance(data, dict):
        return None
    return data


def read_yaml_mime(path: Path | str, expected_mime_type: str) -> Any | None:
    """Read a YAML document that declares the expected YAML MIME type.

    DocFX marks generated YAML with a ``### YamlMime:<type>`` first line.
    Files without the marker (or with another type) are not parsed.

    Raises:
        TopicParseError: If the file cannot be read or is not valid YAML
    """
    path = Path(path)
    content = _read_text(path)
    first_line = content.split("\n", 1)[0].strip()
    if first_line != f"{YAML_MIME_PREFIX}{expected_mime_type}":
        return None
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise TopicParseError(path, f"malformed YAML ({e})") from e
