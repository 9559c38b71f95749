"""Content file discovery for DocFX projects."""

from __future__ import annotations

import os
from collections import deque
from collections.abc import Iterable, Iterator
from pathlib import Path

from loguru import logger

from uidhound.core.config.project_config import DocfxProject
from uidhound.utils.file_patterns import FileMatcher

_DEFAULT_DISCOVERY_EXCLUDES = (".git", "node_modules")


def _walk_files(base_dir: Path) -> Iterator[Path]:
    """Yield every file below ``base_dir`` in a stable (sorted) order."""
    for dirpath, dirnames, filenames in os.walk(base_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            yield Path(dirpath) / filename


def find_group_files(matcher: FileMatcher) -> list[Path]:
    """Walk a content group's base directory and return the files it selects."""
    base_dir = matcher.base_dir
    if not base_dir.is_dir():
        logger.debug(f"Content directory {base_dir} does not exist; skipping")
        return []
    return [path for path in _walk_files(base_dir) if matcher.should_include_file(path)]


def enumerate_content_files(project: DocfxProject) -> list[Path]:
    """Get all content files selected by the project's content groups.

    Files selected by more than one group are returned once, at the position
    of their first match.

    Args:
        project: The opened DocFX project

    Returns:
        Absolute paths of markdown / YAML content files
    """
    files: list[Path] = []
    seen: set[Path] = set()
    for matcher in project.content_matchers:
        group_files = find_group_files(matcher)
        logger.debug(
            f"Content group {matcher.base_dir} selected {len(group_files)} files "
            f"(include={matcher.include_patterns}, exclude={matcher.exclude_patterns})"
        )
        for path in group_files:
            if path in seen:
                continue
            seen.add(path)
            files.append(path)
    return files


def find_project_file(
    workspace_root: Path | str,
    file_name: str = "docfx.json",
    exclude_dirs: Iterable[str] = _DEFAULT_DISCOVERY_EXCLUDES,
) -> Path | None:
    """Find the first DocFX project file in a workspace.

    The search is breadth-first so a project file near the workspace root wins
    over one nested deeper; siblings are visited in sorted order.

    Args:
        workspace_root: Directory to search
        file_name: Project file name to look for
        exclude_dirs: Directory names that are never descended into

    Returns:
        Path to the project file, or None if the workspace has none
    """
    root = Path(workspace_root)
    if not root.is_dir():
        return None

    excluded = set(exclude_dirs)
    pending: deque[Path] = deque([root])
    while pending:
        current = pending.popleft()
        candidate = current / file_name
        if candidate.is_file():
            return candidate
        try:
            children = sorted(p for p in current.iterdir() if p.is_dir())
        except OSError as e:
            logger.debug(f"Cannot list {current} while searching for {file_name}: {e}")
            continue
        pending.extend(child for child in children if child.name not in excluded)
    return None
