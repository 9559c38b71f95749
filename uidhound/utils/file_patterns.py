"""Include/exclude glob matching for DocFX content patterns.

DocFX patterns follow minimatch rules: ``*.md`` matches files in the base
directory only, ``**/*.md`` matches at any depth (base directory included).
pathspec implements git wildmatch, where a slash-less pattern floats to any
depth; anchoring every pattern with a leading ``/`` restores minimatch
behaviour.

Gitignore rules also let a pattern that matches a directory select everything
below it, so ``articles/*`` would match ``articles/a/b.md``. Minimatch only
does that for a trailing ``**``; any other pattern has to match the whole
path.

DocFX also accepts the ``**.ext`` shorthand ("this extension at any depth").
Wildmatch reads ``**`` inside a segment as a plain ``*``, so such patterns
are expanded into a base-directory pattern and an any-depth pattern.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path

import pathspec

_GLOBSTAR_SHORTHAND = "**."


def expand_globstar_shorthand(pattern: str) -> list[str]:
    """Expand ``**.ext`` segments into ``*.ext`` and ``**/*.ext`` patterns.

    Examples:
        ``**.md`` -> ``["*.md", "**/*.md"]``
        ``api/**.yml`` -> ``["api/*.yml", "api/**/*.yml"]``
    """
    segments = pattern.split("/")
    if not any(segment.startswith(_GLOBSTAR_SHORTHAND) for segment in segments):
        return [pattern]

    shallow = [
        "*." + segment[len(_GLOBSTAR_SHORTHAND) :]
        if segment.startswith(_GLOBSTAR_SHORTHAND)
        else segment
        for segment in segments
    ]
    deep = [
        "**/*." + segment[len(_GLOBSTAR_SHORTHAND) :]
        if segment.startswith(_GLOBSTAR_SHORTHAND)
        else segment
        for segment in segments
    ]
    return ["/".join(shallow), "/".join(deep)]


def _anchor(pattern: str) -> str:
    pattern = pattern.strip()
    if pattern.startswith("./"):
        pattern = pattern[2:]
    if pattern.startswith("/"):
        return pattern
    return "/" + pattern


class GlobPattern:
    """A single anchored DocFX glob, compiled by pathspec."""

    __slots__ = ("pattern", "regex", "matches_subtree")

    def __init__(self, pattern: str, regex: re.Pattern[str]) -> None:
        self.pattern = pattern
        self.regex = regex
        self.matches_subtree = pattern.rstrip("/").endswith("/**")

    def match(self, rel_path: str) -> bool:
        """Check a base-relative posix path against the pattern."""
        m = self.regex.match(rel_path)
        if m is None:
            return False
        if m.end() == len(rel_path):
            return True
        # Prefix match: the pattern selected a parent directory
        return self.matches_subtree

    def __repr__(self) -> str:
        return f"GlobPattern({self.pattern!r})"


def compile_patterns(patterns: Iterable[str]) -> list[GlobPattern]:
    """Compile DocFX glob patterns into anchored, whole-path globs.

    Blank patterns and patterns pathspec discards (invalid ranges) are dropped.
    """
    lines: list[str] = []
    for pattern in patterns:
        if not pattern or not pattern.strip():
            continue
        lines.extend(_anchor(expanded) for expanded in expand_globstar_shorthand(pattern))

    spec = pathspec.GitIgnoreSpec.from_lines(lines)
    return [
        GlobPattern(line, compiled.regex)
        for line, compiled in zip(lines, spec.patterns)
        if compiled.regex is not None
    ]


def _match_any(globs: Iterable[GlobPattern], rel_path: str) -> bool:
    return any(glob.match(rel_path) for glob in globs)


def relative_posix(path: Path | str, base_dir: Path) -> str | None:
    """Return ``path`` relative to ``base_dir`` in posix form.

    Returns None when the path lies outside ``base_dir``.
    """
    path_obj = Path(path)
    if path_obj.is_absolute():
        rel = os.path.relpath(path_obj, base_dir)
    else:
        rel = os.path.normpath(path_obj)
    rel_posix = Path(rel).as_posix()
    if rel_posix == ".." or rel_posix.startswith("../"):
        return None
    return rel_posix


class FileMatcher:
    """Matches file paths against ordered include / exclude glob patterns."""

    def __init__(
        self,
        base_dir: Path | str,
        include_patterns: Iterable[str],
        exclude_patterns: Iterable[str] | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.include_patterns = list(include_patterns)
        self.exclude_patterns = list(exclude_patterns or [])
        self._include_globs = compile_patterns(self.include_patterns)
        self._exclude_globs = compile_patterns(self.exclude_patterns)

    def should_include_file(self, file_path: Path | str) -> bool:
        """Determine whether the specified file should be included.

        Args:
            file_path: Absolute path, or path relative to the base directory

        Returns:
            True if an include pattern matches and no exclude pattern does
        """
        rel = relative_posix(file_path, self.base_dir)
        if rel is None or rel == ".":
            return False
        if _match_any(self._exclude_globs, rel):
            return False
        return _match_any(self._include_globs, rel)

    def __repr__(self) -> str:
        return (
            f"FileMatcher(base_dir={self.base_dir}, include={self.include_patterns}, "
            f"exclude={self.exclude_patterns})"
        )


def matches(
    include_patterns: Iterable[str],
    exclude_patterns: Iterable[str],
    base_dir: Path | str,
    path: Path | str,
) -> bool:
    """One-shot form of ``FileMatcher.should_include_file``."""
    return FileMatcher(base_dir, include_patterns, exclude_patterns).should_include_file(path)
