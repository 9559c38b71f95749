"""DocFX project configuration (``docfx.json``).

Only the parts of the build configuration that select content files are
modelled; everything else in the document is ignored. The schema is validated
on load so a broken project file fails loudly instead of yielding an empty
index.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from uidhound.core.exceptions import ProjectConfigError
from uidhound.utils.file_patterns import FileMatcher


def _is_swagger_pattern(pattern: str) -> bool:
    return pattern.endswith(".json")


class ContentGroup(BaseModel):
    """One entry of ``build.content``."""

    model_config = ConfigDict(extra="ignore")

    files: list[str] = Field(description="Include patterns, relative to src")
    src: str = Field(default="", description="Base directory, relative to the project")
    exclude: list[str] = Field(default_factory=list, description="Exclude patterns")

    @property
    def include_patterns(self) -> list[str]:
        """Include patterns with Swagger (``*.json``) descriptors dropped."""
        return [p for p in self.files if not _is_swagger_pattern(p)]

    @property
    def exclude_patterns(self) -> list[str]:
        return [p for p in self.exclude if not _is_swagger_pattern(p)]


class BuildConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: list[ContentGroup]


class DocfxProjectConfig(BaseModel):
    """The subset of ``docfx.json`` needed to select content files."""

    model_config = ConfigDict(extra="ignore")

    build: BuildConfig


def load_project_config(project_file: Path | str) -> DocfxProjectConfig:
    """Read and validate a DocFX project file.

    Raises:
        ProjectConfigError: If the file cannot be read, is not JSON, or does
            not contain a valid ``build.content`` section
    """
    path = Path(project_file)
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ProjectConfigError(path, f"cannot read file ({e})") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProjectConfigError(path, f"invalid JSON ({e})") from e

    try:
        return DocfxProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ProjectConfigError(path, f"schema violation ({e.error_count()} errors): {e}") from e


@dataclass(frozen=True)
class DocfxProject:
    """An opened DocFX project: its file, directory and content configuration."""

    project_file: Path
    project_dir: Path
    config: DocfxProjectConfig

    @classmethod
    def load(cls, project_file: Path | str) -> DocfxProject:
        path = Path(project_file).resolve()
        config = load_project_config(path)
        logger.debug(f"Loaded DocFX project {path} ({len(config.build.content)} content groups)")
        return cls(project_file=path, project_dir=path.parent, config=config)

    def content_groups(self) -> Iterator[tuple[Path, list[str], list[str]]]:
        """Yield ``(base_dir, include_patterns, exclude_patterns)`` per content group.

        Groups left without include patterns once Swagger patterns are
        dropped are skipped.
        """
        for group in self.config.build.content:
            include = group.include_patterns
            if not include:
                continue
            yield self.project_dir / group.src, include, group.exclude_patterns

    @cached_property
    def content_matchers(self) -> list[FileMatcher]:
        """One matcher per content group, rooted at that group's base directory."""
        return [
            FileMatcher(base_dir, include, exclude)
            for base_dir, include, exclude in self.content_groups()
        ]

    def is_content_file(self, file_path: Path | str) -> bool:
        """Check whether any content group selects the given file."""
        path = Path(file_path)
        if not path.is_absolute():
            path = self.project_dir / path
        return any(m.should_include_file(path) for m in self.content_matchers)
