"""Exception types raised inside UIDHound.

Nothing here escapes the public surface of ``TopicCache``: the cache catches
these, logs them and turns them into a ``False`` / ``None`` result, keeping the
last failure available as ``TopicCache.last_error``.
"""

from pathlib import Path


class UidHoundError(Exception):
    """Base class for all UIDHound errors."""


class TopicCacheError(UidHoundError):
    """An error relating to the topic cache.

    Errors flagged as warnings are expected conditions (for example a workspace
    without a DocFX project) that a UI should show as a warning, not an error.
    """

    def __init__(self, message: str, is_warning: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.is_warning = is_warning

    @classmethod
    def warning(cls, message: str) -> "TopicCacheError":
        """Create an error that should be displayed as a warning."""
        return cls(message, is_warning=True)


class ProjectNotFoundError(TopicCacheError):
    """No DocFX project file could be found."""

    def __init__(self, message: str = "Cannot find docfx.json in the current workspace.") -> None:
        super().__init__(message, is_warning=True)


class ProjectConfigError(TopicCacheError):
    """The DocFX project file could not be read or does not match the schema."""

    def __init__(self, project_file: Path | str, reason: str) -> None:
        super().__init__(f"Invalid DocFX project file {project_file}: {reason}")
        self.project_file = str(project_file)
        self.reason = reason


class SnapshotCorruptError(TopicCacheError):
    """The persisted topic snapshot exists but cannot be used."""

    def __init__(self, snapshot_file: Path | str, reason: str) -> None:
        super().__init__(f"Ignoring unreadable topic snapshot {snapshot_file}: {reason}")
        self.snapshot_file = str(snapshot_file)


class TopicParseError(UidHoundError):
    """A single content file could not be parsed."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Failed to parse {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class IndexConsistencyError(UidHoundError):
    """The UID map and the content-file map of a topic index disagree."""
