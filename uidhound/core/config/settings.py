"""
Runtime settings for UIDHound.

Settings come from environment variables (``UIDHOUND_*``) or keyword
arguments, falling back to defaults. The DocFX project file itself is not
configured here; see ``project_config``.

Environment Variables:
    UIDHOUND_STATE_DIR_NAME=.uidhound
    UIDHOUND_MAX_FRONT_MATTER_LINES=50
    UIDHOUND_PERSIST_SNAPSHOT=false
    UIDHOUND_DISCOVERY_EXCLUDE_DIRS='[".git", "node_modules", "_site"]'
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class UidHoundSettings(BaseSettings):
    """Settings for the topic cache, its snapshot and its change watcher."""

    model_config = SettingsConfigDict(
        env_prefix="UIDHOUND_",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    project_file_name: str = Field(
        default="docfx.json",
        description="File name searched for when discovering a project in a workspace",
    )

    discovery_exclude_dirs: list[str] = Field(
        default_factory=lambda: [".git", "node_modules"],
        description="Directory names skipped when discovering a project file",
    )

    state_dir_name: str = Field(
        default=".uidhound",
        description="Project-relative directory holding the topic snapshot",
    )

    snapshot_file_name: str = Field(
        default="topic-cache.json",
        description="File name of the persisted topic snapshot",
    )

    persist_snapshot: bool = Field(
        default=True,
        description="Write the topic snapshot after population and after each change",
    )

    max_front_matter_lines: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum number of front-matter lines read from a markdown file",
    )

    event_queue_maxsize: int = Field(
        default=1000,
        ge=0,
        description="Capacity of the change watcher's queues (0 = unbounded)",
    )

    def __repr__(self) -> str:
        return (
            f"UidHoundSettings(project_file_name={self.project_file_name}, "
            f"state_dir_name={self.state_dir_name}, "
            f"persist_snapshot={self.persist_snapshot})"
        )
