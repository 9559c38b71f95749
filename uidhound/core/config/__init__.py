"""Configuration for UIDHound."""

from .project_config import (
    BuildConfig,
    ContentGroup,
    DocfxProject,
    DocfxProjectConfig,
    load_project_config,
)
from .settings import UidHoundSettings

__all__ = [
    "BuildConfig",
    "ContentGroup",
    "DocfxProject",
    "DocfxProjectConfig",
    "UidHoundSettings",
    "load_project_config",
]
