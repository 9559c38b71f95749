"""Core utilities package."""

from .path_utils import normalize_source_file

__all__ = ["normalize_source_file"]
