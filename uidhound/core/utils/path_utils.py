"""Path utility functions for UIDHound."""

from pathlib import Path


def normalize_source_file(source_file: str | Path, project_dir: Path) -> str:
    """Normalize a topic's source file to a project-relative posix path.

    Relative paths are assumed to already be relative to the project directory
    and only have their separators normalized. Absolute paths are compared
    after resolving both sides, so platform aliases (macOS ``/var`` vs
    ``/private/var``) still land inside the project; a symlinked file keeps
    its own location rather than its target's. Absolute paths outside the
    project directory are kept absolute (posix form) so the topic stays
    addressable.

    Args:
        source_file: Path as returned by extraction or stored in a snapshot
        project_dir: The DocFX project directory

    Returns:
        Normalized path with forward slashes
    """
    path = Path(source_file)
    if not path.is_absolute():
        return path.as_posix()

    resolved = path if path.is_symlink() else path.resolve()
    for candidate, base in ((resolved, project_dir.resolve()), (path, project_dir)):
        try:
            return candidate.relative_to(base).as_posix()
        except ValueError:
            continue
    return path.as_posix()
