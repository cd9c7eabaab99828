# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Source file access."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class SourceUnavailableError(RuntimeError):
    """Represent a source file that cannot be read."""


def read_source(project_root: Path, file_path: str) -> str:
    """Read a component source file fresh from disk.

    Args:
        project_root: Project root directory.
        file_path: Project-relative source path.

    Returns:
        File content decoded as UTF-8.

    Raises:
        SourceUnavailableError: If the file is missing, unreadable, or not UTF-8.
    """
    full_path = project_root / file_path
    try:
        return full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(f"Source read failed (file_path={file_path} error={exc})")
        raise SourceUnavailableError(f"Cannot read {file_path}: {exc}") from exc


def component_name(file_path: str) -> str:
    """Return the file name without its source extension."""
    name = Path(file_path).name
    for extension in (".tsx", ".ts", ".jsx", ".js"):
        if name.endswith(extension):
            return name[: -len(extension)] or "unknown"
    return name or "unknown"
