# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Source tree enumeration with exclusion rules."""

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)


class ExclusionMatcher:
    """Match project-relative paths against gitignore-style patterns."""

    def __init__(self, spec: pathspec.GitIgnoreSpec) -> None:
        """Initialize matcher.

        Args:
            spec: Compiled gitignore matcher.
        """
        self._spec = spec

    @classmethod
    def build(
        cls,
        project_root: Path,
        patterns: Iterable[str],
        respect_gitignore: bool = True,
    ) -> "ExclusionMatcher":
        """Build a matcher from fixed patterns and, optionally, ``.gitignore`` files.

        Args:
            project_root: Project root.
            patterns: Fixed exclusion patterns.
            respect_gitignore: Whether to add patterns from the root and nested
                ``.gitignore`` files.

        Returns:
            Configured matcher.
        """
        lines = list(patterns)
        if respect_gitignore and project_root.is_dir():
            lines.extend(_collect_gitignore_lines(project_root))
        return cls(spec=pathspec.GitIgnoreSpec.from_lines(lines))

    def matches(self, relative_path: str, is_dir: bool) -> bool:
        """Check whether a path should be excluded.

        Args:
            relative_path: Project-relative path.
            is_dir: Whether the path is a directory.

        Returns:
            True when the path should be skipped.
        """
        normalized = relative_path.replace(os.sep, "/").strip("/")
        if not normalized or normalized == ".":
            return False
        if self._spec.match_file(normalized):
            return True
        if is_dir and self._spec.match_file(f"{normalized}/"):
            return True
        return False


class SourceTreeWalker:
    """Enumerate source files beneath a directory in directory-listing order."""

    def __init__(
        self,
        project_root: Path,
        matcher: ExclusionMatcher,
        source_extensions: Iterable[str],
    ) -> None:
        self._project_root = project_root
        self._matcher = matcher
        self._source_extensions = frozenset(ext.lower() for ext in source_extensions)

    def walk(self, directory: Path) -> Iterator[Path]:
        """Yield source files beneath ``directory``.

        A missing directory yields nothing. An unlistable subdirectory is
        logged and skipped. Symlinked directories are not followed.

        Args:
            directory: Absolute directory to walk.

        Yields:
            Absolute paths of files whose extension is a source extension.
        """
        try:
            entries = list(directory.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            logger.debug(f"Scan directory does not exist (path={directory})")
            return
        except OSError as exc:
            logger.warning(f"Skipping unlistable directory (path={directory} error={exc})")
            return

        for entry in entries:
            is_dir = entry.is_dir()
            if is_dir and entry.is_symlink():
                logger.debug(f"Skipping directory symlink (path={entry})")
                continue
            if self._matcher.matches(self._relative(entry), is_dir=is_dir):
                continue
            if is_dir:
                yield from self.walk(entry)
            elif self.is_source_file(entry):
                yield entry

    def is_source_file(self, path: Path) -> bool:
        return path.suffix.lower() in self._source_extensions

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self._project_root).as_posix()
        except ValueError:
            return path.as_posix()


def _collect_gitignore_lines(project_root: Path) -> list[str]:
    """Read ``.gitignore`` files and rebase their patterns onto the root.

    Unreadable files are logged and skipped.
    """
    lines: list[str] = []
    for ignore_path in sorted(project_root.rglob(".gitignore")):
        base = ignore_path.parent.relative_to(project_root).as_posix()
        if base == ".":
            base = ""
        try:
            content = ignore_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Skipping unreadable .gitignore (path={ignore_path} error={exc})")
            continue
        lines.extend(_rebase_gitignore_line(line=line, base=base) for line in content.splitlines())
    return lines


def _rebase_gitignore_line(line: str, base: str) -> str:
    """Translate one ``.gitignore`` line to a root-relative pattern.

    Args:
        line: Original line.
        base: Directory holding the ``.gitignore``, relative to the root.

    Returns:
        Root-relative pattern line.
    """
    if not base or not line or line.lstrip().startswith("#"):
        return line
    if line.startswith(r"\!") or line.startswith(r"\#"):
        return line
    is_negation = line.startswith("!")
    pattern = line[1:] if is_negation else line
    anchored = pattern.startswith("/")
    normalized_pattern = pattern[1:] if anchored else pattern
    prefixed = f"{base}/{normalized_pattern}" if normalized_pattern else base
    if anchored:
        prefixed = f"/{prefixed}"
    return f"!{prefixed}" if is_negation else prefixed
