"""
Schema source discovery for the GraphQL language server.

Collects schema files from the workspace root or from explicit path
patterns (literal files, directories, globs). Traversal is bounded by a
single ScanPolicy consulted at every directory and file visit, and open
documents always win over the copy on disk.
"""

from __future__ import annotations

import glob
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

from pygls.uris import from_fs_path, to_fs_path

from graphql_lsp.graphql_builtins import GRAPHQL_EXTENSIONS, IGNORED_DIRECTORIES

logger = logging.getLogger(__name__)

MAX_SCHEMA_FILES = 2000
MAX_SCAN_DEPTH = 8
MAX_DIR_ENTRIES = 5000

GLOB_CHARS = "*?["


@dataclass(frozen=True)
class SchemaSource:
    """Text of one schema file, keyed by its document URI."""

    uri: str
    text: str


@dataclass
class ScanPolicy:
    """Limits shared by every walk of one collection run."""

    max_files: int = MAX_SCHEMA_FILES
    max_depth: int = MAX_SCAN_DEPTH
    max_dir_entries: int = MAX_DIR_ENTRIES
    ignored_dirs: set[str] = field(default_factory=lambda: set(IGNORED_DIRECTORIES))
    files_seen: int = 0

    @property
    def exhausted(self) -> bool:
        return self.files_seen >= self.max_files

    def allows_directory(self, top: str, path: str) -> bool:
        """Decide whether a directory below (or at) ``top`` may be entered."""
        if os.path.normpath(path) != os.path.normpath(top):
            name = os.path.basename(path)
            if name.startswith(".") or name in self.ignored_dirs:
                return False
            if self._depth(top, path) > self.max_depth:
                return False
        if self._too_large(path):
            logger.debug(f"Schema scan: skipping large directory {path}")
            return False
        return True

    def record_file(self) -> bool:
        """Count one collected file. Returns False once the ceiling is hit."""
        self.files_seen += 1
        if self.exhausted:
            logger.debug(f"Schema scan stopped after {self.files_seen} files")
            return False
        return True

    @staticmethod
    def _depth(top: str, path: str) -> int:
        rel = os.path.relpath(path, top)
        if rel == ".":
            return 0
        return rel.count(os.sep) + 1

    def _too_large(self, path: str) -> bool:
        try:
            with os.scandir(path) as entries:
                for count, _ in enumerate(entries, start=1):
                    if count > self.max_dir_entries:
                        return True
        except OSError:
            return False
        return False


def is_graphql_file(path: str) -> bool:
    """Check for a GraphQL file extension."""
    return Path(path).suffix.lower() in GRAPHQL_EXTENSIONS


def is_schema_path(path: str) -> bool:
    """Heuristic: ``.graphqls`` files, or ``.graphql`` files named like a schema."""
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".graphqls":
        return True
    if suffix != ".graphql":
        return False
    return "schema" in p.name.lower()


def uri_to_path(uri: str) -> str | None:
    """Filesystem path of a ``file://`` URI, None for other schemes."""
    if urlparse(uri).scheme != "file":
        return None
    return to_fs_path(uri)


def path_to_uri(path: str) -> str:
    """Document URI of a filesystem path."""
    return from_fs_path(os.path.abspath(path)) or path


def is_schema_uri(uri: str) -> bool:
    """Name heuristic applied to a document URI."""
    path = uri_to_path(uri)
    return bool(path) and is_schema_path(path)


def expand_schema_pattern(root: str | None, pattern: str) -> list[str]:
    """Expand one configured schema path into concrete paths.

    Relative patterns are resolved against the workspace root; patterns
    containing glob characters are expanded (``**`` is recursive).
    """
    if not pattern:
        return []

    expanded = os.path.expanduser(pattern)
    if not os.path.isabs(expanded) and root:
        expanded = os.path.join(root, expanded)

    if any(char in expanded for char in GLOB_CHARS):
        return sorted(glob.glob(expanded, recursive=True))
    return [expanded]


class SchemaSourceCollector:
    """Finds schema files and reads their current text."""

    def __init__(
        self,
        read_open_document: Callable[[str], str | None],
        make_policy: Callable[[], ScanPolicy] = ScanPolicy,
    ):
        self._read_open_document = read_open_document
        self._make_policy = make_policy

    def collect(self, root: str | None, patterns: list[str]) -> list[SchemaSource]:
        """Collect schema sources for a workspace.

        Args:
            root: Workspace root directory, if known.
            patterns: Configured schema paths. When empty the whole root
                is walked and filtered by the schema name heuristic.

        Returns:
            Sources in discovery order, one per URI.
        """
        found: dict[str, SchemaSource] = {}
        policy = self._make_policy()

        if patterns:
            visited: set[str] = set()
            for pattern in patterns:
                for path in expand_schema_pattern(root, pattern):
                    if policy.exhausted:
                        return list(found.values())
                    if path in visited:
                        continue
                    visited.add(path)

                    if os.path.isdir(path):
                        self._walk(path, policy, is_graphql_file, found)
                    elif os.path.isfile(path) and is_graphql_file(path):
                        self._add(path, found)
                        policy.record_file()
        elif root and os.path.isdir(root):
            self._walk(root, policy, is_schema_path, found)

        logger.debug(f"Collected {len(found)} schema sources")
        return list(found.values())

    def _walk(
        self,
        top: str,
        policy: ScanPolicy,
        accept: Callable[[str], bool],
        found: dict[str, SchemaSource],
    ) -> None:
        if not policy.allows_directory(top, top):
            return

        for dirpath, dirnames, filenames in os.walk(top):
            dirnames[:] = sorted(
                name
                for name in dirnames
                if policy.allows_directory(top, os.path.join(dirpath, name))
            )
            for filename in sorted(filenames):
                path = os.path.join(dirpath, filename)
                if not accept(path):
                    continue
                self._add(path, found)
                if not policy.record_file():
                    return

    def _add(self, path: str, found: dict[str, SchemaSource]) -> None:
        uri = path_to_uri(path)
        if uri in found:
            return

        text = self._read_open_document(uri)
        if text is None:
            try:
                text = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Skipping unreadable schema file {path}: {e}")
                return

        found[uri] = SchemaSource(uri=uri, text=text)
