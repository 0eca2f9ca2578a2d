"""
Shared document and schema state for the GraphQL language server.

All mutable state (open documents, the active schema, per-file
diagnostics and the schema URI set) lives in one DocumentStore guarded
by one lock. The lock is held only to copy values out or install them;
parsing, file I/O and client notification happen outside it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

from lsprotocol import types as lsp

from graphql_lsp.positions import to_internal
from graphql_lsp.workspace import is_schema_uri, uri_to_path

if TYPE_CHECKING:
    from graphql import GraphQLSchema

logger = logging.getLogger(__name__)

MAX_CHANGE_PREVIEW = 40


@dataclass
class ServerConfig:
    """Settings read from the command line and ``initializationOptions``."""

    schema_paths: list[str] = field(default_factory=list)

    @classmethod
    def from_initialization_options(
        cls, options: Any, default: ServerConfig | None = None
    ) -> ServerConfig:
        """Decode the client-supplied options payload.

        Unknown keys are ignored; missing or malformed keys keep the
        values of ``default``.
        """
        config = cls(schema_paths=list(default.schema_paths) if default else [])
        if not isinstance(options, dict):
            return config

        schema_paths = options.get("schemaPaths")
        if isinstance(schema_paths, list):
            config.schema_paths = [p for p in schema_paths if isinstance(p, str) and p]
        elif schema_paths is not None:
            logger.warning(f"Ignoring malformed schemaPaths option: {schema_paths!r}")

        return config


def apply_content_changes(text: str, changes: Iterable[Any]) -> str | None:
    """Apply ``didChange`` content changes to a document's text.

    Supports whole-document replacements and ranged edits. Returns None
    when a change has an unsupported shape.
    """
    current = text
    for change in changes:
        new_text = getattr(change, "text", None)
        if not isinstance(new_text, str):
            return None

        change_range = getattr(change, "range", None)
        if change_range is None:
            current = new_text
            continue

        start = to_internal(current, change_range.start).offset
        end = to_internal(current, change_range.end).offset
        if end < start:
            end = start
        current = current[:start] + new_text + current[end:]

    return current


def _format_position(position: lsp.Position) -> str:
    return f"{position.line + 1}:{position.character + 1}"


def describe_content_changes(changes: Iterable[Any]) -> str:
    """One-line summary of ``didChange`` content changes for debug logs."""
    summary = []
    for change in changes:
        text = getattr(change, "text", None)
        if not isinstance(text, str):
            summary.append("unknown")
            continue

        change_range = getattr(change, "range", None)
        if change_range is None:
            summary.append(f"full(len={len(text)})")
            continue

        preview = text
        if len(preview) > MAX_CHANGE_PREVIEW:
            preview = preview[:MAX_CHANGE_PREVIEW] + "..."
        start = _format_position(change_range.start)
        end = _format_position(change_range.end)
        summary.append(f"range({start}-{end},len={len(text)},{preview!r})")

    return "; ".join(summary)


class DocumentStore:
    """Lock-guarded record of documents, schema and diagnostics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, str] = {}
        self._query_diagnostics: dict[str, list[lsp.Diagnostic]] = {}
        self._schema_diagnostics: dict[str, list[lsp.Diagnostic]] = {}
        self._schema_uris: set[str] = set()
        self._schema: GraphQLSchema | None = None
        self._root_path: str | None = None
        self._schema_paths: list[str] = []
        self._load_generation = 0
        self._installed_generation = 0

    # ------------------------------------------------------------------
    # Workspace settings
    # ------------------------------------------------------------------

    def configure(self, root_path: str | None, schema_paths: list[str]) -> None:
        with self._lock:
            self._root_path = root_path
            self._schema_paths = list(schema_paths)

    def workspace_settings(self) -> tuple[str | None, list[str]]:
        with self._lock:
            return self._root_path, list(self._schema_paths)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def open(self, uri: str, text: str) -> None:
        with self._lock:
            self._documents[uri] = text

    def get_text(self, uri: str) -> str | None:
        with self._lock:
            return self._documents.get(uri)

    def update(self, uri: str, changes: Iterable[Any]) -> bool:
        """Patch an open document. Returns False if the change was ignored."""
        with self._lock:
            updated = apply_content_changes(self._documents.get(uri, ""), changes)
            if updated is not None:
                self._documents[uri] = updated

        if updated is None:
            logger.debug(f"Ignoring unsupported content change for {uri}")
            return False
        return True

    def close(self, uri: str) -> None:
        with self._lock:
            self._documents.pop(uri, None)
            self._query_diagnostics.pop(uri, None)

    def open_documents(self) -> dict[str, str]:
        with self._lock:
            return dict(self._documents)

    def read_document(self, uri: str) -> str | None:
        """Open text of a document, falling back to the file on disk."""
        text = self.get_text(uri)
        if text is not None:
            return text

        path = uri_to_path(uri)
        if not path:
            return None
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    @property
    def schema(self) -> GraphQLSchema | None:
        with self._lock:
            return self._schema

    def snapshot(self, uri: str) -> tuple[str | None, GraphQLSchema | None]:
        """Read a document's text and the active schema in one step."""
        with self._lock:
            return self._documents.get(uri), self._schema

    def is_schema_uri(self, uri: str) -> bool:
        """A URI is a schema file if the last scan found it or its name says so."""
        with self._lock:
            if uri in self._schema_uris:
                return True
        return is_schema_uri(uri)

    def schema_uris(self) -> set[str]:
        with self._lock:
            return set(self._schema_uris)

    def begin_schema_load(self) -> int:
        """Reserve a generation number for a schema load about to start."""
        with self._lock:
            self._load_generation += 1
            return self._load_generation

    def install_schema_load(
        self,
        generation: int,
        schema: GraphQLSchema | None,
        succeeded: bool,
        diagnostics: dict[str, list[lsp.Diagnostic]],
        uris: set[str],
    ) -> set[str] | None:
        """Install the outcome of a schema load.

        A failed build keeps the previously active schema. Results of a
        load that was overtaken by a newer one are dropped (returns None).

        Returns:
            URIs whose published diagnostics may have changed.
        """
        with self._lock:
            if generation < self._installed_generation:
                return None
            self._installed_generation = generation

            if succeeded:
                self._schema = schema
            affected = set(self._schema_diagnostics) | set(diagnostics)
            self._schema_diagnostics = diagnostics
            self._schema_uris = set(uris)
            return affected

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def set_query_diagnostics(self, uri: str, diagnostics: list[lsp.Diagnostic]) -> None:
        with self._lock:
            self._query_diagnostics[uri] = list(diagnostics)

    def clear_query_diagnostics(self, uri: str) -> None:
        with self._lock:
            self._query_diagnostics.pop(uri, None)

    def query_diagnostics(self, uri: str) -> list[lsp.Diagnostic]:
        with self._lock:
            return list(self._query_diagnostics.get(uri, []))

    def schema_diagnostics(self, uri: str) -> list[lsp.Diagnostic]:
        with self._lock:
            return list(self._schema_diagnostics.get(uri, []))

    def diagnostics_for(self, uri: str) -> list[lsp.Diagnostic]:
        """Query diagnostics followed by schema diagnostics for one URI."""
        with self._lock:
            return list(self._query_diagnostics.get(uri, [])) + list(
                self._schema_diagnostics.get(uri, [])
            )

    def diagnosed_uris(self) -> set[str]:
        with self._lock:
            return set(self._query_diagnostics) | set(self._schema_diagnostics)
