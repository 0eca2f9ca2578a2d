"""
Diagnostic providers for GraphQL LSP.

Provides diagnostics from two independent sources:
- Query diagnostics: parse errors of a single operation document
- Schema diagnostics: parse and validation errors of the aggregate
  workspace schema, attributed to the file they occur in

Both lists are stored separately in the DocumentStore and merged
(query first) whenever a URI is published.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from graphql import GraphQLError, GraphQLSyntaxError
from lsprotocol import types as lsp

from graphql_lsp.parser import parse_operations
from graphql_lsp.positions import to_editor
from graphql_lsp.workspace import path_to_uri

if TYPE_CHECKING:
    from graphql_lsp.server import GraphQLLanguageServer

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE = "graphql-lsp"


class DiagnosticCode:
    """Diagnostic codes for graphql-lsp."""

    SYNTAX_ERROR = "syntax-error"
    SCHEMA_ERROR = "schema-error"
    DOCUMENT_ERROR = "document-error"


def error_to_diagnostic(error: GraphQLError, code: str | None = None) -> lsp.Diagnostic:
    """Convert a graphql-core error into a one-character editor diagnostic."""
    start = lsp.Position(line=0, character=0)
    if error.source is not None and error.positions:
        start = to_editor(error.source.body, error.positions[0])
    elif error.locations:
        location = error.locations[0]
        start = lsp.Position(
            line=max(0, location.line - 1),
            character=max(0, location.column - 1),
        )

    if code is None:
        code = (
            DiagnosticCode.SYNTAX_ERROR
            if isinstance(error, GraphQLSyntaxError)
            else DiagnosticCode.DOCUMENT_ERROR
        )

    return lsp.Diagnostic(
        range=lsp.Range(
            start=start,
            end=lsp.Position(line=start.line, character=start.character + 1),
        ),
        message=error.message,
        severity=lsp.DiagnosticSeverity.Error,
        source=DIAGNOSTIC_SOURCE,
        code=code,
    )


def error_uri(error: GraphQLError) -> str | None:
    """File an error belongs to: the ``file`` extension, else its source name."""
    extensions = error.extensions or {}
    file = extensions.get("file")
    if isinstance(file, str) and file:
        return file if file.startswith("file://") else path_to_uri(file)

    if error.source is not None and error.source.name.startswith("file://"):
        return error.source.name
    return None


def diagnostics_by_uri(
    errors: Iterable[GraphQLError], known_uris: Iterable[str]
) -> dict[str, list[lsp.Diagnostic]]:
    """Group schema errors by file.

    Errors without a file go to the lexicographically first known schema
    URI; they are dropped only when no schema file is known at all.
    """
    fallback = min(known_uris, default=None)
    by_uri: dict[str, list[lsp.Diagnostic]] = {}

    for error in errors:
        code = (
            DiagnosticCode.SYNTAX_ERROR
            if isinstance(error, GraphQLSyntaxError)
            else DiagnosticCode.SCHEMA_ERROR
        )
        uri = error_uri(error) or fallback
        if uri is None:
            logger.debug(f"Dropping unattributed schema error: {error.message}")
            continue
        by_uri.setdefault(uri, []).append(error_to_diagnostic(error, code))

    return by_uri


class GraphQLDiagnosticsProvider:
    """Provides and publishes diagnostics for GraphQL files."""

    def __init__(self, server: GraphQLLanguageServer):
        self.server = server

    def refresh_query_diagnostics(self, uri: str) -> list[lsp.Diagnostic]:
        """Re-parse an open operation document and store its diagnostics.

        Schema documents have no query diagnostics; their errors come from
        the schema load.
        """
        store = self.server.store
        text = store.get_text(uri)
        if text is None or store.is_schema_uri(uri):
            store.clear_query_diagnostics(uri)
            return []

        result = parse_operations(text, uri)
        diagnostics = [error_to_diagnostic(error) for error in result.errors]
        store.set_query_diagnostics(uri, diagnostics)
        logger.debug(f"Query diagnostics updated for {uri}: {len(diagnostics)}")
        return diagnostics

    def get_diagnostics(self, uri: str) -> list[lsp.Diagnostic]:
        """Merged query and schema diagnostics for a URI."""
        return self.server.store.diagnostics_for(uri)

    def publish(self, uri: str) -> None:
        """Send the merged diagnostics of one URI to the editor."""
        self.server.text_document_publish_diagnostics(
            lsp.PublishDiagnosticsParams(uri=uri, diagnostics=self.get_diagnostics(uri))
        )

    def publish_all(self, uris: Iterable[str] = ()) -> None:
        """Publish every URI with diagnostics plus any extra ``uris``.

        Extra URIs are those whose diagnostics may just have been cleared.
        """
        for uri in sorted(self.server.store.diagnosed_uris() | set(uris)):
            self.publish(uri)

    def clear(self, uri: str) -> None:
        """Drop a closed document's query diagnostics and republish the rest."""
        self.server.store.clear_query_diagnostics(uri)
        self.publish(uri)
