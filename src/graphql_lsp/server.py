"""
GraphQL Language Server

Main LSP server implementation using pygls.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path

from graphql_lsp import __version__
from graphql_lsp.completions import GraphQLCompletionProvider
from graphql_lsp.definition import GraphQLDefinitionProvider
from graphql_lsp.diagnostics import GraphQLDiagnosticsProvider
from graphql_lsp.hover import GraphQLHoverProvider
from graphql_lsp.references import GraphQLReferenceProvider, GraphQLRenameProvider
from graphql_lsp.schema import SchemaLoader
from graphql_lsp.state import DocumentStore, ServerConfig, describe_content_changes

# Configure logging; WARNING by default since stderr belongs to the editor
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

COMPLETION_TRIGGER_CHARACTERS = ["@", "{", ":", "."]


class GraphQLLanguageServer(LanguageServer):
    """Language Server for GraphQL schema and operation files."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

        self.store = DocumentStore()
        # Defaults from the command line, replaced by initializationOptions
        self.config = ServerConfig()

        self.schema_loader = SchemaLoader(self)
        self.completion_provider = GraphQLCompletionProvider(self)
        self.diagnostics_provider = GraphQLDiagnosticsProvider(self)
        self.hover_provider = GraphQLHoverProvider(self)
        self.definition_provider = GraphQLDefinitionProvider(self)
        self.reference_provider = GraphQLReferenceProvider(self)
        self.rename_provider = GraphQLRenameProvider(self)

    async def reload_schema(self) -> None:
        """Rebuild the schema off the event loop and publish what changed."""
        affected = await asyncio.to_thread(self.schema_loader.reload)
        for uri in sorted(affected):
            self.diagnostics_provider.publish(uri)

    async def refresh_document(self, uri: str) -> None:
        """Republish a document's diagnostics, then reload the schema."""
        self.diagnostics_provider.refresh_query_diagnostics(uri)
        self.diagnostics_provider.publish(uri)
        await self.reload_schema()


# Create server instance
server = GraphQLLanguageServer(
    name="graphql-lsp",
    version=__version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)


# ============================================================================
# Lifecycle Events
# ============================================================================


@server.feature(lsp.INITIALIZE)
def initialize(ls: GraphQLLanguageServer, params: lsp.InitializeParams) -> None:
    """Handle the initialize request: read the workspace root and options."""
    ls.config = ServerConfig.from_initialization_options(
        params.initialization_options, ls.config
    )

    root_path = None
    if params.root_uri:
        root_path = to_fs_path(params.root_uri)
    elif params.root_path:
        root_path = params.root_path

    ls.store.configure(root_path, ls.config.schema_paths)
    logger.info(f"Workspace root: {root_path}, schema paths: {ls.config.schema_paths}")


@server.feature(lsp.INITIALIZED)
async def initialized(ls: GraphQLLanguageServer, params: lsp.InitializedParams) -> None:
    """Load the schema once the handshake is complete."""
    await asyncio.to_thread(ls.schema_loader.reload)
    ls.diagnostics_provider.publish_all()


# ============================================================================
# Document Events
# ============================================================================


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
async def did_open(ls: GraphQLLanguageServer, params: lsp.DidOpenTextDocumentParams) -> None:
    """Handle document open."""
    uri = params.text_document.uri
    logger.debug(f"Document opened: {uri}")

    ls.store.open(uri, params.text_document.text)
    await ls.refresh_document(uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
async def did_change(
    ls: GraphQLLanguageServer, params: lsp.DidChangeTextDocumentParams
) -> None:
    """Handle document change."""
    uri = params.text_document.uri
    updated = ls.store.update(uri, params.content_changes)
    logger.debug(
        f"Document changed: {uri} v{params.text_document.version} "
        f"len={len(ls.store.get_text(uri) or '')} "
        f"changes={describe_content_changes(params.content_changes)}"
    )

    if not updated:
        return
    await ls.refresh_document(uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_SAVE)
async def did_save(ls: GraphQLLanguageServer, params: lsp.DidSaveTextDocumentParams) -> None:
    """Handle document save; adopt the saved text when the client sends it."""
    uri = params.text_document.uri
    logger.debug(f"Document saved: {uri}")

    if params.text is not None:
        ls.store.open(uri, params.text)
    await ls.refresh_document(uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
async def did_close(ls: GraphQLLanguageServer, params: lsp.DidCloseTextDocumentParams) -> None:
    """Handle document close."""
    uri = params.text_document.uri
    logger.debug(f"Document closed: {uri}")

    ls.store.close(uri)
    ls.diagnostics_provider.clear(uri)
    await ls.reload_schema()


# ============================================================================
# Completion
# ============================================================================


@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(trigger_characters=COMPLETION_TRIGGER_CHARACTERS),
)
async def completion(
    ls: GraphQLLanguageServer, params: lsp.CompletionParams
) -> lsp.CompletionList | None:
    """Provide completions."""
    return await ls.completion_provider.get_completions(params)


# ============================================================================
# Hover
# ============================================================================


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
async def hover(ls: GraphQLLanguageServer, params: lsp.HoverParams) -> lsp.Hover | None:
    """Provide hover information."""
    return await ls.hover_provider.get_hover(params)


# ============================================================================
# Definition
# ============================================================================


@server.feature(lsp.TEXT_DOCUMENT_DEFINITION)
async def definition(
    ls: GraphQLLanguageServer, params: lsp.DefinitionParams
) -> lsp.Location | None:
    """Provide go-to-definition."""
    return await ls.definition_provider.get_definition(params)


# ============================================================================
# References and Rename
# ============================================================================


@server.feature(lsp.TEXT_DOCUMENT_REFERENCES)
async def references(
    ls: GraphQLLanguageServer, params: lsp.ReferenceParams
) -> list[lsp.Location] | None:
    """Provide find references across schema files."""
    # Scans and re-parses schema files, so keep it off the event loop
    return await asyncio.to_thread(ls.reference_provider.get_references, params)


@server.feature(lsp.TEXT_DOCUMENT_RENAME)
async def rename(
    ls: GraphQLLanguageServer, params: lsp.RenameParams
) -> lsp.WorkspaceEdit | None:
    """Rename a type or enum value across schema files."""
    return await asyncio.to_thread(ls.rename_provider.get_rename, params)


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the language server."""
    parser = argparse.ArgumentParser(
        description="GraphQL Language Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--stdio",
        action="store_true",
        default=True,
        help="Use stdio for communication (default)",
    )
    parser.add_argument(
        "--tcp",
        action="store_true",
        help="Use TCP for communication",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="TCP host (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=2087,
        help="TCP port (default: 2087)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set the logging level (default: WARNING)",
    )
    parser.add_argument(
        "--schema",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Schema file, directory or glob (repeatable; overridden by "
        "initializationOptions.schemaPaths)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"graphql-lsp {__version__}",
    )

    args = parser.parse_args()

    # Set log level
    logging.getLogger().setLevel(getattr(logging, args.log_level))

    server.config = ServerConfig(schema_paths=list(args.schema))

    if args.tcp:
        logger.info(f"Starting graphql-lsp in TCP mode on {args.host}:{args.port}")
        server.start_tcp(args.host, args.port)
    else:
        logger.info("Starting graphql-lsp in stdio mode")
        server.start_io()


if __name__ == "__main__":
    main()
