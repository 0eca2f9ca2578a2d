"""Tests for the server lifecycle handlers."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from lsprotocol import types as lsp

from conftest import SCHEMA
from graphql_lsp.server import (
    GraphQLLanguageServer,
    did_change,
    did_close,
    did_open,
    did_save,
    initialize,
    initialized,
)
from graphql_lsp.state import ServerConfig
from graphql_lsp.workspace import path_to_uri


def change_params(uri, *changes):
    return SimpleNamespace(
        text_document=SimpleNamespace(uri=uri, version=2),
        content_changes=list(changes),
    )


def published(ls):
    """Map of URI to the diagnostics last published for it."""
    result = {}
    for call in ls.text_document_publish_diagnostics.call_args_list:
        params = call[0][0]
        result[params.uri] = params.diagnostics
    return result


class TestLifecycle:
    """Test document lifecycle handling end to end."""

    @pytest.fixture
    def ls(self):
        server = GraphQLLanguageServer(name="graphql-lsp-test", version="0")
        server.text_document_publish_diagnostics = MagicMock()
        return server

    @pytest.fixture
    def root(self, tmp_path):
        (tmp_path / "schema.graphql").write_text(SCHEMA, encoding="utf-8")
        return tmp_path

    def initialize_params(self, root, options=None):
        return lsp.InitializeParams(
            capabilities=lsp.ClientCapabilities(),
            root_uri=root.as_uri(),
            initialization_options=options,
        )

    def test_initialize_reads_root_and_options(self, ls, root):
        initialize(ls, self.initialize_params(root, {"schemaPaths": ["api/*.graphql"]}))
        assert ls.store.workspace_settings() == (str(root), ["api/*.graphql"])

    def test_initialize_keeps_command_line_default(self, ls, root):
        ls.config = ServerConfig(schema_paths=["cli.graphql"])
        initialize(ls, self.initialize_params(root))
        assert ls.store.workspace_settings() == (str(root), ["cli.graphql"])

    @pytest.mark.asyncio
    async def test_initialized_loads_schema(self, ls, root):
        initialize(ls, self.initialize_params(root))
        await initialized(ls, lsp.InitializedParams())
        assert ls.store.schema is not None
        assert "User" in ls.store.schema.type_map

    @pytest.mark.asyncio
    async def test_open_change_close(self, ls, root):
        initialize(ls, self.initialize_params(root))
        await initialized(ls, lsp.InitializedParams())
        uri = path_to_uri(str(root / "query.graphql"))

        await did_open(
            ls,
            lsp.DidOpenTextDocumentParams(
                text_document=lsp.TextDocumentItem(
                    uri=uri, language_id="graphql", version=1, text="{ user {"
                )
            ),
        )
        assert len(published(ls)[uri]) == 1

        await did_change(ls, change_params(uri, SimpleNamespace(text="{ user { name } }")))
        assert ls.store.get_text(uri) == "{ user { name } }"
        assert published(ls)[uri] == []

        await did_close(
            ls, lsp.DidCloseTextDocumentParams(text_document=lsp.TextDocumentIdentifier(uri=uri))
        )
        assert ls.store.get_text(uri) is None
        assert published(ls)[uri] == []

    @pytest.mark.asyncio
    async def test_schema_edit_publishes_and_recovers(self, ls, root):
        initialize(ls, self.initialize_params(root))
        await initialized(ls, lsp.InitializedParams())
        good = ls.store.schema
        uri = path_to_uri(str(root / "schema.graphql"))

        await did_save(
            ls,
            lsp.DidSaveTextDocumentParams(
                text_document=lsp.TextDocumentIdentifier(uri=uri), text="type Query {"
            ),
        )
        assert ls.store.schema is good
        assert published(ls)[uri]
        assert published(ls)[uri][0].code == "syntax-error"

        await did_save(
            ls,
            lsp.DidSaveTextDocumentParams(
                text_document=lsp.TextDocumentIdentifier(uri=uri), text=SCHEMA
            ),
        )
        assert published(ls)[uri] == []
        assert ls.store.schema is not good

    @pytest.mark.asyncio
    async def test_unsupported_change_ignored(self, ls, root):
        initialize(ls, self.initialize_params(root))
        uri = path_to_uri(str(root / "query.graphql"))
        ls.store.open(uri, "{ user }")

        await did_change(ls, change_params(uri, object()))
        assert ls.store.get_text(uri) == "{ user }"
        ls.text_document_publish_diagnostics.assert_not_called()

    @pytest.mark.asyncio
    async def test_features_survive_schema_syntax_error(self, ls, root):
        initialize(ls, self.initialize_params(root))
        await initialized(ls, lsp.InitializedParams())
        schema_uri = path_to_uri(str(root / "schema.graphql"))
        query_uri = path_to_uri(str(root / "query.graphql"))

        await did_save(
            ls,
            lsp.DidSaveTextDocumentParams(
                text_document=lsp.TextDocumentIdentifier(uri=schema_uri),
                text=SCHEMA + "\ntype Broken {\n",
            ),
        )
        await did_open(
            ls,
            lsp.DidOpenTextDocumentParams(
                text_document=lsp.TextDocumentItem(
                    uri=query_uri, language_id="graphql", version=1, text="{ user { name } }"
                )
            ),
        )
        assert published(ls)[schema_uri]

        def at(uri, line, character):
            return {
                "text_document": lsp.TextDocumentIdentifier(uri=uri),
                "position": lsp.Position(line=line, character=character),
            }

        hover = await ls.hover_provider.get_hover(lsp.HoverParams(**at(query_uri, 0, 10)))
        assert "name: String" in hover.contents.value
        hover = await ls.hover_provider.get_hover(lsp.HoverParams(**at(schema_uri, 3, 3)))
        assert "user(id: ID): User" in hover.contents.value

        location = await ls.definition_provider.get_definition(
            lsp.DefinitionParams(**at(query_uri, 0, 3))
        )
        assert (location.uri, location.range.start.line) == (schema_uri, 3)
        location = await ls.definition_provider.get_definition(
            lsp.DefinitionParams(**at(schema_uri, 3, 17))
        )
        assert (location.uri, location.range.start.line) == (schema_uri, 8)
