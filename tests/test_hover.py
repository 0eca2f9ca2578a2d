"""Tests for the hover provider."""

import pytest
from lsprotocol import types as lsp

from conftest import SCHEMA
from graphql_lsp.hover import GraphQLHoverProvider, hover_markdown


def hover_params(uri, line, character):
    return lsp.HoverParams(
        text_document=lsp.TextDocumentIdentifier(uri=uri),
        position=lsp.Position(line=line, character=character),
    )


class TestGraphQLHoverProvider:
    """Test the GraphQLHoverProvider class."""

    @pytest.fixture
    def provider(self, mock_server):
        return GraphQLHoverProvider(mock_server)

    @pytest.fixture
    def uris(self, workspace):
        return workspace(
            {
                "schema.graphql": SCHEMA,
                "query.graphql": "{ user(id: 1) { name role } }",
            }
        )

    @pytest.mark.asyncio
    async def test_field_scenario(self, provider, mock_server, workspace):
        uris = workspace(
            {"schema.graphql": "type Query { user: User }\ntype User { name: String }\n"}
        )
        query_uri = uris["schema.graphql"].replace("schema.graphql", "query.graphql")
        mock_server.store.open(query_uri, "{ user { name } }")

        hover = await provider.get_hover(hover_params(query_uri, 0, 3))
        assert hover.contents.kind == lsp.MarkupKind.Markdown
        assert "user: User" in hover.contents.value
        assert hover.range.start == lsp.Position(line=0, character=2)
        assert hover.range.end == lsp.Position(line=0, character=6)

        hover = await provider.get_hover(hover_params(query_uri, 0, 10))
        assert "name: String" in hover.contents.value

    @pytest.mark.asyncio
    async def test_field_with_description(self, provider, mock_server, uris):
        mock_server.store.open(uris["query.graphql"], "{ user(id: 1) { name role } }")
        hover = await provider.get_hover(hover_params(uris["query.graphql"], 0, 3))
        assert hover.contents.value == hover_markdown("user(id: ID): User", "Look up one user")

    @pytest.mark.asyncio
    async def test_no_schema(self, provider, mock_server):
        mock_server.store.open("file:///w/query.graphql", "{ user }")
        assert await provider.get_hover(hover_params("file:///w/query.graphql", 0, 3)) is None

    @pytest.mark.asyncio
    async def test_closed_document(self, provider, uris):
        assert await provider.get_hover(hover_params(uris["query.graphql"], 0, 3)) is None

    @pytest.mark.asyncio
    async def test_unparsable_document(self, provider, mock_server, uris):
        mock_server.store.open(uris["query.graphql"], "{ user {")
        assert await provider.get_hover(hover_params(uris["query.graphql"], 0, 3)) is None

    @pytest.mark.asyncio
    async def test_whitespace(self, provider, mock_server, uris):
        mock_server.store.open(uris["query.graphql"], "{ user(id: 1) { name role } }")
        assert await provider.get_hover(hover_params(uris["query.graphql"], 0, 0)) is None

    @pytest.mark.asyncio
    async def test_schema_type_name(self, provider, mock_server, uris):
        mock_server.store.open(uris["schema.graphql"], SCHEMA)
        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 1, 6))
        assert hover.contents.value == hover_markdown("type Query", "Entry point")

    @pytest.mark.asyncio
    async def test_schema_field(self, provider, mock_server, uris):
        mock_server.store.open(uris["schema.graphql"], SCHEMA)
        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 3, 3))
        assert "user(id: ID): User" in hover.contents.value

    @pytest.mark.asyncio
    async def test_schema_type_reference(self, provider, mock_server, uris):
        mock_server.store.open(uris["schema.graphql"], SCHEMA)
        # "  user(id: ID): User" -> the result type
        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 3, 18))
        assert "type User" in hover.contents.value

    @pytest.mark.asyncio
    async def test_schema_argument_and_enum_value(self, provider, mock_server, uris):
        mock_server.store.open(uris["schema.graphql"], SCHEMA)
        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 3, 8))
        assert "id: ID" in hover.contents.value

        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 20, 3))
        assert "Role.ADMIN" in hover.contents.value

    @pytest.mark.asyncio
    async def test_schema_builtin_reference(self, provider, mock_server, uris):
        mock_server.store.open(uris["schema.graphql"], SCHEMA)
        # "  name: String"
        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 10, 9))
        assert "scalar String" in hover.contents.value

    @pytest.mark.asyncio
    async def test_schema_hover_survives_syntax_error(self, provider, mock_server, uris):
        store = mock_server.store
        good = store.schema
        store.open(uris["schema.graphql"], SCHEMA + "\ntype Broken {\n")
        mock_server.schema_loader.reload()
        assert store.schema is good

        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 3, 3))
        assert "user(id: ID): User" in hover.contents.value

        hover = await provider.get_hover(hover_params(uris["schema.graphql"], 8, 6))
        assert "type User" in hover.contents.value
        assert hover.range.start == lsp.Position(line=8, character=5)

    @pytest.mark.asyncio
    async def test_field_hover_survives_schema_syntax_error(self, provider, mock_server, uris):
        store = mock_server.store
        store.open(uris["schema.graphql"], "type Query {")
        mock_server.schema_loader.reload()
        assert store.schema is not None

        store.open(uris["query.graphql"], "{ user(id: 1) { name role } }")
        hover = await provider.get_hover(hover_params(uris["query.graphql"], 0, 3))
        assert "user(id: ID): User" in hover.contents.value

    @pytest.mark.asyncio
    async def test_schema_file_never_loaded(self, provider, mock_server, uris):
        uri = uris["schema.graphql"].replace("schema.graphql", "other_schema.graphql")
        mock_server.store.open(uri, "type Other {")
        assert await provider.get_hover(hover_params(uri, 0, 6)) is None
