"""Tests for the diagnostics provider."""

import pytest
from graphql import GraphQLError, Source, parse
from lsprotocol import types as lsp

from conftest import SCHEMA
from graphql_lsp.diagnostics import (
    DIAGNOSTIC_SOURCE,
    DiagnosticCode,
    GraphQLDiagnosticsProvider,
    diagnostics_by_uri,
    error_to_diagnostic,
    error_uri,
)


def syntax_error(text, name="file:///schema.graphql"):
    with pytest.raises(GraphQLError) as info:
        parse(Source(text, name))
    return info.value


class TestErrorConversion:
    """Test conversion of graphql-core errors."""

    def test_syntax_error(self):
        diagnostic = error_to_diagnostic(syntax_error("type Query {\n  a: Int\n"))
        assert diagnostic.range.start == lsp.Position(line=2, character=0)
        assert diagnostic.range.end == lsp.Position(line=2, character=1)
        assert diagnostic.severity == lsp.DiagnosticSeverity.Error
        assert diagnostic.source == DIAGNOSTIC_SOURCE
        assert diagnostic.code == DiagnosticCode.SYNTAX_ERROR

    def test_position_is_utf16(self):
        diagnostic = error_to_diagnostic(syntax_error('"\U0001F600" }'))
        assert diagnostic.range.start == lsp.Position(line=0, character=5)
        diagnostic = error_to_diagnostic(syntax_error('# \U0001F600\n{ a } }'))
        assert diagnostic.range.start == lsp.Position(line=1, character=6)

    def test_error_without_location(self):
        diagnostic = error_to_diagnostic(GraphQLError("no location"))
        assert diagnostic.range.start == lsp.Position(line=0, character=0)
        assert diagnostic.message == "no location"

    def test_error_uri_from_source(self):
        assert error_uri(syntax_error("type")) == "file:///schema.graphql"

    def test_error_uri_from_file_extension(self, tmp_path):
        path = tmp_path / "types.graphqls"
        error = GraphQLError("bad", extensions={"file": str(path)})
        assert error_uri(error) == path.as_uri()

    def test_error_uri_missing(self):
        assert error_uri(GraphQLError("bad")) is None


class TestDiagnosticsByUri:
    """Test attribution of schema errors to files."""

    def test_attributed(self):
        error = syntax_error("type", "file:///b.graphqls")
        by_uri = diagnostics_by_uri([error], ["file:///a.graphqls", "file:///b.graphqls"])
        assert list(by_uri) == ["file:///b.graphqls"]
        assert by_uri["file:///b.graphqls"][0].code == DiagnosticCode.SYNTAX_ERROR

    def test_unattributed_goes_to_first_known_uri(self):
        by_uri = diagnostics_by_uri(
            [GraphQLError("somewhere")], ["file:///z.graphqls", "file:///a.graphqls"]
        )
        assert list(by_uri) == ["file:///a.graphqls"]
        assert by_uri["file:///a.graphqls"][0].code == DiagnosticCode.SCHEMA_ERROR

    def test_unattributed_without_known_uris(self):
        assert diagnostics_by_uri([GraphQLError("somewhere")], []) == {}


class TestGraphQLDiagnosticsProvider:
    """Test the GraphQLDiagnosticsProvider class."""

    @pytest.fixture
    def provider(self, mock_server):
        return GraphQLDiagnosticsProvider(mock_server)

    def test_query_syntax_error(self, provider, mock_server):
        uri = "file:///w/query.graphql"
        mock_server.store.open(uri, "{ user ")
        diagnostics = provider.refresh_query_diagnostics(uri)
        assert len(diagnostics) == 1
        assert diagnostics[0].code == DiagnosticCode.SYNTAX_ERROR
        assert mock_server.store.query_diagnostics(uri) == diagnostics

    def test_type_definition_in_query_document(self, provider, mock_server):
        uri = "file:///w/query.graphql"
        mock_server.store.open(uri, "{ user }\ntype Extra { a: Int }")
        diagnostics = provider.refresh_query_diagnostics(uri)
        assert len(diagnostics) == 1
        assert diagnostics[0].range.start == lsp.Position(line=1, character=0)
        assert "Extra" in diagnostics[0].message

    def test_schema_document_has_no_query_diagnostics(self, provider, mock_server):
        uri = "file:///w/schema.graphql"
        mock_server.store.open(uri, "type Query {")
        assert provider.refresh_query_diagnostics(uri) == []

    def test_publish_merges(self, provider, mock_server):
        uri = "file:///w/query.graphql"
        mock_server.store.open(uri, "{")
        provider.refresh_query_diagnostics(uri)
        provider.publish(uri)

        params = mock_server.text_document_publish_diagnostics.call_args[0][0]
        assert params.uri == uri
        assert len(params.diagnostics) == 1

    def test_clear_publishes_empty(self, provider, mock_server):
        uri = "file:///w/query.graphql"
        mock_server.store.open(uri, "{")
        provider.refresh_query_diagnostics(uri)
        provider.clear(uri)

        params = mock_server.text_document_publish_diagnostics.call_args[0][0]
        assert params.diagnostics == []

    def test_workspace_scenario(self, workspace, provider, mock_server):
        uris = workspace(
            {
                "schema.graphql": "type Query { user: User\ntype User { name: String }",
                "query.graphql": "{ user { name } }",
            }
        )
        store = mock_server.store
        schema_uri, query_uri = uris["schema.graphql"], uris["query.graphql"]
        store.open(query_uri, "{ user { name } }")

        assert store.schema_diagnostics(schema_uri)
        assert provider.refresh_query_diagnostics(query_uri) == []
        assert store.diagnostics_for(query_uri) == []

        provider.publish_all()
        published = {
            call[0][0].uri: call[0][0].diagnostics
            for call in mock_server.text_document_publish_diagnostics.call_args_list
        }
        assert published[schema_uri]
        assert not published.get(query_uri)

    def test_valid_schema_no_diagnostics(self, workspace, mock_server):
        uris = workspace({"schema.graphql": SCHEMA})
        assert mock_server.store.diagnostics_for(uris["schema.graphql"]) == []
