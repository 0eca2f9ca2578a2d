"""Shared fixtures for the GraphQL language server tests."""

from unittest.mock import MagicMock

import pytest

from graphql_lsp.diagnostics import GraphQLDiagnosticsProvider
from graphql_lsp.schema import SchemaLoader
from graphql_lsp.state import DocumentStore
from graphql_lsp.workspace import path_to_uri

SCHEMA = '''\
"""Entry point"""
type Query {
  "Look up one user"
  user(id: ID): User
  users: [User!]!
  search(term: String!): [SearchResult]
}

type User implements Node {
  id: ID!
  name: String
  role: Role
  oldName: String @deprecated(reason: "use name")
}

interface Node {
  id: ID!
}

enum Role {
  ADMIN
  MEMBER
}

union SearchResult = User
'''


@pytest.fixture
def mock_server():
    """A mock server carrying a real store, schema loader and diagnostics."""
    server = MagicMock()
    server.store = DocumentStore()
    server.schema_loader = SchemaLoader(server)
    server.diagnostics_provider = GraphQLDiagnosticsProvider(server)
    return server


@pytest.fixture
def workspace(tmp_path, mock_server):
    """Write files into a workspace root and load its schema.

    Returns a function taking ``{relative path: text}`` and returning a
    ``{relative path: uri}`` mapping.
    """
    mock_server.store.configure(str(tmp_path), [])

    def make(files: dict[str, str]) -> dict[str, str]:
        uris = {}
        for name, text in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
            uris[name] = path_to_uri(str(path))
        mock_server.schema_loader.reload()
        return uris

    return make


