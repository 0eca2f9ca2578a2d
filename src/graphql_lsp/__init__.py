"""
GraphQL Language Server

A Language Server Protocol implementation for GraphQL,
providing hover, go-to-definition, completion, references,
rename and diagnostics against a workspace schema.
"""

__version__ = "0.1.0"

# Import on demand to avoid import errors
def get_server():
    from graphql_lsp.server import GraphQLLanguageServer
    return GraphQLLanguageServer

__all__ = ["get_server", "__version__"]
