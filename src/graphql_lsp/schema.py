"""
Workspace schema building for GraphQL LSP.

Every schema source is parsed on its own (so each AST node keeps the URI
of the file it was declared in), then the definitions are combined into
one document and built with graphql-core.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from graphql import (
    GraphQLArgument,
    GraphQLError,
    GraphQLField,
    GraphQLNamedType,
    GraphQLSchema,
    build_ast_schema,
    validate_schema,
)
from graphql.language import (
    DocumentNode,
    ListTypeNode,
    NamedTypeNode,
    Node,
    NonNullTypeNode,
    TypeNode,
)
from graphql.validation.validate import validate_sdl
from lsprotocol import types as lsp

from graphql_lsp.diagnostics import diagnostics_by_uri
from graphql_lsp.graphql_builtins import type_keyword
from graphql_lsp.parser import parse_schema_document
from graphql_lsp.positions import node_range
from graphql_lsp.workspace import SchemaSource, SchemaSourceCollector

if TYPE_CHECKING:
    from graphql_lsp.server import GraphQLLanguageServer

logger = logging.getLogger(__name__)

__all__ = [
    "SchemaBuildResult",
    "SchemaLoader",
    "SchemaSource",
    "build_workspace_schema",
    "declaration_location",
    "field_signature",
    "named_type_node",
    "type_signature",
]


@dataclass
class SchemaBuildResult:
    """Outcome of building the workspace schema."""

    schema: GraphQLSchema | None
    errors: list[GraphQLError] = field(default_factory=list)


def build_workspace_schema(sources: Iterable[SchemaSource]) -> SchemaBuildResult:
    """Build one schema out of every schema source.

    Parse errors of all sources are collected before giving up. Any error
    (syntax, SDL validation or schema validation) means no schema.
    """
    documents: list[DocumentNode] = []
    errors: list[GraphQLError] = []

    for source in sources:
        result = parse_schema_document(source.text, source.uri)
        errors.extend(result.errors)
        if result.document is not None:
            documents.append(result.document)

    if errors:
        return SchemaBuildResult(schema=None, errors=errors)
    if not documents:
        return SchemaBuildResult(schema=None)

    combined = DocumentNode(
        definitions=tuple(
            definition for document in documents for definition in document.definitions
        )
    )

    sdl_errors = validate_sdl(combined)
    if sdl_errors:
        return SchemaBuildResult(schema=None, errors=list(sdl_errors))

    try:
        schema = build_ast_schema(combined, assume_valid_sdl=True)
    except (GraphQLError, TypeError) as e:
        logger.warning(f"Schema build failed: {e}")
        error = e if isinstance(e, GraphQLError) else GraphQLError(str(e))
        return SchemaBuildResult(schema=None, errors=[error])

    schema_errors = validate_schema(schema)
    if schema_errors:
        return SchemaBuildResult(schema=None, errors=list(schema_errors))

    return SchemaBuildResult(schema=schema)


class SchemaLoader:
    """Collects, builds and installs the workspace schema."""

    def __init__(self, server: GraphQLLanguageServer):
        self.server = server

    def reload(self) -> set[str]:
        """Rebuild the schema from the current workspace state.

        Blocking (file I/O and parsing); the server runs it off the event
        loop. A failed build keeps the previous schema active but still
        replaces the schema diagnostics.

        Returns:
            URIs whose diagnostics need to be republished.
        """
        store = self.server.store
        generation = store.begin_schema_load()
        root, patterns = store.workspace_settings()

        sources = SchemaSourceCollector(store.get_text).collect(root, patterns)
        uris = {source.uri for source in sources}

        if sources:
            result = build_workspace_schema(sources)
        else:
            result = SchemaBuildResult(schema=None)

        diagnostics = diagnostics_by_uri(result.errors, sorted(uris))
        affected = store.install_schema_load(
            generation,
            result.schema,
            not result.errors,
            diagnostics,
            uris,
        )
        if affected is None:
            logger.debug(f"Discarding superseded schema load {generation}")
            return set()

        logger.debug(
            f"Schema load {generation}: {len(sources)} sources, "
            f"{len(result.errors)} errors"
        )
        return affected


def named_type_node(type_node: TypeNode) -> NamedTypeNode:
    """Strip list and non-null wrappers from a type reference."""
    while isinstance(type_node, (ListTypeNode, NonNullTypeNode)):
        type_node = type_node.type
    return type_node  # type: ignore[return-value]


def type_signature(named_type: GraphQLNamedType) -> str:
    """Render a type header such as ``type User``."""
    keyword = type_keyword(named_type)
    return f"{keyword} {named_type.name}" if keyword else named_type.name


def _argument_signature(name: str, argument: GraphQLArgument) -> str:
    return f"{name}: {argument.type}"


def field_signature(name: str, field: GraphQLField) -> str:
    """Render a field as ``name(arg: T, ...): R``."""
    if field.args:
        args = ", ".join(
            _argument_signature(arg_name, arg) for arg_name, arg in field.args.items()
        )
        return f"{name}({args}): {field.type}"
    return f"{name}: {field.type}"


def declaration_location(node: Node | None) -> lsp.Location | None:
    """Location of a declaration's name in the file that declares it.

    Built-in and introspection definitions have no AST node and return
    None.
    """
    if node is None:
        return None
    target = getattr(node, "name", None) or node
    loc = target.loc
    if loc is None:
        return None
    return lsp.Location(uri=loc.source.name, range=node_range(loc))
