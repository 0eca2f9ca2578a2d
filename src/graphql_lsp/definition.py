"""
Go-to-definition provider for GraphQL LSP.

Provides go-to-definition for:
- Field selections (the schema field declaration)
- Fragment spreads (the fragment definition in the same document)
- Type conditions and type references (the type declaration)
- Enum default values (the enum value declaration)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphql import GraphQLSchema, is_enum_type
from lsprotocol import types as lsp

from graphql_lsp.parser import parse_operations
from graphql_lsp.positions import node_range, to_internal, word_at
from graphql_lsp.resolver import (
    SymbolKind,
    find_field_at,
    find_fragment_spread_at,
    find_type_condition_at,
    fragment_table,
    schema_document_at,
    schema_symbol_at,
)
from graphql_lsp.schema import declaration_location

if TYPE_CHECKING:
    from graphql.language import DocumentNode

    from graphql_lsp.server import GraphQLLanguageServer

logger = logging.getLogger(__name__)


def type_location(schema: GraphQLSchema, name: str) -> lsp.Location | None:
    """Declaration of a named type; None for built-in types."""
    named_type = schema.type_map.get(name)
    if named_type is None:
        return None
    return declaration_location(named_type.ast_node)


class GraphQLDefinitionProvider:
    """Provides go-to-definition for GraphQL files."""

    def __init__(self, server: GraphQLLanguageServer):
        self.server = server

    async def get_definition(self, params: lsp.DefinitionParams) -> lsp.Location | None:
        """Get the declaration location for the symbol at position."""
        uri = params.text_document.uri
        store = self.server.store

        schema = store.schema
        if schema is None:
            logger.debug(f"definition: schema not loaded ({uri})")
            return None

        text = store.read_document(uri)
        if text is None:
            return None

        position = to_internal(text, params.position)

        if store.is_schema_uri(uri):
            location = self._get_schema_definition(schema, text, uri, params.position)
        else:
            location = self._get_operation_definition(schema, text, uri, position.offset)

        if location is None:
            logger.debug(
                f"definition: nothing at {position.line}:{position.column} in {uri}"
            )
        return location

    def _get_operation_definition(
        self, schema: GraphQLSchema, text: str, uri: str, offset: int
    ) -> lsp.Location | None:
        result = parse_operations(text, uri)
        document = result.document
        if document is None:
            return None

        spread = find_fragment_spread_at(document, offset)
        if spread is not None:
            return self._fragment_location(document, spread.name.value)

        type_condition = find_type_condition_at(document, offset)
        if type_condition is not None:
            return type_location(schema, type_condition.name.value)

        match = find_field_at(document, schema, offset)
        if match is None:
            return None
        return declaration_location(match.definition.ast_node)

    @staticmethod
    def _fragment_location(document: DocumentNode, name: str) -> lsp.Location | None:
        fragment = fragment_table(document).get(name)
        if fragment is None or fragment.name.loc is None:
            return None
        loc = fragment.name.loc
        return lsp.Location(uri=loc.source.name, range=node_range(loc))

    def _get_schema_definition(self, schema, text, uri, editor_position) -> lsp.Location | None:
        resolved = schema_document_at(schema, text, uri, editor_position)
        if resolved is not None:
            document, target = resolved
            symbol = schema_symbol_at(document, target.offset)
            if symbol is not None and symbol.kind == SymbolKind.TYPE_REFERENCE:
                return type_location(schema, symbol.type_name)
            if symbol is not None and symbol.kind == SymbolKind.ENUM_LITERAL:
                enum_type = schema.type_map.get(symbol.type_name)
                if is_enum_type(enum_type):
                    value = enum_type.values.get(symbol.member_name)
                    if value is not None:
                        return declaration_location(value.ast_node)

        # Bare identifier under the cursor, looked up in the type table
        word = word_at(text, to_internal(text, editor_position))
        if not word:
            return None
        return type_location(schema, word)
