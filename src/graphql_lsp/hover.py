"""
Hover provider for GraphQL LSP.

Provides hover information for:
- Field selections in operation documents (signature and description)
- Declarations in schema documents: types, fields, arguments, enum values
- Type references in schema documents (the referenced type)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphql import GraphQLField, GraphQLSchema, is_enum_type
from lsprotocol import types as lsp

from graphql_lsp.parser import parse_operations
from graphql_lsp.positions import node_range, to_internal
from graphql_lsp.resolver import (
    SchemaSymbol,
    SymbolKind,
    find_field_at,
    schema_document_at,
    schema_symbol_at,
)
from graphql_lsp.schema import field_signature, type_signature

if TYPE_CHECKING:
    from graphql_lsp.server import GraphQLLanguageServer

logger = logging.getLogger(__name__)


def hover_markdown(signature: str, description: str | None = None) -> str:
    """Render a signature as a graphql code block followed by its description."""
    value = f"```graphql\n{signature}\n```"
    if description:
        value += f"\n\n{description}"
    return value


def describe_schema_symbol(
    schema: GraphQLSchema, symbol: SchemaSymbol
) -> tuple[str, str | None] | None:
    """Signature and description of a schema document symbol."""
    named_type = schema.type_map.get(symbol.type_name)
    if named_type is None:
        return None

    if symbol.kind in (SymbolKind.TYPE, SymbolKind.TYPE_REFERENCE):
        return type_signature(named_type), named_type.description

    if symbol.kind in (SymbolKind.ENUM_VALUE, SymbolKind.ENUM_LITERAL):
        if not is_enum_type(named_type):
            return None
        value = named_type.values.get(symbol.member_name)
        if value is None:
            return None
        return f"{named_type.name}.{symbol.member_name}", value.description

    fields = getattr(named_type, "fields", None) or {}
    field = fields.get(symbol.member_name)
    if field is None:
        return None

    if symbol.kind == SymbolKind.ARGUMENT:
        argument = getattr(field, "args", {}).get(symbol.argument_name)
        if argument is None:
            return None
        return f"{symbol.argument_name}: {argument.type}", argument.description

    if isinstance(field, GraphQLField):
        return field_signature(symbol.member_name, field), field.description
    return f"{symbol.member_name}: {field.type}", field.description


class GraphQLHoverProvider:
    """Provides hover information for GraphQL files."""

    def __init__(self, server: GraphQLLanguageServer):
        self.server = server

    async def get_hover(self, params: lsp.HoverParams) -> lsp.Hover | None:
        """Get hover information at the given position."""
        uri = params.text_document.uri
        text, schema = self.server.store.snapshot(uri)
        if text is None or schema is None:
            return None

        if self.server.store.is_schema_uri(uri):
            return self._get_schema_hover(schema, text, uri, params.position)
        return self._get_field_hover(
            schema, text, uri, to_internal(text, params.position).offset
        )

    def _get_field_hover(
        self, schema: GraphQLSchema, text: str, uri: str, offset: int
    ) -> lsp.Hover | None:
        result = parse_operations(text, uri)
        if result.document is None:
            return None

        match = find_field_at(result.document, schema, offset)
        if match is None:
            logger.debug(f"hover: no field at offset {offset} in {uri}")
            return None

        name = match.node.name.value
        definition = match.definition
        return lsp.Hover(
            contents=lsp.MarkupContent(
                kind=lsp.MarkupKind.Markdown,
                value=hover_markdown(field_signature(name, definition), definition.description),
            ),
            range=node_range(match.node.name.loc),
        )

    def _get_schema_hover(
        self, schema: GraphQLSchema, text: str, uri: str, position: lsp.Position
    ) -> lsp.Hover | None:
        resolved = schema_document_at(schema, text, uri, position)
        if resolved is None:
            return None

        document, target = resolved
        symbol = schema_symbol_at(document, target.offset)
        if symbol is None:
            logger.debug(f"hover: no schema symbol at {target.line}:{target.column} in {uri}")
            return None

        described = describe_schema_symbol(schema, symbol)
        if described is None:
            return None

        signature, description = described
        return lsp.Hover(
            contents=lsp.MarkupContent(
                kind=lsp.MarkupKind.Markdown,
                value=hover_markdown(signature, description),
            ),
            range=node_range(symbol.name_node.loc),
        )
