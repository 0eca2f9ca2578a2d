"""
Cross-file references and rename for GraphQL schema documents.

Every known schema source is re-parsed on its own, so a file that does
not parse only drops its own matches. Locations cover exactly the name
node in the file that contains it.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterable

from lsprotocol import types as lsp

from graphql_lsp.graphql_builtins import is_builtin_scalar, is_introspection_name
from graphql_lsp.parser import parse_schema_document
from graphql_lsp.positions import node_range, to_internal, word_at
from graphql_lsp.resolver import SchemaSymbol, SymbolKind, iter_schema_symbols, schema_symbol_at
from graphql_lsp.workspace import SchemaSource, SchemaSourceCollector

if TYPE_CHECKING:
    from graphql import GraphQLSchema
    from graphql.language import DocumentNode

    from graphql_lsp.positions import TextPosition
    from graphql_lsp.server import GraphQLLanguageServer

logger = logging.getLogger(__name__)

GRAPHQL_NAME = re.compile(r"[_A-Za-z][_0-9A-Za-z]*")
RESERVED_ENUM_VALUES = frozenset({"true", "false", "null"})


def is_valid_name(name: str) -> bool:
    return GRAPHQL_NAME.fullmatch(name) is not None


def _location_key(location: lsp.Location) -> tuple[str, int, int, int, int]:
    start, end = location.range.start, location.range.end
    return (location.uri, start.line, start.character, end.line, end.character)


def _collect_locations(
    sources: Iterable[SchemaSource], matches
) -> list[lsp.Location]:
    locations: list[lsp.Location] = []
    seen: set[tuple[str, int, int, int, int]] = set()

    for source in sources:
        result = parse_schema_document(source.text, source.uri)
        if result.document is None:
            logger.debug(f"references: skipping unparsable {source.uri}")
            continue
        for symbol in iter_schema_symbols(result.document):
            loc = symbol.name_node.loc
            if loc is None or not matches(symbol):
                continue
            location = lsp.Location(uri=loc.source.name, range=node_range(loc))
            key = _location_key(location)
            if key not in seen:
                seen.add(key)
                locations.append(location)

    return locations


def find_type_references(
    sources: Iterable[SchemaSource], target: str, include_declaration: bool
) -> list[lsp.Location]:
    """Every reference to type ``target`` across ``sources``.

    Covers root operation bindings, directive argument types, field and
    argument types, input field types, implemented interfaces and union
    members; type definitions and extensions count as declarations.
    """

    def matches(symbol: SchemaSymbol) -> bool:
        if symbol.type_name != target:
            return False
        if symbol.kind == SymbolKind.TYPE_REFERENCE:
            return True
        return include_declaration and symbol.kind == SymbolKind.TYPE

    return _collect_locations(sources, matches)


def find_enum_value_references(
    sources: Iterable[SchemaSource],
    enum_name: str,
    value_name: str,
    include_declaration: bool,
) -> list[lsp.Location]:
    """Declarations of an enum value plus default values that use it."""

    def matches(symbol: SchemaSymbol) -> bool:
        if symbol.type_name != enum_name or symbol.member_name != value_name:
            return False
        if symbol.kind == SymbolKind.ENUM_LITERAL:
            return True
        return include_declaration and symbol.kind == SymbolKind.ENUM_VALUE

    return _collect_locations(sources, matches)


def find_enum_value_at(document: DocumentNode, offset: int) -> tuple[str, str] | None:
    """``(enum type, value)`` for an enum value declaration or default literal."""
    symbol = schema_symbol_at(document, offset)
    if symbol is None or symbol.kind not in (SymbolKind.ENUM_VALUE, SymbolKind.ENUM_LITERAL):
        return None
    return symbol.type_name, symbol.member_name


def _type_target(
    document: DocumentNode | None,
    schema: GraphQLSchema,
    text: str,
    position: TextPosition,
) -> str | None:
    if document is not None:
        symbol = schema_symbol_at(document, position.offset)
        if symbol is not None and symbol.kind in (SymbolKind.TYPE, SymbolKind.TYPE_REFERENCE):
            return symbol.type_name

    word = word_at(text, position)
    if word and (word in schema.type_map or is_builtin_scalar(word)):
        return word
    return None


class _SchemaDocumentRequest:
    """Shared setup of references and rename requests."""

    def __init__(self, server: GraphQLLanguageServer):
        self.server = server

    def _prepare(self, uri: str, editor_position: lsp.Position):
        store = self.server.store
        schema = store.schema
        if schema is None:
            logger.debug(f"schema not loaded ({uri})")
            return None
        if not store.is_schema_uri(uri):
            return None

        text = store.read_document(uri)
        if text is None:
            return None

        position = to_internal(text, editor_position)
        document = parse_schema_document(text, uri).document
        return schema, text, position, document

    def _sources(self) -> list[SchemaSource]:
        store = self.server.store
        root, patterns = store.workspace_settings()
        return SchemaSourceCollector(store.get_text).collect(root, patterns)


class GraphQLReferenceProvider(_SchemaDocumentRequest):
    """Finds references to types and enum values across schema files."""

    def get_references(self, params: lsp.ReferenceParams) -> list[lsp.Location] | None:
        uri = params.text_document.uri
        prepared = self._prepare(uri, params.position)
        if prepared is None:
            return None
        schema, text, position, document = prepared
        include_declaration = params.context.include_declaration

        if document is not None:
            enum_value = find_enum_value_at(document, position.offset)
            if enum_value is not None:
                locations = find_enum_value_references(
                    self._sources(), *enum_value, include_declaration
                )
                return locations or None

        target = _type_target(document, schema, text, position)
        if target is None:
            logger.debug(f"references: no target at {position.line}:{position.column}")
            return None

        locations = find_type_references(self._sources(), target, include_declaration)
        if not locations:
            logger.debug(f"references: no matches for {target}")
            return None
        return locations


def workspace_edit(locations: Iterable[lsp.Location], new_name: str) -> lsp.WorkspaceEdit:
    changes: dict[str, list[lsp.TextEdit]] = {}
    for location in locations:
        changes.setdefault(location.uri, []).append(
            lsp.TextEdit(range=location.range, new_text=new_name)
        )
    return lsp.WorkspaceEdit(changes=changes)


def _edit_or_none(locations: list[lsp.Location], new_name: str) -> lsp.WorkspaceEdit | None:
    if not locations:
        return None
    return workspace_edit(locations, new_name)


class GraphQLRenameProvider(_SchemaDocumentRequest):
    """Renames types and enum values across schema files."""

    def get_rename(self, params: lsp.RenameParams) -> lsp.WorkspaceEdit | None:
        uri = params.text_document.uri
        new_name = params.new_name or ""
        if not is_valid_name(new_name):
            return None

        prepared = self._prepare(uri, params.position)
        if prepared is None:
            return None
        schema, text, position, document = prepared

        if document is not None:
            enum_value = find_enum_value_at(document, position.offset)
            if enum_value is not None:
                enum_name, value_name = enum_value
                if new_name == value_name or new_name in RESERVED_ENUM_VALUES:
                    return None
                locations = find_enum_value_references(
                    self._sources(), enum_name, value_name, True
                )
                return _edit_or_none(locations, new_name)

        target = _type_target(document, schema, text, position)
        if target is None:
            logger.debug(f"rename: no target at {position.line}:{position.column}")
            return None
        if new_name == target:
            return None
        if is_builtin_scalar(target) or is_introspection_name(target):
            logger.debug(f"rename: built-in type {target} skipped")
            return None
        if target not in schema.type_map:
            logger.debug(f"rename: type {target} not found")
            return None

        return _edit_or_none(find_type_references(self._sources(), target, True), new_name)
