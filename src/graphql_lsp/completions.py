"""
Completion providers for GraphQL LSP.

Provides completions for:
- Directive names (after ``@``)
- Type names in type conditions (``... on``)
- Type names in schema documents (after ``:``)
- Fields of the selection set enclosing the cursor, with snippets
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from graphql import (
    GraphQLField,
    GraphQLNamedType,
    GraphQLSchema,
    get_named_type,
    is_composite_type,
    is_interface_type,
    is_object_type,
)
from lsprotocol import types as lsp

from graphql_lsp.graphql_builtins import completion_kind, is_introspection_name
from graphql_lsp.hover import hover_markdown
from graphql_lsp.parser import parse_operations
from graphql_lsp.positions import line_prefix, to_internal
from graphql_lsp.resolver import find_completion_parent
from graphql_lsp.schema import field_signature

if TYPE_CHECKING:
    from graphql_lsp.server import GraphQLLanguageServer

logger = logging.getLogger(__name__)

# "on", optionally followed by the start of a type name
TYPE_CONDITION_PREFIX = re.compile(r"on(\s+[_A-Za-z0-9]*)?")


def should_complete_directives(text: str, offset: int) -> bool:
    """True when an ``@`` precedes the cursor, ignoring whitespace."""
    index = min(offset, len(text))
    while index > 0:
        char = text[index - 1]
        if char == "@":
            return True
        if not char.isspace():
            return False
        index -= 1
    return False


def should_complete_type_condition(text: str, offset: int) -> bool:
    """True after ``... on`` on the cursor's line."""
    prefix = line_prefix(text, offset).strip()
    if "..." not in prefix:
        return False
    rest = prefix[prefix.rindex("...") + 3 :].strip()
    return TYPE_CONDITION_PREFIX.fullmatch(rest) is not None


def should_complete_schema_types(text: str, offset: int) -> bool:
    """True after a ``:`` on the line, outside of a string literal."""
    prefix = line_prefix(text, offset)
    return ":" in prefix and prefix.count('"') % 2 == 0


def field_insert_text(name: str, field: GraphQLField) -> str | None:
    """Snippet with argument placeholders and a sub-selection when composite.

    Returns None when the plain field name is enough.
    """
    arguments = ""
    if field.args:
        placeholders = ", ".join(
            f"{arg_name}: ${{{index}}}"
            for index, arg_name in enumerate(field.args, start=1)
        )
        arguments = f"({placeholders})"

    selection = " { $0 }" if is_composite_type(get_named_type(field.type)) else ""
    if not arguments and not selection:
        return None
    return name + arguments + selection


def field_filter_text(name: str, field: GraphQLField) -> str:
    if not field.args:
        return name
    return " ".join([name, *field.args])


class GraphQLCompletionProvider:
    """Provides completions for GraphQL files."""

    def __init__(self, server: GraphQLLanguageServer):
        self.server = server

    async def get_completions(self, params: lsp.CompletionParams) -> lsp.CompletionList | None:
        """Get completions at the given position."""
        uri = params.text_document.uri
        store = self.server.store

        schema = store.schema
        if schema is None:
            logger.debug(f"completion: schema not loaded ({uri})")
            return None

        text = store.read_document(uri)
        if text is None:
            logger.debug(f"completion: document missing ({uri})")
            return None

        offset = to_internal(text, params.position).offset

        if should_complete_directives(text, offset):
            items = self._get_directive_completions(schema)
            logger.debug(f"completion: {len(items)} directive items")
        elif store.is_schema_uri(uri):
            if not should_complete_schema_types(text, offset):
                return None
            items = self._get_type_completions(schema)
            logger.debug(f"completion: {len(items)} schema type items")
        elif should_complete_type_condition(text, offset):
            items = self._get_type_completions(schema)
            logger.debug(f"completion: {len(items)} type condition items")
        else:
            parent = self._get_parent_type(schema, text, uri, offset)
            if parent is None:
                return None
            items = self._get_field_completions(parent)
            logger.debug(f"completion: {len(items)} fields of {parent.name}")

        return lsp.CompletionList(is_incomplete=False, items=items)

    def _get_parent_type(
        self, schema: GraphQLSchema, text: str, uri: str, offset: int
    ) -> GraphQLNamedType | None:
        result = parse_operations(text, uri)
        if result.document is None:
            logger.debug(f"completion: {uri} does not parse")
            return None
        return find_completion_parent(result.document, schema, text, offset) or schema.query_type

    def _get_directive_completions(self, schema: GraphQLSchema) -> list[lsp.CompletionItem]:
        items = []
        for directive in sorted(schema.directives, key=lambda d: d.name):
            item = lsp.CompletionItem(
                label=directive.name,
                kind=lsp.CompletionItemKind.Function,
            )
            if directive.description:
                item.documentation = lsp.MarkupContent(
                    kind=lsp.MarkupKind.Markdown,
                    value=directive.description,
                )
            items.append(item)
        return items

    def _get_type_completions(self, schema: GraphQLSchema) -> list[lsp.CompletionItem]:
        return [
            lsp.CompletionItem(
                label=name,
                kind=completion_kind(named_type),
                detail=named_type.description or None,
            )
            for name, named_type in sorted(schema.type_map.items())
            if not is_introspection_name(name)
        ]

    def _get_field_completions(self, parent: GraphQLNamedType) -> list[lsp.CompletionItem]:
        if not (is_object_type(parent) or is_interface_type(parent)):
            return []

        items = []
        for name, field in parent.fields.items():
            signature = field_signature(name, field)
            item = lsp.CompletionItem(
                label=name,
                kind=lsp.CompletionItemKind.Field,
                detail=str(field.type),
                documentation=lsp.MarkupContent(
                    kind=lsp.MarkupKind.Markdown,
                    value=hover_markdown(signature, field.description),
                ),
                sort_text=name.lower(),
                filter_text=field_filter_text(name, field),
            )
            insert_text = field_insert_text(name, field)
            if insert_text is not None:
                item.insert_text = insert_text
                item.insert_text_format = lsp.InsertTextFormat.Snippet
            if field.deprecation_reason is not None:
                item.tags = [lsp.CompletionItemTag.Deprecated]
            items.append(item)
        return items
