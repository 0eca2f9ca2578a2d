"""
Semantic resolution of positions in GraphQL documents.

Operation documents are resolved with one recursive walk over the three
selection kinds (field, inline fragment, fragment spread), carrying the
current parent type and the document's fragment table. Schema documents
are resolved by enumerating the name nodes of their declarations and
type references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Union

from graphql import (
    GraphQLField,
    GraphQLNamedType,
    GraphQLSchema,
    get_named_type,
    is_composite_type,
    is_interface_type,
    is_object_type,
)
from graphql.language import (
    DirectiveDefinitionNode,
    DocumentNode,
    EnumTypeDefinitionNode,
    EnumTypeExtensionNode,
    EnumValueNode,
    FieldDefinitionNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    InputObjectTypeDefinitionNode,
    InputObjectTypeExtensionNode,
    InputValueDefinitionNode,
    ListValueNode,
    NamedTypeNode,
    NameNode,
    OperationDefinitionNode,
    OperationType,
    SchemaDefinitionNode,
    SchemaExtensionNode,
    SelectionSetNode,
    TypeDefinitionNode,
    TypeExtensionNode,
    UnionTypeDefinitionNode,
    UnionTypeExtensionNode,
    ValueNode,
)
from graphql.language.ast import Location
from graphql.type.introspection import TypeNameMetaFieldDef

from graphql_lsp.parser import parse_schema_document
from graphql_lsp.positions import TextPosition, to_internal
from graphql_lsp.schema import named_type_node
from graphql_lsp.scanner import selection_set_contains

if TYPE_CHECKING:
    from lsprotocol import types as lsp

logger = logging.getLogger(__name__)

Selection = Union[FieldNode, InlineFragmentNode, FragmentSpreadNode]


# ============================================================================
# Operation documents
# ============================================================================


@dataclass(frozen=True)
class SelectionContext:
    """A selection together with the type it is selected on."""

    node: Selection
    parent_type: GraphQLNamedType | None


@dataclass(frozen=True)
class FieldMatch:
    """A field selection resolved against the schema."""

    node: FieldNode
    parent_type: GraphQLNamedType
    definition: GraphQLField


def contains(loc: Location | None, offset: int) -> bool:
    """Inclusive span test; the cursor may sit right after the last character."""
    return loc is not None and loc.start <= offset <= loc.end


def fragment_table(document: DocumentNode) -> dict[str, FragmentDefinitionNode]:
    return {
        definition.name.value: definition
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }


def root_type(
    schema: GraphQLSchema | None, operation: OperationType
) -> GraphQLNamedType | None:
    if schema is None:
        return None
    return schema.get_root_type(operation)


def field_definition(parent: GraphQLNamedType | None, name: str) -> GraphQLField | None:
    """Schema field ``name`` of a parent type, including ``__typename``."""
    if parent is None:
        return None
    if name == "__typename" and is_composite_type(parent):
        return TypeNameMetaFieldDef
    if is_object_type(parent) or is_interface_type(parent):
        return parent.fields.get(name)
    return None


def narrow(
    schema: GraphQLSchema | None,
    type_condition: NamedTypeNode | None,
    current: GraphQLNamedType | None,
) -> GraphQLNamedType | None:
    """Switch to a fragment's type condition when it names a known type."""
    if type_condition is None or schema is None:
        return current
    return schema.get_type(type_condition.name.value) or current


def selection_type(
    schema: GraphQLSchema | None, context: SelectionContext
) -> GraphQLNamedType | None:
    """Type a selection's own selection set is resolved against."""
    node = context.node
    if isinstance(node, FieldNode):
        definition = field_definition(context.parent_type, node.name.value)
        return get_named_type(definition.type) if definition else None
    if isinstance(node, InlineFragmentNode):
        return narrow(schema, node.type_condition, context.parent_type)
    return None


def walk_selections(
    schema: GraphQLSchema | None,
    selection_set: SelectionSetNode | None,
    parent: GraphQLNamedType | None,
    fragments: dict[str, FragmentDefinitionNode],
    visiting: frozenset[str] = frozenset(),
) -> Iterator[SelectionContext]:
    """Yield every selection under ``selection_set`` in document order.

    Fragment spreads are followed through ``fragments``; a fragment that
    is already being expanded is not entered again.
    """
    if selection_set is None:
        return

    for selection in selection_set.selections:
        context = SelectionContext(node=selection, parent_type=parent)
        yield context

        if isinstance(selection, (FieldNode, InlineFragmentNode)):
            yield from walk_selections(
                schema,
                selection.selection_set,
                selection_type(schema, context),
                fragments,
                visiting,
            )
        elif isinstance(selection, FragmentSpreadNode):
            name = selection.name.value
            fragment = fragments.get(name)
            if fragment is None or name in visiting:
                continue
            yield from walk_selections(
                schema,
                fragment.selection_set,
                narrow(schema, fragment.type_condition, parent),
                fragments,
                visiting | {name},
            )


def _executable_roots(
    document: DocumentNode, schema: GraphQLSchema | None
) -> Iterator[tuple[OperationDefinitionNode | FragmentDefinitionNode, GraphQLNamedType | None]]:
    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode):
            yield definition, root_type(schema, definition.operation)
        elif isinstance(definition, FragmentDefinitionNode):
            yield definition, narrow(schema, definition.type_condition, None)


def iter_document_selections(
    document: DocumentNode, schema: GraphQLSchema | None
) -> Iterator[SelectionContext]:
    """Walk every operation from its root type, then every fragment definition."""
    fragments = fragment_table(document)
    for definition, parent in _executable_roots(document, schema):
        visiting = frozenset()
        if isinstance(definition, FragmentDefinitionNode):
            visiting = frozenset({definition.name.value})
        yield from walk_selections(
            schema, definition.selection_set, parent, fragments, visiting
        )


def _field_span_contains(node: FieldNode, offset: int) -> bool:
    # Alias and name together: "alias: name"
    if node.loc is None or node.name.loc is None:
        return False
    return node.loc.start <= offset <= node.name.loc.end


def find_field_at(
    document: DocumentNode, schema: GraphQLSchema, offset: int
) -> FieldMatch | None:
    """First field selection whose name covers ``offset`` and resolves."""
    for context in iter_document_selections(document, schema):
        node = context.node
        if not isinstance(node, FieldNode) or not _field_span_contains(node, offset):
            continue
        definition = field_definition(context.parent_type, node.name.value)
        if definition is not None:
            return FieldMatch(node=node, parent_type=context.parent_type, definition=definition)
    return None


def find_fragment_spread_at(document: DocumentNode, offset: int) -> FragmentSpreadNode | None:
    for context in iter_document_selections(document, None):
        node = context.node
        if isinstance(node, FragmentSpreadNode) and contains(node.name.loc, offset):
            return node
    return None


def find_type_condition_at(document: DocumentNode, offset: int) -> NamedTypeNode | None:
    """Type condition of an inline fragment or fragment definition at ``offset``."""
    for definition in document.definitions:
        if isinstance(definition, FragmentDefinitionNode):
            if contains(definition.type_condition.loc, offset):
                return definition.type_condition
    for context in iter_document_selections(document, None):
        node = context.node
        if isinstance(node, InlineFragmentNode) and node.type_condition is not None:
            if contains(node.type_condition.loc, offset):
                return node.type_condition
    return None


def _encloses(text: str, selection_set: SelectionSetNode | None, offset: int) -> bool:
    if selection_set is None or selection_set.loc is None:
        return False
    return selection_set_contains(text, selection_set.loc.start, offset)


def find_completion_parent(
    document: DocumentNode, schema: GraphQLSchema, text: str, offset: int
) -> GraphQLNamedType | None:
    """Type of the innermost selection set enclosing ``offset``.

    Braces are matched on the raw text so the result follows what the
    user sees even when AST locations and text disagree.
    """
    fragments = fragment_table(document)
    for definition, start_type in _executable_roots(document, schema):
        if start_type is None or not _encloses(text, definition.selection_set, offset):
            continue

        parent = start_type
        visiting = frozenset()
        if isinstance(definition, FragmentDefinitionNode):
            visiting = frozenset({definition.name.value})
        for context in walk_selections(
            schema, definition.selection_set, start_type, fragments, visiting
        ):
            node = context.node
            if isinstance(node, FragmentSpreadNode):
                continue
            if not _encloses(text, node.selection_set, offset):
                continue
            child = selection_type(schema, context)
            if child is not None and is_composite_type(child):
                parent = child
        return parent

    return None


# ============================================================================
# Schema documents
# ============================================================================


class SymbolKind:
    """Kinds of named things found in schema documents."""

    TYPE = "type"
    FIELD = "field"
    ARGUMENT = "argument"
    ENUM_VALUE = "enum_value"
    TYPE_REFERENCE = "type_reference"
    ENUM_LITERAL = "enum_literal"


@dataclass(frozen=True)
class SchemaSymbol:
    """A name node in a schema document and what it names.

    ``type_name`` is the declaring type for declarations, the referenced
    type for type references and the enum type for enum values/literals.
    """

    kind: str
    name_node: NameNode | EnumValueNode
    type_name: str
    member_name: str | None = None
    argument_name: str | None = None

    @property
    def name(self) -> str:
        return self.name_node.value


def _enum_literals(value: ValueNode | None) -> Iterator[EnumValueNode]:
    if isinstance(value, EnumValueNode):
        yield value
    elif isinstance(value, ListValueNode):
        for item in value.values:
            yield from _enum_literals(item)


def _input_value_symbols(
    node: InputValueDefinitionNode,
    owner: str,
    member: str | None,
    kind: str,
) -> Iterator[SchemaSymbol]:
    if kind == SymbolKind.ARGUMENT:
        yield SchemaSymbol(kind, node.name, owner, member, node.name.value)
    else:
        yield SchemaSymbol(kind, node.name, owner, node.name.value)

    reference = named_type_node(node.type)
    yield SchemaSymbol(SymbolKind.TYPE_REFERENCE, reference.name, reference.name.value)
    for literal in _enum_literals(node.default_value):
        yield SchemaSymbol(
            SymbolKind.ENUM_LITERAL,
            literal,  # enum literals have no name node
            reference.name.value,
            literal.value,
        )


def _field_symbols(node: FieldDefinitionNode, owner: str) -> Iterator[SchemaSymbol]:
    yield SchemaSymbol(SymbolKind.FIELD, node.name, owner, node.name.value)
    for argument in node.arguments or ():
        yield from _input_value_symbols(
            argument, owner, node.name.value, SymbolKind.ARGUMENT
        )
    reference = named_type_node(node.type)
    yield SchemaSymbol(SymbolKind.TYPE_REFERENCE, reference.name, reference.name.value)


def _type_symbols(
    node: TypeDefinitionNode | TypeExtensionNode,
) -> Iterator[SchemaSymbol]:
    owner = node.name.value
    yield SchemaSymbol(SymbolKind.TYPE, node.name, owner)

    for interface in getattr(node, "interfaces", None) or ():
        yield SchemaSymbol(SymbolKind.TYPE_REFERENCE, interface.name, interface.name.value)

    if isinstance(node, (UnionTypeDefinitionNode, UnionTypeExtensionNode)):
        for member in node.types or ():
            yield SchemaSymbol(SymbolKind.TYPE_REFERENCE, member.name, member.name.value)
    elif isinstance(node, (EnumTypeDefinitionNode, EnumTypeExtensionNode)):
        for value in node.values or ():
            yield SchemaSymbol(SymbolKind.ENUM_VALUE, value.name, owner, value.name.value)
    elif isinstance(node, (InputObjectTypeDefinitionNode, InputObjectTypeExtensionNode)):
        for input_field in node.fields or ():
            yield from _input_value_symbols(input_field, owner, None, SymbolKind.FIELD)
    else:
        for field in getattr(node, "fields", None) or ():
            yield from _field_symbols(field, owner)


def iter_schema_symbols(document: DocumentNode) -> Iterator[SchemaSymbol]:
    """Yield every declared or referenced name of a schema document."""
    for definition in document.definitions:
        if isinstance(definition, (TypeDefinitionNode, TypeExtensionNode)):
            yield from _type_symbols(definition)
        elif isinstance(definition, (SchemaDefinitionNode, SchemaExtensionNode)):
            for operation_type in definition.operation_types or ():
                reference = operation_type.type
                yield SchemaSymbol(
                    SymbolKind.TYPE_REFERENCE, reference.name, reference.name.value
                )
        elif isinstance(definition, DirectiveDefinitionNode):
            for argument in definition.arguments or ():
                reference = named_type_node(argument.type)
                yield SchemaSymbol(
                    SymbolKind.TYPE_REFERENCE, reference.name, reference.name.value
                )
                for literal in _enum_literals(argument.default_value):
                    yield SchemaSymbol(
                        SymbolKind.ENUM_LITERAL,
                        literal,
                        reference.name.value,
                        literal.value,
                    )


def schema_symbol_at(document: DocumentNode, offset: int) -> SchemaSymbol | None:
    for symbol in iter_schema_symbols(document):
        if contains(symbol.name_node.loc, offset):
            return symbol
    return None


def installed_schema_document(schema: GraphQLSchema, uri: str) -> DocumentNode | None:
    """Declarations of the active schema that came from ``uri``, in source order.

    The nodes keep the locations of the text the schema was built from.
    """
    nodes = [schema.ast_node, *(schema.extension_ast_nodes or ())]
    for named_type in schema.type_map.values():
        nodes.append(named_type.ast_node)
        nodes.extend(named_type.extension_ast_nodes or ())
    nodes.extend(directive.ast_node for directive in schema.directives)

    definitions = sorted(
        (
            node
            for node in nodes
            if node is not None and node.loc is not None and node.loc.source.name == uri
        ),
        key=lambda node: node.loc.start,
    )
    if not definitions:
        return None
    return DocumentNode(definitions=tuple(definitions))


def schema_document_at(
    schema: GraphQLSchema, text: str, uri: str, position: lsp.Position
) -> tuple[DocumentNode, TextPosition] | None:
    """Schema document to resolve an editor position in.

    The current text is used when it parses. Otherwise the active schema's
    declarations from ``uri`` are used, and the position is measured in the
    text they were built from.
    """
    document = parse_schema_document(text, uri).document
    if document is not None:
        return document, to_internal(text, position)

    document = installed_schema_document(schema, uri)
    if document is None:
        return None
    logger.debug(f"{uri} does not parse, resolving against the active schema")
    body = document.definitions[0].loc.source.body
    return document, to_internal(body, position)
