"""
GraphQL builtins and editor metadata.

This module contains the names graphql-core treats as intrinsic
(scalars, introspection types) and the lookup tables used to present
schema types to the editor.
"""

from __future__ import annotations

from graphql import (
    GraphQLNamedType,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_object_type,
    is_scalar_type,
    is_union_type,
    specified_scalar_types,
)
from lsprotocol import types as lsp

# Scalars every schema gets for free: Int, Float, String, Boolean, ID
BUILTIN_SCALARS: frozenset[str] = frozenset(specified_scalar_types)

INTROSPECTION_PREFIX = "__"

# SDL keyword used when rendering a type definition
TYPE_KEYWORDS = (
    (is_object_type, "type"),
    (is_interface_type, "interface"),
    (is_union_type, "union"),
    (is_enum_type, "enum"),
    (is_input_object_type, "input"),
    (is_scalar_type, "scalar"),
)

# Completion icon hint per kind of named type
COMPLETION_KINDS = (
    (is_object_type, lsp.CompletionItemKind.Class),
    (is_interface_type, lsp.CompletionItemKind.Interface),
    (is_union_type, lsp.CompletionItemKind.Enum),
    (is_enum_type, lsp.CompletionItemKind.Enum),
    (is_scalar_type, lsp.CompletionItemKind.Value),
    (is_input_object_type, lsp.CompletionItemKind.Struct),
)

# GraphQL source files
GRAPHQL_EXTENSIONS = {".graphql", ".graphqls"}

# Directory names never descended into during a workspace scan
IGNORED_DIRECTORIES = {"node_modules", "vendor", "dist", "build"}


def is_builtin_scalar(name: str) -> bool:
    """Return True for the five built-in scalars."""
    return bool(name) and name in BUILTIN_SCALARS


def is_introspection_name(name: str) -> bool:
    """Return True for reserved ``__`` introspection names."""
    return name.startswith(INTROSPECTION_PREFIX)


def type_keyword(named_type: GraphQLNamedType) -> str:
    """Return the SDL keyword declaring ``named_type`` (``type``, ``enum``...)."""
    for predicate, keyword in TYPE_KEYWORDS:
        if predicate(named_type):
            return keyword
    return ""


def completion_kind(named_type: GraphQLNamedType | None) -> lsp.CompletionItemKind:
    """Return the completion item kind used as icon hint for a named type."""
    if named_type is not None:
        for predicate, kind in COMPLETION_KINDS:
            if predicate(named_type):
                return kind
    return lsp.CompletionItemKind.Struct
