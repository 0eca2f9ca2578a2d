"""
graphql-core integration for GraphQL parsing.

Documents are parsed with their URI as the source name, so every AST
location (and every error raised from one) knows which file it came
from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from graphql import GraphQLError, Source, parse
from graphql.language import (
    DefinitionNode,
    DocumentNode,
    ExecutableDefinitionNode,
    FragmentDefinitionNode,
    OperationDefinitionNode,
)

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Result of parsing a document."""

    document: DocumentNode | None
    errors: list[GraphQLError] = field(default_factory=list)


def _definition_label(definition: DefinitionNode) -> str:
    name = getattr(definition, "name", None)
    if name is not None:
        return f'"{name.value}"'
    return type(definition).__name__.removesuffix("Node")


def _parse(text: str, uri: str) -> ParseResult:
    try:
        return ParseResult(document=parse(Source(text, uri)))
    except GraphQLError as e:
        return ParseResult(document=None, errors=[e])


def parse_operations(text: str, uri: str) -> ParseResult:
    """Parse an operation document (queries, mutations, fragments).

    Type-system definitions are reported as errors: they are not allowed
    in an operation document.
    """
    result = _parse(text, uri)
    if result.document is None:
        return result

    for definition in result.document.definitions:
        if not isinstance(definition, ExecutableDefinitionNode):
            result.errors.append(
                GraphQLError(
                    f"The {_definition_label(definition)} definition is not executable.",
                    definition,
                )
            )
    return result


def parse_schema_document(text: str, uri: str) -> ParseResult:
    """Parse a schema source (type-system definitions and extensions)."""
    result = _parse(text, uri)
    if result.document is None:
        return result

    for definition in result.document.definitions:
        if isinstance(definition, (OperationDefinitionNode, FragmentDefinitionNode)):
            result.errors.append(
                GraphQLError(
                    f"The {_definition_label(definition)} definition is not allowed "
                    "in a schema file.",
                    definition,
                )
            )
    return result
