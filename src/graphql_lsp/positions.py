"""
Position conversion between the editor and the GraphQL AST.

Editors address text by (0-based line, UTF-16 code unit) pairs, while
graphql-core locations are codepoint offsets into the source body with
1-based line/column tokens. Python strings index by codepoint, so an
internal offset is a plain ``str`` index.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lsprotocol import types as lsp

if TYPE_CHECKING:
    from graphql.language import Location

IDENTIFIER_CHAR = re.compile(r"[A-Za-z0-9_]")


@dataclass(frozen=True)
class TextPosition:
    """A position inside one version of a document's text."""

    offset: int  # 0-based codepoint offset
    line: int  # 1-based
    column: int  # 1-based, in codepoints


def utf16_length(text: str) -> int:
    """Number of UTF-16 code units needed to encode ``text``."""
    return sum(2 if ord(char) > 0xFFFF else 1 for char in text)


def line_start_offset(text: str, line: int) -> int:
    """Offset of the first character of 1-based ``line``.

    Lines past the end of the text start at ``len(text)``.
    """
    start = 0
    for _ in range(max(0, line - 1)):
        newline = text.find("\n", start)
        if newline == -1:
            return len(text)
        start = newline + 1
    return start


def to_internal(text: str, position: lsp.Position) -> TextPosition:
    """Convert an editor position into an internal offset/line/column triple."""
    line = max(0, position.line)
    character = max(0, position.character)

    start = line_start_offset(text, line + 1)
    offset = start
    units = 0
    while offset < len(text) and text[offset] != "\n" and units < character:
        units += 2 if ord(text[offset]) > 0xFFFF else 1
        offset += 1

    return TextPosition(offset=offset, line=line + 1, column=offset - start + 1)


def to_editor(text: str, offset: int) -> lsp.Position:
    """Convert an internal codepoint offset back into an editor position."""
    offset = min(max(0, offset), len(text))
    line = text.count("\n", 0, offset)
    start = text.rfind("\n", 0, offset) + 1
    return lsp.Position(line=line, character=utf16_length(text[start:offset]))


def node_range(loc: Location) -> lsp.Range:
    """Editor range of an AST location, measured in its own source body."""
    body = loc.source.body
    return lsp.Range(start=to_editor(body, loc.start), end=to_editor(body, loc.end))


def line_prefix(text: str, offset: int) -> str:
    """Text between the start of the offset's line and the offset."""
    offset = min(max(0, offset), len(text))
    start = text.rfind("\n", 0, offset) + 1
    return text[start:offset]


def word_at(text: str, position: TextPosition) -> str:
    """Identifier under a position, scanning outward from its column.

    The cursor may sit on any character of the identifier or directly
    after its last character.
    """
    start = line_start_offset(text, position.line)
    end = text.find("\n", start)
    line_text = text[start:] if end == -1 else text[start:end]

    index = position.column - 1
    if index < 0 or index > len(line_text):
        return ""

    begin = index
    while begin > 0 and IDENTIFIER_CHAR.match(line_text[begin - 1]):
        begin -= 1
    finish = index
    while finish < len(line_text) and IDENTIFIER_CHAR.match(line_text[finish]):
        finish += 1

    return line_text[begin:finish]
