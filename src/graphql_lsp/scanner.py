"""
Boundary-aware lexical scanning of raw GraphQL text.

Finds selection-set braces without a full re-parse. String literals,
block strings and comments are skipped so braces inside them are
never counted.
"""

from __future__ import annotations

import enum
from typing import Iterator

BLOCK_QUOTE = '"""'


class _State(enum.Enum):
    CODE = "code"
    STRING = "string"
    BLOCK_STRING = "block_string"
    COMMENT = "comment"


def code_characters(text: str, start: int = 0) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, char)`` for every character outside strings and comments."""
    state = _State.CODE
    i = max(0, start)
    length = len(text)

    while i < length:
        char = text[i]

        if state is _State.COMMENT:
            if char == "\n":
                state = _State.CODE
            i += 1
        elif state is _State.STRING:
            if char == "\\":
                i += 2
                continue
            if char in ('"', "\n"):
                state = _State.CODE
            i += 1
        elif state is _State.BLOCK_STRING:
            if text.startswith('\\"""', i):
                i += 4
            elif text.startswith(BLOCK_QUOTE, i):
                state = _State.CODE
                i += 3
            else:
                i += 1
        elif char == "#":
            state = _State.COMMENT
            i += 1
        elif char == '"':
            if text.startswith(BLOCK_QUOTE, i):
                state = _State.BLOCK_STRING
                i += 3
            else:
                state = _State.STRING
                i += 1
        else:
            yield i, char
            i += 1


def find_enclosing_braces(text: str, start: int) -> tuple[int, int] | None:
    """Find the first ``{`` at or after ``start`` and its matching ``}``.

    Returns ``(open_offset, close_offset)`` or None when either brace is
    missing.
    """
    depth = 0
    open_offset = -1
    for offset, char in code_characters(text, start):
        if char == "{":
            if open_offset == -1:
                open_offset = offset
            depth += 1
        elif char == "}" and open_offset != -1:
            depth -= 1
            if depth == 0:
                return open_offset, offset
    return None


def selection_set_contains(text: str, start: int, offset: int) -> bool:
    """Check whether ``offset`` lies within the braces found from ``start``."""
    braces = find_enclosing_braces(text, start)
    if braces is None:
        return False
    open_offset, close_offset = braces
    return open_offset <= offset <= close_offset
