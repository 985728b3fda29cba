"""Parser for pip style requirement manifests.

Only the subset diligent needs is understood: one ``name [OP version]``
entry per line. Anything else (comments, extras, markers, URLs) is rejected
so that a manifest is either read completely or not at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional


STRING_CHARS = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_.")
OPERATOR_CHARS = frozenset(b"=><~")
NEWLINE_CHARS = frozenset(b"\r\n")
WHITESPACE_CHARS = frozenset(b" \t")


class ManifestParseError(ValueError):
    """Raised when a manifest cannot be read; aborts the whole manifest."""


class LexicalError(ValueError):
    def __init__(self, offset: int, character: str) -> None:
        super().__init__(f"unexpected character, '{character}' at offset {offset}")
        self.offset = offset
        self.character = character


class RequirementsSyntaxError(ManifestParseError):
    pass


class TokenKind(Enum):
    STRING = "str"
    OPERATOR = "op"
    NEWLINE = "nl"
    END_OF_INPUT = "eof"


@dataclass(frozen=True)
class Token:
    offset: int
    kind: TokenKind
    value: str


@dataclass(frozen=True)
class Requirement:
    package_name: str
    version_operator: str = ""
    package_version: str = ""

    def __str__(self) -> str:
        return f"{self.package_name}{self.version_operator}{self.package_version}"


def tokenize(data: bytes) -> Iterator[Token]:
    """Lazily lex ``data`` into tokens, ending with a single END_OF_INPUT.

    Raises ``LexicalError`` at the first byte outside the known character
    classes; nothing is yielded after it.
    """

    pos = 0
    size = len(data)

    def consume_while(chars: frozenset[int]) -> str:
        nonlocal pos
        start = pos
        while pos < size and data[pos] in chars:
            pos += 1
        return data[start:pos].decode("ascii")

    while True:
        consume_while(WHITESPACE_CHARS)
        start = pos
        if pos >= size:
            yield Token(start, TokenKind.END_OF_INPUT, TokenKind.END_OF_INPUT.value)
            return

        if value := consume_while(STRING_CHARS):
            yield Token(start, TokenKind.STRING, value)
        elif value := consume_while(OPERATOR_CHARS):
            yield Token(start, TokenKind.OPERATOR, value)
        elif value := consume_while(NEWLINE_CHARS):
            yield Token(start, TokenKind.NEWLINE, value)
        else:
            byte = data[start]
            raise LexicalError(start, chr(byte) if byte < 0x80 else f"\\x{byte:02x}")


class _LineState(Enum):
    EXPECT_PACKAGE = "expect-package"
    EXPECT_OPERATOR = "expect-operator"
    EXPECT_VERSION = "expect-version"
    END_OF_LINE = "end-of-line"
    SUCCESS = "success"


_LINE_END = {TokenKind.NEWLINE, TokenKind.END_OF_INPUT}


def _unexpected(token: Token, expectation: str) -> RequirementsSyntaxError:
    return RequirementsSyntaxError(f"unexpected token: '{token.value}'. expected {expectation}")


def _parse_line(tokens: Iterator[Token]) -> Optional[Requirement]:
    state = _LineState.EXPECT_PACKAGE
    name = operator = version = ""

    for token in tokens:
        match state:
            case _LineState.EXPECT_PACKAGE:
                if token.kind in _LINE_END:
                    continue
                if token.kind is not TokenKind.STRING:
                    raise _unexpected(token, "a package name")
                name = token.value
                state = _LineState.EXPECT_OPERATOR
            case _LineState.EXPECT_OPERATOR:
                if token.kind in _LINE_END:
                    state = _LineState.SUCCESS
                elif token.kind is TokenKind.OPERATOR:
                    operator = token.value
                    state = _LineState.EXPECT_VERSION
                else:
                    raise _unexpected(token, "a comparison operator")
            case _LineState.EXPECT_VERSION:
                if token.kind is not TokenKind.STRING:
                    raise _unexpected(token, "a version string")
                version = token.value
                state = _LineState.END_OF_LINE
            case _LineState.END_OF_LINE:
                if token.kind not in _LINE_END:
                    raise _unexpected(token, "end of line or end of file")
                state = _LineState.SUCCESS

        if state is _LineState.SUCCESS:
            return Requirement(name, operator, version)

    return None


def parse_requirements(data: bytes | str) -> List[Requirement]:
    """Parse a whole manifest into requirements, in file order.

    Blank lines are skipped and an empty manifest gives an empty list. Any
    lexical or syntax error raises ``RequirementsSyntaxError`` and discards
    whatever was parsed before it.
    """

    if isinstance(data, str):
        data = data.encode("utf-8")

    tokens = tokenize(data)
    requirements: List[Requirement] = []
    try:
        while (requirement := _parse_line(tokens)) is not None:
            requirements.append(requirement)
    except LexicalError as exc:
        raise RequirementsSyntaxError(f"tokenizer error: {exc}") from exc
    return requirements
