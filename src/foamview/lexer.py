"""Tokenizer for the OpenFOAM dictionary text grammar.

The grammar is small: words, numbers, double-quoted strings and the
punctuation ``( ) { } [ ] ;``. Comments (``//`` to end of line and
``/* ... */``) are dropped. A word that is not a well-formed number is an
IDENT, which lets the list decoders substitute zero for bad numeric tokens
instead of failing the whole list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional


class TokenKind(Enum):
    IDENT = "IDENT"
    NUMBER = "NUMBER"
    STRING = "STRING"
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    SEMI = ";"


_PUNCT = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ";": TokenKind.SEMI,
}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<line_comment>//[^\n]*)
    | (?P<block_comment>/\*.*?(?:\*/|\Z))
    | (?P<string>"[^"]*"?)
    | (?P<punct>[(){}\[\];])
    | (?P<word>(?:[^\s(){}\[\];"/]|/(?![/*]))+)
    """,
    re.VERBOSE | re.DOTALL,
)

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_INT_RE = re.compile(r"[-+]?\d+")


@dataclass(frozen=True)
class Token:
    """A lexical token.

    Attributes:
        kind (TokenKind): Token category.
        text (str): Source text; strings are stored without quotes.
        pos (int): Character offset of the token in the source.
    """

    kind: TokenKind
    text: str
    pos: int

    @property
    def is_int(self) -> bool:
        """True for NUMBER tokens written without fraction or exponent."""
        if self.kind is not TokenKind.NUMBER:
            return False
        return _INT_RE.fullmatch(self.text) is not None

    def as_float(self) -> Optional[float]:
        """Return the numeric value, or None for non-numeric tokens."""
        if self.kind is TokenKind.NUMBER:
            return float(self.text)
        return None


def iter_tokens(text: str) -> Iterator[Token]:
    """Yield the tokens of `text`, skipping whitespace and comments."""
    for m in _TOKEN_RE.finditer(text):
        group = m.lastgroup
        if group in ("ws", "line_comment", "block_comment"):
            continue
        value = m.group()
        if group == "string":
            yield Token(TokenKind.STRING, value.strip('"'), m.start())
        elif group == "punct":
            yield Token(_PUNCT[value], value, m.start())
        elif _NUMBER_RE.fullmatch(value):
            yield Token(TokenKind.NUMBER, value, m.start())
        else:
            yield Token(TokenKind.IDENT, value, m.start())


def tokenize(text: str) -> List[Token]:
    """Return the full token list of `text`."""
    return list(iter_tokens(text))


def find_matching(tokens: List[Token], open_idx: int) -> int:
    """Return the index of the token closing the group opened at `open_idx`.

    Only the opener's own kind is counted (parentheses nest independently
    of braces).

    Args:
        tokens: Token list.
        open_idx: Index of an LPAREN, LBRACE or LBRACKET token.

    Returns:
        int: Index of the matching closer, or -1 if the group is unclosed.
    """
    opener = tokens[open_idx].kind
    closer = {
        TokenKind.LPAREN: TokenKind.RPAREN,
        TokenKind.LBRACE: TokenKind.RBRACE,
        TokenKind.LBRACKET: TokenKind.RBRACKET,
    }[opener]
    depth = 0
    for i in range(open_idx, len(tokens)):
        kind = tokens[i].kind
        if kind is opener:
            depth += 1
        elif kind is closer:
            depth -= 1
            if depth == 0:
                return i
    return -1
