"""FoamFile header parsing and ASCII/binary format detection.

Every OpenFOAM artifact starts with a ``FoamFile { key value; ... }``
dictionary. This module extracts it from the leading bytes of a file and
reports where the payload begins. Bytes are decoded as latin-1 so that a
character offset in the decoded window is also a byte offset in the file.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Tuple, Union

from .config import get_settings
from .errors import HeaderNotFound
from .lexer import Token, TokenKind, iter_tokens

_LOGGER = logging.getLogger(__name__)

_FOAMFILE_RE = re.compile(r"\bFoamFile\b")
_FORMAT_RE = re.compile(r"\bformat\s+(\w+)\s*;")
_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_WHITESPACE = b" \t\r\n"


def _window(
    data: Union[bytes, bytearray, memoryview, str], size: Optional[int] = None
) -> str:
    """Return the leading header window of `data` as text."""
    size = get_settings().header_scan_bytes if size is None else size
    if isinstance(data, str):
        return data[:size]
    return bytes(data[:size]).decode("latin-1")


def _locate_header(text: str) -> Tuple[int, int, int, list[Token]]:
    """Find the header block in `text`.

    Returns:
        Tuple[int, int, int, list[Token]]: Offset of the ``FoamFile``
        marker, offset of the opening brace, offset of the matching closing
        brace, and the tokens strictly between them.

    Raises:
        HeaderNotFound: If the marker, the opening brace or the matching
            closing brace is missing.
    """
    marker = _FOAMFILE_RE.search(text)
    if marker is None:
        raise HeaderNotFound("No FoamFile header found")

    open_pos = -1
    depth = 0
    inner: list[Token] = []
    for tok in iter_tokens(text[marker.end():]):
        if open_pos < 0:
            if tok.kind is TokenKind.LBRACE:
                open_pos = marker.end() + tok.pos
                depth = 1
            continue
        if tok.kind is TokenKind.LBRACE:
            depth += 1
        elif tok.kind is TokenKind.RBRACE:
            depth -= 1
            if depth == 0:
                return marker.start(), open_pos, marker.end() + tok.pos, inner
        inner.append(tok)

    if open_pos < 0:
        raise HeaderNotFound("FoamFile marker without opening brace")
    raise HeaderNotFound("FoamFile header is not closed within the scan window")


def parse_header(data: Union[bytes, bytearray, memoryview, str]) -> Dict[str, str]:
    """Parse the ``FoamFile`` dictionary at the start of a file.

    Only top-level ``key value;`` entries are returned. Nested
    sub-dictionaries are skipped, double quotes are stripped and multi-token
    values are joined with single spaces.

    Args:
        data: Raw file bytes (or already-decoded text).

    Returns:
        Dict[str, str]: Header entries, e.g. ``{"format": "ascii", ...}``.

    Raises:
        HeaderNotFound: If no complete header exists in the scan window.
    """
    _, _, _, inner = _locate_header(_window(data))

    header: Dict[str, str] = {}
    key: Optional[str] = None
    value: list[str] = []
    depth = 0
    for tok in inner:
        if tok.kind is TokenKind.LBRACE:
            depth += 1
            key, value = None, []
            continue
        if tok.kind is TokenKind.RBRACE:
            depth -= 1
            continue
        if depth > 0:
            continue
        if tok.kind is TokenKind.SEMI:
            if key is not None:
                header[key] = " ".join(value).strip()
            key, value = None, []
        elif key is None:
            key = tok.text
        else:
            value.append(tok.text)

    _LOGGER.debug("parse_header: %s", header)
    return header


def is_binary(data: Union[bytes, bytearray, memoryview, str]) -> bool:
    """Return True if the header window declares ``format binary;``.

    A missing ``format`` entry resolves to False.
    """
    match = _FORMAT_RE.search(_window(data))
    if match is None:
        _LOGGER.debug("is_binary: no format entry in header window")
        return False
    return match.group(1) == "binary"


def find_data_start(data: Union[bytes, bytearray, memoryview]) -> int:
    """Return the byte offset of the payload that follows the header.

    The offset points at the first non-whitespace byte after the header's
    closing brace. Files without a header start their payload at 0.
    """
    try:
        _, _, close_pos, _ = _locate_header(_window(data))
    except HeaderNotFound:
        _LOGGER.debug("find_data_start: no header, payload starts at 0")
        return 0

    pos = close_pos + 1
    n = len(data)
    while pos < n and data[pos] in _WHITESPACE:
        pos += 1
    return pos


def strip_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments from `text`."""
    text = _BLOCK_COMMENT_RE.sub("", text)
    return _LINE_COMMENT_RE.sub("", text)


def strip_comments_and_header(text: str) -> str:
    """Remove comments and the ``FoamFile`` block from `text`."""
    text = strip_comments(text)
    try:
        start, _, close_pos, _ = _locate_header(text)
    except HeaderNotFound:
        return text.strip()
    return (text[:start] + text[close_pos + 1:]).strip()
