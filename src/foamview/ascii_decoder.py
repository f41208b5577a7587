"""Decoders for ASCII OpenFOAM lists, faces, boundaries and fields.

This module provides:
  - parse_list: ``COUNT ( ... )`` scalar or vector lists.
  - parse_faces: ``COUNT ( n(i0 i1 ...) ... )`` face lists.
  - parse_boundary: the ``constant/polyMesh/boundary`` patch dictionary.
  - parse_internal_field: the ``internalField`` entry of a field file.

All decoders work on the token stream of `foamview.lexer`, after dropping
the ``FoamFile`` header. They are lenient: a token that is not a finite
number is replaced by zero, and declared counts that disagree with the
parsed data only produce a warning.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import get_settings
from .errors import MalformedList
from .lexer import Token, TokenKind, find_matching, tokenize
from .models import Boundary, Face

_LOGGER = logging.getLogger(__name__)


class _BadTokens:
    """Collects tokens replaced by zero so one warning covers a whole list."""

    def __init__(self, what: str) -> None:
        self.what = what
        self.count = 0
        self.first: Optional[str] = None

    def value(self, tok: Token) -> float:
        num = tok.as_float()
        if num is not None and math.isfinite(num):
            return num
        self.count += 1
        if self.first is None:
            self.first = tok.text
        _LOGGER.debug(
            "%s: could not parse %r as number, using 0", self.what, tok.text
        )
        return 0.0

    def report(self) -> None:
        if self.count:
            _LOGGER.warning(
                "%s: %d unparsable token(s) replaced by 0 (first: %r)",
                self.what,
                self.count,
                self.first,
            )


def _is_value(tok: Token) -> bool:
    return tok.kind in (TokenKind.NUMBER, TokenKind.IDENT)


def body_tokens(text: str) -> List[Token]:
    """Tokenize `text` and drop the ``FoamFile { ... }`` header block."""
    tokens = tokenize(text)
    for i, tok in enumerate(tokens[:-1]):
        if tok.kind is TokenKind.IDENT and tok.text == "FoamFile":
            if tokens[i + 1].kind is TokenKind.LBRACE:
                end = find_matching(tokens, i + 1)
                if end >= 0:
                    return tokens[:i] + tokens[end + 1:]
            break
    return tokens


def _find_list(tokens: List[Token], start: int = 0) -> Tuple[int, int, int]:
    """Locate the first ``COUNT (`` ... ``)`` group at or after `start`.

    Returns:
        Tuple[int, int, int]: Declared count, index of ``(``, index of ``)``.

    Raises:
        MalformedList: If no count/parenthesis pattern exists or the list is
            never closed.
    """
    for i in range(start, len(tokens) - 1):
        if tokens[i].is_int and tokens[i + 1].kind is TokenKind.LPAREN:
            close = find_matching(tokens, i + 1)
            if close < 0:
                raise MalformedList(
                    f"List opened at offset {tokens[i].pos} is not closed"
                )
            return int(tokens[i].text), i + 1, close
    raise MalformedList('Invalid list format - could not find pattern "N ( data )"')


def _decode_body(tokens: List[Token], lo: int, hi: int, what: str) -> NDArray[Any]:
    """Decode the tokens strictly between `lo` and `hi` (the list parentheses).

    A body containing ``(`` is a vector list and decodes to shape (N, 3);
    otherwise it is a scalar list of shape (N,).
    """
    body = tokens[lo + 1: hi]
    bad = _BadTokens(what)

    if any(t.kind is TokenKind.LPAREN for t in body):
        vectors: List[List[float]] = []
        wrong_arity = 0
        i = 0
        while i < len(body):
            if body[i].kind is not TokenKind.LPAREN:
                i += 1
                continue
            end = find_matching(body, i)
            if end < 0:
                end = len(body)
            comps = [bad.value(t) for t in body[i + 1: end] if _is_value(t)]
            if len(comps) != 3:
                wrong_arity += 1
                comps = (comps + [0.0, 0.0, 0.0])[:3]
            vectors.append(comps)
            i = end + 1
        bad.report()
        if wrong_arity:
            _LOGGER.warning(
                "%s: %d vector(s) without 3 components padded/truncated",
                what,
                wrong_arity,
            )
        return np.asarray(vectors, dtype=np.float64).reshape(-1, 3)

    values = [bad.value(t) for t in body if _is_value(t)]
    bad.report()
    return np.asarray(values, dtype=np.float64)


def _check_count(what: str, declared: int, parsed: int) -> None:
    if declared != parsed:
        _LOGGER.warning(
            "%s: declared %d entries but parsed %d", what, declared, parsed
        )


def parse_list(text: str) -> NDArray[Any]:
    """Decode the first ``COUNT ( ... )`` list in an ASCII file.

    Args:
        text: Full file text (header and comments allowed).

    Returns:
        NDArray[Any]: Shape (N, 3) float64 for vector lists. For scalar lists
        shape (N,), int64 when every value is integral, float64 otherwise.

    Raises:
        MalformedList: If the ``COUNT (`` pattern is absent.
    """
    tokens = body_tokens(text)
    count, lo, hi = _find_list(tokens)
    values = _decode_body(tokens, lo, hi, "parse_list")
    _check_count("parse_list", count, values.shape[0])

    integral = np.all(np.isfinite(values)) and np.all(values == np.floor(values))
    if values.ndim == 1 and integral:
        values = values.astype(np.int64)
    _LOGGER.info(
        "parse_list: parsed %d %s",
        values.shape[0],
        "vectors" if values.ndim == 2 else "scalars",
    )
    return values


def parse_faces(text: str) -> List[Face]:
    """Decode an ASCII face list of ``n(i0 ... i{n-1})`` groups.

    A group whose declared ``n`` differs from the number of indices it holds
    keeps the parsed indices.

    Args:
        text: Full ``faces`` file text.

    Returns:
        List[Face]: Point-index tuples in file order.

    Raises:
        MalformedList: If the outer ``COUNT (`` pattern is absent.
    """
    tokens = body_tokens(text)
    count, lo, hi = _find_list(tokens)
    bad = _BadTokens("parse_faces")
    warn = get_settings().warn_on_face_mismatch

    faces: List[Face] = []
    mismatched = 0
    i = lo + 1
    while i < hi:
        tok = tokens[i]
        if tok.is_int and tokens[i + 1].kind is TokenKind.LPAREN:
            end = find_matching(tokens, i + 1)
            if end < 0 or end > hi:
                end = hi
            indices = tuple(
                int(bad.value(t)) for t in tokens[i + 2: end] if _is_value(t)
            )
            declared = int(tok.text)
            if declared != len(indices):
                mismatched += 1
                _LOGGER.debug(
                    "parse_faces: face %d declared %d points but has %d",
                    len(faces),
                    declared,
                    len(indices),
                )
            faces.append(indices)
            i = end + 1
        else:
            i += 1

    bad.report()
    if mismatched and warn:
        _LOGGER.warning(
            "parse_faces: %d face(s) with declared/actual point count mismatch",
            mismatched,
        )
    _check_count("parse_faces", count, len(faces))
    _LOGGER.info("parse_faces: parsed %d faces", len(faces))
    return faces


def _parse_entries(tokens: List[Token], lo: int, hi: int) -> Dict[str, str]:
    """Collect ``key value;`` entries between braces at `lo` and `hi`."""
    entries: Dict[str, str] = {}
    key: Optional[str] = None
    value: List[str] = []
    i = lo + 1
    while i < hi:
        tok = tokens[i]
        if tok.kind is TokenKind.LBRACE:
            # Nested sub-dictionary: skip it and drop the pending entry.
            end = find_matching(tokens, i)
            i = hi if end < 0 else end + 1
            key, value = None, []
            continue
        if tok.kind is TokenKind.SEMI:
            if key is not None:
                entries[key] = " ".join(value)
            key, value = None, []
        elif key is None:
            key = tok.text
        else:
            value.append(tok.text)
        i += 1
    return entries


def _as_int(text: Optional[str]) -> int:
    if text is None:
        return 0
    try:
        return int(text)
    except ValueError:
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return 0


def parse_boundary(text: str) -> Dict[str, Boundary]:
    """Decode the ``boundary`` file into patches.

    A block named ``inGroups`` is ignored. Any other block becomes a
    `Boundary` only if it declares a ``type`` and ``nFaces > 0``;
    ``startFace`` defaults to 0.

    Args:
        text: Full ``boundary`` file text.

    Returns:
        Dict[str, Boundary]: Patches keyed by name, in file order.

    Raises:
        MalformedList: If the outer ``(`` is missing.
    """
    tokens = body_tokens(text)
    start = next(
        (i for i, t in enumerate(tokens) if t.kind is TokenKind.LPAREN), -1
    )
    if start < 0:
        raise MalformedList("Invalid boundary format - no opening parenthesis")
    if start > 0 and tokens[start - 1].is_int:
        _LOGGER.info("parse_boundary: %s boundaries declared", tokens[start - 1].text)
    end = find_matching(tokens, start)
    if end < 0:
        end = len(tokens)

    boundaries: Dict[str, Boundary] = {}
    i = start + 1
    while i < end:
        tok = tokens[i]
        is_name = tok.kind in (TokenKind.IDENT, TokenKind.STRING)
        if is_name and i + 1 < end and tokens[i + 1].kind is TokenKind.LBRACE:
            close = find_matching(tokens, i + 1)
            if close < 0 or close > end:
                close = end
            name = tok.text
            if name != "inGroups":
                entries = _parse_entries(tokens, i + 1, close)
                b_type = entries.get("type", "")
                n_faces = _as_int(entries.get("nFaces"))
                start_face = _as_int(entries.get("startFace"))
                if b_type and n_faces > 0:
                    boundaries[name] = Boundary(
                        name=name, type=b_type, n_faces=n_faces, start_face=start_face
                    )
                    _LOGGER.debug(
                        "parse_boundary: %s (type=%s, nFaces=%d, start=%d)",
                        name,
                        b_type,
                        n_faces,
                        start_face,
                    )
                else:
                    _LOGGER.debug(
                        "parse_boundary: skipping %s (type=%r, nFaces=%d)",
                        name,
                        b_type,
                        n_faces,
                    )
            i = close + 1
        else:
            i += 1

    _LOGGER.info("parse_boundary: %d boundaries parsed", len(boundaries))
    return boundaries


def _magnitudes(values: NDArray[Any]) -> NDArray[Any]:
    if values.ndim == 2:
        return np.linalg.norm(values, axis=1)
    return values


def parse_internal_field(text: str) -> NDArray[Any]:
    """Decode the ``internalField`` entry of an ASCII field file.

    Supported shapes:
      - ``uniform <scalar>;`` and ``uniform (x y z);`` return a single value
        (the vector magnitude) that the caller broadcasts to the cell count.
      - ``nonuniform List<scalar|vector> N ( ... );`` returns N values.
      - ``nonuniform List<scalar|vector> N{value};`` returns value N times.

    Vector fields are reduced to per-cell Euclidean magnitudes.

    Args:
        text: Full field file text.

    Returns:
        NDArray[Any]: float64 values, possibly empty.

    Raises:
        MalformedList: If ``internalField`` is absent or its value has an
            unsupported shape.
    """
    tokens = body_tokens(text)
    idx = next(
        (
            i
            for i, t in enumerate(tokens)
            if t.kind is TokenKind.IDENT and t.text == "internalField"
        ),
        -1,
    )
    if idx < 0 or idx + 1 >= len(tokens):
        raise MalformedList("Could not find internalField")

    kind = tokens[idx + 1]
    bad = _BadTokens("parse_internal_field")

    if kind.text == "uniform":
        if idx + 2 >= len(tokens):
            raise MalformedList("uniform internalField without value")
        val = tokens[idx + 2]
        if val.kind is TokenKind.LPAREN:
            end = find_matching(tokens, idx + 2)
            if end < 0:
                raise MalformedList("uniform vector value is not closed")
            comps = np.asarray(
                [bad.value(t) for t in tokens[idx + 3: end] if _is_value(t)],
                dtype=np.float64,
            )
            bad.report()
            return np.asarray([float(np.linalg.norm(comps))], dtype=np.float64)
        value = bad.value(val)
        bad.report()
        _LOGGER.info("parse_internal_field: uniform value %g", value)
        return np.asarray([value], dtype=np.float64)

    if kind.text != "nonuniform":
        raise MalformedList(f"Unsupported internalField kind {kind.text!r}")

    pos = idx + 2
    if pos < len(tokens) and tokens[pos].kind is TokenKind.IDENT:
        list_type = tokens[pos].text
        if list_type not in ("List<scalar>", "List<vector>"):
            raise MalformedList(
                f"Unsupported internalField list type {list_type!r}"
            )
        pos += 1
    if pos + 1 >= len(tokens) or not tokens[pos].is_int:
        raise MalformedList("nonuniform internalField without count")

    count = int(tokens[pos].text)
    if tokens[pos + 1].kind is TokenKind.LBRACE:
        end = find_matching(tokens, pos + 1)
        if end < 0:
            raise MalformedList("compact internalField list is not closed")
        values = _decode_body(tokens, pos + 1, end, "parse_internal_field")
        repeated = _magnitudes(values)[:1]
        if repeated.size == 0:
            raise MalformedList("compact internalField list without value")
        return np.repeat(repeated, count).astype(np.float64)

    _, lo, hi = _find_list(tokens, pos)
    values = _magnitudes(_decode_body(tokens, lo, hi, "parse_internal_field"))
    _check_count("parse_internal_field", count, values.shape[0])
    if values.size:
        _LOGGER.info(
            "parse_internal_field: %d values, min=%g, max=%g",
            values.size,
            float(values.min()),
            float(values.max()),
        )
    return values.astype(np.float64)
