"""Decoders for binary OpenFOAM lists.

In binary files the header and the element count are ASCII, the payload is
raw little-endian data enclosed in parentheses::

    FoamFile { ... format binary; ... }
    // comment
    COUNT
    (<payload>)

Layouts:
  - vector list: COUNT x 3 float64 (24 bytes per record).
  - int list: COUNT x int32.
  - face list: COUNT records of an int32 point count N followed by N int32
    point indices.

The payload is read with `numpy.frombuffer` over a memoryview slice, so no
text copy of the file is ever made. Decoding stops silently once the
remaining bytes cannot hold a full record.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .config import get_settings
from .errors import MalformedList
from .header import find_data_start, strip_comments
from .models import Face

_LOGGER = logging.getLogger(__name__)

Buffer = Union[bytes, bytearray, memoryview]

_INT_RE = re.compile(r"\d+")
_WHITESPACE = b" \t\r\n"
_FIELD_MARKER = b"internalField"
_LIST_TYPE_RE = re.compile(r"List<(\w+)>")

_F8 = np.dtype("<f8")
_I4 = np.dtype("<i4")


def _locate_payload(data: Buffer, start: int) -> Tuple[int, int]:
    """Find the element count and the payload offset of a binary list.

    Scans at most `count_lookahead_bytes` from `start` for the ``(`` byte; the
    text before it (comments removed) ends with the count.

    Returns:
        Tuple[int, int]: The count and the offset of the first payload byte.

    Raises:
        MalformedList: If no ``(`` or no count is found within the lookahead.
    """
    lookahead = get_settings().count_lookahead_bytes
    window = bytes(memoryview(data)[start: start + lookahead])
    paren = window.find(b"(")
    if paren < 0:
        raise MalformedList(
            f"No '(' within {lookahead} bytes after offset {start}"
        )

    text = strip_comments(window[:paren].decode("latin-1"))
    numbers = _INT_RE.findall(text)
    if not numbers:
        raise MalformedList("Could not find count in binary file header")
    count = int(numbers[-1])

    pos = start + paren + 1
    n = len(data)
    while pos < n and data[pos] in _WHITESPACE:
        pos += 1
    return count, pos


def _records(
    data: Buffer, offset: int, count: int, dtype: np.dtype, width: int
) -> NDArray[Any]:
    """Read up to `count` complete records of `width` items of `dtype`."""
    view = memoryview(data)[offset:]
    record_bytes = dtype.itemsize * width
    available = len(view) // record_bytes
    n = min(count, available)
    if n < count:
        _LOGGER.debug(
            "binary payload holds %d of %d declared record(s); rest dropped",
            n,
            count,
        )
    arr = np.frombuffer(view[: n * record_bytes], dtype=dtype)
    return arr.reshape(n, width) if width > 1 else arr


def parse_vector_list(data: Buffer) -> NDArray[Any]:
    """Decode a binary vector list (e.g. ``points``).

    Args:
        data: Raw file bytes including the header.

    Returns:
        NDArray[Any]: float64 array of shape (N, 3).

    Raises:
        MalformedList: If the count or the opening parenthesis is missing.
    """
    count, offset = _locate_payload(data, find_data_start(data))
    _LOGGER.info("Reading %d binary vectors...", count)
    vectors = _records(data, offset, count, _F8, 3).astype(np.float64)
    _LOGGER.info("Parsed %d binary vectors", vectors.shape[0])
    return vectors


def parse_int_list(data: Buffer) -> NDArray[Any]:
    """Decode a binary label list (e.g. ``owner`` or ``neighbour``).

    Returns:
        NDArray[Any]: int64 array of shape (N,).

    Raises:
        MalformedList: If the count or the opening parenthesis is missing.
    """
    count, offset = _locate_payload(data, find_data_start(data))
    _LOGGER.info("Reading %d binary integers...", count)
    ints = _records(data, offset, count, _I4, 1).astype(np.int64)
    _LOGGER.info("Parsed %d binary integers", ints.shape[0])
    return ints


def parse_faces(data: Buffer) -> List[Face]:
    """Decode a binary face list.

    Each record is an int32 point count followed by that many int32 point
    indices. A record that does not fit in the remaining bytes, or declares a
    negative point count, ends the decode.

    Returns:
        List[Face]: Point-index tuples in file order.

    Raises:
        MalformedList: If the count or the opening parenthesis is missing.
    """
    count, offset = _locate_payload(data, find_data_start(data))
    _LOGGER.info("Reading %d binary faces...", count)

    view = memoryview(data)[offset:]
    words = np.frombuffer(view[: (len(view) // 4) * 4], dtype=_I4)
    total = words.shape[0]

    faces: List[Face] = []
    pos = 0
    while len(faces) < count and pos < total:
        n_points = int(words[pos])
        if n_points < 0 or pos + 1 + n_points > total:
            _LOGGER.debug(
                "parse_faces: incomplete record at face %d; stopping", len(faces)
            )
            break
        faces.append(tuple(words[pos + 1: pos + 1 + n_points].tolist()))
        pos += 1 + n_points

    _LOGGER.info("Parsed %d binary faces", len(faces))
    return faces


def parse_internal_field(data: Buffer) -> NDArray[Any]:
    """Decode a ``nonuniform`` internalField stored in binary.

    The text ``internalField nonuniform List<scalar|vector> N (`` precedes
    raw float64 values (3 per cell for vectors). Vector values are reduced
    to their magnitude.

    Args:
        data: Raw field file bytes.

    Returns:
        NDArray[Any]: float64 array of per-cell values.

    Raises:
        MalformedList: If the marker, the list type, the count or the
            opening parenthesis is missing.
    """
    marker = bytes(data).find(_FIELD_MARKER)
    if marker < 0:
        raise MalformedList("Could not find internalField")

    start = marker + len(_FIELD_MARKER)
    count, offset = _locate_payload(data, start)
    prefix = bytes(memoryview(data)[start:offset]).decode("latin-1")
    match = _LIST_TYPE_RE.search(prefix)
    if match is None:
        raise MalformedList("Binary internalField without List<type>")

    list_type = match.group(1)
    if list_type == "scalar":
        values = _records(data, offset, count, _F8, 1).astype(np.float64)
    elif list_type == "vector":
        values = np.linalg.norm(_records(data, offset, count, _F8, 3), axis=1)
    else:
        raise MalformedList(
            f"Unsupported internalField list type List<{list_type}>"
        )

    _LOGGER.info("Parsed %d binary %s field values", values.shape[0], list_type)
    return values
