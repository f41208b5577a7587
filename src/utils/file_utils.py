"""Module providing file access helpers for OpenFOAM case trees.

Every leaf file of a case may be stored plain or gzip-compressed with a
``.gz`` suffix. The helpers here resolve which variant exists and return
its decompressed bytes, so the decoders never see compressed data.
"""

import gzip
import logging
import os
from typing import List, Optional

_LOGGER = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


def is_gzipped(data: bytes) -> bool:
    """Return True if `data` starts with the gzip magic bytes."""
    return data[:2] == GZIP_MAGIC


def get_actual_file_path(path: str) -> Optional[str]:
    """Resolve `path` to the file that exists on disk.

    Args:
        path (str): Path without the ``.gz`` suffix (a suffixed path is
            also accepted).

    Returns:
        Optional[str]: `path` if it exists, else ``path + ".gz"`` if that
        exists, else None.
    """
    if os.path.isfile(path):
        return path
    gz_path = path + ".gz"
    if os.path.isfile(gz_path):
        return gz_path
    return None


def file_exists(path: str) -> bool:
    """Return True if `path` or ``path + ".gz"`` exists."""
    return get_actual_file_path(path) is not None


def read_file_bytes(path: str) -> bytes:
    """Read a case file, decompressing it if needed.

    The plain file wins over the ``.gz`` variant. Decompression is decided
    by the ``.gz`` suffix or by the gzip magic bytes.

    Args:
        path (str): Path without the ``.gz`` suffix.

    Returns:
        bytes: The (decompressed) file contents.

    Raises:
        FileNotFoundError: If neither `path` nor ``path + ".gz"`` exists.
    """
    actual = get_actual_file_path(path)
    if actual is None:
        raise FileNotFoundError(f"File not found: {path} (or {path}.gz)")

    with open(actual, "rb") as f:
        data = f.read()

    if actual.endswith(".gz") or is_gzipped(data):
        data = gzip.decompress(data)
        _LOGGER.debug("read_file_bytes: decompressed %s (%d bytes)", actual, len(data))
    else:
        _LOGGER.debug("read_file_bytes: read %s (%d bytes)", actual, len(data))
    return data


def read_file_as_string(path: str) -> str:
    """Read a case file as text (latin-1, one character per byte)."""
    return read_file_bytes(path).decode("latin-1")


def list_files(directory: str) -> List[str]:
    """Return the sorted names of regular files in `directory`.

    A missing directory yields an empty list.
    """
    try:
        names = os.listdir(directory)
    except FileNotFoundError:
        _LOGGER.debug("list_files: %s does not exist", directory)
        return []
    return sorted(n for n in names if os.path.isfile(os.path.join(directory, n)))
