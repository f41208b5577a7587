"""Assembly of a `PolyMesh` from the ``constant/polyMesh`` directory.

Each of ``points``, ``faces``, ``owner`` and ``neighbour`` is sniffed for
its encoding and decoded with the matching decoder; ``boundary`` is always
ASCII. The first artifact that cannot be read or decoded aborts the load
with `MeshReadError` naming it.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List

import numpy as np
from numpy.typing import NDArray

from utils.file_utils import read_file_bytes

from . import ascii_decoder, binary_decoder
from .errors import FoamError, MeshReadError
from .header import is_binary
from .models import Boundary, Face, PolyMesh

_LOGGER = logging.getLogger(__name__)

ReadBytes = Callable[[str], bytes]

POLYMESH_DIR = os.path.join("constant", "polyMesh")


def _text(data: bytes) -> str:
    return data.decode("latin-1")


def _decode_points(data: bytes) -> NDArray[Any]:
    if is_binary(data):
        return binary_decoder.parse_vector_list(data)
    points = ascii_decoder.parse_list(_text(data))
    if points.ndim != 2:
        raise FoamError("points file does not hold a vector list")
    return points


def _decode_faces(data: bytes) -> List[Face]:
    if is_binary(data):
        return binary_decoder.parse_faces(data)
    return ascii_decoder.parse_faces(_text(data))


def _decode_labels(data: bytes) -> NDArray[Any]:
    if is_binary(data):
        return binary_decoder.parse_int_list(data)
    labels = ascii_decoder.parse_list(_text(data))
    if labels.ndim != 1:
        raise FoamError("label file holds a vector list")
    return labels.astype(np.int64)


def _decode_boundary(data: bytes) -> Dict[str, Boundary]:
    return ascii_decoder.parse_boundary(_text(data))


_ARTIFACTS = (
    ("points", _decode_points),
    ("faces", _decode_faces),
    ("owner", _decode_labels),
    ("neighbour", _decode_labels),
    ("boundary", _decode_boundary),
)


def read_mesh(case_path: str, read_bytes: ReadBytes = read_file_bytes) -> PolyMesh:
    """Read and assemble the mesh of the case at `case_path`.

    Args:
        case_path: Case root directory.
        read_bytes: File transport returning the decompressed bytes of a
            path (plain or ``.gz``); raises FileNotFoundError when absent.

    Returns:
        PolyMesh: The immutable mesh.

    Raises:
        MeshReadError: If any artifact is missing or cannot be decoded. The
            underlying error is chained as ``__cause__``.
    """
    mesh_dir = os.path.join(case_path, POLYMESH_DIR)
    decoded: Dict[str, Any] = {}

    for artifact, decode in _ARTIFACTS:
        path = os.path.join(mesh_dir, artifact)
        try:
            decoded[artifact] = decode(read_bytes(path))
        except (OSError, FoamError, ValueError) as exc:
            _LOGGER.error("read_mesh: failed to read %s: %s", path, exc)
            raise MeshReadError(artifact, str(exc)) from exc
        _LOGGER.debug("read_mesh: decoded %s", artifact)

    mesh = PolyMesh.build(
        points=decoded["points"],
        faces=decoded["faces"],
        owner=decoded["owner"],
        neighbour=decoded["neighbour"],
        boundaries=decoded["boundary"],
    )
    _LOGGER.info(
        "Mesh loaded: %d points, %d faces, %d cells, %d boundaries",
        mesh.n_points,
        mesh.n_faces,
        mesh.n_cells,
        len(mesh.boundaries),
    )
    return mesh
