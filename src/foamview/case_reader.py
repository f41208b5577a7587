"""Case discovery and field loading.

This module provides:
  - read_case: load the mesh and list the time directories of a case.
  - find_time_directories / get_available_fields: browse a case tree.
  - get_file_formats: report the encoding of the main case files.
  - read_field: decode one field file, raising typed errors.
  - load_field_data: like `read_field`, but a failure yields None so a
    browsing session survives a missing or unsupported field.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np
from numpy.typing import NDArray

from utils.file_utils import file_exists, list_files, read_file_bytes

from . import ascii_decoder, binary_decoder
from .errors import EmptyField, FieldFileNotFound, FoamError, UnsupportedFieldClass
from .header import is_binary, parse_header
from .interpolation import InterpolationCache, cell_to_point
from .mesh_reader import POLYMESH_DIR, ReadBytes, read_mesh
from .models import FieldData, OpenFOAMCase, PolyMesh

_LOGGER = logging.getLogger(__name__)

_SUPPORTED_CLASSES = ("ScalarField", "VectorField")


def _is_number(name: str) -> bool:
    try:
        float(name)
    except ValueError:
        return False
    return True


def find_time_directories(case_path: str) -> List[str]:
    """Return the numerically named subdirectories of `case_path`.

    Returns:
        List[str]: Directory names sorted by their numeric value.
    """
    try:
        entries = os.listdir(case_path)
    except FileNotFoundError:
        _LOGGER.warning("find_time_directories: %s does not exist", case_path)
        return []
    times = [
        name
        for name in entries
        if _is_number(name) and os.path.isdir(os.path.join(case_path, name))
    ]
    return sorted(times, key=float)


def get_available_fields(
    case_path: str, time_dir: str, read_bytes: ReadBytes = read_file_bytes
) -> List[str]:
    """List the field files of a time directory.

    ``.gz`` suffixes are folded into the plain name, dotfiles are skipped
    and only files carrying a ``FoamFile`` header are reported.

    Returns:
        List[str]: Sorted field names.
    """
    directory = os.path.join(case_path, time_dir)
    names = set()
    for name in list_files(directory):
        if name.startswith(".") or name == "uniform":
            continue
        names.add(name[:-3] if name.endswith(".gz") else name)

    fields: List[str] = []
    for name in sorted(names):
        try:
            data = read_bytes(os.path.join(directory, name))
        except (OSError, EOFError) as exc:
            _LOGGER.info("get_available_fields: skipping %s: %s", name, exc)
            continue
        if b"FoamFile" in data[:4096]:
            fields.append(name)
    return fields


def _format_of(path: str, read_bytes: ReadBytes) -> Optional[str]:
    if not file_exists(path):
        return None
    try:
        return parse_header(read_bytes(path)).get("format", "unknown")
    except (OSError, EOFError, FoamError) as exc:
        _LOGGER.warning("get_file_formats: cannot read header of %s: %s", path, exc)
        return "error"


def get_file_formats(
    case_path: str, read_bytes: ReadBytes = read_file_bytes
) -> Dict[str, str]:
    """Report the declared format of ``system/controlDict`` and the mesh.

    Returns:
        Dict[str, str]: Keys ``controlDict`` and ``mesh`` (present only when
        the file exists), valued ``ascii``/``binary``, ``unknown`` when the
        header has no format entry, or ``error`` when it cannot be read.
    """
    formats: Dict[str, str] = {}
    probes = {
        "controlDict": os.path.join(case_path, "system", "controlDict"),
        "mesh": os.path.join(case_path, POLYMESH_DIR, "points"),
    }
    for key, path in probes.items():
        fmt = _format_of(path, read_bytes)
        if fmt is not None:
            formats[key] = fmt
    return formats


def case_root(path: str) -> str:
    """Return the case directory for a ``.foam`` file or a directory path."""
    if os.path.isdir(path):
        return os.path.abspath(path)
    return os.path.dirname(os.path.abspath(path))


def read_case(path: str, read_bytes: ReadBytes = read_file_bytes) -> OpenFOAMCase:
    """Load a case from its ``.foam`` marker file or its root directory.

    The mesh is read eagerly; fields are loaded on demand.

    Raises:
        MeshReadError: If a mesh artifact cannot be read.
    """
    root = case_root(path)
    _LOGGER.info("Reading OpenFOAM case from %s", root)
    for key, fmt in get_file_formats(root, read_bytes).items():
        _LOGGER.info("  %s format: %s", key, fmt)

    mesh = read_mesh(root, read_bytes=read_bytes)
    times = find_time_directories(root)
    _LOGGER.info("Time directories found: %s", times)
    return OpenFOAMCase(case_path=root, mesh=mesh, time_directories=times)


def _decode_values(data: bytes) -> NDArray[Any]:
    # Binary files still store uniform values as text.
    if is_binary(data):
        marker = data.find(b"internalField")
        tail = data[marker: marker + 64] if marker >= 0 else b""
        if b"nonuniform" in tail:
            return binary_decoder.parse_internal_field(data)
    return ascii_decoder.parse_internal_field(data.decode("latin-1"))


def read_field(
    case_path: str,
    time_dir: str,
    field_name: str,
    mesh: PolyMesh,
    read_bytes: ReadBytes = read_file_bytes,
    cache: Optional[InterpolationCache] = None,
) -> FieldData:
    """Decode ``<case>/<time_dir>/<field_name>`` and interpolate it to points.

    A single uniform value is broadcast to ``mesh.n_cells``. Vector fields
    are stored as magnitudes.

    Args:
        case_path: Case root directory.
        time_dir: Time directory name, e.g. ``"0.5"``.
        field_name: Field file name, e.g. ``"p"``.
        mesh: Mesh of the case.
        read_bytes: File transport.
        cache: Optional interpolation cache consulted before interpolating.

    Returns:
        FieldData: Cell values with `point_values` filled.

    Raises:
        FieldFileNotFound: If neither the plain nor the ``.gz`` file exists.
        UnsupportedFieldClass: If the header class is not a scalar or vector
            field.
        EmptyField: If the field decodes to no values.
        HeaderNotFound, MalformedList: If the file cannot be decoded.
    """
    path = os.path.join(case_path, time_dir, field_name)
    try:
        data = read_bytes(path)
    except FileNotFoundError as exc:
        raise FieldFileNotFound(f"Field file not found: {path} (or .gz)") from exc

    field_class = parse_header(data).get("class", "")
    if not any(c in field_class for c in _SUPPORTED_CLASSES):
        raise UnsupportedFieldClass(field_name, field_class)

    values = _decode_values(data)
    if values.size == 0:
        raise EmptyField(f"No values found in field {field_name!r}")

    if values.size == 1 and mesh.n_cells > 1:
        values = np.full(mesh.n_cells, values[0], dtype=np.float64)
    elif values.size != mesh.n_cells:
        _LOGGER.warning(
            "read_field: %s has %d values but the mesh has %d cells",
            field_name,
            values.size,
            mesh.n_cells,
        )
    _LOGGER.info("Loaded %s: %d cell values", field_name, values.size)

    if cache is not None:
        point_values = cache.point_values(mesh, field_name, time_dir, values)
    else:
        point_values = cell_to_point(values, mesh)
    _LOGGER.info("Interpolated %s to %d point values", field_name, point_values.size)

    return FieldData(
        name=field_name,
        field_class=field_class,
        internal_field=values,
        point_values=point_values,
        time=time_dir,
    )


def load_field_data(
    case_path: str,
    time_dir: str,
    field_name: str,
    mesh: PolyMesh,
    read_bytes: ReadBytes = read_file_bytes,
    cache: Optional[InterpolationCache] = None,
) -> Optional[FieldData]:
    """Load a field for display, returning None when it is unavailable.

    Any `FoamError` raised by `read_field` is logged and swallowed.
    """
    try:
        return read_field(
            case_path, time_dir, field_name, mesh, read_bytes=read_bytes, cache=cache
        )
    except FoamError as exc:
        _LOGGER.warning(
            "Field %s at time %s unavailable: %s", field_name, time_dir, exc
        )
        return None
