"""Data model of a decoded OpenFOAM case.

This module defines the immutable containers produced by the decoders:

  - Boundary: a named patch covering a contiguous range of boundary faces.
  - PolyMesh: points, faces and the owner/neighbour adjacency arrays.
  - FieldData: cell-centered values of one field at one time, with optional
    values interpolated onto the mesh points.
  - OpenFOAMCase: a loaded mesh plus the discovered time directories.

Cells are never stored; they are inferred from the owner/neighbour arrays.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from functools import cached_property
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

_LOGGER = logging.getLogger(__name__)

Face = Tuple[int, ...]


def _frozen_array(
    values: Any, dtype: Any, shape: Optional[Tuple[int, ...]] = None
) -> NDArray[Any]:
    """Return a read-only contiguous copy of `values` with the given dtype."""
    arr = np.array(values, dtype=dtype)
    if shape is not None:
        arr = arr.reshape(shape)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Boundary:
    """A boundary patch.

    Attributes:
        name (str): Patch name.
        type (str): Patch type (``wall``, ``patch``, ``empty``, ...).
        n_faces (int): Number of faces in the patch.
        start_face (int): Index of the first face of the patch.
    """

    name: str
    type: str
    n_faces: int
    start_face: int

    @property
    def end_face(self) -> int:
        """One past the index of the last face of the patch."""
        return self.start_face + self.n_faces

    def contains(self, face_idx: int) -> bool:
        """Return True if `face_idx` lies in ``[start_face, end_face)``."""
        return self.start_face <= face_idx < self.end_face


@dataclass(frozen=True, eq=False)
class PolyMesh:
    """Unstructured polyhedral mesh.

    Internal faces occupy ``[0, len(neighbour))``; boundary faces occupy
    ``[len(neighbour), len(faces))``. Built once per case load and never
    mutated; arrays are flagged read-only.

    Attributes:
        points (NDArray[Any]): Point coordinates, shape (n_points, 3).
        faces (Tuple[Face, ...]): Point indices of every face.
        owner (NDArray[Any]): Owner cell of every face.
        neighbour (NDArray[Any]): Neighbour cell of every internal face.
        boundaries (Mapping[str, Boundary]): Read-only patches keyed by name,
            file order.
        mesh_id (str): Random token identifying this mesh instance by value.
    """

    points: NDArray[Any]
    faces: Tuple[Face, ...]
    owner: NDArray[Any]
    neighbour: NDArray[Any]
    boundaries: Mapping[str, Boundary] = field(
        default_factory=lambda: MappingProxyType({})
    )
    mesh_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def build(
        cls,
        points: Any,
        faces: Sequence[Sequence[int]],
        owner: Any,
        neighbour: Any,
        boundaries: Optional[Mapping[str, Boundary]] = None,
    ) -> PolyMesh:
        """Normalize raw decoder output into an immutable mesh.

        Args:
            points: Array-like of (x, y, z) coordinates.
            faces: Sequence of point-index sequences.
            owner: Owner cell per face.
            neighbour: Neighbour cell per internal face.
            boundaries: Optional mapping of patch name to `Boundary`.

        Returns:
            PolyMesh: The assembled mesh. Topology inconsistencies are logged,
            not repaired.
        """
        pts = np.asarray(points, dtype=np.float64)
        if pts.size == 0:
            pts = np.zeros((0, 3), dtype=np.float64)
        mesh = cls(
            points=_frozen_array(pts, np.float64, (-1, 3)),
            faces=tuple(tuple(int(i) for i in f) for f in faces),
            owner=_frozen_array(np.asarray(owner).ravel(), np.int64),
            neighbour=_frozen_array(np.asarray(neighbour).ravel(), np.int64),
            boundaries=MappingProxyType(dict(boundaries or {})),
        )
        for problem in mesh.check_topology():
            _LOGGER.warning("PolyMesh: %s", problem)
        return mesh

    # ---- Sizes -----------------------------------------------------------------
    @property
    def n_points(self) -> int:
        return int(self.points.shape[0])

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def n_internal_faces(self) -> int:
        return int(self.neighbour.shape[0])

    @cached_property
    def n_cells(self) -> int:
        """Cell count inferred as ``max(owner) + 1`` (0 for an empty mesh)."""
        if self.owner.size == 0:
            return 0
        return int(self.owner.max()) + 1

    # ---- Flat face storage -----------------------------------------------------
    @cached_property
    def face_offsets(self) -> NDArray[Any]:
        """CSR offsets into `face_points`, shape (n_faces + 1,)."""
        sizes = np.fromiter(
            (len(f) for f in self.faces), dtype=np.int64, count=self.n_faces
        )
        offsets = np.zeros(self.n_faces + 1, dtype=np.int64)
        np.cumsum(sizes, out=offsets[1:])
        offsets.setflags(write=False)
        return offsets

    @cached_property
    def face_points(self) -> NDArray[Any]:
        """Concatenated point indices of all faces."""
        flat = np.fromiter(
            (i for f in self.faces for i in f),
            dtype=np.int64,
            count=int(self.face_offsets[-1]),
        )
        flat.setflags(write=False)
        return flat

    def is_internal(self, face_idx: int) -> bool:
        """Return True if `face_idx` is an internal face."""
        return face_idx < self.n_internal_faces

    def boundary_of(self, face_idx: int) -> Optional[Boundary]:
        """Return the first patch whose face range contains `face_idx`."""
        for boundary in self.boundaries.values():
            if boundary.contains(face_idx):
                return boundary
        return None

    def check_topology(self) -> List[str]:
        """List violated size/range invariants without raising.

        Returns:
            List[str]: Human-readable descriptions, empty when consistent.
        """
        problems: List[str] = []
        if not self.n_faces >= self.owner.size >= self.neighbour.size:
            problems.append(
                f"expected faces >= owner >= neighbour, got {self.n_faces}, "
                f"{self.owner.size}, {self.neighbour.size}"
            )
        lo, hi = self.n_internal_faces, self.n_faces
        for b in self.boundaries.values():
            if b.start_face < lo or b.end_face > hi:
                problems.append(
                    f"boundary {b.name!r} range [{b.start_face}, {b.end_face}) "
                    f"outside boundary faces [{lo}, {hi})"
                )
        return problems


@dataclass(frozen=True, eq=False)
class FieldData:
    """Values of one field at one time.

    Attributes:
        name (str): Field (file) name, e.g. ``p`` or ``U``.
        field_class (str): Header class, e.g. ``volScalarField``.
        internal_field (NDArray[Any]): Per-cell values; vector fields are
            stored as magnitudes.
        boundary_field (Dict[str, Any]): Reserved for patch values; empty.
        point_values (Optional[NDArray[Any]]): Per-point interpolated values.
        time (Optional[str]): Name of the time directory the field came from.
    """

    name: str
    field_class: str
    internal_field: NDArray[Any]
    boundary_field: Dict[str, Any] = field(default_factory=dict)
    point_values: Optional[NDArray[Any]] = None
    time: Optional[str] = None

    def __post_init__(self) -> None:
        internal = _frozen_array(self.internal_field, np.float64).ravel()
        object.__setattr__(self, "internal_field", internal)
        if self.point_values is not None:
            points = _frozen_array(self.point_values, np.float64).ravel()
            object.__setattr__(self, "point_values", points)

    @property
    def is_vector(self) -> bool:
        return "VectorField" in self.field_class

    def with_point_values(self, point_values: Any) -> FieldData:
        """Return a copy of this field carrying `point_values`."""
        return replace(self, point_values=point_values)


@dataclass
class OpenFOAMCase:
    """A loaded case.

    Attributes:
        case_path (str): Case root directory.
        mesh (PolyMesh): The case mesh.
        fields (Dict[str, FieldData]): Fields loaded so far, keyed by name.
        time_directories (List[str]): Time directory names, sorted by value.
    """

    case_path: str
    mesh: PolyMesh
    fields: Dict[str, FieldData] = field(default_factory=dict)
    time_directories: List[str] = field(default_factory=list)
