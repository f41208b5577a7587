"""Cell-to-point interpolation of cell-centered field values.

Every face spreads the value of its owner cell (and, for internal faces, of
its neighbour cell) onto each of its points; a point's value is the mean of
all contributions it received. The scatter is expressed as a sparse
point-by-cell incidence matrix, so the result does not depend on face order.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Hashable, Optional, Tuple

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from .models import PolyMesh

_LOGGER = logging.getLogger(__name__)


def incidence_matrix(mesh: PolyMesh, n_cells: int) -> sp.csr_matrix:
    """Build the (n_points, n_cells) matrix counting point/cell contributions.

    Entry ``[p, c]`` is the number of times cell ``c`` contributes to point
    ``p``: once per face of ``c`` (as owner, or as neighbour of an internal
    face) that references ``p``. Faces without an owner entry, and cell or
    point indices out of range, contribute nothing.

    Args:
        mesh: The mesh.
        n_cells: Number of cell values available.

    Returns:
        scipy.sparse.csr_matrix: Float64 incidence counts.
    """
    n_points = mesh.n_points
    sizes = np.diff(mesh.face_offsets)
    face_ids = np.repeat(np.arange(mesh.n_faces, dtype=np.int64), sizes)
    point_ids = mesh.face_points

    n_owned = min(mesh.n_faces, mesh.owner.size)
    n_shared = min(n_owned, mesh.neighbour.size)

    rows = []
    cols = []
    for labels, n_valid in ((mesh.owner, n_owned), (mesh.neighbour, n_shared)):
        sel = face_ids < n_valid
        pts = point_ids[sel]
        cells = labels[face_ids[sel]]
        ok = (pts >= 0) & (pts < n_points) & (cells >= 0) & (cells < n_cells)
        rows.append(pts[ok])
        cols.append(cells[ok])

    row = np.concatenate(rows)
    col = np.concatenate(cols)
    data = np.ones(row.shape[0], dtype=np.float64)
    return sp.coo_matrix((data, (row, col)), shape=(n_points, n_cells)).tocsr()


def cell_to_point(cell_values: Any, mesh: PolyMesh) -> NDArray[Any]:
    """Average cell values onto the mesh points.

    Args:
        cell_values: Per-cell values (length is normally ``mesh.n_cells``).
        mesh: The mesh.

    Returns:
        NDArray[Any]: float64 array of length ``mesh.n_points``. Points that
        receive no contribution are 0.
    """
    values = np.asarray(cell_values, dtype=np.float64).ravel()
    if mesh.n_points == 0:
        return np.zeros(0, dtype=np.float64)

    A = incidence_matrix(mesh, values.shape[0])
    sums = A @ values
    counts = np.asarray(A.sum(axis=1)).ravel()

    point_values = np.zeros(mesh.n_points, dtype=np.float64)
    hit = counts > 0
    point_values[hit] = sums[hit] / counts[hit]

    _LOGGER.debug(
        "cell_to_point: %d cell values -> %d points (%d without contribution)",
        values.shape[0],
        mesh.n_points,
        int(np.count_nonzero(~hit)),
    )
    return point_values


def get_min_max(values: Any) -> Tuple[float, float]:
    """Return ``(min, max)`` of the finite `values`, or ``(0.0, 1.0)`` if none."""
    arr = np.asarray(values, dtype=np.float64).ravel()
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return 0.0, 1.0
    return float(arr.min()), float(arr.max())


class InterpolationCache:
    """Single-entry memo of the last interpolated point values.

    Keyed by value: ``(mesh_id, field name, time, mode, digest)`` where the
    digest fingerprints the cell values. A mesh reload produces a new
    ``mesh_id`` and rewritten field data a new digest, so an old entry can
    never be returned for new inputs. Dropping the cache only costs a
    recomputation.
    """

    def __init__(self) -> None:
        self._key: Optional[Tuple[Hashable, ...]] = None
        self._values: Optional[NDArray[Any]] = None
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(
        mesh: PolyMesh,
        name: str,
        time: Optional[str],
        mode: str,
        cell_values: Any = (),
    ) -> Tuple[Hashable, ...]:
        values = np.ascontiguousarray(cell_values, dtype=np.float64)
        digest = hashlib.blake2b(values.tobytes(), digest_size=16).hexdigest()
        return (mesh.mesh_id, name, time, mode, digest)

    def get(self, key: Tuple[Hashable, ...]) -> Optional[NDArray[Any]]:
        if self._key == key and self._values is not None:
            self.hits += 1
            return self._values
        self.misses += 1
        return None

    def put(self, key: Tuple[Hashable, ...], values: NDArray[Any]) -> None:
        frozen = np.array(values, dtype=np.float64)
        frozen.setflags(write=False)
        self._key = key
        self._values = frozen

    def clear(self) -> None:
        self._key = None
        self._values = None

    def point_values(
        self,
        mesh: PolyMesh,
        name: str,
        time: Optional[str],
        cell_values: Any,
        mode: str = "point",
    ) -> NDArray[Any]:
        """Return the cached interpolation for the key, computing it on a miss."""
        key = self.key_for(mesh, name, time, mode, cell_values)
        cached = self.get(key)
        if cached is not None:
            _LOGGER.debug("InterpolationCache hit for %s", key[1:4])
            return cached
        values = cell_to_point(cell_values, mesh)
        self.put(key, values)
        return self._values  # type: ignore[return-value]
