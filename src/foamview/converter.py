"""Conversion of a `PolyMesh` into flat, render-ready GPU buffers.

`convert_to_gpu` emits one vertex per mesh point, fan-triangulates the
visible faces and colors every vertex with the fast colormap. The result,
`MeshGPUData`, can also be handed to meshio or pyvista for export and
offline viewing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import meshio
import numpy as np
import pyvista as pv
from numpy.typing import NDArray

from utils.paraview_writer import VTUWriter

from .colormap import fast_colors
from .config import get_settings
from .interpolation import InterpolationCache, cell_to_point, get_min_max
from .models import FieldData, PolyMesh

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MeshGPUData:
    """Flat buffers consumed by a renderer.

    Attributes:
        vertices (NDArray[Any]): float32, 3 per vertex (x, y, z).
        indices (NDArray[Any]): uint32, 3 per triangle.
        colors (NDArray[Any]): float32 RGBA in ``[0, 1]``, 4 per vertex.
        center (Tuple[float, float, float]): Bounding box midpoint.
        auto_zoom (float): Zoom factor fitting the mesh in view.
        scalars (Optional[NDArray[Any]]): Per-vertex values used for
            coloring (NaN for vertices without a value), None without field.
        scalar_name (Optional[str]): Name of the colored field.
    """

    vertices: NDArray[Any]
    indices: NDArray[Any]
    colors: NDArray[Any]
    center: Tuple[float, float, float]
    auto_zoom: float
    scalars: Optional[NDArray[Any]] = None
    scalar_name: Optional[str] = None

    @property
    def n_vertices(self) -> int:
        return self.vertices.shape[0] // 3

    @property
    def n_triangles(self) -> int:
        return self.indices.shape[0] // 3

    @property
    def points(self) -> NDArray[Any]:
        return self.vertices.reshape(-1, 3)

    @property
    def triangles(self) -> NDArray[Any]:
        return self.indices.reshape(-1, 3)

    def to_meshio(self) -> meshio.Mesh:
        """Return a meshio triangle mesh carrying the colors and scalars."""
        point_data: Dict[str, NDArray[Any]] = {"rgba": self.colors.reshape(-1, 4)}
        if self.scalars is not None:
            point_data[self.scalar_name or "scalars"] = self.scalars
        return meshio.Mesh(
            points=self.points.astype(np.float64),
            cells=[("triangle", self.triangles.astype(np.int64))],
            point_data=point_data,
        )

    def write_vtu(self, filename: str) -> None:
        """Export the triangulated surface as a VTU file through meshio.

        Raises:
            Exception: If the underlying mesh writer fails.
        """
        try:
            self.to_meshio().write(filename)
            _LOGGER.info(
                "VTU written to '%s' (vertices=%d, tris=%d)",
                filename,
                self.n_vertices,
                self.n_triangles,
            )
        except Exception:
            _LOGGER.exception("write_vtu failed for '%s'.", filename)
            raise

    def write_ascii_vtu(self, filename: str) -> None:
        """Export the surface as a plain ASCII VTU file with `VTUWriter`."""
        point_data: Dict[str, NDArray[Any]] = {"rgba": self.colors.reshape(-1, 4)}
        if self.scalars is not None:
            point_data[self.scalar_name or "scalars"] = self.scalars
        VTUWriter.write_triangle_vtu(self.points, self.triangles, filename, point_data)
        _LOGGER.info("ASCII VTU written to '%s'", filename)

    def to_polydata(self) -> pv.PolyData:
        """Return a pyvista surface with ``rgba`` (uint8) and scalar arrays."""
        if self.n_vertices == 0:
            return pv.PolyData()
        tris = self.triangles.astype(np.int64)
        faces = np.hstack([np.full((tris.shape[0], 1), 3, dtype=np.int64), tris])
        poly = pv.PolyData(self.points.astype(np.float64), faces=faces.ravel())
        rgba = np.floor(self.colors.reshape(-1, 4) * 255.0 + 0.5).astype(np.uint8)
        poly.point_data["rgba"] = rgba
        if self.scalars is not None:
            poly.point_data[self.scalar_name or "scalars"] = self.scalars
        return poly


def triangulate_face(face: Sequence[int]) -> List[Tuple[int, int, int]]:
    """Fan-triangulate one face around its first point.

    A triangle is returned as-is, a quad becomes ``(0, 1, 2)`` and
    ``(0, 2, 3)``, an N-gon becomes ``(0, i, i + 1)`` for ``i`` in
    ``[1, N - 2]``. Faces with fewer than 3 points yield nothing.
    """
    return [(face[0], face[i], face[i + 1]) for i in range(1, len(face) - 1)]


def fan_triangulate(offsets: NDArray[Any], points: NDArray[Any]) -> NDArray[Any]:
    """Vectorized fan triangulation of faces stored in CSR form.

    Args:
        offsets: Face offsets into `points`, shape (n_faces + 1,).
        points: Concatenated point indices.

    Returns:
        NDArray[Any]: int64 triangles of shape (T, 3), faces in order.
    """
    sizes = np.diff(offsets)
    n_tris = np.maximum(sizes - 2, 0)
    total = int(n_tris.sum())
    if total == 0:
        return np.zeros((0, 3), dtype=np.int64)

    tri_face = np.repeat(np.arange(sizes.shape[0]), n_tris)
    first_tri = np.cumsum(n_tris) - n_tris
    local = np.arange(total) - first_tri[tri_face] + 1
    start = offsets[:-1][tri_face]
    return np.stack(
        [points[start], points[start + local], points[start + local + 1]], axis=1
    )


def _visible_faces(
    mesh: PolyMesh,
    show_internal_mesh: bool,
    boundary_visibility: Mapping[str, bool],
) -> NDArray[Any]:
    """Boolean mask of the faces to draw."""
    n_faces = mesh.n_faces
    n_internal = min(mesh.n_internal_faces, n_faces)
    visible = np.ones(n_faces, dtype=bool)
    visible[:n_internal] = show_internal_mesh

    # The first patch whose range contains a face decides its visibility.
    claimed = np.zeros(n_faces, dtype=bool)
    for boundary in mesh.boundaries.values():
        lo = max(boundary.start_face, n_internal)
        hi = min(boundary.end_face, n_faces)
        if lo >= hi:
            continue
        fresh = ~claimed[lo:hi]
        if not boundary_visibility.get(boundary.name, True):
            visible[lo:hi][fresh] = False
        claimed[lo:hi] = True
    return visible


def _face_selection(
    mesh: PolyMesh, visible: NDArray[Any]
) -> Tuple[NDArray[Any], NDArray[Any], NDArray[Any]]:
    """Drop hidden faces and out-of-range point indices.

    Returns:
        Tuple: CSR offsets and points of the kept faces, and the source
        face index of each kept face.
    """
    sizes = np.diff(mesh.face_offsets)
    face_ids = np.repeat(np.arange(mesh.n_faces), sizes)
    pts = mesh.face_points
    in_range = (pts >= 0) & (pts < mesh.n_points)

    dropped = int(np.count_nonzero(~in_range & visible[face_ids]))
    if dropped:
        _LOGGER.warning(
            "convert_to_gpu: dropped %d out-of-range point index(es) from faces",
            dropped,
        )

    keep = in_range & visible[face_ids]
    kept_sizes = np.bincount(face_ids[keep], minlength=mesh.n_faces)
    selected = np.flatnonzero(visible)
    offsets = np.zeros(selected.shape[0] + 1, dtype=np.int64)
    np.cumsum(kept_sizes[selected], out=offsets[1:])
    return offsets, pts[keep], selected


def _bounds(points: NDArray[Any]) -> Tuple[Tuple[float, float, float], float]:
    settings = get_settings()
    if points.shape[0] == 0:
        return (0.0, 0.0, 0.0), settings.fallback_zoom
    lo = points.min(axis=0)
    hi = points.max(axis=0)
    center = tuple(float(c) for c in (lo + hi) / 2.0)
    extent = float((hi - lo).max())
    zoom = settings.zoom_scale / extent if extent > 0 else settings.fallback_zoom
    return center, zoom  # type: ignore[return-value]


def _first_owner_values(
    mesh: PolyMesh,
    offsets: NDArray[Any],
    points: NDArray[Any],
    selected: NDArray[Any],
    cell_values: NDArray[Any],
) -> NDArray[Any]:
    """Per-point owner-cell value of the first drawn face using the point.

    Points not used by a drawn face with a valid owner are NaN.
    """
    values = np.full(mesh.n_points, np.nan)
    face_of_point = np.repeat(selected, np.diff(offsets))
    has_owner = face_of_point < mesh.owner.shape[0]
    cells = np.full(face_of_point.shape[0], -1, dtype=np.int64)
    cells[has_owner] = mesh.owner[face_of_point[has_owner]]
    ok = (cells >= 0) & (cells < cell_values.shape[0])
    if not np.any(ok):
        return values
    uniq, first = np.unique(points[ok], return_index=True)
    values[uniq] = cell_values[cells[ok][first]]
    return values


def convert_to_gpu(
    mesh: PolyMesh,
    field_data: Optional[FieldData] = None,
    use_point_data: bool = True,
    show_internal_mesh: bool = True,
    boundary_visibility: Optional[Mapping[str, bool]] = None,
    cache: Optional[InterpolationCache] = None,
) -> MeshGPUData:
    """Build GPU buffers for `mesh`, optionally colored by `field_data`.

    Args:
        mesh: The mesh.
        field_data: Field to color by; None uses the fallback color.
        use_point_data: Color by interpolated point values (True) or by the
            owner-cell value of each vertex (False).
        show_internal_mesh: Draw internal faces.
        boundary_visibility: Patch name to visibility; absent patches are
            visible.
        cache: Interpolation cache used when point values must be computed.

    Returns:
        MeshGPUData: The render buffers.
    """
    settings = get_settings()
    visibility = boundary_visibility or {}
    points = mesh.points

    visible = _visible_faces(mesh, show_internal_mesh, visibility)
    offsets, face_points, selected = _face_selection(mesh, visible)
    triangles = fan_triangulate(offsets, face_points)

    fallback = np.asarray(settings.fallback_color, dtype=np.float32)
    colors = np.tile(fallback, (mesh.n_points, 1))
    scalars: Optional[NDArray[Any]] = None
    name: Optional[str] = None

    if field_data is not None and field_data.internal_field.size > 0:
        name = field_data.name
        if use_point_data:
            scalars = field_data.point_values
            if scalars is None or scalars.shape[0] != mesh.n_points:
                if cache is not None:
                    scalars = cache.point_values(
                        mesh, name, field_data.time, field_data.internal_field
                    )
                else:
                    scalars = cell_to_point(field_data.internal_field, mesh)
            lo, hi = get_min_max(scalars)
            colors = fast_colors(scalars, lo, hi).astype(np.float32) / 255.0
        else:
            lo, hi = get_min_max(field_data.internal_field)
            scalars = _first_owner_values(
                mesh, offsets, face_points, selected, field_data.internal_field
            )
            has_value = ~np.isnan(scalars)
            mapped = fast_colors(scalars[has_value], lo, hi).astype(np.float32)
            colors[has_value] = mapped / 255.0
        _LOGGER.debug("convert_to_gpu: %s range [%g, %g]", name, lo, hi)

    center, auto_zoom = _bounds(points)
    gpu = MeshGPUData(
        vertices=points.astype(np.float32).ravel(),
        indices=triangles.astype(np.uint32).ravel(),
        colors=colors.astype(np.float32).ravel(),
        center=center,
        auto_zoom=float(auto_zoom),
        scalars=None if scalars is None else np.asarray(scalars, dtype=np.float64),
        scalar_name=name,
    )
    _LOGGER.info(
        "convert_to_gpu: %d vertices, %d triangles from %d faces",
        gpu.n_vertices,
        gpu.n_triangles,
        selected.shape[0],
    )
    return gpu
