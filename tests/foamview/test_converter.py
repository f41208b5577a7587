from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

import meshio
import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from foamview.config import use
from foamview.converter import convert_to_gpu, fan_triangulate, triangulate_face
from foamview.interpolation import InterpolationCache
from foamview.models import FieldData, PolyMesh

FALLBACK = np.array([0.5, 0.7, 1.0, 1.0], dtype=np.float32)


def pressure(values=(1.0, 3.0), time="0.5"):
    return FieldData("p", "volScalarField", np.asarray(values), time=time)


# ---- Triangulation ------------------------------------------------------------
@pytest.mark.parametrize(
    "face, expected",
    [
        ((0, 1, 2), [(0, 1, 2)]),
        ((0, 1, 2, 3), [(0, 1, 2), (0, 2, 3)]),
        ((4, 5, 6, 7, 8), [(4, 5, 6), (4, 6, 7), (4, 7, 8)]),
        ((0, 1), []),
    ],
)
def test_triangulate_face(face, expected):
    assert triangulate_face(face) == expected


def test_fan_triangulate_matches_per_face():
    faces = [(0, 1, 2), (3, 4), (5, 6, 7, 8, 9), (1, 2, 3, 4)]
    offsets = np.cumsum([0] + [len(f) for f in faces])
    points = np.concatenate([np.asarray(f) for f in faces])
    expected = [t for f in faces for t in triangulate_face(f)]
    assert_array_equal(fan_triangulate(offsets, points), expected)


def test_fan_triangulate_empty():
    tris = fan_triangulate(np.zeros(1, dtype=np.int64), np.zeros(0, dtype=np.int64))
    assert tris.shape == (0, 3)


# ---- Buffers ------------------------------------------------------------------
def test_buffers_without_field(two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh)
    assert gpu.vertices.dtype == np.float32
    assert gpu.indices.dtype == np.uint32
    assert gpu.colors.dtype == np.float32
    assert gpu.vertices.shape == (36,)
    assert gpu.colors.shape == (48,)
    assert gpu.n_triangles == 22
    assert gpu.indices.max() < gpu.n_vertices
    assert_array_equal(gpu.colors.reshape(-1, 4), np.tile(FALLBACK, (12, 1)))
    assert gpu.scalars is None
    assert gpu.scalar_name is None


def test_center_and_zoom(two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh)
    assert gpu.center == pytest.approx((1.0, 0.5, 0.5))
    assert gpu.auto_zoom == pytest.approx(100.0)


def test_zoom_scale_is_configurable(two_cell_mesh):
    with use(zoom_scale=50):
        assert convert_to_gpu(two_cell_mesh).auto_zoom == pytest.approx(25.0)


def test_hide_internal_faces(two_cell_mesh):
    assert convert_to_gpu(two_cell_mesh, show_internal_mesh=False).n_triangles == 20


def test_hide_boundary(two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh, boundary_visibility={"walls": False})
    assert gpu.n_triangles == 6
    # Vertices are still one per mesh point.
    assert gpu.n_vertices == 12


def test_unknown_boundary_names_are_ignored(two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh, boundary_visibility={"nope": False})
    assert gpu.n_triangles == 22


def test_empty_mesh():
    gpu = convert_to_gpu(PolyMesh.build([], [], [], []))
    assert gpu.n_vertices == 0
    assert gpu.n_triangles == 0
    assert gpu.center == (0.0, 0.0, 0.0)
    assert gpu.auto_zoom == 500.0


def test_flat_mesh_uses_fallback_zoom():
    mesh = PolyMesh.build([[1, 1, 1]], [], [], [])
    gpu = convert_to_gpu(mesh)
    assert gpu.center == (1.0, 1.0, 1.0)
    assert gpu.auto_zoom == 500.0


def test_out_of_range_indices_are_dropped(caplog):
    mesh = PolyMesh.build(
        [[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]],
        [(0, 1, 9, 3, 2), (0, 7, 8)],
        owner=[0, 0],
        neighbour=[],
    )
    with caplog.at_level(logging.WARNING, logger="foamview"):
        gpu = convert_to_gpu(mesh)
    assert_array_equal(gpu.triangles, [(0, 1, 3), (0, 3, 2)])
    assert any("out-of-range" in r.getMessage() for r in caplog.records)


# ---- Coloring -----------------------------------------------------------------
def test_point_data_coloring(two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh, pressure())
    assert gpu.scalar_name == "p"
    assert_allclose(gpu.scalars, 1.0 + two_cell_mesh.points[:, 0])
    rgba = gpu.colors.reshape(-1, 4)
    x = two_cell_mesh.points[:, 0]
    assert_allclose(rgba[x == 0], np.tile([0, 0, 1, 1], (4, 1)))
    assert_allclose(rgba[x == 1], np.tile([0, 1, 0, 1], (4, 1)))
    assert_allclose(rgba[x == 2], np.tile([1, 0, 0, 1], (4, 1)))


def test_point_values_on_field_are_reused(two_cell_mesh):
    field = pressure().with_point_values(np.arange(12.0))
    gpu = convert_to_gpu(two_cell_mesh, field)
    assert_array_equal(gpu.scalars, np.arange(12.0))


def test_point_data_uses_cache(two_cell_mesh):
    cache = InterpolationCache()
    convert_to_gpu(two_cell_mesh, pressure(), cache=cache)
    convert_to_gpu(two_cell_mesh, pressure(), cache=cache)
    assert (cache.misses, cache.hits) == (1, 1)


def test_cell_data_coloring(two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh, pressure(), use_point_data=False)
    x = two_cell_mesh.points[:, 0]
    # Points on the internal face take its owner (cell 0) value.
    assert_array_equal(gpu.scalars, np.where(x == 2, 3.0, 1.0))
    rgba = gpu.colors.reshape(-1, 4)
    assert_allclose(rgba[x < 2], np.tile([0, 0, 1, 1], (8, 1)))
    assert_allclose(rgba[x == 2], np.tile([1, 0, 0, 1], (4, 1)))


def test_cell_data_unreferenced_points_use_fallback():
    mesh = PolyMesh.build(
        [[0, 0, 0], [1, 0, 0], [0, 1, 0], [5, 5, 5]], [(0, 1, 2)], [0], []
    )
    field = FieldData("p", "volScalarField", np.array([2.0]))
    gpu = convert_to_gpu(mesh, field, use_point_data=False)
    assert np.isnan(gpu.scalars[3])
    assert_array_equal(gpu.colors.reshape(-1, 4)[3], FALLBACK)
    assert_array_equal(gpu.colors.reshape(-1, 4)[0], [0, 1, 0, 1])


def test_uniform_field_is_green(two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh, pressure((4.0, 4.0)))
    assert_allclose(gpu.colors.reshape(-1, 4), np.tile([0, 1, 0, 1], (12, 1)))


# ---- Export -------------------------------------------------------------------
def test_to_meshio(two_cell_mesh):
    mesh = convert_to_gpu(two_cell_mesh, pressure()).to_meshio()
    assert mesh.points.shape == (12, 3)
    assert mesh.cells_dict["triangle"].shape == (22, 3)
    assert mesh.point_data["rgba"].shape == (12, 4)
    assert "p" in mesh.point_data


def test_write_vtu_round_trip(tmp_path, two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh, pressure())
    path = tmp_path / "surface.vtu"
    gpu.write_vtu(str(path))
    back = meshio.read(str(path))
    assert_allclose(back.points, two_cell_mesh.points)
    assert_array_equal(back.cells_dict["triangle"], gpu.triangles)
    assert_allclose(back.point_data["p"], gpu.scalars)


def test_write_ascii_vtu(tmp_path, two_cell_mesh):
    gpu = convert_to_gpu(two_cell_mesh, pressure())
    path = tmp_path / "surface_ascii.vtu"
    gpu.write_ascii_vtu(str(path))
    piece = ET.parse(str(path)).getroot().find("UnstructuredGrid/Piece")
    assert piece.get("NumberOfPoints") == "12"
    assert piece.get("NumberOfCells") == "22"
    names = [da.get("Name") for da in piece.find("PointData")]
    assert names == ["rgba", "p"]


def test_to_polydata(two_cell_mesh):
    poly = convert_to_gpu(two_cell_mesh, pressure()).to_polydata()
    assert poly.n_points == 12
    assert poly.n_cells == 22
    assert poly.point_data["rgba"].dtype == np.uint8
    assert_array_equal(poly.point_data["rgba"][:, 3], 255)
    assert "p" in poly.point_data.keys()


def test_to_polydata_empty():
    poly = convert_to_gpu(PolyMesh.build([], [], [], [])).to_polydata()
    assert poly.n_points == 0


def test_cache_matches_uncached_when_values_change(two_cell_mesh):
    cache = InterpolationCache()
    convert_to_gpu(two_cell_mesh, pressure((1.0, 3.0)), cache=cache)
    cached = convert_to_gpu(two_cell_mesh, pressure((10.0, 30.0)), cache=cache)
    fresh = convert_to_gpu(two_cell_mesh, pressure((10.0, 30.0)))
    assert_allclose(cached.scalars, fresh.scalars)
    assert_array_equal(cached.colors, fresh.colors)
