from __future__ import annotations

import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose

from foam_builders import (
    FACES,
    POINTS,
    ascii_vector_list,
    foam_header,
    scalar_field,
)
from foamview.errors import MeshReadError
from foamview.session import CaseSession
from utils.file_utils import read_file_bytes


@pytest.fixture
def session(ascii_case):
    return CaseSession.open(str(ascii_case))


def test_open(session, ascii_case):
    assert session.case.case_path == str(ascii_case)
    assert session.time_directories == ["0", "0.5", "2", "10"]
    assert session.mesh.n_cells == 2
    assert session.boundary_visibility == {
        "inlet": True,
        "outlet": True,
        "walls": True,
    }
    assert session.available_fields("2") == ["p"]


def test_select_field(session):
    field = session.select_field("0.5", "p")
    assert field is session.current_field
    assert session.case.fields["p"] is field
    assert field.time == "0.5"


def test_unavailable_field_keeps_case(session, caplog):
    session.select_field("0.5", "p")
    with caplog.at_level(logging.WARNING, logger="foamview"):
        assert session.select_field("0.5", "gradU") is None
    assert session.current_field is None
    assert session.mesh.n_cells == 2
    assert caplog.records
    gpu = session.render_data()
    assert gpu.scalars is None
    assert gpu.n_triangles == 22


def test_render_data_follows_display_state(session):
    session.select_field("2", "p")
    assert session.render_data().scalar_name == "p"

    session.show_internal_mesh = False
    assert session.render_data().n_triangles == 20
    session.set_boundary_visibility("walls", False)
    assert session.render_data().n_triangles == 4
    assert session.render_data(show_internal_mesh=True).n_triangles == 6
    assert session.render_data(boundary_visibility={"walls": True}).n_triangles == 20


def test_render_data_cell_mode(session):
    session.select_field("2", "p")
    session.use_point_data = False
    gpu = session.render_data()
    assert set(gpu.scalars.tolist()) == {5.0, 7.0}
    assert session.render_data(use_point_data=True).scalars.shape == (12,)


def test_unknown_boundary_is_warned(session, caplog):
    with caplog.at_level(logging.WARNING, logger="foamview"):
        session.set_boundary_visibility("nope", False)
    assert any("nope" in r.getMessage() for r in caplog.records)


def test_reload_gives_new_mesh(session, ascii_case):
    session.select_field("0.5", "p")
    session.render_data()
    old_id = session.mesh.mesh_id

    moved = np.asarray(POINTS) * 2.0
    (ascii_case / "constant" / "polyMesh" / "points").write_text(
        foam_header("vectorField", "points") + ascii_vector_list(moved)
    )
    mesh = session.reload()
    assert mesh.mesh_id != old_id
    assert session.current_field is None
    assert session.case.fields == {}
    assert session.mesh.faces == tuple(FACES)
    assert session.render_data().center == pytest.approx((2.0, 1.0, 1.0))

    session.select_field("0.5", "p")
    assert session.cache.misses == 2
    assert_allclose(session.current_field.point_values[[0, 1, 2]], [1, 2, 3])


def test_reload_failure_is_reported(session, ascii_case):
    (ascii_case / "constant" / "polyMesh" / "faces").unlink()
    with pytest.raises(MeshReadError):
        session.reload()


def test_rewritten_field_is_reinterpolated(session, ascii_case):
    session.select_field("0.5", "p")
    (ascii_case / "0.5" / "p").write_text(
        scalar_field("nonuniform List<scalar> 2(10 30)")
    )
    field = session.select_field("0.5", "p")
    assert_allclose(field.point_values[[0, 1, 2]], [10, 20, 30])


def test_injected_transport_is_used_for_field_listing(ascii_case):
    seen = []

    def read_bytes(path):
        seen.append(path.replace("\\", "/").rsplit("/", 1)[-1])
        return read_file_bytes(path)

    session = CaseSession.open(str(ascii_case), read_bytes=read_bytes)
    seen.clear()
    assert session.available_fields("0.5") == ["T", "U", "gradU", "p"]
    assert "p" in seen
    assert "notes.txt" in seen
