from __future__ import annotations

from pathlib import Path

import pytest

from foam_builders import BOUNDARIES, FACES, NEIGHBOUR, OWNER, POINTS
from foam_builders import write_fields, write_mesh
from foamview.config import config
from foamview.models import PolyMesh


@pytest.fixture(autouse=True)
def _reset_config():
    config.reset()
    yield
    config.reset()


@pytest.fixture
def two_cell_mesh() -> PolyMesh:
    return PolyMesh.build(POINTS, FACES, OWNER, NEIGHBOUR, BOUNDARIES)


@pytest.fixture
def ascii_case(tmp_path: Path) -> Path:
    case = tmp_path / "ascii_case"
    write_mesh(case)
    write_fields(case)
    (case / "case.foam").write_text("")
    return case


@pytest.fixture
def binary_case(tmp_path: Path) -> Path:
    case = tmp_path / "binary_case"
    write_mesh(case, binary=True)
    write_fields(case)
    return case


@pytest.fixture
def gz_case(tmp_path: Path) -> Path:
    case = tmp_path / "gz_case"
    write_mesh(case, gz=True)
    write_fields(case)
    return case
