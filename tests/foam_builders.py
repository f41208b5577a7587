"""Builders for small OpenFOAM case trees used across the test suite."""

from __future__ import annotations

import gzip
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as np

from foamview.models import Boundary

BANNER = """/*--------------------------------*- C++ -*----------------------------------*\\
  =========                 |
  \\\\      /  F ield         | OpenFOAM: The Open Source CFD Toolbox
   \\\\    /   O peration     | Version:  v2312
    \\\\  /    A nd           | Website:  www.openfoam.com
     \\\\/     M anipulation  |
\\*---------------------------------------------------------------------------*/
"""

SEPARATOR = "// " + "* " * 35 + "//\n"

# Two unit cubes side by side along x. Point index = i + 3*j + 6*k.
POINTS = np.array(
    [[i, j, k] for k in (0, 1) for j in (0, 1) for i in (0, 1, 2)], dtype=np.float64
)
FACES: List[Tuple[int, ...]] = [
    (1, 4, 10, 7),  # internal, x=1
    (0, 6, 9, 3),  # inlet
    (2, 5, 11, 8),  # outlet
    (0, 1, 7, 6),  # walls
    (1, 2, 8, 7),
    (3, 9, 10, 4),
    (4, 10, 11, 5),
    (0, 3, 4, 1),
    (1, 4, 5, 2),
    (6, 7, 10, 9),
    (7, 8, 11, 10),
]
OWNER = [0, 0, 1, 0, 1, 0, 1, 0, 1, 0, 1]
NEIGHBOUR = [1]
BOUNDARIES = {
    "inlet": Boundary("inlet", "patch", 1, 1),
    "outlet": Boundary("outlet", "patch", 1, 2),
    "walls": Boundary("walls", "wall", 8, 3),
}

BOUNDARY_TEXT = """3
(
    inlet
    {
        type            patch;
        nFaces          1;
        startFace       1;
    }
    outlet
    {
        type            patch;
        nFaces          1;
        startFace       2;
    }
    walls
    {
        type            wall;
        inGroups        List<word> 1(wall);
        nFaces          8;
        startFace       3;
    }
)
"""


def foam_header(cls: str, obj: str, fmt: str = "ascii", location: str = "") -> str:
    loc = f'    location    "{location}";\n' if location else ""
    return (
        BANNER
        + "FoamFile\n{\n"
        + "    version     2.0;\n"
        + f"    format      {fmt};\n"
        + ('    arch        "LSB;label=32;scalar=64";\n' if fmt == "binary" else "")
        + f"    class       {cls};\n"
        + loc
        + f"    object      {obj};\n"
        + "}\n"
        + SEPARATOR
        + "\n"
    )


def ascii_vector_list(vectors: Sequence[Sequence[float]]) -> str:
    body = "\n".join("(" + " ".join(repr(float(c)) for c in v) + ")" for v in vectors)
    return f"{len(vectors)}\n(\n{body}\n)\n"


def ascii_label_list(labels: Sequence[int]) -> str:
    body = "\n".join(str(int(x)) for x in labels)
    return f"{len(labels)}\n(\n{body}\n)\n"


def ascii_face_list(faces: Sequence[Sequence[int]]) -> str:
    body = "\n".join(f"{len(f)}(" + " ".join(str(i) for i in f) + ")" for f in faces)
    return f"{len(faces)}\n(\n{body}\n)\n"


def binary_payload(count: int, payload: bytes) -> bytes:
    return f"{count}\n(".encode("ascii") + payload + b")\n"


def binary_vector_list(vectors: Sequence[Sequence[float]]) -> bytes:
    arr = np.asarray(vectors, dtype="<f8").reshape(-1, 3)
    return binary_payload(arr.shape[0], arr.tobytes())


def binary_label_list(labels: Sequence[int]) -> bytes:
    arr = np.asarray(labels, dtype="<i4")
    return binary_payload(arr.shape[0], arr.tobytes())


def binary_face_list(faces: Sequence[Sequence[int]]) -> bytes:
    words: List[int] = []
    for f in faces:
        words.append(len(f))
        words.extend(f)
    return binary_payload(len(faces), np.asarray(words, dtype="<i4").tobytes())


def scalar_field(values: str, cls: str = "volScalarField", obj: str = "p") -> str:
    return (
        foam_header(cls, obj)
        + "dimensions      [0 2 -2 0 0 0 0];\n\n"
        + f"internalField   {values};\n\n"
        + "boundaryField\n{\n    walls\n    {\n        type zeroGradient;\n    }\n}\n"
    )


def _write(path: Path, data, gz: bool = False) -> Path:
    raw = data.encode("latin-1") if isinstance(data, str) else data
    path.parent.mkdir(parents=True, exist_ok=True)
    if gz:
        path = path.with_name(path.name + ".gz")
        path.write_bytes(gzip.compress(raw))
    else:
        path.write_bytes(raw)
    return path


def write_mesh(case: Path, binary: bool = False, gz: bool = False) -> Dict[str, Path]:
    mesh_dir = case / "constant" / "polyMesh"
    fmt = "binary" if binary else "ascii"
    if binary:
        payloads = {
            "points": binary_vector_list(POINTS),
            "faces": binary_face_list(FACES),
            "owner": binary_label_list(OWNER),
            "neighbour": binary_label_list(NEIGHBOUR),
        }
    else:
        payloads = {
            "points": ascii_vector_list(POINTS).encode("latin-1"),
            "faces": ascii_face_list(FACES).encode("latin-1"),
            "owner": ascii_label_list(OWNER).encode("latin-1"),
            "neighbour": ascii_label_list(NEIGHBOUR).encode("latin-1"),
        }
    classes = {
        "points": "vectorField",
        "faces": "faceList",
        "owner": "labelList",
        "neighbour": "labelList",
    }
    written = {}
    for name, payload in payloads.items():
        header = foam_header(classes[name], name, fmt, "constant/polyMesh")
        written[name] = _write(mesh_dir / name, header.encode("latin-1") + payload, gz)
    boundary = foam_header("polyBoundaryMesh", "boundary", "ascii") + BOUNDARY_TEXT
    written["boundary"] = _write(mesh_dir / "boundary", boundary, gz)
    return written


def write_fields(case: Path) -> None:
    _write(case / "0" / "p", scalar_field("uniform 0"))
    t = case / "0.5"
    _write(t / "p", scalar_field("nonuniform List<scalar> 2(1 3)"))
    _write(t / "T", scalar_field("uniform 300", obj="T"))
    _write(
        t / "U",
        scalar_field("uniform (3 4 0)", cls="volVectorField", obj="U"),
    )
    _write(
        t / "gradU",
        scalar_field(
            "uniform (1 0 0 0 1 0 0 0 1)", cls="volTensorField", obj="gradU"
        ),
    )
    _write(t / "notes.txt", "not a field\n")
    _write(t / ".hidden", scalar_field("uniform 1"))
    _write(case / "2" / "p", scalar_field("nonuniform List<scalar> 2(5 7)"), gz=True)
    (case / "10").mkdir()
    (case / "postProcessing").mkdir()
    control = foam_header("dictionary", "controlDict") + "application simpleFoam;\n"
    _write(case / "system" / "controlDict", control)
