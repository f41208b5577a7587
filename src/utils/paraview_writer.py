"""Module defining VTUWriter for exporting triangle surfaces to VTU format.

This module provides VTUWriter, a utility class with a static method
to write points, triangle elements and per-point arrays as a VTK
UnstructuredGrid (.vtu) file in plain ASCII, readable without any VTK
installation on the producing side.
"""

import xml.etree.ElementTree as ET
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

VTK_TRIANGLE = 5


def _ascii(values: Any) -> str:
    arr = np.asarray(values)
    if arr.ndim == 1:
        return "\n".join(str(v) for v in arr.tolist())
    return "\n".join(" ".join(str(v) for v in row) for row in arr.tolist())


class VTUWriter:
    """Utility class for writing triangle surfaces to VTU format.

    Provides a static method to export a set of 3D points, triangle
    connectivity and optional point data arrays as a VTK UnstructuredGrid
    (.vtu) file.
    """

    @staticmethod
    def write_triangle_vtu(
        nodes: Sequence[Tuple[float, float, float]],
        triangles: Sequence[Tuple[int, int, int]],
        filename: str,
        point_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Write a triangle surface to a VTU file.

        Args:
            nodes (Sequence[Tuple[float, float, float]]): (x, y, z)
                coordinates for each point.
            triangles (Sequence[Tuple[int, int, int]]): Point index triples
                defining each triangle.
            filename (str): Path to the output .vtu file.
            point_data (Optional[Mapping[str, Any]]): Arrays of length
                n_points, 1 or k components per point, keyed by name.

        Returns:
            None: The file is written to disk.

        Raises:
            ValueError: If a point data array does not have one entry per point.
        """
        pts = np.asarray(nodes, dtype=np.float64).reshape(-1, 3)
        tris = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)

        file = ET.Element(
            "VTKFile",
            {
                "type": "UnstructuredGrid",
                "version": "0.1",
                "byte_order": "LittleEndian",
            },
        )

        unstructured_grid = ET.SubElement(file, "UnstructuredGrid")
        piece = ET.SubElement(
            unstructured_grid,
            "Piece",
            {"NumberOfPoints": str(len(pts)), "NumberOfCells": str(len(tris))},
        )

        # Point data
        if point_data:
            pd = ET.SubElement(piece, "PointData")
            for name, values in point_data.items():
                arr = np.asarray(values, dtype=np.float64)
                if arr.shape[0] != pts.shape[0]:
                    raise ValueError(
                        f"point_data['{name}'] length {arr.shape[0]} "
                        f"!= n_points {pts.shape[0]}"
                    )
                n_comp = 1 if arr.ndim == 1 else arr.shape[1]
                da = ET.SubElement(
                    pd,
                    "DataArray",
                    {
                        "type": "Float32",
                        "Name": name,
                        "NumberOfComponents": str(n_comp),
                        "format": "ascii",
                    },
                )
                da.text = _ascii(np.nan_to_num(arr))

        # Points
        points = ET.SubElement(piece, "Points")
        point_coords = ET.SubElement(
            points,
            "DataArray",
            {"type": "Float32", "NumberOfComponents": "3", "format": "ascii"},
        )
        point_coords.text = _ascii(pts)

        # Cells
        cells = ET.SubElement(piece, "Cells")
        connectivity = ET.SubElement(
            cells,
            "DataArray",
            {"type": "Int32", "Name": "connectivity", "format": "ascii"},
        )
        offsets = ET.SubElement(
            cells, "DataArray", {"type": "Int32", "Name": "offsets", "format": "ascii"}
        )
        types = ET.SubElement(
            cells, "DataArray", {"type": "UInt8", "Name": "types", "format": "ascii"}
        )

        connectivity.text = _ascii(tris)
        offsets.text = "\n".join(str(i) for i in range(3, 3 * len(tris) + 1, 3))
        types.text = "\n".join([str(VTK_TRIANGLE)] * len(tris))

        # Write to file
        tree = ET.ElementTree(file)
        tree.write(filename)
