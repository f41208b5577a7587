"""Browsing state for one loaded case.

A `CaseSession` holds the loaded case, the currently selected field and the
interpolation cache. Selecting a field that cannot be loaded leaves the
case usable and reports the field as unavailable (None).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from utils.file_utils import read_file_bytes

from .case_reader import get_available_fields, load_field_data, read_case
from .converter import MeshGPUData, convert_to_gpu
from .interpolation import InterpolationCache
from .mesh_reader import ReadBytes, read_mesh
from .models import FieldData, OpenFOAMCase, PolyMesh

_LOGGER = logging.getLogger(__name__)


class CaseSession:
    """Interactive access to a case: timesteps, fields and render buffers.

    Attributes:
        case (OpenFOAMCase): The loaded case.
        cache (InterpolationCache): Point-value cache owned by the session.
        current_field (Optional[FieldData]): Last successfully selected field.
        use_point_data (bool): Interpolated (True) or cell coloring.
        show_internal_mesh (bool): Whether internal faces are drawn.
        boundary_visibility (Dict[str, bool]): Per-patch visibility.
    """

    def __init__(
        self, case: OpenFOAMCase, read_bytes: ReadBytes = read_file_bytes
    ) -> None:
        self.case = case
        self.cache = InterpolationCache()
        self.current_field: Optional[FieldData] = None
        self.use_point_data = True
        self.show_internal_mesh = True
        self.boundary_visibility: Dict[str, bool] = {
            name: True for name in case.mesh.boundaries
        }
        self._read_bytes = read_bytes

    @classmethod
    def open(cls, path: str, read_bytes: ReadBytes = read_file_bytes) -> CaseSession:
        """Load the case at `path` (a ``.foam`` file or a case directory)."""
        return cls(read_case(path, read_bytes=read_bytes), read_bytes=read_bytes)

    @property
    def mesh(self) -> PolyMesh:
        return self.case.mesh

    @property
    def time_directories(self) -> List[str]:
        return self.case.time_directories

    def available_fields(self, time_dir: str) -> List[str]:
        return get_available_fields(
            self.case.case_path, time_dir, read_bytes=self._read_bytes
        )

    def select_field(self, time_dir: str, name: str) -> Optional[FieldData]:
        """Load field `name` at `time_dir` and make it current.

        Returns:
            Optional[FieldData]: The field, or None when it is unavailable; in
            that case no field is current and the mesh renders uncolored.
        """
        field = load_field_data(
            self.case.case_path,
            time_dir,
            name,
            self.case.mesh,
            read_bytes=self._read_bytes,
            cache=self.cache,
        )
        self.current_field = field
        if field is not None:
            self.case.fields[name] = field
        return field

    def set_boundary_visibility(self, name: str, visible: bool) -> None:
        if name not in self.case.mesh.boundaries:
            _LOGGER.warning("Unknown boundary %r", name)
        self.boundary_visibility[name] = visible

    def render_data(
        self,
        use_point_data: Optional[bool] = None,
        show_internal_mesh: Optional[bool] = None,
        boundary_visibility: Optional[Mapping[str, bool]] = None,
    ) -> MeshGPUData:
        """Build render buffers for the current field and display options.

        Arguments left as None fall back to the session attributes.
        """
        visibility = dict(self.boundary_visibility)
        if boundary_visibility:
            visibility.update(boundary_visibility)
        return convert_to_gpu(
            self.case.mesh,
            self.current_field,
            use_point_data=(
                self.use_point_data if use_point_data is None else use_point_data
            ),
            show_internal_mesh=(
                self.show_internal_mesh
                if show_internal_mesh is None
                else show_internal_mesh
            ),
            boundary_visibility=visibility,
            cache=self.cache,
        )

    def reload(self) -> PolyMesh:
        """Re-read the mesh from disk and drop cached state.

        Loaded fields are discarded since they refer to the old mesh.

        Raises:
            MeshReadError: If the mesh can no longer be read.
        """
        mesh = read_mesh(self.case.case_path, read_bytes=self._read_bytes)
        self.case.mesh = mesh
        self.case.fields.clear()
        self.current_field = None
        self.cache.clear()
        for name in mesh.boundaries:
            self.boundary_visibility.setdefault(name, True)
        _LOGGER.info("Reloaded mesh of %s", self.case.case_path)
        return mesh
