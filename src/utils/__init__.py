"""The utils package contains file access helpers and VTK exporters used by foamview.

Submodules:
  - file_utils: plain/``.gz`` resolution and reading of case files.
  - paraview_writer: VTUWriter for writing triangle surfaces.

Utilities:
  VTUWriter, read_file_bytes, read_file_as_string, file_exists,
  get_actual_file_path, list_files, is_gzipped
"""

from utils.file_utils import (
    file_exists,
    get_actual_file_path,
    is_gzipped,
    list_files,
    read_file_as_string,
    read_file_bytes,
)
from utils.paraview_writer import VTUWriter

__all__ = [
    "VTUWriter",
    "file_exists",
    "get_actual_file_path",
    "is_gzipped",
    "list_files",
    "read_file_as_string",
    "read_file_bytes",
]
