"""The foamview package decodes OpenFOAM cases into render-ready buffers.

This package offers:
  - ASCII and binary decoding of ``constant/polyMesh`` and field files.
  - Cell-to-point interpolation of scalar and vector (magnitude) fields.
  - Fan triangulation and colormapping into flat GPU buffers.

Submodules:
  - header: FoamFile header parsing and format detection.
  - lexer: Tokenizer for the dictionary text grammar.
  - ascii_decoder / binary_decoder: List, face, boundary and field decoders.
  - mesh_reader: PolyMesh assembly.
  - case_reader: Case discovery and field loading.
  - interpolation: Cell-to-point interpolation and its cache.
  - colormap: The blue-to-red "fast" colormap.
  - converter: MeshGPUData and triangulation.
  - session: CaseSession for browsing timesteps and fields.

Classes:
  Boundary, PolyMesh, FieldData, OpenFOAMCase, MeshGPUData, CaseSession,
  InterpolationCache

Utilities:
  VTUWriter, read_file_bytes
"""

from .config import (
    config,
    configure,
    use,
    get_settings,
    set_log_level,
    Settings,
)

from foamview.errors import (
    EmptyField,
    FieldFileNotFound,
    FoamError,
    HeaderNotFound,
    MalformedList,
    MeshReadError,
    UnsupportedFieldClass,
)
from foamview.models import Boundary, FieldData, OpenFOAMCase, PolyMesh
from foamview.header import is_binary, parse_header
from foamview.mesh_reader import read_mesh
from foamview.case_reader import (
    find_time_directories,
    get_available_fields,
    get_file_formats,
    load_field_data,
    read_case,
    read_field,
)
from foamview.interpolation import InterpolationCache, cell_to_point, get_min_max
from foamview.colormap import fast_color, fast_colors, fast_gradient, format_value
from foamview.converter import MeshGPUData, convert_to_gpu, triangulate_face
from foamview.session import CaseSession

from utils.file_utils import read_file_bytes
from utils.paraview_writer import VTUWriter

__all__ = [
    # Core classes
    "Boundary",
    "CaseSession",
    "FieldData",
    "InterpolationCache",
    "MeshGPUData",
    "OpenFOAMCase",
    "PolyMesh",
    # Pipeline
    "cell_to_point",
    "convert_to_gpu",
    "fast_color",
    "fast_colors",
    "fast_gradient",
    "find_time_directories",
    "format_value",
    "get_available_fields",
    "get_file_formats",
    "get_min_max",
    "is_binary",
    "load_field_data",
    "parse_header",
    "read_case",
    "read_field",
    "read_mesh",
    "triangulate_face",
    # Errors
    "EmptyField",
    "FieldFileNotFound",
    "FoamError",
    "HeaderNotFound",
    "MalformedList",
    "MeshReadError",
    "UnsupportedFieldClass",
    # Utilities
    "VTUWriter",
    "read_file_bytes",
    # Configuration
    "config",
    "configure",
    "use",
    "get_settings",
    "set_log_level",
    "Settings",
]
