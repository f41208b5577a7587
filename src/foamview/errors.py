"""Exception types raised by the foamview decode pipeline.

All errors derive from `FoamError` so callers browsing optional fields can
recover from any decode failure with a single ``except`` clause, while mesh
loading lets `MeshReadError` propagate.
"""

from __future__ import annotations

from typing import Optional


class FoamError(Exception):
    """Base class for every error raised while decoding a case."""


class HeaderNotFound(FoamError):
    """The ``FoamFile { ... }`` block or its closing brace is missing."""


class MalformedList(FoamError):
    """A ``COUNT ( ... )`` list or an ``internalField`` entry is absent."""


class FieldFileNotFound(FoamError, FileNotFoundError):
    """Neither the plain nor the ``.gz`` variant of a field file exists."""


class UnsupportedFieldClass(FoamError):
    """The field header declares a class that is not a scalar/vector field.

    Attributes:
        field_class: The class read from the header.
    """

    def __init__(self, field_name: str, field_class: str) -> None:
        super().__init__(
            f"Field {field_name!r} is not a scalar or vector field "
            f"(class: {field_class!r})"
        )
        self.field_class = field_class


class EmptyField(FoamError):
    """The field decoded to zero values."""


class MeshReadError(FoamError):
    """A core mesh artifact could not be read or parsed.

    Attributes:
        artifact: Name of the failing file (``points``, ``faces``, ...).
    """

    def __init__(self, artifact: str, reason: Optional[str] = None) -> None:
        msg = f"Failed to read mesh artifact {artifact!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.artifact = artifact
