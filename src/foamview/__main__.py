"""Command line entry point.

Usage:
    python -m foamview CASE [--time T] [--field NAME] [--cell-data]
        [--hide-internal] [--hide PATCH ...] [--output FILE.vtu]
        [--log-level LEVEL]

Prints a summary of the case and, with ``--output``, writes the
triangulated (and optionally colored) surface as a VTU file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .colormap import format_value
from .config import set_log_level
from .errors import FoamError
from .interpolation import get_min_max
from .session import CaseSession

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="foamview",
        description="Decode an OpenFOAM case and export a render-ready surface.",
    )
    ap.add_argument("case", help="case directory or .foam file")
    ap.add_argument("--time", help="time directory (default: latest)")
    ap.add_argument("--field", help="field to color by")
    ap.add_argument(
        "--cell-data",
        action="store_true",
        help="color by cell values instead of interpolated point values",
    )
    ap.add_argument(
        "--hide-internal", action="store_true", help="do not draw internal faces"
    )
    ap.add_argument(
        "--hide",
        action="append",
        default=[],
        metavar="PATCH",
        help="hide a boundary patch (repeatable)",
    )
    ap.add_argument("--output", help="write the surface to this .vtu file")
    ap.add_argument(
        "--ascii",
        action="store_true",
        help="write the .vtu as plain ASCII XML instead of through meshio",
    )
    ap.add_argument("--log-level", default=None, help="e.g. DEBUG, INFO")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
        set_log_level(args.log_level)

    try:
        session = CaseSession.open(args.case)
    except FoamError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    mesh = session.mesh
    print(f"Case: {session.case.case_path}")
    print(
        f"Mesh: {mesh.n_points} points, {mesh.n_faces} faces "
        f"({mesh.n_internal_faces} internal), {mesh.n_cells} cells"
    )
    for b in mesh.boundaries.values():
        print(f"  {b.name}: {b.type}, {b.n_faces} faces from {b.start_face}")
    print(f"Times: {' '.join(session.time_directories) or '-'}")

    time_dir = args.time
    if time_dir is None and session.time_directories:
        time_dir = session.time_directories[-1]

    if time_dir is not None:
        print(f"Fields at {time_dir}: {' '.join(session.available_fields(time_dir))}")

    status = 0
    if args.field:
        if time_dir is None:
            print("error: no time directory to read the field from", file=sys.stderr)
            return 1
        field = session.select_field(time_dir, args.field)
        if field is None:
            print(f"warning: field {args.field!r} unavailable", file=sys.stderr)
            status = 2
        else:
            lo, hi = get_min_max(field.internal_field)
            print(
                f"{field.name} ({field.field_class}): "
                f"[{format_value(lo)}, {format_value(hi)}]"
            )

    for name in args.hide:
        session.set_boundary_visibility(name, False)

    if args.output:
        gpu = session.render_data(
            use_point_data=not args.cell_data,
            show_internal_mesh=not args.hide_internal,
        )
        if args.ascii:
            gpu.write_ascii_vtu(args.output)
        else:
            gpu.write_vtu(args.output)
        print(
            f"Wrote {args.output}: {gpu.n_vertices} vertices, "
            f"{gpu.n_triangles} triangles"
        )
    return status


if __name__ == "__main__":
    sys.exit(main())
