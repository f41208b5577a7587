"""Open an OpenFOAM case and show one field in an interactive pyvista window.

Usage:
    python examples/view_case.py path/to/case.foam [FIELD]

Keys: ``i`` toggles the internal faces, ``c`` switches between interpolated
point coloring and raw cell coloring.
"""

import sys

import pyvista as pv

from foamview import CaseSession, fast_gradient, format_value, get_min_max

case_path = sys.argv[1] if len(sys.argv) > 1 else "case.foam"
field_name = sys.argv[2] if len(sys.argv) > 2 else "p"

session = CaseSession.open(case_path)
latest = session.time_directories[-1] if session.time_directories else None
if latest is not None:
    field = session.select_field(latest, field_name)
    if field is not None:
        lo, hi = get_min_max(field.internal_field)
        print(f"{field_name} @ {latest}: [{format_value(lo)}, {format_value(hi)}]")
    else:
        print(f"{field_name} not available at {latest}, showing the bare mesh")

plotter = pv.Plotter()


def redraw():
    gpu = session.render_data()
    plotter.add_mesh(
        gpu.to_polydata(),
        scalars="rgba",
        rgba=True,
        show_edges=True,
        name="case",
    )
    plotter.add_text(
        f"points={session.use_point_data} internal={session.show_internal_mesh}",
        font_size=9,
        name="status",
    )


def toggle_internal():
    session.show_internal_mesh = not session.show_internal_mesh
    redraw()


def toggle_point_data():
    session.use_point_data = not session.use_point_data
    redraw()


redraw()
# Legend swatches, blue (min) to red (max)
print("Legend:", " ".join("#%02x%02x%02x" % c[:3] for c in fast_gradient(5)))
plotter.add_key_event("i", toggle_internal)
plotter.add_key_event("c", toggle_point_data)
plotter.show()
