"""Records handed to a scene sink (the host application's 3D view).

The core never talks to host entities. It emits three plain record kinds,
each with a ``tags`` mapping the sink may turn into styling or attributes:

- :class:`LineSegment` for terrain-following grid lines,
- :class:`PointMarker` for source points, coordinate labels and survey stations,
- :class:`TriangleFace` for mesh faces.

Display scaling happens only here, through :func:`to_display_units`. Tags
always carry the original (unscaled) coordinates.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional, Sequence, Tuple
import numpy as np

from .errors import InvalidConfigurationError
from .grid import GridResult
from .mesh import Triangle
from .pointcloud import PointSet
from .utils import get_logger

_log = get_logger()

METERS_TO_INCHES = 39.3701

Coord = Tuple[float, float, float]
LineStyle = Literal["Thin", "Normal", "Thick"]

GROUP_LINES = "Grid_Lines"
GROUP_POINTS = "XYZ_Points"
GROUP_MESH = "Terrain_Mesh"
GROUP_LABELS = "Elevation_Labels"
GROUP_SURVEY = "XYZ_Survey_Grid"

STATION_PREFIX = "STA"
STATION_START = 1000
STATION_STEP = 10


def to_display_units(coords: np.ndarray | Sequence[float], scale: float = METERS_TO_INCHES) -> np.ndarray:
    return np.asarray(coords, dtype=np.float64) * float(scale)


def _scaled(xyz: Coord, scale: float) -> Coord:
    return (xyz[0] * scale, xyz[1] * scale, xyz[2] * scale)


@dataclass(frozen=True)
class LineSegment:
    start: Coord
    end: Coord
    tags: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PointMarker:
    position: Coord
    tags: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TriangleFace:
    vertices: Tuple[Coord, Coord, Coord]
    tags: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SceneBundle:
    lines: List[LineSegment] = field(default_factory=list)
    points: List[PointMarker] = field(default_factory=list)
    faces: List[TriangleFace] = field(default_factory=list)
    labels: List[PointMarker] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)

    def groups(self) -> Dict[str, list]:
        return {
            GROUP_LINES: self.lines,
            GROUP_POINTS: self.points,
            GROUP_MESH: self.faces,
            GROUP_LABELS: self.labels,
        }

    def counts(self) -> Dict[str, int]:
        return {
            "grid_lines": len(self.lines),
            "reference_points": len(self.points),
            "faces": len(self.faces),
            "labels": len(self.labels),
        }


def grid_line_segments(
    grid: GridResult,
    scale: float = 1.0,
    line_style: LineStyle = "Normal",
) -> Iterator[LineSegment]:
    """Lines along Y for each ``i`` ("vertical"), then along X for each ``j`` ("horizontal")."""
    for i in range(grid.x_count):
        for j in range(grid.y_count - 1):
            a, b = grid.node(i, j), grid.node(i, j + 1)
            yield LineSegment(
                _scaled(a.xyz, scale), _scaled(b.xyz, scale),
                tags={"type": "vertical", "original_x": a.x, "spacing": grid.spacing, "style": line_style},
            )
    for j in range(grid.y_count):
        for i in range(grid.x_count - 1):
            a, b = grid.node(i, j), grid.node(i + 1, j)
            yield LineSegment(
                _scaled(a.xyz, scale), _scaled(b.xyz, scale),
                tags={"type": "horizontal", "original_y": a.y, "spacing": grid.spacing, "style": line_style},
            )


def reference_markers(points: PointSet, scale: float = 1.0) -> Iterator[PointMarker]:
    for index, p in enumerate(points):
        yield PointMarker(
            _scaled((p.x, p.y, p.z), scale),
            tags={"original_x": p.x, "original_y": p.y, "original_z": p.z,
                  "elevation": p.z, "point_id": index + 1},
        )


def label_interval(x_count: int) -> int:
    return min(max(x_count // 10, 1), 5)


def survey_stations(
    points: PointSet,
    interval: float,
    prefix: str = STATION_PREFIX,
    start: int = STATION_START,
    step: int = STATION_STEP,
    scale: float = 1.0,
) -> Iterator[PointMarker]:
    """Station markers on every ``interval``-th source point, in file order.

    ``interval`` is truncated to an integer and must be at least 1. Stations
    are named ``<prefix><number>`` with numbers ``start``, ``start + step``, ...
    """
    try:
        every = int(interval)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidConfigurationError(f"Station interval must be a number, got {interval!r}") from exc
    if every < 1:
        raise InvalidConfigurationError(f"Station interval must be at least 1, got {interval!r}")
    return _station_markers(points, every, prefix, start, step, scale)


def _station_markers(
    points: PointSet, every: int, prefix: str, start: int, step: int, scale: float,
) -> Iterator[PointMarker]:
    number = start
    for index in range(0, len(points), every):
        p = points[index]
        yield PointMarker(
            _scaled((p.x, p.y, p.z), scale),
            tags={"station": f"{prefix}{number}", "station_number": number,
                  "original_x": p.x, "original_y": p.y, "original_z": p.z,
                  "point_id": index + 1},
        )
        number += step


def coordinate_labels(grid: GridResult, scale: float = 1.0) -> Iterator[PointMarker]:
    step = label_interval(grid.x_count)
    for i in range(0, grid.x_count, step):
        for j in range(0, grid.y_count, step):
            n = grid.node(i, j)
            text = f"{round(n.x, 2)},{round(n.y, 2)},{round(n.elevation, 2)}"
            yield PointMarker(
                _scaled(n.xyz, scale),
                tags={"coordinates": text, "original_x": n.x, "original_y": n.y,
                      "original_z": n.elevation, "coordinate_label": True},
            )


def triangle_faces(grid: GridResult, triangles: Sequence[Triangle], scale: float = 1.0) -> Iterator[TriangleFace]:
    for tri in triangles:
        p1, p2, p3 = tri.vertices(grid)
        yield TriangleFace(
            (_scaled(p1.xyz, scale), _scaled(p2.xyz, scale), _scaled(p3.xyz, scale)),
            tags={"type": "grid_face", "grid_cell": tri.cell_id,
                  "original_coords": f"{p1.x},{p1.y},{p1.elevation}"},
        )


def build_scene(
    points: PointSet,
    grid: GridResult,
    triangles: Optional[Sequence[Triangle]] = None,
    scale: float = METERS_TO_INCHES,
    line_style: LineStyle = "Normal",
    show_labels: bool = True,
    source_name: str = "",
) -> SceneBundle:
    """Assemble everything a scene sink needs for one generated terrain grid."""
    bundle = SceneBundle(
        lines=list(grid_line_segments(grid, scale, line_style)),
        points=list(reference_markers(points, scale)),
        faces=list(triangle_faces(grid, triangles, scale)) if triangles is not None else [],
        labels=list(coordinate_labels(grid, scale)) if show_labels else [],
        attributes={
            "name": f"Terrain_Grid_{grid.spacing}m",
            "coordinate_system": "preserved",
            "grid_spacing": grid.spacing,
            "source_file": source_name,
            "display_scale": scale,
        },
    )
    counts = bundle.counts()
    _log.info(
        "Scene: %d grid lines, %d reference points, %d faces, %d labels",
        counts["grid_lines"], counts["reference_points"], counts["faces"], counts["labels"],
    )
    return bundle
