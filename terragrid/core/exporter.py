from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, TextIO, Union
import numpy as np
import pathlib

import laspy  # type: ignore
from .errors import IoFailure
from .grid import GridNode, GridResult
from .mesh import Triangle, face_index_array
from .pointcloud import PointSet
from .utils import get_logger

_log = get_logger()

Destination = Union[str, pathlib.Path, TextIO]
LatticeLike = Union[GridResult, Sequence[Sequence[Optional[GridNode]]]]


@dataclass(frozen=True)
class ExportCounts:
    original: int
    grid: Optional[int] = None


@dataclass(frozen=True)
class ExportResult:
    counts: ExportCounts
    original_path: Optional[pathlib.Path] = None
    grid_path: Optional[pathlib.Path] = None


def coordinate_header(title: str, count: int, source: str, generated: Optional[datetime] = None) -> List[str]:
    stamp = (generated or datetime.now()).isoformat(timespec="seconds")
    return [
        f"# {title}",
        "# Format: X Y Z (meters)",
        f"# Source: {source}",
        f"# Records: {count}",
        f"# Generated: {stamp}",
        "",
    ]


def format_record(x: float, y: float, z: float) -> str:
    # repr keeps the shortest string that parses back to the same float
    return f"{float(x)!r} {float(y)!r} {float(z)!r}"


def write_records(sink: TextIO, xyz: np.ndarray, header: Sequence[str]) -> int:
    for line in header:
        sink.write(line + "\n")
    for x, y, z in xyz:
        sink.write(format_record(x, y, z) + "\n")
    return int(len(xyz))


@contextmanager
def _open_destination(dest: Destination) -> Iterator[TextIO]:
    """Yield a text sink. Paths are written to a ``.part`` sibling and moved
    into place only after the block completes."""
    if not isinstance(dest, (str, pathlib.Path)):
        yield dest
        return
    path = pathlib.Path(dest)
    tmp = path.with_name(path.name + ".part")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = open(tmp, "w", encoding="utf-8")
    except OSError as exc:
        raise IoFailure(f"Cannot write {path}: {exc}") from exc
    try:
        with fh:
            yield fh
        tmp.replace(path)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise IoFailure(f"Failed writing {path}: {exc}") from exc
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def lattice_xyz(lattice: LatticeLike) -> np.ndarray:
    """Row-major (i then j) coordinates of every present node."""
    if isinstance(lattice, GridResult):
        return lattice.as_xyz()
    rows = [n.xyz for column in lattice if column is not None for n in column if n is not None]
    return np.asarray(rows, dtype=np.float64).reshape(-1, 3)


def export_coordinates(
    points: PointSet,
    nodes: Optional[LatticeLike],
    destination: Destination,
    grid_destination: Optional[Destination] = None,
    source: str = "",
    generated: Optional[datetime] = None,
) -> ExportCounts:
    """Write original point coordinates and, when given, grid node coordinates.

    Values are the caller's native units; nothing is display-scaled.
    """
    if nodes is not None and grid_destination is None:
        raise ValueError("grid_destination is required when a lattice is supplied")
    stamp = generated or datetime.now()

    with _open_destination(destination) as sink:
        n_orig = write_records(
            sink, points.xyz,
            coordinate_header("Original XYZ coordinates", len(points), source, stamp),
        )

    n_grid: Optional[int] = None
    if nodes is not None and grid_destination is not None:
        xyz = lattice_xyz(nodes)
        with _open_destination(grid_destination) as sink:
            n_grid = write_records(
                sink, xyz,
                coordinate_header("Grid coordinates", len(xyz), source or "grid", stamp),
            )
    return ExportCounts(original=n_orig, grid=n_grid)


@dataclass
class CoordinateExporter:
    """Writes ``<stem>_original_coords.txt`` and ``<stem>_grid_coords.txt``."""
    directory: pathlib.Path
    stem: str
    source_name: str = ""

    @classmethod
    def for_source(cls, source_file: Union[str, pathlib.Path], directory: Optional[pathlib.Path] = None) -> "CoordinateExporter":
        src = pathlib.Path(source_file)
        return cls(directory=pathlib.Path(directory) if directory is not None else src.parent,
                   stem=src.stem, source_name=src.name)

    @property
    def original_path(self) -> pathlib.Path:
        return self.directory / f"{self.stem}_original_coords.txt"

    @property
    def grid_path(self) -> pathlib.Path:
        return self.directory / f"{self.stem}_grid_coords.txt"

    def export(self, points: PointSet, grid: Optional[LatticeLike] = None, include_original: bool = True) -> ExportResult:
        if include_original:
            counts = export_coordinates(
                points,
                grid,
                self.original_path,
                self.grid_path if grid is not None else None,
                source=self.source_name,
            )
            _log.info("Exported %d original points → %s", counts.original, self.original_path)
        else:
            if grid is None:
                raise ValueError("Nothing to export: include_original is False and no grid given")
            xyz = lattice_xyz(grid)
            with _open_destination(self.grid_path) as sink:
                n = write_records(sink, xyz, coordinate_header("Grid coordinates", len(xyz), self.source_name))
            counts = ExportCounts(original=0, grid=n)
        if counts.grid is not None:
            _log.info("Exported %d grid points → %s", counts.grid, self.grid_path)
        return ExportResult(
            counts=counts,
            original_path=self.original_path if include_original else None,
            grid_path=self.grid_path if grid is not None else None,
        )


class PlyMeshWriter:
    """ASCII PLY of a triangulated lattice (vertices in row-major i, j order)."""

    def __init__(self, path: str | pathlib.Path) -> None:
        self.path = pathlib.Path(path)

    def write(self, grid: GridResult, triangles: Sequence[Triangle]) -> int:
        verts = grid.as_xyz()
        faces = face_index_array(triangles, grid.y_count)
        with _open_destination(self.path) as f:
            f.write("ply\nformat ascii 1.0\n")
            f.write(f"element vertex {len(verts)}\n")
            f.write("property double x\nproperty double y\nproperty double z\n")
            f.write(f"element face {len(faces)}\n")
            f.write("property list uchar int vertex_indices\n")
            f.write("end_header\n")
            for x, y, z in verts:
                f.write(format_record(x, y, z) + "\n")
            for tri in faces:
                f.write(f"3 {tri[0]} {tri[1]} {tri[2]}\n")
        _log.info("Wrote mesh %s (%d vertices, %d faces)", self.path.name, len(verts), len(faces))
        return int(len(faces))


@dataclass
class LasPointWriter:
    """LAS 1.4 writer for point or grid-node coordinates using laspy (v2+).

    Coordinates are quantised by ``scale``; the offset defaults to the data minimum.
    """
    path: str
    point_format: int = 6
    scale: tuple[float, float, float] = (1e-3, 1e-3, 1e-3)
    offset: Optional[tuple[float, float, float]] = None

    def write(self, xyz: np.ndarray, exact: Optional[np.ndarray] = None) -> int:
        xyz = np.asarray(xyz, dtype=np.float64).reshape(-1, 3)
        hdr = laspy.LasHeader(point_format=laspy.PointFormat(self.point_format), version="1.4")
        hdr.scales = np.asarray(self.scale, dtype=np.float64)
        if self.offset is None:
            mn = xyz.min(axis=0) if len(xyz) else np.zeros(3)
            hdr.offsets = np.asarray([float(mn[0]), float(mn[1]), float(mn[2])])
        else:
            hdr.offsets = np.asarray(self.offset, dtype=np.float64)
        if exact is not None:
            hdr.add_extra_dim(laspy.ExtraBytesParams(name="exact", type="uint8"))

        pts = laspy.ScaleAwarePointRecord.zeros(len(xyz), header=hdr)
        pts.x = xyz[:, 0]
        pts.y = xyz[:, 1]
        pts.z = xyz[:, 2]
        if exact is not None:
            pts["exact"] = np.asarray(exact, dtype=np.uint8).ravel()

        path = pathlib.Path(self.path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with laspy.open(path, mode="w", header=hdr) as fh:
                fh.write_points(pts)
        except OSError as exc:
            raise IoFailure(f"Cannot write {path}: {exc}") from exc
        _log.info("Opened %s (PF=%d) and wrote %d points", path.name, self.point_format, len(xyz))
        return int(len(xyz))

    def write_grid(self, grid: GridResult) -> int:
        return self.write(grid.as_xyz(), exact=grid.exact.ravel())
