from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union
import numpy as np

from .grid import GridNode, GridResult
from .utils import get_logger

_log = get_logger()

Index = Tuple[int, int]
LatticeLike = Union[GridResult, Sequence[Sequence[Optional[GridNode]]]]


@dataclass(frozen=True)
class Triangle:
    """Three lattice corners plus the ``(i, j, half)`` cell tag.

    ``half == 1`` is ``p1 -> p2 -> p3`` and ``half == 2`` is ``p1 -> p3 -> p4``
    with ``p1=(i, j)``, ``p2=(i+1, j)``, ``p3=(i+1, j+1)``, ``p4=(i, j+1)``.
    """
    a: Index
    b: Index
    c: Index
    cell: Tuple[int, int, int]

    @property
    def corners(self) -> Tuple[Index, Index, Index]:
        return (self.a, self.b, self.c)

    @property
    def cell_id(self) -> str:
        i, j, half = self.cell
        return f"{i}_{j}_{half}"

    def vertices(self, lattice: LatticeLike) -> Tuple[GridNode, GridNode, GridNode]:
        nodes = _as_lattice(lattice)
        return tuple(nodes[i][j] for i, j in self.corners)  # type: ignore[return-value]


def _as_lattice(lattice: LatticeLike) -> Sequence[Sequence[Optional[GridNode]]]:
    if isinstance(lattice, GridResult):
        return lattice.nodes
    return lattice


def _lookup(nodes: Sequence[Sequence[Optional[GridNode]]], i: int, j: int) -> Optional[GridNode]:
    if i >= len(nodes):
        return None
    column = nodes[i]
    if column is None or j >= len(column):
        return None
    return column[j]


def triangulate(lattice: LatticeLike) -> List[Triangle]:
    """Split every complete quad cell into two triangles along the (i, j)->(i+1, j+1) diagonal.

    Cells with a missing corner are skipped. Lattices narrower than 2x2 yield
    an empty list.
    """
    nodes = _as_lattice(lattice)
    x_count = len(nodes)
    y_count = max((len(col) for col in nodes if col is not None), default=0)
    if x_count < 2 or y_count < 2:
        return []

    triangles: List[Triangle] = []
    skipped = 0
    for i in range(x_count - 1):
        for j in range(y_count - 1):
            p1, p2, p3, p4 = (i, j), (i + 1, j), (i + 1, j + 1), (i, j + 1)
            if any(_lookup(nodes, *p) is None for p in (p1, p2, p3, p4)):
                skipped += 1
                continue
            triangles.append(Triangle(p1, p2, p3, cell=(i, j, 1)))
            triangles.append(Triangle(p1, p3, p4, cell=(i, j, 2)))

    if skipped:
        _log.info("Skipped %d incomplete grid cells", skipped)
    _log.info("Created %d terrain faces", len(triangles))
    return triangles


def face_index_array(triangles: Sequence[Triangle], y_count: int) -> np.ndarray:
    """``(T, 3)`` vertex indices into a row-major (i then j) vertex list."""
    faces = np.empty((len(triangles), 3), dtype=np.int64)
    for k, tri in enumerate(triangles):
        faces[k] = [i * y_count + j for i, j in tri.corners]
    return faces


def face_normals(triangles: Sequence[Triangle], grid: GridResult) -> np.ndarray:
    """Unit normals of each triangle; upward for non-degenerate terrain."""
    verts = grid.as_xyz()
    tris = verts[face_index_array(triangles, grid.y_count)]
    normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    lens = np.linalg.norm(normals, axis=1, keepdims=True)
    return np.divide(normals, np.clip(lens, 1e-12, None), out=np.zeros_like(normals), where=lens > 0)
