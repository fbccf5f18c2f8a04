from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Iterator, List, Optional, Tuple, Union
import numpy as np

from .bounds import Bounds, compute_bounds
from .errors import EmptySetError, InvalidSpacingError
from .interpolator import (
    DEFAULT_EXACT_TOLERANCE,
    DEFAULT_MAX_NEIGHBORS,
    DEFAULT_SEARCH_RADIUS,
    IDWInterpolator,
    NeighborSearch,
)
from .pointcloud import PointSet
from .utils import get_logger

_log = get_logger()

MAX_LATTICE_NODES = 50_000_000


class NodeSource(str, Enum):
    INTERPOLATED = "interpolated"
    EXACT = "exact"


@dataclass(frozen=True)
class GridNode:
    i: int
    j: int
    x: float
    y: float
    elevation: float
    source: NodeSource = NodeSource.INTERPOLATED

    @property
    def planar(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def xyz(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.elevation)


# nodes[i][j]; entries may be None in sparse lattices
Lattice = List[List[Optional[GridNode]]]


@dataclass
class GridResult:
    """Regular lattice over a point set's footprint.

    ``elevation[i, j]`` belongs to planar coordinate ``(x[i], y[j])``;
    ``i`` runs along X and ``j`` along Y.
    """
    x: np.ndarray                 # (x_count,)
    y: np.ndarray                 # (y_count,)
    elevation: np.ndarray         # (x_count, y_count)
    exact: np.ndarray             # (x_count, y_count) bool
    spacing: float
    bounds: Bounds
    _nodes: Optional[Lattice] = field(default=None, repr=False, compare=False)

    @property
    def x_count(self) -> int:
        return int(self.x.shape[0])

    @property
    def y_count(self) -> int:
        return int(self.y.shape[0])

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.x_count, self.y_count)

    def __len__(self) -> int:
        return self.x_count * self.y_count

    def node(self, i: int, j: int) -> GridNode:
        src = NodeSource.EXACT if bool(self.exact[i, j]) else NodeSource.INTERPOLATED
        return GridNode(i=i, j=j, x=float(self.x[i]), y=float(self.y[j]),
                        elevation=float(self.elevation[i, j]), source=src)

    @property
    def nodes(self) -> Lattice:
        if self._nodes is None:
            self._nodes = [[self.node(i, j) for j in range(self.y_count)] for i in range(self.x_count)]
        return self._nodes

    def iter_nodes(self) -> Iterator[GridNode]:
        """Row-major: all ``j`` for ``i = 0``, then ``i = 1`` and so on."""
        for column in self.nodes:
            for n in column:
                if n is not None:
                    yield n

    def as_xyz(self) -> np.ndarray:
        """``(x_count * y_count, 3)`` array in :meth:`iter_nodes` order."""
        xv, yv = np.meshgrid(self.x, self.y, indexing="ij")
        return np.column_stack([xv.ravel(), yv.ravel(), self.elevation.ravel()])

    def elevation_range(self) -> Tuple[float, float]:
        return float(self.elevation.min()), float(self.elevation.max())


def lattice_counts(bounds: Bounds, spacing: float) -> Tuple[int, int]:
    """Node counts ``floor(extent / spacing) + 1`` along X and Y.

    Raises :class:`InvalidSpacingError` when the lattice would exceed
    :data:`MAX_LATTICE_NODES`.
    """
    steps_x = bounds.width / spacing
    steps_y = bounds.height / spacing
    if not (math.isfinite(steps_x) and math.isfinite(steps_y)) or (steps_x + 1) * (steps_y + 1) > MAX_LATTICE_NODES:
        raise InvalidSpacingError(
            f"Grid spacing {spacing!r} is too small for a {bounds.width} x {bounds.height} footprint "
            f"(limit {MAX_LATTICE_NODES} nodes)"
        )
    x_count = int(math.floor(steps_x)) + 1
    y_count = int(math.floor(steps_y)) + 1
    return x_count, y_count


def _check_spacing(spacing: float) -> float:
    try:
        value = float(spacing)
    except (TypeError, ValueError) as exc:
        raise InvalidSpacingError(f"Grid spacing must be a number, got {spacing!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise InvalidSpacingError(f"Grid spacing must be greater than 0, got {spacing!r}")
    return value


def build_grid(
    points: PointSet,
    spacing: float,
    search_radius: float = DEFAULT_SEARCH_RADIUS,
    max_neighbors: int = DEFAULT_MAX_NEIGHBORS,
    exact_tolerance: float = DEFAULT_EXACT_TOLERANCE,
    backend: Union[str, NeighborSearch] = "auto",
    interpolator: Optional[IDWInterpolator] = None,
) -> GridResult:
    """Lay a ``spacing``-step lattice over ``points`` and interpolate every node.

    Raises :class:`InvalidSpacingError` for ``spacing <= 0`` and
    :class:`EmptySetError` for an empty set, before any lattice work.
    """
    spacing = _check_spacing(spacing)
    if len(points) == 0:
        raise EmptySetError("Cannot build a grid from an empty point set")

    bounds = compute_bounds(points)
    x_count, y_count = lattice_counts(bounds, spacing)
    _log.info("Grid bounds: %s", bounds.describe())
    _log.info("Creating %d x %d terrain-following grid (spacing %s)", x_count, y_count, spacing)

    if interpolator is None:
        interpolator = IDWInterpolator(
            points,
            search_radius=search_radius,
            max_neighbors=max_neighbors,
            exact_tolerance=exact_tolerance,
            backend=backend,
        )

    xs = bounds.min_x + np.arange(x_count, dtype=np.float64) * spacing
    ys = bounds.min_y + np.arange(y_count, dtype=np.float64) * spacing

    elevation = np.empty((x_count, y_count), dtype=np.float64)
    exact = np.zeros((x_count, y_count), dtype=bool)
    for i in range(x_count):
        qx = float(xs[i])
        for j in range(y_count):
            est = interpolator.estimate(qx, float(ys[j]))
            elevation[i, j] = est.value
            exact[i, j] = est.exact

    _log.info("Interpolated %d grid nodes (%d exact)", x_count * y_count, int(exact.sum()))
    return GridResult(x=xs, y=ys, elevation=elevation, exact=exact, spacing=spacing, bounds=bounds)
