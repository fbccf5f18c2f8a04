from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, Union
import numpy as np

from .errors import InvalidConfigurationError, NoDataError
from .pointcloud import PointSet
from .utils import get_logger, order_by_distance, planar_distances

_log = get_logger()

try:
    from scipy.spatial import cKDTree  # type: ignore
    _HAVE_SCIPY = True
except Exception:
    cKDTree = None  # type: ignore
    _HAVE_SCIPY = False

DEFAULT_SEARCH_RADIUS = 500.0
DEFAULT_MAX_NEIGHBORS = 6
DEFAULT_EXACT_TOLERANCE = 0.01

# Below this many points a KD-tree costs more to build than it saves.
AUTO_KDTREE_THRESHOLD = 2048


@dataclass
class Neighbors:
    indices: np.ndarray          # (K,) source indices, ascending (distance, index)
    distances: np.ndarray        # (K,) planar distances

    def __len__(self) -> int:
        return int(self.indices.shape[0])


class NeighborSearch(Protocol):
    def within(self, qx: float, qy: float, radius: float) -> Neighbors: ...
    def nearest(self, qx: float, qy: float) -> Tuple[int, float]: ...


class BruteForceSearch:
    """Scans every source point per query. O(N) per call, no build cost."""

    def __init__(self, xy: np.ndarray) -> None:
        self._xy = np.ascontiguousarray(xy[:, :2], dtype=np.float64)
        self._all = np.arange(self._xy.shape[0], dtype=np.int64)

    def within(self, qx: float, qy: float, radius: float) -> Neighbors:
        d = planar_distances(self._xy, qx, qy)
        idx = np.nonzero(d <= radius)[0]
        dist = d[idx]
        order = order_by_distance(dist, idx)
        return Neighbors(indices=idx[order], distances=dist[order])

    def nearest(self, qx: float, qy: float) -> Tuple[int, float]:
        d = planar_distances(self._xy, qx, qy)
        # argmin returns the first occurrence, i.e. the lowest index on ties
        i = int(np.argmin(d))
        return i, float(d[i])


class KDTreeSearch:
    """scipy cKDTree index. Candidates are re-measured with the same formula as
    :class:`BruteForceSearch` so both backends agree bit for bit."""

    _PAD_REL = 1e-9
    _PAD_ABS = 1e-12

    def __init__(self, xy: np.ndarray) -> None:
        if not _HAVE_SCIPY:
            raise RuntimeError("scipy is not available. pip install scipy.")
        self._xy = np.ascontiguousarray(xy[:, :2], dtype=np.float64)
        self._tree = cKDTree(self._xy)

    def _candidates(self, qx: float, qy: float, radius: float) -> Neighbors:
        padded = radius * (1.0 + self._PAD_REL) + self._PAD_ABS
        idx = np.asarray(self._tree.query_ball_point([qx, qy], r=padded), dtype=np.int64)
        if idx.size == 0:
            return Neighbors(indices=idx, distances=np.zeros((0,), dtype=np.float64))
        dist = planar_distances(self._xy[idx], qx, qy)
        order = order_by_distance(dist, idx)
        return Neighbors(indices=idx[order], distances=dist[order])

    def within(self, qx: float, qy: float, radius: float) -> Neighbors:
        cand = self._candidates(qx, qy, radius)
        keep = cand.distances <= radius
        return Neighbors(indices=cand.indices[keep], distances=cand.distances[keep])

    def nearest(self, qx: float, qy: float) -> Tuple[int, float]:
        d0, _ = self._tree.query([qx, qy], k=1)
        cand = self._candidates(qx, qy, float(d0))
        return int(cand.indices[0]), float(cand.distances[0])


class AutoSearch:
    """Picks KD-tree for large inputs when scipy is importable, else brute force."""

    def __init__(self, xy: np.ndarray, threshold: int = AUTO_KDTREE_THRESHOLD) -> None:
        if _HAVE_SCIPY and xy.shape[0] >= threshold:
            _log.debug("AutoSearch: using scipy cKDTree for %d points.", xy.shape[0])
            self._impl: NeighborSearch = KDTreeSearch(xy)
        else:
            self._impl = BruteForceSearch(xy)

    @property
    def backend(self) -> NeighborSearch:
        return self._impl

    def within(self, qx: float, qy: float, radius: float) -> Neighbors:
        return self._impl.within(qx, qy, radius)

    def nearest(self, qx: float, qy: float) -> Tuple[int, float]:
        return self._impl.nearest(qx, qy)


def make_search(xy: np.ndarray, backend: str = "auto") -> NeighborSearch:
    backend = backend.lower()
    if backend == "brute":
        return BruteForceSearch(xy)
    if backend == "kdtree":
        return KDTreeSearch(xy)
    if backend == "auto":
        return AutoSearch(xy)
    raise InvalidConfigurationError(f"Unknown neighbour search backend '{backend}'")


@dataclass(frozen=True)
class Estimate:
    value: float
    exact: bool          # value copied verbatim from one source point
    used: int            # number of source points that contributed


class IDWInterpolator:
    """Radius-bounded inverse-distance-weighted elevation estimator.

    For a query ``(x, y)``:

    1. gather source points within ``search_radius`` (planar distance);
    2. none in range: return the elevation of the globally nearest point;
    3. exactly one in range: return its elevation;
    4. otherwise take the ``max_neighbors`` closest; if the closest lies within
       ``exact_tolerance`` return its elevation;
    5. else return ``sum(z / d**2) / sum(1 / d**2)`` over those neighbours.

    Equidistant candidates are ordered by lowest source index.
    """

    def __init__(
        self,
        points: PointSet,
        search_radius: float = DEFAULT_SEARCH_RADIUS,
        max_neighbors: int = DEFAULT_MAX_NEIGHBORS,
        exact_tolerance: float = DEFAULT_EXACT_TOLERANCE,
        backend: Union[str, NeighborSearch] = "auto",
    ) -> None:
        if len(points) == 0:
            raise NoDataError("Cannot interpolate from an empty point set")
        if not search_radius > 0:
            raise InvalidConfigurationError(f"search_radius must be > 0, got {search_radius}")
        if int(max_neighbors) < 1:
            raise InvalidConfigurationError(f"max_neighbors must be >= 1, got {max_neighbors}")
        if not exact_tolerance >= 0:
            raise InvalidConfigurationError(f"exact_tolerance must be >= 0, got {exact_tolerance}")
        self.points = points
        self.search_radius = float(search_radius)
        self.max_neighbors = int(max_neighbors)
        self.exact_tolerance = float(exact_tolerance)
        self._z = points.z
        if isinstance(backend, str):
            self._search = make_search(points.xyz, backend)
        else:
            self._search = backend

    def estimate(self, x: float, y: float) -> Estimate:
        nb = self._search.within(x, y, self.search_radius)
        if len(nb) == 0:
            i, _ = self._search.nearest(x, y)
            return Estimate(value=float(self._z[i]), exact=True, used=1)
        if len(nb) == 1:
            return Estimate(value=float(self._z[nb.indices[0]]), exact=True, used=1)

        idx = nb.indices[: self.max_neighbors]
        dist = nb.distances[: self.max_neighbors]
        if dist[0] < self.exact_tolerance:
            return Estimate(value=float(self._z[idx[0]]), exact=True, used=1)

        z = self._z[idx]
        w = 1.0 / (dist * dist)
        value = float(np.sum(w * z) / np.sum(w))
        # guard against rounding drifting outside the neighbours' range
        value = min(max(value, float(z.min())), float(z.max()))
        return Estimate(value=value, exact=False, used=int(idx.shape[0]))

    def __call__(self, x: float, y: float) -> float:
        return self.estimate(x, y).value

    def interpolate_many(self, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Estimate at paired coordinates. Returns ``(values, exact_mask)``."""
        xs = np.asarray(xs, dtype=np.float64).ravel()
        ys = np.asarray(ys, dtype=np.float64).ravel()
        if xs.shape != ys.shape:
            raise ValueError("xs and ys must have the same length")
        values = np.empty(xs.shape, dtype=np.float64)
        exact = np.zeros(xs.shape, dtype=bool)
        for k in range(xs.shape[0]):
            est = self.estimate(float(xs[k]), float(ys[k]))
            values[k] = est.value
            exact[k] = est.exact
        return values, exact


def interpolate(
    points: PointSet,
    query_x: float,
    query_y: float,
    search_radius: float = DEFAULT_SEARCH_RADIUS,
    max_neighbors: int = DEFAULT_MAX_NEIGHBORS,
    exact_tolerance: float = DEFAULT_EXACT_TOLERANCE,
) -> float:
    """One-off IDW estimate at ``(query_x, query_y)``; see :class:`IDWInterpolator`."""
    interp = IDWInterpolator(
        points,
        search_radius=search_radius,
        max_neighbors=max_neighbors,
        exact_tolerance=exact_tolerance,
        backend="brute",
    )
    return interp(float(query_x), float(query_y))
