from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import numpy as np

from .errors import EmptySetError, InvalidConfigurationError
from .pointcloud import PointSet
from .utils import get_logger

_log = get_logger()

DEFAULT_ELEVATION_MIN = 5.0
DEFAULT_ELEVATION_MAX = 100.0


@dataclass(frozen=True)
class Bounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    min_z: float
    max_z: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def relief(self) -> float:
        return self.max_z - self.min_z

    def contains(self, x: float, y: float, z: float) -> bool:
        return (self.min_x <= x <= self.max_x
                and self.min_y <= y <= self.max_y
                and self.min_z <= z <= self.max_z)

    def describe(self) -> str:
        return (f"X: {self.min_x} - {self.max_x}, "
                f"Y: {self.min_y} - {self.max_y}, "
                f"Z: {self.min_z} - {self.max_z}")


def compute_bounds(points: PointSet) -> Bounds:
    """Axis-aligned min/max of ``points``. Raises :class:`EmptySetError` when empty."""
    if len(points) == 0:
        raise EmptySetError("Cannot compute bounds of an empty point set")
    mn = points.xyz.min(axis=0)
    mx = points.xyz.max(axis=0)
    return Bounds(
        min_x=float(mn[0]), max_x=float(mx[0]),
        min_y=float(mn[1]), max_y=float(mx[1]),
        min_z=float(mn[2]), max_z=float(mx[2]),
    )


def filter_by_elevation(points: PointSet, min_z: float, max_z: float) -> PointSet:
    """Keep points with ``min_z <= z <= max_z`` in their original order.

    The input is left untouched. An empty result is valid.
    """
    if min_z > max_z:
        raise InvalidConfigurationError(f"elevation_min ({min_z}) must not exceed elevation_max ({max_z})")
    z = points.z
    mask = (z >= min_z) & (z <= max_z)
    return points.subset(mask)


@dataclass(frozen=True)
class ScanResult:
    original_bounds: Bounds
    filtered_bounds: Optional[Bounds]
    filtered_points: PointSet
    elevation_min: float
    elevation_max: float
    total_points: int

    @property
    def filtered_count(self) -> int:
        return len(self.filtered_points)

    @property
    def removed_count(self) -> int:
        return self.total_points - self.filtered_count


def scan_coordinates(
    points: PointSet,
    elevation_min: float = DEFAULT_ELEVATION_MIN,
    elevation_max: float = DEFAULT_ELEVATION_MAX,
) -> ScanResult:
    """Report bounds before and after an elevation-range filter.

    ``filtered_bounds`` is ``None`` when no point survives the filter.
    """
    original = compute_bounds(points)
    _log.info("Initial bounds: %s", original.describe())

    _log.info("Filtering coordinates with Z between %s and %s", elevation_min, elevation_max)
    filtered = filter_by_elevation(points, elevation_min, elevation_max)
    _log.info("Total original points: %d, filtered points: %d", len(points), len(filtered))

    filtered_bounds: Optional[Bounds] = None
    if len(filtered):
        filtered_bounds = compute_bounds(filtered)
        _log.info("Filtered bounds: %s", filtered_bounds.describe())
    else:
        _log.warning("No points remain after filtering")

    return ScanResult(
        original_bounds=original,
        filtered_bounds=filtered_bounds,
        filtered_points=filtered,
        elevation_min=float(elevation_min),
        elevation_max=float(elevation_max),
        total_points=len(points),
    )
