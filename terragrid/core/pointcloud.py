from __future__ import annotations
from dataclasses import dataclass, field
import math
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple, Union, overload
import numpy as np

from .errors import InvalidConfigurationError, IoFailure
from .utils import get_logger

_log = get_logger()

_PROGRESS_EVERY = 10_000
_WARN_FIRST = 5


@dataclass(frozen=True)
class SourcePoint:
    x: float
    y: float
    z: float


@dataclass(frozen=True, eq=False)
class PointSet:
    """Ordered, immutable set of XYZ samples (file order is preserved)."""
    xyz: np.ndarray                       # (N, 3) float64, read-only

    def __post_init__(self) -> None:
        arr = np.array(self.xyz, dtype=np.float64, copy=True)
        if arr.size == 0:
            arr = arr.reshape(0, 3)
        if arr.ndim != 2 or arr.shape[1] != 3:
            raise ValueError(f"PointSet expects an (N, 3) array, got shape {arr.shape}")
        arr.setflags(write=False)
        object.__setattr__(self, "xyz", arr)

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> "PointSet":
        rows = [(float(p[0]), float(p[1]), float(p[2])) for p in points]
        return cls(np.asarray(rows, dtype=np.float64).reshape(-1, 3))

    @classmethod
    def empty(cls) -> "PointSet":
        return cls(np.zeros((0, 3), dtype=np.float64))

    def __len__(self) -> int:
        return int(self.xyz.shape[0])

    def __iter__(self) -> Iterator[SourcePoint]:
        for x, y, z in self.xyz:
            yield SourcePoint(float(x), float(y), float(z))

    @overload
    def __getitem__(self, index: int) -> SourcePoint: ...
    @overload
    def __getitem__(self, index: slice) -> "PointSet": ...

    def __getitem__(self, index: Union[int, slice]) -> Union[SourcePoint, "PointSet"]:
        if isinstance(index, slice):
            return PointSet(self.xyz[index])
        x, y, z = self.xyz[index]
        return SourcePoint(float(x), float(y), float(z))

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @property
    def x(self) -> np.ndarray:
        return self.xyz[:, 0]

    @property
    def y(self) -> np.ndarray:
        return self.xyz[:, 1]

    @property
    def z(self) -> np.ndarray:
        return self.xyz[:, 2]

    def subset(self, mask: np.ndarray) -> "PointSet":
        """New PointSet with the rows selected by ``mask``, order preserved."""
        return PointSet(self.xyz[np.asarray(mask)])

    def same_values(self, other: "PointSet") -> bool:
        return self.xyz.shape == other.xyz.shape and bool(np.array_equal(self.xyz, other.xyz))


@dataclass(frozen=True)
class ParseDiagnostic:
    line_number: int       # 1-based physical line
    reason: str
    text: str = ""


@dataclass
class IngestResult:
    points: PointSet
    diagnostics: List[ParseDiagnostic] = field(default_factory=list)
    lines_read: int = 0
    lines_considered: int = 0
    lines_skipped_by_stride: int = 0

    def __iter__(self) -> Iterator:
        # allows ``points, diagnostics = ingest(...)``
        yield self.points
        yield self.diagnostics


def parse_record(line: str) -> Tuple[Tuple[float, float, float] | None, str | None]:
    """Parse one XYZ record. Returns ``(xyz, None)`` or ``(None, reason)``."""
    tokens = line.split()
    if len(tokens) < 3:
        return None, f"expected at least 3 fields, got {len(tokens)}"
    values: List[float] = []
    for tok in tokens[:3]:
        try:
            v = float(tok)
        except ValueError:
            return None, f"non-numeric value '{tok}'"
        if not math.isfinite(v):
            return None, f"non-finite value '{tok}'"
        values.append(v)
    return (values[0], values[1], values[2]), None


def ingest(source: Iterable[str], stride: int = 1, skip_comments: bool = False) -> IngestResult:
    """Stream XYZ records from ``source`` keeping every ``stride``-th non-blank line.

    Blank lines are skipped and do not advance the stride counter. Every other
    line counts; a retained line that does not parse (a ``#`` header included)
    is recorded as a diagnostic and never aborts the read. With
    ``skip_comments`` the ``#`` lines are treated like blank lines instead.
    """
    if isinstance(stride, bool) or not isinstance(stride, (int, np.integer)) or stride < 1:
        raise InvalidConfigurationError(f"stride must be an integer >= 1, got {stride!r}")
    stride = int(stride)

    rows: List[Tuple[float, float, float]] = []
    diagnostics: List[ParseDiagnostic] = []
    lines_read = 0
    considered = 0
    skipped = 0

    try:
        for line_number, raw in enumerate(source, start=1):
            lines_read = line_number
            if line_number % _PROGRESS_EVERY == 0:
                _log.debug("Processed %d lines, found %d valid points", line_number, len(rows))
            stripped = raw.strip()
            if not stripped or (skip_comments and stripped.startswith("#")):
                continue
            data_index = considered
            considered += 1
            if data_index % stride != 0:
                skipped += 1
                continue
            xyz, reason = parse_record(stripped)
            if xyz is None:
                diag = ParseDiagnostic(line_number=line_number, reason=str(reason), text=stripped[:80])
                diagnostics.append(diag)
                if len(diagnostics) <= _WARN_FIRST:
                    _log.warning("Skipping invalid line %d: %s", line_number, reason)
                continue
            rows.append(xyz)
    except OSError as exc:
        raise IoFailure(f"Failed while reading XYZ source: {exc}") from exc

    if len(diagnostics) > _WARN_FIRST:
        _log.warning("%d invalid lines skipped in total", len(diagnostics))

    points = PointSet(np.asarray(rows, dtype=np.float64).reshape(-1, 3))
    if len(points):
        mn = points.xyz.min(axis=0)
        mx = points.xyz.max(axis=0)
        _log.info("Loaded %d points (stride=%d)", len(points), stride)
        _log.info("  X: %s to %s (range: %.2f)", mn[0], mx[0], mx[0] - mn[0])
        _log.info("  Y: %s to %s (range: %.2f)", mn[1], mx[1], mx[1] - mn[1])
        _log.info("  Z: %s to %s (range: %.2f)", mn[2], mx[2], mx[2] - mn[2])
    else:
        _log.info("No valid XYZ records found (%d lines read)", lines_read)

    return IngestResult(
        points=points,
        diagnostics=diagnostics,
        lines_read=lines_read,
        lines_considered=considered,
        lines_skipped_by_stride=skipped,
    )


def read_xyz(path: str | Path, stride: int = 1, skip_comments: bool = False) -> IngestResult:
    """Open ``path`` and :func:`ingest` it."""
    path = Path(path)
    try:
        fh = open(path, "r", encoding="utf-8", errors="replace")
    except OSError as exc:
        raise IoFailure(f"Cannot read XYZ file {path}: {exc}") from exc
    with fh:
        _log.info("Reading %s", path.name)
        return ingest(fh, stride=stride, skip_comments=skip_comments)
