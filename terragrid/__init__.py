"""Terragrid – regular terrain grids from irregular XYZ survey point clouds.

Pipeline components:
- Point ingestion with stride subsampling and line diagnostics (core.pointcloud)
- Bounds and elevation-range filtering (core.bounds)
- Radius-bounded inverse-distance-weighted interpolation (core.interpolator)
- Regular lattice construction over the data footprint (core.grid)
- Two-triangles-per-cell mesh triangulation (core.mesh)
- Coordinate, PLY and LAS export in original units (core.exporter)
- Scene-sink records with display-unit conversion (core.scene)
"""

from .core.errors import (
    TerragridError, IoFailure, EmptySetError,
    InvalidConfigurationError, InvalidSpacingError, NoDataError,
)
from .core.pointcloud import SourcePoint, PointSet, ParseDiagnostic, IngestResult, ingest, read_xyz
from .core.bounds import Bounds, ScanResult, compute_bounds, filter_by_elevation, scan_coordinates
from .core.interpolator import (
    IDWInterpolator, BruteForceSearch, KDTreeSearch, AutoSearch, interpolate,
)
from .core.grid import GridNode, GridResult, NodeSource, build_grid
from .core.mesh import Triangle, triangulate
from .core.exporter import (
    CoordinateExporter, ExportCounts, LasPointWriter, PlyMeshWriter, export_coordinates,
)
from .core.scene import (
    LineSegment, PointMarker, TriangleFace, SceneBundle, build_scene, survey_stations, to_display_units,
)
