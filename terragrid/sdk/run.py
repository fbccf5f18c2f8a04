from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config import GridRunConfig, load_config, validate_config
from ..core.bounds import ScanResult, scan_coordinates
from ..core.errors import EmptySetError
from ..core.exporter import ExportResult
from ..core.grid import GridResult, build_grid
from ..core.mesh import Triangle, triangulate
from ..core.pointcloud import IngestResult, read_xyz
from ..core.scene import (
    METERS_TO_INCHES,
    STATION_PREFIX,
    STATION_START,
    STATION_STEP,
    PointMarker,
    SceneBundle,
    build_scene,
    survey_stations,
)
from ..core.utils import get_logger
from ..runtime.builders import (
    build_coordinate_exporter,
    build_interpolator,
    build_las_writer,
    build_mesh_writer,
)

_log = get_logger()


@dataclass(frozen=True)
class GridRunResult:
    """Everything one grid-generation run produced."""

    ingest: IngestResult
    grid: GridResult
    triangles: List[Triangle]
    scene: SceneBundle
    config: GridRunConfig
    export: Optional[ExportResult] = None
    written: Dict[str, Path] = field(default_factory=dict)

    @property
    def stats(self) -> Dict[str, int]:
        counts = self.scene.counts()
        counts.update({
            "points": len(self.ingest.points),
            "diagnostics": len(self.ingest.diagnostics),
            "x_count": self.grid.x_count,
            "y_count": self.grid.y_count,
            "triangles": len(self.triangles),
        })
        return counts


def _with_overrides(cfg: GridRunConfig, **overrides) -> GridRunConfig:
    data = cfg.model_dump()
    section_of = {
        "input_path": ("input", "path"),
        "stride": ("input", "stride"),
        "spacing": ("grid", "spacing"),
        "search_radius": ("interpolation", "search_radius"),
        "backend": ("interpolation", "backend"),
        "output_dir": ("output", "directory"),
    }
    for key, value in overrides.items():
        if value is None:
            continue
        section, name = section_of[key]
        data[section][name] = value
    return validate_config(data)


def generate_from_config(
    config: Union[str, Path, GridRunConfig],
    *,
    input_path: Optional[Path] = None,
    spacing: Optional[float] = None,
    stride: Optional[int] = None,
    search_radius: Optional[float] = None,
    backend: Optional[str] = None,
    output_dir: Optional[Path] = None,
) -> GridRunResult:
    """Run ingest → grid → mesh → scene → exports for one XYZ file.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~terragrid.config.schema.GridRunConfig`.
        The object is never modified; overrides are applied to a validated copy.
    input_path, spacing, stride, search_radius, backend, output_dir:
        Optional overrides of the matching configuration values.

    Returns
    -------
    GridRunResult
        The ingested points and diagnostics, the lattice, its triangles, the
        scene-sink records and the paths of any files written.

    Raises
    ------
    InvalidConfigurationError, IoFailure, EmptySetError
        Nothing is exported when the run fails before the lattice is complete.
    """

    cfg = load_config(config) if not isinstance(config, GridRunConfig) else config.model_copy(deep=True)
    cfg = _with_overrides(
        cfg,
        input_path=input_path,
        stride=stride,
        spacing=spacing,
        search_radius=search_radius,
        backend=backend,
        output_dir=output_dir,
    )

    ingested = read_xyz(cfg.input.path, stride=cfg.input.stride, skip_comments=cfg.input.skip_comments)
    points = ingested.points
    if len(points) == 0:
        raise EmptySetError(f"No valid coordinate data found in {cfg.input.path}")

    interpolator = build_interpolator(cfg, points)
    grid = build_grid(points, cfg.grid.spacing, interpolator=interpolator)
    triangles = triangulate(grid) if cfg.grid.create_faces else []

    scene = build_scene(
        points,
        grid,
        triangles if cfg.grid.create_faces else None,
        scale=cfg.output.display_scale,
        line_style=cfg.grid.line_style,
        show_labels=cfg.grid.show_labels,
        source_name=Path(cfg.input.path).name,
    )

    written: Dict[str, Path] = {}
    export_result: Optional[ExportResult] = None
    exporter = build_coordinate_exporter(cfg)
    if exporter is not None:
        export_result = exporter.export(
            points,
            grid if cfg.output.export_grid else None,
            include_original=cfg.output.export_original,
        )
        if export_result.original_path is not None:
            written["original_coords"] = export_result.original_path
        if export_result.grid_path is not None:
            written["grid_coords"] = export_result.grid_path

    mesh_writer = build_mesh_writer(cfg)
    if mesh_writer is not None and triangles:
        mesh_writer.write(grid, triangles)
        written["mesh_ply"] = mesh_writer.path

    las_writer = build_las_writer(cfg)
    if las_writer is not None:
        las_writer.write_grid(grid)
        written["grid_las"] = Path(las_writer.path)

    result = GridRunResult(
        ingest=ingested,
        grid=grid,
        triangles=triangles,
        scene=scene,
        config=cfg,
        export=export_result,
        written=written,
    )
    _log.info("Terrain grid finished: %s", result.stats)
    return result


def scan_file(
    path: Union[str, Path],
    elevation_min: float = 5.0,
    elevation_max: float = 100.0,
    stride: int = 1,
    skip_comments: bool = False,
) -> ScanResult:
    """Bounds of an XYZ file before and after an elevation filter."""
    ingested = read_xyz(path, stride=stride, skip_comments=skip_comments)
    return scan_coordinates(ingested.points, elevation_min, elevation_max)


def scan_from_config(config: Union[str, Path, GridRunConfig]) -> ScanResult:
    cfg = load_config(config) if not isinstance(config, GridRunConfig) else config
    return scan_file(
        cfg.input.path,
        elevation_min=cfg.filter.elevation_min,
        elevation_max=cfg.filter.elevation_max,
        stride=cfg.input.stride,
        skip_comments=cfg.input.skip_comments,
    )


@dataclass(frozen=True)
class SurveyResult:
    """Station markers sampled from one XYZ file."""

    ingest: IngestResult
    stations: List[PointMarker]

    @property
    def names(self) -> List[str]:
        return [s.tags["station"] for s in self.stations]


def survey_file(
    path: Union[str, Path],
    interval: float = 100,
    prefix: str = STATION_PREFIX,
    start: int = STATION_START,
    step: int = STATION_STEP,
    stride: int = 1,
    skip_comments: bool = False,
    scale: float = METERS_TO_INCHES,
) -> SurveyResult:
    """Place a survey station on every ``interval``-th point of an XYZ file."""
    ingested = read_xyz(path, stride=stride, skip_comments=skip_comments)
    stations = list(survey_stations(ingested.points, interval, prefix=prefix, start=start, step=step, scale=scale))
    _log.info("XYZ survey grid created with %d stations", len(stations))
    return SurveyResult(ingest=ingested, stations=stations)


def survey_from_config(config: Union[str, Path, GridRunConfig]) -> SurveyResult:
    cfg = load_config(config) if not isinstance(config, GridRunConfig) else config
    return survey_file(
        cfg.input.path,
        interval=cfg.survey.interval,
        prefix=cfg.survey.prefix,
        start=cfg.survey.start,
        step=cfg.survey.step,
        stride=cfg.input.stride,
        skip_comments=cfg.input.skip_comments,
        scale=cfg.output.display_scale,
    )
