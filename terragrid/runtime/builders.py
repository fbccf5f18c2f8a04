from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import GridRunConfig
from ..core.exporter import CoordinateExporter, LasPointWriter, PlyMeshWriter
from ..core.interpolator import IDWInterpolator
from ..core.pointcloud import PointSet


def build_interpolator(cfg: GridRunConfig, points: PointSet) -> IDWInterpolator:
    icfg = cfg.interpolation
    return IDWInterpolator(
        points,
        search_radius=icfg.search_radius,
        max_neighbors=icfg.max_neighbors,
        exact_tolerance=icfg.exact_tolerance,
        backend=icfg.backend,
    )


def build_coordinate_exporter(cfg: GridRunConfig) -> Optional[CoordinateExporter]:
    out_cfg = cfg.output
    if not (out_cfg.export_original or out_cfg.export_grid):
        return None
    return CoordinateExporter.for_source(cfg.input.path, directory=cfg.output_directory())


def build_mesh_writer(cfg: GridRunConfig) -> Optional[PlyMeshWriter]:
    if cfg.output.mesh_ply is None:
        return None
    return PlyMeshWriter(Path(cfg.output.mesh_ply))


def build_las_writer(cfg: GridRunConfig) -> Optional[LasPointWriter]:
    if cfg.output.grid_las is None:
        return None
    return LasPointWriter(str(cfg.output.grid_las))
