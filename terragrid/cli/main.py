from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from ..config import GridRunConfig, validate_config
from ..core.errors import TerragridError
from ..examples.synthetic import generate_terrain
from ..sdk import GridRunResult, generate_from_config, scan_file, survey_file

app = typer.Typer(help="Terrain grid utilities for XYZ survey point clouds")


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("terragrid").setLevel(numeric)


def _report(result: GridRunResult) -> None:
    stats = result.stats
    typer.echo(
        f"Terrain grid created: {stats['x_count']} x {stats['y_count']} nodes, "
        f"{stats['grid_lines']} grid lines, {stats['triangles']} faces "
        f"from {stats['points']} points"
    )
    if stats["diagnostics"]:
        typer.echo(f"Skipped {stats['diagnostics']} invalid lines")
    for name, path in result.written.items():
        typer.echo(f"  {name}: {path}")


@app.command("generate")
def generate(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    spacing: Optional[float] = typer.Option(None, "--spacing", help="Override grid spacing."),
    stride: Optional[int] = typer.Option(None, "--stride", help="Override simplification factor."),
    search_radius: Optional[float] = typer.Option(None, "--search-radius", help="Override interpolation search radius."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Override export directory."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Run a terrain grid generation described by a YAML config."""

    _configure_logging(log_level)
    try:
        result = generate_from_config(
            config,
            spacing=spacing,
            stride=stride,
            search_radius=search_radius,
            output_dir=output_dir.resolve() if output_dir is not None else None,
        )
    except TerragridError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _report(result)


@app.command("grid")
def grid_cli(
    xyz: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True, help="Input XYZ file."),
    spacing: float = typer.Option(50.0, "--spacing", help="Grid spacing in input units."),
    stride: int = typer.Option(10, "--stride", help="Keep every N-th data line (1 keeps all)."),
    skip_comments: bool = typer.Option(False, "--skip-comments", help="Ignore # lines instead of reporting them."),
    search_radius: float = typer.Option(500.0, "--search-radius", help="Interpolation neighbour cutoff."),
    backend: str = typer.Option("auto", "--backend", help="Neighbour search: auto, brute, or kdtree."),
    faces: bool = typer.Option(True, "--faces/--no-faces", help="Triangulate the lattice."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for coordinate exports."),
    mesh: Optional[Path] = typer.Option(None, "--mesh", help="Also write the mesh as ASCII PLY."),
    las: Optional[Path] = typer.Option(None, "--las", help="Also write grid nodes as LAS."),
    no_export: bool = typer.Option(False, "--no-export", help="Skip the coordinate text exports."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Quick grid generation driven entirely from CLI options."""

    allowed = {"auto", "brute", "kdtree"}
    if backend not in allowed:
        raise typer.BadParameter(f"backend must be one of {sorted(allowed)}.", param_hint="--backend")

    _configure_logging(log_level)
    data = {
        "input": {"path": xyz.resolve(), "stride": stride, "skip_comments": skip_comments},
        "grid": {"spacing": spacing, "create_faces": faces},
        "interpolation": {"search_radius": search_radius, "backend": backend},
        "output": {
            "directory": output_dir.resolve() if output_dir is not None else None,
            "export_original": not no_export,
            "export_grid": not no_export,
            "mesh_ply": mesh.resolve() if mesh is not None else None,
            "grid_las": las.resolve() if las is not None else None,
        },
    }
    try:
        cfg: GridRunConfig = validate_config(data)
        result = generate_from_config(cfg)
    except TerragridError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _report(result)


@app.command("scan")
def scan(
    xyz: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True, help="Input XYZ file."),
    min_z: float = typer.Option(5.0, "--min-z", help="Lowest elevation kept by the filter."),
    max_z: float = typer.Option(100.0, "--max-z", help="Highest elevation kept by the filter."),
    skip_comments: bool = typer.Option(False, "--skip-comments", help="Ignore # lines instead of reporting them."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Report min/max coordinates before and after an elevation filter."""

    _configure_logging(log_level)
    try:
        result = scan_file(xyz, elevation_min=min_z, elevation_max=max_z, skip_comments=skip_comments)
    except TerragridError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    b = result.original_bounds
    typer.echo(f"Points: {result.total_points}")
    typer.echo(f" X: {b.min_x} - {b.max_x}")
    typer.echo(f" Y: {b.min_y} - {b.max_y}")
    typer.echo(f" Z: {b.min_z} - {b.max_z}")
    typer.echo(f"Filtered ({min_z} <= Z <= {max_z}): {result.filtered_count}")
    fb = result.filtered_bounds
    if fb is None:
        typer.echo("No points remain after filtering.")
        return
    typer.echo(f" X: {fb.min_x} - {fb.max_x}")
    typer.echo(f" Y: {fb.min_y} - {fb.max_y}")
    typer.echo(f" Z: {fb.min_z} - {fb.max_z}")


@app.command("survey")
def survey(
    xyz: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True, help="Input XYZ file."),
    interval: int = typer.Option(100, "--interval", min=1, help="Place a station on every N-th point."),
    prefix: str = typer.Option("STA", "--prefix", help="Station name prefix."),
    start: int = typer.Option(1000, "--start", help="First station number."),
    step: int = typer.Option(10, "--step", help="Station number increment."),
    skip_comments: bool = typer.Option(False, "--skip-comments", help="Ignore # lines instead of reporting them."),
    show: bool = typer.Option(False, "--list", help="Print every station with its coordinates."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Sample every N-th point of an XYZ file as a named survey station."""

    _configure_logging(log_level)
    try:
        result = survey_file(xyz, interval=interval, prefix=prefix, start=start, step=step,
                             skip_comments=skip_comments)
    except TerragridError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"XYZ survey grid created with {len(result.stations)} stations")
    if show:
        for marker in result.stations:
            t = marker.tags
            typer.echo(f"{t['station']} {t['original_x']} {t['original_y']} {t['original_z']}")


@app.command("synth")
def synth(
    output: Path = typer.Argument(..., help="Output XYZ path."),
    preset: str = typer.Option("hills", "--preset", help="Synthetic terrain preset (hills, plane, ramp)."),
    size: float = typer.Option(1000.0, "--size", help="Side length of the square footprint."),
    count: int = typer.Option(2000, "--count", min=1, help="Number of samples."),
    seed: int = typer.Option(0, "--seed", help="Random seed."),
) -> None:
    """Generate a synthetic XYZ terrain file useful for demos."""

    out = output.resolve()
    try:
        n = generate_terrain(out, preset=preset, size=size, count=count, seed=seed)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--preset") from exc
    typer.echo(f"Wrote {n} synthetic points to {out}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
