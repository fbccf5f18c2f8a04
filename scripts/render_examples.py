from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from terragrid.config import validate_config
from terragrid.examples.synthetic import generate_terrain
from terragrid.sdk import GridRunResult, generate_from_config

matplotlib.use("Agg")


@dataclass(frozen=True)
class ExampleCase:
    name: str
    preset: str
    spacing: float
    stride: int = 1
    count: int = 2000


PREVIEW_EXAMPLES: List[ExampleCase] = [
    ExampleCase(name="hills", preset="hills", spacing=50.0),
    ExampleCase(name="ramp", preset="ramp", spacing=100.0),
    ExampleCase(name="hills_simplified", preset="hills", spacing=50.0, stride=10, count=20000),
]

OUTPUT_DIR = Path("examples/outputs")
IMAGE_DIR = Path("examples/images")


def _ensure_dirs() -> None:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    IMAGE_DIR.mkdir(parents=True, exist_ok=True)


def run_example(case: ExampleCase, overwrite: bool = True) -> GridRunResult:
    xyz_path = OUTPUT_DIR / f"{case.name}.xyz"
    if overwrite or not xyz_path.exists():
        generate_terrain(xyz_path, preset=case.preset, count=case.count, seed=0)
    cfg = validate_config({
        "input": {"path": xyz_path.resolve(), "stride": case.stride},
        "grid": {"spacing": case.spacing},
        "output": {
            "directory": OUTPUT_DIR.resolve(),
            "mesh_ply": (OUTPUT_DIR / f"{case.name}_mesh.ply").resolve(),
        },
    })
    return generate_from_config(cfg)


def render_grid(name: str, result: GridRunResult) -> Path:
    grid = result.grid
    src = result.ingest.points
    if len(grid) == 0:
        raise ValueError(f"No grid nodes to render for {name}")

    fig = plt.figure(figsize=(8, 6), dpi=150)
    ax_top = fig.add_subplot(2, 1, 1)
    extent = (grid.x[0], grid.x[-1], grid.y[0], grid.y[-1])
    im = ax_top.imshow(grid.elevation.T, origin="lower", extent=extent, cmap="viridis", aspect="equal")
    ax_top.scatter(src.x, src.y, s=0.5, c="k", alpha=0.3)
    ax_top.set_title(f"{name.replace('_', ' ').title()} – interpolated grid (top-down)")
    ax_top.set_xlabel("X [m]")
    ax_top.set_ylabel("Y [m]")
    fig.colorbar(im, ax=ax_top, fraction=0.046, pad=0.04, label="Elevation [m]")

    ax_side = fig.add_subplot(2, 1, 2)
    mid = grid.y_count // 2
    ax_side.plot(grid.x, grid.elevation[:, mid], "-o", ms=2, label=f"grid row j={mid}")
    band = np.abs(src.y - grid.y[mid]) <= grid.spacing / 2.0
    ax_side.scatter(src.x[band], src.z[band], s=2, c="tab:orange", label="source points")
    ax_side.set_title("Elevation Profile (XZ)")
    ax_side.set_xlabel("X [m]")
    ax_side.set_ylabel("Z [m]")
    ax_side.legend(loc="best", fontsize="small")

    fig.tight_layout()
    out_path = IMAGE_DIR / f"{name}.png"
    fig.savefig(out_path)
    plt.close(fig)
    return out_path


def generate_examples(names: List[str], overwrite_outputs: bool) -> None:
    _ensure_dirs()
    selected = PREVIEW_EXAMPLES if not names else [case for case in PREVIEW_EXAMPLES if case.name in names]
    if not selected:
        raise ValueError("No matching examples selected.")
    for case in selected:
        logging.info("Running example '%s'", case.name)
        result = run_example(case, overwrite=overwrite_outputs)
        image_path = render_grid(case.name, result)
        logging.info("Saved %s", image_path)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate terragrid example outputs and preview images.")
    parser.add_argument("--example", "-e", action="append", help="Example name to run (default: all).")
    parser.add_argument("--no-overwrite", action="store_true", help="Reuse existing synthetic XYZ inputs.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="[%(levelname)s] %(message)s")
    generate_examples(args.example or [], overwrite_outputs=not args.no_overwrite)


if __name__ == "__main__":
    main()
