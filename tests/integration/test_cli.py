from __future__ import annotations

from pathlib import Path

import numpy as np
import yaml
from typer.testing import CliRunner

from terragrid.cli.main import app
from terragrid.core.pointcloud import read_xyz


def _write_square(path: Path) -> Path:
    path.write_text("# survey\n0 0 10\n10 0 12\n0 10 11\n10 10 13\n", encoding="utf-8")
    return path


def test_cli_grid_writes_exports(tmp_path: Path) -> None:
    src = _write_square(tmp_path / "square.xyz")
    out = tmp_path / "out"
    runner = CliRunner()
    result = runner.invoke(app, [
        "grid", str(src),
        "--spacing", "5",
        "--stride", "1",
        "--output-dir", str(out),
        "--mesh", str(out / "square.ply"),
    ])
    assert result.exit_code == 0, result.output
    assert "3 x 3 nodes" in result.output
    assert "8 faces" in result.output
    assert (out / "square_original_coords.txt").exists()
    assert (out / "square.ply").exists()
    grid = read_xyz(out / "square_grid_coords.txt").points
    assert len(grid) == 9
    np.testing.assert_array_equal(grid.xyz[0], [0.0, 0.0, 10.0])


def test_cli_grid_no_export(tmp_path: Path) -> None:
    src = _write_square(tmp_path / "square.xyz")
    runner = CliRunner()
    result = runner.invoke(app, ["grid", str(src), "--spacing", "10", "--stride", "1", "--no-export", "--no-faces"])
    assert result.exit_code == 0, result.output
    assert "0 faces" in result.output
    assert sorted(p.name for p in tmp_path.iterdir()) == ["square.xyz"]


def test_cli_generate_from_yaml(tmp_path: Path) -> None:
    _write_square(tmp_path / "square.xyz")
    config = {
        "input": {"path": "square.xyz"},
        "grid": {"spacing": 10.0},
        "output": {"directory": "exports", "grid_las": "exports/grid.las"},
    }
    cfg_path = tmp_path / "run.yaml"
    cfg_path.write_text(yaml.safe_dump(config), encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(app, ["generate", str(cfg_path), "--spacing", "5"])
    assert result.exit_code == 0, result.output
    assert "3 x 3 nodes" in result.output
    assert (tmp_path / "exports" / "square_grid_coords.txt").exists()
    assert (tmp_path / "exports" / "grid.las").exists()


def test_cli_scan_reports_bounds(tmp_path: Path) -> None:
    src = tmp_path / "scan.xyz"
    src.write_text("0 0 1\n5 5 50\n9 1 150\n3 8 20\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["scan", str(src)])
    assert result.exit_code == 0, result.output
    assert "Points: 4" in result.output
    assert "Filtered (5.0 <= Z <= 100.0): 2" in result.output
    assert " X: 3.0 - 5.0" in result.output


def test_cli_synth_then_grid(tmp_path: Path) -> None:
    out = tmp_path / "hills.xyz"
    runner = CliRunner()
    result = runner.invoke(app, ["synth", str(out), "--count", "200", "--size", "100", "--seed", "3"])
    assert result.exit_code == 0, result.output
    assert "Wrote 200 synthetic points" in result.output
    assert len(read_xyz(out).points) == 200

    result = runner.invoke(app, ["grid", str(out), "--spacing", "25", "--no-export"])
    assert result.exit_code == 0, result.output


def test_cli_empty_input_exits_with_error(tmp_path: Path) -> None:
    src = tmp_path / "empty.xyz"
    src.write_text("garbage line\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["grid", str(src), "--stride", "1"])
    assert result.exit_code == 1
    assert not (tmp_path / "empty_original_coords.txt").exists()


def test_cli_rejects_unknown_backend(tmp_path: Path) -> None:
    src = _write_square(tmp_path / "square.xyz")
    runner = CliRunner()
    result = runner.invoke(app, ["grid", str(src), "--backend", "octree"])
    assert result.exit_code != 0


def test_cli_survey_lists_stations(tmp_path: Path) -> None:
    src = tmp_path / "line.xyz"
    src.write_text("".join(f"{k} 0 {k}\n" for k in range(30)), encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["survey", str(src), "--interval", "10", "--list"])
    assert result.exit_code == 0, result.output
    assert "XYZ survey grid created with 3 stations" in result.output
    assert "STA1010 10.0 0.0 10.0" in result.output

    result = runner.invoke(app, ["survey", str(src), "--interval", "0"])
    assert result.exit_code != 0


def test_cli_grid_skip_comments(tmp_path: Path) -> None:
    src = _write_square(tmp_path / "square.xyz")
    runner = CliRunner()
    result = runner.invoke(app, ["grid", str(src), "--spacing", "10", "--stride", "1", "--no-export"])
    assert result.exit_code == 0, result.output
    assert "Skipped 1 invalid lines" in result.output

    result = runner.invoke(app, ["grid", str(src), "--spacing", "10", "--stride", "1", "--no-export", "--skip-comments"])
    assert result.exit_code == 0, result.output
    assert "Skipped" not in result.output


def test_cli_synth_rejects_zero_count(tmp_path: Path) -> None:
    out = tmp_path / "none.xyz"
    runner = CliRunner()
    result = runner.invoke(app, ["synth", str(out), "--count", "0"])
    assert result.exit_code == 2
    assert not out.exists()
