from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..core.errors import InvalidConfigurationError, IoFailure


class InputConfig(BaseModel):
    path: Path
    stride: int = Field(1, ge=1)
    skip_comments: bool = False


class GridConfig(BaseModel):
    spacing: float = Field(50.0, gt=0)
    create_faces: bool = True
    line_style: Literal["Thin", "Normal", "Thick"] = "Normal"
    show_labels: bool = True


class InterpolationConfig(BaseModel):
    search_radius: float = Field(500.0, gt=0)
    max_neighbors: int = Field(6, ge=1)
    exact_tolerance: float = Field(0.01, ge=0)
    backend: Literal["auto", "brute", "kdtree"] = "auto"


class FilterConfig(BaseModel):
    elevation_min: float = 5.0
    elevation_max: float = 100.0

    @model_validator(mode="after")
    def _validate_range(self) -> "FilterConfig":
        if self.elevation_min > self.elevation_max:
            raise ValueError("elevation_min must not exceed elevation_max")
        return self


class SurveyConfig(BaseModel):
    interval: int = Field(100, ge=1)
    prefix: str = "STA"
    start: int = 1000
    step: int = 10


class OutputConfig(BaseModel):
    directory: Optional[Path] = None
    export_original: bool = True
    export_grid: bool = True
    mesh_ply: Optional[Path] = None
    grid_las: Optional[Path] = None
    display_scale: float = Field(39.3701, gt=0)


class GridRunConfig(BaseModel):
    input: InputConfig
    grid: GridConfig = GridConfig()
    interpolation: InterpolationConfig = InterpolationConfig()
    filter: FilterConfig = FilterConfig()
    survey: SurveyConfig = SurveyConfig()
    output: OutputConfig = OutputConfig()

    def output_directory(self) -> Path:
        if self.output.directory is not None:
            return self.output.directory
        return self.input.path.parent


def validate_config(data: dict) -> GridRunConfig:
    try:
        return GridRunConfig.model_validate(data)
    except ValidationError as exc:
        raise InvalidConfigurationError(str(exc)) from exc


def _resolve(base: Path, p: Optional[Path]) -> Optional[Path]:
    if p is None:
        return None
    return p if p.is_absolute() else (base / p).resolve()


def load_config(path: str | Path) -> GridRunConfig:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise IoFailure(f"Cannot read configuration {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidConfigurationError("Configuration root must be a mapping.")
    cfg = validate_config(data)
    base = path.parent
    cfg.input.path = _resolve(base, cfg.input.path)  # type: ignore[assignment]
    cfg.output.directory = _resolve(base, cfg.output.directory)
    cfg.output.mesh_ply = _resolve(base, cfg.output.mesh_ply)
    cfg.output.grid_las = _resolve(base, cfg.output.grid_las)
    return cfg
