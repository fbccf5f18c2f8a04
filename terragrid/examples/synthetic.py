from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

import numpy as np


def _plane(x: np.ndarray, y: np.ndarray, size: float) -> np.ndarray:
    return np.full_like(x, 20.0)


def _ramp(x: np.ndarray, y: np.ndarray, size: float) -> np.ndarray:
    return 10.0 + 40.0 * (x / size)


def _hills(x: np.ndarray, y: np.ndarray, size: float) -> np.ndarray:
    u = x / size * 2.0 * np.pi
    v = y / size * 2.0 * np.pi
    base = 40.0 + 15.0 * np.sin(u) * np.cos(v)
    bump = 25.0 * np.exp(-(((x - 0.6 * size) ** 2 + (y - 0.4 * size) ** 2) / (0.05 * size * size)))
    return base + bump


_PRESETS: Dict[str, Callable[[np.ndarray, np.ndarray, float], np.ndarray]] = {
    "plane": _plane,
    "ramp": _ramp,
    "hills": _hills,
}


def sample_terrain(preset: str, size: float, count: int, seed: int = 0, origin: tuple[float, float] = (0.0, 0.0)) -> np.ndarray:
    """Scatter ``count`` samples over a ``size`` x ``size`` square and evaluate the preset surface."""
    preset = preset.lower()
    if preset not in _PRESETS:
        raise ValueError(f"Unknown synthetic terrain preset '{preset}'.")
    if count < 1:
        raise ValueError("count must be at least 1")
    rng = np.random.default_rng(seed)
    local = rng.uniform(0.0, size, size=(count, 2))
    z = _PRESETS[preset](local[:, 0], local[:, 1], size)
    xy = local + np.asarray(origin, dtype=np.float64)
    return np.column_stack([xy, z])


def generate_terrain(
    path: Path,
    preset: str = "hills",
    size: float = 1000.0,
    count: int = 2000,
    seed: int = 0,
    origin: tuple[float, float] = (0.0, 0.0),
) -> int:
    """Write a synthetic XYZ survey file. Returns the number of records."""
    xyz = sample_terrain(preset, size, count, seed=seed, origin=origin)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for x, y, z in xyz:
            f.write(f"{x:.3f} {y:.3f} {z:.3f}\n")
    return int(len(xyz))
