"""High-level entry points for running the terrain grid pipeline."""

from .run import (
    GridRunResult,
    SurveyResult,
    generate_from_config,
    scan_file,
    scan_from_config,
    survey_file,
    survey_from_config,
)

__all__ = [
    "GridRunResult",
    "SurveyResult",
    "generate_from_config",
    "scan_file",
    "scan_from_config",
    "survey_file",
    "survey_from_config",
]
